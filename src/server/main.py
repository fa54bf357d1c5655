"""
Hyperdraft Mana API Server

FastAPI application exposing the mana engine.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import config
from .routes import mana_router, tables_router

logging.basicConfig(
    level=getattr(logging, config.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# =============================================================================
# FastAPI Application
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    logger.info("Hyperdraft Mana API starting...")
    yield
    # Shutdown
    logger.info("Hyperdraft Mana API shutting down...")


# Create FastAPI app
app = FastAPI(
    title="Hyperdraft Mana API",
    description="Mana availability and auto-tap for tabletop play",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount routers
app.include_router(mana_router, prefix="/api")
app.include_router(tables_router, prefix="/api")


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "hyperdraft-mana-api"}


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "Hyperdraft Mana API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health"
    }


# Main entry point
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "src.server.main:app",
        host=config.host,
        port=config.port,
    )
