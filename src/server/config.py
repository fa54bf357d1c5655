"""
Server Configuration

Settings for the mana API server, read from the environment.
"""

from dataclasses import dataclass, field
import os

from src.engine import MAX_UNDO_HISTORY


@dataclass
class ServerConfig:
    """Configuration for the API server."""

    # Network
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    # Table sessions
    max_undo_history: int = MAX_UNDO_HISTORY

    # Logging
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> 'ServerConfig':
        """
        Build config from MANA_* environment variables.

        MANA_CORS_ORIGINS is a comma-separated list.
        """
        defaults = cls()
        origins = os.environ.get("MANA_CORS_ORIGINS")
        return cls(
            host=os.environ.get("MANA_HOST", defaults.host),
            port=int(os.environ.get("MANA_PORT", defaults.port)),
            cors_origins=(
                [o.strip() for o in origins.split(",") if o.strip()]
                if origins else defaults.cors_origins
            ),
            max_undo_history=max(1, int(os.environ.get("MANA_MAX_UNDO", defaults.max_undo_history))),
            log_level=os.environ.get("MANA_LOG_LEVEL", defaults.log_level).upper(),
        )


# Global config instance
config = ServerConfig.from_env()
