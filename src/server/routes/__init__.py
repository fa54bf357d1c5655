"""
API Routes
"""

from .mana import router as mana_router
from .tables import router as tables_router

__all__ = ['mana_router', 'tables_router']
