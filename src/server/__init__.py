"""
Hyperdraft Mana API Server

FastAPI backend for mana availability, auto-tap and table sessions.
"""

from .main import app
from .session import TableSession, TableManager

__all__ = ['app', 'TableSession', 'TableManager']
