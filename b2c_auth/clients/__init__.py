"""Expose constructed client wrappers."""

from .b2c_oauth import B2COAuthClient, TokenResponse
from .sqlite_store import SQLiteAuthStore

__all__ = [
    "B2COAuthClient",
    "SQLiteAuthStore",
    "TokenResponse",
]
