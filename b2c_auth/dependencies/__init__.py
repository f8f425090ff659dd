"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_app_settings,
    get_auth_plugin,
    get_b2c_oauth_client,
    get_event_sink,
    get_sqlite_store,
    get_token_cipher_service,
)

__all__ = [
    "get_app_settings",
    "get_auth_plugin",
    "get_b2c_oauth_client",
    "get_event_sink",
    "get_sqlite_store",
    "get_token_cipher_service",
]
