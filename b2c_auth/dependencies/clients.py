"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from functools import lru_cache

from fastapi import Depends

from b2c_auth.clients import B2COAuthClient, SQLiteAuthStore
from b2c_auth.core.config import AppSettings, get_settings
from b2c_auth.plugin import AuthPlugin
from b2c_auth.services import EventSink, LoggingEventSink, TokenCipherService


def get_app_settings() -> AppSettings:
    """FastAPI dependency returning the process-wide settings."""
    return get_settings()


@lru_cache()
def get_sqlite_store() -> SQLiteAuthStore:
    """Provide the shared token and state store."""
    return SQLiteAuthStore(get_app_settings().db_path)


@lru_cache()
def get_b2c_oauth_client() -> B2COAuthClient:
    """Create a singleton B2C OAuth client."""
    return B2COAuthClient(get_app_settings().b2c)


@lru_cache()
def get_token_cipher_service() -> TokenCipherService:
    """Provide symmetric encryption helper for token storage."""
    settings = get_app_settings()
    secret = settings.security.token_encryption_secret or settings.b2c.client_secret
    return TokenCipherService(secret=secret)


@lru_cache()
def get_event_sink() -> EventSink:
    """Provide the sink receiving login events."""
    return LoggingEventSink()


def get_auth_plugin(
    settings: AppSettings = Depends(get_app_settings),
    store: SQLiteAuthStore = Depends(get_sqlite_store),
    oauth_client: B2COAuthClient = Depends(get_b2c_oauth_client),
    token_cipher: TokenCipherService = Depends(get_token_cipher_service),
    event_sink: EventSink = Depends(get_event_sink),
) -> AuthPlugin:
    """Build the plugin with the configured login flow."""
    return AuthPlugin(
        settings,
        store,
        oauth_client,
        token_cipher,
        event_sink=event_sink,
    )


__all__ = [
    "get_app_settings",
    "get_auth_plugin",
    "get_b2c_oauth_client",
    "get_event_sink",
    "get_sqlite_store",
    "get_token_cipher_service",
]
