"""
Application configuration models and helpers.

Centralizes settings management so the HTTP surface, the auth plugin and the
scheduled pruning job share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Optional

import os

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


def _env(name: str, **kwargs):
    """Field bound to a single environment variable."""
    return Field(validation_alias=name, **kwargs)


class _EnvSettings(BaseSettings):
    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)


class B2CSettings(_EnvSettings):
    """Configuration required for talking to the Azure AD B2C tenant."""

    client_id: str = _env("B2C_CLIENT_ID")
    client_secret: str = _env("B2C_CLIENT_SECRET")
    authorize_url: AnyHttpUrl = _env("B2C_AUTHORIZE_URL")
    token_url: AnyHttpUrl = _env("B2C_TOKEN_URL")
    redirect_uri: AnyHttpUrl = _env("B2C_REDIRECT_URI")
    scopes: Annotated[tuple[str, ...], NoDecode] = _env(
        "B2C_SCOPES",
        default=("openid", "offline_access"),
    )
    idp_name: str = _env(
        "B2C_IDP_NAME",
        default="Azure AD B2C",
        description="Label shown next to the login link on the login page.",
    )
    idp_icon: Optional[str] = _env("B2C_IDP_ICON", default=None)

    @field_validator("scopes", mode="before")
    @classmethod
    def _split_scopes(
        cls, value: str | tuple[str, ...] | list[str]
    ) -> tuple[str, ...]:
        """Support providing scopes as a comma-separated string."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(value)
        return tuple(scope.strip() for scope in value.split(",") if scope.strip())


class AuthPluginSettings(_EnvSettings):
    """Behavior of the auth plugin itself."""

    auth_type: str = _env(
        "AUTH_TYPE",
        default="azureb2c",
        description="Auth method name users authenticated by this plugin carry.",
    )
    loginflow: Optional[str] = _env(
        "AUTH_LOGINFLOW",
        default="authcode",
        description="Name of the registered login flow to use.",
    )
    guest_login_button: bool = _env("AUTH_GUEST_LOGIN_BUTTON", default=False)
    login_path: str = _env(
        "AUTH_LOGIN_PATH",
        default="/api/auth/login",
        description="Path the login-page IdP link points at.",
    )
    state_ttl_seconds: int = _env("AUTH_STATE_TTL", default=300)


class SecuritySettings(_EnvSettings):
    """Security-related configuration."""

    token_encryption_secret: Optional[str] = _env(
        "TOKEN_ENCRYPTION_SECRET",
        default=None,
        description=(
            "Secret used to derive the symmetric key for encrypting stored tokens."
        ),
    )


class AppSettings(_EnvSettings):
    """Root settings object for the application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    environment: str = _env("APP_ENV", default="development")
    log_level: str = _env("APP_LOG_LEVEL", default="INFO")
    db_path: str = _env("AUTH_DB_PATH", default="data/b2c_auth.sqlite3")
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    plugin: AuthPluginSettings = Field(default_factory=AuthPluginSettings)
    b2c: B2CSettings = Field(default_factory=B2CSettings)


class PruneJobSettings(_EnvSettings):
    """The subset of settings the scheduled state pruning job reads."""

    db_path: str = _env("AUTH_DB_PATH", default="data/b2c_auth.sqlite3")
    state_ttl_seconds: int = _env("AUTH_STATE_TTL", default=300)
    log_level: str = _env("APP_LOG_LEVEL", default="INFO")


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "AuthPluginSettings",
    "B2CSettings",
    "PruneJobSettings",
    "SecuritySettings",
    "get_settings",
]
