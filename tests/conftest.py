"""Pytest configuration shared across the suite."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

import _bootstrap  # noqa: F401

import jwt
import pytest

from b2c_auth.clients.sqlite_store import SQLiteAuthStore
from b2c_auth.core.config import AppSettings
from b2c_auth.models.tokens import TokenRecord
from b2c_auth.services.token_cipher import TokenCipherService

ID_TOKEN_SIGNING_KEY = "unit-test-signing-key-0123456789abcdef"


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture
def settings(tmp_path) -> AppSettings:
    return AppSettings(AUTH_DB_PATH=str(tmp_path / "auth.sqlite3"))


@pytest.fixture
def store(settings: AppSettings) -> SQLiteAuthStore:
    return SQLiteAuthStore(settings.db_path)


@pytest.fixture
def cipher() -> TokenCipherService:
    return TokenCipherService(secret="unit-test-secret")


@pytest.fixture
def id_token_factory() -> Callable[..., str]:
    def factory(**claims: Any) -> str:
        return jwt.encode(claims, ID_TOKEN_SIGNING_KEY, algorithm="HS256")

    return factory


@pytest.fixture
def token_record_factory() -> Callable[..., TokenRecord]:
    def factory(
        username: str,
        oidcuniqid: str,
        userid: Optional[int] = None,
        token: str = "opaque-token",
    ) -> TokenRecord:
        return TokenRecord(
            userid=userid,
            username=username,
            oidcuniqid=oidcuniqid,
            token=token,
            expiry=datetime.now(timezone.utc) + timedelta(hours=1),
        )

    return factory
