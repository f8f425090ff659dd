"""
Domain models for the persisted token and handshake state records.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenRecord(BaseModel):
    """Links a local user account to the remote identity and its tokens.

    ``userid`` stays empty until the host links the record to a local account
    in the post-authentication hook. Token material is stored encrypted.
    """

    id: Optional[int] = None
    userid: Optional[int] = None
    username: str
    oidcuniqid: str = Field(..., description="Subject identifier issued by the IdP.")
    oidcusername: Optional[str] = None
    token: str
    refreshtoken: Optional[str] = None
    idtoken: Optional[str] = None
    scope: Optional[str] = None
    tokenresource: Optional[str] = None
    expiry: datetime
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class StateRecord(BaseModel):
    """Correlation record for an in-flight authorization handshake."""

    id: Optional[int] = None
    state: str
    nonce: str
    timecreated: datetime = Field(default_factory=_utcnow)
    additionaldata: Dict[str, Any] = Field(default_factory=dict)


__all__ = ["StateRecord", "TokenRecord"]
