"""Schemas exchanged between the plugin, its login flows and the HTTP surface."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class IdpLink(BaseModel):
    """A login-page link to start authenticating with an identity provider."""

    url: str
    name: str
    icon: Optional[str] = None


class AuthenticatedUser(BaseModel):
    """The local account the host authenticated."""

    id: int = Field(..., description="Local user identifier.")
    username: str
    auth: str = Field(..., description="Auth method the account is bound to.")


class LoginResult(BaseModel):
    """Outcome of a completed handshake, handed back to the host to sign in."""

    username: str
    oidcuniqid: str
    userid: Optional[int] = None
    wantsurl: Optional[str] = None


class PasswordLoginRequest(BaseModel):
    username: str
    password: str


class DisconnectRequest(BaseModel):
    userid: int
    justremovetokens: bool = False
    donotremovetokens: bool = False
    redirect: Optional[str] = None
    selfurl: Optional[str] = None


class DisconnectResult(BaseModel):
    """What the host must do after the flow dropped the remote linkage."""

    userid: int
    tokens_removed: bool
    revert_auth: bool = Field(
        ..., description="Whether the host should move the account off this plugin."
    )
    redirect: Optional[str] = None


class AuthenticatedHookPayload(BaseModel):
    user: AuthenticatedUser
    username: str = Field(..., description="Username submitted at login.")


class PruneResult(BaseModel):
    deleted: int


__all__ = [
    "AuthenticatedHookPayload",
    "AuthenticatedUser",
    "DisconnectRequest",
    "DisconnectResult",
    "IdpLink",
    "LoginResult",
    "PasswordLoginRequest",
    "PruneResult",
]
