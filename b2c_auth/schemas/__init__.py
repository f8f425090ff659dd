"""Pydantic schemas shared across the plugin and API layers."""

from .auth import (
    AuthenticatedHookPayload,
    AuthenticatedUser,
    DisconnectRequest,
    DisconnectResult,
    IdpLink,
    LoginResult,
    PasswordLoginRequest,
    PruneResult,
)

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
