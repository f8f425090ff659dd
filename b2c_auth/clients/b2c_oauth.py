"""
Azure AD B2C OAuth utilities.

These helpers build the authorization redirect and talk to the tenant's token
endpoint for the authorization-code and password grants.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx
import jwt

from b2c_auth.core.config import B2CSettings


class OAuthTokenExchangeError(Exception):
    """Raised when the token endpoint returns an error."""


class OAuthTokenNotFoundError(Exception):
    """Raised when no persisted token record is available for a user."""


def decode_id_token(id_token: str) -> Dict[str, Any]:
    """Return the claims of an ID token without verifying its signature."""
    try:
        return jwt.decode(id_token, options={"verify_signature": False})
    except jwt.PyJWTError as exc:
        raise OAuthTokenExchangeError("Malformed ID token returned by IdP.") from exc


@dataclass(slots=True)
class TokenResponse:
    """Token endpoint payload reduced to the fields the flows persist."""

    access_token: str
    expires_in: int
    refresh_token: Optional[str]
    id_token: Optional[str]
    scope: Optional[str]
    resource: Optional[str]

    def id_token_claims(self) -> Dict[str, Any]:
        """Return the unverified claims carried in the ID token."""
        if not self.id_token:
            raise OAuthTokenExchangeError("Token response did not include an ID token.")
        return decode_id_token(self.id_token)


class B2COAuthClient:
    """Build B2C authorization URLs and call the token endpoint."""

    def __init__(
        self,
        settings: B2CSettings,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._settings = settings
        self._http_client = http_client

    def set_http_client(self, http_client: httpx.AsyncClient) -> None:
        """Route token requests through a caller-owned client."""
        self._http_client = http_client

    def build_authorization_url(self, state: str, nonce: str, **extra: str) -> str:
        """Construct the B2C sign-in URL."""
        params = {
            "client_id": self._settings.client_id,
            "redirect_uri": str(self._settings.redirect_uri),
            "response_type": "code",
            "response_mode": "query",
            "scope": " ".join(self._settings.scopes),
            "state": state,
            "nonce": nonce,
            **extra,
        }
        return f"{self._settings.authorize_url}?{urlencode(params)}"

    async def exchange_authorization_code(self, code: str) -> TokenResponse:
        """Exchange an authorization code for tokens."""
        payload = {
            "code": code,
            "client_id": self._settings.client_id,
            "client_secret": self._settings.client_secret,
            "redirect_uri": str(self._settings.redirect_uri),
            "scope": " ".join(self._settings.scopes),
            "grant_type": "authorization_code",
        }
        return await self._request_token(payload)

    async def password_grant(self, username: str, password: str) -> TokenResponse:
        """Obtain tokens with resource owner password credentials."""
        payload = {
            "username": username,
            "password": password,
            "client_id": self._settings.client_id,
            "client_secret": self._settings.client_secret,
            "scope": " ".join(self._settings.scopes),
            "grant_type": "password",
        }
        return await self._request_token(payload)

    async def _request_token(self, payload: Dict[str, str]) -> TokenResponse:
        token_url = str(self._settings.token_url)
        if self._http_client is not None:
            response = await self._http_client.post(token_url, data=payload)
        else:
            async with httpx.AsyncClient(timeout=10.0) as client:
                response = await client.post(token_url, data=payload)

        if response.status_code != httpx.codes.OK:
            raise OAuthTokenExchangeError(response.text)

        token_payload = response.json()
        access_token = token_payload.get("access_token")
        expires_in = token_payload.get("expires_in")

        if not access_token or not expires_in:
            raise OAuthTokenExchangeError("Incomplete token payload returned from B2C.")

        return TokenResponse(
            access_token=access_token,
            expires_in=int(expires_in),
            refresh_token=token_payload.get("refresh_token"),
            id_token=token_payload.get("id_token"),
            scope=token_payload.get("scope"),
            resource=token_payload.get("resource"),
        )


__all__ = [
    "B2COAuthClient",
    "OAuthTokenExchangeError",
    "OAuthTokenNotFoundError",
    "TokenResponse",
    "decode_id_token",
]
