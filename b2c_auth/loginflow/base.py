"""
Capability interface shared by every login flow.

A flow owns the protocol side of single sign-on: starting the handshake,
finishing it, and keeping the token table current. The plugin forwards the
host's hooks here.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional

import httpx

from b2c_auth.clients.b2c_oauth import (
    B2COAuthClient,
    OAuthTokenExchangeError,
    OAuthTokenNotFoundError,
    TokenResponse,
    decode_id_token,
)
from b2c_auth.clients.sqlite_store import SQLiteAuthStore
from b2c_auth.core.config import AppSettings
from b2c_auth.models.tokens import TokenRecord
from b2c_auth.schemas.auth import AuthenticatedUser, DisconnectResult, IdpLink, LoginResult
from b2c_auth.services.token_cipher import TokenCipherService

logger = logging.getLogger(__name__)


class LoginFlowError(Exception):
    """Raised when a flow cannot complete the requested operation."""


class StateValidationError(LoginFlowError):
    """Raised when a redirect carries an unknown, reused or expired state."""


class IdentityConflictError(LoginFlowError):
    """Raised when the account name is already linked to another IdP identity."""


class BaseLoginFlow:
    """Defaults for the flow contract; concrete flows override what they support."""

    name: str = ""

    def __init__(
        self,
        settings: AppSettings,
        store: SQLiteAuthStore,
        oauth_client: B2COAuthClient,
        token_cipher: TokenCipherService,
    ) -> None:
        self._settings = settings
        self._store = store
        self._oauth = oauth_client
        self._cipher = token_cipher

    @property
    def config(self) -> AppSettings:
        return self._settings

    def loginpage_idp_list(self, wants_url: Optional[str]) -> List[IdpLink]:
        return []

    def set_httpclient(self, http_client: httpx.AsyncClient) -> None:
        self._oauth.set_http_client(http_client)

    def loginpage_hook(
        self, form: Mapping[str, Any], user: Optional[AuthenticatedUser]
    ) -> Optional[str]:
        """Return a URL to redirect the browser to, or ``None`` to fall through."""
        return None

    async def handle_redirect(self, params: Mapping[str, str]) -> LoginResult:
        raise LoginFlowError(f"Login flow {self.name!r} does not accept redirects.")

    async def user_login(self, username: str, password: Optional[str] = None) -> bool:
        return False

    def disconnect(
        self,
        justremovetokens: bool = False,
        donotremovetokens: bool = False,
        redirect: Optional[str] = None,
        selfurl: Optional[str] = None,
        userid: Optional[int] = None,
    ) -> DisconnectResult:
        """Drop the remote linkage of ``userid``.

        ``justremovetokens`` only forgets the stored tokens and leaves the
        account on this auth method. ``donotremovetokens`` keeps the tokens so
        the account becomes a linked one while the host moves it to another
        auth method.
        """
        if userid is None:
            raise ValueError("A user id is required to disconnect.")
        record = self._store.get_token(userid=userid)
        if record is None:
            raise OAuthTokenNotFoundError(f"No token stored for user {userid}.")

        tokens_removed = justremovetokens or not donotremovetokens
        if tokens_removed:
            self._store.delete_token(record.id)
        logger.info(
            "Disconnected user %s (tokens removed: %s)", userid, tokens_removed
        )
        return DisconnectResult(
            userid=userid,
            tokens_removed=tokens_removed,
            revert_auth=not justremovetokens,
            redirect=redirect or selfurl,
        )

    def get_userinfo(self, username: str) -> Dict[str, Any]:
        """Map the stored ID token claims to host profile fields."""
        record = self._store.get_token(username=username.lower())
        idtoken = self._cipher.decrypt_optional(record.idtoken) if record else None
        if not idtoken:
            return {}
        claims = decode_id_token(idtoken)
        emails = claims.get("emails") or []
        userinfo = {
            "idnumber": claims.get("oid") or claims.get("sub"),
            "firstname": claims.get("given_name"),
            "lastname": claims.get("family_name"),
            "email": emails[0] if emails else claims.get("email"),
        }
        return {key: value for key, value in userinfo.items() if value}

    def _store_token(
        self, token: TokenResponse, username: Optional[str] = None
    ) -> TokenRecord:
        """Create or refresh the token record for the identity in ``token``."""
        claims = token.id_token_claims()
        oidcuniqid = claims.get("oid") or claims.get("sub")
        if not oidcuniqid:
            raise OAuthTokenExchangeError("ID token carries no subject identifier.")
        emails = claims.get("emails") or []
        oidcusername = (
            emails[0] if emails else claims.get("email") or claims.get("name") or oidcuniqid
        )

        now = datetime.now(timezone.utc)
        expiry = now + timedelta(seconds=token.expires_in)
        material = {
            "token": self._cipher.encrypt(token.access_token),
            "refreshtoken": self._cipher.encrypt_optional(token.refresh_token),
            "idtoken": self._cipher.encrypt_optional(token.id_token),
            "scope": token.scope,
            "tokenresource": token.resource,
            "expiry": expiry,
        }

        existing = self._store.get_token(oidcuniqid=oidcuniqid)
        if existing is not None:
            self._store.update_token(existing.id, oidcusername=oidcusername, **material)
            return existing.model_copy(
                update={"oidcusername": oidcusername, "updated_at": now, **material}
            )

        record = TokenRecord(
            username=(username or oidcusername).lower(),
            oidcuniqid=oidcuniqid,
            oidcusername=oidcusername,
            created_at=now,
            updated_at=now,
            **material,
        )
        try:
            record = self._store.insert_token(record)
        except sqlite3.IntegrityError as exc:
            raise IdentityConflictError(
                f"Account {record.username!r} is already linked to another identity."
            ) from exc
        logger.info("Stored new token record for %s", record.username)
        return record


__all__ = [
    "BaseLoginFlow",
    "IdentityConflictError",
    "LoginFlowError",
    "StateValidationError",
]
