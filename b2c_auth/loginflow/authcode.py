"""Authorization-code login flow."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, List, Mapping, Optional
from urllib.parse import urlencode, urlsplit

from b2c_auth.clients.b2c_oauth import OAuthTokenExchangeError
from b2c_auth.loginflow.base import BaseLoginFlow, StateValidationError
from b2c_auth.loginflow.registry import register_loginflow
from b2c_auth.models.tokens import StateRecord
from b2c_auth.schemas.auth import AuthenticatedUser, IdpLink, LoginResult

logger = logging.getLogger(__name__)


def local_wants_url(wants_url: Optional[str], site_url: str) -> Optional[str]:
    """Return ``wants_url`` when it points back at this site, else ``None``.

    Relative paths are accepted, as are absolute http(s) URLs on the host of
    ``site_url``. Scheme-relative and backslash forms browsers treat as
    off-site are rejected.
    """
    if not wants_url:
        return None
    parts = urlsplit(wants_url)
    if not parts.scheme and not parts.netloc:
        if wants_url.startswith("/") and wants_url[1:2] not in ("/", "\\"):
            return wants_url
        return None
    site = urlsplit(site_url)
    if parts.scheme in ("http", "https") and parts.netloc.lower() == site.netloc.lower():
        return wants_url
    return None


@register_loginflow("authcode")
class AuthCodeLoginFlow(BaseLoginFlow):
    """Browser redirect to the B2C sign-in page, then code exchange on return."""

    def loginpage_idp_list(self, wants_url: Optional[str]) -> List[IdpLink]:
        url = self._settings.plugin.login_path
        if wants_url:
            url = f"{url}?{urlencode({'wantsurl': wants_url})}"
        return [
            IdpLink(
                url=url,
                name=self._settings.b2c.idp_name,
                icon=self._settings.b2c.idp_icon,
            )
        ]

    def loginpage_hook(
        self, form: Mapping[str, Any], user: Optional[AuthenticatedUser]
    ) -> Optional[str]:
        """Start the handshake when the login form asks for single sign-on."""
        if user is not None or not form.get("sso"):
            return None
        return self.start_login(
            wants_url=form.get("wantsurl"),
            forceflow=form.get("forceflow"),
            promptlogin=bool(form.get("promptlogin")),
        )

    def start_login(
        self,
        wants_url: Optional[str] = None,
        forceflow: Optional[str] = None,
        promptlogin: bool = False,
    ) -> str:
        """Persist a fresh state record and return the B2C authorization URL."""
        additionaldata = {}
        safe_url = self._local_wants_url(wants_url)
        if safe_url:
            additionaldata["wantsurl"] = safe_url
        if forceflow:
            additionaldata["forceflow"] = forceflow
        state = self._store.insert_state(
            StateRecord(
                state=secrets.token_urlsafe(24),
                nonce=secrets.token_urlsafe(24),
                additionaldata=additionaldata,
            )
        )
        extra = {"prompt": "login"} if promptlogin else {}
        return self._oauth.build_authorization_url(
            state=state.state, nonce=state.nonce, **extra
        )

    def _local_wants_url(self, wants_url: Optional[str]) -> Optional[str]:
        safe_url = local_wants_url(wants_url, str(self._settings.b2c.redirect_uri))
        if wants_url and safe_url is None:
            logger.warning("Ignoring off-site wantsurl %s", wants_url)
        return safe_url

    async def handle_redirect(self, params: Mapping[str, str]) -> LoginResult:
        """Consume the state record, exchange the code and store the tokens."""
        if params.get("error"):
            raise OAuthTokenExchangeError(
                params.get("error_description") or params["error"]
            )
        state_value = params.get("state")
        code = params.get("code")
        if not state_value or not code:
            raise StateValidationError("Redirect is missing the state or code parameter.")

        state = self._store.get_state(state_value)
        if state is None:
            raise StateValidationError("Unknown or already used state.")
        # Single use, whatever the outcome below.
        self._store.delete_state(state.id)

        ttl = timedelta(seconds=self._settings.plugin.state_ttl_seconds)
        if state.timecreated < datetime.now(timezone.utc) - ttl:
            raise StateValidationError("State has expired; restart the login.")

        token = await self._oauth.exchange_authorization_code(code)
        claims = token.id_token_claims()
        if claims.get("nonce") != state.nonce:
            raise StateValidationError("ID token nonce does not match the login state.")

        record = self._store_token(token)
        logger.info("Completed authorization-code login for %s", record.username)
        return LoginResult(
            username=record.username,
            oidcuniqid=record.oidcuniqid,
            userid=record.userid,
            wantsurl=self._local_wants_url(state.additionaldata.get("wantsurl")),
        )


__all__ = ["AuthCodeLoginFlow", "local_wants_url"]
