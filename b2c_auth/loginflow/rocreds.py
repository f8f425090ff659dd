"""Resource owner password credentials login flow."""

from __future__ import annotations

import logging
from typing import Optional

from b2c_auth.clients.b2c_oauth import OAuthTokenExchangeError
from b2c_auth.loginflow.base import BaseLoginFlow, IdentityConflictError
from b2c_auth.loginflow.registry import register_loginflow

logger = logging.getLogger(__name__)


@register_loginflow("rocreds")
class ROCredsLoginFlow(BaseLoginFlow):
    """Check credentials typed into the host's own login form against B2C."""

    async def user_login(self, username: str, password: Optional[str] = None) -> bool:
        if not password:
            return False
        try:
            token = await self._oauth.password_grant(username, password)
            self._store_token(token, username=username)
        except OAuthTokenExchangeError as exc:
            logger.info("Password login rejected for %s: %s", username, exc)
            return False
        except IdentityConflictError as exc:
            logger.warning("Password login refused for %s: %s", username, exc)
            return False
        return True


__all__ = ["ROCredsLoginFlow"]
