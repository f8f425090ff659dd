"""
Auth plugin binding the B2C login flows into the host's authentication hooks.

The host calls into :class:`AuthPlugin` from its login page, redirect
endpoint, post-authentication hook and scheduler. Protocol work is delegated
to the selected login flow; the plugin itself keeps the token table aligned
with the host's accounts and clears out stale handshake state.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

import httpx

from b2c_auth.clients.b2c_oauth import B2COAuthClient
from b2c_auth.clients.sqlite_store import SQLiteAuthStore
from b2c_auth.core.config import AppSettings
from b2c_auth.loginflow import DEFAULT_LOGINFLOW, BaseLoginFlow, get_loginflow_class
from b2c_auth.schemas.auth import AuthenticatedUser, DisconnectResult, IdpLink, LoginResult
from b2c_auth.services.events import EventSink, LoggingEventSink, UserLoggedInEvent
from b2c_auth.services.state_pruner import StateRecordPruner
from b2c_auth.services.token_cipher import TokenCipherService
from b2c_auth.services.token_reconciler import TokenReconciler

logger = logging.getLogger(__name__)


def select_loginflow(
    settings: AppSettings,
    force_loginflow: Optional[str] = None,
    state_additional_data: Optional[Mapping[str, Any]] = None,
) -> str:
    """Pick the flow name: in-flight state, then caller override, then config."""
    if state_additional_data and state_additional_data.get("forceflow"):
        return state_additional_data["forceflow"]
    if force_loginflow and isinstance(force_loginflow, str):
        return force_loginflow
    if settings.plugin.loginflow:
        return settings.plugin.loginflow
    return DEFAULT_LOGINFLOW


class AuthPlugin:
    """Host-facing plugin object; one per request or job run."""

    def __init__(
        self,
        settings: AppSettings,
        store: SQLiteAuthStore,
        oauth_client: B2COAuthClient,
        token_cipher: TokenCipherService,
        event_sink: Optional[EventSink] = None,
        force_loginflow: Optional[str] = None,
        state_additional_data: Optional[Mapping[str, Any]] = None,
    ) -> None:
        flow_name = select_loginflow(settings, force_loginflow, state_additional_data)
        # Raises LoginFlowConfigurationError for unknown names.
        flow_class = get_loginflow_class(flow_name)
        self.loginflow: BaseLoginFlow = flow_class(
            settings, store, oauth_client, token_cipher
        )
        self.config = self.loginflow.config
        self.authtype = settings.plugin.auth_type
        self._store = store
        self._events = event_sink or LoggingEventSink()
        self._reconciler = TokenReconciler(store)
        self._pruner = StateRecordPruner(store, settings.plugin.state_ttl_seconds)

    def loginpage_idp_list(self, wants_url: Optional[str]) -> List[IdpLink]:
        return self.loginflow.loginpage_idp_list(wants_url)

    def set_httpclient(self, http_client: httpx.AsyncClient) -> None:
        self.loginflow.set_httpclient(http_client)

    def loginpage_hook(
        self, form: Mapping[str, Any], user: Optional[AuthenticatedUser] = None
    ) -> Optional[str]:
        return self.loginflow.loginpage_hook(form, user)

    async def handle_redirect(self, params: Mapping[str, str]) -> LoginResult:
        return await self.loginflow.handle_redirect(params)

    def disconnect(
        self,
        justremovetokens: bool = False,
        donotremovetokens: bool = False,
        redirect: Optional[str] = None,
        selfurl: Optional[str] = None,
        userid: Optional[int] = None,
    ) -> DisconnectResult:
        return self.loginflow.disconnect(
            justremovetokens, donotremovetokens, redirect, selfurl, userid
        )

    async def user_login(self, username: str, password: Optional[str] = None) -> bool:
        """Check credentials; the guest button's fixed credentials never match."""
        if (
            self.config.plugin.guest_login_button
            and username == "guest"
            and password == "guest"
        ):
            return False
        return await self.loginflow.user_login(username, password)

    def get_userinfo(self, username: str) -> Dict[str, Any]:
        return self.loginflow.get_userinfo(username)

    def is_synchronised_with_external(self) -> bool:
        return True

    def is_internal(self) -> bool:
        return False

    def user_authenticated_hook(
        self,
        user: Optional[AuthenticatedUser],
        username: str,
        password: Optional[str] = None,
    ) -> None:
        """Align the token record with ``user`` and emit a login event.

        Only users bound to this plugin's auth type are considered.
        """
        if not user or user.auth != self.authtype:
            return
        self._reconciler.reconcile(
            userid=user.id, username=user.username, login_username=username
        )
        self._events.trigger(
            UserLoggedInEvent.create(userid=user.id, username=user.username)
        )

    def cron(self) -> int:
        """Prune expired handshake state; storage errors reach the scheduler."""
        return self._pruner.prune()


__all__ = ["AuthPlugin", "select_loginflow"]
