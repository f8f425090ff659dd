"""
FastAPI routes exposing the auth plugin hooks over HTTP.
"""

from __future__ import annotations

import logging
import sqlite3
from http import HTTPStatus
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse, RedirectResponse

from b2c_auth.clients import B2COAuthClient, SQLiteAuthStore
from b2c_auth.clients.b2c_oauth import OAuthTokenExchangeError, OAuthTokenNotFoundError
from b2c_auth.core.config import AppSettings
from b2c_auth.dependencies import (
    get_app_settings,
    get_auth_plugin,
    get_b2c_oauth_client,
    get_event_sink,
    get_sqlite_store,
    get_token_cipher_service,
)
from b2c_auth.loginflow import (
    IdentityConflictError,
    LoginFlowConfigurationError,
    LoginFlowError,
)
from b2c_auth.plugin import AuthPlugin
from b2c_auth.schemas import (
    AuthenticatedHookPayload,
    DisconnectRequest,
    DisconnectResult,
    IdpLink,
    PasswordLoginRequest,
    PruneResult,
)
from b2c_auth.services import EventSink, TokenCipherService

router = APIRouter()
logger = logging.getLogger(__name__)


def _wants_html(request: Request) -> bool:
    return "text/html" in request.headers.get("accept", "").lower()


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.get("/auth/idps", response_model=list[IdpLink])
async def list_identity_providers(
    plugin: Annotated[AuthPlugin, Depends(get_auth_plugin)],
    wantsurl: str | None = Query(
        default=None, description="Where to send the user after signing in."
    ),
) -> list[IdpLink]:
    """Links to render on the host's login page."""
    return plugin.loginpage_idp_list(wantsurl)


@router.get("/auth/login", status_code=HTTPStatus.OK)
async def start_login(
    request: Request,
    plugin: Annotated[AuthPlugin, Depends(get_auth_plugin)],
    wantsurl: str | None = Query(default=None),
    promptlogin: bool = Query(
        default=False, description="Force the IdP to ask for credentials again."
    ),
    redirect: bool = Query(
        default=False,
        description="When true, respond with a redirect to the B2C sign-in page.",
    ),
) -> Response:
    """Run the login-page hook with a single sign-on request."""
    form = {"sso": "1", "wantsurl": wantsurl, "promptlogin": promptlogin}
    authorization_url = plugin.loginpage_hook(form, None)
    if authorization_url is None:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="The configured login flow does not use a browser redirect.",
        )

    if redirect or _wants_html(request):
        return RedirectResponse(
            url=authorization_url, status_code=HTTPStatus.TEMPORARY_REDIRECT
        )
    return JSONResponse(content={"authorization_url": authorization_url})


@router.post("/auth/login", status_code=HTTPStatus.OK)
async def password_login(
    payload: PasswordLoginRequest,
    plugin: Annotated[AuthPlugin, Depends(get_auth_plugin)],
) -> dict:
    """Check credentials submitted through the host's own login form."""
    authenticated = await plugin.user_login(payload.username, payload.password)
    return {"authenticated": authenticated}


@router.get("/auth/redirect", status_code=HTTPStatus.OK)
async def handle_redirect(
    request: Request,
    settings: Annotated[AppSettings, Depends(get_app_settings)],
    store: Annotated[SQLiteAuthStore, Depends(get_sqlite_store)],
    oauth_client: Annotated[B2COAuthClient, Depends(get_b2c_oauth_client)],
    token_cipher: Annotated[TokenCipherService, Depends(get_token_cipher_service)],
    event_sink: Annotated[EventSink, Depends(get_event_sink)],
) -> Response:
    """Complete the handshake the IdP redirected back from."""
    params = dict(request.query_params)
    # The state record may pin the flow that started the handshake.
    state = store.get_state(params["state"]) if params.get("state") else None
    try:
        plugin = AuthPlugin(
            settings,
            store,
            oauth_client,
            token_cipher,
            event_sink=event_sink,
            state_additional_data=state.additionaldata if state else None,
        )
        result = await plugin.handle_redirect(params)
    except LoginFlowConfigurationError as exc:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=str(exc)) from exc
    except IdentityConflictError as exc:
        logger.warning("Refused login redirect: %s", exc)
        raise HTTPException(status_code=HTTPStatus.CONFLICT, detail=str(exc)) from exc
    except (LoginFlowError, OAuthTokenExchangeError) as exc:
        logger.warning("Rejected login redirect: %s", exc)
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Failed to complete the sign-in.",
        ) from exc

    if result.wantsurl and _wants_html(request):
        return RedirectResponse(
            url=result.wantsurl, status_code=HTTPStatus.TEMPORARY_REDIRECT
        )
    return JSONResponse(content=result.model_dump())


@router.post("/auth/disconnect", response_model=DisconnectResult)
async def disconnect(
    payload: DisconnectRequest,
    plugin: Annotated[AuthPlugin, Depends(get_auth_plugin)],
) -> DisconnectResult:
    try:
        return plugin.disconnect(
            justremovetokens=payload.justremovetokens,
            donotremovetokens=payload.donotremovetokens,
            redirect=payload.redirect,
            selfurl=payload.selfurl,
            userid=payload.userid,
        )
    except OAuthTokenNotFoundError as exc:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND,
            detail="No B2C account is connected for this user.",
        ) from exc


@router.get("/auth/userinfo/{username}", status_code=HTTPStatus.OK)
async def get_userinfo(
    username: str,
    plugin: Annotated[AuthPlugin, Depends(get_auth_plugin)],
) -> dict:
    userinfo = plugin.get_userinfo(username)
    if not userinfo:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND,
            detail="No profile information stored for this user.",
        )
    return userinfo


@router.post("/auth/authenticated", status_code=HTTPStatus.NO_CONTENT)
async def user_authenticated(
    payload: AuthenticatedHookPayload,
    plugin: Annotated[AuthPlugin, Depends(get_auth_plugin)],
) -> Response:
    """Post-authentication hook: reconcile the token record and log the login."""
    plugin.user_authenticated_hook(payload.user, payload.username)
    return Response(status_code=HTTPStatus.NO_CONTENT)


@router.post("/cron/prune-state", response_model=PruneResult)
async def prune_state(
    plugin: Annotated[AuthPlugin, Depends(get_auth_plugin)],
) -> PruneResult:
    """Scheduler entrypoint removing expired handshake state."""
    try:
        deleted = plugin.cron()
    except sqlite3.Error as exc:
        logger.exception("State pruning failed")
        raise HTTPException(
            status_code=HTTPStatus.SERVICE_UNAVAILABLE,
            detail="Auth state storage is unavailable.",
        ) from exc
    return PruneResult(deleted=deleted)
