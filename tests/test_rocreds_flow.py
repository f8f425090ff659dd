from __future__ import annotations

from urllib.parse import parse_qs

import httpx
import pytest

from b2c_auth.clients.b2c_oauth import B2COAuthClient
from b2c_auth.loginflow import LoginFlowError, ROCredsLoginFlow


class TokenEndpoint:
    def __init__(self, payload: dict, status_code: int = 200) -> None:
        self.payload = payload
        self.status_code = status_code
        self.requests: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(parse_qs(request.content.decode("utf-8")))
        return httpx.Response(self.status_code, json=self.payload)


@pytest.fixture
def flow(settings, store, cipher) -> ROCredsLoginFlow:
    return ROCredsLoginFlow(settings, store, B2COAuthClient(settings.b2c), cipher)


@pytest.mark.asyncio
async def test_password_login_stores_token_under_login_name(
    flow: ROCredsLoginFlow, store, cipher, id_token_factory
) -> None:
    endpoint = TokenEndpoint(
        {
            "access_token": "access",
            "expires_in": 3600,
            "id_token": id_token_factory(sub="remote-ada", emails=["ada@example.com"]),
        }
    )
    flow.set_httpclient(httpx.AsyncClient(transport=httpx.MockTransport(endpoint)))

    assert await flow.user_login("Ada", "correct horse") is True

    assert endpoint.requests[0]["grant_type"] == ["password"]
    assert endpoint.requests[0]["username"] == ["Ada"]
    record = store.get_token(username="ada")
    assert record.oidcuniqid == "remote-ada"
    assert cipher.decrypt(record.token) == "access"


@pytest.mark.asyncio
async def test_rejected_credentials_return_false(flow: ROCredsLoginFlow, store) -> None:
    endpoint = TokenEndpoint({"error": "invalid_grant"}, status_code=400)
    flow.set_httpclient(httpx.AsyncClient(transport=httpx.MockTransport(endpoint)))

    assert await flow.user_login("ada", "wrong") is False
    assert store.get_token(username="ada") is None


@pytest.mark.asyncio
async def test_empty_password_skips_token_endpoint(flow: ROCredsLoginFlow) -> None:
    endpoint = TokenEndpoint({})
    flow.set_httpclient(httpx.AsyncClient(transport=httpx.MockTransport(endpoint)))

    assert await flow.user_login("ada", "") is False
    assert endpoint.requests == []


@pytest.mark.asyncio
async def test_no_idp_links_and_no_redirects(flow: ROCredsLoginFlow) -> None:
    assert flow.loginpage_idp_list("/my/") == []
    assert flow.loginpage_hook({"sso": "1"}, None) is None
    with pytest.raises(LoginFlowError):
        await flow.handle_redirect({"state": "s", "code": "c"})


@pytest.mark.asyncio
async def test_identity_conflict_fails_the_login(
    flow: ROCredsLoginFlow, store, token_record_factory, id_token_factory
) -> None:
    store.insert_token(token_record_factory("ada", "old-sub", userid=4))
    endpoint = TokenEndpoint(
        {
            "access_token": "access",
            "expires_in": 3600,
            "id_token": id_token_factory(sub="new-sub"),
        }
    )
    flow.set_httpclient(httpx.AsyncClient(transport=httpx.MockTransport(endpoint)))

    assert await flow.user_login("Ada", "pw") is False
    assert store.get_token(username="ada").oidcuniqid == "old-sub"
