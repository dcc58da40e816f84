"""Tests for AsyncClient's authentication loop and error mapping."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable

import httpx
import pytest

from restauth.auth.base import AuthHeader
from restauth.auth.handler import AuthenticationChallengeHandler
from restauth.auth.manager import create_default_manager
from restauth.client import AsyncClient, RestRequest
from restauth.exceptions import AuthError, ConnectionError_, NotFoundError, ServerError
from restauth.models import AuthConfig, ChallengeHeader, Credentials, OAuth2Config, Profile, RequestConfig
from restauth.oauth2 import (
    OAuth2AuthorizationHeaderAuthenticator,
    OAuth2CredentialState,
    OAuth2TokenManager,
)
from restauth.plugins.basic import HttpBasicAuthenticator

BASE_URL = "https://api.example.com"


def _make_profile(**kwargs) -> Profile:
    kwargs.setdefault("base_url", BASE_URL)
    return Profile(name="test", **kwargs)


def _api(handler: Callable[[httpx.Request], httpx.Response]) -> tuple[httpx.MockTransport, list]:
    """Wrap *handler* in a transport that records every request."""
    seen: list[httpx.Request] = []

    def record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    return httpx.MockTransport(record), seen


def _oauth_handler(endpoint, config: OAuth2Config, **state) -> tuple[AuthenticationChallengeHandler, OAuth2TokenManager]:
    manager = OAuth2TokenManager(config, endpoint.client(), state=OAuth2CredentialState(**state))
    handler = AuthenticationChallengeHandler()
    handler.register("Bearer", OAuth2AuthorizationHeaderAuthenticator(manager), priority=10)
    return handler, manager


def _expires_soon() -> datetime:
    return datetime.now(timezone.utc) + timedelta(hours=1)


# ---------------------------------------------------------------------------
# Pre-authentication and challenges
# ---------------------------------------------------------------------------


class TestAuthenticationLoop:
    @pytest.mark.asyncio
    async def test_unauthenticated_request(self, quiet_output) -> None:
        transport, seen = _api(lambda r: httpx.Response(200, json={"ok": True}))

        async with AsyncClient(_make_profile(), transport=transport) as client:
            response = await client.get("/ping", params={"a": "1"})

        assert response.json() == {"ok": True}
        assert str(seen[0].url) == f"{BASE_URL}/ping?a=1"
        assert "Authorization" not in seen[0].headers

    @pytest.mark.asyncio
    async def test_token_attached_before_first_send(self, quiet_output, oauth2_config, token_endpoint) -> None:
        handler, _ = _oauth_handler(token_endpoint, oauth2_config)
        transport, seen = _api(lambda r: httpx.Response(200, json={}))

        async with AsyncClient(_make_profile(), authenticator=handler, transport=transport) as client:
            await client.get("/me")

        assert seen[0].headers["Authorization"] == "Bearer access-1"

    @pytest.mark.asyncio
    async def test_rejected_token_is_refreshed_and_resent(
        self, quiet_output, oauth2_config, token_endpoint
    ) -> None:
        handler, manager = _oauth_handler(
            token_endpoint,
            oauth2_config,
            access_token="stale",
            refresh_token="r0",
            token_type="Bearer",
            expires_at=_expires_soon(),
        )

        def api(request: httpx.Request) -> httpx.Response:
            if request.headers["Authorization"] == "Bearer stale":
                return httpx.Response(401, headers={"WWW-Authenticate": 'Bearer error="invalid_token"'})
            return httpx.Response(200, json={"id": 1})

        transport, seen = _api(api)

        async with AsyncClient(_make_profile(), authenticator=handler, transport=transport) as client:
            response = await client.get("/me")

        assert response.status_code == 200
        assert [r.headers["Authorization"] for r in seen] == ["Bearer stale", "Bearer access-1"]
        assert token_endpoint.count == 1
        assert manager.refresh_token == "refresh-1"

    @pytest.mark.asyncio
    async def test_challenge_without_refresh_token_is_not_retried(
        self, quiet_output, oauth2_config, token_endpoint
    ) -> None:
        handler, manager = _oauth_handler(
            token_endpoint, oauth2_config, access_token="stale", expires_at=_expires_soon()
        )
        transport, seen = _api(lambda r: httpx.Response(401, headers={"WWW-Authenticate": "Bearer"}))

        async with AsyncClient(_make_profile(), authenticator=handler, transport=transport) as client:
            with pytest.raises(AuthError, match="401"):
                await client.get("/me")

        assert len(seen) == 1
        assert token_endpoint.count == 0
        assert manager.access_token == "stale"

    @pytest.mark.asyncio
    async def test_retry_budget_is_bounded(self, quiet_output, oauth2_config, token_endpoint) -> None:
        handler, _ = _oauth_handler(
            token_endpoint, oauth2_config, access_token="a", refresh_token="r", expires_at=_expires_soon()
        )
        transport, seen = _api(lambda r: httpx.Response(401, headers={"WWW-Authenticate": "Bearer"}))
        profile = _make_profile(request=RequestConfig(max_auth_retries=2))

        async with AsyncClient(profile, authenticator=handler, transport=transport) as client:
            with pytest.raises(AuthError):
                await client.get("/me")

        assert len(seen) == 3
        assert token_endpoint.count == 2

    @pytest.mark.asyncio
    async def test_zero_retry_budget(self, quiet_output, oauth2_config, token_endpoint) -> None:
        handler, _ = _oauth_handler(
            token_endpoint, oauth2_config, access_token="a", refresh_token="r", expires_at=_expires_soon()
        )
        transport, seen = _api(lambda r: httpx.Response(401, headers={"WWW-Authenticate": "Bearer"}))
        profile = _make_profile(request=RequestConfig(max_auth_retries=0))

        async with AsyncClient(profile, authenticator=handler, transport=transport) as client:
            with pytest.raises(AuthError):
                await client.get("/me")

        assert len(seen) == 1
        assert token_endpoint.count == 0

    @pytest.mark.asyncio
    async def test_basic_answers_challenge_with_client_credentials(self, quiet_output) -> None:
        handler = AuthenticationChallengeHandler()
        handler.register("Basic", HttpBasicAuthenticator(), priority=1)

        def api(request: httpx.Request) -> httpx.Response:
            if "Authorization" not in request.headers:
                return httpx.Response(401, headers={"WWW-Authenticate": 'Basic realm="api"'})
            return httpx.Response(200, json={})

        transport, seen = _api(api)
        credentials = Credentials(username="alice", password="secret")

        async with AsyncClient(
            _make_profile(), authenticator=handler, credentials=credentials, transport=transport
        ) as client:
            await client.get("/private")

        assert len(seen) == 2
        assert seen[1].headers["Authorization"] == "Basic YWxpY2U6c2VjcmV0"

    @pytest.mark.asyncio
    async def test_proxy_challenge(self, quiet_output) -> None:
        handler = AuthenticationChallengeHandler(AuthHeader.PROXY_AUTHENTICATE)
        handler.register(
            "Basic",
            HttpBasicAuthenticator(Credentials(username="u", password="p"), header="Proxy-Authorization"),
        )

        def proxy(request: httpx.Request) -> httpx.Response:
            if request.headers.get("Proxy-Authorization") != "Basic dTpw":
                return httpx.Response(407, headers={"Proxy-Authenticate": "Basic"})
            return httpx.Response(200)

        transport, seen = _api(proxy)

        async with AsyncClient(_make_profile(), authenticator=handler, transport=transport) as client:
            response = await client.get("/")

        assert response.status_code == 200
        assert len(seen) == 2
        assert "Authorization" not in seen[1].headers

    @pytest.mark.asyncio
    async def test_proxy_profile_answers_with_proxy_authorization(self, quiet_output, monkeypatch) -> None:
        monkeypatch.setenv("TEST_PROXY_USER", "u:p")
        profile = _make_profile(
            challenge_header=ChallengeHeader.PROXY_AUTHENTICATE,
            auth=[AuthConfig(type="basic", source="env:TEST_PROXY_USER")],
        )
        handler = create_default_manager().build_handler(profile)

        def proxy(request: httpx.Request) -> httpx.Response:
            if request.headers.get("Proxy-Authorization") != "Basic dTpw":
                return httpx.Response(407, headers={"Proxy-Authenticate": 'Basic realm="proxy"'})
            return httpx.Response(200, json={})

        transport, seen = _api(proxy)

        async with AsyncClient(profile, authenticator=handler, transport=transport) as client:
            response = await client.get("/")

        assert response.status_code == 200
        assert len(seen) == 2

    @pytest.mark.asyncio
    async def test_forbidden_is_never_a_challenge(self, quiet_output) -> None:
        handler = AuthenticationChallengeHandler()
        handler.register("Basic", HttpBasicAuthenticator(Credentials(username="u", password="p")))
        transport, seen = _api(lambda r: httpx.Response(403, headers={"WWW-Authenticate": "Basic"}))

        async with AsyncClient(_make_profile(), authenticator=handler, transport=transport) as client:
            with pytest.raises(AuthError, match="403"):
                await client.get("/")

        assert len(seen) == 1


# ---------------------------------------------------------------------------
# Bodies
# ---------------------------------------------------------------------------


class TestBodies:
    @pytest.mark.asyncio
    async def test_json_body(self, quiet_output) -> None:
        transport, seen = _api(lambda r: httpx.Response(201, json={}))

        async with AsyncClient(_make_profile(), transport=transport) as client:
            await client.post("/items", json_body={"name": "x"})

        assert seen[0].headers["content-type"] == "application/json"
        assert b'"name"' in seen[0].content

    @pytest.mark.asyncio
    async def test_form_body(self, quiet_output) -> None:
        transport, seen = _api(lambda r: httpx.Response(200))

        async with AsyncClient(_make_profile(), transport=transport) as client:
            await client.post("/items", data={"name": "x"})

        assert seen[0].headers["content-type"] == "application/x-www-form-urlencoded"
        assert seen[0].content == b"name=x"


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------


class TestErrorMapping:
    @pytest.mark.parametrize(
        ("status", "exc_type"),
        [
            (401, AuthError),
            (403, AuthError),
            (407, AuthError),
            (404, NotFoundError),
            (409, ServerError),
            (500, ServerError),
        ],
    )
    @pytest.mark.asyncio
    async def test_status_maps_to_exception(self, quiet_output, status, exc_type) -> None:
        transport, _ = _api(lambda r: httpx.Response(status, json={"message": "nope"}))

        async with AsyncClient(_make_profile(), transport=transport) as client:
            with pytest.raises(exc_type, match=f"HTTP {status}: nope"):
                await client.get("/")

    @pytest.mark.asyncio
    async def test_plain_text_error_body(self, quiet_output) -> None:
        transport, _ = _api(lambda r: httpx.Response(502, text="bad gateway"))

        async with AsyncClient(_make_profile(), transport=transport) as client:
            with pytest.raises(ServerError, match="bad gateway"):
                await client.get("/")

    @pytest.mark.asyncio
    async def test_transport_error(self, quiet_output) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with AsyncClient(_make_profile(), transport=httpx.MockTransport(refuse)) as client:
            with pytest.raises(ConnectionError_, match="refused"):
                await client.get("/")

    @pytest.mark.asyncio
    async def test_send_returns_error_responses_unmapped(self, quiet_output) -> None:
        transport, _ = _api(lambda r: httpx.Response(500))

        async with AsyncClient(_make_profile(), transport=transport) as client:
            response = await client.send(RestRequest("GET", "/"))

        assert response.status_code == 500

    def test_http_client_requires_context(self) -> None:
        with pytest.raises(AssertionError):
            AsyncClient(_make_profile()).http_client


# ---------------------------------------------------------------------------
# Dry run
# ---------------------------------------------------------------------------


class TestDryRun:
    @pytest.mark.asyncio
    async def test_dry_run_sends_nothing(self, quiet_output, oauth2_config, token_endpoint) -> None:
        handler, _ = _oauth_handler(
            token_endpoint, oauth2_config, access_token="tok", token_type="Bearer", expires_at=_expires_soon()
        )
        transport, seen = _api(lambda r: httpx.Response(500))

        async with AsyncClient(
            _make_profile(), authenticator=handler, transport=transport, dry_run=True
        ) as client:
            response = await client.post("/items", json_body={"a": 1})

        assert seen == []
        assert response.status_code == 200
        assert response.json()["dry_run"] is True
        assert response.request.headers["Authorization"] == "Bearer tok"
