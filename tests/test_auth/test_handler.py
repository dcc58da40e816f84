"""Tests for AuthenticationChallengeHandler negotiation."""

from __future__ import annotations

import itertools
from typing import Optional

import httpx
import pytest

from restauth.auth.base import AuthHeader, Authenticator
from restauth.auth.handler import AuthenticationChallengeHandler
from restauth.client import AsyncClient, RestRequest
from restauth.exceptions import NoMatchingAuthenticatorError
from restauth.models import Credentials, Profile


class _StubAuthenticator(Authenticator):
    """Authenticator with fixed predicate answers that records every call."""

    def __init__(
        self,
        name: str,
        log: Optional[list[str]] = None,
        pre: bool = True,
        challenge: bool = True,
    ) -> None:
        self.name = name
        self.log = log if log is not None else []
        self.pre = pre
        self.challenge = challenge
        self.seen_headers: list[Optional[str]] = []

    def can_pre_authenticate(self, client, request, credentials) -> bool:
        return self.pre

    async def pre_authenticate(self, client, request, credentials) -> None:
        self.seen_headers.append(request.header("X-Trace"))
        previous = request.header("X-Trace")
        request.set_header("X-Trace", f"{previous},{self.name}" if previous else self.name)
        self.log.append(f"pre:{self.name}")

    def can_handle_challenge(self, client, request, credentials, response) -> bool:
        return self.challenge

    async def handle_challenge(self, client, request, credentials, response) -> None:
        self.log.append(f"challenge:{self.name}")


def _challenge(value: Optional[str], status: int = 401, header: str = "WWW-Authenticate") -> httpx.Response:
    headers = {header: value} if value is not None else {}
    return httpx.Response(status, headers=headers)


@pytest.fixture
def client() -> AsyncClient:
    return AsyncClient(Profile(name="test", base_url="https://api.example.com"))


@pytest.fixture
def request_() -> RestRequest:
    return RestRequest("GET", "/resource")


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class TestRegistry:
    def test_register_and_get(self) -> None:
        handler = AuthenticationChallengeHandler()
        auth = _StubAuthenticator("a")
        handler.register("Basic", auth, priority=3)

        registration = handler.get("basic")
        assert registration is not None
        assert registration.authenticator is auth
        assert registration.priority == 3
        assert "BASIC" in handler
        assert len(handler) == 1

    def test_reregistering_same_scheme_replaces(self) -> None:
        handler = AuthenticationChallengeHandler()
        first, second = _StubAuthenticator("a"), _StubAuthenticator("b")
        handler.register("basic", first, priority=10)
        handler.register("Basic", second, priority=10)

        assert len(handler) == 1
        assert handler.get("basic").authenticator is second

    def test_unregister(self) -> None:
        handler = AuthenticationChallengeHandler()
        handler.register("Basic", _StubAuthenticator("a"))
        handler.unregister("BASIC")
        handler.unregister("never-registered")
        assert len(handler) == 0
        assert "Basic" not in handler

    def test_authenticators_in_registration_order(self) -> None:
        handler = AuthenticationChallengeHandler()
        a, b, c = _StubAuthenticator("a"), _StubAuthenticator("b"), _StubAuthenticator("c")
        handler.register("Digest", a, priority=1)
        handler.register("Basic", b, priority=9)
        handler.register("Bearer", c, priority=5)

        assert handler.authenticators == [("Digest", a), ("Basic", b), ("Bearer", c)]
        assert list(handler) == handler.authenticators

    def test_default_header(self) -> None:
        assert AuthenticationChallengeHandler().header is AuthHeader.WWW_AUTHENTICATE


# ---------------------------------------------------------------------------
# Pre-authentication
# ---------------------------------------------------------------------------


class TestPreAuthenticate:
    @pytest.mark.parametrize("flags", list(itertools.product([True, False], repeat=3)))
    def test_can_pre_authenticate_is_any(self, client, request_, flags) -> None:
        handler = AuthenticationChallengeHandler()
        for i, flag in enumerate(flags):
            handler.register(f"scheme{i}", _StubAuthenticator(str(i), pre=flag))
        assert handler.can_pre_authenticate(client, request_, None) is any(flags)

    def test_empty_handler_cannot_pre_authenticate(self, client, request_) -> None:
        assert AuthenticationChallengeHandler().can_pre_authenticate(client, request_, None) is False

    @pytest.mark.asyncio
    async def test_applies_every_ready_authenticator_in_order(self, client, request_) -> None:
        log: list[str] = []
        handler = AuthenticationChallengeHandler()
        handler.register("One", _StubAuthenticator("one", log))
        handler.register("Skip", _StubAuthenticator("skip", log, pre=False))
        handler.register("Two", _StubAuthenticator("two", log))

        await handler.pre_authenticate(client, request_, None)

        assert log == ["pre:one", "pre:two"]
        assert request_.header("X-Trace") == "one,two"

    @pytest.mark.asyncio
    async def test_later_authenticators_see_earlier_mutations(self, client, request_) -> None:
        handler = AuthenticationChallengeHandler()
        first, second = _StubAuthenticator("first"), _StubAuthenticator("second")
        handler.register("A", first)
        handler.register("B", second)

        await handler.pre_authenticate(client, request_, None)

        assert first.seen_headers == [None]
        assert second.seen_headers == ["first"]

    @pytest.mark.asyncio
    async def test_nothing_ready_is_not_an_error(self, client, request_) -> None:
        handler = AuthenticationChallengeHandler()
        handler.register("A", _StubAuthenticator("a", pre=False))
        await handler.pre_authenticate(client, request_, None)
        assert request_.header("X-Trace") is None


# ---------------------------------------------------------------------------
# Challenge handling
# ---------------------------------------------------------------------------


class TestChallenge:
    def test_no_challenge_header(self, client, request_) -> None:
        handler = AuthenticationChallengeHandler()
        handler.register("Basic", _StubAuthenticator("basic"))
        assert handler.can_handle_challenge(client, request_, None, _challenge(None)) is False

    def test_unregistered_scheme(self, client, request_) -> None:
        handler = AuthenticationChallengeHandler()
        handler.register("Basic", _StubAuthenticator("basic"))
        response = _challenge('Digest realm="x"')
        assert handler.can_handle_challenge(client, request_, None, response) is False

    def test_authenticator_declines(self, client, request_) -> None:
        handler = AuthenticationChallengeHandler()
        handler.register("Basic", _StubAuthenticator("basic", challenge=False))
        response = _challenge('Basic realm="x"')
        assert handler.can_handle_challenge(client, request_, None, response) is False

    def test_scheme_matched_case_insensitively(self, client, request_) -> None:
        handler = AuthenticationChallengeHandler()
        handler.register("basic", _StubAuthenticator("basic"))
        assert handler.can_handle_challenge(client, request_, None, _challenge('BASIC realm="x"'))

    @pytest.mark.asyncio
    async def test_highest_priority_wins(self, client, request_) -> None:
        log: list[str] = []
        handler = AuthenticationChallengeHandler()
        handler.register("basic", _StubAuthenticator("basic", log), priority=1)
        handler.register("digest", _StubAuthenticator("digest", log), priority=5)
        response = _challenge('Basic realm="x", Digest realm="x", nonce="n"')

        assert handler.can_handle_challenge(client, request_, None, response)
        await handler.handle_challenge(client, request_, None, response)

        assert log == ["challenge:digest"]

    @pytest.mark.asyncio
    async def test_declining_authenticator_is_skipped(self, client, request_) -> None:
        log: list[str] = []
        handler = AuthenticationChallengeHandler()
        handler.register("Basic", _StubAuthenticator("basic", log), priority=1)
        handler.register("Bearer", _StubAuthenticator("bearer", log, challenge=False), priority=10)
        response = _challenge('Bearer realm="x", Basic realm="x"')

        await handler.handle_challenge(client, request_, None, response)

        assert log == ["challenge:basic"]

    @pytest.mark.asyncio
    async def test_equal_priorities_prefer_earlier_registration(self, client, request_) -> None:
        log: list[str] = []
        handler = AuthenticationChallengeHandler()
        handler.register("Bearer", _StubAuthenticator("bearer", log), priority=5)
        handler.register("Basic", _StubAuthenticator("basic", log), priority=5)
        response = _challenge('Basic realm="x", Bearer realm="x"')

        await handler.handle_challenge(client, request_, None, response)

        assert log == ["challenge:bearer"]

    def test_candidates_are_ordered_and_deduplicated(self, client, request_) -> None:
        handler = AuthenticationChallengeHandler()
        handler.register("Basic", _StubAuthenticator("basic"), priority=1)
        handler.register("Digest", _StubAuthenticator("digest"), priority=5)
        response = _challenge('Basic realm="a", Digest realm="x", Basic realm="b"')

        candidates = handler.candidates(client, request_, None, response)

        assert [c.scheme for c in candidates] == ["Digest", "Basic"]

    @pytest.mark.asyncio
    async def test_handle_without_match_raises(self, client, request_) -> None:
        handler = AuthenticationChallengeHandler()
        handler.register("Basic", _StubAuthenticator("basic"))

        with pytest.raises(NoMatchingAuthenticatorError, match="Digest"):
            await handler.handle_challenge(client, request_, None, _challenge("Digest"))

    @pytest.mark.asyncio
    async def test_proxy_handler_reads_proxy_header(self, client, request_) -> None:
        log: list[str] = []
        handler = AuthenticationChallengeHandler(AuthHeader.PROXY_AUTHENTICATE)
        handler.register("Basic", _StubAuthenticator("basic", log))

        www = _challenge("Basic", status=407)
        assert handler.can_handle_challenge(client, request_, None, www) is False

        proxy = _challenge("Basic", status=407, header="Proxy-Authenticate")
        await handler.handle_challenge(client, request_, None, proxy)
        assert log == ["challenge:basic"]

    def test_credentials_are_forwarded(self, client, request_) -> None:
        seen: list[Optional[Credentials]] = []

        class _Recorder(_StubAuthenticator):
            def can_handle_challenge(self, client, request, credentials, response) -> bool:
                seen.append(credentials)
                return True

        handler = AuthenticationChallengeHandler()
        handler.register("Basic", _Recorder("basic"))
        credentials = Credentials(username="u", password="p")

        assert handler.can_handle_challenge(client, request_, credentials, _challenge("Basic"))
        assert seen == [credentials]
