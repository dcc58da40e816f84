"""Shared test fixtures for restauth.

Provides isolated config directories, output management, a CLI runner and
a scriptable OAuth2 token endpoint built on :class:`httpx.MockTransport`.
These fixtures are automatically discovered by pytest.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any, Optional
from urllib.parse import parse_qsl

import httpx
import pytest

from restauth.models import OAuth2Config
from restauth.output import OutputFormat, OutputManager, reset_output, set_output
from restauth.plugins.oauth2 import clear_token_managers

TOKEN_URL = "https://auth.example.com/oauth/token"


# ---------------------------------------------------------------------------
# Global state resets
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_global_state() -> None:
    """Reset the global OutputManager and cached token managers after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time; CliRunner swaps those streams, so a stale manager
    would write to closed files in later tests.
    """
    yield
    reset_output()
    clear_token_managers()


# ---------------------------------------------------------------------------
# Config isolation
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point XDG directories at tmp_path and clear RESTAUTH_* variables."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for var in ("RESTAUTH_PROFILE", "RESTAUTH_BASE_URL"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def quiet_output() -> OutputManager:
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True, no_color=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def cli_runner():
    from typer.testing import CliRunner

    return CliRunner()


# ---------------------------------------------------------------------------
# OAuth2 token endpoint stub
# ---------------------------------------------------------------------------


def token_payload(
    access_token: str = "access-1",
    refresh_token: Optional[str] = None,
    expires_in: Optional[int] = 3600,
    token_type: Optional[str] = "Bearer",
) -> dict[str, Any]:
    """Build a token endpoint JSON body."""
    data: dict[str, Any] = {"access_token": access_token}
    if expires_in is not None:
        data["expires_in"] = expires_in
    if token_type is not None:
        data["token_type"] = token_type
    if refresh_token is not None:
        data["refresh_token"] = refresh_token
    return data


class TokenEndpoint:
    """Records token requests and answers them from a responder function.

    The default responder issues ``access-<n>`` tokens with a rotating
    ``refresh-<n>`` refresh token.
    """

    def __init__(self, responder: Optional[Callable[[dict[str, str], int], httpx.Response]] = None):
        self.requests: list[dict[str, str]] = []
        self._responder = responder or self._default

    @staticmethod
    def _default(form: dict[str, str], count: int) -> httpx.Response:
        return httpx.Response(
            200, json=token_payload(f"access-{count}", refresh_token=f"refresh-{count}")
        )

    @property
    def count(self) -> int:
        return len(self.requests)

    def handler(self, request: httpx.Request) -> httpx.Response:
        form = dict(parse_qsl(request.content.decode()))
        self.requests.append(form)
        return self._responder(form, self.count)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def token_endpoint() -> TokenEndpoint:
    return TokenEndpoint()


@pytest.fixture
def token_endpoint_factory() -> type[TokenEndpoint]:
    """The stub class, for tests that need a custom responder."""
    return TokenEndpoint


@pytest.fixture
def oauth2_config() -> OAuth2Config:
    return OAuth2Config(token_url=TOKEN_URL, client_id="cli", client_secret="s3cret", scopes=["read"])
