"""Static bearer token plugin.

This module provides :class:`StaticBearerAuthenticator` and the
:class:`BearerAuthPlugin` for the ``bearer`` auth type. A pre-existing token
is resolved from the configured ``source`` (e.g. ``env:MY_TOKEN``) and sent
as a ``Bearer <token>`` value in ``Authorization`` (``Proxy-Authorization`` for
proxy profiles).

No token exchange or refresh happens here, so a rejected token cannot be
remediated. For refreshable tokens, see :mod:`restauth.plugins.oauth2`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import httpx

from restauth.auth.base import AuthHeader, Authenticator, AuthPlugin
from restauth.client.request import RestRequest
from restauth.config import resolve_credential
from restauth.models import AuthConfig, Credentials, Profile

if TYPE_CHECKING:
    from restauth.client.async_client import AsyncClient


class StaticBearerAuthenticator(Authenticator):
    """Attach a fixed token to every request."""

    def __init__(self, token: str, token_type: str = "Bearer", header: str = "Authorization") -> None:
        self.token = token
        self.token_type = token_type
        self.header = header

    def can_pre_authenticate(
        self,
        client: AsyncClient,
        request: RestRequest,
        credentials: Optional[Credentials],
    ) -> bool:
        return bool(self.token)

    async def pre_authenticate(
        self,
        client: AsyncClient,
        request: RestRequest,
        credentials: Optional[Credentials],
    ) -> None:
        request.set_header(self.header, f"{self.token_type} {self.token}")

    def can_handle_challenge(
        self,
        client: AsyncClient,
        request: RestRequest,
        credentials: Optional[Credentials],
        response: httpx.Response,
    ) -> bool:
        return False

    async def handle_challenge(
        self,
        client: AsyncClient,
        request: RestRequest,
        credentials: Optional[Credentials],
        response: httpx.Response,
    ) -> None:
        return None


class BearerAuthPlugin(AuthPlugin):
    """Build :class:`StaticBearerAuthenticator` instances for ``bearer`` entries."""

    @property
    def auth_type(self) -> str:
        return "bearer"

    @property
    def default_scheme(self) -> str:
        return "Bearer"

    def create(self, auth_config: AuthConfig, profile: Profile) -> StaticBearerAuthenticator:
        token = resolve_credential(auth_config.source or "")
        return StaticBearerAuthenticator(
            token,
            token_type=auth_config.token_type or "Bearer",
            header=AuthHeader.for_profile(profile).authorization_header,
        )

    def validate_config(self, auth_config: AuthConfig) -> list[str]:
        errors: list[str] = []
        if not auth_config.source:
            errors.append("Bearer auth requires a 'source' for the token")
        return errors
