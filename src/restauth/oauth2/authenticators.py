"""Authenticators that attach OAuth2 access tokens to requests.

Both variants obtain their token from a shared
:class:`~restauth.oauth2.token_manager.OAuth2TokenManager` and can only
remediate a challenge when a refresh token is cached.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

import httpx

from restauth.auth.base import Authenticator
from restauth.client.request import RestRequest
from restauth.models import Credentials
from restauth.oauth2.token_manager import OAuth2TokenManager

if TYPE_CHECKING:
    from restauth.client.async_client import AsyncClient

logger = logging.getLogger(__name__)

DEFAULT_PARAMETER_NAME = "oauth_token"
DEFAULT_TOKEN_TYPE = "OAuth"


class OAuth2Authenticator(Authenticator):
    """Behaviour shared by the OAuth2 authenticator variants."""

    def __init__(self, token_manager: OAuth2TokenManager) -> None:
        self._token_manager = token_manager

    @property
    def token_manager(self) -> OAuth2TokenManager:
        return self._token_manager

    def can_pre_authenticate(
        self,
        client: AsyncClient,
        request: RestRequest,
        credentials: Optional[Credentials],
    ) -> bool:
        # The token is fetched lazily, so there is always something to attach.
        return True

    def can_handle_challenge(
        self,
        client: AsyncClient,
        request: RestRequest,
        credentials: Optional[Credentials],
        response: httpx.Response,
    ) -> bool:
        return bool(self._token_manager.refresh_token)

    async def handle_challenge(
        self,
        client: AsyncClient,
        request: RestRequest,
        credentials: Optional[Credentials],
        response: httpx.Response,
    ) -> None:
        if not self._token_manager.refresh_token:
            return
        logger.debug("Refreshing OAuth2 token after %d challenge", response.status_code)
        await self._token_manager.get_current_token(force_update=True)


class OAuth2QueryParameterAuthenticator(OAuth2Authenticator):
    """Sends the access token as a query-string or form parameter.

    Args:
        token_manager: Source of the access token.
        parameter_name: Name of the parameter, ``oauth_token`` by default.
    """

    def __init__(
        self,
        token_manager: OAuth2TokenManager,
        parameter_name: str = DEFAULT_PARAMETER_NAME,
    ) -> None:
        super().__init__(token_manager)
        self.parameter_name = parameter_name

    async def pre_authenticate(
        self,
        client: AsyncClient,
        request: RestRequest,
        credentials: Optional[Credentials],
    ) -> None:
        token = await self._token_manager.get_current_token()
        request.add_or_update_parameter(self.parameter_name, token)


class OAuth2AuthorizationHeaderAuthenticator(OAuth2Authenticator):
    """Sends the access token in the ``Authorization`` header.

    An existing ``Authorization`` header is left alone unless the previous
    attempt was rejected (:attr:`auth_failed`), so retries do not consult the
    token manager needlessly.

    Args:
        token_manager: Source of the access token.
        token_type: Scheme written before the token. When omitted, the
            provider's ``token_type`` is used, falling back to ``OAuth``.
    """

    def __init__(
        self,
        token_manager: OAuth2TokenManager,
        token_type: Optional[str] = None,
    ) -> None:
        super().__init__(token_manager)
        self._token_type = token_type
        self.auth_failed = False

    @property
    def token_type(self) -> str:
        return self._token_type or self._token_manager.token_type or DEFAULT_TOKEN_TYPE

    async def pre_authenticate(
        self,
        client: AsyncClient,
        request: RestRequest,
        credentials: Optional[Credentials],
    ) -> None:
        if request.header("Authorization") is not None and not self.auth_failed:
            return
        token = await self._token_manager.get_current_token()
        # Read the type after the exchange, which may have supplied it.
        request.set_header("Authorization", f"{self.token_type} {token}")
        self.auth_failed = False

    async def handle_challenge(
        self,
        client: AsyncClient,
        request: RestRequest,
        credentials: Optional[Credentials],
        response: httpx.Response,
    ) -> None:
        if not self._token_manager.refresh_token:
            return
        self.auth_failed = True
        await super().handle_challenge(client, request, credentials, response)
