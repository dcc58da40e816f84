"""API key auth plugin -- supports header and query parameter placement.

This module provides :class:`APIKeyAuthenticator` and the
:class:`APIKeyAuthPlugin` for the ``api_key`` auth type. The key is resolved
from the configured ``source`` (e.g. ``env:MY_API_KEY``) and injected into
every request at the configured ``location``. An optional second secret can
be sent alongside the key for APIs that require dual-key authentication.

See Also:
    :func:`restauth.config.resolve_credential` for how ``source`` values
    are resolved.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import httpx

from restauth.auth.base import Authenticator, AuthPlugin
from restauth.client.request import RestRequest
from restauth.config import resolve_credential
from restauth.models import AuthConfig, Credentials, Profile

if TYPE_CHECKING:
    from restauth.client.async_client import AsyncClient

LOCATIONS = ("header", "query")


class APIKeyAuthenticator(Authenticator):
    """Attach an API key (and optional secret) to every request.

    API keys cannot be renewed, so challenges are never handled.
    """

    def __init__(
        self,
        key: str,
        name: str,
        location: str = "header",
        secret: Optional[str] = None,
        secret_name: Optional[str] = None,
    ) -> None:
        self.key = key
        self.name = name
        self.location = location
        self.secret = secret
        self.secret_name = secret_name

    def _values(self) -> dict[str, str]:
        values = {self.name: self.key}
        if self.secret and self.secret_name:
            values[self.secret_name] = self.secret
        return values

    def can_pre_authenticate(
        self,
        client: AsyncClient,
        request: RestRequest,
        credentials: Optional[Credentials],
    ) -> bool:
        return bool(self.key)

    async def pre_authenticate(
        self,
        client: AsyncClient,
        request: RestRequest,
        credentials: Optional[Credentials],
    ) -> None:
        for name, value in self._values().items():
            if self.location == "query":
                request.params[name] = value
            else:
                request.set_header(name, value)

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


class APIKeyAuthPlugin(AuthPlugin):
    """Build :class:`APIKeyAuthenticator` instances for ``api_key`` entries.

    The key name is taken from ``auth_config.header`` (header placement) or
    ``auth_config.param_name`` (query placement).

    Supports an optional API secret via plugin-specific extra fields:
        - ``secret_source``: credential source for the secret (e.g. ``env:MY_SECRET``)
        - ``secret_header``: header/param name for the secret (defaults to
          ``X-API-Secret`` for headers and ``api_secret`` for queries)
    """

    @property
    def auth_type(self) -> str:
        return "api_key"

    @property
    def default_scheme(self) -> str:
        return "ApiKey"

    @staticmethod
    def _extra(auth_config: AuthConfig, key: str) -> Optional[str]:
        extras = auth_config.model_extra or {}
        return extras.get(key)

    def create(self, auth_config: AuthConfig, profile: Profile) -> APIKeyAuthenticator:
        key = resolve_credential(auth_config.source or "")
        location = auth_config.location
        if location == "query":
            name = auth_config.param_name or auth_config.header or "api_key"
            default_secret_name = "api_secret"
        else:
            name = auth_config.header or auth_config.param_name or "X-API-Key"
            default_secret_name = "X-API-Secret"

        secret = None
        secret_source = self._extra(auth_config, "secret_source")
        if secret_source:
            secret = resolve_credential(secret_source)
        secret_name = self._extra(auth_config, "secret_header") or default_secret_name
        return APIKeyAuthenticator(key, name, location, secret=secret, secret_name=secret_name)

    def validate_config(self, auth_config: AuthConfig) -> list[str]:
        """Check that required API key configuration fields are present."""
        errors: list[str] = []
        if not auth_config.header and not auth_config.param_name:
            errors.append(
                "API key auth requires 'header' or 'param_name' to specify the key name"
            )
        if not auth_config.source:
            errors.append("API key auth requires a 'source' for the credential")
        if auth_config.location not in LOCATIONS:
            errors.append(
                f"Invalid location '{auth_config.location}': must be 'header' or 'query'"
            )
        return errors
