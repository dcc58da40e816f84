"""HTTP Basic authentication plugin.

This module provides :class:`HttpBasicAuthenticator` and the
:class:`BasicAuthPlugin` that builds it for the ``basic`` auth type. The
``username:password`` pair is Base64-encoded and sent as a
``Basic <encoded>`` credential per :rfc:`7617`, in ``Authorization`` or, for
profiles that negotiate proxy challenges, in ``Proxy-Authorization``.

Credentials come from the entry's ``source`` when one is configured,
otherwise from the credentials the client passes with every call (the
profile's ``credentials_source``).

See Also:
    :class:`restauth.auth.base.AuthPlugin` for the base interface.
"""

from __future__ import annotations

import base64
import logging
from typing import TYPE_CHECKING, Optional

import httpx

from restauth.auth.base import AuthHeader, Authenticator, AuthPlugin
from restauth.client.request import RestRequest
from restauth.config import resolve_credential
from restauth.exceptions import AuthError
from restauth.models import AuthConfig, Credentials, Profile

if TYPE_CHECKING:
    from restauth.client.async_client import AsyncClient

logger = logging.getLogger(__name__)


def encode_basic(credentials: Credentials) -> str:
    """Return the ``Basic`` credential value for *credentials*."""
    raw = f"{credentials.username}:{credentials.password}"
    return "Basic " + base64.b64encode(raw.encode("utf-8")).decode("ascii")


class HttpBasicAuthenticator(Authenticator):
    """Answers ``Basic`` challenges with a username and password.

    Credentials are sent only after the server asked for them, unless
    *preemptive* is set. Once a challenge was seen, every later request
    carries them up front.

    Args:
        credentials: Fixed credentials; when ``None`` the per-call
            credentials handed in by the client are used.
        preemptive: Send credentials before any challenge.
        header: Request header that carries the credentials; use
            ``Proxy-Authorization`` to answer proxy challenges.
    """

    def __init__(
        self,
        credentials: Optional[Credentials] = None,
        preemptive: bool = False,
        header: str = "Authorization",
    ) -> None:
        self._credentials = credentials
        self.preemptive = preemptive
        self.header = header
        self.challenged = False

    def _effective(self, credentials: Optional[Credentials]) -> Optional[Credentials]:
        return self._credentials or credentials

    def can_pre_authenticate(
        self,
        client: AsyncClient,
        request: RestRequest,
        credentials: Optional[Credentials],
    ) -> bool:
        if not (self.preemptive or self.challenged):
            return False
        return self._effective(credentials) is not None

    async def pre_authenticate(
        self,
        client: AsyncClient,
        request: RestRequest,
        credentials: Optional[Credentials],
    ) -> None:
        effective = self._effective(credentials)
        if effective is None:
            return
        request.set_header(self.header, encode_basic(effective))

    def can_handle_challenge(
        self,
        client: AsyncClient,
        request: RestRequest,
        credentials: Optional[Credentials],
        response: httpx.Response,
    ) -> bool:
        return self._effective(credentials) is not None

    async def handle_challenge(
        self,
        client: AsyncClient,
        request: RestRequest,
        credentials: Optional[Credentials],
        response: httpx.Response,
    ) -> None:
        if self._effective(credentials) is None:
            return
        if not self.challenged:
            logger.debug("Basic challenge received; sending credentials from now on")
        self.challenged = True


class BasicAuthPlugin(AuthPlugin):
    """Build :class:`HttpBasicAuthenticator` instances for ``basic`` entries."""

    @property
    def auth_type(self) -> str:
        return "basic"

    @property
    def default_scheme(self) -> str:
        return "Basic"

    def create(self, auth_config: AuthConfig, profile: Profile) -> HttpBasicAuthenticator:
        """Resolve the entry's credential source (if any) and build the authenticator.

        Raises:
            AuthError: If the resolved credential lacks the colon separator.
        """
        credentials = None
        if auth_config.source:
            raw = resolve_credential(auth_config.source)
            if ":" not in raw:
                raise AuthError(
                    "Basic auth credential must be in 'username:password' format "
                    "(colon separator is required)"
                )
            credentials = Credentials.parse(raw)
        return HttpBasicAuthenticator(
            credentials,
            preemptive=auth_config.preemptive,
            header=AuthHeader.for_profile(profile).authorization_header,
        )
