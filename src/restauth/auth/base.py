"""Core contracts of the authentication subsystem.

This module defines:

- :class:`AuthHeader` -- which response header carries the challenge.
- :class:`Authenticator` -- the unit of pluggable authentication logic that
  the :class:`~restauth.client.async_client.AsyncClient` drives before every
  send and after every challenge.
- :class:`AuthPlugin` -- a factory that turns one
  :class:`~restauth.models.AuthConfig` entry of a profile into an
  :class:`Authenticator`, looked up by ``auth_type`` in the
  :class:`~restauth.auth.manager.AuthManager`.

The predicates (``can_pre_authenticate`` / ``can_handle_challenge``) are
plain methods that must not perform I/O. The mutating operations are
coroutines because they may need the network (e.g. to refresh a token); an
implementation without I/O simply never awaits.

See Also:
    :mod:`restauth.auth.handler` for the composite authenticator that
    negotiates between several registered mechanisms.
"""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Optional

import httpx

from restauth.client.request import RestRequest
from restauth.models import AuthConfig, ChallengeHeader, Credentials, Profile

if TYPE_CHECKING:
    from restauth.client.async_client import AsyncClient


class AuthHeader(str, enum.Enum):
    """The HTTP header an authentication challenge is read from."""

    WWW_AUTHENTICATE = "WWW-Authenticate"
    PROXY_AUTHENTICATE = "Proxy-Authenticate"

    @property
    def status_code(self) -> int:
        """The status code that accompanies this challenge header."""
        if self is AuthHeader.PROXY_AUTHENTICATE:
            return 407
        return 401

    @property
    def authorization_header(self) -> str:
        """The request header that answers this challenge."""
        if self is AuthHeader.PROXY_AUTHENTICATE:
            return "Proxy-Authorization"
        return "Authorization"

    @classmethod
    def for_profile(cls, profile: Profile) -> AuthHeader:
        """The challenge header *profile* is configured to negotiate on."""
        if profile.challenge_header is ChallengeHeader.PROXY_AUTHENTICATE:
            return cls.PROXY_AUTHENTICATE
        return cls.WWW_AUTHENTICATE


class Authenticator(ABC):
    """Abstract base class for authentication mechanisms.

    The client calls :meth:`can_pre_authenticate` / :meth:`pre_authenticate`
    before every send (including retries), and :meth:`can_handle_challenge` /
    :meth:`handle_challenge` after a response challenged the request.
    ``handle_challenge`` must only be called after ``can_handle_challenge``
    returned ``True`` for the same response.
    """

    @abstractmethod
    def can_pre_authenticate(
        self,
        client: AsyncClient,
        request: RestRequest,
        credentials: Optional[Credentials],
    ) -> bool:
        """Return ``True`` if :meth:`pre_authenticate` has something to attach."""
        ...

    @abstractmethod
    async def pre_authenticate(
        self,
        client: AsyncClient,
        request: RestRequest,
        credentials: Optional[Credentials],
    ) -> None:
        """Attach credentials to *request*.

        Called on every send, so implementations must tolerate being applied
        to a request they already modified.
        """
        ...

    @abstractmethod
    def can_handle_challenge(
        self,
        client: AsyncClient,
        request: RestRequest,
        credentials: Optional[Credentials],
        response: httpx.Response,
    ) -> bool:
        """Return ``True`` if this authenticator can remediate *response*'s challenge."""
        ...

    @abstractmethod
    async def handle_challenge(
        self,
        client: AsyncClient,
        request: RestRequest,
        credentials: Optional[Credentials],
        response: httpx.Response,
    ) -> None:
        """Prepare state so that the next :meth:`pre_authenticate` succeeds.

        When no remediation is possible this is a no-op rather than an
        error; the retried request then fails again and the client's retry
        budget surfaces the failure.
        """
        ...


class AuthPlugin(ABC):
    """Factory that builds an :class:`Authenticator` from profile configuration.

    Every built-in mechanism (Basic, static bearer, API key, OAuth2) ships a
    plugin. Plugins are registered with
    :class:`~restauth.auth.manager.AuthManager` and looked up by their
    ``auth_type`` when a profile is turned into a challenge handler.
    """

    @property
    @abstractmethod
    def auth_type(self) -> str:
        """Return the identifier used in ``AuthConfig.type`` (e.g. ``"basic"``)."""
        ...

    @property
    @abstractmethod
    def default_scheme(self) -> str:
        """Return the challenge scheme name used when the entry names none."""
        ...

    @abstractmethod
    def create(self, auth_config: AuthConfig, profile: Profile) -> Authenticator:
        """Build an authenticator for one auth entry of *profile*.

        Raises:
            AuthError: If the configuration is incomplete.
            ConfigError: If a credential source cannot be resolved.
        """
        ...

    def validate_config(self, auth_config: AuthConfig) -> list[str]:
        """Return human-readable problems with *auth_config*; empty means valid."""
        return []

    def __repr__(self) -> str:
        return f"<{type(self).__name__} auth_type={self.auth_type!r}>"


def describe(authenticator: Any) -> str:
    """Short name used in log messages and CLI tables."""
    return type(authenticator).__name__
