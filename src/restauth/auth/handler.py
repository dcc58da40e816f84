"""Authentication challenge handler -- the negotiation engine.

:class:`AuthenticationChallengeHandler` bundles several authentication
mechanisms behind one :class:`~restauth.auth.base.Authenticator`. A client
installs a single handler as *the* authenticator and the handler dispatches
to its registrations:

* **Pre-authentication** applies *every* registered authenticator that is
  ready, one after another in registration order, so independent
  mechanisms can stack onto the same request.
* **Challenge handling** parses the response's challenge header, keeps the
  registrations whose scheme is offered and whose own
  ``can_handle_challenge`` agrees, and lets only the highest-priority one
  remediate. Equal priorities fall back to registration order.

Registration is expected at setup time, but the registry is guarded by a
lock and every dispatch works on a snapshot, so reconfiguring a handler that
is already serving requests is safe.
"""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterator, Optional

import httpx

from restauth.auth.base import AuthHeader, Authenticator, describe
from restauth.auth.challenge import get_challenges
from restauth.client.request import RestRequest
from restauth.exceptions import NoMatchingAuthenticatorError
from restauth.models import Credentials

if TYPE_CHECKING:
    from restauth.client.async_client import AsyncClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthenticatorRegistration:
    """One scheme registered on a handler.

    Attributes:
        scheme: Scheme name as registered (matched case-insensitively).
        priority: Higher values are preferred when several schemes match.
        authenticator: The mechanism answering this scheme.
        sequence: Registration counter used to break priority ties.
    """

    scheme: str
    priority: int
    authenticator: Authenticator
    sequence: int


class AuthenticationChallengeHandler(Authenticator):
    """Composite authenticator that negotiates between registered schemes.

    Args:
        header: The response header challenges are read from.

    Example::

        handler = AuthenticationChallengeHandler()
        handler.register("Basic", HttpBasicAuthenticator(), priority=1)
        handler.register("Bearer", OAuth2AuthorizationHeaderAuthenticator(tokens), priority=10)
    """

    def __init__(self, header: AuthHeader = AuthHeader.WWW_AUTHENTICATE) -> None:
        self._header = header
        self._registrations: dict[str, AuthenticatorRegistration] = {}
        self._lock = threading.RLock()
        self._sequence = itertools.count()

    @property
    def header(self) -> AuthHeader:
        return self._header

    @property
    def authenticators(self) -> list[tuple[str, Authenticator]]:
        """``(scheme, authenticator)`` pairs in registration order."""
        return [(r.scheme, r.authenticator) for r in self._snapshot()]

    @property
    def registrations(self) -> list[AuthenticatorRegistration]:
        return self._snapshot()

    def register(self, scheme: str, authenticator: Authenticator, priority: int = 0) -> None:
        """Register *authenticator* for challenges naming *scheme*.

        Registering a scheme name again (in any letter case) replaces the
        previous registration.
        """
        with self._lock:
            self._registrations[scheme.casefold()] = AuthenticatorRegistration(
                scheme=scheme,
                priority=priority,
                authenticator=authenticator,
                sequence=next(self._sequence),
            )
        logger.debug("Registered %s for scheme %r (priority %d)", describe(authenticator), scheme, priority)

    def unregister(self, scheme: str) -> None:
        """Remove the registration for *scheme*; unknown names are ignored."""
        with self._lock:
            self._registrations.pop(scheme.casefold(), None)

    def get(self, scheme: str) -> Optional[AuthenticatorRegistration]:
        with self._lock:
            return self._registrations.get(scheme.casefold())

    def __contains__(self, scheme: object) -> bool:
        return isinstance(scheme, str) and self.get(scheme) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._registrations)

    def __iter__(self) -> Iterator[tuple[str, Authenticator]]:
        return iter(self.authenticators)

    # ------------------------------------------------------------------ #
    # Authenticator contract
    # ------------------------------------------------------------------ #

    def can_pre_authenticate(
        self,
        client: AsyncClient,
        request: RestRequest,
        credentials: Optional[Credentials],
    ) -> bool:
        return any(
            r.authenticator.can_pre_authenticate(client, request, credentials)
            for r in self._snapshot()
        )

    async def pre_authenticate(
        self,
        client: AsyncClient,
        request: RestRequest,
        credentials: Optional[Credentials],
    ) -> None:
        # Later authenticators see the mutations of earlier ones.
        for registration in self._snapshot():
            authenticator = registration.authenticator
            if authenticator.can_pre_authenticate(client, request, credentials):
                await authenticator.pre_authenticate(client, request, credentials)

    def can_handle_challenge(
        self,
        client: AsyncClient,
        request: RestRequest,
        credentials: Optional[Credentials],
        response: httpx.Response,
    ) -> bool:
        return bool(self.candidates(client, request, credentials, response))

    async def handle_challenge(
        self,
        client: AsyncClient,
        request: RestRequest,
        credentials: Optional[Credentials],
        response: httpx.Response,
    ) -> None:
        """Let the highest-priority matching authenticator remediate the challenge.

        Raises:
            NoMatchingAuthenticatorError: If no registration matches; callers
                must check :meth:`can_handle_challenge` first.
        """
        candidates = self.candidates(client, request, credentials, response)
        if not candidates:
            offered = ", ".join(c.scheme for c in get_challenges(response, self._header)) or "none"
            raise NoMatchingAuthenticatorError(
                f"No registered authenticator can handle the challenge "
                f"(offered schemes: {offered})"
            )
        selected = candidates[0]
        logger.debug(
            "Handling %s challenge with %s (priority %d, %d candidate(s))",
            selected.scheme,
            describe(selected.authenticator),
            selected.priority,
            len(candidates),
        )
        await selected.authenticator.handle_challenge(client, request, credentials, response)

    # ------------------------------------------------------------------ #
    # Selection
    # ------------------------------------------------------------------ #

    def candidates(
        self,
        client: AsyncClient,
        request: RestRequest,
        credentials: Optional[Credentials],
        response: httpx.Response,
    ) -> list[AuthenticatorRegistration]:
        """Registrations able to answer *response*'s challenge, best first.

        A registration qualifies when its scheme appears in the challenge
        header and its authenticator's ``can_handle_challenge`` returns
        ``True``. The result is ordered by priority (descending), then by
        registration order.
        """
        with self._lock:
            registry = dict(self._registrations)

        matched: dict[str, AuthenticatorRegistration] = {}
        for entry in get_challenges(response, self._header):
            key = entry.scheme.casefold()
            registration = registry.get(key)
            if registration is None or key in matched:
                continue
            if registration.authenticator.can_handle_challenge(client, request, credentials, response):
                matched[key] = registration

        return sorted(matched.values(), key=lambda r: (-r.priority, r.sequence))

    def _snapshot(self) -> list[AuthenticatorRegistration]:
        with self._lock:
            return sorted(self._registrations.values(), key=lambda r: r.sequence)
