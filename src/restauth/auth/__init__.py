"""Challenge-driven authentication for restauth.

The main entry points are:

- :class:`Authenticator` -- the contract every authentication mechanism
  implements (pre-authenticate before a send, remediate after a challenge).
- :class:`AuthenticationChallengeHandler` -- composite authenticator that
  negotiates between several registered schemes by priority.
- :class:`AuthManager` / :func:`create_default_manager` -- build a handler
  from the ``auth`` entries of a :class:`~restauth.models.Profile`.
- :class:`CredentialStore` -- persistent, per-profile credential storage.

Typical usage::

    from restauth.auth import create_default_manager

    handler = create_default_manager().build_handler(profile)
    async with AsyncClient(profile, authenticator=handler) as client:
        response = await client.get("/users/me")
"""

from restauth.auth.base import AuthHeader, Authenticator, AuthPlugin
from restauth.auth.challenge import ChallengeEntry, get_challenges, parse_challenge_header
from restauth.auth.credential_store import CredentialEntry, CredentialStore
from restauth.auth.handler import AuthenticationChallengeHandler, AuthenticatorRegistration
from restauth.auth.manager import AuthManager, create_default_manager

__all__ = [
    "AuthHeader",
    "AuthManager",
    "AuthPlugin",
    "AuthenticationChallengeHandler",
    "Authenticator",
    "AuthenticatorRegistration",
    "ChallengeEntry",
    "CredentialEntry",
    "CredentialStore",
    "create_default_manager",
    "get_challenges",
    "parse_challenge_header",
]
