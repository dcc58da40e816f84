"""Auth manager -- registry of auth plugins and handler factory.

The :class:`AuthManager` maps auth-type strings (``"basic"``, ``"bearer"``,
``"oauth2_header"``, ...) to :class:`~restauth.auth.base.AuthPlugin`
instances and turns the ``auth`` entries of a
:class:`~restauth.models.Profile` into a ready
:class:`~restauth.auth.handler.AuthenticationChallengeHandler`.

For most use cases, call :func:`create_default_manager` to get a manager
pre-loaded with every built-in plugin.
"""

from __future__ import annotations

import logging

from restauth.auth.base import AuthHeader, AuthPlugin
from restauth.auth.handler import AuthenticationChallengeHandler
from restauth.exceptions import AuthError
from restauth.models import Profile

logger = logging.getLogger(__name__)


class AuthManager:
    """Registry of authentication plugins.

    Example::

        from restauth.auth import AuthManager
        from restauth.plugins.basic import BasicAuthPlugin

        manager = AuthManager()
        manager.register(BasicAuthPlugin())
        handler = manager.build_handler(profile)
    """

    def __init__(self) -> None:
        self._plugins: dict[str, AuthPlugin] = {}

    def register(self, plugin: AuthPlugin) -> None:
        """Register *plugin* under its ``auth_type``, replacing any previous one."""
        self._plugins[plugin.auth_type] = plugin

    def get_plugin(self, auth_type: str) -> AuthPlugin:
        """Retrieve a registered plugin by its auth type identifier.

        Raises:
            AuthError: If no plugin is registered for *auth_type*.
        """
        plugin = self._plugins.get(auth_type)
        if plugin is None:
            available = ", ".join(sorted(self._plugins)) or "(none)"
            raise AuthError(
                f"No auth plugin registered for type '{auth_type}'. "
                f"Available types: {available}"
            )
        return plugin

    def build_handler(self, profile: Profile) -> AuthenticationChallengeHandler:
        """Build a challenge handler holding one authenticator per auth entry.

        Each entry is registered under its ``scheme`` (or the plugin's
        default scheme) at its configured ``priority``.

        Raises:
            AuthError: If an entry names an unknown type or is misconfigured.
        """
        handler = AuthenticationChallengeHandler(AuthHeader.for_profile(profile))
        for entry in profile.auth:
            plugin = self.get_plugin(entry.type)
            problems = plugin.validate_config(entry)
            if problems:
                raise AuthError(
                    f"Invalid '{entry.type}' auth configuration in profile "
                    f"'{profile.name}': " + "; ".join(problems)
                )
            scheme = entry.scheme or plugin.default_scheme
            handler.register(scheme, plugin.create(entry, profile), priority=entry.priority)
        logger.debug("Built challenge handler for profile %r with %d scheme(s)", profile.name, len(handler))
        return handler

    def list_types(self) -> list[str]:
        """Return the identifiers of all registered auth types, sorted."""
        return sorted(self._plugins.keys())


def create_default_manager() -> AuthManager:
    """Create an :class:`AuthManager` pre-loaded with all built-in plugins.

    The following plugins are registered:

    - ``api_key`` -- static API key in a header or query parameter.
    - ``basic`` -- HTTP Basic authentication.
    - ``bearer`` -- static bearer token.
    - ``oauth2_header`` -- OAuth2 token in the ``Authorization`` header.
    - ``oauth2_query`` -- OAuth2 token as an ``oauth_token`` parameter.
    """
    from restauth.plugins.api_key import APIKeyAuthPlugin
    from restauth.plugins.basic import BasicAuthPlugin
    from restauth.plugins.bearer import BearerAuthPlugin
    from restauth.plugins.oauth2 import OAuth2HeaderPlugin, OAuth2QueryPlugin

    manager = AuthManager()
    manager.register(APIKeyAuthPlugin())
    manager.register(BasicAuthPlugin())
    manager.register(BearerAuthPlugin())
    manager.register(OAuth2HeaderPlugin())
    manager.register(OAuth2QueryPlugin())
    return manager
