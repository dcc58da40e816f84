"""Static bearer token plugin.

Implements the ``bearer`` auth type for tokens that are already available
and never need refreshing.
"""

from restauth.plugins.bearer.plugin import BearerAuthPlugin, StaticBearerAuthenticator

__all__ = ["BearerAuthPlugin", "StaticBearerAuthenticator"]
