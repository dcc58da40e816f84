"""OAuth2 authentication plugins.

Implements the ``oauth2_header`` and ``oauth2_query`` auth types. Both build
their authenticators on an
:class:`~restauth.oauth2.token_manager.OAuth2TokenManager` that is shared by
every entry of a profile pointing at the same token endpoint and client.

See Also:
    :mod:`restauth.oauth2` for the token manager and authenticators.
"""

from restauth.plugins.oauth2.plugin import (
    OAuth2HeaderPlugin,
    OAuth2QueryPlugin,
    clear_token_managers,
    credential_key,
    get_token_manager,
)

__all__ = [
    "OAuth2HeaderPlugin",
    "OAuth2QueryPlugin",
    "clear_token_managers",
    "credential_key",
    "get_token_manager",
]
