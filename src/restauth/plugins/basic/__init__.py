"""HTTP Basic authentication plugin.

Implements the ``basic`` auth type, which answers ``Basic`` challenges with
a Base64-encoded ``username:password`` pair per :rfc:`7617`.

See Also:
    :class:`~restauth.plugins.basic.plugin.BasicAuthPlugin`
    :mod:`restauth.auth.base` for the plugin interface contract.
"""

from restauth.plugins.basic.plugin import BasicAuthPlugin, HttpBasicAuthenticator

__all__ = ["BasicAuthPlugin", "HttpBasicAuthenticator"]
