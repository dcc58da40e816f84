"""Exception hierarchy for restauth.

All exceptions inherit from :class:`RestAuthError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`restauth.exit_codes`.
The top-level error handler in :func:`restauth.app.main` catches
``RestAuthError`` and exits with the appropriate code.

Subclass hierarchy::

    RestAuthError (exit 1)
    +-- InvalidUsageError              (exit 2)
    +-- AuthError                      (exit 3)
    |   +-- TokenExchangeError         (exit 3)
    +-- NotFoundError                  (exit 4)
    +-- ServerError                    (exit 5)
    +-- ConnectionError_               (exit 6)
    +-- NoMatchingAuthenticatorError   (exit 70)
    +-- ConfigError                    (exit 1)
"""

from restauth.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_CONTRACT_VIOLATION,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_SERVER_ERROR,
)


class RestAuthError(Exception):
    """Base exception for all restauth errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(RestAuthError):
    """Raised for invalid CLI arguments or missing required parameters."""

    exit_code = EXIT_INVALID_USAGE


class AuthError(RestAuthError):
    """Raised when authentication fails or credentials cannot be obtained."""

    exit_code = EXIT_AUTH_FAILURE


class TokenExchangeError(AuthError):
    """Raised when an OAuth2 token request fails at the network or provider level.

    Args:
        message: Human-readable error description.
        status_code: HTTP status returned by the token endpoint, if any.
        error: The OAuth2 ``error`` code from the provider response, if any.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        error: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.error = error


class NotFoundError(RestAuthError):
    """Raised when the API returns HTTP 404 (resource not found)."""

    exit_code = EXIT_NOT_FOUND


class ServerError(RestAuthError):
    """Raised when the API returns an error status not covered by another class."""

    exit_code = EXIT_SERVER_ERROR


class ConnectionError_(RestAuthError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class NoMatchingAuthenticatorError(RestAuthError):
    """Raised when a challenge is handled although no registered authenticator matches.

    Callers must check ``can_handle_challenge`` before calling
    ``handle_challenge``; reaching this error is a programming mistake, not a
    runtime condition to recover from.
    """

    exit_code = EXIT_CONTRACT_VIOLATION


class ConfigError(RestAuthError):
    """Raised for configuration problems (missing profiles, invalid JSON, bad credential sources)."""

    exit_code = EXIT_GENERIC_FAILURE
