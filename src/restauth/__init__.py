"""restauth -- challenge-driven authentication for HTTP API clients.

This package implements the authentication layer of an HTTP client: a set of
pluggable *authenticators* that pre-authenticate outgoing requests, and an
:class:`~restauth.auth.handler.AuthenticationChallengeHandler` that reacts to
``401``/``407`` challenges by picking the best registered mechanism and letting
it repair the request before the retry.

Typical usage::

    from restauth.auth import AuthenticationChallengeHandler
    from restauth.client import AsyncClient
    from restauth.models import Profile
    from restauth.oauth2 import (
        OAuth2AuthorizationHeaderAuthenticator,
        OAuth2Config,
        OAuth2TokenManager,
    )

    tokens = OAuth2TokenManager(OAuth2Config(token_url=..., client_id=...))
    handler = AuthenticationChallengeHandler()
    handler.register("Bearer", OAuth2AuthorizationHeaderAuthenticator(tokens), 10)

    profile = Profile(name="example", base_url="https://api.example.com")
    async with AsyncClient(profile, authenticator=handler) as client:
        response = await client.get("/me")

Modules:
    app: Typer application factory and CLI entry point.
    models: Pydantic models shared across the entire package.
    config: XDG-aware configuration and profile management.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
