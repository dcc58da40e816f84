"""OAuth2 auth plugins.

This module provides :class:`OAuth2HeaderPlugin` (``oauth2_header``) and
:class:`OAuth2QueryPlugin` (``oauth2_query``). Both translate an
:class:`~restauth.models.AuthConfig` into an
:class:`~restauth.models.OAuth2Config` and look up the
:class:`~restauth.oauth2.token_manager.OAuth2TokenManager` for it with
:func:`get_token_manager`.

Token managers are cached per ``(profile, token_url, client_id)``, so two
entries of the same profile that talk to the same provider share one
credential state and one refresh, and repeated handler builds within a
process reuse cached tokens. With ``persist`` enabled the state is also
written to the profile's :class:`~restauth.auth.credential_store.CredentialStore`
under the same ``(token_url, client_id)`` key, so entries of different
providers never read each other's tokens.
"""

from __future__ import annotations

import threading
from typing import Optional

from restauth.auth.base import AuthPlugin
from restauth.auth.credential_store import CredentialStore
from restauth.config import resolve_credential, resolve_credentials
from restauth.models import AuthConfig, GrantType, OAuth2Config, Profile
from restauth.oauth2.authenticators import (
    DEFAULT_PARAMETER_NAME,
    OAuth2AuthorizationHeaderAuthenticator,
    OAuth2QueryParameterAuthenticator,
)
from restauth.oauth2.token_manager import OAuth2TokenManager

_managers: dict[tuple[str, str, str], OAuth2TokenManager] = {}
_managers_lock = threading.Lock()


def build_oauth2_config(auth_config: AuthConfig, profile: Profile) -> OAuth2Config:
    """Resolve an auth entry's credential sources into an :class:`OAuth2Config`."""
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    if auth_config.client_id_source:
        client_id = resolve_credential(auth_config.client_id_source)
    if auth_config.client_secret_source:
        client_secret = resolve_credential(auth_config.client_secret_source)

    username: Optional[str] = None
    password: Optional[str] = None
    if auth_config.grant_type is GrantType.PASSWORD:
        credentials = resolve_credentials(profile)
        if credentials is not None:
            username, password = credentials.username, credentials.password

    return OAuth2Config(
        token_url=auth_config.token_url or "",
        authorization_url=auth_config.authorization_url,
        user_info_url=auth_config.user_info_url,
        client_id=client_id,
        client_secret=client_secret,
        scopes=auth_config.scopes,
        grant_type=auth_config.grant_type,
        redirect_uri=auth_config.redirect_uri,
        username=username,
        password=password,
        timeout=float(profile.request.timeout),
    )


def credential_key(token_url: str, client_id: Optional[str] = None) -> str:
    """Return the credential-store key of one OAuth2 client."""
    if client_id:
        return f"{client_id}@{token_url}"
    return token_url


def get_token_manager(auth_config: AuthConfig, profile: Profile) -> OAuth2TokenManager:
    """Return the shared token manager for an OAuth2 auth entry, creating it once."""
    config = build_oauth2_config(auth_config, profile)
    key = (profile.name, config.token_url, config.client_id or "")
    with _managers_lock:
        manager = _managers.get(key)
        if manager is None:
            store = None
            if auth_config.persist:
                store = CredentialStore(profile.name, key=credential_key(config.token_url, config.client_id))
            manager = OAuth2TokenManager(config, store=store, auth_type=auth_config.type)
            _managers[key] = manager
        return manager


def clear_token_managers() -> None:
    """Drop every cached token manager."""
    with _managers_lock:
        _managers.clear()


class _OAuth2PluginBase(AuthPlugin):
    @property
    def default_scheme(self) -> str:
        return "Bearer"

    def validate_config(self, auth_config: AuthConfig) -> list[str]:
        """Check the fields every OAuth2 entry needs."""
        errors: list[str] = []
        if not auth_config.token_url:
            errors.append("OAuth2 auth requires 'token_url'")
        if auth_config.grant_type is GrantType.AUTHORIZATION_CODE and not auth_config.authorization_url:
            errors.append("The authorization_code grant requires 'authorization_url'")
        return errors


class OAuth2HeaderPlugin(_OAuth2PluginBase):
    """Send OAuth2 access tokens in the ``Authorization`` header."""

    @property
    def auth_type(self) -> str:
        return "oauth2_header"

    def create(
        self, auth_config: AuthConfig, profile: Profile
    ) -> OAuth2AuthorizationHeaderAuthenticator:
        return OAuth2AuthorizationHeaderAuthenticator(
            get_token_manager(auth_config, profile),
            token_type=auth_config.token_type,
        )


class OAuth2QueryPlugin(_OAuth2PluginBase):
    """Send OAuth2 access tokens as a GET-or-POST parameter."""

    @property
    def auth_type(self) -> str:
        return "oauth2_query"

    def create(
        self, auth_config: AuthConfig, profile: Profile
    ) -> OAuth2QueryParameterAuthenticator:
        return OAuth2QueryParameterAuthenticator(
            get_token_manager(auth_config, profile),
            parameter_name=auth_config.param_name or DEFAULT_PARAMETER_NAME,
        )
