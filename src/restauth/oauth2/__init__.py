"""OAuth2 token management and the authenticators that use it."""

from restauth.models import GrantType, OAuth2Config
from restauth.oauth2.authenticators import (
    OAuth2AuthorizationHeaderAuthenticator,
    OAuth2Authenticator,
    OAuth2QueryParameterAuthenticator,
)
from restauth.oauth2.token_manager import OAuth2CredentialState, OAuth2TokenManager

__all__ = [
    "GrantType",
    "OAuth2AuthorizationHeaderAuthenticator",
    "OAuth2Authenticator",
    "OAuth2Config",
    "OAuth2CredentialState",
    "OAuth2QueryParameterAuthenticator",
    "OAuth2TokenManager",
]
