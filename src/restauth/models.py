"""Canonical Pydantic models shared across all restauth modules.

This is the single source of truth for configuration shapes in the project.
Every other module imports from here rather than defining its own models.

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`AuthConfig`, :class:`RequestConfig`, :class:`OutputConfig`,
    :class:`GlobalConfig`, and :class:`Profile`.

**Runtime models** -- built in memory and handed to authenticators:
    :class:`Credentials`, :class:`OAuth2Config`, and :class:`TokenResponse`.

All models use Pydantic v2. Configuration models that accept plugin-defined
extensions use ``extra="allow"`` so that unknown keys are preserved in
``model_extra``.
"""

from __future__ import annotations

import enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class GrantType(str, enum.Enum):
    """OAuth2 grants used when no refresh token is available."""

    CLIENT_CREDENTIALS = "client_credentials"
    AUTHORIZATION_CODE = "authorization_code"
    PASSWORD = "password"


class ChallengeHeader(str, enum.Enum):
    """Which response header a profile reads authentication challenges from."""

    WWW_AUTHENTICATE = "www-authenticate"
    PROXY_AUTHENTICATE = "proxy-authenticate"


# --- Runtime models ---


class Credentials(BaseModel):
    """A username/password pair handed to authenticators with every call.

    Authenticators that need user credentials (HTTP Basic, the OAuth2
    password grant) read them from here unless they were configured with
    their own.
    """

    username: str
    password: str = ""

    @classmethod
    def parse(cls, raw: str) -> Credentials:
        """Split a ``"username:password"`` string on the first colon."""
        username, _, password = raw.partition(":")
        return cls(username=username, password=password)


class OAuth2Config(BaseModel):
    """Endpoint and client settings for one OAuth2 client.

    Example::

        OAuth2Config(
            token_url="https://auth.example.com/oauth/token",
            client_id="cli",
            client_secret="s3cret",
            scopes=["read"],
        )
    """

    token_url: str
    authorization_url: Optional[str] = None
    user_info_url: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    scopes: list[str] = Field(default_factory=list)
    grant_type: GrantType = GrantType.CLIENT_CREDENTIALS
    redirect_uri: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    expiry_margin: float = Field(
        default=30.0,
        description="Seconds before expiry at which a cached token counts as expired",
    )
    default_expires_in: float = Field(
        default=3600.0,
        description="Lifetime assumed when the provider omits expires_in",
    )
    timeout: float = Field(default=30.0, description="Token request timeout in seconds")


class TokenResponse(BaseModel):
    """A successful token endpoint response (:rfc:`6749` section 5.1)."""

    model_config = ConfigDict(extra="allow")

    access_token: str
    token_type: str = ""
    expires_in: Optional[float] = None
    refresh_token: Optional[str] = None
    scope: Optional[str] = None


# --- Configuration models ---


class AuthConfig(BaseModel):
    """One authentication mechanism configured on a :class:`Profile`.

    The ``type`` field selects the plugin that builds the authenticator
    (``basic``, ``bearer``, ``api_key``, ``oauth2_header``, ``oauth2_query``).
    ``scheme`` is the challenge scheme name the authenticator is registered
    under, and ``priority`` ranks it against other mechanisms that could
    answer the same challenge.

    Plugins may define their own fields beyond the ones declared here.
    Extra fields are preserved and accessible via ``model_extra``.

    Example::

        AuthConfig(type="basic", source="env:API_USER_PASS", priority=1)
    """

    model_config = ConfigDict(extra="allow")

    type: str = Field(
        description="Auth type: basic, bearer, api_key, oauth2_header, oauth2_query"
    )
    scheme: Optional[str] = Field(
        default=None,
        description="Challenge scheme name; defaults to the plugin's scheme",
    )
    priority: int = Field(
        default=0, description="Higher priorities win when several schemes match"
    )
    source: Optional[str] = Field(
        default=None,
        description="Credential source: env:VAR, file:/path, prompt, store:PROFILE",
    )
    header: Optional[str] = Field(
        default=None, description="Header name for api_key auth"
    )
    param_name: Optional[str] = Field(
        default=None, description="Query/form parameter name for api_key and oauth2_query"
    )
    location: str = Field(
        default="header", description="Where api_key auth sends the key: header, query"
    )
    preemptive: bool = Field(
        default=False, description="Send Basic credentials before any challenge"
    )
    # OAuth2 fields
    token_url: Optional[str] = None
    authorization_url: Optional[str] = None
    user_info_url: Optional[str] = None
    scopes: list[str] = Field(default_factory=list)
    client_id_source: Optional[str] = None
    client_secret_source: Optional[str] = None
    grant_type: GrantType = GrantType.CLIENT_CREDENTIALS
    redirect_uri: Optional[str] = None
    token_type: Optional[str] = Field(
        default=None, description="Override for the Authorization header token type"
    )
    persist: bool = Field(
        default=False, description="Persist OAuth2 tokens to the credential store"
    )


class RequestConfig(BaseModel):
    """Default HTTP request settings applied to every API call in a profile."""

    timeout: int = Field(default=30, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    max_auth_retries: int = Field(
        default=2, description="Resends allowed after handled authentication challenges"
    )


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/restauth/config.json``.

    See :func:`~restauth.config.resolve_config` for the full precedence chain.
    """

    default_profile: Optional[str] = None
    auto_select_single_profile: bool = True
    output: OutputConfig = Field(default_factory=OutputConfig)


class Profile(BaseModel):
    """Per-API profile stored as JSON under the ``profiles/`` config directory.

    A profile bundles the base URL of one API with every authentication
    mechanism the client should offer when that API challenges it.

    See Also:
        :func:`~restauth.config.load_profile`: Deserialise a profile by name.
        :meth:`~restauth.auth.manager.AuthManager.build_handler`: Turns the
        ``auth`` entries into a challenge handler.
    """

    model_config = ConfigDict(extra="allow")

    name: str
    base_url: Optional[str] = None
    challenge_header: ChallengeHeader = ChallengeHeader.WWW_AUTHENTICATE
    credentials_source: Optional[str] = Field(
        default=None,
        description="Source resolving to 'username:password' for challenge credentials",
    )
    auth: list[AuthConfig] = Field(default_factory=list)
    request: RequestConfig = Field(default_factory=RequestConfig)

    def auth_entry(self, auth_type: str) -> Optional[AuthConfig]:
        """Return the first auth entry of the given type, if any."""
        for entry in self.auth:
            if entry.type == auth_type:
                return entry
        return None
