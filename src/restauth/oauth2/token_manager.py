"""OAuth2 token lifecycle for a single configured client.

:class:`OAuth2TokenManager` owns the credential state of one OAuth2 client
(access token, refresh token, token type, expiry) and answers one question:
*what token should this request carry?* -- see :meth:`get_current_token`.

The state is shared by every request that uses the client, so acquisition is
serialised by an :class:`asyncio.Lock`:

* A cached, unexpired token is returned without I/O and without the lock.
* Otherwise the caller takes the lock and performs one token exchange. A
  caller that had to wait while another exchange committed reuses that
  result instead of starting its own, so a burst of concurrent forced
  refreshes costs the provider a single request.
* The new state is built off to the side and swapped in only after the
  exchange succeeded. A failed or cancelled exchange leaves the previous
  state untouched.

Token requests follow :rfc:`6749`: a refresh-token grant when a refresh
token is cached, otherwise the configured grant (client credentials,
resource-owner password, or a pending authorization code).
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from urllib.parse import parse_qsl

import httpx

from restauth.auth.credential_store import CredentialEntry, CredentialStore
from restauth.exceptions import AuthError, TokenExchangeError
from restauth.models import GrantType, OAuth2Config, TokenResponse

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OAuth2CredentialState:
    """Immutable snapshot of one client's credentials.

    An empty ``access_token`` means no token has been fetched yet.
    ``expires_at`` is an aware UTC datetime, or ``None`` for "unknown".
    ``lifetime`` is the validity in seconds the provider granted, when known.
    """

    access_token: str = ""
    refresh_token: str = ""
    token_type: str = ""
    expires_at: Optional[datetime] = None
    lifetime: Optional[float] = None

    def is_fresh(self, margin: float = 0.0) -> bool:
        """Whether the access token exists and is more than *margin* seconds from expiry."""
        if not self.access_token:
            return False
        if self.expires_at is None:
            return True
        return datetime.now(timezone.utc) + timedelta(seconds=margin) < self.expires_at


class OAuth2TokenManager:
    """Caches and renews the tokens of one OAuth2 client.

    Args:
        config: Endpoints and client settings.
        http_client: Optional shared :class:`httpx.AsyncClient` used for token
            requests. When omitted, a short-lived client is created per
            exchange.
        store: Optional credential store; state is loaded from it on
            construction and saved to it after every exchange.
        state: Initial credential state (e.g. a refresh token obtained
            elsewhere). Takes precedence over the store.
        auth_type: Label recorded on persisted credential entries.
    """

    def __init__(
        self,
        config: OAuth2Config,
        http_client: Optional[httpx.AsyncClient] = None,
        store: Optional[CredentialStore] = None,
        state: Optional[OAuth2CredentialState] = None,
        auth_type: str = "oauth2",
    ) -> None:
        self._config = config
        self._http_client = http_client
        self._store = store
        self._auth_type = auth_type
        self._lock = asyncio.Lock()
        self._generation = 0
        if state is None and store is not None:
            state = self._load(store)
        self._state = state or OAuth2CredentialState()

    # ------------------------------------------------------------------ #
    # State accessors
    # ------------------------------------------------------------------ #

    @property
    def config(self) -> OAuth2Config:
        return self._config

    @property
    def state(self) -> OAuth2CredentialState:
        return self._state

    @property
    def access_token(self) -> str:
        return self._state.access_token

    @property
    def refresh_token(self) -> str:
        return self._state.refresh_token

    @property
    def token_type(self) -> str:
        return self._state.token_type

    @property
    def expires_at(self) -> Optional[datetime]:
        return self._state.expires_at

    # ------------------------------------------------------------------ #
    # Token lifecycle
    # ------------------------------------------------------------------ #

    async def get_current_token(self, force_update: bool = False) -> str:
        """Return a usable access token, exchanging for a new one when needed.

        Args:
            force_update: Skip the cache and always obtain a new token, e.g.
                after the server rejected the current one.

        Returns:
            The access token.

        Raises:
            TokenExchangeError: If the token endpoint cannot be reached or
                rejects the request. No state is changed.
            AuthError: If the configured grant cannot run unattended (an
                authorization-code client without a pending code).
        """
        if not force_update and self._is_fresh():
            return self._state.access_token

        observed = self._generation
        async with self._lock:
            if (
                self._generation != observed
                and self._state.access_token
                and (force_update or self._is_fresh())
            ):
                logger.debug("Reusing token committed by a concurrent exchange")
                return self._state.access_token
            new_state = await self._exchange(self._state)
            self._commit(new_state)
            return new_state.access_token

    async def authorize(self, code: str) -> str:
        """Exchange an authorization code for tokens and commit them.

        Args:
            code: The ``code`` query parameter received on the redirect URI.

        Returns:
            The new access token.
        """
        async with self._lock:
            data = {"grant_type": GrantType.AUTHORIZATION_CODE.value, "code": code}
            if self._config.redirect_uri:
                data["redirect_uri"] = self._config.redirect_uri
            token = await self._request_token(data)
            new_state = self._state_from(token, self._state)
            self._commit(new_state)
            return new_state.access_token

    def get_login_link_uri(self, state: Optional[str] = None) -> str:
        """Build the authorization URL the user must visit to grant access.

        Raises:
            AuthError: If no ``authorization_url`` is configured.
        """
        if not self._config.authorization_url:
            raise AuthError("authorization_url is required to build a login link")
        params: dict[str, str] = {"response_type": "code"}
        if self._config.client_id:
            params["client_id"] = self._config.client_id
        if self._config.redirect_uri:
            params["redirect_uri"] = self._config.redirect_uri
        if self._config.scopes:
            params["scope"] = " ".join(self._config.scopes)
        if state:
            params["state"] = state
        return str(httpx.URL(self._config.authorization_url).copy_merge_params(params))

    async def get_user_info(self) -> Any:
        """Fetch the provider's user-info document with the current token.

        Raises:
            AuthError: If no ``user_info_url`` is configured or the provider
                rejects the request.
        """
        if not self._config.user_info_url:
            raise AuthError("user_info_url is not configured")
        token = await self.get_current_token()
        token_type = self._state.token_type or "Bearer"
        headers = {"Authorization": f"{token_type} {token}", "Accept": "application/json"}
        try:
            response = await self._send("GET", self._config.user_info_url, headers=headers)
        except httpx.HTTPError as exc:
            raise AuthError(f"User info request failed: {exc}") from exc
        if response.status_code >= 400:
            raise AuthError(f"User info request failed with status {response.status_code}")
        return response.json()

    def clear(self) -> None:
        """Forget all cached credentials, including any persisted copy."""
        self._state = OAuth2CredentialState()
        if self._store is not None:
            self._store.clear()

    # ------------------------------------------------------------------ #
    # Exchange helpers
    # ------------------------------------------------------------------ #

    def _is_fresh(self) -> bool:
        margin = self._config.expiry_margin
        lifetime = self._state.lifetime
        # Short-lived tokens would otherwise never count as fresh.
        if lifetime is not None:
            margin = min(margin, lifetime / 2)
        return self._state.is_fresh(margin)

    async def _exchange(self, current: OAuth2CredentialState) -> OAuth2CredentialState:
        """Run the appropriate grant and return the resulting state (uncommitted)."""
        config = self._config
        data: dict[str, str]
        if current.refresh_token:
            data = {"grant_type": "refresh_token", "refresh_token": current.refresh_token}
        elif config.grant_type is GrantType.CLIENT_CREDENTIALS:
            data = {"grant_type": GrantType.CLIENT_CREDENTIALS.value}
        elif config.grant_type is GrantType.PASSWORD:
            if not config.username:
                raise AuthError("The password grant requires a username")
            data = {
                "grant_type": GrantType.PASSWORD.value,
                "username": config.username,
                "password": config.password or "",
            }
        else:
            raise AuthError(
                "Authorization required: open the login link and pass the "
                "returned code to authorize()"
            )

        if config.scopes and "refresh_token" not in data:
            data["scope"] = " ".join(config.scopes)

        logger.debug("Requesting token from %s (grant_type=%s)", config.token_url, data["grant_type"])
        token = await self._request_token(data)
        return self._state_from(token, current)

    async def _request_token(self, data: dict[str, str]) -> TokenResponse:
        """POST *data* to the token endpoint and parse the response.

        Raises:
            TokenExchangeError: On network errors, error statuses, or a
                response without ``access_token``.
        """
        form = dict(data)
        if self._config.client_id:
            form["client_id"] = self._config.client_id
        if self._config.client_secret:
            form["client_secret"] = self._config.client_secret

        try:
            response = await self._send(
                "POST",
                self._config.token_url,
                data=form,
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as exc:
            raise TokenExchangeError(f"Token request failed: {exc}") from exc

        payload = _parse_token_payload(response)
        if response.status_code >= 400:
            error = payload.get("error")
            description = payload.get("error_description") or response.text[:200]
            raise TokenExchangeError(
                f"Token request failed with status {response.status_code}: "
                f"{error or ''} {description}".strip(),
                status_code=response.status_code,
                error=error,
            )
        if "access_token" not in payload:
            raise TokenExchangeError(
                "Token response missing 'access_token' field",
                status_code=response.status_code,
                error=payload.get("error"),
            )
        try:
            return TokenResponse.model_validate(payload)
        except ValueError as exc:
            raise TokenExchangeError(f"Malformed token response: {exc}") from exc

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.request(method, url, **kwargs)
        async with httpx.AsyncClient(timeout=self._config.timeout) as client:
            return await client.request(method, url, **kwargs)

    def _state_from(
        self,
        token: TokenResponse,
        previous: OAuth2CredentialState,
    ) -> OAuth2CredentialState:
        expires_in = token.expires_in
        if expires_in is None:
            expires_in = self._config.default_expires_in
        lifetime = float(expires_in)
        return replace(
            previous,
            access_token=token.access_token,
            # Providers that do not rotate refresh tokens omit them.
            refresh_token=token.refresh_token or previous.refresh_token,
            token_type=token.token_type or previous.token_type,
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=lifetime),
            lifetime=lifetime,
        )

    def _commit(self, new_state: OAuth2CredentialState) -> None:
        self._state = new_state
        self._generation += 1
        logger.debug(
            "Committed new access token (expires %s, refresh token %s)",
            new_state.expires_at.isoformat() if new_state.expires_at else "never",
            "present" if new_state.refresh_token else "absent",
        )
        if self._store is not None:
            self._store.save(
                CredentialEntry(
                    auth_type=self._auth_type,
                    credential=new_state.access_token,
                    expires_at=new_state.expires_at,
                    metadata={
                        "refresh_token": new_state.refresh_token,
                        "token_type": new_state.token_type,
                        "lifetime": new_state.lifetime,
                    },
                )
            )

    @staticmethod
    def _load(store: CredentialStore) -> Optional[OAuth2CredentialState]:
        entry = store.load()
        if entry is None:
            return None
        expires_at = entry.expires_at
        if expires_at is not None and expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return OAuth2CredentialState(
            access_token=entry.credential,
            refresh_token=str(entry.metadata.get("refresh_token") or ""),
            token_type=str(entry.metadata.get("token_type") or ""),
            expires_at=expires_at,
            lifetime=entry.metadata.get("lifetime"),
        )


def _parse_token_payload(response: httpx.Response) -> dict[str, Any]:
    """Decode a token endpoint body as JSON, or as a form-encoded string."""
    content_type = response.headers.get("content-type", "")
    text = response.text
    if "json" in content_type:
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            return payload
    if not text:
        return {}
    try:
        payload = response.json()
        if isinstance(payload, dict):
            return payload
    except ValueError:
        pass
    return dict(parse_qsl(text))
