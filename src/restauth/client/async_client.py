"""Asynchronous HTTP client that drives challenge-based authentication.

:class:`AsyncClient` wraps :class:`httpx.AsyncClient` and runs the
authentication protocol around every logical request:

1. Before every send (including resends) it asks the authenticator whether
   it can pre-authenticate and, if so, lets it attach credentials.
2. When the response is a ``401``/``407`` challenge and the authenticator
   can handle it, the authenticator remediates (typically by refreshing a
   token) and the request is sent again, at most
   :attr:`~restauth.models.RequestConfig.max_auth_retries` times.
3. Whatever response remains is mapped to a typed exception when its status
   is an error.

The client never retries for any other reason.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Optional

import httpx

from restauth.client.request import RestRequest
from restauth.exceptions import AuthError, ConnectionError_, NotFoundError, ServerError
from restauth.models import Credentials, Profile
from restauth.output import get_output

if TYPE_CHECKING:
    from restauth.auth.base import Authenticator

logger = logging.getLogger(__name__)

CHALLENGE_STATUSES = frozenset({401, 407})


class AsyncClient:
    """Asynchronous HTTP client for API calls. Must be used as an async context manager.

    Args:
        profile: Supplies ``base_url`` and request settings (timeout, SSL
            verification, challenge retry budget).
        authenticator: Usually an
            :class:`~restauth.auth.handler.AuthenticationChallengeHandler`.
            When ``None``, requests are sent unauthenticated.
        credentials: Username/password handed to the authenticator on every
            call.
        transport: Optional httpx transport, e.g. :class:`httpx.MockTransport`.
        dry_run: Print the pre-authenticated request to stderr and return a
            synthetic 200 response without network I/O.

    Example::

        handler = create_default_manager().build_handler(profile)
        async with AsyncClient(profile, authenticator=handler) as client:
            response = await client.get("/users")
    """

    def __init__(
        self,
        profile: Profile,
        authenticator: Optional[Authenticator] = None,
        credentials: Optional[Credentials] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        dry_run: bool = False,
    ) -> None:
        self._profile = profile
        self._authenticator = authenticator
        self._credentials = credentials
        self._transport = transport
        self._dry_run = dry_run
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def profile(self) -> Profile:
        return self._profile

    @property
    def authenticator(self) -> Optional[Authenticator]:
        return self._authenticator

    @property
    def credentials(self) -> Optional[Credentials]:
        return self._credentials

    @property
    def http_client(self) -> httpx.AsyncClient:
        """The underlying :class:`httpx.AsyncClient` (only inside the context)."""
        assert self._client is not None, "Client not initialised -- use as async context manager"
        return self._client

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> AsyncClient:
        config = self._profile.request
        self._client = httpx.AsyncClient(
            base_url=self._profile.base_url or "",
            timeout=config.timeout,
            verify=config.verify_ssl,
            follow_redirects=True,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------ #
    # Public request methods
    # ------------------------------------------------------------------ #

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        json_body: Optional[Any] = None,
        body: Optional[str] = None,
        data: Optional[dict[str, Any]] = None,
    ) -> httpx.Response:
        """Send a request, answering authentication challenges along the way.

        Args:
            method: HTTP method.
            path: URL path appended to the profile's ``base_url``.
            params: Query parameters.
            headers: Extra request headers.
            json_body: JSON-serialisable body.
            body: Raw string body.
            data: Form-encoded body.

        Returns:
            The final :class:`httpx.Response`.

        Raises:
            AuthError: On 401 / 403 / 407 once challenges can no longer be
                handled.
            NotFoundError: On 404.
            ServerError: On any other error status.
            ConnectionError_: On network / timeout errors.
        """
        rest = RestRequest(
            method,
            path,
            params=params,
            headers=headers,
            data=data,
            json_body=json_body,
            content=body,
        )
        if self._dry_run:
            await self._pre_authenticate(rest)
            return self._print_dry_run(rest)
        response = await self.send(rest)
        self._map_response_error(response)
        return response

    async def send(self, rest: RestRequest) -> httpx.Response:
        """Run the pre-authenticate / challenge loop for *rest* without error mapping."""
        max_retries = self._profile.request.max_auth_retries
        retries = 0
        while True:
            await self._pre_authenticate(rest)
            response = await self._send_once(rest)
            if not self._should_retry(rest, response):
                return response
            if retries >= max_retries:
                logger.debug("Challenge retry budget (%d) exhausted for %r", max_retries, rest)
                return response
            assert self._authenticator is not None
            await self._authenticator.handle_challenge(self, rest, self._credentials, response)
            retries += 1
            get_output().debug(
                f"HTTP {response.status_code} challenge handled, resending "
                f"(attempt {retries}/{max_retries})"
            )

    async def get(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PUT", path, **kwargs)

    async def patch(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PATCH", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("DELETE", path, **kwargs)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    async def _pre_authenticate(self, rest: RestRequest) -> None:
        auth = self._authenticator
        if auth is not None and auth.can_pre_authenticate(self, rest, self._credentials):
            await auth.pre_authenticate(self, rest, self._credentials)

    def _should_retry(self, rest: RestRequest, response: httpx.Response) -> bool:
        if self._authenticator is None or response.status_code not in CHALLENGE_STATUSES:
            return False
        return self._authenticator.can_handle_challenge(self, rest, self._credentials, response)

    async def _send_once(self, rest: RestRequest) -> httpx.Response:
        client = self.http_client
        try:
            return await client.send(rest.build(client))
        except httpx.TransportError as exc:
            raise ConnectionError_(f"Connection failed: {exc}") from exc

    def _map_response_error(self, response: httpx.Response) -> None:
        """Raise a typed exception for error HTTP status codes."""
        status = response.status_code
        if status < 400:
            return

        try:
            detail = response.json()
            if isinstance(detail, dict):
                msg = detail.get("message") or detail.get("error") or detail.get("detail") or ""
            else:
                msg = str(detail)
        except ValueError:
            msg = response.text[:200] if response.text else ""

        full_msg = f"HTTP {status}: {msg}" if msg else f"HTTP {status}"

        if status in (401, 403, 407):
            raise AuthError(full_msg)
        if status == 404:
            raise NotFoundError(full_msg)
        raise ServerError(full_msg)

    def _print_dry_run(self, rest: RestRequest) -> httpx.Response:
        """Print the request to stderr and return a synthetic 200 response."""
        output = get_output()
        request = rest.build(self.http_client)
        output.info(f"[dry-run] {request.method} {request.url}")
        for key, value in request.headers.items():
            output.info(f"  Header: {key}: {value}")
        if rest.data:
            output.info(f"  Body (form): {json.dumps(rest.data, indent=2, default=str)}")
        elif rest.json_body is not None:
            output.info(f"  Body (JSON): {json.dumps(rest.json_body, indent=2, default=str)}")
        elif rest.content is not None:
            output.info(f"  Body: {rest.content!r}")

        return httpx.Response(
            status_code=200,
            headers={"content-type": "application/json"},
            json={"dry_run": True, "message": "Request was not sent"},
            request=request,
        )
