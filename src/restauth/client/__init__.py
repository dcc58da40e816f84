"""HTTP client for restauth.

:class:`AsyncClient` wraps :class:`httpx.AsyncClient` and runs the
authentication protocol (pre-authentication before every send, challenge
handling and resend after a ``401``/``407``). :class:`RestRequest` is the
mutable request description that authenticators modify.

Example::

    from restauth.client import AsyncClient

    async with AsyncClient(profile, authenticator=handler) as client:
        resp = await client.get("/users")
"""

from restauth.client.async_client import AsyncClient
from restauth.client.request import RestRequest

__all__ = ["AsyncClient", "RestRequest"]
