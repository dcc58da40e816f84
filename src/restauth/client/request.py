"""Mutable request description handed to authenticators.

:class:`RestRequest` holds everything an authenticator may touch before a
send: headers, query parameters and form fields. The
:class:`~restauth.client.async_client.AsyncClient` keeps one instance for the
lifetime of a logical request, so mutations made by ``pre_authenticate``
survive across challenge retries, and builds a fresh :class:`httpx.Request`
from it for every attempt.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

_BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


class RestRequest:
    """An outgoing request that authenticators can modify in place.

    Args:
        method: HTTP method (case-insensitive).
        url: Absolute URL, or a path relative to the client's base URL.
        params: Query-string parameters.
        headers: Request headers. Stored as :class:`httpx.Headers`, so
            lookups are case-insensitive.
        data: Form fields sent as ``application/x-www-form-urlencoded``.
        json_body: JSON-serialisable body.
        content: Raw body.
    """

    def __init__(
        self,
        method: str,
        url: str,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        data: Optional[dict[str, Any]] = None,
        json_body: Optional[Any] = None,
        content: Optional[str | bytes] = None,
    ) -> None:
        self.method = method.upper()
        self.url = url
        self.params: dict[str, Any] = dict(params or {})
        self.headers = httpx.Headers(headers or {})
        self.data: Optional[dict[str, Any]] = dict(data) if data is not None else None
        self.json_body = json_body
        self.content = content

    @property
    def has_form_body(self) -> bool:
        """Whether parameters added to this request belong in a form body."""
        if self.json_body is not None or self.content is not None:
            return False
        return self.data is not None or self.method in _BODY_METHODS

    def header(self, name: str) -> Optional[str]:
        """Return the last value of header *name*, or ``None``."""
        values = self.headers.get_list(name)
        return values[-1] if values else None

    def set_header(self, name: str, value: str) -> None:
        """Add or overwrite header *name*."""
        self.headers[name] = value

    def add_or_update_parameter(self, name: str, value: Any) -> None:
        """Add or overwrite a GET-or-POST parameter.

        Requests that carry (or may carry) a form body receive the parameter
        as a form field; everything else receives it in the query string.
        """
        if self.has_form_body:
            if self.data is None:
                self.data = {}
            self.data[name] = value
        else:
            self.params[name] = value

    def parameter(self, name: str) -> Any:
        """Return a GET-or-POST parameter value, looking at the body first."""
        if self.data is not None and name in self.data:
            return self.data[name]
        return self.params.get(name)

    def build(self, client: httpx.AsyncClient) -> httpx.Request:
        """Build the :class:`httpx.Request` for one send attempt."""
        kwargs: dict[str, Any] = {
            "method": self.method,
            "url": self.url,
            "params": self.params or None,
            "headers": self.headers,
        }
        if self.data is not None:
            kwargs["data"] = self.data
        elif self.json_body is not None:
            kwargs["json"] = self.json_body
        elif self.content is not None:
            kwargs["content"] = self.content
        return client.build_request(**kwargs)

    def __repr__(self) -> str:
        return f"<RestRequest {self.method} {self.url}>"
