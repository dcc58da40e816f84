"""The ``restauth request`` command -- send one authenticated API call.

The active profile's auth entries are assembled into a challenge handler,
so the request is pre-authenticated, answered when challenged and resent
exactly as a library caller of :class:`~restauth.client.AsyncClient` would
experience it.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Optional

import httpx
import typer

from restauth.commands import active_profile, cli_errors
from restauth.exceptions import InvalidUsageError
from restauth.models import Profile
from restauth.output import debug, format_response, print_data


def _pairs(values: Optional[list[str]], separator: str, what: str) -> dict[str, str]:
    result: dict[str, str] = {}
    for item in values or []:
        key, sep, value = item.partition(separator)
        if not sep or not key.strip():
            raise InvalidUsageError(f"Invalid {what} '{item}': expected KEY{separator}VALUE")
        result[key.strip()] = value.strip() if separator == ":" else value
    return result


def _parse_body(body: Optional[str]) -> Any:  # noqa: ANN401
    """Parse *body* as JSON if possible, returning the raw string on failure."""
    if body is None:
        return None
    try:
        return json.loads(body)
    except (json.JSONDecodeError, TypeError):
        return body


async def _send(
    profile: Profile,
    method: str,
    path: str,
    params: dict[str, str],
    headers: dict[str, str],
    body: Optional[str],
    form: dict[str, str],
    dry_run: bool,
) -> httpx.Response:
    from restauth.auth import create_default_manager
    from restauth.client import AsyncClient
    from restauth.config import resolve_credentials

    handler = create_default_manager().build_handler(profile)
    credentials = resolve_credentials(profile)
    debug(f"Schemes offered for {profile.name}: {[s for s, _ in handler.authenticators]}")

    parsed = _parse_body(body)
    async with AsyncClient(
        profile, authenticator=handler, credentials=credentials, dry_run=dry_run
    ) as client:
        return await client.request(
            method,
            path,
            params=params or None,
            headers=headers or None,
            json_body=parsed if not isinstance(parsed, str) else None,
            body=parsed if isinstance(parsed, str) else None,
            data=form or None,
        )


def request_command(
    ctx: typer.Context,
    method: str = typer.Argument(help="HTTP method, e.g. GET or POST."),
    path: str = typer.Argument(help="Path relative to the profile's base URL."),
    param: Optional[list[str]] = typer.Option(None, "--param", "-P", help="Query parameter KEY=VALUE."),
    header: Optional[list[str]] = typer.Option(None, "--header", "-H", help="Header 'Name: value'."),
    body: Optional[str] = typer.Option(None, "--body", "-d", help="Request body (JSON or raw text)."),
    form: Optional[list[str]] = typer.Option(None, "--form", "-F", help="Form field KEY=VALUE."),
) -> None:
    """Send an authenticated request and print the response body.

    Example::

        restauth --profile myapi request GET /users/me
        restauth --profile myapi request POST /items --body '{"name": "x"}'
    """
    obj = ctx.obj or {}
    with cli_errors():
        if body is not None and form:
            raise InvalidUsageError("--body and --form cannot be combined")
        profile = active_profile(ctx)
        response = asyncio.run(
            _send(
                profile,
                method.upper(),
                path,
                _pairs(param, "=", "parameter"),
                _pairs(header, ":", "header"),
                body,
                _pairs(form, "=", "form field"),
                bool(obj.get("dry_run")),
            )
        )

    debug(f"HTTP {response.status_code} {response.headers.get('content-type', '')}")
    if not response.content:
        return
    if "json" in response.headers.get("content-type", ""):
        format_response(response.json())
    else:
        print_data(response.text)
