"""Built-in CLI sub-commands for restauth.

* :mod:`~restauth.commands.profile` -- create, inspect and delete profiles.
* :mod:`~restauth.commands.auth` -- manage auth entries, OAuth2 tokens,
  and inspect challenge negotiation.
* :mod:`~restauth.commands.request` -- send an authenticated request.

The helpers below are shared by the command modules.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

import typer

from restauth.exceptions import ConfigError, RestAuthError
from restauth.models import Profile
from restauth.output import error


@contextmanager
def cli_errors() -> Iterator[None]:
    """Turn :class:`RestAuthError` into an error message and its exit code."""
    try:
        yield
    except RestAuthError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def active_profile(ctx: typer.Context) -> Profile:
    """Resolve the profile selected by ``--profile``, the environment or config.

    Raises:
        ConfigError: If no profile can be determined.
    """
    from restauth.config import resolve_config

    obj = ctx.obj or {}
    _, profile = resolve_config(obj.get("profile"), obj.get("base_url"))
    if profile is None:
        raise ConfigError(
            "No profile selected. Pass --profile, set RESTAUTH_PROFILE, "
            "or run 'restauth profile add'."
        )
    return profile
