"""Profile commands -- create, list, show and remove API profiles.

A profile names one API: its base URL, where challenges are read from, the
credentials offered to challenge handlers, and the list of auth entries
negotiated against each other.

Typical workflow::

    restauth profile add myapi --base-url https://api.example.com
    restauth auth add myapi --type basic --source env:MYAPI_USER_PASS
    restauth profile show myapi
"""

from __future__ import annotations

from typing import Optional

import typer

from restauth.commands import cli_errors
from restauth.output import format_response, get_output, info, success, suggest

profile_app = typer.Typer(no_args_is_help=True)


@profile_app.command("add")
def profile_add(
    name: str = typer.Argument(help="Profile name."),
    base_url: str = typer.Option(..., "--base-url", "-u", help="Base URL of the API."),
    credentials: Optional[str] = typer.Option(
        None,
        "--credentials",
        help="Source of 'username:password' handed to authenticators (env:VAR, file:/path, prompt).",
    ),
    proxy: bool = typer.Option(
        False, "--proxy", help="Read challenges from Proxy-Authenticate (407) instead."
    ),
    overwrite: bool = typer.Option(False, "--overwrite", help="Replace an existing profile."),
) -> None:
    """Create a profile.

    Example::

        restauth profile add myapi --base-url https://api.example.com
    """
    from restauth.config import profile_exists, save_profile
    from restauth.exceptions import InvalidUsageError
    from restauth.models import ChallengeHeader, Profile

    with cli_errors():
        if profile_exists(name) and not overwrite:
            raise InvalidUsageError(
                f"Profile '{name}' already exists (use --overwrite to replace it)"
            )
        profile = Profile(
            name=name,
            base_url=base_url,
            credentials_source=credentials,
            challenge_header=(
                ChallengeHeader.PROXY_AUTHENTICATE if proxy else ChallengeHeader.WWW_AUTHENTICATE
            ),
        )
        save_profile(profile)
    success(f'Profile "{name}" saved.')
    suggest(f"Add authentication: restauth auth add {name} --type <type>")


@profile_app.command("list")
def profile_list() -> None:
    """List profiles with their base URL and configured auth types."""
    from restauth.config import list_profiles, load_profile
    from restauth.exceptions import ConfigError

    names = list_profiles()
    if not names:
        info("No profiles configured.")
        suggest("Create one: restauth profile add <name> --base-url <url>")
        return

    rows: list[list[str]] = []
    for name in names:
        try:
            profile = load_profile(name)
        except ConfigError:
            rows.append([name, "", "error"])
            continue
        auth_types = ", ".join(entry.type for entry in profile.auth) or "none"
        rows.append([name, profile.base_url or "", auth_types])
    get_output().print_table(["Profile", "Base URL", "Auth"], rows, title="Profiles")


@profile_app.command("show")
def profile_show(name: str = typer.Argument(help="Profile name.")) -> None:
    """Print a profile's stored configuration."""
    from restauth.config import load_profile

    with cli_errors():
        profile = load_profile(name)
    format_response(profile.model_dump(mode="json", exclude_none=True))


@profile_app.command("remove")
def profile_remove(
    ctx: typer.Context,
    name: str = typer.Argument(help="Profile name."),
) -> None:
    """Delete a profile and any credentials stored for it."""
    from restauth.auth.credential_store import CredentialStore
    from restauth.config import delete_profile

    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force and not typer.confirm(f'Remove profile "{name}"?'):
        info("Cancelled.")
        raise typer.Exit()

    with cli_errors():
        delete_profile(name)
    CredentialStore(name).clear_all()
    success(f'Profile "{name}" removed.')
