"""Auth commands -- manage auth entries, OAuth2 tokens and challenges.

Provides the ``restauth auth`` sub-command group. Entries added with
``auth add`` are turned into a challenge handler whenever a request is sent;
the OAuth2 commands operate on the token manager of the profile's first
OAuth2 entry.

Typical workflow::

    restauth auth add myapi --type oauth2_header --token-url https://id.example.com/token \\
        --client-id-source env:CLIENT_ID --client-secret-source env:CLIENT_SECRET
    restauth auth token --profile myapi
    restauth auth challenge 'Bearer realm="api", Basic realm="api"' --profile myapi
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Optional

import typer

from restauth.commands import active_profile, cli_errors
from restauth.models import AuthConfig, GrantType, Profile
from restauth.output import format_response, get_output, info, print_data, success, suggest

if TYPE_CHECKING:
    from restauth.oauth2 import OAuth2TokenManager

auth_app = typer.Typer(no_args_is_help=True)

_OAUTH2_TYPES = ("oauth2_header", "oauth2_query")


def _oauth2_entry(profile: Profile) -> AuthConfig:
    from restauth.exceptions import InvalidUsageError

    for entry in profile.auth:
        if entry.type in _OAUTH2_TYPES:
            return entry
    raise InvalidUsageError(f"Profile '{profile.name}' has no OAuth2 auth entry")


def _token_manager(ctx: typer.Context) -> OAuth2TokenManager:
    from restauth.plugins.oauth2 import get_token_manager

    profile = active_profile(ctx)
    return get_token_manager(_oauth2_entry(profile), profile)


@auth_app.command("add")
def auth_add(
    profile_name: str = typer.Argument(help="Profile name."),
    auth_type: str = typer.Option(
        ...,
        "--type",
        "-t",
        help="Auth type: basic, bearer, api_key, oauth2_header, oauth2_query.",
    ),
    scheme: Optional[str] = typer.Option(
        None, "--scheme", help="Challenge scheme name (defaults to the type's scheme)."
    ),
    priority: int = typer.Option(0, "--priority", help="Higher wins when several schemes match."),
    source: Optional[str] = typer.Option(
        None, "--source", "-s", help="Credential source: env:VAR, file:/path, prompt."
    ),
    header: Optional[str] = typer.Option(None, "--header", help="Header name (api_key)."),
    param_name: Optional[str] = typer.Option(
        None, "--param-name", help="Parameter name (api_key, oauth2_query)."
    ),
    location: str = typer.Option("header", "--location", help="api_key placement: header, query."),
    preemptive: bool = typer.Option(
        False, "--preemptive", help="Send Basic credentials before any challenge."
    ),
    token_url: Optional[str] = typer.Option(None, "--token-url", help="OAuth2 token endpoint."),
    authorization_url: Optional[str] = typer.Option(
        None, "--authorization-url", help="OAuth2 authorization endpoint."
    ),
    user_info_url: Optional[str] = typer.Option(
        None, "--user-info-url", help="OAuth2 user-info endpoint."
    ),
    client_id_source: Optional[str] = typer.Option(
        None, "--client-id-source", help="Source of the OAuth2 client id."
    ),
    client_secret_source: Optional[str] = typer.Option(
        None, "--client-secret-source", help="Source of the OAuth2 client secret."
    ),
    scopes: Optional[list[str]] = typer.Option(None, "--scope", help="OAuth2 scope (repeatable)."),
    grant_type: GrantType = typer.Option(
        GrantType.CLIENT_CREDENTIALS, "--grant-type", help="OAuth2 grant used without a refresh token."
    ),
    redirect_uri: Optional[str] = typer.Option(None, "--redirect-uri", help="OAuth2 redirect URI."),
    token_type: Optional[str] = typer.Option(
        None, "--token-type", help="Override the Authorization header token type."
    ),
    persist: bool = typer.Option(False, "--persist", help="Store OAuth2 tokens between runs."),
) -> None:
    """Append an auth entry to a profile.

    Example::

        restauth auth add myapi --type basic --source env:MYAPI_USER_PASS --priority 1
        restauth auth add myapi --type api_key --header X-API-Key --source env:MYAPI_KEY
    """
    from restauth.auth import create_default_manager
    from restauth.config import load_profile, save_profile
    from restauth.exceptions import InvalidUsageError

    with cli_errors():
        profile = load_profile(profile_name)
        entry = AuthConfig(
            type=auth_type,
            scheme=scheme,
            priority=priority,
            source=source,
            header=header,
            param_name=param_name,
            location=location,
            preemptive=preemptive,
            token_url=token_url,
            authorization_url=authorization_url,
            user_info_url=user_info_url,
            client_id_source=client_id_source,
            client_secret_source=client_secret_source,
            scopes=scopes or [],
            grant_type=grant_type,
            redirect_uri=redirect_uri,
            token_type=token_type,
            persist=persist,
        )
        problems = create_default_manager().get_plugin(auth_type).validate_config(entry)
        if problems:
            raise InvalidUsageError("; ".join(problems))
        profile.auth.append(entry)
        save_profile(profile)

    success(f'Added {auth_type} auth to "{profile_name}".')
    suggest(f"Try it: restauth --profile {profile_name} request GET /")


@auth_app.command("list")
def auth_list(ctx: typer.Context) -> None:
    """List the auth entries of the active profile in negotiation order."""
    with cli_errors():
        profile = active_profile(ctx)

    if not profile.auth:
        info(f'Profile "{profile.name}" has no auth entries.')
        return
    entries = sorted(profile.auth, key=lambda e: -e.priority)
    rows = [
        [entry.type, entry.scheme or "(default)", str(entry.priority), entry.source or ""]
        for entry in entries
    ]
    get_output().print_table(["Type", "Scheme", "Priority", "Source"], rows, title=profile.name)


@auth_app.command("token")
def auth_token(
    ctx: typer.Context,
    force: bool = typer.Option(False, "--force", help="Always fetch a new token."),
) -> None:
    """Print a current OAuth2 access token, fetching one if needed."""
    with cli_errors():
        manager = _token_manager(ctx)
        token = asyncio.run(manager.get_current_token(force_update=force))
    print_data(token)
    if manager.expires_at is not None:
        info(f"Expires at {manager.expires_at.isoformat()}")


@auth_app.command("login-url")
def auth_login_url(
    ctx: typer.Context,
    state: Optional[str] = typer.Option(None, "--state", help="Opaque state echoed back by the provider."),
) -> None:
    """Print the URL that starts the OAuth2 authorization-code flow."""
    with cli_errors():
        url = _token_manager(ctx).get_login_link_uri(state)
    print_data(url)
    suggest("After approving, run: restauth auth authorize <code>")


@auth_app.command("authorize")
def auth_authorize(
    ctx: typer.Context,
    code: str = typer.Argument(help="Authorization code from the redirect."),
) -> None:
    """Exchange an authorization code for tokens."""
    with cli_errors():
        manager = _token_manager(ctx)
        asyncio.run(manager.authorize(code))
    success("Authorization complete.")
    if not manager.refresh_token:
        info("The provider returned no refresh token; re-authorize when the token expires.")


@auth_app.command("userinfo")
def auth_userinfo(ctx: typer.Context) -> None:
    """Print the OAuth2 provider's user-info document."""
    with cli_errors():
        document = asyncio.run(_token_manager(ctx).get_user_info())
    format_response(document)


@auth_app.command("logout")
def auth_logout(ctx: typer.Context) -> None:
    """Forget cached and stored OAuth2 tokens of the active profile."""
    from restauth.auth.credential_store import CredentialStore
    from restauth.plugins.oauth2 import clear_token_managers

    with cli_errors():
        profile = active_profile(ctx)
    clear_token_managers()
    CredentialStore(profile.name).clear_all()
    success(f'Logged out of "{profile.name}".')


@auth_app.command("challenge")
def auth_challenge(
    ctx: typer.Context,
    header_value: str = typer.Argument(help="Value of a WWW-Authenticate / Proxy-Authenticate header."),
) -> None:
    """Parse a challenge header and show which auth entry would answer it.

    Example::

        restauth auth challenge 'Digest realm="api", Basic realm="api"'
    """
    import httpx

    from restauth.auth import create_default_manager, parse_challenge_header
    from restauth.client import AsyncClient, RestRequest
    from restauth.config import resolve_config, resolve_credentials

    rows = []
    for entry in parse_challenge_header(header_value):
        detail = entry.token68 or ", ".join(f"{k}={v}" for k, v in entry.params.items())
        rows.append([entry.scheme, detail])
    output = get_output()
    output.print_table(["Scheme", "Parameters"], rows, title="Challenges")

    obj = ctx.obj or {}
    with cli_errors():
        _, profile = resolve_config(obj.get("profile"), obj.get("base_url"))
    if profile is None:
        return

    with cli_errors():
        handler = create_default_manager().build_handler(profile)
        credentials = resolve_credentials(profile)
    response = httpx.Response(
        handler.header.status_code,
        headers={handler.header.value: header_value},
    )
    client = AsyncClient(profile, authenticator=handler, credentials=credentials)
    candidates = handler.candidates(client, RestRequest("GET", "/"), credentials, response)
    if not candidates:
        output.warning(f'No auth entry of "{profile.name}" can answer this challenge.')
        return
    info(
        f"Selected: {candidates[0].scheme} (priority {candidates[0].priority}) "
        f"out of {len(candidates)} candidate(s)"
    )
