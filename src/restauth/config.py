"""Configuration management with XDG paths, atomic writes, and precedence resolution.

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.restauth/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_data_dir`, :func:`get_profiles_dir`.
* **Global config** -- a single :class:`~restauth.models.GlobalConfig` JSON file.
* **Profiles** -- one JSON file per API, each deserialised into a
  :class:`~restauth.models.Profile`.
* **Precedence resolution** -- :func:`resolve_config` picks the active
  profile from the CLI flag, ``RESTAUTH_PROFILE``, ``./restauth.json`` and
  the global config, in that order.
* **Credential resolution** -- :func:`resolve_credential` reads secrets from
  env vars, files, interactive prompts, or the credential store.

All file writes go through :func:`_atomic_write` (temp file, fsync, rename).
"""

from __future__ import annotations

import getpass
import json
import os
import platform
import sys
import tempfile
from pathlib import Path
from typing import Any, Callable, Optional

from restauth.exceptions import ConfigError
from restauth.models import Credentials, GlobalConfig, Profile

_APP_NAME = "restauth"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "restauth.json"
_PROFILE_ENV_VAR = "RESTAUTH_PROFILE"
_BASE_URL_ENV_VAR = "RESTAUTH_BASE_URL"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    return Path.home().joinpath(*default_segments)


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/restauth/`` (default ``~/.config/restauth/``).
    On macOS/Windows: ``~/.restauth/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (stored tokens, crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/restauth/`` (default ``~/.local/share/restauth/``).
    On macOS/Windows: ``~/.restauth/data/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}" / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_profiles_dir() -> Path:
    """Return ``<config_dir>/profiles/``, creating it if necessary."""
    path = get_config_dir() / "profiles"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Write *data* to *path* atomically using a sibling temp file and ``os.replace``.

    When *mode* is given the temp file gets those permissions before any
    content is written, so secrets are never world-readable.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        if mode is not None:
            os.chmod(tmp_path, mode)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


def _read_json(path: Path, what: str) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid {what} at {path}: {exc}") from exc


# --- Global config ---


def _global_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration, returning defaults when the file is absent.

    Raises:
        ConfigError: If the file exists but is invalid JSON or fails validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    data = _read_json(path, "global config")
    try:
        return GlobalConfig.model_validate(data)
    except ValueError as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk."""
    data = config.model_dump(mode="json")
    _atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Profiles ---


def _profile_path(name: str) -> Path:
    return get_profiles_dir() / f"{name}.json"


def list_profiles() -> list[str]:
    """Return all profile names found in the profiles directory, sorted alphabetically."""
    return sorted(p.stem for p in get_profiles_dir().glob("*.json") if p.is_file())


def load_profile(name: str) -> Profile:
    """Load and validate a profile from disk.

    Raises:
        ConfigError: If the profile does not exist, is invalid JSON, or fails
            validation.
    """
    path = _profile_path(name)
    if not path.is_file():
        raise ConfigError(f"Profile '{name}' not found at {path}")
    data = _read_json(path, f"profile '{name}'")
    try:
        return Profile.model_validate(data)
    except ValueError as exc:
        raise ConfigError(f"Invalid profile '{name}' at {path}: {exc}") from exc


def save_profile(profile: Profile) -> None:
    """Persist a profile atomically; the file name is derived from ``profile.name``."""
    data = profile.model_dump(mode="json", exclude_none=True)
    _atomic_write(_profile_path(profile.name), json.dumps(data, indent=2) + "\n")


def delete_profile(name: str) -> None:
    """Delete a profile's JSON file.

    Raises:
        ConfigError: If the profile does not exist.
    """
    path = _profile_path(name)
    if not path.is_file():
        raise ConfigError(f"Profile '{name}' not found at {path}")
    path.unlink()


def profile_exists(name: str) -> bool:
    return _profile_path(name).is_file()


# --- Project-local config ---


def load_project_config() -> Optional[dict[str, Any]]:
    """Load ``./restauth.json`` if present.

    A project file typically pins ``default_profile`` so that a repository
    always talks to the same API.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    return _read_json(path, "project config")


# --- Precedence resolution ---


def resolve_config(
    cli_profile: Optional[str] = None,
    cli_base_url: Optional[str] = None,
) -> tuple[GlobalConfig, Optional[Profile]]:
    """Resolve the global config and the active profile.

    Precedence (high to low):
        1. CLI flags (``cli_profile``, ``cli_base_url``)
        2. Environment variables (``RESTAUTH_PROFILE``, ``RESTAUTH_BASE_URL``)
        3. Project config (``./restauth.json``)
        4. User config (``~/.config/restauth/config.json``)

    When nothing names a profile and exactly one exists, it is auto-selected
    (controlled by ``auto_select_single_profile``).

    Returns:
        A tuple of ``(global_config, active_profile_or_None)``.
    """
    global_cfg = load_global_config()

    profile_name: Optional[str] = global_cfg.default_profile
    project = load_project_config()
    if project is not None and project.get("default_profile"):
        profile_name = project["default_profile"]
    env_profile = os.environ.get(_PROFILE_ENV_VAR)
    if env_profile:
        profile_name = env_profile
    if cli_profile is not None:
        profile_name = cli_profile

    if profile_name is None and global_cfg.auto_select_single_profile:
        profiles = list_profiles()
        if len(profiles) == 1:
            profile_name = profiles[0]

    profile: Optional[Profile] = None
    if profile_name is not None:
        profile = load_profile(profile_name)
        env_base_url = os.environ.get(_BASE_URL_ENV_VAR)
        if cli_base_url is not None:
            profile.base_url = cli_base_url
        elif env_base_url:
            profile.base_url = env_base_url

    return global_cfg, profile


# --- Credential source resolution ---


def _from_env(name: str) -> str:
    if name not in os.environ:
        raise ConfigError(f"Environment variable '{name}' is not set")
    return os.environ[name]


def _from_file(location: str) -> str:
    path = Path(location).expanduser()
    try:
        return path.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        raise ConfigError(f"Credential file not found: {path}") from None
    except OSError as exc:
        raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc


def _from_store(profile_name: str) -> str:
    from restauth.auth.credential_store import CredentialStore

    for entry in CredentialStore(profile_name).entries().values():
        if entry.is_valid():
            return entry.credential
    raise ConfigError(f"No valid credential in store for profile '{profile_name}'")


def _from_prompt(label: str) -> str:
    if not sys.stdin.isatty():
        raise ConfigError("Cannot prompt for credentials: stdin is not a TTY")
    return getpass.getpass(f"{label or 'Credential'}: ")


_RESOLVERS: dict[str, Callable[[str], str]] = {
    "env": _from_env,
    "file": _from_file,
    "store": _from_store,
    "prompt": _from_prompt,
}


def resolve_credential(source: str) -> str:
    """Resolve a credential from a ``kind:argument`` source descriptor.

    ``env:VAR`` reads an environment variable, ``file:PATH`` the stripped
    content of a file, ``store:PROFILE`` the valid stored token of another
    profile, and ``prompt`` (or ``prompt:LABEL``) asks on the terminal.

    Raises:
        ConfigError: If the kind is unknown or the credential is unavailable.
    """
    kind, _, argument = source.partition(":")
    resolver = _RESOLVERS.get(kind)
    if resolver is None:
        raise ConfigError(f"Unknown credential source format: {source}")
    return resolver(argument)


def resolve_credentials(profile: Profile) -> Optional[Credentials]:
    """Resolve the profile's ``credentials_source`` into :class:`Credentials`."""
    if not profile.credentials_source:
        return None
    return Credentials.parse(resolve_credential(profile.credentials_source))
