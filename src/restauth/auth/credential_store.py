"""Persistent credential store scoped per profile.

Stores credential state in
``~/.local/share/restauth/credentials/<profile>.json`` (XDG) or the
platform-equivalent directory. Each file maps a key to one
:class:`CredentialEntry`, so several OAuth2 clients of the same profile keep
separate tokens. Files are written atomically with ``0o600`` permissions so
that tokens are never world-readable, even momentarily.

The :class:`~restauth.oauth2.token_manager.OAuth2TokenManager` loads its
state from here on construction and saves it after every successful token
exchange, so refresh tokens survive between runs.
"""

from __future__ import annotations

import json
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError

from restauth.config import _atomic_write, get_data_dir

DEFAULT_KEY = "default"

_file_lock = threading.Lock()


class CredentialEntry(BaseModel):
    """A single stored credential.

    Attributes:
        auth_type: Identifier of the plugin that produced this entry
            (e.g. ``"oauth2_header"``).
        credential: The secret value, usually an access token.
        expires_at: Optional UTC expiry time. ``None`` means it never expires.
        metadata: Plugin-specific context such as ``refresh_token`` and
            ``token_type``.
    """

    auth_type: str
    credential: str = ""
    expires_at: Optional[datetime] = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    def is_valid(self) -> bool:
        """Return ``True`` if the entry holds a credential that has not expired."""
        if not self.credential:
            return False
        if self.expires_at is None:
            return True
        expires = self.expires_at
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=timezone.utc)
        return datetime.now(timezone.utc) < expires


def _credentials_dir() -> Path:
    path = get_data_dir() / "credentials"
    path.mkdir(parents=True, exist_ok=True)
    return path


class CredentialStore:
    """Read/write one keyed credential entry of a profile.

    Stores built for the same profile share a file; *key* selects the entry
    inside it.

    Example::

        store = CredentialStore("my-api", key="https://auth.example.com/token")
        store.save(CredentialEntry(auth_type="oauth2_header", credential="tok123"))
        assert store.load().credential == "tok123"
    """

    def __init__(self, profile_name: str, key: str = DEFAULT_KEY) -> None:
        self._profile_name = profile_name
        self._key = key
        self._path = _credentials_dir() / f"{profile_name}.json"

    @property
    def path(self) -> Path:
        return self._path

    @property
    def key(self) -> str:
        return self._key

    def save(self, entry: CredentialEntry) -> None:
        """Persist *entry* under this store's key, keeping the other keys."""
        with _file_lock:
            data = self._read()
            data[self._key] = entry.model_dump(mode="json")
            self._write(data)

    def load(self) -> Optional[CredentialEntry]:
        """Return the entry stored under this key, or ``None`` if missing or unreadable."""
        return self.entries().get(self._key)

    def entries(self) -> dict[str, CredentialEntry]:
        """Return every readable entry of the profile, by key."""
        result: dict[str, CredentialEntry] = {}
        for key, value in self._read().items():
            try:
                result[key] = CredentialEntry.model_validate(value)
            except ValidationError:
                continue
        return result

    def clear(self) -> None:
        """Delete this key's entry; a no-op when it does not exist."""
        with _file_lock:
            data = self._read()
            if self._key not in data:
                return
            del data[self._key]
            if data:
                self._write(data)
            else:
                self._path.unlink(missing_ok=True)

    def clear_all(self) -> None:
        """Delete the profile's credential file with every key in it."""
        with _file_lock:
            self._path.unlink(missing_ok=True)

    def _read(self) -> dict[str, Any]:
        if not self._path.is_file():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return {}
        if not isinstance(data, dict):
            return {}
        return {key: value for key, value in data.items() if isinstance(value, dict)}

    def _write(self, data: dict[str, Any]) -> None:
        text = json.dumps(data, indent=2) + "\n"
        _atomic_write(self._path, text, mode=0o600)
