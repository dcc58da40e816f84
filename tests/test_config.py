"""Tests for configuration paths, profile persistence and precedence."""

from __future__ import annotations

import json
import stat

import pytest

from restauth.config import (
    _atomic_write,
    delete_profile,
    get_config_dir,
    get_data_dir,
    list_profiles,
    load_global_config,
    load_profile,
    profile_exists,
    resolve_config,
    resolve_credential,
    resolve_credentials,
    save_global_config,
    save_profile,
)
from restauth.exceptions import ConfigError
from restauth.models import AuthConfig, Credentials, GlobalConfig, Profile


def _make_profile(name: str = "api", **kwargs) -> Profile:
    kwargs.setdefault("base_url", "https://api.example.com")
    return Profile(name=name, **kwargs)


class TestPaths:
    def test_xdg_directories(self, isolated_config) -> None:
        assert get_config_dir() == isolated_config / "config" / "restauth"
        assert get_data_dir() == isolated_config / "data" / "restauth"
        assert get_config_dir().is_dir()


class TestAtomicWrite:
    def test_writes_with_mode(self, tmp_path) -> None:
        target = tmp_path / "nested" / "secret.json"
        _atomic_write(target, "{}", mode=0o600)

        assert target.read_text() == "{}"
        assert stat.S_IMODE(target.stat().st_mode) == 0o600
        assert [p.name for p in target.parent.iterdir()] == ["secret.json"]


class TestProfiles:
    def test_round_trip(self, isolated_config) -> None:
        profile = _make_profile(
            auth=[AuthConfig(type="oauth2_header", token_url="https://auth/token", priority=10)]
        )
        save_profile(profile)

        loaded = load_profile("api")
        assert loaded.base_url == "https://api.example.com"
        assert loaded.auth[0].type == "oauth2_header"
        assert loaded.auth[0].priority == 10
        assert list_profiles() == ["api"]
        assert profile_exists("api")

    def test_plugin_extras_survive(self, isolated_config) -> None:
        save_profile(_make_profile(auth=[AuthConfig(type="api_key", secret_source="env:S")]))
        assert load_profile("api").auth[0].model_extra == {"secret_source": "env:S"}

    def test_missing_profile(self, isolated_config) -> None:
        with pytest.raises(ConfigError, match="not found"):
            load_profile("ghost")

    def test_invalid_json(self, isolated_config) -> None:
        (get_config_dir() / "profiles").mkdir(parents=True, exist_ok=True)
        (get_config_dir() / "profiles" / "bad.json").write_text("{not json")
        with pytest.raises(ConfigError, match="Invalid profile 'bad'"):
            load_profile("bad")

    def test_delete(self, isolated_config) -> None:
        save_profile(_make_profile())
        delete_profile("api")
        assert not profile_exists("api")
        with pytest.raises(ConfigError):
            delete_profile("api")


class TestGlobalConfig:
    def test_defaults_when_missing(self, isolated_config) -> None:
        assert load_global_config() == GlobalConfig()

    def test_round_trip(self, isolated_config) -> None:
        save_global_config(GlobalConfig(default_profile="api"))
        assert load_global_config().default_profile == "api"


class TestResolveConfig:
    def test_nothing_configured(self, isolated_config) -> None:
        _, profile = resolve_config()
        assert profile is None

    def test_single_profile_auto_selected(self, isolated_config) -> None:
        save_profile(_make_profile())
        _, profile = resolve_config()
        assert profile is not None and profile.name == "api"

    def test_auto_select_can_be_disabled(self, isolated_config) -> None:
        save_profile(_make_profile())
        save_global_config(GlobalConfig(auto_select_single_profile=False))
        assert resolve_config()[1] is None

    def test_precedence(self, isolated_config, monkeypatch) -> None:
        for name in ("global", "project", "env", "cli"):
            save_profile(_make_profile(name))
        save_global_config(GlobalConfig(default_profile="global"))
        assert resolve_config()[1].name == "global"

        (isolated_config / "restauth.json").write_text(json.dumps({"default_profile": "project"}))
        assert resolve_config()[1].name == "project"

        monkeypatch.setenv("RESTAUTH_PROFILE", "env")
        assert resolve_config()[1].name == "env"

        assert resolve_config("cli")[1].name == "cli"

    def test_base_url_override(self, isolated_config, monkeypatch) -> None:
        save_profile(_make_profile())
        monkeypatch.setenv("RESTAUTH_BASE_URL", "https://env.example.com")
        assert resolve_config()[1].base_url == "https://env.example.com"
        assert resolve_config(cli_base_url="https://cli.example.com")[1].base_url == "https://cli.example.com"


class TestResolveCredential:
    def test_env(self, monkeypatch) -> None:
        monkeypatch.setenv("TEST_SECRET", "value")
        assert resolve_credential("env:TEST_SECRET") == "value"

    def test_env_missing(self, monkeypatch) -> None:
        monkeypatch.delenv("TEST_SECRET", raising=False)
        with pytest.raises(ConfigError, match="TEST_SECRET"):
            resolve_credential("env:TEST_SECRET")

    def test_file(self, tmp_path) -> None:
        path = tmp_path / "secret.txt"
        path.write_text("  from-file\n")
        assert resolve_credential(f"file:{path}") == "from-file"

    def test_file_missing(self, tmp_path) -> None:
        with pytest.raises(ConfigError, match="not found"):
            resolve_credential(f"file:{tmp_path / 'nope'}")

    def test_prompt_requires_tty(self, monkeypatch) -> None:
        monkeypatch.setattr("sys.stdin.isatty", lambda: False)
        with pytest.raises(ConfigError, match="TTY"):
            resolve_credential("prompt")

    def test_store(self, isolated_config) -> None:
        from restauth.auth.credential_store import CredentialEntry, CredentialStore

        CredentialStore("other").save(CredentialEntry(auth_type="oauth2_header", credential="tok"))
        assert resolve_credential("store:other") == "tok"
        with pytest.raises(ConfigError, match="No valid credential"):
            resolve_credential("store:missing")

    def test_unknown_format(self) -> None:
        with pytest.raises(ConfigError, match="Unknown credential source"):
            resolve_credential("vault:secret/api")

    def test_profile_credentials(self, monkeypatch) -> None:
        monkeypatch.setenv("TEST_USER", "alice:pa:ss")
        assert resolve_credentials(_make_profile(credentials_source="env:TEST_USER")) == Credentials(
            username="alice", password="pa:ss"
        )
        assert resolve_credentials(_make_profile()) is None
