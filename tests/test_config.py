"""Summary: Tests for configuration loading.

Importance: Ensures defaults, .env, and environment overrides behave correctly.
Alternatives: Validate configuration manually during runtime.
"""

from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

from prefexchange.config import AppConfig, load_defaults, load_dotenv


DEFAULTS = {
    "db_path": "test.db",
    "protocol_variant": "token",
    "api_host": "127.0.0.1",
    "api_port": "8000",
    "save_prefs_url": "/prefs/save",
    "load_prefs_url": "/prefs/load",
    "upload_sentinel": "Done",
    "credential_sentinel": "PREFS_UPLOAD_END",
    "save_key_attempts": "100",
    "save_key_style": "legacy",
    "credentials_path": "config/users.json",
    "password_salt": "",
    "startup_parameters_path": "config/startup.json",
}


def _write_defaults(root: Path) -> None:
    (root / "config").mkdir()
    (root / "config" / "defaults.json").write_text(json.dumps(DEFAULTS), encoding="utf-8")


def test_load_defaults_reads_json(tmp_path: Path) -> None:
    """Summary: Verify defaults are parsed from JSON.

    Importance: Confirms config file is the source of truth for variables.
    Alternatives: Hardcode defaults in the test.
    """

    defaults_path = tmp_path / "defaults.json"
    defaults_path.write_text("{\"db_path\": \"test.db\"}", encoding="utf-8")
    defaults = load_defaults(defaults_path)
    assert defaults["db_path"] == "test.db"


def test_load_defaults_missing(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_defaults(tmp_path / "absent.json")


def test_load_dotenv_sets_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Summary: Ensure .env values populate environment variables.

    Importance: Validates local secret loading without external tools.
    Alternatives: Assume OS environment is always set.
    """

    env_path = tmp_path / ".env"
    env_path.write_text("# comment\nPREFEXCHANGE_PROTOCOL_VARIANT=credentials\n", encoding="utf-8")
    monkeypatch.delenv("PREFEXCHANGE_PROTOCOL_VARIANT", raising=False)
    load_dotenv(env_path)
    assert os.getenv("PREFEXCHANGE_PROTOCOL_VARIANT") == "credentials"
    monkeypatch.delenv("PREFEXCHANGE_PROTOCOL_VARIANT", raising=False)


def test_app_config_uses_defaults(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Summary: Verify AppConfig honors defaults when env is absent.

    Importance: Confirms config file remains the baseline for variables.
    Alternatives: Inline defaults directly in the AppConfig class.
    """

    _write_defaults(tmp_path)
    monkeypatch.chdir(tmp_path)
    for key in DEFAULTS:
        monkeypatch.delenv(f"PREFEXCHANGE_{key.upper()}", raising=False)
    config = AppConfig.from_env()
    assert config.db_path == "test.db"
    assert config.protocol_variant == "token"
    assert config.api_port == 8000
    assert config.upload_sentinel == "Done"
    assert config.credential_sentinel == "PREFS_UPLOAD_END"
    assert config.save_key_attempts == 100
    assert config.save_key_style == "legacy"


def test_environment_overrides_defaults(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _write_defaults(tmp_path)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("PREFEXCHANGE_PROTOCOL_VARIANT", "credentials")
    monkeypatch.setenv("PREFEXCHANGE_SAVE_KEY_ATTEMPTS", "5")
    config = AppConfig.from_env()
    assert config.protocol_variant == "credentials"
    assert config.save_key_attempts == 5


def test_invalid_variant_rejected(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _write_defaults(tmp_path)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("PREFEXCHANGE_PROTOCOL_VARIANT", "carrier-pigeon")
    with pytest.raises(ValueError):
        AppConfig.from_env()
