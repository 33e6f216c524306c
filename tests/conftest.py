"""Summary: Shared fixtures for preferences exchange tests.

Importance: Keeps every test on isolated storage and credential files.
Alternatives: Build configuration inline in each test module.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from prefexchange.auth import add_credential
from prefexchange.config import AppConfig
from prefexchange.storage.sqlite_store import SqliteStore


def build_config(tmp_path: Path, protocol_variant: str = "token") -> AppConfig:
    """Summary: Build an AppConfig for tests.

    Importance: Ensures tests use isolated storage.
    Alternatives: Load AppConfig from environment variables.
    """

    return AppConfig(
        db_path=str(tmp_path / "test.db"),
        protocol_variant=protocol_variant,
        api_host="127.0.0.1",
        api_port=8000,
        save_prefs_url="/prefs/save",
        load_prefs_url="/prefs/load",
        upload_sentinel="Done",
        credential_sentinel="PREFS_UPLOAD_END",
        save_key_attempts=100,
        save_key_style="legacy",
        credentials_path=str(tmp_path / "users.json"),
        password_salt="salt",
        startup_parameters_path=str(tmp_path / "startup.json"),
    )


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[..., AppConfig]:
    def _make(protocol_variant: str = "token") -> AppConfig:
        return build_config(tmp_path, protocol_variant)

    return _make


@pytest.fixture
def store(tmp_path: Path) -> SqliteStore:
    store = SqliteStore(str(tmp_path / "test.db"))
    store.initialize()
    return store


@pytest.fixture
def users_file(tmp_path: Path) -> Path:
    path = tmp_path / "users.json"
    add_credential(path, "alice", "secret", "salt")
    add_credential(path, "Bob", "hunter2", "salt")
    return path
