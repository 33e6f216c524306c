"""Summary: Tests for the credential-file authenticator.

Importance: Ensures credentials map to normalized user ids and bad logins fail.
Alternatives: Mock authentication in every exchange test.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from prefexchange.auth import CredentialFileAuthenticator, hash_password
from prefexchange.errors import AuthenticatorError


def test_authenticate_normalizes_user(users_file: Path) -> None:
    """Summary: Verify usernames are matched case-insensitively.

    Importance: One record per user regardless of how the name was typed.
    Alternatives: Treat differently cased names as different users.
    """

    authenticator = CredentialFileAuthenticator(users_file, "salt")
    assert authenticator.authenticate("alice", "secret") == "alice"
    assert authenticator.authenticate(" ALICE ", "secret") == "alice"
    assert authenticator.authenticate("bob", "hunter2") == "bob"


def test_authenticate_rejects_bad_credentials(users_file: Path) -> None:
    authenticator = CredentialFileAuthenticator(users_file, "salt")
    assert authenticator.authenticate("alice", "wrong") is None
    assert authenticator.authenticate("mallory", "secret") is None
    assert authenticator.authenticate("", "secret") is None
    assert CredentialFileAuthenticator(users_file, "other").authenticate("alice", "secret") is None


def test_missing_credentials_file(tmp_path: Path) -> None:
    authenticator = CredentialFileAuthenticator(tmp_path / "absent.json", "salt")
    assert authenticator.authenticate("alice", "secret") is None


def test_credentials_file_stores_digests(users_file: Path) -> None:
    data = json.loads(users_file.read_text(encoding="utf-8"))
    assert set(data) == {"alice", "bob"}
    assert data["alice"] == hash_password("secret", "salt")
    assert data["alice"] != "secret"


def test_verify_wraps_unreadable_credentials(tmp_path: Path) -> None:
    """Summary: Verify a corrupt credentials file surfaces as AuthenticatorError.

    Importance: Broken credential sources must map to a response line, not a crash.
    Alternatives: Let json errors reach the HTTP layer.
    """

    path = tmp_path / "users.json"
    path.write_text("{", encoding="utf-8")
    authenticator = CredentialFileAuthenticator(path, "salt")
    with pytest.raises(AuthenticatorError) as info:
        authenticator.verify("alice", "secret")
    assert info.value.response_text.startswith("Authentication service error - ")


def test_verify_passes_results_through(users_file: Path) -> None:
    authenticator = CredentialFileAuthenticator(users_file, "salt")
    assert authenticator.verify("Alice", "secret") == "alice"
    assert authenticator.verify("alice", "wrong") is None
