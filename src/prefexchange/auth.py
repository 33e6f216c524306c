"""Summary: Authenticator abstraction and a credential-file implementation.

Importance: Maps a username and password to a user id without the exchange knowing how.
Alternatives: Delegate to an external identity provider.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path

from prefexchange.errors import AuthenticatorError
from prefexchange.models import normalize_user_id


logger = logging.getLogger(__name__)


class Authenticator(ABC):
    """Summary: Abstract interface for verifying credentials.

    Importance: Lets deployments plug in their own user database.
    Alternatives: Hardcode a single user store in the exchange handler.
    """

    @abstractmethod
    def authenticate(self, username: str, password: str) -> str | None:
        """Summary: Return the normalized user id for valid credentials, else None."""

    def verify(self, username: str, password: str) -> str | None:
        """Summary: Authenticate, raising AuthenticatorError when the check itself breaks.

        Importance: Callers only handle typed errors, whatever the implementation raises.
        Alternatives: Require every implementation to catch its own failures.
        """

        try:
            return self.authenticate(username, password)
        except Exception as exc:
            logger.error("Authenticator %s failed: %s", type(self).__name__, exc)
            raise AuthenticatorError(str(exc) or type(exc).__name__) from exc


class CredentialFileAuthenticator(Authenticator):
    """Summary: Authenticates against a JSON file of salted password digests.

    Importance: Gives small deployments working logins without a database.
    Alternatives: Store password hashes in the preferences table.
    """

    def __init__(self, path: Path, salt: str) -> None:
        self._path = path
        self._salt = salt

    def authenticate(self, username: str, password: str) -> str | None:
        """Summary: Check a password against the stored digest for a user.

        Importance: Compares digests in constant time.
        Alternatives: Compare plaintext passwords.
        """

        try:
            user_id = normalize_user_id(username)
        except ValueError:
            return None
        expected = load_credentials(self._path).get(user_id)
        if expected is None:
            return None
        if not hmac.compare_digest(expected, hash_password(password, self._salt)):
            return None
        return user_id


def hash_password(password: str, salt: str) -> str:
    """Summary: Hash a password with the deployment salt.

    Importance: Avoids storing raw passwords in the credentials file.
    Alternatives: Use a slow KDF such as scrypt or bcrypt.
    """

    salt = salt or "prefexchange"
    return hashlib.sha256(f"{salt}:{password}".encode("utf-8")).hexdigest()


def load_credentials(path: Path) -> dict[str, str]:
    if not path.exists():
        logger.warning("Credentials file not found: %s", path)
        return {}
    data = json.loads(path.read_text(encoding="utf-8"))
    return {normalize_user_id(name): digest for name, digest in data.items()}


def add_credential(path: Path, username: str, password: str, salt: str) -> str:
    """Summary: Add or replace a user in the credentials file.

    Importance: Supports onboarding users from the CLI.
    Alternatives: Edit the JSON file by hand.
    """

    user_id = normalize_user_id(username)
    credentials = load_credentials(path) if path.exists() else {}
    credentials[user_id] = hash_password(password, salt)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(credentials, indent=2, sort_keys=True), encoding="utf-8")
    logger.info("Stored credentials for %s.", user_id)
    return user_id
