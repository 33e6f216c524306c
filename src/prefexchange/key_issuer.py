"""Summary: One-time save key issuance and consumption.

Importance: Gates preference writes behind single-use keys handed to the client.
Alternatives: Authenticate every save with full credentials.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from typing import Callable

from prefexchange.errors import KeyIssueError
from prefexchange.storage.sqlite_store import SqliteStore


logger = logging.getLogger(__name__)

KEY_PART_MAX = 10000
KEY_PARTS = 4


def legacy_save_key() -> str:
    """Summary: Concatenate four random integers in 0..10000 into a key.

    Importance: Matches the key shape existing clients already accept.
    Alternatives: Use a longer URL-safe random token.
    """

    return "".join(str(secrets.randbelow(KEY_PART_MAX + 1)) for _ in range(KEY_PARTS))


def urlsafe_save_key() -> str:
    return secrets.token_urlsafe(24)


KEY_GENERATORS: dict[str, Callable[[], str]] = {
    "legacy": legacy_save_key,
    "urlsafe": urlsafe_save_key,
}


@dataclass(frozen=True)
class KeyIssuer:
    """Summary: Issues, tracks, and consumes save keys per user.

    Importance: Keeps at most one active key per user and one owner per key.
    Alternatives: Store keys in signed cookies with an expiry.
    """

    store: SqliteStore
    max_attempts: int = 100
    generate: Callable[[], str] = legacy_save_key

    @staticmethod
    def for_style(store: SqliteStore, style: str, max_attempts: int) -> "KeyIssuer":
        if style not in KEY_GENERATORS:
            raise ValueError(f"Unknown save key style: {style}")
        return KeyIssuer(store=store, max_attempts=max_attempts, generate=KEY_GENERATORS[style])

    def issue(self, user_id: str) -> str:
        """Summary: Generate a fresh key for a user, replacing any previous one.

        Importance: Regenerates on collision so active keys stay unique.
        Alternatives: Accept rare collisions and let the later save fail.
        """

        for attempt in range(1, self.max_attempts + 1):
            candidate = self.generate()
            if self.store.assign_save_key(user_id, candidate):
                logger.info("Issued save key for %s after %s attempt(s).", user_id, attempt)
                return candidate
            logger.debug("Save key collision for %s, regenerating.", user_id)
        logger.error("Gave up issuing a save key for %s.", user_id)
        raise KeyIssueError(self.max_attempts)

    def consume(self, token: str) -> str | None:
        """Summary: Deactivate a key and return the user it belonged to.

        Importance: A key authorizes exactly one save; replays return None.
        Alternatives: Allow reuse until an expiry time.
        """

        if not token:
            return None
        user_id = self.store.consume_save_key(token)
        if user_id is None:
            logger.warning("Rejected unknown save key %s.", _mask(token))
        return user_id

    def redeem(self, token: str, blob: bytes) -> str | None:
        """Summary: Consume a key and store the blob for its owner atomically.

        Importance: Either both the key is spent and the blob saved, or neither.
        Alternatives: Call consume() and save_blob() separately.
        """

        if not token:
            return None
        user_id = self.store.save_blob_with_key(token, blob)
        if user_id is None:
            logger.warning("Rejected upload with unknown save key %s.", _mask(token))
        else:
            logger.info("Saved %s bytes of preferences for %s.", len(blob), user_id)
        return user_id


def _mask(token: str) -> str:
    return token[:2] + "***" if len(token) > 2 else "***"
