"""Summary: SQLite storage implementation for user preferences.

Importance: Provides the persistent mapping from user id to blob and active save key.
Alternatives: Use an ORM or an external database immediately.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from prefexchange.errors import StoreError
from prefexchange.models import UserRecord


logger = logging.getLogger(__name__)


class SqliteStore:
    """Summary: SQLite-backed preference store.

    Importance: Keeps all exchange state server-side so requests stay stateless.
    Alternatives: Use Postgres and SQLAlchemy from day one.

    Saves are last-write-wins per user. Save key assignment and consumption
    run inside immediate transactions so concurrent requests serialize on
    the database write lock.
    """

    def __init__(self, db_path: str) -> None:
        """Summary: Initialize the storage with a database path.

        Importance: Allows configurable database location per environment.
        Alternatives: Hardcode a default path in the class.
        """

        self._db_path = Path(db_path)

    def initialize(self) -> None:
        """Summary: Create the preferences table if it does not exist.

        Importance: Ensures the database is ready before the first exchange.
        Alternatives: Run migrations using a dedicated migration tool.
        """

        with _translate("write"), self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS preferences (
                    user_id TEXT PRIMARY KEY,
                    prefs_blob BLOB,
                    save_key TEXT UNIQUE
                )
                """
            )
            connection.commit()

    def get_or_create(self, user_id: str) -> UserRecord:
        """Summary: Return the record for a user, creating an empty one if needed.

        Importance: First contact with a user id must never be an error.
        Alternatives: Require explicit user registration before use.
        """

        with _translate("write"), self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                "INSERT OR IGNORE INTO preferences (user_id, prefs_blob, save_key) VALUES (?, NULL, NULL)",
                (user_id,),
            )
            if cursor.rowcount:
                logger.info("Created preferences record for %s.", user_id)
            cursor.execute(
                "SELECT user_id, prefs_blob, save_key FROM preferences WHERE user_id = ?",
                (user_id,),
            )
            row = cursor.fetchone()
            connection.commit()
        return _record(row)

    def get_record(self, user_id: str) -> UserRecord | None:
        with _translate("read"), self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                "SELECT user_id, prefs_blob, save_key FROM preferences WHERE user_id = ?",
                (user_id,),
            )
            row = cursor.fetchone()
        return _record(row) if row else None

    def load_blob(self, user_id: str) -> bytes | None:
        """Summary: Fetch the stored blob for a user.

        Importance: Returns None for users without saved preferences.
        Alternatives: Raise an error for unknown users.
        """

        record = self.get_record(user_id)
        if record is None:
            return None
        return record.prefs_blob

    def save_blob(self, user_id: str, blob: bytes) -> None:
        """Summary: Store a blob for a user, creating the record if needed.

        Importance: Persists uploads from brand-new and returning users alike.
        Alternatives: Add a version column for optimistic concurrency.
        """

        with _translate("write"), self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                """
                INSERT INTO preferences (user_id, prefs_blob, save_key) VALUES (?, ?, NULL)
                ON CONFLICT(user_id) DO UPDATE SET prefs_blob = excluded.prefs_blob
                """,
                (user_id, sqlite3.Binary(blob)),
            )
            connection.commit()

    def assign_save_key(self, user_id: str, candidate: str) -> bool:
        """Summary: Make a candidate key the user's only active key if it is unused.

        Importance: Keeps active keys globally unique under concurrent issuance.
        Alternatives: Read, check, and write in separate statements.
        """

        with _translate("write"), self._transaction() as connection:
            cursor = connection.cursor()
            cursor.execute("SELECT 1 FROM preferences WHERE save_key = ?", (candidate,))
            if cursor.fetchone():
                return False
            cursor.execute(
                "INSERT OR IGNORE INTO preferences (user_id, prefs_blob, save_key) VALUES (?, NULL, NULL)",
                (user_id,),
            )
            cursor.execute(
                "UPDATE preferences SET save_key = ? WHERE user_id = ?",
                (candidate, user_id),
            )
        return True

    def consume_save_key(self, token: str) -> str | None:
        """Summary: Clear an active save key and return its owner.

        Importance: Only one caller can consume a given key.
        Alternatives: Mark keys used with a timestamp instead of clearing them.
        """

        with _translate("write"), self._transaction() as connection:
            user_id = _take_save_key(connection, token)
        return user_id

    def save_blob_with_key(self, token: str, blob: bytes) -> str | None:
        """Summary: Consume a save key and store the blob in one transaction.

        Importance: A rejected or failed save leaves both key and blob untouched.
        Alternatives: Consume first and store afterwards.
        """

        with _translate("write"), self._transaction() as connection:
            user_id = _take_save_key(connection, token)
            if user_id is None:
                return None
            connection.execute(
                "UPDATE preferences SET prefs_blob = ? WHERE user_id = ?",
                (sqlite3.Binary(blob), user_id),
            )
        return user_id

    def count_users(self) -> int:
        with _translate("read"), self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute("SELECT COUNT(*) FROM preferences")
            row = cursor.fetchone()
        return int(row[0]) if row else 0

    def delete_user(self, user_id: str) -> bool:
        """Summary: Remove a user's record, blob, and key.

        Importance: Supports administrative cleanup of departed users.
        Alternatives: Keep records forever and clear the blob only.
        """

        with _translate("write"), self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute("DELETE FROM preferences WHERE user_id = ?", (user_id,))
            deleted = cursor.rowcount > 0
            connection.commit()
        return deleted

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """Summary: Context manager for SQLite connections.

        Importance: Ensures connections are closed cleanly after use.
        Alternatives: Keep a single long-lived connection.
        """

        try:
            connection = sqlite3.connect(self._db_path)
        except sqlite3.Error as exc:
            logger.error("Could not open preference store %s: %s", self._db_path, exc)
            raise StoreError("connect", str(exc)) from exc
        try:
            yield connection
        finally:
            connection.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Summary: Run statements inside an immediate transaction.

        Importance: Takes the write lock up front so check-and-set steps are atomic.
        Alternatives: Rely on UNIQUE constraints and retry on conflicts.
        """

        with self._connection() as connection:
            connection.isolation_level = None
            try:
                connection.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as exc:
                raise StoreError("connect", str(exc)) from exc
            try:
                yield connection
            except BaseException:
                if connection.in_transaction:
                    connection.execute("ROLLBACK")
                raise
            else:
                connection.execute("COMMIT")


def _take_save_key(connection: sqlite3.Connection, token: str) -> str | None:
    cursor = connection.execute("SELECT user_id FROM preferences WHERE save_key = ?", (token,))
    row = cursor.fetchone()
    if not row:
        return None
    connection.execute("UPDATE preferences SET save_key = NULL WHERE save_key = ?", (token,))
    return str(row[0])


def _record(row: tuple) -> UserRecord:
    blob = row[1]
    return UserRecord(
        user_id=str(row[0]),
        prefs_blob=bytes(blob) if blob is not None else None,
        save_key=row[2],
    )


@contextmanager
def _translate(kind: str) -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as exc:
        logger.error("Preference store %s failed: %s", kind, exc)
        raise StoreError(kind, str(exc)) from exc

