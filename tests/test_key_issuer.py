"""Summary: Tests for save key issuance and consumption.

Importance: Ensures save keys are unique, single-use, and safe under concurrency.
Alternatives: Verify keys only through end-to-end uploads.
"""

from __future__ import annotations

import threading
from typing import Callable, Iterator

import pytest

from prefexchange.errors import KeyIssueError
from prefexchange.key_issuer import KeyIssuer, legacy_save_key
from prefexchange.storage.sqlite_store import SqliteStore


def _scripted(values: list[str]) -> Callable[[], str]:
    iterator: Iterator[str] = iter(values)
    return lambda: next(iterator)


def test_legacy_key_shape() -> None:
    for _ in range(50):
        key = legacy_save_key()
        assert key.isdigit()
        assert 4 <= len(key) <= 20


def test_issue_then_consume_once(store: SqliteStore) -> None:
    """Summary: Verify an issued key is accepted exactly once.

    Importance: Replaying a save key must fail after the first success.
    Alternatives: Expire keys after a timeout instead.
    """

    issuer = KeyIssuer(store=store)
    token = issuer.issue("alice")
    assert issuer.consume(token) == "alice"
    assert issuer.consume(token) is None


def test_reissue_invalidates_previous_key(store: SqliteStore) -> None:
    issuer = KeyIssuer(store=store)
    first = issuer.issue("alice")
    second = issuer.issue("alice")
    assert first != second
    assert issuer.consume(first) is None
    assert issuer.consume(second) == "alice"


def test_back_to_back_issues_are_distinct(store: SqliteStore) -> None:
    issuer = KeyIssuer(store=store)
    assert issuer.issue("alice") != issuer.issue("bob")


def test_collision_regenerates(store: SqliteStore) -> None:
    """Summary: Verify a colliding candidate is replaced by a fresh one.

    Importance: Two users must never hold the same active key.
    Alternatives: Let the second user's save fail later.
    """

    issuer = KeyIssuer(store=store, generate=_scripted(["111", "111", "222"]))
    assert issuer.issue("alice") == "111"
    assert issuer.issue("bob") == "222"
    assert issuer.consume("111") == "alice"
    assert issuer.consume("222") == "bob"


def test_gives_up_after_max_attempts(store: SqliteStore) -> None:
    issuer = KeyIssuer(store=store, max_attempts=3, generate=lambda: "111")
    issuer.issue("alice")
    with pytest.raises(KeyIssueError) as info:
        issuer.issue("bob")
    assert info.value.attempts == 3


def test_empty_token_is_invalid(store: SqliteStore) -> None:
    issuer = KeyIssuer(store=store)
    assert issuer.consume("") is None
    assert issuer.redeem("", b"x") is None


def test_redeem_saves_blob(store: SqliteStore) -> None:
    issuer = KeyIssuer(store=store)
    token = issuer.issue("alice")
    assert issuer.redeem(token, b"General\na=str;1\n") == "alice"
    assert store.load_blob("alice") == b"General\na=str;1\n"
    assert issuer.redeem(token, b"General\na=str;2\n") is None
    assert store.load_blob("alice") == b"General\na=str;1\n"


def test_for_style(store: SqliteStore) -> None:
    issuer = KeyIssuer.for_style(store, "urlsafe", 10)
    token = issuer.issue("alice")
    assert len(token) == 32
    with pytest.raises(ValueError):
        KeyIssuer.for_style(store, "unknown", 10)


def test_concurrent_consume_has_one_winner(store: SqliteStore) -> None:
    """Summary: Verify concurrent consumers of one key see a single success.

    Importance: Check-and-clear must be atomic across requests.
    Alternatives: Serialize requests in a single worker.
    """

    issuer = KeyIssuer(store=store)
    token = issuer.issue("alice")
    results: list[str | None] = []
    lock = threading.Lock()
    start = threading.Barrier(8)

    def _consume() -> None:
        start.wait()
        outcome = issuer.consume(token)
        with lock:
            results.append(outcome)

    threads = [threading.Thread(target=_consume) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert results.count("alice") == 1
    assert results.count(None) == 7


def test_concurrent_issue_for_different_users(store: SqliteStore) -> None:
    """Summary: Verify keys issued concurrently to different users are all distinct.

    Importance: An active key must map to exactly one user even under parallel renders.
    Alternatives: Issue keys from a single worker.
    """

    issuer = KeyIssuer(store=store)
    users = [f"user{index}" for index in range(8)]
    for user in users:
        store.get_or_create(user)
    issued: dict[str, str] = {}
    lock = threading.Lock()
    start = threading.Barrier(len(users))

    def _issue(user: str) -> None:
        start.wait()
        token = issuer.issue(user)
        with lock:
            issued[user] = token

    threads = [threading.Thread(target=_issue, args=(user,)) for user in users]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert len(set(issued.values())) == len(users)
    for user, token in issued.items():
        assert issuer.consume(token) == user
