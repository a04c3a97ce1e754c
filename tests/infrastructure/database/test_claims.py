"""Tests for the claim ledger."""

from types import SimpleNamespace
from typing import Any

import pytest
from sqlalchemy.exc import IntegrityError

from gridclaim.infrastructure.database.claims import (
    CAPACITY_LOCK_KEY,
    InsertOutcome,
    claim_exists,
    count_claims,
    existing_usernames,
    find_claim,
    insert_claim,
    lock_capacity,
)
from gridclaim.infrastructure.store import GridStore


class TestInsertClaim:
    def test_insert_ok(self, store: GridStore) -> None:
        with store.engine.begin() as conn:
            assert insert_claim(conn, "alice", 1) is InsertOutcome.OK
        with store.engine.connect() as conn:
            assert claim_exists(conn, "alice")
            assert find_claim(conn, "alice") == 1

    def test_duplicate_username_is_conflict(self, store: GridStore) -> None:
        with store.engine.begin() as conn:
            insert_claim(conn, "alice", 1)
        with store.engine.begin() as conn:
            assert insert_claim(conn, "alice", 2) is InsertOutcome.CONFLICT
            # The enclosing transaction is still usable after the conflict.
            assert insert_claim(conn, "bob", 2) is InsertOutcome.OK
        with store.engine.connect() as conn:
            assert count_claims(conn) == 2
            assert find_claim(conn, "alice") == 1

    def test_taken_cell_is_not_a_username_conflict(self, store: GridStore) -> None:
        """A cell bound twice is a broken reservation and must surface."""
        with store.engine.begin() as conn:
            insert_claim(conn, "alice", 1)
        with store.engine.connect() as conn, conn.begin():
            with pytest.raises(IntegrityError):
                insert_claim(conn, "bob", 1)
            assert not claim_exists(conn, "bob")

    def test_unknown_cell_raises(self, store: GridStore) -> None:
        with store.engine.connect() as conn, conn.begin():
            with pytest.raises(IntegrityError):
                insert_claim(conn, "bob", 999)


class TestLookups:
    def test_missing(self, store: GridStore) -> None:
        with store.engine.connect() as conn:
            assert not claim_exists(conn, "ghost")
            assert find_claim(conn, "ghost") is None
            assert count_claims(conn) == 0

    def test_existing_usernames_subset(self, store: GridStore) -> None:
        with store.engine.begin() as conn:
            insert_claim(conn, "alice", 1)
            insert_claim(conn, "bob", 2)
        with store.engine.connect() as conn:
            found = existing_usernames(conn, ["alice", "carol", "bob"])
        assert found == {"alice", "bob"}

    def test_existing_usernames_large_batch(self, store: GridStore) -> None:
        with store.engine.begin() as conn:
            insert_claim(conn, "user-0999", 1)
        names = [f"user-{i:04d}" for i in range(1200)]
        with store.engine.connect() as conn:
            assert existing_usernames(conn, names) == {"user-0999"}


class _RecordingConn:
    def __init__(self, dialect: str) -> None:
        self.dialect = SimpleNamespace(name=dialect)
        self.statements: list[Any] = []

    def execute(self, stmt: Any) -> None:
        self.statements.append(stmt)


class TestLockCapacity:
    def test_postgresql_takes_transaction_advisory_lock(self) -> None:
        conn = _RecordingConn("postgresql")
        lock_capacity(conn)  # type: ignore[arg-type]
        (stmt,) = conn.statements
        compiled = stmt.compile()
        assert "pg_advisory_xact_lock" in str(compiled)
        assert list(compiled.params.values()) == [CAPACITY_LOCK_KEY]

    def test_sqlite_needs_no_lock(self) -> None:
        conn = _RecordingConn("sqlite")
        lock_capacity(conn)  # type: ignore[arg-type]
        assert conn.statements == []

    def test_runs_inside_real_sqlite_transaction(self, store: GridStore) -> None:
        with store.engine.begin() as conn:
            lock_capacity(conn)
            assert count_claims(conn) == 0
