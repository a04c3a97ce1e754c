"""Claim Ledger — username to cell bindings.

Usernames are stored normalized, so lookups are exact matches on the
normalized form. Claims are permanent: there is no update or delete.

As with the cell store, the caller owns the transaction.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import func, insert, select
from sqlalchemy.exc import IntegrityError

from gridclaim.infrastructure.database.schema import claims

if TYPE_CHECKING:
    from sqlalchemy import Connection

# Keeps IN (...) lists well under SQLite's bound-parameter limit.
_LOOKUP_CHUNK = 500

# Advisory lock key serializing the cap check on PostgreSQL (ASCII "GRIDCAP").
CAPACITY_LOCK_KEY = 0x47524944434150


class InsertOutcome(enum.Enum):
    OK = "ok"
    CONFLICT = "conflict"


def claim_exists(conn: Connection, username: str) -> bool:
    """Return True if *username* already holds a cell."""
    row = conn.execute(select(claims.c.username).where(claims.c.username == username)).first()
    return row is not None


def existing_usernames(conn: Connection, usernames: Iterable[str]) -> set[str]:
    """Return the subset of *usernames* that already hold a cell."""
    pending = list(usernames)
    found: set[str] = set()
    for start in range(0, len(pending), _LOOKUP_CHUNK):
        chunk = pending[start : start + _LOOKUP_CHUNK]
        rows = conn.execute(select(claims.c.username).where(claims.c.username.in_(chunk)))
        found.update(row.username for row in rows)
    return found


def insert_claim(conn: Connection, username: str, cell_id: int) -> InsertOutcome:
    """Bind *username* to *cell_id*.

    The insert runs in a SAVEPOINT so a uniqueness violation (the same
    username committed by a concurrent allocator after the existence
    check) leaves the enclosing transaction usable and is reported as
    :attr:`InsertOutcome.CONFLICT` instead of raising.

    Raises:
        IntegrityError: If the insert failed while *username* is still
            unclaimed, i.e. *cell_id* is already bound or does not exist.
            That is a broken cell reservation, not a username race.
    """
    try:
        with conn.begin_nested():
            conn.execute(
                insert(claims).values(
                    username=username,
                    cell_id=cell_id,
                    created=datetime.now(UTC).isoformat(),
                )
            )
    except IntegrityError:
        if not claim_exists(conn, username):
            raise
        return InsertOutcome.CONFLICT
    return InsertOutcome.OK


def lock_capacity(conn: Connection) -> None:
    """Hold the capacity lock until the current transaction ends.

    PostgreSQL runs each transaction at READ COMMITTED, so two allocators
    could both count ``limit - 1`` claims and both insert. A
    transaction-scoped advisory lock orders their count-then-insert
    sections. SQLite needs nothing here: ``BEGIN IMMEDIATE`` already
    admits one writer at a time.
    """
    if conn.dialect.name == "postgresql":
        conn.execute(select(func.pg_advisory_xact_lock(CAPACITY_LOCK_KEY)))


def count_claims(conn: Connection) -> int:
    """Total committed claims (plus any inserted by *conn*'s own transaction)."""
    return int(conn.execute(select(func.count()).select_from(claims)).scalar_one())


def find_claim(conn: Connection, username: str) -> int | None:
    """Return the ``cell_id`` held by *username*, or None."""
    row = conn.execute(select(claims.c.cell_id).where(claims.c.username == username)).first()
    return None if row is None else int(row.cell_id)
