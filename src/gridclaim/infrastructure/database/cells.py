"""Cell Store — free-cell reservation, fill marking, and mask flags.

The caller owns the transaction: pass a ``Connection`` inside an active
transaction (e.g. from ``engine.begin()``). A cell reserved by
:func:`claim_free_cell` stays reserved until that transaction ends; it
is filled only by :func:`mark_filled` in the same transaction, alongside
the claim insert.

Reservation never waits on another transaction's reservation:

- PostgreSQL: ``SELECT ... FOR UPDATE SKIP LOCKED``.
- Other backends: optimistic compare-and-swap on ``cells.version`` over
  a small window of free candidates; a lost race moves on to the next
  candidate.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from sqlalchemy import bindparam, func, select, update

from gridclaim.infrastructure.database.schema import cells

if TYPE_CHECKING:
    from sqlalchemy import Connection

_CANDIDATE_WINDOW = 16
_SKIP_LOCKED_DIALECTS = frozenset({"postgresql"})


def claim_free_cell(conn: Connection) -> int | None:
    """Reserve one free cell for the current transaction.

    Returns:
        The reserved ``cell_id``, or None if no free cell could be
        reserved without waiting. That includes the case where free
        cells exist but every one is held by a concurrent transaction.
    """
    if conn.dialect.name in _SKIP_LOCKED_DIALECTS:
        return _claim_skip_locked(conn)
    return _claim_optimistic(conn)


def _claim_skip_locked(conn: Connection) -> int | None:
    row = conn.execute(
        select(cells.c.cell_id)
        .where(cells.c.filled.is_(False))
        .order_by(cells.c.cell_id)
        .limit(1)
        .with_for_update(skip_locked=True)
    ).first()
    return None if row is None else int(row.cell_id)


def _claim_optimistic(conn: Connection) -> int | None:
    candidates = conn.execute(
        select(cells.c.cell_id, cells.c.version)
        .where(cells.c.filled.is_(False))
        .order_by(cells.c.cell_id)
        .limit(_CANDIDATE_WINDOW)
    ).all()

    for candidate in candidates:
        swapped = conn.execute(
            update(cells)
            .where(
                cells.c.cell_id == candidate.cell_id,
                cells.c.version == candidate.version,
                cells.c.filled.is_(False),
            )
            .values(version=candidate.version + 1)
        )
        if swapped.rowcount == 1:
            return int(candidate.cell_id)
    return None


def mark_filled(conn: Connection, cell_id: int) -> None:
    """Flag *cell_id* as filled.

    Must run in the transaction that reserved the cell and inserted its
    claim; a filled cell without a claim breaks the store invariant.
    """
    conn.execute(update(cells).where(cells.c.cell_id == cell_id).values(filled=True))


def set_mask(conn: Connection, x: int, y: int, masked: bool) -> int:
    """Set the mask flag of the cell at ``(x, y)``. Returns rows updated."""
    result = conn.execute(
        update(cells).where(cells.c.x == x, cells.c.y == y).values(is_mask=masked)
    )
    return result.rowcount


def set_masks(conn: Connection, coordinates: Iterable[tuple[int, int]], masked: bool) -> int:
    """Set the mask flag for many cells in one executemany round-trip.

    Returns the number of cells updated; coordinates outside the grid
    match no row and are not counted.
    """
    params = [{"cx": x, "cy": y, "masked": masked} for x, y in coordinates]
    if not params:
        return 0
    result = conn.execute(
        update(cells)
        .where(cells.c.x == bindparam("cx"), cells.c.y == bindparam("cy"))
        .values(is_mask=bindparam("masked")),
        params,
    )
    return result.rowcount


def clear_masks(conn: Connection) -> int:
    """Reset every mask flag to False. Returns rows updated."""
    result = conn.execute(update(cells).where(cells.c.is_mask.is_(True)).values(is_mask=False))
    return result.rowcount


def count_cells(conn: Connection, *, filled: bool | None = None, masked: bool | None = None) -> int:
    """Count cells, optionally filtered by fill and mask state."""
    stmt = select(func.count()).select_from(cells)
    if filled is not None:
        stmt = stmt.where(cells.c.filled.is_(filled))
    if masked is not None:
        stmt = stmt.where(cells.c.is_mask.is_(masked))
    return int(conn.execute(stmt).scalar_one())
