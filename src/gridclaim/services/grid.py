"""GridService — read-only views of the grid and claim ledger.

Covers capacity status, paginated cell listings, username search, and
an integrity check of the filled-cell/claim bijection.
"""

from __future__ import annotations

from sqlalchemy import select

from gridclaim.domain.errors import StorageFailure
from gridclaim.domain.identifiers import normalize_username
from gridclaim.infrastructure.database.cells import count_cells
from gridclaim.infrastructure.database.claims import count_claims
from gridclaim.infrastructure.database.schema import cells, claims
from gridclaim.services.base import BaseService
from gridclaim.services.result import ServiceResult

DEFAULT_PAGE = 5000


class GridService(BaseService):
    """Queries that never modify the store."""

    def init(self) -> ServiceResult:
        """Report the initialized grid (the store seeds it on open)."""
        op = "init"
        try:
            with self._store.reader() as conn:
                total = count_cells(conn)
        except StorageFailure as exc:
            return ServiceResult.failure(op, "STORAGE_FAILURE", str(exc))
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "grid_size": self._store.grid_size,
                "total_cells": total,
                "database": self._store.engine.url.render_as_string(hide_password=True),
            },
        )

    def capacity(self) -> ServiceResult:
        """Claims used against the capacity limit."""
        op = "capacity"
        try:
            with self._store.reader() as conn:
                used = count_claims(conn)
        except StorageFailure as exc:
            return ServiceResult.failure(op, "STORAGE_FAILURE", str(exc))
        return ServiceResult(ok=True, op=op, data={"used": used, "limit": self._store.limit})

    def status(self) -> ServiceResult:
        """Capacity, season, and cell occupancy in one view."""
        op = "status"
        try:
            with self._store.reader() as conn:
                used = count_claims(conn)
                total = count_cells(conn)
                free = count_cells(conn, filled=False)
                masked = count_cells(conn, masked=True)
        except StorageFailure as exc:
            return ServiceResult.failure(op, "STORAGE_FAILURE", str(exc))

        capacity = self._store.settings.capacity
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "season": capacity.season,
                "used": used,
                "limit": capacity.limit,
                "remaining": max(capacity.limit - used, 0),
                "grid_size": self._store.grid_size,
                "total_cells": total,
                "free_cells": free,
                "masked_cells": masked,
            },
        )

    def grid(self, *, offset: int = 0, limit: int = DEFAULT_PAGE) -> ServiceResult:
        """Page of cells ordered by ``cell_id`` with their claimant, if any."""
        op = "grid"
        if offset < 0 or limit < 1:
            return ServiceResult.failure(
                op, "VALIDATION_ERROR", "offset must be >= 0 and limit >= 1"
            )

        stmt = (
            select(cells.c.cell_id, cells.c.x, cells.c.y, cells.c.is_mask, claims.c.username)
            .select_from(cells.outerjoin(claims, cells.c.cell_id == claims.c.cell_id))
            .order_by(cells.c.cell_id)
            .limit(limit)
            .offset(offset)
        )
        try:
            with self._store.reader() as conn:
                rows = conn.execute(stmt).all()
        except StorageFailure as exc:
            return ServiceResult.failure(op, "STORAGE_FAILURE", str(exc))

        items = [
            {
                "cell_id": row.cell_id,
                "x": row.x,
                "y": row.y,
                "is_mask": bool(row.is_mask),
                "username": row.username,
            }
            for row in rows
        ]
        return ServiceResult(
            ok=True,
            op=op,
            data={"offset": offset, "limit": limit, "count": len(items), "items": items},
        )

    def search(self, username: str) -> ServiceResult:
        """Locate the cell held by *username* (case-insensitive)."""
        op = "search"
        name = normalize_username(username)
        if not name:
            return ServiceResult.failure(op, "VALIDATION_ERROR", "Username is empty")

        stmt = (
            select(claims.c.cell_id, cells.c.x, cells.c.y)
            .select_from(claims.join(cells, cells.c.cell_id == claims.c.cell_id))
            .where(claims.c.username == name)
        )
        try:
            with self._store.reader() as conn:
                row = conn.execute(stmt).first()
        except StorageFailure as exc:
            return ServiceResult.failure(op, "STORAGE_FAILURE", str(exc))

        if row is None:
            return ServiceResult(ok=True, op=op, data={"found": False, "username": name})
        return ServiceResult(
            ok=True,
            op=op,
            data={"found": True, "username": name, "cell_id": row.cell_id, "x": row.x, "y": row.y},
        )

    def check(self) -> ServiceResult:
        """Verify that filled cells and claims are in one-to-one correspondence.

        Reports filled cells without a claim, claims pointing at unfilled
        cells, and claim counts over the capacity limit.
        """
        op = "check"
        orphan_cells = (
            select(cells.c.cell_id)
            .select_from(cells.outerjoin(claims, cells.c.cell_id == claims.c.cell_id))
            .where(cells.c.filled.is_(True), claims.c.username.is_(None))
            .order_by(cells.c.cell_id)
        )
        unfilled_claims = (
            select(claims.c.username, claims.c.cell_id)
            .select_from(claims.join(cells, cells.c.cell_id == claims.c.cell_id))
            .where(cells.c.filled.is_(False))
            .order_by(claims.c.username)
        )
        try:
            with self._store.reader() as conn:
                orphans = [row.cell_id for row in conn.execute(orphan_cells)]
                dangling = [
                    {"username": row.username, "cell_id": row.cell_id}
                    for row in conn.execute(unfilled_claims)
                ]
                used = count_claims(conn)
                filled = count_cells(conn, filled=True)
        except StorageFailure as exc:
            return ServiceResult.failure(op, "STORAGE_FAILURE", str(exc))

        issues: list[str] = []
        if orphans:
            issues.append(f"{len(orphans)} filled cell(s) have no claim")
        if dangling:
            issues.append(f"{len(dangling)} claim(s) reference unfilled cells")
        if used > self._store.limit:
            issues.append(f"{used} claims exceed the limit of {self._store.limit}")

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "healthy": not issues,
                "claims": used,
                "filled_cells": filled,
                "orphan_cells": orphans,
                "unfilled_claims": dangling,
                "issues": issues,
            },
            warnings=issues,
        )
