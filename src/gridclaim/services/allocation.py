"""Allocation engine — assign usernames to free cells under the capacity cap.

Candidates are processed one at a time in input order; earlier entries
win scarce cells and the last slots under the cap. Each candidate runs
in its own transaction covering the cap check, the existence check, the
cell reservation, the claim insert, and the fill flag:

    used >= limit?       -> stop, remaining candidates skipped
    already claimed?     -> skipped
    no free cell?        -> stop, remaining candidates skipped
    claim insert races?  -> cell released, skipped
    otherwise            -> cell filled, allocated

A storage failure rolls back only the current candidate. Candidates
committed before it stay committed; the failure is raised to the caller
with the partial counts and the candidates left unprocessed.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog

from gridclaim.domain.errors import StorageFailure, ValidationError
from gridclaim.domain.identifiers import normalize_batch
from gridclaim.infrastructure.database.cells import claim_free_cell, mark_filled
from gridclaim.infrastructure.database.claims import (
    InsertOutcome,
    claim_exists,
    count_claims,
    insert_claim,
    lock_capacity,
)
from gridclaim.services.base import BaseService
from gridclaim.services.result import ServiceResult

if TYPE_CHECKING:
    from gridclaim.infrastructure.store import GridStore

log = structlog.get_logger(__name__)


class StopReason(enum.Enum):
    """Why a batch ended."""

    EXHAUSTED = "exhausted"  # every candidate was processed
    CAPACITY = "capacity"
    GRID_FULL = "grid_full"


class _Outcome(enum.Enum):
    ALLOCATED = "allocated"
    EXISTS = "exists"
    CONFLICT = "conflict"
    CAPACITY = "capacity"
    GRID_FULL = "grid_full"


_STOPS = {_Outcome.CAPACITY: StopReason.CAPACITY, _Outcome.GRID_FULL: StopReason.GRID_FULL}


@dataclass
class AllocationResult:
    """Counts for one batch. ``assigned`` maps each new claim to its cell."""

    allocated: int = 0
    skipped: int = 0
    stop: StopReason = StopReason.EXHAUSTED
    unprocessed: int = 0  # skipped because the batch stopped early
    assigned: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "allocated": self.allocated,
            "skipped": self.skipped,
            "assigned": dict(self.assigned),
        }


class AllocationEngine:
    """Runs batches against one :class:`GridStore`.

    Holds no state between calls; concurrent engines on the same store
    are safe because every guarantee comes from the store's transactions.
    """

    def __init__(self, store: GridStore) -> None:
        self._store = store

    def allocate(self, batch: Iterable[object]) -> AllocationResult:
        """Allocate cells to *batch* in order.

        The batch is normalized and deduplicated first, so stale or
        unnormalized input is accepted.

        Raises:
            ValidationError: If the batch holds no usable username.
            StorageFailure: If the store fails; ``exc.result`` and
                ``exc.pending`` describe what was and was not done.
        """
        candidates = normalize_batch(batch)
        limit = self._store.limit
        result = AllocationResult()

        try:
            with self._store.reader() as conn:
                running = count_claims(conn)
        except StorageFailure as exc:
            raise StorageFailure(str(exc), result=result, pending=candidates) from exc

        for index, username in enumerate(candidates):
            if running >= limit:
                outcome = _Outcome.CAPACITY
            else:
                try:
                    outcome, cell_id, running = self._allocate_one(username, limit)
                except StorageFailure as exc:
                    log.error(
                        "allocate.storage_failure",
                        username=username,
                        allocated=result.allocated,
                        skipped=result.skipped,
                    )
                    msg = f"Storage failure while allocating {username!r}: {exc}"
                    raise StorageFailure(msg, result=result, pending=candidates[index:]) from exc

            if outcome is _Outcome.ALLOCATED:
                result.allocated += 1
                result.assigned[username] = cell_id
            elif outcome in (_Outcome.EXISTS, _Outcome.CONFLICT):
                result.skipped += 1
            else:
                result.stop = _STOPS[outcome]
                result.unprocessed = len(candidates) - index
                result.skipped += result.unprocessed
                log.info(
                    "allocate.stop",
                    reason=result.stop.value,
                    used=running,
                    limit=limit,
                    remaining=result.unprocessed,
                )
                break

        log.debug(
            "allocate.done",
            requested=len(candidates),
            allocated=result.allocated,
            skipped=result.skipped,
        )
        return result

    def _allocate_one(self, username: str, limit: int) -> tuple[_Outcome, Any, int]:
        """Process one candidate in its own transaction.

        Returns ``(outcome, cell_id, used)`` where *used* is the live claim
        count after this candidate.
        """
        with self._store.transaction() as txn:
            lock_capacity(txn.conn)
            used = count_claims(txn.conn)
            if used >= limit:
                return _Outcome.CAPACITY, None, used
            if claim_exists(txn.conn, username):
                return _Outcome.EXISTS, None, used

            cell_id = claim_free_cell(txn.conn)
            if cell_id is None:
                return _Outcome.GRID_FULL, None, used

            if insert_claim(txn.conn, username, cell_id) is InsertOutcome.CONFLICT:
                txn.release()
                log.info("allocate.conflict", username=username, cell_id=cell_id)
                return _Outcome.CONFLICT, None, used

            mark_filled(txn.conn, cell_id)
        return _Outcome.ALLOCATED, cell_id, used + 1


class AllocationService(BaseService):
    """Service wrapper turning engine outcomes into ServiceResult."""

    def allocate(self, usernames: Iterable[object], *, op: str = "allocate") -> ServiceResult:
        """Allocate cells to *usernames*; partial success is still ``ok``."""
        try:
            result = AllocationEngine(self._store).allocate(usernames)
        except ValidationError as exc:
            return ServiceResult.failure(op, "VALIDATION_ERROR", str(exc))
        except StorageFailure as exc:
            partial = exc.result or AllocationResult()
            return ServiceResult.failure(
                op,
                "STORAGE_FAILURE",
                str(exc),
                allocated=partial.allocated,
                skipped=partial.skipped,
                assigned=dict(partial.assigned),
                pending=exc.pending,
            )

        warnings: list[str] = []
        if result.stop is not StopReason.EXHAUSTED:
            warnings.append(f"{result.unprocessed} username(s) not allocated: no capacity left")

        return ServiceResult(ok=True, op=op, data=result.to_dict(), warnings=warnings)
