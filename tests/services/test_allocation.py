"""Tests for the allocation engine and AllocationService."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any

import pytest
from sqlalchemy.exc import OperationalError

from gridclaim.domain.errors import StorageFailure, ValidationError
from gridclaim.infrastructure.database.claims import count_claims
from gridclaim.infrastructure.store import GridStore
from gridclaim.services import allocation
from gridclaim.services.allocation import (
    AllocationEngine,
    AllocationResult,
    AllocationService,
    StopReason,
)
from tests.conftest import StoreFactory, assert_bijection, claim_map, filled_cells


def _allocate(store: GridStore, batch: list[str]) -> AllocationResult:
    return AllocationEngine(store).allocate(batch)


class TestSequentialAllocation:
    def test_assigns_cells_in_input_order(self, store: GridStore) -> None:
        result = _allocate(store, ["alice", "bob", "carol"])
        assert result.allocated == 3
        assert result.skipped == 0
        assert result.stop is StopReason.EXHAUSTED
        assert result.assigned == {"alice": 1, "bob": 2, "carol": 3}
        assert_bijection(store)

    def test_normalizes_and_deduplicates(self, store: GridStore) -> None:
        result = _allocate(store, ["Alice", " alice ", "BOB", ""])
        assert result.allocated == 2
        assert set(claim_map(store)) == {"alice", "bob"}

    def test_existing_claims_skipped(self, store: GridStore) -> None:
        _allocate(store, ["alice"])
        result = _allocate(store, ["ALICE", "bob"])
        assert result.allocated == 1
        assert result.skipped == 1
        assert claim_map(store)["alice"] == 1

    def test_empty_batch_rejected_before_storage(self, store: GridStore) -> None:
        with pytest.raises(ValidationError):
            _allocate(store, ["  ", ""])
        assert claim_map(store) == {}

    def test_claims_are_permanent(self, store: GridStore) -> None:
        first = _allocate(store, ["alice"]).assigned["alice"]
        _allocate(store, ["bob", "alice", "carol"])
        assert claim_map(store)["alice"] == first


class TestStopConditions:
    def test_grid_full_keeps_input_priority(self, store_factory: StoreFactory) -> None:
        store = store_factory(size=2)
        _allocate(store, ["early"])
        # K = 3 free cells, K + 3 eligible candidates.
        batch = ["u1", "u2", "u3", "u4", "u5", "u6"]
        result = _allocate(store, batch)
        assert result.allocated == 3
        assert result.skipped == 3
        assert result.stop is StopReason.GRID_FULL
        assert set(result.assigned) == {"u1", "u2", "u3"}
        assert_bijection(store)

    def test_existing_claims_count_as_skips_before_grid_full(
        self, store_factory: StoreFactory
    ) -> None:
        store = store_factory(size=1)
        _allocate(store, ["alice"])
        result = _allocate(store, ["alice", "bob", "carol"])
        assert result.allocated == 0
        assert result.skipped == 3
        assert result.stop is StopReason.GRID_FULL

    def test_capacity_limit_stops_batch(self, store_factory: StoreFactory) -> None:
        store = store_factory(limit=3)
        result = _allocate(store, ["a", "b", "c", "d", "e"])
        assert result.allocated == 3
        assert result.skipped == 2
        assert result.stop is StopReason.CAPACITY
        assert list(result.assigned) == ["a", "b", "c"]

    def test_capacity_already_reached(self, store_factory: StoreFactory) -> None:
        store = store_factory(limit=2)
        _allocate(store, ["a", "b"])
        result = _allocate(store, ["c", "d"])
        assert result.allocated == 0
        assert result.skipped == 2
        assert result.stop is StopReason.CAPACITY
        assert len(claim_map(store)) == 2

    def test_zero_limit_allocates_nothing(self, store_factory: StoreFactory) -> None:
        store = store_factory(limit=0)
        result = _allocate(store, ["a"])
        assert result.allocated == 0
        assert result.skipped == 1

    def test_limit_holds_before_every_insert(
        self, store_factory: StoreFactory, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        store = store_factory(limit=4)
        original = allocation.insert_claim
        observed: list[int] = []

        def checked_insert(conn: Any, username: str, cell_id: int) -> Any:
            used = count_claims(conn)
            observed.append(used)
            assert used < store.limit
            return original(conn, username, cell_id)

        monkeypatch.setattr(allocation, "insert_claim", checked_insert)
        _allocate(store, ["a", "b"])
        _allocate(store, ["c", "d", "e", "f"])
        assert observed == [0, 1, 2, 3]
        assert len(claim_map(store)) == 4

    def test_capacity_lock_taken_before_each_count(
        self, store: GridStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        events: list[str] = []
        original = allocation.count_claims

        def counting(conn: Any) -> int:
            events.append("count")
            return original(conn)

        monkeypatch.setattr(allocation, "lock_capacity", lambda conn: events.append("lock"))
        monkeypatch.setattr(allocation, "count_claims", counting)
        _allocate(store, ["a", "b"])
        # The batch-start snapshot is unlocked; every candidate count is locked.
        assert events == ["count", "lock", "count", "lock", "count"]


class TestConflicts:
    def test_lost_insert_race_releases_cell(
        self, store: GridStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A claim committed after the existence check becomes a skip."""
        _allocate(store, ["alice"])
        monkeypatch.setattr(allocation, "claim_exists", lambda conn, username: False)

        result = _allocate(store, ["alice", "bob"])
        assert result.allocated == 1
        assert result.skipped == 1
        assert result.assigned == {"bob": 2}
        assert claim_map(store) == {"alice": 1, "bob": 2}
        assert filled_cells(store) == {1, 2}
        assert_bijection(store)


class TestStorageFailure:
    def test_reissued_cell_is_a_failure_not_a_skip(
        self, store: GridStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _allocate(store, ["alice"])
        monkeypatch.setattr(allocation, "claim_free_cell", lambda conn: 1)

        with pytest.raises(StorageFailure) as excinfo:
            _allocate(store, ["bob"])
        assert excinfo.value.pending == ["bob"]
        assert claim_map(store) == {"alice": 1}
        assert_bijection(store)

    def test_failure_keeps_earlier_commits(
        self, store: GridStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        original = allocation.mark_filled
        calls = {"n": 0}

        def flaky_mark_filled(conn: Any, cell_id: int) -> None:
            calls["n"] += 1
            if calls["n"] == 2:
                raise OperationalError("UPDATE cells", {}, Exception("disk I/O error"))
            original(conn, cell_id)

        monkeypatch.setattr(allocation, "mark_filled", flaky_mark_filled)

        with pytest.raises(StorageFailure) as excinfo:
            _allocate(store, ["alice", "bob", "carol"])

        exc = excinfo.value
        assert exc.result is not None
        assert exc.result.allocated == 1
        assert exc.result.skipped == 0
        assert exc.pending == ["bob", "carol"]
        # Only the failed candidate was rolled back.
        assert claim_map(store) == {"alice": 1}
        assert_bijection(store)

    def test_resubmission_after_failure(
        self, store: GridStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def broken(conn: Any, cell_id: int) -> None:
            raise OperationalError("UPDATE cells", {}, Exception("database is locked"))

        monkeypatch.setattr(allocation, "mark_filled", broken)
        with pytest.raises(StorageFailure) as excinfo:
            _allocate(store, ["alice"])
        monkeypatch.undo()

        result = _allocate(store, excinfo.value.pending)
        assert result.allocated == 1
        assert_bijection(store)


class TestConcurrentAllocation:
    def test_disjoint_batches_all_allocated(self, store_factory: StoreFactory) -> None:
        store = store_factory(size=8)
        batches = [[f"w{w}-u{i}" for i in range(8)] for w in range(6)]

        with ThreadPoolExecutor(max_workers=6) as pool:
            results = list(pool.map(lambda batch: _allocate(store, batch), batches))

        assert sum(r.allocated for r in results) == 48
        assert sum(r.skipped for r in results) == 0
        mapping = claim_map(store)
        assert len(mapping) == 48
        assert len(set(mapping.values())) == 48
        assert_bijection(store)

    def test_same_username_in_two_batches(self, store: GridStore) -> None:
        barrier = threading.Barrier(2)

        def run() -> AllocationResult:
            barrier.wait()
            return _allocate(store, ["shared"])

        with ThreadPoolExecutor(max_workers=2) as pool:
            results = [f.result() for f in [pool.submit(run), pool.submit(run)]]

        assert sorted((r.allocated, r.skipped) for r in results) == [(0, 1), (1, 0)]
        assert list(claim_map(store)) == ["shared"]
        assert_bijection(store)

    def test_concurrent_batches_respect_limit(self, store_factory: StoreFactory) -> None:
        store = store_factory(size=8, limit=20)
        batches = [[f"w{w}-u{i}" for i in range(10)] for w in range(4)]

        with ThreadPoolExecutor(max_workers=4) as pool:
            results = list(pool.map(lambda batch: _allocate(store, batch), batches))

        assert sum(r.allocated for r in results) == 20
        assert sum(r.skipped for r in results) == 20
        assert len(claim_map(store)) == 20
        assert_bijection(store)

    def test_concurrent_batches_fill_grid_exactly(self, store_factory: StoreFactory) -> None:
        store = store_factory(size=3)
        batches = [[f"w{w}-u{i}" for i in range(5)] for w in range(3)]

        with ThreadPoolExecutor(max_workers=3) as pool:
            results = list(pool.map(lambda batch: _allocate(store, batch), batches))

        assert sum(r.allocated for r in results) == 9
        assert filled_cells(store) == set(range(1, 10))
        assert_bijection(store)


class TestAllocationService:
    def test_success_payload(self, store: GridStore) -> None:
        result = AllocationService(store).allocate(["alice", "bob"])
        assert result.ok
        assert result.op == "allocate"
        assert result.data == {"allocated": 2, "skipped": 0, "assigned": {"alice": 1, "bob": 2}}
        assert result.warnings == []

    def test_stop_reported_as_warning(self, store_factory: StoreFactory) -> None:
        store = store_factory(limit=1)
        result = AllocationService(store).allocate(["a", "b", "c"])
        assert result.ok
        assert result.data["allocated"] == 1
        assert result.data["skipped"] == 2
        assert result.warnings == ["2 username(s) not allocated: no capacity left"]

    def test_validation_error(self, store: GridStore) -> None:
        result = AllocationService(store).allocate([])
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "VALIDATION_ERROR"

    def test_storage_failure_detail(
        self, store: GridStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def broken(conn: Any, cell_id: int) -> None:
            raise OperationalError("UPDATE cells", {}, Exception("gone"))

        monkeypatch.setattr(allocation, "mark_filled", broken)
        result = AllocationService(store).allocate(["alice", "bob"])
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "STORAGE_FAILURE"
        assert result.error.detail["allocated"] == 0
        assert result.error.detail["pending"] == ["alice", "bob"]

    def test_custom_op_name(self, store: GridStore) -> None:
        result = AllocationService(store).allocate(["alice"], op="upload_confirm")
        assert result.op == "upload_confirm"
