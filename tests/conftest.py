"""Shared pytest fixtures and test helpers for gridclaim tests."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from click.testing import CliRunner
from sqlalchemy import select

from gridclaim.config.models import CapacityConfig, GridConfig
from gridclaim.config.settings import GridSettings
from gridclaim.infrastructure.database.schema import cells, claims
from gridclaim.infrastructure.store import GridStore

StoreFactory = Callable[..., GridStore]


def make_settings(root: Path, *, size: int = 4, limit: int = 100) -> GridSettings:
    """Settings for a small grid rooted at *root*."""
    return GridSettings(
        root=root,
        grid=GridConfig(size=size),
        capacity=CapacityConfig(limit=limit),
    )


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def store_factory(tmp_path: Path) -> Iterator[StoreFactory]:
    """Build stores on a fresh SQLite file; each call gets its own directory."""
    opened: list[GridStore] = []

    def _make(*, size: int = 4, limit: int = 100) -> GridStore:
        root = tmp_path / f"grid{len(opened)}"
        root.mkdir()
        store = GridStore(make_settings(root, size=size, limit=limit))
        opened.append(store)
        return store

    try:
        yield _make
    finally:
        for store in opened:
            store.close()


@pytest.fixture
def store(store_factory: StoreFactory) -> GridStore:
    """A 4x4 grid (16 cells) with a limit of 100 claims."""
    return store_factory()


@pytest.fixture
def _isolated_grid(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Run the CLI in a temp directory holding a small-grid gridclaim.toml.

    Use via ``@pytest.mark.usefixtures("_isolated_grid")`` on command test
    classes.
    """
    monkeypatch.delenv("GRIDCLAIM_CONFIG", raising=False)
    (tmp_path / "gridclaim.toml").write_text("[grid]\nsize = 4\n\n[capacity]\nlimit = 10\n")
    monkeypatch.chdir(tmp_path)


# ---------------------------------------------------------------------------
# Shared test helpers
# ---------------------------------------------------------------------------


def claim_map(store: GridStore) -> dict[str, int]:
    """All claims as ``{username: cell_id}``."""
    with store.engine.connect() as conn:
        return {row.username: row.cell_id for row in conn.execute(select(claims))}


def filled_cells(store: GridStore) -> set[int]:
    """Ids of every filled cell."""
    with store.engine.connect() as conn:
        rows = conn.execute(select(cells.c.cell_id).where(cells.c.filled.is_(True)))
        return {row.cell_id for row in rows}


def assert_bijection(store: GridStore) -> None:
    """Filled cells and claims correspond one-to-one."""
    mapping = claim_map(store)
    assert len(set(mapping.values())) == len(mapping)
    assert set(mapping.values()) == filled_cells(store)
