"""Database engine setup and grid initialization.

SQLite is the default store: WAL mode for concurrent readers, and every
transaction opened with ``BEGIN IMMEDIATE`` so concurrent writers queue
on the busy timeout instead of failing on a lock upgrade. Any other
SQLAlchemy URL (PostgreSQL in production) is used as-is.

SQLAlchemy Core (not ORM) is used: the store is two flat tables driven
by short, explicit transactions.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, event, func, insert, select
from sqlalchemy.engine import Connection, Engine, make_url

from gridclaim.infrastructure.database.schema import cells, metadata

logger = logging.getLogger(__name__)

_SEED_CHUNK = 4096


def create_db_engine(url: str, *, busy_timeout: float = 30.0) -> Engine:
    """Create an engine for *url*.

    For SQLite, the parent directory is created, WAL and foreign keys are
    enabled, and pysqlite's implicit transaction handling is replaced by
    explicit ``BEGIN IMMEDIATE``.
    """
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return create_engine(url, echo=False, pool_pre_ping=True)

    if parsed.database and parsed.database != ":memory:":
        Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(url, echo=False, connect_args={"timeout": busy_timeout})

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn: Any, _: Any) -> None:
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute(f"PRAGMA busy_timeout={int(busy_timeout * 1000)}")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn: Connection) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def init_database(url: str, grid_size: int, *, busy_timeout: float = 30.0) -> Engine:
    """Create the tables and seed ``grid_size ** 2`` cells.

    Idempotent: safe to call on an existing store of the same size.

    Raises:
        ValueError: If the store already holds a grid of a different size.
    """
    engine = create_db_engine(url, busy_timeout=busy_timeout)
    metadata.create_all(engine)
    _seed_cells(engine, grid_size)
    return engine


def _seed_cells(engine: Engine, grid_size: int) -> None:
    """Insert one row per cell, row-major from (1, 1), if the table is empty."""
    expected = grid_size * grid_size
    with engine.begin() as conn:
        existing = conn.execute(select(func.count()).select_from(cells)).scalar_one()
        if existing == expected:
            return
        if existing:
            msg = f"Store holds {existing} cells but grid size {grid_size} needs {expected}"
            raise ValueError(msg)

        rows = [{"x": x, "y": y} for y in range(1, grid_size + 1) for x in range(1, grid_size + 1)]
        for start in range(0, len(rows), _SEED_CHUNK):
            conn.execute(insert(cells), rows[start : start + _SEED_CHUNK])

    logger.info("Seeded %d grid cells (%dx%d)", expected, grid_size, grid_size)
