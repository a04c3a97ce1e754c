"""SQLAlchemy Core table definitions for the gridclaim store.

Two durable tables: ``cells`` (pre-populated, one row per grid cell)
and ``claims`` (one row per assigned username). A cell is filled iff
exactly one claim references it.
"""

from __future__ import annotations

from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
    UniqueConstraint,
)

metadata = MetaData()

cells = Table(
    "cells",
    metadata,
    Column("cell_id", Integer, primary_key=True, autoincrement=True),
    Column("x", Integer, nullable=False),
    Column("y", Integer, nullable=False),
    Column("filled", Boolean, nullable=False, default=False, server_default="0"),
    Column("is_mask", Boolean, nullable=False, default=False, server_default="0"),
    # Bumped on every reservation; drives optimistic selection where the
    # backend has no SKIP LOCKED.
    Column("version", Integer, nullable=False, default=0, server_default="0"),
    UniqueConstraint("x", "y"),
)

claims = Table(
    "claims",
    metadata,
    Column("username", Text, primary_key=True),  # normalized (trimmed, lowercased)
    Column("cell_id", Integer, ForeignKey("cells.cell_id"), nullable=False, unique=True),
    Column("created", Text, nullable=False),
)

Index("ix_cells_filled", cells.c.filled, cells.c.cell_id)
