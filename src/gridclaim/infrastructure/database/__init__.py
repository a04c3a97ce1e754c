"""Store engine, schema, cell store and claim ledger via SQLAlchemy Core."""

from gridclaim.infrastructure.database.cells import (
    claim_free_cell,
    clear_masks,
    count_cells,
    mark_filled,
    set_mask,
    set_masks,
)
from gridclaim.infrastructure.database.claims import (
    InsertOutcome,
    claim_exists,
    count_claims,
    existing_usernames,
    find_claim,
    insert_claim,
    lock_capacity,
)
from gridclaim.infrastructure.database.engine import create_db_engine, init_database
from gridclaim.infrastructure.database.schema import cells, claims, metadata

__all__ = [
    "InsertOutcome",
    "cells",
    "claim_exists",
    "claim_free_cell",
    "claims",
    "clear_masks",
    "count_cells",
    "count_claims",
    "create_db_engine",
    "existing_usernames",
    "find_claim",
    "init_database",
    "insert_claim",
    "lock_capacity",
    "mark_filled",
    "metadata",
    "set_mask",
    "set_masks",
]
