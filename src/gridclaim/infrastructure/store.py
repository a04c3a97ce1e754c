"""GridStore — the repository shared by every service.

Owns the SQLAlchemy engine for one grid and hands out short
transactions. Each allocation candidate gets its own transaction via
:meth:`GridStore.transaction`; there is no batch-wide transaction.
Storage errors leaving a transaction are re-raised as
:class:`~gridclaim.domain.errors.StorageFailure` after the rollback.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from gridclaim.domain.errors import StorageFailure
from gridclaim.infrastructure.database.engine import init_database

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy import Connection
    from sqlalchemy.engine import Engine

    from gridclaim.config.settings import GridSettings

logger = logging.getLogger(__name__)


@dataclass
class StoreTransaction:
    """Active transaction yielded by :meth:`GridStore.transaction`."""

    conn: Connection
    released: bool = False

    def release(self) -> None:
        """Discard every change made so far; the transaction rolls back on exit.

        Used to hand a reserved cell back when its claim insert loses a race.
        """
        self.released = True


class GridStore:
    """Repository wrapping the cells/claims database of one grid.

    Constructed lazily by the CLI context; services receive it through
    :class:`~gridclaim.services.base.BaseService`.
    """

    def __init__(self, settings: GridSettings) -> None:
        self._settings = settings
        try:
            self._engine: Engine = init_database(
                settings.database_url,
                settings.grid.size,
                busy_timeout=settings.database.busy_timeout,
            )
        except SQLAlchemyError as exc:
            msg = f"Cannot open store: {exc}"
            raise StorageFailure(msg) from exc

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def settings(self) -> GridSettings:
        return self._settings

    @property
    def grid_size(self) -> int:
        return self._settings.grid.size

    @property
    def limit(self) -> int:
        """The capacity cap on total claims."""
        return self._settings.capacity.limit

    @contextmanager
    def transaction(self) -> Iterator[StoreTransaction]:
        """Open one transaction scoped to the ``with`` block.

        Commits when the block exits normally, unless
        :meth:`StoreTransaction.release` was called. Rolls back on any
        exception; SQLAlchemy errors surface as ``StorageFailure``.

        Usage::

            with store.transaction() as txn:
                cell_id = claim_free_cell(txn.conn)
                ...
        """
        try:
            with self._engine.connect() as conn:
                trans = conn.begin()
                txn = StoreTransaction(conn=conn)
                try:
                    yield txn
                except BaseException:
                    trans.rollback()
                    raise
                if txn.released:
                    trans.rollback()
                else:
                    trans.commit()
        except SQLAlchemyError as exc:
            logger.warning("Store transaction rolled back: %s", exc)
            raise StorageFailure(str(exc)) from exc

    @contextmanager
    def reader(self) -> Iterator[Connection]:
        """Open a connection for read-only queries."""
        try:
            with self._engine.connect() as conn:
                yield conn
        except SQLAlchemyError as exc:
            raise StorageFailure(str(exc)) from exc

    def close(self) -> None:
        """Release pooled connections."""
        self._engine.dispose()
