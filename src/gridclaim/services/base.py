"""BaseService — common foundation for gridclaim services.

Every service receives a :class:`GridStore` at construction time and owns
its transaction boundaries via ``self._store.transaction()``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from gridclaim.infrastructure.store import GridStore


class BaseService:
    """Base for all service-layer classes.

    Usage::

        class GridService(BaseService):
            def status(self) -> ServiceResult:
                with self._store.reader() as conn:
                    ...
    """

    def __init__(self, store: GridStore) -> None:
        self._store = store
