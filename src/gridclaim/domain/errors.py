"""Exception taxonomy for gridclaim.

Only two conditions are raised: malformed input (:class:`ValidationError`)
and storage trouble (:class:`StorageFailure`). Duplicate claims, a reached
capacity cap, and a full grid are allocation *outcomes*, reported through
result counts rather than exceptions.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from gridclaim.services.allocation import AllocationResult


class GridClaimError(Exception):
    """Base class for all gridclaim errors."""


class ValidationError(GridClaimError, ValueError):
    """Input was rejected before any storage access."""


class StorageFailure(GridClaimError):
    """A transaction or connection to the store failed.

    When raised from a batch allocation, ``result`` holds the counts of
    candidates committed before the failure and ``pending`` lists the
    candidates that were not processed (the failed one first). Committed
    candidates are never rolled back.
    """

    def __init__(
        self,
        message: str,
        *,
        result: AllocationResult | None = None,
        pending: Sequence[str] = (),
    ) -> None:
        super().__init__(message)
        self.result = result
        self.pending = list(pending)
