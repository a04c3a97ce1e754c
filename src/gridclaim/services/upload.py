"""UploadService — two-phase preview/confirm intake.

``preview`` classifies a raw list against the claim ledger without
writing anything. ``confirm`` re-runs the full allocation from scratch:
a preview is advisory only, and any of its usernames may have been
claimed, or the grid may have filled, by the time it is confirmed.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from gridclaim.domain.errors import StorageFailure, ValidationError
from gridclaim.domain.identifiers import normalize_batch
from gridclaim.infrastructure.database.claims import existing_usernames
from gridclaim.infrastructure.intake import read_usernames_csv
from gridclaim.services.allocation import AllocationService
from gridclaim.services.base import BaseService
from gridclaim.services.result import ServiceResult

logger = logging.getLogger(__name__)


class UploadService(BaseService):
    """Preview and confirm username uploads."""

    def preview(self, usernames: Iterable[object]) -> ServiceResult:
        """Split *usernames* into already-claimed and ready-to-insert.

        ``ready_to_insert`` keeps input order (after normalization and
        deduplication); ``already_exists`` is sorted.
        """
        op = "upload_preview"
        try:
            batch = normalize_batch(usernames)
        except ValidationError as exc:
            return ServiceResult.failure(op, "VALIDATION_ERROR", str(exc))

        try:
            with self._store.reader() as conn:
                existing = existing_usernames(conn, batch)
        except StorageFailure as exc:
            return ServiceResult.failure(op, "STORAGE_FAILURE", str(exc))

        ready = [name for name in batch if name not in existing]
        logger.debug("Preview: %d total, %d existing", len(batch), len(existing))
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "total": len(batch),
                "already_exists_count": len(existing),
                "ready_to_insert_count": len(ready),
                "already_exists": sorted(existing),
                "ready_to_insert": ready,
            },
        )

    def preview_file(self, path: Path) -> ServiceResult:
        """Preview the usernames in a CSV upload."""
        try:
            usernames = read_usernames_csv(path)
        except (OSError, UnicodeDecodeError) as exc:
            return ServiceResult.failure(
                "upload_preview", "INVALID_INPUT", f"Cannot read {path}: {exc}"
            )
        return self.preview(usernames)

    def confirm(self, usernames: Iterable[object]) -> ServiceResult:
        """Allocate *usernames*, re-validating everything against current state."""
        return AllocationService(self._store).allocate(usernames, op="upload_confirm")
