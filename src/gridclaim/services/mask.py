"""MaskService — project a bitmap onto the cell mask flags.

A one-shot batch job: the image is decoded at the grid resolution, each
pixel darker than the threshold marks its cell as part of the mask.
Pixel ``(px, py)`` (top-left origin) lands on cell ``(px + 1, size - py)``.
"""

from __future__ import annotations

import logging
from pathlib import Path

from PIL import UnidentifiedImageError

from gridclaim.domain.errors import StorageFailure, ValidationError
from gridclaim.domain.geometry import is_masked, pixel_to_cell, validate_coordinates
from gridclaim.infrastructure.database.cells import clear_masks, set_mask, set_masks
from gridclaim.infrastructure.imaging import iter_pixels, load_grayscale
from gridclaim.services.base import BaseService
from gridclaim.services.result import ServiceResult

logger = logging.getLogger(__name__)


class MaskService(BaseService):
    """Mask flag updates; independent of cell fill state."""

    def apply(
        self,
        image_path: Path,
        *,
        threshold: int | None = None,
        reset: bool = False,
    ) -> ServiceResult:
        """Mark every cell under a dark pixel of *image_path* as masked.

        Args:
            image_path: Any image format Pillow can open.
            threshold: Brightness cutoff (default from ``[mask] threshold``).
            reset: Clear all existing mask flags first.
        """
        op = "mask_apply"
        size = self._store.grid_size
        cutoff = self._store.settings.mask.threshold if threshold is None else threshold

        try:
            img = load_grayscale(image_path, size)
        except (OSError, UnidentifiedImageError) as exc:
            return ServiceResult.failure(
                op, "INVALID_IMAGE", f"Cannot read image {image_path}: {exc}"
            )

        coordinates = [
            pixel_to_cell(px, py, size)
            for px, py, brightness in iter_pixels(img)
            if is_masked(brightness, cutoff)
        ]

        try:
            with self._store.transaction() as txn:
                cleared = clear_masks(txn.conn) if reset else 0
                masked = set_masks(txn.conn, coordinates, True)
        except StorageFailure as exc:
            return ServiceResult.failure(op, "STORAGE_FAILURE", str(exc))

        logger.info("Mask applied to %d cells", masked)
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "image": str(image_path),
                "threshold": cutoff,
                "masked": masked,
                "cleared": cleared,
            },
        )

    def apply_pixel(self, x: int, y: int, masked: bool) -> ServiceResult:
        """Set the mask flag of the single cell at grid coordinates ``(x, y)``."""
        op = "mask_set"
        try:
            validate_coordinates(x, y, self._store.grid_size)
        except ValidationError as exc:
            return ServiceResult.failure(op, "VALIDATION_ERROR", str(exc))

        try:
            with self._store.transaction() as txn:
                updated = set_mask(txn.conn, x, y, masked)
        except StorageFailure as exc:
            return ServiceResult.failure(op, "STORAGE_FAILURE", str(exc))

        if not updated:
            return ServiceResult.failure(op, "NOT_FOUND", f"No cell at ({x}, {y})")
        return ServiceResult(ok=True, op=op, data={"x": x, "y": y, "is_mask": masked})
