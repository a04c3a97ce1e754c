"""Grid coordinates and the image-to-grid transform.

Grid coordinates are 1-based with ``y`` growing upwards; image pixel
coordinates are 0-based with ``y`` growing downwards.
"""

from __future__ import annotations

from gridclaim.domain.errors import ValidationError


def validate_coordinates(x: int, y: int, grid_size: int) -> None:
    """Check that ``(x, y)`` addresses a cell of a *grid_size* square grid."""
    for axis, value in (("x", x), ("y", y)):
        if not 1 <= value <= grid_size:
            msg = f"{axis}={value} is outside the grid (1..{grid_size})"
            raise ValidationError(msg)


def pixel_to_cell(px: int, py: int, grid_size: int) -> tuple[int, int]:
    """Map image pixel ``(px, py)`` to grid cell ``(x, y)``.

    Examples:
        >>> pixel_to_cell(0, 0, 256)
        (1, 256)
        >>> pixel_to_cell(255, 255, 256)
        (256, 1)
    """
    return px + 1, grid_size - py


def is_masked(brightness: int, threshold: int) -> bool:
    """Dark pixels (brightness strictly below *threshold*) belong to the mask."""
    return brightness < threshold
