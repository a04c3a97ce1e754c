"""Bitmap decoding for mask projection (Pillow).

The image is resized to the grid resolution and converted to 8-bit
grayscale, so each pixel maps to exactly one cell.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

from PIL import Image


def load_grayscale(path: Path, size: int) -> Image.Image:
    """Open *path* and return a ``size`` x ``size`` grayscale ("L") image.

    Raises:
        OSError: If the file is missing or is not a readable image.
    """
    with Image.open(path) as img:
        return img.convert("L").resize((size, size))


def iter_pixels(img: Image.Image) -> Iterator[tuple[int, int, int]]:
    """Yield ``(px, py, brightness)`` in row-major order from the top-left."""
    width, height = img.size
    data = img.tobytes()
    for py in range(height):
        row = py * width
        for px in range(width):
            yield px, py, data[row + px]
