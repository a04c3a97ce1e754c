"""Command group: mask projection."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from gridclaim.commands._base import GridGroup

if TYPE_CHECKING:
    from gridclaim.commands._context import AppContext


@click.group(
    cls=GridGroup,
    examples="""\
  gridclaim mask apply mask.png
  gridclaim mask set 10 20 --unmask""",
)
def mask() -> None:
    """Manage the cell mask."""


@mask.command(
    examples="""\
  gridclaim mask apply mask.png
  gridclaim mask apply mask.png --threshold 100 --reset""",
)
@click.argument("image", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--threshold",
    type=click.IntRange(0, 256),
    default=None,
    help="Brightness below which a pixel is masked (default from config).",
)
@click.option("--reset", is_flag=True, help="Clear existing mask flags first.")
@click.pass_obj
def apply(app: AppContext, image: Path, threshold: int | None, reset: bool) -> None:
    """Project IMAGE onto the grid, masking cells under dark pixels."""
    from gridclaim.services.mask import MaskService

    app.emit(MaskService(app.store).apply(image, threshold=threshold, reset=reset))


@mask.command(
    "set",
    examples="""\
  gridclaim mask set 1 256
  gridclaim mask set 1 256 --unmask""",
)
@click.argument("x", type=int)
@click.argument("y", type=int)
@click.option("--unmask", is_flag=True, help="Clear the flag instead of setting it.")
@click.pass_obj
def set_cmd(app: AppContext, x: int, y: int, unmask: bool) -> None:
    """Set the mask flag of the cell at grid coordinates X Y."""
    from gridclaim.services.mask import MaskService

    app.emit(MaskService(app.store).apply_pixel(x, y, not unmask))
