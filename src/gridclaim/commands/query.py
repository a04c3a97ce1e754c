"""Commands: read-only views of the grid."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from gridclaim.commands._base import GridCommand

if TYPE_CHECKING:
    from gridclaim.commands._context import AppContext


@click.command(
    cls=GridCommand,
    examples="""\
  gridclaim status
  gridclaim --json status""",
)
@click.pass_obj
def status(app: AppContext) -> None:
    """Show season, capacity usage, and free cells."""
    from gridclaim.services.grid import GridService

    app.emit(GridService(app.store).status())


@click.command(
    cls=GridCommand,
    examples="""\
  gridclaim grid --limit 20
  gridclaim --json grid --offset 5000 --limit 5000""",
)
@click.option("--offset", default=0, type=int, show_default=True, help="Cells to skip.")
@click.option("--limit", default=5000, type=int, show_default=True, help="Cells to return.")
@click.pass_obj
def grid(app: AppContext, offset: int, limit: int) -> None:
    """List cells in id order with their claimant."""
    from gridclaim.services.grid import GridService

    app.emit(GridService(app.store).grid(offset=offset, limit=limit))


@click.command(
    cls=GridCommand,
    examples="""\
  gridclaim search Alice""",
)
@click.argument("username")
@click.pass_obj
def search(app: AppContext, username: str) -> None:
    """Find the cell held by USERNAME."""
    from gridclaim.services.grid import GridService

    app.emit(GridService(app.store).search(username))


@click.command(
    cls=GridCommand,
    examples="""\
  gridclaim check
  gridclaim --json check""",
)
@click.pass_obj
def check(app: AppContext) -> None:
    """Verify the filled-cell/claim correspondence and the capacity cap."""
    from gridclaim.services.grid import GridService

    app.emit(GridService(app.store).check())
