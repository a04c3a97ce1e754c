"""Command: create the store and seed the grid."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from gridclaim.commands._base import GridCommand

if TYPE_CHECKING:
    from gridclaim.commands._context import AppContext


@click.command(
    "init",
    cls=GridCommand,
    examples="""\
  gridclaim init
  gridclaim -c ./season1/gridclaim.toml init""",
)
@click.pass_obj
def init_cmd(app: AppContext) -> None:
    """Create the database and seed every grid cell (idempotent)."""
    from gridclaim.services.grid import GridService

    app.emit(GridService(app.store).init())
