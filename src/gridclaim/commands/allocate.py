"""Command: allocate cells to usernames immediately (no preview)."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from gridclaim.commands._base import GridCommand, read_csv_option

if TYPE_CHECKING:
    from gridclaim.commands._context import AppContext


@click.command(
    cls=GridCommand,
    examples="""\
  gridclaim allocate alice bob carol
  gridclaim allocate --file usernames.csv
  gridclaim --json allocate alice""",
)
@click.argument("usernames", nargs=-1)
@click.option(
    "--file",
    "csv_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="CSV file (header row, usernames in the first column).",
)
@click.pass_obj
def allocate(app: AppContext, usernames: tuple[str, ...], csv_file: Path | None) -> None:
    """Assign grid cells to USERNAMES in the order given."""
    from gridclaim.services.allocation import AllocationService

    batch = list(usernames)
    if csv_file is not None:
        batch.extend(read_csv_option(csv_file, "--file"))
    app.emit(AllocationService(app.store).allocate(batch))
