"""Command group: two-phase upload (preview, then confirm)."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from gridclaim.commands._base import GridGroup, read_csv_option

if TYPE_CHECKING:
    from gridclaim.commands._context import AppContext

_FILE = click.Path(exists=True, dir_okay=False, path_type=Path)


@click.group(
    cls=GridGroup,
    examples="""\
  gridclaim --json upload preview usernames.csv > preview.json
  gridclaim upload confirm --preview preview.json
  gridclaim upload confirm alice bob""",
)
def upload() -> None:
    """Preview a username upload, then confirm it."""


@upload.command(
    examples="""\
  gridclaim upload preview usernames.csv
  gridclaim --json upload preview usernames.csv > preview.json""",
)
@click.argument("csv_file", type=_FILE)
@click.pass_obj
def preview(app: AppContext, csv_file: Path) -> None:
    """Classify the usernames in CSV_FILE without claiming anything."""
    from gridclaim.services.upload import UploadService

    app.emit(UploadService(app.store).preview_file(csv_file))


@upload.command(
    examples="""\
  gridclaim upload confirm --preview preview.json
  gridclaim upload confirm --file usernames.csv
  gridclaim upload confirm alice bob""",
)
@click.argument("usernames", nargs=-1)
@click.option(
    "--preview",
    "preview_file",
    type=_FILE,
    help="Saved output of 'gridclaim --json upload preview'.",
)
@click.option("--file", "csv_file", type=_FILE, help="CSV file of usernames.")
@click.pass_obj
def confirm(
    app: AppContext,
    usernames: tuple[str, ...],
    preview_file: Path | None,
    csv_file: Path | None,
) -> None:
    """Allocate cells, re-checking every username against current state."""
    from gridclaim.infrastructure.intake import read_preview_json
    from gridclaim.services.upload import UploadService

    batch = list(usernames)
    if preview_file is not None:
        try:
            batch.extend(read_preview_json(preview_file))
        except (OSError, ValueError) as exc:
            raise click.BadParameter(str(exc), param_hint="--preview") from exc
    if csv_file is not None:
        batch.extend(read_csv_option(csv_file, "--file"))
    app.emit(UploadService(app.store).confirm(batch))
