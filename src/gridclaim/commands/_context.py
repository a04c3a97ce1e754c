"""AppContext — shared Click context for all commands.

Created once by the root CLI group and passed to subcommands via
``@click.pass_obj``. The store opens lazily, so ``--help`` and
``--version`` never touch the database.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from gridclaim.config.logging import configure_logging
from gridclaim.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from gridclaim.config.settings import GridSettings
    from gridclaim.infrastructure.store import GridStore
    from gridclaim.services.result import ServiceResult


class AppContext:
    """Settings, the lazily opened store, and result emission."""

    def __init__(self, settings: GridSettings) -> None:
        self.settings = settings
        self._store: GridStore | None = None
        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

    @property
    def store(self) -> GridStore:
        """The grid store (opened, and seeded if new, on first access)."""
        if self._store is None:
            from gridclaim.domain.errors import StorageFailure
            from gridclaim.infrastructure.store import GridStore

            try:
                self._store = GridStore(self.settings)
            except (StorageFailure, ValueError) as exc:
                raise click.ClickException(str(exc)) from exc
        return self._store

    def close(self) -> None:
        if self._store is not None:
            self._store.close()
            self._store = None

    def emit(self, result: ServiceResult) -> None:
        """Print *result*; exit with status 1 if it failed.

        Success goes to stdout with warnings on stderr (already embedded
        in JSON mode). Failure goes to stderr.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
