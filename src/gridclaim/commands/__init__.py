"""Subcommand modules for gridclaim.

register_commands() imports lazily so ``gridclaim --help`` stays fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all command groups and standalone commands on the root group."""
    # --- Groups ---
    from gridclaim.commands.mask import mask
    from gridclaim.commands.upload import upload

    cli.add_command(upload)
    cli.add_command(mask)

    # --- Standalone commands ---
    from gridclaim.commands.allocate import allocate
    from gridclaim.commands.init_cmd import init_cmd
    from gridclaim.commands.query import check, grid, search, status

    cli.add_command(init_cmd)
    cli.add_command(allocate)
    cli.add_command(status)
    cli.add_command(grid)
    cli.add_command(search)
    cli.add_command(check)
