"""Shared click plumbing for gridclaim commands.

Every command and group takes an ``examples=`` text shown by an eager
``--examples`` flag, so ``--help`` only lists options. CSV options share
one reader that reports bad files as usage errors.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import click


def _add_examples_option(cmd: click.Command, examples: str) -> None:
    """Give *cmd* an ``--examples`` flag that prints *examples* and exits 0."""

    def show_examples(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if not value:
            return
        click.echo(f"Examples for '{ctx.command_path}':\n")
        click.echo(examples)
        ctx.exit(0)

    cmd.params.append(
        click.Option(
            ["--examples"],
            is_flag=True,
            expose_value=False,
            is_eager=True,
            callback=show_examples,
            help="Show usage examples.",
        )
    )


def read_csv_option(path: Path, param_hint: str) -> list[str]:
    """Read the usernames of a CSV passed through *param_hint*.

    Unreadable or non-UTF-8 files become a usage error on that option.
    """
    from gridclaim.infrastructure.intake import read_usernames_csv

    try:
        return read_usernames_csv(path)
    except (OSError, UnicodeDecodeError) as exc:
        raise click.BadParameter(f"Cannot read {path}: {exc}", param_hint=param_hint) from exc


class GridCommand(click.Command):
    """Command with optional ``--examples`` text."""

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
        if examples:
            _add_examples_option(self, examples)


class GridGroup(click.Group):
    """Group with ``--examples``; subcommands it creates are :class:`GridCommand`."""

    command_class = GridCommand

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
        if examples:
            _add_examples_option(self, examples)
