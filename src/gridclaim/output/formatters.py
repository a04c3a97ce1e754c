"""Rich/JSON output for ServiceResult.

``--json`` dumps the result model verbatim. Human output is an
``OK``/``ERROR`` status line followed by the payload: scalar fields as
key-value lines, ``items`` lists (grid pages) as a table, and
``assigned`` mappings as a two-column table.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel
from rich.table import Table
from rich.text import Text

from gridclaim.output.console import create_console, get_output

if TYPE_CHECKING:
    from rich.console import Console

    from gridclaim.services.result import ServiceResult

_TABLE_KEYS = frozenset({"items", "assigned"})


class OutputSettings(BaseModel):
    """Output mode flags taken from the global CLI options."""

    model_config = {"frozen": True}

    json_output: bool = False
    quiet: bool = False


def format_result(result: ServiceResult, *, settings: OutputSettings | None = None) -> str:
    """Format *result* for display according to *settings*."""
    settings = settings or OutputSettings()
    if settings.json_output:
        return result.model_dump_json(indent=2)
    if settings.quiet:
        return _render_quiet(result)

    console = create_console()
    if result.ok:
        _render_ok(console, result)
    else:
        _render_error(console, result)
    return get_output(console).rstrip("\n")


def _render_quiet(result: ServiceResult) -> str:
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op}: {msg}"
    return f"OK: {result.op}"


def _render_ok(console: Console, result: ServiceResult) -> None:
    console.print(Text("OK", style="grid.ok"), Text(f"  {result.op}", style="grid.op"))
    for key, value in result.data.items():
        if key in _TABLE_KEYS:
            continue
        _field(console, key, value)

    items = result.data.get("items")
    if items:
        console.print(_items_table(items))
    assigned = result.data.get("assigned")
    if assigned:
        console.print(_assigned_table(assigned))


def _render_error(console: Console, result: ServiceResult) -> None:
    error = result.error
    message = error.message if error else "Unknown error"
    console.print(
        Text("ERROR", style="grid.error"),
        Text(f"  {result.op}", style="grid.op"),
        Text(f"  {message}"),
    )
    if error is not None:
        for key, value in error.detail.items():
            _field(console, key, value)


def _field(console: Console, key: str, value: Any) -> None:
    label = Text(f"  {key}: ", style="grid.key")
    if isinstance(value, (dict, list)):
        rendered = Text(json.dumps(value, separators=(",", ":")))
    elif key == "username":
        rendered = Text(str(value), style="grid.user")
    elif isinstance(value, int) and not isinstance(value, bool):
        rendered = Text(str(value), style="grid.count")
    else:
        rendered = Text(str(value))
    console.print(label, rendered, sep="")


def _items_table(items: list[dict[str, Any]]) -> Table:
    table = Table(show_edge=False, pad_edge=False)
    columns = list(items[0].keys())
    for column in columns:
        table.add_column(column)
    for item in items:
        table.add_row(*("" if item[c] is None else str(item[c]) for c in columns))
    return table


def _assigned_table(assigned: dict[str, int]) -> Table:
    table = Table(show_edge=False, pad_edge=False)
    table.add_column("username", style="grid.user")
    table.add_column("cell_id")
    for username, cell_id in assigned.items():
        table.add_row(username, str(cell_id))
    return table
