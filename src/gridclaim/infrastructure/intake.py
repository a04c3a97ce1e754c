"""Username intake from uploaded files.

CSV uploads carry a header row; the first column of every following row
is taken as a username. Blank cells are dropped here; normalization and
deduplication happen in the domain layer.
"""

from __future__ import annotations

import csv
import json
from pathlib import Path


def read_usernames_csv(path: Path) -> list[str]:
    """Return the first-column values of *path*, header excluded."""
    usernames: list[str] = []
    with path.open(newline="", encoding="utf-8-sig") as fh:
        reader = csv.reader(fh)
        next(reader, None)
        for row in reader:
            if row and row[0].strip():
                usernames.append(row[0])
    return usernames


def read_preview_json(path: Path) -> list[str]:
    """Return ``data.ready_to_insert`` from a saved ``--json upload preview`` output."""
    payload = json.loads(path.read_text(encoding="utf-8"))
    data = payload.get("data") if isinstance(payload, dict) else None
    usernames = data.get("ready_to_insert") if isinstance(data, dict) else None
    if not isinstance(usernames, list):
        msg = f"{path} does not contain a preview result"
        raise ValueError(msg)
    return usernames
