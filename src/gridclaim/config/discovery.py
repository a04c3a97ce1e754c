"""Locate the ``gridclaim.toml`` that governs a working directory.

One deployment (one grid and one season) is rooted at the directory holding
its ``gridclaim.toml``; running the CLI from any subdirectory finds it.
``GRIDCLAIM_CONFIG`` pins a specific file and disables the search.
"""

from __future__ import annotations

import os
from pathlib import Path

CONFIG_FILENAME = "gridclaim.toml"
CONFIG_ENV_VAR = "GRIDCLAIM_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Return the nearest ``gridclaim.toml`` at or above *start*.

    When ``GRIDCLAIM_CONFIG`` is set, that file is returned if it exists
    and no search happens. None means the deployment runs on defaults.
    """
    pinned = os.environ.get(CONFIG_ENV_VAR)
    if pinned:
        path = Path(pinned)
        return path if path.is_file() else None

    here = (start or Path.cwd()).resolve()
    for directory in (here, *here.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None
