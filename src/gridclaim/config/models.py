"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, gridclaim.toml only contains
overrides. A fresh deployment needs no config file at all.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class GridConfig(BaseModel):
    """[grid] section."""

    model_config = {"frozen": True}

    size: int = Field(default=256, ge=1)


class CapacityConfig(BaseModel):
    """[capacity] section: the season-wide claim cap."""

    model_config = {"frozen": True}

    limit: int = Field(default=12000, ge=0)
    season: int = 1


class DatabaseConfig(BaseModel):
    """[database] section.

    ``url`` is any SQLAlchemy URL. When unset, a SQLite file under
    ``{root}/.gridclaim/`` is used.
    """

    model_config = {"frozen": True}

    url: str | None = None
    busy_timeout: float = Field(default=30.0, gt=0)


class MaskConfig(BaseModel):
    """[mask] section."""

    model_config = {"frozen": True}

    threshold: int = Field(default=128, ge=0, le=256)
