"""Shared FastAPI dependencies and parameter helpers for the routers."""

from __future__ import annotations

import fastapi

from catalog.core import config, errors
from catalog.db import database
from catalog.db import models as db_models


def get_repositories(
    settings: config.Settings = fastapi.Depends(config.get_settings),  # noqa: B008
) -> database.Repositories:
    """Resolve the repository bundle dependency.

    Args:
        settings: Application settings (injected via FastAPI Depends).

    Returns:
        Repositories for the configured backend. Tests override this
        dependency with ``database.Repositories.in_memory()``.
    """
    return database.get_repositories(settings)


def parse_bbox(value: str | None) -> db_models.BBox | None:
    """Parse a ``west,south,east,north`` query parameter.

    Raises:
        ValidationError: If the value is not four comma separated numbers.
    """
    if value is None or not value.strip():
        return None
    parts = value.split(",")
    if len(parts) != 4:
        raise errors.ValidationError("bbox must be 'west,south,east,north'")
    try:
        west, south, east, north = (float(part) for part in parts)
    except ValueError as exc:
        raise errors.ValidationError("bbox values must be numbers") from exc
    return west, south, east, north
