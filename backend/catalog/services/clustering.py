"""Record markers and fixed-radius marker clustering for the map viewer.

Markers are projected to Web Mercator pixel space at the requested zoom
(256 px tiles). A single pass then walks the markers in order: each marker
not yet claimed starts a group and claims every later unclaimed marker
within ``radius_px`` of it. Groups of two or more become clusters placed at
the mean pixel position of their members.

The result is recomputed from scratch on each call; record counts shown on
the map are small enough that no spatial index is kept.

Example:
    >>> markers = [
    ...     Marker(id="a", longitude=3.38, latitude=6.52),
    ...     Marker(id="b", longitude=3.39, latitude=6.53),
    ... ]
    >>> [item.id for item in cluster_markers(markers, zoom=6)]
    ['cluster-a']
"""

from __future__ import annotations

import dataclasses
import math
from typing import TYPE_CHECKING

from shapely import geometry

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from catalog.db import models as db_models

TILE_SIZE = 256
DEFAULT_RADIUS_PX = 50
DEFAULT_MAX_ZOOM = 16
MAX_SIN_LATITUDE = 0.9999


@dataclasses.dataclass
class Marker:
    """A single record drawn at the center of its bounding box."""

    id: str
    longitude: float
    latitude: float
    title: str | None = None
    status: str | None = None
    bbox: db_models.BBox | None = None
    kind: str = "marker"


@dataclasses.dataclass
class Cluster:
    """Several nearby markers drawn as one point."""

    id: str
    longitude: float
    latitude: float
    count: int
    marker_ids: list[str]
    bounds: db_models.BBox
    kind: str = "cluster"


def project(longitude: float, latitude: float, zoom: float) -> tuple[float, float]:
    """Longitude/latitude to Web Mercator pixel coordinates at ``zoom``."""
    scale = TILE_SIZE * 2**zoom
    sin_lat = math.sin(math.radians(latitude))
    sin_lat = min(max(sin_lat, -MAX_SIN_LATITUDE), MAX_SIN_LATITUDE)
    x = (longitude + 180) / 360 * scale
    y = (0.5 - math.log((1 + sin_lat) / (1 - sin_lat)) / (4 * math.pi)) * scale
    return x, y


def unproject(x: float, y: float, zoom: float) -> tuple[float, float]:
    """Inverse of ``project``: pixel coordinates to longitude/latitude."""
    scale = TILE_SIZE * 2**zoom
    longitude = x / scale * 360 - 180
    n = math.pi - 2 * math.pi * y / scale
    latitude = math.degrees(math.atan(math.sinh(n)))
    return longitude, latitude


def record_markers(records: Iterable[db_models.MetadataRecord]) -> list[Marker]:
    """One marker per record that has a complete bounding box."""
    markers = []
    for record in records:
        bbox = record.bbox
        if bbox is None:
            continue
        center = geometry.box(*bbox).centroid
        markers.append(
            Marker(
                id=record.id,
                longitude=center.x,
                latitude=center.y,
                title=record.title,
                status=record.status,
                bbox=bbox,
            )
        )
    return markers


def cluster_markers(
    markers: Sequence[Marker],
    zoom: float,
    radius_px: float = DEFAULT_RADIUS_PX,
    max_zoom: float = DEFAULT_MAX_ZOOM,
) -> list[Marker | Cluster]:
    """Group markers closer than ``radius_px`` pixels at ``zoom``.

    At or above ``max_zoom`` the markers are returned unchanged.
    """
    if zoom >= max_zoom or len(markers) < 2:
        return list(markers)

    pixels = [project(m.longitude, m.latitude, zoom) for m in markers]
    claimed = [False] * len(markers)
    result: list[Marker | Cluster] = []

    for i, marker in enumerate(markers):
        if claimed[i]:
            continue
        claimed[i] = True
        members = [i]
        x0, y0 = pixels[i]
        for j in range(i + 1, len(markers)):
            if claimed[j]:
                continue
            x1, y1 = pixels[j]
            if math.hypot(x1 - x0, y1 - y0) <= radius_px:
                claimed[j] = True
                members.append(j)

        if len(members) == 1:
            result.append(marker)
            continue

        mean_x = sum(pixels[k][0] for k in members) / len(members)
        mean_y = sum(pixels[k][1] for k in members) / len(members)
        longitude, latitude = unproject(mean_x, mean_y, zoom)
        grouped = [markers[k] for k in members]
        result.append(
            Cluster(
                id=f"cluster-{marker.id}",
                longitude=longitude,
                latitude=latitude,
                count=len(grouped),
                marker_ids=[m.id for m in grouped],
                bounds=(
                    min(m.longitude for m in grouped),
                    min(m.latitude for m in grouped),
                    max(m.longitude for m in grouped),
                    max(m.latitude for m in grouped),
                ),
            )
        )
    return result
