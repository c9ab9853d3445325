"""Base map styles offered to the map viewer.

The free MapLibre demo style is always available. MapTiler styles are added
when an API key is configured; their style URLs carry the key.
"""

from __future__ import annotations

import dataclasses
from typing import Literal

StyleCategory = Literal["streets", "satellite", "terrain"]

DEFAULT_STYLE_ID = "streets"
FREE_STYLE_URL = "https://demotiles.maplibre.org/style.json"
MAPTILER_STYLE_URL = "https://api.maptiler.com/maps/{map_id}/style.json?key={key}"


@dataclasses.dataclass(frozen=True)
class MapStyle:
    id: str
    name: str
    url: str
    category: StyleCategory
    requires_api_key: bool = False


DEFAULT_FREE_STYLE = MapStyle(
    id=DEFAULT_STYLE_ID, name="Streets", url=FREE_STYLE_URL, category="streets"
)

# (style id, display name, MapTiler map id, category)
_MAPTILER_STYLES: tuple[tuple[str, str, str, StyleCategory], ...] = (
    ("maptiler-streets", "Streets (MapTiler)", "streets-v2", "streets"),
    ("maptiler-satellite", "Satellite", "hybrid", "satellite"),
    ("maptiler-terrain", "Terrain", "topo-v2", "terrain"),
)


def available_styles(api_key: str | None) -> list[MapStyle]:
    """Styles usable with the given MapTiler key (free style only if None)."""
    styles = [DEFAULT_FREE_STYLE]
    if api_key:
        styles.extend(
            MapStyle(
                id=style_id,
                name=name,
                url=MAPTILER_STYLE_URL.format(map_id=map_id, key=api_key),
                category=category,
                requires_api_key=True,
            )
            for style_id, name, map_id, category in _MAPTILER_STYLES
        )
    return styles


def resolve_style(style_id: str | None, api_key: str | None) -> MapStyle:
    """Return the requested style, or the free default when it is unavailable."""
    for style in available_styles(api_key):
        if style.id == style_id:
            return style
    return DEFAULT_FREE_STYLE
