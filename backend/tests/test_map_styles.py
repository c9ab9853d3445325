"""Tests for the base map style catalogue."""

from __future__ import annotations

from catalog.services import map_styles


def test_free_style_only_without_key() -> None:
    styles = map_styles.available_styles(None)
    assert [s.id for s in styles] == ["streets"]
    assert styles[0].url == "https://demotiles.maplibre.org/style.json"
    assert styles[0].requires_api_key is False


def test_maptiler_styles_carry_key() -> None:
    styles = map_styles.available_styles("abc123")
    assert [s.id for s in styles] == [
        "streets",
        "maptiler-streets",
        "maptiler-satellite",
        "maptiler-terrain",
    ]
    assert {s.category for s in styles} == {"streets", "satellite", "terrain"}
    for style in styles[1:]:
        assert style.requires_api_key
        assert style.url.endswith("key=abc123")


def test_resolve_style() -> None:
    assert map_styles.resolve_style("maptiler-terrain", "abc123").id == (
        "maptiler-terrain"
    )
    # needs a key that is not configured
    assert map_styles.resolve_style("maptiler-terrain", None).id == "streets"
    assert map_styles.resolve_style("unknown", "abc123").id == "streets"
    assert map_styles.resolve_style(None, None) == map_styles.DEFAULT_FREE_STYLE
