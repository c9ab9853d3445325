"""Heuristic quality scoring and automated validation of metadata records.

``assess_quality`` starts every record at 100 points and deducts for each
shortcoming found; ``validate_record`` reports the problems that block or
weaken a submission. Both accept a MetadataRecord or a form payload so the
editor can score unsaved work.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from typing import Any, Literal

from catalog.db import models as db_models

Severity = Literal["error", "warning", "suggestion"]

KEYWORD_SUGGESTIONS: dict[str, tuple[str, ...]] = {
    "Vector": ("geospatial", "GIS", "spatial analysis", "cartography"),
    "Raster": ("remote sensing", "imagery", "satellite", "aerial"),
    "Table": ("tabular data", "statistics", "database", "records"),
}
MAX_KEYWORD_SUGGESTIONS = 3


@dataclasses.dataclass
class QualityIssue:
    field: str
    severity: Severity
    message: str
    penalty: int = 0


@dataclasses.dataclass
class QualityAssessment:
    score: int
    issues: list[QualityIssue]
    suggested_keywords: list[str]


def _as_mapping(
    source: db_models.MetadataRecord | Mapping[str, Any],
) -> Mapping[str, Any]:
    if isinstance(source, db_models.MetadataRecord):
        return dataclasses.asdict(source)
    return source


def _has_bbox(data: Mapping[str, Any]) -> bool:
    edges = [data.get(f"bbox_{edge}") for edge in ("west", "south", "east", "north")]
    if all(edge is not None for edge in edges):
        return True
    spatial = data.get("spatial_info") or {}
    bbox = spatial.get("bounding_box") if isinstance(spatial, Mapping) else None
    return isinstance(bbox, Mapping) and all(
        bbox.get(edge) is not None for edge in ("west", "south", "east", "north")
    )


def assess_quality(
    source: db_models.MetadataRecord | Mapping[str, Any],
) -> QualityAssessment:
    """Score a record out of 100.

    Deductions:
        title under 10 characters (error, 15), title containing "untitled"
        (warning, 10), abstract under 50 characters (error, 20) or under 100
        (suggestion, 5), fewer than 3 keywords (error, 15) or fewer than 5
        (suggestion, 5), no coordinate system (error, 10), no bounding box
        (warning, 10), no file format (error, 10), and no download URL or
        API endpoint (warning, 5).

    Returns:
        The clamped score, the issues found and up to three keywords typical
        for the record's data type that it does not carry yet.

    Example:
        >>> assess_quality({"title": "Roads"}).score
        15
    """
    data = _as_mapping(source)
    title = (data.get("title") or "").strip()
    abstract = (data.get("abstract") or "").strip()
    keywords = [k for k in data.get("keywords") or [] if k.strip()]
    issues: list[QualityIssue] = []

    if len(title) < 10:
        issues.append(
            QualityIssue("title", "error", "Title should be at least 10 characters", 15)
        )
    if "untitled" in title.lower():
        issues.append(
            QualityIssue("title", "warning", "Title looks like a placeholder", 10)
        )

    if len(abstract) < 50:
        issues.append(
            QualityIssue(
                "abstract", "error", "Abstract should be at least 50 characters", 20
            )
        )
    elif len(abstract) < 100:
        issues.append(
            QualityIssue(
                "abstract",
                "suggestion",
                "A longer abstract (100+ characters) helps discovery",
                5,
            )
        )

    if len(keywords) < 3:
        issues.append(
            QualityIssue("keywords", "error", "Provide at least 3 keywords", 15)
        )
    elif len(keywords) < 5:
        issues.append(
            QualityIssue("keywords", "suggestion", "Consider 5 or more keywords", 5)
        )

    if not data.get("coordinate_system"):
        issues.append(
            QualityIssue(
                "coordinate_system", "error", "Coordinate system is missing", 10
            )
        )
    if not _has_bbox(data):
        issues.append(
            QualityIssue("bounding_box", "warning", "Bounding box is missing", 10)
        )
    if not data.get("file_format"):
        issues.append(
            QualityIssue("file_format", "error", "File format is missing", 10)
        )
    if not data.get("download_url") and not data.get("api_endpoint"):
        issues.append(
            QualityIssue(
                "access", "warning", "Add a download URL or an API endpoint", 5
            )
        )

    score = max(0, 100 - sum(issue.penalty for issue in issues))
    present = {k.casefold() for k in keywords}
    suggestions = [
        k
        for k in KEYWORD_SUGGESTIONS.get(data.get("data_type") or "", ())
        if k.casefold() not in present
    ][:MAX_KEYWORD_SUGGESTIONS]
    return QualityAssessment(score=score, issues=issues, suggested_keywords=suggestions)


def validate_record(
    source: db_models.MetadataRecord | Mapping[str, Any],
) -> list[QualityIssue]:
    """Automated pre-validation run before a record is approved.

    Missing title, abstract or organization are errors. Missing spatial
    extent, temporal extent or access method are warnings.
    """
    data = _as_mapping(source)
    issues: list[QualityIssue] = []
    if not (data.get("title") or "").strip():
        issues.append(QualityIssue("title", "error", "Title is required"))
    if not (data.get("abstract") or "").strip():
        issues.append(QualityIssue("abstract", "error", "Abstract is required"))
    if not data.get("organization_id"):
        issues.append(
            QualityIssue("organization_id", "error", "Organization is required")
        )
    if not _has_bbox(data):
        issues.append(
            QualityIssue(
                "bounding_box", "warning", "Spatial extent is recommended"
            )
        )
    temporal = data.get("temporal_info") or {}
    if not (
        data.get("temporal_extent_from")
        or data.get("temporal_extent_to")
        or (isinstance(temporal, Mapping) and temporal.get("date_from"))
    ):
        issues.append(
            QualityIssue("temporal", "warning", "Temporal extent is recommended")
        )
    if not data.get("download_url") and not data.get("api_endpoint"):
        issues.append(
            QualityIssue("access", "warning", "An access method is recommended")
        )
    return issues
