"""Tests for quality scoring and automated record validation."""

from __future__ import annotations

from catalog.db import models as db_models
from catalog.services import quality


def _good_record() -> db_models.MetadataRecord:
    return db_models.MetadataRecord(
        id="rec-1",
        title="Lagos State road network",
        creator_user_id="creator",
        organization_id="org-lagos",
        data_type="Vector",
        abstract=(
            "Centre lines of every federal, state and local road in Lagos State, "
            "digitized from the 2019 aerial survey and checked for topology."
        ),
        keywords=["roads", "transport", "Lagos", "infrastructure", "GIS"],
        coordinate_system="EPSG:4326",
        file_format="GeoPackage",
        download_url="https://example.org/roads.gpkg",
        bbox_west=2.7,
        bbox_south=6.3,
        bbox_east=4.4,
        bbox_north=6.8,
    )


def test_complete_record_scores_full_marks() -> None:
    assessment = quality.assess_quality(_good_record())
    assert assessment.score == 100
    assert assessment.issues == []


def test_sparse_record_deductions() -> None:
    assessment = quality.assess_quality({"title": "Roads"})
    assert assessment.score == 15
    assert {issue.field for issue in assessment.issues} == {
        "title",
        "abstract",
        "keywords",
        "coordinate_system",
        "bounding_box",
        "file_format",
        "access",
    }


def test_score_never_goes_below_zero() -> None:
    assessment = quality.assess_quality({"title": "untitled"})
    assert assessment.score == 5
    assert quality.assess_quality({}).score >= 0


def test_bbox_from_spatial_section_counts() -> None:
    data = {
        "spatial_info": {
            "bounding_box": {"west": 1, "south": 2, "east": 3, "north": 4}
        }
    }
    fields = {issue.field for issue in quality.assess_quality(data).issues}
    assert "bounding_box" not in fields


def test_keyword_suggestions_skip_existing_keywords() -> None:
    assessment = quality.assess_quality(
        {"data_type": "Vector", "keywords": ["GIS", "roads"]}
    )
    assert assessment.suggested_keywords == [
        "geospatial",
        "spatial analysis",
        "cartography",
    ]


def test_no_suggestions_for_unlisted_type() -> None:
    assert quality.assess_quality({"data_type": "Service"}).suggested_keywords == []


def test_validate_record() -> None:
    assert [
        issue.severity for issue in quality.validate_record(_good_record())
    ] == ["warning"]

    issues = quality.validate_record({"title": "  "})
    errors = {issue.field for issue in issues if issue.severity == "error"}
    assert errors == {"title", "abstract", "organization_id"}
