"""Multi-step metadata form and its mapping to the stored record shape.

The editor collects a record in nine steps. Each step is a pydantic model
whose fields are flat and friendly to form widgets. The stored record
instead spreads those values over flat columns, nested ``*_info`` JSON
sections and denormalized bbox/temporal columns used by search.

``to_payload`` maps a form to that stored shape. ``to_form`` maps it back,
preferring the nested sections and falling back to the flat columns for
records written before the sections were filled. For any form,
``to_form(to_payload(form)) == form``.

Example:
    >>> form = MetadataForm(general=GeneralStep(title="Lagos roads"))
    >>> payload = to_payload(form)
    >>> payload["title"]
    'Lagos roads'
    >>> to_form(payload) == form
    True
"""

from __future__ import annotations

import dataclasses
import datetime
from collections.abc import Mapping
from typing import Annotated, Any
from urllib import parse

import pydantic

from catalog.db import models as db_models

FORM_STEPS: tuple[str, ...] = (
    "general",
    "location",
    "spatial",
    "temporal",
    "quality",
    "processing",
    "distribution",
    "contact",
    "review",
)


def _check_url(value: str | None) -> str | None:
    if value is None or value == "":
        return value
    parsed = parse.urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("must be an http or https URL")
    return value


HttpUrlText = Annotated[str | None, pydantic.AfterValidator(_check_url)]


class BoundingBox(pydantic.BaseModel):
    """West/south/east/north envelope in decimal degrees."""

    west: float | None = None
    south: float | None = None
    east: float | None = None
    north: float | None = None

    @pydantic.model_validator(mode="after")
    def _check_edges(self) -> BoundingBox:
        for name in ("south", "north"):
            value = getattr(self, name)
            if value is not None and not -90 <= value <= 90:
                raise ValueError(f"{name} must be between -90 and 90")
        for name in ("west", "east"):
            value = getattr(self, name)
            if value is not None and not -180 <= value <= 180:
                raise ValueError(f"{name} must be between -180 and 180")
        if self.is_complete():
            if self.north <= self.south:  # type: ignore[operator]
                raise ValueError("north must be greater than south")
            if self.east <= self.west:  # type: ignore[operator]
                raise ValueError("east must be greater than west")
        return self

    def is_complete(self) -> bool:
        return None not in (self.west, self.south, self.east, self.north)


class VerticalExtent(pydantic.BaseModel):
    minimum: float | None = None
    maximum: float | None = None
    unit: str | None = None


class Accuracy(pydantic.BaseModel):
    value: float | None = None
    unit: str | None = None
    description: str | None = None


class GeneralStep(pydantic.BaseModel):
    title: str = ""
    data_type: db_models.DataType | None = None
    framework_type: db_models.FrameworkType | None = None
    abstract: str = ""
    purpose: str = ""
    keywords: list[str] = pydantic.Field(default_factory=list)
    topic_categories: list[str] = pydantic.Field(default_factory=list)
    fundamental_dataset_types: list[str] = pydantic.Field(default_factory=list)
    organization_id: str | None = None
    thumbnail_url: HttpUrlText = None
    language: str | None = None

    @pydantic.field_validator("topic_categories")
    @classmethod
    def _known_topics(cls, value: list[str]) -> list[str]:
        unknown = [v for v in value if v not in db_models.TOPIC_CATEGORIES]
        if unknown:
            raise ValueError(f"unknown topic categories: {', '.join(unknown)}")
        return value


class LocationStep(pydantic.BaseModel):
    country: str | None = None
    geopolitical_zone: str | None = None
    state: str | None = None
    lga: str | None = None
    town: str | None = None


class SpatialStep(pydantic.BaseModel):
    coordinate_system: str | None = None
    projection: str | None = None
    scale: int | None = None
    resolution: str | None = None
    bounding_box: BoundingBox | None = None
    vertical_extent: VerticalExtent | None = None
    spatial_representation_type: str | None = None
    number_of_features: int | None = None
    file_size_mb: float | None = None


class TemporalStep(pydantic.BaseModel):
    date_from: datetime.date | None = None
    date_to: datetime.date | None = None
    update_frequency: str | None = None

    @pydantic.model_validator(mode="after")
    def _ordered(self) -> TemporalStep:
        if (
            self.date_from is not None
            and self.date_to is not None
            and self.date_to < self.date_from
        ):
            raise ValueError("date_to must not be before date_from")
        return self


class QualityStep(pydantic.BaseModel):
    completeness_report: str | None = None
    logical_consistency_report: str | None = None
    accuracy_report: str | None = None
    horizontal_accuracy: Accuracy | None = None
    vertical_accuracy: Accuracy | None = None


class ProcessingStep(pydantic.BaseModel):
    processing_steps: list[str] = pydantic.Field(default_factory=list)
    software_version: str | None = None
    processor_name: str | None = None
    processor_email: str | None = None
    source_description: str | None = None
    source_citation: str | None = None


class DistributionStep(pydantic.BaseModel):
    file_format: str | None = None
    format_version: str | None = None
    download_url: HttpUrlText = None
    api_endpoint: HttpUrlText = None
    license_type: str | None = None
    usage_terms: str | None = None
    attribution_requirements: str | None = None
    access_constraints: list[str] = pydantic.Field(default_factory=list)
    use_constraints: str | None = None
    distributor_name: str | None = None
    distributor_email: str | None = None
    distributor_phone: str | None = None


class ContactStep(pydantic.BaseModel):
    contact_name: str | None = None
    contact_role: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    contact_organization: str | None = None
    metadata_standard: str | None = None
    metadata_standard_version: str | None = None


class ReviewStep(pydantic.BaseModel):
    supplemental_information: str | None = None
    declaration_accepted: bool = False


class MetadataForm(pydantic.BaseModel):
    """The whole editor state, one attribute per step."""

    general: GeneralStep = pydantic.Field(default_factory=GeneralStep)
    location: LocationStep = pydantic.Field(default_factory=LocationStep)
    spatial: SpatialStep = pydantic.Field(default_factory=SpatialStep)
    temporal: TemporalStep = pydantic.Field(default_factory=TemporalStep)
    quality: QualityStep = pydantic.Field(default_factory=QualityStep)
    processing: ProcessingStep = pydantic.Field(default_factory=ProcessingStep)
    distribution: DistributionStep = pydantic.Field(default_factory=DistributionStep)
    contact: ContactStep = pydantic.Field(default_factory=ContactStep)
    review: ReviewStep = pydantic.Field(default_factory=ReviewStep)


def default_form(organization_id: str | None = None) -> MetadataForm:
    """Initial values shown when a user starts a new record."""
    return MetadataForm(
        general=GeneralStep(organization_id=organization_id, language="en"),
        contact=ContactStep(
            metadata_standard="ISO 19115", metadata_standard_version="2014"
        ),
    )


def _dump(model: pydantic.BaseModel | None) -> dict[str, Any] | None:
    return model.model_dump(mode="json") if model is not None else None


def _iso(value: datetime.date | None) -> str | None:
    return value.isoformat() if value is not None else None


def to_payload(form: MetadataForm) -> dict[str, Any]:
    """Map a form to the stored record's columns and JSON sections.

    Args:
        form: Completed or partial editor state.

    Returns:
        Dictionary keyed by MetadataRecord field names. Workflow and
        ownership fields are not included.
    """
    general, spatial, temporal = form.general, form.spatial, form.temporal
    quality, processing = form.quality, form.processing
    distribution, contact, review = form.distribution, form.contact, form.review
    bbox = spatial.bounding_box or BoundingBox()
    return {
        "title": general.title,
        "data_type": general.data_type,
        "framework_type": general.framework_type,
        "abstract": general.abstract,
        "purpose": general.purpose,
        "keywords": list(general.keywords),
        "topic_categories": list(general.topic_categories),
        "organization_id": general.organization_id,
        "thumbnail_url": general.thumbnail_url,
        "coordinate_system": spatial.coordinate_system,
        "file_format": distribution.file_format,
        "download_url": distribution.download_url,
        "api_endpoint": distribution.api_endpoint,
        "location_info": form.location.model_dump(mode="json"),
        "spatial_info": {
            "projection": spatial.projection,
            "scale": spatial.scale,
            "resolution": spatial.resolution,
            "bounding_box": _dump(spatial.bounding_box),
            "vertical_extent": _dump(spatial.vertical_extent),
        },
        "technical_details_info": {
            "spatial_representation_type": spatial.spatial_representation_type,
            "number_of_features": spatial.number_of_features,
            "file_size_mb": spatial.file_size_mb,
        },
        "temporal_info": {
            "date_from": _iso(temporal.date_from),
            "date_to": _iso(temporal.date_to),
            "update_frequency": temporal.update_frequency,
        },
        "data_quality_info": {
            "completeness_report": quality.completeness_report,
            "logical_consistency_report": quality.logical_consistency_report,
            "accuracy_report": quality.accuracy_report,
            "horizontal_accuracy": _dump(quality.horizontal_accuracy),
            "vertical_accuracy": _dump(quality.vertical_accuracy),
        },
        "processing_info": {
            "processing_steps": list(processing.processing_steps),
            "software_version": processing.software_version,
            "processor_contact": {
                "name": processing.processor_name,
                "email": processing.processor_email,
            },
            "source_info": {
                "description": processing.source_description,
                "citation": processing.source_citation,
            },
        },
        "distribution_info": {
            "format_version": distribution.format_version,
            "license_info": {
                "license_type": distribution.license_type,
                "usage_terms": distribution.usage_terms,
                "attribution_requirements": distribution.attribution_requirements,
            },
            "distribution_contact": {
                "name": distribution.distributor_name,
                "email": distribution.distributor_email,
                "phone": distribution.distributor_phone,
            },
        },
        "constraints_info": {
            "access_constraints": list(distribution.access_constraints),
            "use_constraints": distribution.use_constraints,
        },
        "metadata_reference_info": {
            "metadata_poc": {
                "name": contact.contact_name,
                "role": contact.contact_role,
                "email": contact.contact_email,
                "phone": contact.contact_phone,
                "organization": contact.contact_organization,
            },
            "standard": contact.metadata_standard,
            "standard_version": contact.metadata_standard_version,
        },
        "fundamental_datasets_info": {
            "types": list(general.fundamental_dataset_types),
        },
        "additional_info": {
            "language": general.language,
            "supplemental_information": review.supplemental_information,
            "declaration_accepted": review.declaration_accepted,
        },
        "bbox_west": bbox.west,
        "bbox_south": bbox.south,
        "bbox_east": bbox.east,
        "bbox_north": bbox.north,
        "temporal_extent_from": temporal.date_from,
        "temporal_extent_to": temporal.date_to,
    }


def _section(data: Mapping[str, Any], *path: str) -> dict[str, Any]:
    """Follow nested keys, returning {} wherever a level is missing."""
    current: Any = data
    for key in path:
        current = current.get(key) if isinstance(current, Mapping) else None
    return dict(current) if isinstance(current, Mapping) else {}


def to_form(source: db_models.MetadataRecord | Mapping[str, Any]) -> MetadataForm:
    """Map a stored record (or a payload) back into editor state.

    Nested sections win over the denormalized columns; the columns are used
    only when the section value is missing.
    """
    data: Mapping[str, Any] = (
        dataclasses.asdict(source)
        if isinstance(source, db_models.MetadataRecord)
        else source
    )
    spatial = _section(data, "spatial_info")
    technical = _section(data, "technical_details_info")
    temporal = _section(data, "temporal_info")
    quality = _section(data, "data_quality_info")
    processing = _section(data, "processing_info")
    processor = _section(data, "processing_info", "processor_contact")
    source_info = _section(data, "processing_info", "source_info")
    distribution = _section(data, "distribution_info")
    license_info = _section(data, "distribution_info", "license_info")
    distributor = _section(data, "distribution_info", "distribution_contact")
    constraints = _section(data, "constraints_info")
    reference = _section(data, "metadata_reference_info")
    poc = _section(data, "metadata_reference_info", "metadata_poc")
    additional = _section(data, "additional_info")

    bounding_box = spatial.get("bounding_box")
    if bounding_box is None:
        edges = {
            edge: data.get(f"bbox_{edge}")
            for edge in ("west", "south", "east", "north")
        }
        if all(value is not None for value in edges.values()):
            bounding_box = edges

    return MetadataForm(
        general=GeneralStep(
            title=data.get("title") or "",
            data_type=data.get("data_type"),
            framework_type=data.get("framework_type"),
            abstract=data.get("abstract") or "",
            purpose=data.get("purpose") or "",
            keywords=list(data.get("keywords") or []),
            topic_categories=list(data.get("topic_categories") or []),
            fundamental_dataset_types=list(
                _section(data, "fundamental_datasets_info").get("types") or []
            ),
            organization_id=data.get("organization_id"),
            thumbnail_url=data.get("thumbnail_url"),
            language=additional.get("language"),
        ),
        location=LocationStep.model_validate(_section(data, "location_info")),
        spatial=SpatialStep(
            coordinate_system=data.get("coordinate_system"),
            projection=spatial.get("projection"),
            scale=spatial.get("scale"),
            resolution=spatial.get("resolution"),
            bounding_box=bounding_box,
            vertical_extent=spatial.get("vertical_extent"),
            spatial_representation_type=technical.get("spatial_representation_type"),
            number_of_features=technical.get("number_of_features"),
            file_size_mb=technical.get("file_size_mb"),
        ),
        temporal=TemporalStep(
            date_from=temporal.get("date_from") or data.get("temporal_extent_from"),
            date_to=temporal.get("date_to") or data.get("temporal_extent_to"),
            update_frequency=temporal.get("update_frequency"),
        ),
        quality=QualityStep(
            completeness_report=quality.get("completeness_report"),
            logical_consistency_report=quality.get("logical_consistency_report"),
            accuracy_report=quality.get("accuracy_report"),
            horizontal_accuracy=quality.get("horizontal_accuracy"),
            vertical_accuracy=quality.get("vertical_accuracy"),
        ),
        processing=ProcessingStep(
            processing_steps=list(processing.get("processing_steps") or []),
            software_version=processing.get("software_version"),
            processor_name=processor.get("name"),
            processor_email=processor.get("email"),
            source_description=source_info.get("description"),
            source_citation=source_info.get("citation"),
        ),
        distribution=DistributionStep(
            file_format=data.get("file_format"),
            format_version=distribution.get("format_version"),
            download_url=data.get("download_url"),
            api_endpoint=data.get("api_endpoint"),
            license_type=license_info.get("license_type"),
            usage_terms=license_info.get("usage_terms"),
            attribution_requirements=license_info.get("attribution_requirements"),
            access_constraints=list(constraints.get("access_constraints") or []),
            use_constraints=constraints.get("use_constraints"),
            distributor_name=distributor.get("name"),
            distributor_email=distributor.get("email"),
            distributor_phone=distributor.get("phone"),
        ),
        contact=ContactStep(
            contact_name=poc.get("name"),
            contact_role=poc.get("role"),
            contact_email=poc.get("email"),
            contact_phone=poc.get("phone"),
            contact_organization=poc.get("organization"),
            metadata_standard=reference.get("standard"),
            metadata_standard_version=reference.get("standard_version"),
        ),
        review=ReviewStep(
            supplemental_information=additional.get("supplemental_information"),
            declaration_accepted=bool(additional.get("declaration_accepted", False)),
        ),
    )


def _filled(value: Any) -> bool:
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, list | tuple):
        return len(value) > 0
    return value is not None and value is not False


def step_completion(form: MetadataForm) -> dict[str, int]:
    """Percentage of the required fields filled in for each step."""
    bbox = form.spatial.bounding_box
    distribution = form.distribution
    required: dict[str, list[Any]] = {
        "general": [
            form.general.title,
            form.general.data_type,
            form.general.abstract,
            form.general.keywords,
            form.general.topic_categories,
            form.general.organization_id,
        ],
        "location": [form.location.country, form.location.state],
        "spatial": [
            form.spatial.coordinate_system,
            bbox is not None and bbox.is_complete(),
        ],
        "temporal": [form.temporal.date_from, form.temporal.date_to],
        "quality": [form.quality.completeness_report, form.quality.accuracy_report],
        "processing": [
            form.processing.processing_steps,
            form.processing.source_description,
        ],
        "distribution": [
            distribution.file_format,
            distribution.download_url or distribution.api_endpoint,
            distribution.license_type,
        ],
        "contact": [form.contact.contact_name, form.contact.contact_email],
        "review": [form.review.declaration_accepted],
    }
    return {
        step: round(100 * sum(_filled(v) for v in values) / len(values))
        for step, values in required.items()
    }
