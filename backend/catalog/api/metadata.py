"""Metadata record API endpoints: search, CRUD, form round trip and quality.

Records are created and updated through the nine-step metadata form. The
stored record is returned as a flat dictionary; ``/{record_id}/form``
rebuilds the form so the editor can resume where the author left off.

Example:
    Search published vector datasets inside Lagos State:
        >>> response = client.get(
        ...     "/api/metadata",
        ...     params={"data_type": "Vector", "bbox": "2.7,6.3,4.4,6.7"},
        ... )
        >>> response.json()["total"]
"""

import dataclasses
import datetime
from typing import Any

import fastapi

from catalog.api import deps
from catalog.core import config, security
from catalog.db import database
from catalog.services import metadata_form, metadata_records, quality, workflow

router = fastapi.APIRouter(prefix="/api/metadata", tags=["metadata"])


def _get_service(
    repos: database.Repositories = fastapi.Depends(deps.get_repositories),  # noqa: B008
    settings: config.Settings = fastapi.Depends(config.get_settings),  # noqa: B008
) -> metadata_records.MetadataRecordService:
    """Resolve the metadata record service dependency.

    Args:
        repos: Repository bundle (injected via FastAPI Depends).
        settings: Application settings, used for the page size limit.

    Returns:
        MetadataRecordService bound to the request's repositories.
    """
    return metadata_records.MetadataRecordService(
        repos, max_page_size=settings.max_page_size
    )


def _get_workflow(
    repos: database.Repositories = fastapi.Depends(deps.get_repositories),  # noqa: B008
) -> workflow.WorkflowService:
    return workflow.WorkflowService(repos)


def _assessment(source: Any) -> dict[str, Any]:
    return dataclasses.asdict(quality.assess_quality(source))


@router.get("")
async def search_records(
    q: str | None = None,
    status: str | None = None,
    data_type: str | None = None,
    framework_type: str | None = None,
    organization_id: str | None = None,
    keywords: list[str] = fastapi.Query(default=[]),  # noqa: B008
    date_from: datetime.date | None = None,
    date_to: datetime.date | None = None,
    bbox: str | None = None,
    sort_by: str = "updated_at",
    sort_order: str = "desc",
    page: int = 1,
    page_size: int | None = None,
    user_id: str | None = fastapi.Depends(security.get_optional_user_id),  # noqa: B008
    settings: config.Settings = fastapi.Depends(config.get_settings),  # noqa: B008
    service: metadata_records.MetadataRecordService = fastapi.Depends(_get_service),  # noqa: B008
) -> dict[str, Any]:
    """Search the catalog.

    Anonymous callers and users without a catalog-wide view see Published
    records plus their own.

    Args:
        q: Case-insensitive text matched against title, abstract and
            keywords (at most 200 characters).
        status: Exact workflow status.
        data_type: Vector, Raster or Table.
        framework_type: Fundamental, Thematic or Other.
        organization_id: Owning organization.
        keywords: Records carrying any of these keywords.
        date_from: Start of the temporal window the record must overlap.
        date_to: End of the temporal window the record must overlap.
        bbox: ``west,south,east,north`` envelope the record must intersect.
        sort_by: title, created_at, updated_at or status.
        sort_order: asc or desc.
        page: 1-based page number.
        page_size: Items per page, defaults to the configured page size.

    Returns:
        Page dictionary with items, total, page, page_size and total_pages.
    """
    params = metadata_records.SearchParams(
        query=q,
        status=status,
        data_type=data_type,
        framework_type=framework_type,
        organization_id=organization_id,
        keywords=keywords,
        date_from=date_from,
        date_to=date_to,
        bbox=deps.parse_bbox(bbox),
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        page_size=page_size or settings.default_page_size,
    )
    return service.search(user_id, params).as_dict()


@router.post("", status_code=201)
async def create_record(
    form: metadata_form.MetadataForm,
    user_id: str = fastapi.Depends(security.get_current_user_id),  # noqa: B008
    service: metadata_records.MetadataRecordService = fastapi.Depends(_get_service),  # noqa: B008
) -> dict[str, Any]:
    """Save a new Draft from the metadata form."""
    return dataclasses.asdict(service.create(user_id, form))


@router.get("/mine")
async def my_records(
    status: str | None = None,
    user_id: str = fastapi.Depends(security.get_current_user_id),  # noqa: B008
    service: metadata_records.MetadataRecordService = fastapi.Depends(_get_service),  # noqa: B008
) -> list[dict[str, Any]]:
    return [dataclasses.asdict(r) for r in service.my_records(user_id, status)]


@router.get("/status-counts")
async def status_counts(
    user_id: str | None = fastapi.Depends(security.get_optional_user_id),  # noqa: B008
    service: metadata_records.MetadataRecordService = fastapi.Depends(_get_service),  # noqa: B008
) -> dict[str, int]:
    """Number of visible records per workflow status."""
    return service.status_counts(user_id)


@router.get("/form/defaults")
async def form_defaults(organization_id: str | None = None) -> dict[str, Any]:
    """An empty form with the standard defaults filled in."""
    form = metadata_form.default_form(organization_id)
    return {
        "steps": list(metadata_form.FORM_STEPS),
        "form": form.model_dump(mode="json"),
    }


@router.post("/quality")
async def assess_form(form: metadata_form.MetadataForm) -> dict[str, Any]:
    """Score unsaved form content."""
    return _assessment(metadata_form.to_payload(form))


@router.get("/{record_id}")
async def get_record(
    record_id: str,
    user_id: str | None = fastapi.Depends(security.get_optional_user_id),  # noqa: B008
    service: metadata_records.MetadataRecordService = fastapi.Depends(_get_service),  # noqa: B008
    workflow_service: workflow.WorkflowService = fastapi.Depends(_get_workflow),  # noqa: B008
) -> dict[str, Any]:
    """Record detail with the workflow actions open to the caller."""
    record = service.get(record_id, user_id)
    return {
        **dataclasses.asdict(record),
        "allowed_actions": workflow_service.allowed_actions(record, user_id),
    }


@router.get("/{record_id}/form")
async def get_record_form(
    record_id: str,
    user_id: str | None = fastapi.Depends(security.get_optional_user_id),  # noqa: B008
    service: metadata_records.MetadataRecordService = fastapi.Depends(_get_service),  # noqa: B008
) -> dict[str, Any]:
    """The stored record converted back to form steps."""
    form = metadata_form.to_form(service.get(record_id, user_id))
    return {
        "form": form.model_dump(mode="json"),
        "completion": metadata_form.step_completion(form),
    }


@router.put("/{record_id}")
async def update_record(
    record_id: str,
    form: metadata_form.MetadataForm,
    user_id: str = fastapi.Depends(security.get_current_user_id),  # noqa: B008
    service: metadata_records.MetadataRecordService = fastapi.Depends(_get_service),  # noqa: B008
) -> dict[str, Any]:
    return dataclasses.asdict(service.update(record_id, user_id, form))


@router.delete("/{record_id}", status_code=204)
async def delete_record(
    record_id: str,
    user_id: str = fastapi.Depends(security.get_current_user_id),  # noqa: B008
    service: metadata_records.MetadataRecordService = fastapi.Depends(_get_service),  # noqa: B008
) -> None:
    service.delete(record_id, user_id)


@router.get("/{record_id}/history")
async def record_history(
    record_id: str,
    user_id: str = fastapi.Depends(security.get_current_user_id),  # noqa: B008
    service: metadata_records.MetadataRecordService = fastapi.Depends(_get_service),  # noqa: B008
) -> list[dict[str, Any]]:
    """Change log entries for a record, newest first."""
    return [dataclasses.asdict(e) for e in service.history(record_id, user_id)]


@router.get("/{record_id}/quality")
async def record_quality(
    record_id: str,
    user_id: str | None = fastapi.Depends(security.get_optional_user_id),  # noqa: B008
    service: metadata_records.MetadataRecordService = fastapi.Depends(_get_service),  # noqa: B008
) -> dict[str, Any]:
    return _assessment(service.get(record_id, user_id))


@router.get("/{record_id}/validation")
async def record_validation(
    record_id: str,
    user_id: str | None = fastapi.Depends(security.get_optional_user_id),  # noqa: B008
    service: metadata_records.MetadataRecordService = fastapi.Depends(_get_service),  # noqa: B008
) -> dict[str, Any]:
    """Automated validation issues; ``valid`` is False when any is an error."""
    issues = quality.validate_record(service.get(record_id, user_id))
    return {
        "valid": not any(issue.severity == "error" for issue in issues),
        "issues": [dataclasses.asdict(issue) for issue in issues],
    }
