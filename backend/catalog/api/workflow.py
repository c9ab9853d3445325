"""Metadata workflow API endpoints.

Each transition is its own POST endpoint. Illegal transitions answer 409,
missing capabilities 403 and records hidden from the caller 404.

Example:
    Reject a pending record:
        >>> client.post(
        ...     f"/api/workflow/{record_id}/reject",
        ...     json={"reason": "Bounding box does not cover the dataset"},
        ...     headers={"X-User-Id": "officer-1"},
        ... )
"""

import dataclasses
from typing import Any

import fastapi
import pydantic

from catalog.api import deps
from catalog.core import config, security
from catalog.db import database
from catalog.services import metadata_records, workflow

router = fastapi.APIRouter(prefix="/api/workflow", tags=["workflow"])


class ApproveRequest(pydantic.BaseModel):
    notes: str | None = None
    publish: bool = False


class RejectRequest(pydantic.BaseModel):
    reason: str | None = None


def _get_service(
    repos: database.Repositories = fastapi.Depends(deps.get_repositories),  # noqa: B008
    settings: config.Settings = fastapi.Depends(config.get_settings),  # noqa: B008
) -> workflow.WorkflowService:
    """Resolve the workflow service dependency."""
    return workflow.WorkflowService(repos, max_page_size=settings.max_page_size)


def _get_records(
    repos: database.Repositories = fastapi.Depends(deps.get_repositories),  # noqa: B008
) -> metadata_records.MetadataRecordService:
    return metadata_records.MetadataRecordService(repos)


@router.get("/pending")
async def pending_queue(
    page: int = 1,
    page_size: int = 10,
    user_id: str = fastapi.Depends(security.get_current_user_id),  # noqa: B008
    service: workflow.WorkflowService = fastapi.Depends(_get_service),  # noqa: B008
) -> dict[str, Any]:
    """Records awaiting a decision from the caller, oldest first."""
    return service.pending_queue(user_id, page, page_size).as_dict()


@router.get("/needs-revision")
async def needs_revision(
    user_id: str = fastapi.Depends(security.get_current_user_id),  # noqa: B008
    service: workflow.WorkflowService = fastapi.Depends(_get_service),  # noqa: B008
) -> list[dict[str, Any]]:
    return [dataclasses.asdict(r) for r in service.needs_revision(user_id)]


@router.get("/{record_id}/actions")
async def allowed_actions(
    record_id: str,
    user_id: str | None = fastapi.Depends(security.get_optional_user_id),  # noqa: B008
    service: workflow.WorkflowService = fastapi.Depends(_get_service),  # noqa: B008
    records: metadata_records.MetadataRecordService = fastapi.Depends(_get_records),  # noqa: B008
) -> dict[str, Any]:
    record = records.get(record_id, user_id)
    return {
        "record_id": record.id,
        "status": record.status,
        "actions": service.allowed_actions(record, user_id),
    }


@router.post("/{record_id}/submit")
async def submit(
    record_id: str,
    user_id: str = fastapi.Depends(security.get_current_user_id),  # noqa: B008
    service: workflow.WorkflowService = fastapi.Depends(_get_service),  # noqa: B008
) -> dict[str, Any]:
    """Draft to Pending Validation. Only the record's creator may submit."""
    return dataclasses.asdict(service.submit(record_id, user_id))


@router.post("/{record_id}/resubmit")
async def resubmit(
    record_id: str,
    user_id: str = fastapi.Depends(security.get_current_user_id),  # noqa: B008
    service: workflow.WorkflowService = fastapi.Depends(_get_service),  # noqa: B008
) -> dict[str, Any]:
    """Needs Revision to Pending Validation."""
    return dataclasses.asdict(service.resubmit(record_id, user_id))


@router.post("/{record_id}/approve")
async def approve(
    record_id: str,
    body: ApproveRequest | None = None,
    user_id: str = fastapi.Depends(security.get_current_user_id),  # noqa: B008
    service: workflow.WorkflowService = fastapi.Depends(_get_service),  # noqa: B008
) -> dict[str, Any]:
    """Pending Validation to Approved, or straight to Published."""
    body = body or ApproveRequest()
    record = service.approve(record_id, user_id, notes=body.notes, publish=body.publish)
    return dataclasses.asdict(record)


@router.post("/{record_id}/reject")
async def reject(
    record_id: str,
    body: RejectRequest,
    user_id: str = fastapi.Depends(security.get_current_user_id),  # noqa: B008
    service: workflow.WorkflowService = fastapi.Depends(_get_service),  # noqa: B008
) -> dict[str, Any]:
    """Pending Validation to Needs Revision. A non-blank reason is required."""
    return dataclasses.asdict(service.reject(record_id, user_id, body.reason))


@router.post("/{record_id}/publish")
async def publish(
    record_id: str,
    user_id: str = fastapi.Depends(security.get_current_user_id),  # noqa: B008
    service: workflow.WorkflowService = fastapi.Depends(_get_service),  # noqa: B008
) -> dict[str, Any]:
    return dataclasses.asdict(service.publish(record_id, user_id))


@router.post("/{record_id}/archive")
async def archive(
    record_id: str,
    user_id: str = fastapi.Depends(security.get_current_user_id),  # noqa: B008
    service: workflow.WorkflowService = fastapi.Depends(_get_service),  # noqa: B008
) -> dict[str, Any]:
    return dataclasses.asdict(service.archive(record_id, user_id))
