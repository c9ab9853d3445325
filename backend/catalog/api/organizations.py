"""Organization and membership API endpoints.

Example:
    List organizations with their member counts:
        >>> response = client.get("/api/organizations?search=lagos")
        >>> response.json()["items"][0]["member_count"]

    Appoint a Node Officer (System Administrators only):
        >>> client.put(
        ...     f"/api/organizations/{org_id}/node-officer",
        ...     json={"user_id": "user-42"},
        ...     headers={"X-User-Id": "admin"},
        ... )
"""

import dataclasses
from typing import Any, Literal

import fastapi
import pydantic

from catalog.api import deps
from catalog.core import security
from catalog.db import database
from catalog.db import models as db_models
from catalog.services import organizations

router = fastapi.APIRouter(prefix="/api/organizations", tags=["organizations"])


class NodeOfficerRequest(pydantic.BaseModel):
    user_id: str = pydantic.Field(min_length=1)


class MemberRequest(pydantic.BaseModel):
    user_id: str = pydantic.Field(min_length=1)
    role: db_models.OrganizationRole | None = "Metadata Creator"


class MemberRoleRequest(pydantic.BaseModel):
    role: db_models.OrganizationRole | None


def _get_service(
    repos: database.Repositories = fastapi.Depends(deps.get_repositories),  # noqa: B008
) -> organizations.OrganizationService:
    """Resolve the organization service dependency.

    Args:
        repos: Repository bundle (injected via FastAPI Depends).

    Returns:
        OrganizationService bound to the request's repositories.
    """
    return organizations.OrganizationService(repos)


@router.get("")
async def list_organizations(
    search: str | None = None,
    status: str | None = None,
    sort_by: organizations.OrganizationSort = "name",
    sort_order: Literal["asc", "desc"] = "asc",
    page: int = 1,
    page_size: int = 10,
    service: organizations.OrganizationService = fastapi.Depends(_get_service),  # noqa: B008
) -> dict[str, Any]:
    """List organizations, filtered by name or description and status.

    Returns:
        Page dictionary whose items are organizations with a
        ``member_count`` field.
    """
    result = service.list_organizations(
        search=search,
        status=status,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        page_size=page_size,
    )
    return {**result.as_dict(), "items": [item.as_dict() for item in result.items]}


@router.post("", status_code=201)
async def create_organization(
    body: organizations.OrganizationInput,
    user_id: str = fastapi.Depends(security.get_current_user_id),  # noqa: B008
    service: organizations.OrganizationService = fastapi.Depends(_get_service),  # noqa: B008
) -> dict[str, Any]:
    """Register an organization. Requires the create:organizations permission."""
    return dataclasses.asdict(service.create(user_id, body))


@router.get("/managed")
async def managed_organizations(
    user_id: str = fastapi.Depends(security.get_current_user_id),  # noqa: B008
    service: organizations.OrganizationService = fastapi.Depends(_get_service),  # noqa: B008
) -> list[dict[str, Any]]:
    """Organizations in which the caller is the Node Officer."""
    return [dataclasses.asdict(org) for org in service.managed_organizations(user_id)]


@router.get("/{org_id}")
async def get_organization(
    org_id: str,
    service: organizations.OrganizationService = fastapi.Depends(_get_service),  # noqa: B008
) -> dict[str, Any]:
    return dataclasses.asdict(service.get(org_id))


@router.put("/{org_id}")
async def update_organization(
    org_id: str,
    body: organizations.OrganizationInput,
    user_id: str = fastapi.Depends(security.get_current_user_id),  # noqa: B008
    service: organizations.OrganizationService = fastapi.Depends(_get_service),  # noqa: B008
) -> dict[str, Any]:
    return dataclasses.asdict(service.update(org_id, user_id, body))


@router.delete("/{org_id}", status_code=204)
async def delete_organization(
    org_id: str,
    user_id: str = fastapi.Depends(security.get_current_user_id),  # noqa: B008
    service: organizations.OrganizationService = fastapi.Depends(_get_service),  # noqa: B008
) -> None:
    """Delete an organization that owns no metadata records."""
    service.delete(org_id, user_id)


@router.put("/{org_id}/node-officer")
async def assign_node_officer(
    org_id: str,
    body: NodeOfficerRequest,
    user_id: str = fastapi.Depends(security.get_current_user_id),  # noqa: B008
    service: organizations.OrganizationService = fastapi.Depends(_get_service),  # noqa: B008
) -> dict[str, Any]:
    """Make a user the organization's only Node Officer.

    The previous Node Officer, if any, stays a member as a Metadata
    Creator.
    """
    org = service.assign_node_officer(org_id, user_id, body.user_id)
    return dataclasses.asdict(org)


@router.get("/{org_id}/members")
async def list_members(
    org_id: str,
    user_id: str = fastapi.Depends(security.get_current_user_id),  # noqa: B008
    service: organizations.OrganizationService = fastapi.Depends(_get_service),  # noqa: B008
) -> list[dict[str, Any]]:
    return [dataclasses.asdict(m) for m in service.members(org_id, user_id)]


@router.post("/{org_id}/members", status_code=201)
async def add_member(
    org_id: str,
    body: MemberRequest,
    user_id: str = fastapi.Depends(security.get_current_user_id),  # noqa: B008
    service: organizations.OrganizationService = fastapi.Depends(_get_service),  # noqa: B008
) -> dict[str, Any]:
    membership = service.add_member(org_id, user_id, body.user_id, body.role)
    return dataclasses.asdict(membership)


@router.put("/{org_id}/members/{member_id}")
async def set_member_role(
    org_id: str,
    member_id: str,
    body: MemberRoleRequest,
    user_id: str = fastapi.Depends(security.get_current_user_id),  # noqa: B008
    service: organizations.OrganizationService = fastapi.Depends(_get_service),  # noqa: B008
) -> dict[str, Any]:
    membership = service.set_member_role(org_id, user_id, member_id, body.role)
    return dataclasses.asdict(membership)


@router.delete("/{org_id}/members/{member_id}", status_code=204)
async def remove_member(
    org_id: str,
    member_id: str,
    user_id: str = fastapi.Depends(security.get_current_user_id),  # noqa: B008
    service: organizations.OrganizationService = fastapi.Depends(_get_service),  # noqa: B008
) -> None:
    service.remove_member(org_id, user_id, member_id)


@router.get("/{org_id}/analytics")
async def organization_analytics(
    org_id: str,
    user_id: str = fastapi.Depends(security.get_current_user_id),  # noqa: B008
    service: organizations.OrganizationService = fastapi.Depends(_get_service),  # noqa: B008
) -> dict[str, Any]:
    """Member counts by role and record counts by status."""
    return service.analytics(org_id, user_id)
