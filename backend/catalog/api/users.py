"""User role and permission endpoints."""

import dataclasses
from typing import Any

import fastapi
import pydantic

from catalog.api import deps
from catalog.core import security
from catalog.db import database
from catalog.db import models as db_models
from catalog.services import users

router = fastapi.APIRouter(prefix="/api/users", tags=["users"])


class RoleRequest(pydantic.BaseModel):
    role: db_models.GlobalRole


def _get_service(
    repos: database.Repositories = fastapi.Depends(deps.get_repositories),  # noqa: B008
) -> users.UserRoleService:
    return users.UserRoleService(repos)


@router.get("/me/permissions")
async def my_permissions(
    user_id: str = fastapi.Depends(security.get_current_user_id),  # noqa: B008
    service: users.UserRoleService = fastapi.Depends(_get_service),  # noqa: B008
) -> dict[str, Any]:
    """The caller's global role, permissions and organization roles."""
    return service.describe(user_id)


@router.get("/{target_id}/roles")
async def user_roles(
    target_id: str,
    user_id: str = fastapi.Depends(security.get_current_user_id),  # noqa: B008
    service: users.UserRoleService = fastapi.Depends(_get_service),  # noqa: B008
) -> dict[str, Any]:
    return service.describe(target_id)


@router.put("/{target_id}/role")
async def set_user_role(
    target_id: str,
    body: RoleRequest,
    user_id: str = fastapi.Depends(security.get_current_user_id),  # noqa: B008
    service: users.UserRoleService = fastapi.Depends(_get_service),  # noqa: B008
) -> dict[str, Any]:
    """Change a user's global role. System Administrators only."""
    return dataclasses.asdict(service.set_role(user_id, target_id, body.role))
