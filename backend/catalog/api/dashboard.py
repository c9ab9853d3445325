"""Dashboard statistics endpoint."""

from typing import Any

import fastapi

from catalog.api import deps
from catalog.core import security
from catalog.db import database
from catalog.services import dashboard as dashboard_service

router = fastapi.APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("")
async def get_dashboard(
    user_id: str = fastapi.Depends(security.get_current_user_id),  # noqa: B008
    repos: database.Repositories = fastapi.Depends(deps.get_repositories),  # noqa: B008
) -> dict[str, Any]:
    """Record counts, validation queue size and unread notifications."""
    return dashboard_service.dashboard(repos, user_id)
