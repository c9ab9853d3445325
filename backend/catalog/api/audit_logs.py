"""Audit log browsing for System Administrators."""

from typing import Any

import fastapi

from catalog.api import deps
from catalog.core import security
from catalog.db import audit_logs as audit_db
from catalog.db import database
from catalog.services import audit

router = fastapi.APIRouter(prefix="/api/audit-logs", tags=["audit"])


def _get_service(
    repos: database.Repositories = fastapi.Depends(deps.get_repositories),  # noqa: B008
) -> audit.AuditService:
    return audit.AuditService(repos)


@router.get("")
async def list_audit_logs(
    category: str | None = None,
    actor_id: str | None = None,
    target_type: str | None = None,
    target_id: str | None = None,
    page: int = 1,
    page_size: int = 20,
    user_id: str = fastapi.Depends(security.get_current_user_id),  # noqa: B008
    service: audit.AuditService = fastapi.Depends(_get_service),  # noqa: B008
) -> dict[str, Any]:
    """Audit entries newest first, filtered by category, actor or target.

    Args:
        category: One of the audit categories, e.g. MetadataWorkflow.
        actor_id: User who performed the action.
        target_type: Kind of entity acted on.
        target_id: Id of the entity acted on.
        page: 1-based page number.
        page_size: Items per page.
        user_id: Caller, who must be a System Administrator.
        service: Audit service (injected via FastAPI Depends).
    """
    query = audit_db.AuditQuery(
        category=category,
        user_id=actor_id,
        target_type=target_type,
        target_id=target_id,
    )
    return service.list_entries(user_id, query, page, page_size).as_dict()
