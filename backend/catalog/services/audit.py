"""Audit trail writing and administrator listing."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any

from catalog.core import errors
from catalog.db import audit_logs as audit_db
from catalog.db import models as db_models
from catalog.services import permissions

if TYPE_CHECKING:
    from catalog.db import database


class AuditService:
    """Append entries to the audit log and list them for administrators."""

    def __init__(self, repos: database.Repositories) -> None:
        self.repos = repos
        self.permissions = permissions.PermissionChecker(repos)

    def record(
        self,
        user_id: str | None,
        category: db_models.AuditCategory,
        action: str,
        target_type: db_models.AuditTargetType = "None",
        target_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> db_models.AuditLogEntry:
        return self.repos.audit_logs.add(
            db_models.AuditLogEntry(
                id=str(uuid.uuid4()),
                user_id=user_id,
                category=category,
                action=action,
                target_type=target_type,
                target_id=target_id,
                details=details or {},
            )
        )

    def list_entries(
        self,
        user_id: str,
        query: audit_db.AuditQuery,
        page: int = 1,
        page_size: int = 20,
    ) -> db_models.Page[db_models.AuditLogEntry]:
        """List entries newest first.

        Raises:
            PermissionDeniedError: If the caller is not a System Administrator.
            ValidationError: If the category filter is unknown.
        """
        if not self.permissions.is_admin(user_id):
            raise errors.PermissionDeniedError(
                "Only administrators can view audit logs"
            )
        if query.category is not None and query.category not in (
            db_models.AUDIT_CATEGORIES
        ):
            raise errors.ValidationError(f"Unknown audit category: {query.category}")
        if page < 1 or page_size < 1:
            raise errors.ValidationError("page and page_size must be positive")
        return db_models.paginate(self.repos.audit_logs.find(query), page, page_size)
