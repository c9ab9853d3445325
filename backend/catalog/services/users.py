"""Global role lookup and assignment."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from catalog.core import errors
from catalog.db import models as db_models
from catalog.services import audit, notifications, permissions

if TYPE_CHECKING:
    from catalog.db import database


class UserRoleService:
    def __init__(self, repos: database.Repositories) -> None:
        self.repos = repos
        self.permissions = permissions.PermissionChecker(repos)
        self.audit = audit.AuditService(repos)
        self.notifications = notifications.NotificationService(repos)

    def describe(self, user_id: str) -> dict[str, Any]:
        """A user's global role, its permissions and organization roles."""
        return {
            "user_id": user_id,
            "role": self.permissions.global_role(user_id),
            "permissions": sorted(
                f"{action}:{subject}"
                for action, subject in self.permissions.permissions(user_id)
            ),
            "organizations": [
                {"organization_id": m.organization_id, "role": m.role}
                for m in self.repos.memberships.for_user(user_id)
            ],
        }

    def set_role(self, actor_id: str, user_id: str, role: str) -> db_models.UserRole:
        """Change a user's global role.

        Raises:
            PermissionDeniedError: Unless the actor is an administrator.
            ValidationError: If the role name is unknown.
        """
        if not self.permissions.is_admin(actor_id):
            raise errors.PermissionDeniedError("Only administrators can change roles")
        if role not in db_models.GLOBAL_ROLES:
            raise errors.ValidationError(f"Unknown role: {role}")
        previous = self.permissions.global_role(user_id)
        assignment = self.repos.user_roles.set(
            db_models.UserRole(user_id=user_id, role=role)  # type: ignore[arg-type]
        )
        self.audit.record(
            actor_id,
            "PermissionManagement",
            "user.set_role",
            target_type="User",
            target_id=user_id,
            details={"previous": previous, "current": role},
        )
        if previous != role:
            self.notifications.notify(
                user_id,
                "NewRoleAssignment",
                "Your role has changed",
                f"Your role is now {role}.",
                priority="high",
            )
        return assignment


def seed_admins(repos: database.Repositories, user_ids: list[str]) -> int:
    """Grant System Administrator to configured users that have no role yet.

    Returns:
        Number of users that were promoted.
    """
    promoted = 0
    for user_id in user_ids:
        if repos.user_roles.get(user_id) is None:
            repos.user_roles.set(
                db_models.UserRole(user_id=user_id, role="System Administrator")
            )
            promoted += 1
    return promoted
