"""Capability checks for global roles and organization memberships.

Every check reads the current role and membership from the repositories.
Results are never cached, so a role change takes effect on the very next
call, including between two workflow transitions of the same record.

Global roles grant ``(action, subject)`` permissions. ``manage`` on a subject
implies every action on that subject and ``manage:all`` implies everything.

Example:
    >>> checker = PermissionChecker(repos)
    >>> checker.has_permission("user-1", "approve", "metadata")
    False
    >>> checker.can_approve("user-1", "org-1")  # Node Officer of org-1
    True
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from catalog.db import database
    from catalog.db import models as db_models

Permission = tuple[str, str]

ROLE_PERMISSIONS: dict[str, frozenset[Permission]] = {
    "System Administrator": frozenset({("manage", "all")}),
    "Node Officer": frozenset(
        {
            ("read", "metadata"),
            ("create", "metadata"),
            ("update", "metadata"),
            ("read", "organizations"),
            ("manage", "organization_users"),
        }
    ),
    "Metadata Approver": frozenset(
        {
            ("read", "metadata"),
            ("approve", "metadata"),
            ("publish", "metadata"),
            ("read", "organizations"),
        }
    ),
    "Metadata Creator": frozenset(
        {
            ("read", "metadata"),
            ("create", "metadata"),
            ("update", "metadata"),
            ("read", "organizations"),
        }
    ),
    "Registered User": frozenset(
        {
            ("read", "metadata"),
            ("read", "organizations"),
        }
    ),
}

DEFAULT_ROLE: db_models.GlobalRole = "Registered User"


class PermissionChecker:
    """Answers capability questions against live repository data."""

    def __init__(self, repos: database.Repositories) -> None:
        self.repos = repos

    def global_role(self, user_id: str | None) -> db_models.GlobalRole:
        if user_id is None:
            return DEFAULT_ROLE
        assignment = self.repos.user_roles.get(user_id)
        return assignment.role if assignment is not None else DEFAULT_ROLE

    def permissions(self, user_id: str | None) -> frozenset[Permission]:
        return ROLE_PERMISSIONS.get(self.global_role(user_id), frozenset())

    def has_permission(self, user_id: str | None, action: str, subject: str) -> bool:
        """Return True when the user's global role grants action on subject."""
        if user_id is None:
            return False
        granted = self.permissions(user_id)
        return (
            ("manage", "all") in granted
            or ("manage", subject) in granted
            or (action, subject) in granted
        )

    def is_admin(self, user_id: str | None) -> bool:
        return self.has_permission(user_id, "manage", "all")

    def membership_role(
        self, user_id: str | None, org_id: str | None
    ) -> db_models.OrganizationRole | None:
        if user_id is None or org_id is None:
            return None
        membership = self.repos.memberships.get(user_id, org_id)
        return membership.role if membership is not None else None

    def is_member(self, user_id: str | None, org_id: str | None) -> bool:
        if user_id is None or org_id is None:
            return False
        return self.repos.memberships.get(user_id, org_id) is not None

    def is_node_officer(self, user_id: str | None, org_id: str | None) -> bool:
        """Return True when the user holds the Node Officer role in the org."""
        return self.membership_role(user_id, org_id) == "Node Officer"

    def can_approve(self, user_id: str | None, org_id: str | None) -> bool:
        """Node Officer of the org, or a global approve-metadata capability."""
        return self.is_node_officer(user_id, org_id) or self.has_permission(
            user_id, "approve", "metadata"
        )

    def can_publish(self, user_id: str | None, org_id: str | None) -> bool:
        return self.is_node_officer(user_id, org_id) or self.has_permission(
            user_id, "publish", "metadata"
        )

    def can_manage_metadata(self, user_id: str | None, org_id: str | None) -> bool:
        return self.is_node_officer(user_id, org_id) or self.has_permission(
            user_id, "manage", "metadata"
        )

    def can_manage_members(self, user_id: str | None, org_id: str | None) -> bool:
        return self.is_admin(user_id) or self.is_node_officer(user_id, org_id)

    def can_view_record(
        self, user_id: str | None, record: db_models.MetadataRecord
    ) -> bool:
        """Published records are public; others need a relationship to them."""
        if record.status == "Published":
            return True
        if user_id is None:
            return False
        return (
            record.creator_user_id == user_id
            or self.is_member(user_id, record.organization_id)
            or self.has_permission(user_id, "manage", "metadata")
            or self.has_permission(user_id, "approve", "metadata")
        )

    def sees_all_records(self, user_id: str | None) -> bool:
        """True for users who may list unpublished records of every org."""
        return self.has_permission(user_id, "manage", "metadata") or (
            self.has_permission(user_id, "approve", "metadata")
        )
