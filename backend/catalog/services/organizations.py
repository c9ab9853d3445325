"""Organizations, their members and the Node Officer assignment.

An organization has at most one Node Officer. Assigning a new one demotes
the previous officer's membership to Metadata Creator in the same call, so
``node_officer_id`` and the memberships never disagree.
"""

from __future__ import annotations

import dataclasses
import logging
import uuid
from typing import TYPE_CHECKING, Any, Literal

import pydantic

from catalog.core import errors
from catalog.db import models as db_models
from catalog.db import records as record_db
from catalog.services import audit, metadata_form, notifications, permissions

if TYPE_CHECKING:
    from catalog.db import database

logger = logging.getLogger(__name__)

OrganizationSort = Literal["name", "created_at", "member_count"]
RECENT_RECORDS_LIMIT = 5


class OrganizationInput(pydantic.BaseModel):
    """Editable organization fields."""

    name: str = pydantic.Field(min_length=1, max_length=200)
    description: str | None = None
    website: metadata_form.HttpUrlText = None
    contact_email: str | None = None
    contact_phone: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    postal_code: str | None = None
    logo_url: metadata_form.HttpUrlText = None
    status: db_models.OrganizationStatus = "active"

    @pydantic.field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value


@dataclasses.dataclass
class OrganizationSummary:
    organization: db_models.Organization
    member_count: int

    def as_dict(self) -> dict[str, Any]:
        data = dataclasses.asdict(self.organization)
        return {**data, "member_count": self.member_count}


class OrganizationService:
    """Organization administration and membership management."""

    def __init__(self, repos: database.Repositories) -> None:
        self.repos = repos
        self.permissions = permissions.PermissionChecker(repos)
        self.notifications = notifications.NotificationService(repos)
        self.audit = audit.AuditService(repos)

    def create(self, user_id: str, data: OrganizationInput) -> db_models.Organization:
        """Register an organization.

        Raises:
            PermissionDeniedError: Unless the user may create organizations.
            ConflictError: If another organization already uses the name.
        """
        if not self.permissions.has_permission(user_id, "create", "organizations"):
            raise errors.PermissionDeniedError(
                "You are not allowed to create organizations"
            )
        self._check_unique_name(data.name)
        org = db_models.Organization(id=str(uuid.uuid4()), **data.model_dump())
        self.repos.organizations.add(org)
        self.audit.record(
            user_id,
            "OrganizationManagement",
            "organization.create",
            target_type="Organization",
            target_id=org.id,
            details={"name": org.name},
        )
        logger.info("Organization %s (%s) created by %s", org.id, org.name, user_id)
        return org

    def get(self, org_id: str) -> db_models.Organization:
        org = self.repos.organizations.get(org_id)
        if org is None:
            raise errors.NotFoundError("Organization not found")
        return org

    def update(
        self, org_id: str, user_id: str, data: OrganizationInput
    ) -> db_models.Organization:
        org = self.get(org_id)
        if not self.permissions.can_manage_members(user_id, org_id):
            raise errors.PermissionDeniedError(
                "You are not allowed to edit this organization"
            )
        if data.name.casefold() != org.name.casefold():
            self._check_unique_name(data.name)
        updated = dataclasses.replace(
            org, **data.model_dump(), updated_at=db_models.utcnow()
        )
        self.repos.organizations.add(updated)
        self.audit.record(
            user_id,
            "OrganizationManagement",
            "organization.update",
            target_type="Organization",
            target_id=org.id,
        )
        return updated

    def delete(self, org_id: str, user_id: str) -> None:
        """Remove an organization that no longer owns any records."""
        org = self.get(org_id)
        if not self.permissions.is_admin(user_id):
            raise errors.PermissionDeniedError(
                "Only administrators can delete organizations"
            )
        owned = self.repos.records.find(record_db.RecordQuery(organization_id=org_id))
        if owned:
            raise errors.ConflictError(
                f"Organization still owns {len(owned)} metadata record(s)"
            )
        for membership in self.repos.memberships.for_organization(org_id):
            self.repos.memberships.remove(membership.user_id, org_id)
        self.repos.organizations.delete(org_id)
        self.audit.record(
            user_id,
            "OrganizationManagement",
            "organization.delete",
            target_type="Organization",
            target_id=org_id,
            details={"name": org.name},
        )

    def list_organizations(
        self,
        search: str | None = None,
        status: str | None = None,
        sort_by: OrganizationSort = "name",
        sort_order: Literal["asc", "desc"] = "asc",
        page: int = 1,
        page_size: int = 10,
    ) -> db_models.Page[OrganizationSummary]:
        """Organizations with their member counts, filtered and sorted."""
        if page < 1 or page_size < 1:
            raise errors.ValidationError("page and page_size must be positive")
        if status is not None and status not in db_models.ORGANIZATION_STATUSES:
            raise errors.ValidationError(f"Unknown organization status: {status}")
        needle = (search or "").strip().casefold()
        summaries = [
            OrganizationSummary(
                organization=org,
                member_count=len(list(self.repos.memberships.for_organization(org.id))),
            )
            for org in self.repos.organizations.all()
            if (status is None or org.status == status)
            and (
                not needle
                or needle in org.name.casefold()
                or needle in (org.description or "").casefold()
            )
        ]

        def sort_key(summary: OrganizationSummary) -> Any:
            if sort_by == "member_count":
                return summary.member_count
            if sort_by == "created_at":
                return summary.organization.created_at
            return summary.organization.name.casefold()

        summaries.sort(key=sort_key, reverse=sort_order == "desc")
        return db_models.paginate(summaries, page, page_size)

    def assign_node_officer(
        self, org_id: str, actor_id: str, user_id: str
    ) -> db_models.Organization:
        """Make ``user_id`` the organization's only Node Officer.

        Raises:
            PermissionDeniedError: Unless the actor is an administrator.
            NotFoundError: If the organization does not exist.
        """
        org = self.get(org_id)
        if not self.permissions.is_admin(actor_id):
            raise errors.PermissionDeniedError(
                "Only administrators can assign Node Officers"
            )
        for membership in self.repos.memberships.for_organization(org_id):
            if membership.role == "Node Officer" and membership.user_id != user_id:
                membership.role = "Metadata Creator"
                self.repos.memberships.upsert(membership)
        self.repos.memberships.upsert(
            db_models.Membership(
                user_id=user_id, organization_id=org_id, role="Node Officer"
            )
        )
        previous = org.node_officer_id
        updated = dataclasses.replace(
            org, node_officer_id=user_id, updated_at=db_models.utcnow()
        )
        self.repos.organizations.add(updated)

        self.notifications.notify(
            user_id,
            "NewRoleAssignment",
            "You are now a Node Officer",
            f"You were assigned as Node Officer of {org.name}.",
            link=f"/organizations/{org_id}",
            priority="high",
            organization_id=org_id,
        )
        self.audit.record(
            actor_id,
            "OrganizationManagement",
            "organization.assign_node_officer",
            target_type="Organization",
            target_id=org_id,
            details={"previous": previous, "current": user_id},
        )
        logger.info(
            "Node Officer of %s changed from %s to %s", org_id, previous, user_id
        )
        return updated

    def members(self, org_id: str, user_id: str) -> list[db_models.Membership]:
        self.get(org_id)
        if not (
            self.permissions.is_member(user_id, org_id)
            or self.permissions.is_admin(user_id)
        ):
            raise errors.PermissionDeniedError(
                "You are not a member of this organization"
            )
        return list(self.repos.memberships.for_organization(org_id))

    def add_member(
        self,
        org_id: str,
        actor_id: str,
        user_id: str,
        role: db_models.OrganizationRole | None = "Metadata Creator",
    ) -> db_models.Membership:
        org = self.get(org_id)
        self._check_can_manage(actor_id, org_id)
        if role == "Node Officer":
            raise errors.ValidationError(
                "Use the Node Officer assignment to appoint a Node Officer"
            )
        if self.repos.memberships.get(user_id, org_id) is not None:
            raise errors.ConflictError("User is already a member of this organization")
        membership = self.repos.memberships.upsert(
            db_models.Membership(user_id=user_id, organization_id=org_id, role=role)
        )
        self.notifications.notify(
            user_id,
            "NewRoleAssignment",
            f"Added to {org.name}",
            f"You were added to {org.name} as {role or 'member'}.",
            link=f"/organizations/{org_id}",
            organization_id=org_id,
        )
        self._audit_membership(
            actor_id, org_id, "organization.add_member", user_id, role
        )
        return membership

    def set_member_role(
        self,
        org_id: str,
        actor_id: str,
        user_id: str,
        role: db_models.OrganizationRole | None,
    ) -> db_models.Membership:
        org = self.get(org_id)
        if role == "Node Officer":
            self.assign_node_officer(org_id, actor_id, user_id)
            return self._membership(org_id, user_id)
        self._check_can_manage(actor_id, org_id)
        membership = self._membership(org_id, user_id)
        membership.role = role
        self.repos.memberships.upsert(membership)
        if org.node_officer_id == user_id:
            self.repos.organizations.add(
                dataclasses.replace(
                    org, node_officer_id=None, updated_at=db_models.utcnow()
                )
            )
        self._audit_membership(actor_id, org_id, "organization.set_role", user_id, role)
        return membership

    def remove_member(self, org_id: str, actor_id: str, user_id: str) -> None:
        org = self.get(org_id)
        self._check_can_manage(actor_id, org_id)
        membership = self._membership(org_id, user_id)
        if membership.role == "Node Officer" or org.node_officer_id == user_id:
            raise errors.ConflictError(
                "Assign another Node Officer before removing the current one"
            )
        self.repos.memberships.remove(user_id, org_id)
        self._audit_membership(
            actor_id, org_id, "organization.remove_member", user_id, None
        )

    def managed_organizations(self, user_id: str) -> list[db_models.Organization]:
        """Organizations in which the user is the Node Officer."""
        managed = []
        for membership in self.repos.memberships.for_user(user_id):
            if membership.role != "Node Officer":
                continue
            org = self.repos.organizations.get(membership.organization_id)
            if org is not None:
                managed.append(org)
        return sorted(managed, key=lambda org: org.name.casefold())

    def analytics(self, org_id: str, user_id: str) -> dict[str, Any]:
        """Member and record statistics for one organization."""
        org = self.get(org_id)
        if not (
            self.permissions.is_member(user_id, org_id)
            or self.permissions.is_admin(user_id)
        ):
            raise errors.PermissionDeniedError(
                "You are not a member of this organization"
            )
        members_by_role: dict[str, int] = {}
        for membership in self.repos.memberships.for_organization(org_id):
            key = membership.role or "Member"
            members_by_role[key] = members_by_role.get(key, 0) + 1
        counts = self.repos.records.status_counts(
            record_db.RecordQuery(organization_id=org_id)
        )
        recent = self.repos.records.search(
            record_db.RecordQuery(
                organization_id=org_id,
                sort_by="updated_at",
                sort_order="desc",
                page_size=RECENT_RECORDS_LIMIT,
            )
        )
        return {
            "organization_id": org.id,
            "organization_name": org.name,
            "member_count": sum(members_by_role.values()),
            "members_by_role": members_by_role,
            "records_by_status": {
                status: counts.get(status, 0)
                for status in db_models.METADATA_STATUSES
            },
            "total_records": sum(counts.values()),
            "recent_records": [
                {
                    "id": record.id,
                    "title": record.title,
                    "status": record.status,
                    "updated_at": record.updated_at,
                }
                for record in recent.items
            ],
        }

    def _membership(self, org_id: str, user_id: str) -> db_models.Membership:
        membership = self.repos.memberships.get(user_id, org_id)
        if membership is None:
            raise errors.NotFoundError("User is not a member of this organization")
        return membership

    def _check_can_manage(self, actor_id: str, org_id: str) -> None:
        if not self.permissions.can_manage_members(actor_id, org_id):
            raise errors.PermissionDeniedError(
                "You are not allowed to manage this organization's members"
            )

    def _check_unique_name(self, name: str) -> None:
        if self.repos.organizations.get_by_name(name) is not None:
            raise errors.ConflictError(f"An organization named '{name}' already exists")

    def _audit_membership(
        self,
        actor_id: str,
        org_id: str,
        action: str,
        user_id: str,
        role: str | None,
    ) -> None:
        self.audit.record(
            actor_id,
            "UserManagement",
            action,
            target_type="User",
            target_id=user_id,
            details={"organization_id": org_id, "role": role},
        )
