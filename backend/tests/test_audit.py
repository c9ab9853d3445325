"""Tests for the audit trail and role administration."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from catalog.core import errors
from catalog.db import audit_logs as audit_db
from catalog.services import audit, users

if TYPE_CHECKING:
    from catalog.db import database


def test_list_entries_requires_admin(seeded: database.Repositories) -> None:
    service = audit.AuditService(seeded)
    service.record("admin", "SystemEvent", "system.start")
    with pytest.raises(errors.PermissionDeniedError):
        service.list_entries("officer", audit_db.AuditQuery())
    page = service.list_entries("admin", audit_db.AuditQuery())
    assert [e.action for e in page.items] == ["system.start"]


def test_list_entries_filters(seeded: database.Repositories) -> None:
    service = audit.AuditService(seeded)
    service.record("admin", "SystemEvent", "system.start")
    service.record(
        "officer",
        "MetadataWorkflow",
        "metadata.approve",
        target_type="MetadataRecord",
        target_id="rec-1",
    )
    page = service.list_entries(
        "admin", audit_db.AuditQuery(category="MetadataWorkflow")
    )
    assert page.total == 1
    assert page.items[0].target_id == "rec-1"
    by_admin = service.list_entries("admin", audit_db.AuditQuery(user_id="admin"))
    assert by_admin.total == 1


def test_unknown_category_is_rejected(seeded: database.Repositories) -> None:
    with pytest.raises(errors.ValidationError):
        audit.AuditService(seeded).list_entries(
            "admin", audit_db.AuditQuery(category="Gossip")
        )


def test_set_role_audits_and_notifies(seeded: database.Repositories) -> None:
    service = users.UserRoleService(seeded)
    assignment = service.set_role("admin", "outsider", "Metadata Approver")
    assert assignment.role == "Metadata Approver"
    [entry] = seeded.audit_logs.find(
        audit_db.AuditQuery(category="PermissionManagement")
    )
    assert entry.details == {
        "previous": "Registered User",
        "current": "Metadata Approver",
    }
    [notice] = seeded.notifications.for_user("outsider")
    assert notice.type == "NewRoleAssignment"


def test_set_role_rules(seeded: database.Repositories) -> None:
    service = users.UserRoleService(seeded)
    with pytest.raises(errors.PermissionDeniedError):
        service.set_role("officer", "outsider", "System Administrator")
    with pytest.raises(errors.ValidationError):
        service.set_role("admin", "outsider", "Overlord")


def test_describe_lists_permissions_and_memberships(
    seeded: database.Repositories,
) -> None:
    described = users.UserRoleService(seeded).describe("officer")
    assert described["role"] == "Node Officer"
    assert "manage:organization_users" in described["permissions"]
    assert described["organizations"] == [
        {"organization_id": "org-lagos", "role": "Node Officer"}
    ]


def test_seed_admins_only_promotes_users_without_role(
    seeded: database.Repositories,
) -> None:
    assert users.seed_admins(seeded, ["root", "officer"]) == 1
    root = seeded.user_roles.get("root")
    assert root is not None
    assert root.role == "System Administrator"
    officer = seeded.user_roles.get("officer")
    assert officer is not None
    assert officer.role == "Node Officer"
