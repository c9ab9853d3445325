"""Tests for role and membership based capability checks."""

from __future__ import annotations

from typing import TYPE_CHECKING

from catalog.db import models as db_models
from catalog.services import permissions

if TYPE_CHECKING:
    from collections.abc import Callable

    from catalog.db import database

ORG_ID = "org-lagos"


def test_unknown_user_defaults_to_registered_user(
    repos: database.Repositories,
) -> None:
    checker = permissions.PermissionChecker(repos)
    assert checker.global_role("nobody") == "Registered User"
    assert checker.global_role(None) == "Registered User"
    assert checker.has_permission("nobody", "read", "metadata")
    assert not checker.has_permission("nobody", "create", "metadata")


def test_anonymous_user_has_no_permissions(seeded: database.Repositories) -> None:
    checker = permissions.PermissionChecker(seeded)
    assert not checker.has_permission(None, "read", "metadata")
    assert not checker.can_approve(None, ORG_ID)


def test_manage_all_implies_everything(seeded: database.Repositories) -> None:
    checker = permissions.PermissionChecker(seeded)
    assert checker.is_admin("admin")
    assert checker.has_permission("admin", "delete", "anything")
    assert checker.can_manage_members("admin", ORG_ID)
    assert not checker.is_admin("officer")


def test_node_officer_capabilities_come_from_membership(
    seeded: database.Repositories,
) -> None:
    checker = permissions.PermissionChecker(seeded)
    assert checker.is_node_officer("officer", ORG_ID)
    assert checker.can_approve("officer", ORG_ID)
    assert checker.can_publish("officer", ORG_ID)
    assert not checker.can_approve("officer", "another-org")
    assert not checker.can_approve("creator", ORG_ID)


def test_global_approver_may_approve_any_organization(
    seeded: database.Repositories,
) -> None:
    checker = permissions.PermissionChecker(seeded)
    assert checker.can_approve("approver", "another-org")
    assert checker.can_publish("approver", "another-org")
    assert checker.sees_all_records("approver")
    assert not checker.sees_all_records("creator")


def test_role_change_takes_effect_immediately(seeded: database.Repositories) -> None:
    checker = permissions.PermissionChecker(seeded)
    assert not checker.can_approve("outsider", "another-org")
    seeded.user_roles.set(db_models.UserRole("outsider", "Metadata Approver"))
    assert checker.can_approve("outsider", "another-org")


def test_can_view_record(
    seeded: database.Repositories,
    record_factory: Callable[..., db_models.MetadataRecord],
) -> None:
    checker = permissions.PermissionChecker(seeded)
    draft = record_factory(status="Draft")
    published = record_factory(status="Published")
    assert checker.can_view_record(None, published)
    assert not checker.can_view_record(None, draft)
    assert checker.can_view_record("creator", draft)
    assert checker.can_view_record("colleague", draft)
    assert checker.can_view_record("approver", draft)
    assert not checker.can_view_record("outsider", draft)
