"""Tests for the per-user dashboard statistics."""

from __future__ import annotations

from typing import TYPE_CHECKING

from catalog.services import dashboard, notifications

if TYPE_CHECKING:
    from collections.abc import Callable

    from catalog.db import database
    from catalog.db import models as db_models


def test_creator_dashboard(
    seeded: database.Repositories,
    record_factory: Callable[..., db_models.MetadataRecord],
) -> None:
    seeded.records.add(record_factory("a"))
    seeded.records.add(record_factory("b", status="Pending Validation"))
    seeded.records.add(record_factory("c", status="Published", creator="other"))
    notifications.NotificationService(seeded).notify(
        "creator", "SystemAlert", "Hello", "Welcome"
    )

    stats = dashboard.dashboard(seeded, "creator")
    assert stats["role"] == "Metadata Creator"
    assert stats["my_records"]["Draft"] == 1
    assert stats["my_records"]["Pending Validation"] == 1
    assert stats["my_records"]["Published"] == 0
    assert stats["my_records_total"] == 2
    assert stats["pending_validation"] == 0
    assert stats["managed_organization_ids"] == []
    assert stats["notifications"]["unread"] == 1
    assert {r["id"] for r in stats["recent_records"]} == {"a", "b", "c"}


def test_officer_and_approver_queue_sizes(
    seeded: database.Repositories,
    record_factory: Callable[..., db_models.MetadataRecord],
) -> None:
    seeded.records.add(record_factory("mine", status="Pending Validation"))
    seeded.records.add(
        record_factory(
            "elsewhere", status="Pending Validation", organization_id="org-kano"
        )
    )
    officer = dashboard.dashboard(seeded, "officer")
    assert officer["pending_validation"] == 1
    assert officer["managed_organization_ids"] == ["org-lagos"]
    assert dashboard.dashboard(seeded, "approver")["pending_validation"] == 2


def test_pending_validation_per_organization(
    seeded: database.Repositories,
    record_factory: Callable[..., db_models.MetadataRecord],
) -> None:
    seeded.records.add(record_factory("mine", status="Pending Validation"))
    seeded.records.add(record_factory("draft"))
    seeded.records.add(
        record_factory(
            "elsewhere", status="Pending Validation", organization_id="org-kano"
        )
    )
    officer = dashboard.dashboard(seeded, "officer")
    assert officer["pending_validation_by_organization"] == {"org-lagos": 1}
    approver = dashboard.dashboard(seeded, "approver")
    assert approver["pending_validation_by_organization"] == {
        "org-lagos": 1,
        "org-kano": 1,
    }
    creator = dashboard.dashboard(seeded, "creator")
    assert creator["pending_validation_by_organization"] == {}
