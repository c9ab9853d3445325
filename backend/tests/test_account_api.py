"""API endpoint tests for notifications, audit logs, dashboard and users."""

from __future__ import annotations

from typing import TYPE_CHECKING

from catalog.services import audit, notifications

if TYPE_CHECKING:
    from fastapi import testclient

    from catalog.db import database

CREATOR = {"X-User-Id": "creator"}
ADMIN = {"X-User-Id": "admin"}


def test_notification_inbox(
    client: testclient.TestClient, seeded: database.Repositories
) -> None:
    service = notifications.NotificationService(seeded)
    first = service.notify("creator", "SystemAlert", "Maintenance", "Tonight")
    service.notify("creator", "SystemAlert", "Upgrade", "Done", priority="high")
    service.notify("officer", "SystemAlert", "Other", "Not yours")

    listing = client.get("/api/notifications", headers=CREATOR).json()
    assert listing["total"] == 2
    counts = client.get("/api/notifications/counts", headers=CREATOR).json()
    assert counts == {"total": 2, "unread": 2, "high_priority_unread": 1}

    read = client.post(f"/api/notifications/{first.id}/read", headers=CREATOR)
    assert read.json()["is_read"] is True
    unread = client.get(
        "/api/notifications", params={"unread_only": True}, headers=CREATOR
    )
    assert unread.json()["total"] == 1
    marked = client.post("/api/notifications/read-all", headers=CREATOR)
    assert marked.json() == {"updated": 1}

    deleted = client.delete(f"/api/notifications/{first.id}", headers=CREATOR)
    assert deleted.status_code == 204
    again = client.delete(f"/api/notifications/{first.id}", headers=CREATOR)
    assert again.status_code == 404


def test_notifications_require_identity(client: testclient.TestClient) -> None:
    assert client.get("/api/notifications").status_code == 401


def test_audit_logs_are_admin_only(
    client: testclient.TestClient, seeded: database.Repositories
) -> None:
    audit.AuditService(seeded).record("admin", "SystemEvent", "system.start")
    denied = client.get("/api/audit-logs", headers=CREATOR)
    assert denied.status_code == 403

    response = client.get(
        "/api/audit-logs", params={"category": "SystemEvent"}, headers=ADMIN
    )
    assert response.status_code == 200
    assert [e["action"] for e in response.json()["items"]] == ["system.start"]
    bad = client.get("/api/audit-logs", params={"category": "Gossip"}, headers=ADMIN)
    assert bad.status_code == 422


def test_dashboard(client: testclient.TestClient) -> None:
    response = client.get("/api/dashboard", headers={"X-User-Id": "officer"})
    assert response.status_code == 200
    body = response.json()
    assert body["role"] == "Node Officer"
    assert body["managed_organization_ids"] == ["org-lagos"]
    assert client.get("/api/dashboard").status_code == 401


def test_my_permissions(client: testclient.TestClient) -> None:
    body = client.get("/api/users/me/permissions", headers=CREATOR).json()
    assert body["role"] == "Metadata Creator"
    assert body["organizations"] == [
        {"organization_id": "org-lagos", "role": "Metadata Creator"}
    ]


def test_set_role_is_admin_only(client: testclient.TestClient) -> None:
    denied = client.put(
        "/api/users/outsider/role",
        json={"role": "Metadata Approver"},
        headers=CREATOR,
    )
    assert denied.status_code == 403

    granted = client.put(
        "/api/users/outsider/role",
        json={"role": "Metadata Approver"},
        headers=ADMIN,
    )
    assert granted.status_code == 200
    assert granted.json()["role"] == "Metadata Approver"
    roles = client.get("/api/users/outsider/roles", headers=ADMIN).json()
    assert roles["role"] == "Metadata Approver"

    unknown = client.put(
        "/api/users/outsider/role", json={"role": "Overlord"}, headers=ADMIN
    )
    assert unknown.status_code == 422
