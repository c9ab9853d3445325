"""End-to-end test of a record's life through the catalog API.

This module drives one scenario entirely over HTTP:
- An administrator registers an organization and appoints its Node Officer,
- The Node Officer adds a Metadata Creator to the organization,
- The creator saves a Draft through the metadata form and submits it,
- The Node Officer approves, publishes and finally archives the record.

Along the way it checks visibility for anonymous callers, the notifications
sent to each party and the audit trail left by the workflow.

See Also:
- backend/catalog/services/workflow.py for the transition table.
- backend/catalog/services/metadata_records.py for visibility rules.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fastapi import testclient

ADMIN = {"X-User-Id": "admin"}
OFFICER = {"X-User-Id": "kano-officer"}
AUTHOR = {"X-User-Id": "kano-author"}


def test_full_flow(client: testclient.TestClient) -> None:
    """Test organization setup followed by the whole record workflow."""
    org = client.post(
        "/api/organizations",
        json={"name": "Kano State Survey", "state": "Kano", "country": "Nigeria"},
        headers=ADMIN,
    ).json()
    org_id = org["id"]

    appointed = client.put(
        f"/api/organizations/{org_id}/node-officer",
        json={"user_id": "kano-officer"},
        headers=ADMIN,
    )
    assert appointed.json()["node_officer_id"] == "kano-officer"
    added = client.post(
        f"/api/organizations/{org_id}/members",
        json={"user_id": "kano-author"},
        headers=OFFICER,
    )
    assert added.status_code == 201

    created = client.post(
        "/api/metadata",
        json={
            "general": {
                "title": "Kano State administrative boundaries",
                "data_type": "Vector",
                "organization_id": org_id,
            },
            "spatial": {
                "bounding_box": {
                    "west": 7.6,
                    "south": 10.5,
                    "east": 9.7,
                    "north": 12.8,
                }
            },
        },
        headers=AUTHOR,
    )
    assert created.status_code == 201
    record_id = created.json()["id"]
    assert client.get(f"/api/metadata/{record_id}").status_code == 404

    submitted = client.post(f"/api/workflow/{record_id}/submit", headers=AUTHOR)
    assert submitted.json()["status"] == "Pending Validation"
    officer_inbox = client.get("/api/notifications/counts", headers=OFFICER).json()
    assert officer_inbox["unread"] >= 1

    approved = client.post(f"/api/workflow/{record_id}/approve", headers=OFFICER)
    assert approved.json()["status"] == "Approved"
    published = client.post(f"/api/workflow/{record_id}/publish", headers=OFFICER)
    assert published.json()["status"] == "Published"
    assert published.json()["publication_date"] is not None

    public = client.get("/api/metadata", params={"q": "boundaries"}).json()
    assert [item["id"] for item in public["items"]] == [record_id]
    markers = client.get("/api/map/records", params={"bbox": "8,11,9,12"}).json()
    assert [marker["id"] for marker in markers] == [record_id]

    archived = client.post(f"/api/workflow/{record_id}/archive", headers=OFFICER)
    assert archived.json()["status"] == "Archived"
    assert client.get(f"/api/metadata/{record_id}").status_code == 404
    assert client.get(
        f"/api/workflow/{record_id}/actions", headers=OFFICER
    ).json()["actions"] == []

    author_inbox = client.get("/api/notifications", headers=AUTHOR).json()
    assert author_inbox["total"] >= 1

    trail = client.get(
        "/api/audit-logs",
        params={"category": "MetadataWorkflow", "target_id": record_id},
        headers=ADMIN,
    ).json()
    assert {entry["action"] for entry in trail["items"]} == {
        "metadata.submit",
        "metadata.approve",
        "metadata.publish",
        "metadata.archive",
    }
    history = client.get(f"/api/metadata/{record_id}/history", headers=AUTHOR).json()
    assert len(history) == 5
