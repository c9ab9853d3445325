"""API endpoint tests for /api/metadata and /api/workflow."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from catalog.services import metadata_form

if TYPE_CHECKING:
    from fastapi import testclient

CREATOR = {"X-User-Id": "creator"}
OFFICER = {"X-User-Id": "officer"}
OUTSIDER = {"X-User-Id": "outsider"}

FORM: dict[str, Any] = {
    "general": {
        "title": "Lagos State road network",
        "data_type": "Vector",
        "framework_type": "Fundamental",
        "abstract": "Centre lines of all public roads in Lagos State.",
        "keywords": ["roads", "transport"],
        "organization_id": "org-lagos",
    },
    "location": {"country": "Nigeria", "state": "Lagos"},
    "spatial": {
        "coordinate_system": "EPSG:4326",
        "bounding_box": {"west": 2.7, "south": 6.3, "east": 4.4, "north": 6.7},
    },
    "temporal": {"date_from": "2020-01-01", "date_to": "2023-12-31"},
    "contact": {"contact_name": "Ada Obi", "contact_email": "ada@lagos.gov.ng"},
}


def _create(client: testclient.TestClient) -> dict[str, Any]:
    response = client.post("/api/metadata", json=FORM, headers=CREATOR)
    assert response.status_code == 201
    return response.json()


def test_create_and_get_record(client: testclient.TestClient) -> None:
    record = _create(client)
    assert record["status"] == "Draft"
    assert record["creator_user_id"] == "creator"
    assert record["bbox_west"] == 2.7

    detail = client.get(f"/api/metadata/{record['id']}", headers=CREATOR)
    assert detail.status_code == 200
    assert detail.json()["allowed_actions"] == ["submit"]


def test_form_round_trip(client: testclient.TestClient) -> None:
    record = _create(client)
    response = client.get(f"/api/metadata/{record['id']}/form", headers=CREATOR)
    assert response.status_code == 200
    expected = metadata_form.MetadataForm.model_validate(FORM)
    assert response.json()["form"] == expected.model_dump(mode="json")
    assert response.json()["completion"]["general"] > 0


def test_create_requires_identity(client: testclient.TestClient) -> None:
    response = client.post("/api/metadata", json=FORM)
    assert response.status_code == 401
    assert response.json() == {"detail": "Authentication required"}


def test_drafts_are_hidden_from_anonymous_callers(
    client: testclient.TestClient,
) -> None:
    record = _create(client)
    assert client.get(f"/api/metadata/{record['id']}").status_code == 404
    assert client.get("/api/metadata").json()["total"] == 0
    assert client.get("/api/metadata", headers=CREATOR).json()["total"] == 1


def test_search_filters_by_bbox(client: testclient.TestClient) -> None:
    _create(client)
    inside = client.get(
        "/api/metadata", params={"bbox": "3.0,6.4,3.5,6.6"}, headers=CREATOR
    )
    assert inside.json()["total"] == 1
    outside = client.get(
        "/api/metadata", params={"bbox": "8.0,11.0,9.0,12.5"}, headers=CREATOR
    )
    assert outside.json()["total"] == 0


@pytest.mark.parametrize("bbox", ["1,2,3", "a,b,c,d"])
def test_search_rejects_malformed_bbox(
    client: testclient.TestClient, bbox: str
) -> None:
    response = client.get("/api/metadata", params={"bbox": bbox})
    assert response.status_code == 422


def test_update_delete_and_history(client: testclient.TestClient) -> None:
    record = _create(client)
    changed = {**FORM, "general": {**FORM["general"], "title": "Lagos roads"}}
    updated = client.put(
        f"/api/metadata/{record['id']}", json=changed, headers=CREATOR
    )
    assert updated.json()["title"] == "Lagos roads"

    history = client.get(f"/api/metadata/{record['id']}/history", headers=CREATOR)
    actions = {e["action_type"] for e in history.json()}
    assert actions == {"CreateRecord", "UpdateField"}

    denied = client.delete(f"/api/metadata/{record['id']}", headers=OUTSIDER)
    assert denied.status_code == 404
    deleted = client.delete(f"/api/metadata/{record['id']}", headers=CREATOR)
    assert deleted.status_code == 204


def test_form_defaults_and_quality(client: testclient.TestClient) -> None:
    defaults = client.get("/api/metadata/form/defaults").json()
    assert defaults["steps"][0] == "general"
    assert defaults["form"]["contact"]["metadata_standard"] == "ISO 19115"

    score = client.post("/api/metadata/quality", json={"general": {"title": "Roads"}})
    assert score.status_code == 200
    assert score.json()["score"] == 15


def test_status_counts_cover_every_status(client: testclient.TestClient) -> None:
    _create(client)
    counts = client.get("/api/metadata/status-counts", headers=CREATOR).json()
    assert len(counts) == 7
    assert counts["Draft"] == 1


def test_workflow_submit_reject_resubmit(client: testclient.TestClient) -> None:
    record_id = _create(client)["id"]

    submitted = client.post(f"/api/workflow/{record_id}/submit", headers=CREATOR)
    assert submitted.status_code == 200
    assert submitted.json()["status"] == "Pending Validation"

    queue = client.get("/api/workflow/pending", headers=OFFICER).json()
    assert [r["id"] for r in queue["items"]] == [record_id]

    blank = client.post(
        f"/api/workflow/{record_id}/reject", json={"reason": "  "}, headers=OFFICER
    )
    assert blank.status_code == 422
    rejected = client.post(
        f"/api/workflow/{record_id}/reject",
        json={"reason": "Bounding box does not cover the dataset"},
        headers=OFFICER,
    )
    assert rejected.json()["status"] == "Needs Revision"
    assert rejected.json()["rejection_reason"] == (
        "Bounding box does not cover the dataset"
    )

    revision = client.get("/api/workflow/needs-revision", headers=CREATOR).json()
    assert [r["id"] for r in revision] == [record_id]
    resubmitted = client.post(f"/api/workflow/{record_id}/resubmit", headers=CREATOR)
    assert resubmitted.json()["status"] == "Pending Validation"


def test_workflow_approve_and_publish(client: testclient.TestClient) -> None:
    record_id = _create(client)["id"]
    client.post(f"/api/workflow/{record_id}/submit", headers=CREATOR)

    approved = client.post(
        f"/api/workflow/{record_id}/approve",
        json={"notes": "Looks good", "publish": True},
        headers=OFFICER,
    )
    assert approved.status_code == 200
    assert approved.json()["status"] == "Published"
    assert approved.json()["validation_notes"] == "Looks good"
    assert client.get(f"/api/metadata/{record_id}").status_code == 200


def test_workflow_errors(client: testclient.TestClient) -> None:
    record_id = _create(client)["id"]
    illegal = client.post(f"/api/workflow/{record_id}/approve", headers=OFFICER)
    assert illegal.status_code == 409
    hidden = client.post(f"/api/workflow/{record_id}/submit", headers=OUTSIDER)
    assert hidden.status_code == 404
    colleague = client.post(
        f"/api/workflow/{record_id}/submit", headers={"X-User-Id": "colleague"}
    )
    assert colleague.status_code == 403
    missing = client.post("/api/workflow/rec-missing/submit", headers=CREATOR)
    assert missing.status_code == 404


def test_allowed_actions_endpoint(client: testclient.TestClient) -> None:
    record_id = _create(client)["id"]
    client.post(f"/api/workflow/{record_id}/submit", headers=CREATOR)
    response = client.get(f"/api/workflow/{record_id}/actions", headers=OFFICER)
    assert response.json() == {
        "record_id": record_id,
        "status": "Pending Validation",
        "actions": ["approve", "reject"],
    }


def test_pending_queue_rejects_invalid_paging(
    client: testclient.TestClient,
) -> None:
    response = client.get(
        "/api/workflow/pending", params={"page": 0}, headers=OFFICER
    )
    assert response.status_code == 422
    too_large = client.get(
        "/api/workflow/pending", params={"page_size": 101}, headers=OFFICER
    )
    assert too_large.status_code == 422
