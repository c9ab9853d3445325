"""Per-user dashboard statistics."""

from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING, Any

from catalog.db import models as db_models
from catalog.db import records as record_db
from catalog.services import metadata_records, notifications, permissions

if TYPE_CHECKING:
    from catalog.db import database

RECENT_LIMIT = 5


def dashboard(repos: database.Repositories, user_id: str) -> dict[str, Any]:
    """Collect the numbers shown on the signed-in user's dashboard.

    Returns:
        Dictionary with the user's own records by status, the validation
        queue size for the organizations the user officers (every
        organization for global approvers) in total and per organization,
        unread notification count, and the most recently updated records
        the user can see.
    """
    checker = permissions.PermissionChecker(repos)
    record_service = metadata_records.MetadataRecordService(repos)

    own_counts = repos.records.status_counts(
        record_db.RecordQuery(creator_user_id=user_id)
    )

    officer_of = [
        m.organization_id
        for m in repos.memberships.for_user(user_id)
        if m.role == "Node Officer"
    ]
    pending_query = record_db.RecordQuery(statuses=("Pending Validation",))
    if checker.has_permission(user_id, "approve", "metadata"):
        queue_org_ids = [org.id for org in repos.organizations.all()]
        pending = repos.records.find(pending_query)
    elif officer_of:
        queue_org_ids = list(officer_of)
        pending_query.organization_ids = tuple(officer_of)
        pending = repos.records.find(pending_query)
    else:
        queue_org_ids = []
        pending = []
    pending_by_org: dict[str, int] = dict.fromkeys(queue_org_ids, 0)
    for record in pending:
        if record.organization_id is not None:
            pending_by_org[record.organization_id] = (
                pending_by_org.get(record.organization_id, 0) + 1
            )

    recent = record_service.search(
        user_id,
        metadata_records.SearchParams(
            sort_by="updated_at", sort_order="desc", page_size=RECENT_LIMIT
        ),
    )
    counts = notifications.NotificationService(repos).counts(user_id)

    return {
        "user_id": user_id,
        "role": checker.global_role(user_id),
        "my_records": {
            status: own_counts.get(status, 0) for status in db_models.METADATA_STATUSES
        },
        "my_records_total": sum(own_counts.values()),
        "pending_validation": len(pending),
        "pending_validation_by_organization": pending_by_org,
        "managed_organization_ids": officer_of,
        "notifications": dataclasses.asdict(counts),
        "recent_records": [
            {
                "id": record.id,
                "title": record.title,
                "status": record.status,
                "organization_id": record.organization_id,
                "updated_at": record.updated_at,
            }
            for record in recent.items
        ],
    }
