"""Metadata record CRUD, visibility rules and catalog search.

Who may do what:

* create: members of the target organization, or holders of
  ``manage:metadata``.
* read: anyone for Published records; otherwise the creator, members of the
  record's organization and metadata managers or approvers.
* update: the creator while the record is Draft or Needs Revision; the
  organization's Node Officer or a metadata manager at any status.
* delete: the creator while the record is Draft; the Node Officer or a
  metadata manager at any status.

Search results for callers without a catalog-wide view are limited to
Published records plus the caller's own.
"""

from __future__ import annotations

import dataclasses
import datetime
import json
import logging
import uuid
from typing import TYPE_CHECKING, Any

from catalog.core import errors
from catalog.db import models as db_models
from catalog.db import records as record_db
from catalog.services import audit, metadata_form, permissions

if TYPE_CHECKING:
    from catalog.db import database

logger = logging.getLogger(__name__)

MAX_QUERY_LENGTH = 200
EDITABLE_BY_OWNER: tuple[str, ...] = ("Draft", "Needs Revision")
SORT_FIELDS: tuple[str, ...] = ("title", "created_at", "updated_at", "status")
TRACKED_FIELDS: tuple[str, ...] = (
    "title",
    "data_type",
    "framework_type",
    "abstract",
    "purpose",
    "keywords",
    "topic_categories",
    "organization_id",
    "thumbnail_url",
    "coordinate_system",
    "file_format",
    "download_url",
    "api_endpoint",
    *record_db.JSON_SECTIONS,
)


@dataclasses.dataclass
class SearchParams:
    """Caller supplied search options before validation."""

    query: str | None = None
    status: str | None = None
    data_type: str | None = None
    framework_type: str | None = None
    organization_id: str | None = None
    keywords: list[str] = dataclasses.field(default_factory=list)
    date_from: datetime.date | None = None
    date_to: datetime.date | None = None
    bbox: db_models.BBox | None = None
    sort_by: str = "updated_at"
    sort_order: str = "desc"
    page: int = 1
    page_size: int = 10


def validate_bbox(bbox: db_models.BBox) -> None:
    """Check a (west, south, east, north) envelope.

    Raises:
        ValidationError: If a latitude is outside [-90, 90], a longitude is
            outside [-180, 180], or the envelope is empty or inverted.
    """
    west, south, east, north = bbox
    if not (-90 <= south <= 90 and -90 <= north <= 90):
        raise errors.ValidationError("Latitude must be between -90 and 90")
    if not (-180 <= west <= 180 and -180 <= east <= 180):
        raise errors.ValidationError("Longitude must be between -180 and 180")
    if north <= south:
        raise errors.ValidationError("North must be greater than south")
    if east <= west:
        raise errors.ValidationError("East must be greater than west")


def _display(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return json.dumps(value, sort_keys=True, default=str)


class MetadataRecordService:
    """Record lifecycle outside the workflow transitions."""

    def __init__(self, repos: database.Repositories, max_page_size: int = 100) -> None:
        self.repos = repos
        self.max_page_size = max_page_size
        self.permissions = permissions.PermissionChecker(repos)
        self.audit = audit.AuditService(repos)

    def create(
        self, user_id: str, form: metadata_form.MetadataForm
    ) -> db_models.MetadataRecord:
        """Store a new Draft owned by ``user_id``.

        Raises:
            ValidationError: If the title or organization is missing or the
                organization does not exist.
            PermissionDeniedError: If the user may not author records for
                that organization.
        """
        payload = metadata_form.to_payload(form)
        self._check_required(payload)
        self._check_can_author(user_id, payload["organization_id"])
        record = db_models.MetadataRecord(
            id=str(uuid.uuid4()),
            creator_user_id=user_id,
            status="Draft",
            **payload,
        )
        self.repos.records.add(record)
        self._log_change(record.id, user_id, "CreateRecord", comment=record.title)
        logger.info("Created metadata record %s for %s", record.id, user_id)
        return record

    def get(self, record_id: str, user_id: str | None) -> db_models.MetadataRecord:
        """Fetch a record the caller is allowed to see.

        Raises:
            NotFoundError: If the record is missing or hidden from the caller.
        """
        record = self.repos.records.get(record_id)
        if record is None or not self.permissions.can_view_record(user_id, record):
            raise errors.NotFoundError("Metadata record not found")
        return record

    def update(
        self, record_id: str, user_id: str, form: metadata_form.MetadataForm
    ) -> db_models.MetadataRecord:
        """Replace a record's descriptive content.

        Status, owner and workflow notes are kept. Each changed top-level
        field or section gets an UpdateField change log entry.
        """
        record = self.get(record_id, user_id)
        if not self._can_edit(record, user_id):
            raise errors.PermissionDeniedError(
                f"You cannot edit a record with status '{record.status}'"
                if record.creator_user_id == user_id
                else "You are not allowed to edit this record"
            )
        payload = metadata_form.to_payload(form)
        self._check_required(payload)
        if payload["organization_id"] != record.organization_id:
            self._check_can_author(user_id, payload["organization_id"])

        updated = dataclasses.replace(
            record, **payload, updated_at=db_models.utcnow()
        )
        self.repos.records.add(updated)
        for name in TRACKED_FIELDS:
            old, new = getattr(record, name), getattr(updated, name)
            if old != new:
                self._log_change(
                    record.id,
                    user_id,
                    "UpdateField",
                    field_name=name,
                    old_value=_display(old),
                    new_value=_display(new),
                )
        return updated

    def delete(self, record_id: str, user_id: str) -> None:
        record = self.get(record_id, user_id)
        is_owner_draft = record.creator_user_id == user_id and record.status == "Draft"
        if not (
            is_owner_draft
            or self.permissions.can_manage_metadata(user_id, record.organization_id)
        ):
            raise errors.PermissionDeniedError(
                "You are not allowed to delete this record"
            )
        self.repos.records.delete(record.id)
        self._log_change(record.id, user_id, "DeleteRecord", comment=record.title)
        self.audit.record(
            user_id,
            "MetadataWorkflow",
            "metadata.delete",
            target_type="MetadataRecord",
            target_id=record.id,
            details={"title": record.title, "status": record.status},
        )

    def search(
        self, user_id: str | None, params: SearchParams
    ) -> db_models.Page[db_models.MetadataRecord]:
        """Filter, sort and paginate the records visible to the caller.

        Raises:
            ValidationError: For an over-long query, bad paging values, an
                unknown sort field or status, or an invalid bounding box.
        """
        return self.repos.records.search(self._build_query(user_id, params))

    def visible_records(
        self, user_id: str | None, bbox: db_models.BBox | None = None
    ) -> list[db_models.MetadataRecord]:
        """Every record the caller may see, optionally within an envelope."""
        if bbox is not None:
            validate_bbox(bbox)
        query = self._visibility(user_id, record_db.RecordQuery(bbox=bbox))
        return self.repos.records.find(query)

    def my_records(
        self, user_id: str, status: str | None = None
    ) -> list[db_models.MetadataRecord]:
        if status is not None and status not in db_models.METADATA_STATUSES:
            raise errors.ValidationError(f"Unknown status: {status}")
        return self.repos.records.find(
            record_db.RecordQuery(
                creator_user_id=user_id,
                statuses=(status,) if status is not None else None,
            )
        )

    def status_counts(self, user_id: str | None) -> dict[str, int]:
        """Number of visible records per status, zero-filled."""
        query = self._visibility(user_id, record_db.RecordQuery())
        counts = self.repos.records.status_counts(query)
        return {status: counts.get(status, 0) for status in db_models.METADATA_STATUSES}

    def history(self, record_id: str, user_id: str) -> list[db_models.ChangeLogEntry]:
        self.get(record_id, user_id)
        return self.repos.change_log.for_record(record_id)

    def _build_query(
        self, user_id: str | None, params: SearchParams
    ) -> record_db.RecordQuery:
        if params.query is not None and len(params.query) > MAX_QUERY_LENGTH:
            raise errors.ValidationError(
                f"Search query must be at most {MAX_QUERY_LENGTH} characters"
            )
        if params.page < 1:
            raise errors.ValidationError("page must be at least 1")
        if not 1 <= params.page_size <= self.max_page_size:
            raise errors.ValidationError(
                f"page_size must be between 1 and {self.max_page_size}"
            )
        if params.sort_by not in SORT_FIELDS:
            raise errors.ValidationError(f"Cannot sort by {params.sort_by}")
        if params.sort_order not in ("asc", "desc"):
            raise errors.ValidationError("sort_order must be 'asc' or 'desc'")
        if params.status is not None and params.status not in (
            db_models.METADATA_STATUSES
        ):
            raise errors.ValidationError(f"Unknown status: {params.status}")
        if params.bbox is not None:
            validate_bbox(params.bbox)

        query = record_db.RecordQuery(
            text=(params.query or "").strip() or None,
            statuses=(params.status,) if params.status is not None else None,
            data_type=params.data_type,
            framework_type=params.framework_type,
            organization_id=params.organization_id,
            keywords=tuple(k for k in params.keywords if k.strip()),
            date_from=params.date_from,
            date_to=params.date_to,
            bbox=params.bbox,
            sort_by=params.sort_by,  # type: ignore[arg-type]
            sort_order=params.sort_order,  # type: ignore[arg-type]
            page=params.page,
            page_size=params.page_size,
        )
        return self._visibility(user_id, query)

    def _visibility(
        self, user_id: str | None, query: record_db.RecordQuery
    ) -> record_db.RecordQuery:
        if not self.permissions.sees_all_records(user_id):
            query.public_only = True
            query.viewer_id = user_id
        return query

    def _can_edit(self, record: db_models.MetadataRecord, user_id: str) -> bool:
        if record.creator_user_id == user_id and record.status in EDITABLE_BY_OWNER:
            return True
        return self.permissions.can_manage_metadata(user_id, record.organization_id)

    def _check_required(self, payload: dict[str, Any]) -> None:
        if not payload["title"].strip():
            raise errors.ValidationError("Title is required")
        org_id = payload["organization_id"]
        if not org_id:
            raise errors.ValidationError("Organization is required")
        if self.repos.organizations.get(org_id) is None:
            raise errors.ValidationError(f"Unknown organization: {org_id}")

    def _check_can_author(self, user_id: str, org_id: str) -> None:
        if not (
            self.permissions.is_member(user_id, org_id)
            or self.permissions.has_permission(user_id, "manage", "metadata")
        ):
            raise errors.PermissionDeniedError(
                "You must belong to the organization to create its metadata"
            )

    def _log_change(
        self,
        record_id: str,
        user_id: str,
        action_type: db_models.ChangeActionType,
        field_name: str | None = None,
        old_value: str | None = None,
        new_value: str | None = None,
        comment: str | None = None,
    ) -> None:
        self.repos.change_log.add(
            db_models.ChangeLogEntry(
                id=str(uuid.uuid4()),
                record_id=record_id,
                user_id=user_id,
                action_type=action_type,
                field_name=field_name,
                old_value=old_value,
                new_value=new_value,
                comment=comment,
            )
        )
