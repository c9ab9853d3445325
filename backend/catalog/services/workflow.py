"""Metadata record workflow state machine.

The legal moves are listed in TRANSITIONS, keyed by (current status, action).
Anything not in the table raises TransitionNotAllowedError and leaves the
record untouched::

    Draft              --submit-->   Pending Validation   (owner)
    Needs Revision     --resubmit--> Pending Validation   (owner)
    Pending Validation --approve-->  Approved | Published (approver)
    Pending Validation --reject-->   Needs Revision       (approver)
    Approved           --publish-->  Published            (publisher)
    Published          --archive-->  Archived             (manager)

"Rejected" is a recognised status with no outgoing moves.

Each call re-checks the caller's capability against the repositories, stores
the new status, appends a change log entry and an audit entry, and notifies
the people who have to act next. There is no version column, so two
concurrent approvals of the same record can both succeed.
"""

from __future__ import annotations

import dataclasses
import logging
import uuid
from typing import TYPE_CHECKING, Literal

from catalog.core import errors
from catalog.db import models as db_models
from catalog.db import records as record_db
from catalog.services import audit, notifications, permissions

if TYPE_CHECKING:
    from catalog.db import database

logger = logging.getLogger(__name__)

WorkflowAction = Literal[
    "submit", "resubmit", "approve", "reject", "publish", "archive"
]
Guard = Literal["owner", "approver", "publisher", "manager"]


@dataclasses.dataclass(frozen=True)
class Transition:
    """One legal status change and who may trigger it."""

    source: db_models.MetadataStatus
    action: WorkflowAction
    target: db_models.MetadataStatus
    guard: Guard
    change_type: db_models.ChangeActionType


TRANSITIONS: dict[tuple[str, str], Transition] = {
    (t.source, t.action): t
    for t in (
        Transition(
            "Draft", "submit", "Pending Validation", "owner", "SubmittedForValidation"
        ),
        Transition(
            "Needs Revision",
            "resubmit",
            "Pending Validation",
            "owner",
            "RevisionSubmitted",
        ),
        Transition(
            "Pending Validation", "approve", "Approved", "approver", "ApprovedRecord"
        ),
        Transition(
            "Pending Validation",
            "reject",
            "Needs Revision",
            "approver",
            "RejectedRecord",
        ),
        Transition("Approved", "publish", "Published", "publisher", "StatusChange"),
        Transition("Published", "archive", "Archived", "manager", "StatusChange"),
    )
}


def resolve_transition(
    status: db_models.MetadataStatus, action: str
) -> Transition:
    """Look up the transition for a status and action.

    Raises:
        TransitionNotAllowedError: If the pair is not in the table.
    """
    transition = TRANSITIONS.get((status, action))
    if transition is None:
        raise errors.TransitionNotAllowedError(
            f"Cannot {action} a record with status '{status}'"
        )
    return transition


class WorkflowService:
    """Applies workflow transitions to stored metadata records."""

    def __init__(
        self, repos: database.Repositories, max_page_size: int = 100
    ) -> None:
        self.repos = repos
        self.max_page_size = max_page_size
        self.permissions = permissions.PermissionChecker(repos)
        self.notifications = notifications.NotificationService(repos)
        self.audit = audit.AuditService(repos)

    def submit(self, record_id: str, user_id: str) -> db_models.MetadataRecord:
        """Send a Draft to validation. Only the owner may submit."""
        return self._apply(record_id, user_id, "submit")

    def resubmit(self, record_id: str, user_id: str) -> db_models.MetadataRecord:
        """Send a revised record back to validation."""
        return self._apply(record_id, user_id, "resubmit")

    def approve(
        self,
        record_id: str,
        user_id: str,
        notes: str | None = None,
        publish: bool = False,
    ) -> db_models.MetadataRecord:
        """Approve a pending record, publishing it at once when ``publish``."""
        return self._apply(
            record_id, user_id, "approve", comment=notes, publish=publish
        )

    def reject(
        self, record_id: str, user_id: str, reason: str | None
    ) -> db_models.MetadataRecord:
        """Send a pending record back to its owner for revision.

        Raises:
            ValidationError: If the reason is empty or whitespace only. This
                is checked before the record is loaded.
        """
        if reason is None or not reason.strip():
            raise errors.ValidationError("A rejection reason is required")
        return self._apply(record_id, user_id, "reject", comment=reason.strip())

    def publish(self, record_id: str, user_id: str) -> db_models.MetadataRecord:
        return self._apply(record_id, user_id, "publish")

    def archive(self, record_id: str, user_id: str) -> db_models.MetadataRecord:
        return self._apply(record_id, user_id, "archive")

    def allowed_actions(
        self, record: db_models.MetadataRecord, user_id: str | None
    ) -> list[WorkflowAction]:
        """Actions the user could perform on the record right now."""
        return [
            t.action
            for t in TRANSITIONS.values()
            if t.source == record.status and self._passes(t.guard, record, user_id)
        ]

    def pending_queue(
        self, user_id: str, page: int = 1, page_size: int = 10
    ) -> db_models.Page[db_models.MetadataRecord]:
        """Records awaiting validation that the user is allowed to decide on.

        Raises:
            ValidationError: If page is below 1 or page_size is outside
                1 to max_page_size.
        """
        if page < 1:
            raise errors.ValidationError("page must be at least 1")
        if not 1 <= page_size <= self.max_page_size:
            raise errors.ValidationError(
                f"page_size must be between 1 and {self.max_page_size}"
            )
        query = record_db.RecordQuery(
            statuses=("Pending Validation",),
            sort_by="updated_at",
            sort_order="asc",
            page=page,
            page_size=page_size,
        )
        if not self.permissions.has_permission(user_id, "approve", "metadata"):
            officer_of = tuple(
                m.organization_id
                for m in self.repos.memberships.for_user(user_id)
                if m.role == "Node Officer"
            )
            if not officer_of:
                return db_models.Page(items=[], total=0, page=page, page_size=page_size)
            query.organization_ids = officer_of
        return self.repos.records.search(query)

    def needs_revision(self, user_id: str) -> list[db_models.MetadataRecord]:
        """The user's own records that were sent back for revision."""
        return self.repos.records.find(
            record_db.RecordQuery(
                statuses=("Needs Revision",), creator_user_id=user_id
            )
        )

    def _apply(
        self,
        record_id: str,
        user_id: str,
        action: WorkflowAction,
        comment: str | None = None,
        publish: bool = False,
    ) -> db_models.MetadataRecord:
        record = self.repos.records.get(record_id)
        if record is None or not self.permissions.can_view_record(user_id, record):
            raise errors.NotFoundError("Metadata record not found")

        transition = resolve_transition(record.status, action)
        if not self._passes(transition.guard, record, user_id):
            raise errors.PermissionDeniedError(
                f"You are not allowed to {action} this record"
            )

        target = transition.target
        if action == "approve" and publish:
            target = "Published"
        now = db_models.utcnow()
        changes: dict[str, object] = {"status": target, "updated_at": now}
        if action == "approve":
            changes["validation_notes"] = comment
            changes["rejection_reason"] = None
        elif action == "reject":
            changes["rejection_reason"] = comment
        if target == "Published":
            changes["publication_date"] = now
        updated = dataclasses.replace(record, **changes)  # type: ignore[arg-type]
        self.repos.records.add(updated)

        self.repos.change_log.add(
            db_models.ChangeLogEntry(
                id=str(uuid.uuid4()),
                record_id=record.id,
                user_id=user_id,
                action_type=transition.change_type,
                field_name="status",
                old_value=record.status,
                new_value=target,
                comment=comment,
            )
        )
        self.audit.record(
            user_id,
            "MetadataWorkflow",
            f"metadata.{action}",
            target_type="MetadataRecord",
            target_id=record.id,
            details={"from": record.status, "to": target},
        )
        self._notify(updated, user_id, action)
        logger.info(
            "Record %s moved %s -> %s by %s", record.id, record.status, target, user_id
        )
        return updated

    def _passes(
        self, guard: Guard, record: db_models.MetadataRecord, user_id: str | None
    ) -> bool:
        if user_id is None:
            return False
        if guard == "owner":
            return record.creator_user_id == user_id
        if guard == "approver":
            return self.permissions.can_approve(user_id, record.organization_id)
        if guard == "publisher":
            return self.permissions.can_publish(user_id, record.organization_id)
        return self.permissions.can_manage_metadata(user_id, record.organization_id)

    def _notify(
        self, record: db_models.MetadataRecord, actor_id: str, action: WorkflowAction
    ) -> None:
        link = f"/metadata/{record.id}"
        if action in ("submit", "resubmit"):
            if record.organization_id is None:
                return
            for membership in self.repos.memberships.for_organization(
                record.organization_id
            ):
                if membership.role != "Node Officer" or membership.user_id == actor_id:
                    continue
                self.notifications.notify(
                    membership.user_id,
                    "MetadataStatusChange",
                    "Metadata awaiting validation",
                    f'"{record.title}" was submitted for validation.',
                    link=link,
                    organization_id=record.organization_id,
                )
            return

        if record.creator_user_id == actor_id:
            return
        if action == "reject":
            message = (
                f'"{record.title}" needs revision: {record.rejection_reason}'
            )
        else:
            message = f'"{record.title}" is now {record.status}.'
        self.notifications.notify(
            record.creator_user_id,
            "MetadataStatusChange",
            f"Metadata {record.status.lower()}",
            message,
            link=link,
            priority="high" if action == "reject" else "normal",
            organization_id=record.organization_id,
        )
