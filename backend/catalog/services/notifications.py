"""Creating, listing and acknowledging user notifications."""

from __future__ import annotations

import dataclasses
import uuid
from typing import TYPE_CHECKING

from catalog.core import errors
from catalog.db import models as db_models

if TYPE_CHECKING:
    from catalog.db import database


@dataclasses.dataclass
class NotificationCounts:
    total: int
    unread: int
    high_priority_unread: int


class NotificationService:
    """Notification operations scoped to the owning user."""

    def __init__(self, repos: database.Repositories) -> None:
        self.repos = repos

    def notify(
        self,
        user_id: str,
        type_: db_models.NotificationType,
        title: str,
        message: str,
        link: str | None = None,
        priority: db_models.NotificationPriority = "normal",
        organization_id: str | None = None,
    ) -> db_models.Notification:
        """Deliver a new unread notification to a user."""
        return self.repos.notifications.add(
            db_models.Notification(
                id=str(uuid.uuid4()),
                user_id=user_id,
                type=type_,
                title=title,
                message=message,
                link=link,
                priority=priority,
                organization_id=organization_id,
            )
        )

    def list_for_user(
        self,
        user_id: str,
        unread_only: bool = False,
        page: int = 1,
        page_size: int = 10,
    ) -> db_models.Page[db_models.Notification]:
        if page < 1 or page_size < 1:
            raise errors.ValidationError("page and page_size must be positive")
        items = self.repos.notifications.for_user(user_id, unread_only=unread_only)
        return db_models.paginate(items, page, page_size)

    def counts(self, user_id: str) -> NotificationCounts:
        items = self.repos.notifications.for_user(user_id)
        unread = [n for n in items if not n.is_read]
        return NotificationCounts(
            total=len(items),
            unread=len(unread),
            high_priority_unread=sum(1 for n in unread if n.priority == "high"),
        )

    def mark_read(self, user_id: str, notification_id: str) -> db_models.Notification:
        notification = self._owned(user_id, notification_id)
        notification.is_read = True
        return self.repos.notifications.add(notification)

    def mark_all_read(self, user_id: str) -> int:
        return self.repos.notifications.mark_all_read(user_id)

    def delete(self, user_id: str, notification_id: str) -> None:
        self._owned(user_id, notification_id)
        self.repos.notifications.delete(notification_id)

    def _owned(self, user_id: str, notification_id: str) -> db_models.Notification:
        notification = self.repos.notifications.get(notification_id)
        # Another user's notification is reported as missing.
        if notification is None or notification.user_id != user_id:
            raise errors.NotFoundError("Notification not found")
        return notification
