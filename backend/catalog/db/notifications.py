"""Notification repositories."""

from __future__ import annotations

import dataclasses
from typing import Any, Protocol

from catalog.db import models as db_models
from catalog.db import postgres


class NotificationRepositoryProtocol(Protocol):
    """Protocol interface for per-user notifications."""

    def add(self, notification: db_models.Notification) -> db_models.Notification: ...

    def get(self, notification_id: str) -> db_models.Notification | None: ...

    def for_user(
        self, user_id: str, unread_only: bool = False
    ) -> list[db_models.Notification]: ...

    def mark_all_read(self, user_id: str) -> int: ...

    def delete(self, notification_id: str) -> bool: ...


class InMemoryNotificationRepository(NotificationRepositoryProtocol):
    """Dictionary-backed notification store."""

    def __init__(self) -> None:
        self._store: dict[str, db_models.Notification] = {}

    def add(self, notification: db_models.Notification) -> db_models.Notification:
        self._store[notification.id] = notification
        return notification

    def get(self, notification_id: str) -> db_models.Notification | None:
        return self._store.get(notification_id)

    def for_user(
        self, user_id: str, unread_only: bool = False
    ) -> list[db_models.Notification]:
        items = [
            n
            for n in self._store.values()
            if n.user_id == user_id and not (unread_only and n.is_read)
        ]
        return sorted(items, key=lambda n: n.created_at, reverse=True)

    def mark_all_read(self, user_id: str) -> int:
        changed = 0
        for notification in self._store.values():
            if notification.user_id == user_id and not notification.is_read:
                notification.is_read = True
                changed += 1
        return changed

    def delete(self, notification_id: str) -> bool:
        return self._store.pop(notification_id, None) is not None


class PostgresNotificationRepository(
    postgres.PostgresRepository, NotificationRepositoryProtocol
):
    """PostgreSQL-backed notification repository."""

    CREATE_TABLE_SQL = """
    CREATE TABLE IF NOT EXISTS notifications (
      id TEXT PRIMARY KEY,
      user_id TEXT NOT NULL,
      type TEXT NOT NULL,
      title TEXT NOT NULL,
      message TEXT NOT NULL,
      link TEXT,
      is_read BOOLEAN NOT NULL DEFAULT FALSE,
      priority TEXT NOT NULL DEFAULT 'normal',
      organization_id TEXT,
      created_at TIMESTAMPTZ DEFAULT now()
    );
    CREATE INDEX IF NOT EXISTS notifications_user_idx ON notifications (user_id);
    """

    def add(self, notification: db_models.Notification) -> db_models.Notification:
        self._execute(
            """
            INSERT INTO notifications (
                id, user_id, type, title, message, link, is_read, priority,
                organization_id, created_at
            ) VALUES (%(id)s, %(user_id)s, %(type)s, %(title)s, %(message)s,
                %(link)s, %(is_read)s, %(priority)s, %(organization_id)s,
                %(created_at)s)
            ON CONFLICT (id) DO UPDATE SET is_read = EXCLUDED.is_read;
            """,
            dataclasses.asdict(notification),
        )
        return notification

    def get(self, notification_id: str) -> db_models.Notification | None:
        row = self._fetch_one(
            "SELECT * FROM notifications WHERE id = %s", (notification_id,)
        )
        return self._from_row(row) if row is not None else None

    def for_user(
        self, user_id: str, unread_only: bool = False
    ) -> list[db_models.Notification]:
        sql = "SELECT * FROM notifications WHERE user_id = %s"
        if unread_only:
            sql += " AND NOT is_read"
        rows = self._fetch_all(sql + " ORDER BY created_at DESC", (user_id,))
        return [self._from_row(row) for row in rows]

    def mark_all_read(self, user_id: str) -> int:
        return self._execute(
            "UPDATE notifications SET is_read = TRUE "
            "WHERE user_id = %s AND NOT is_read",
            (user_id,),
        )

    def delete(self, notification_id: str) -> bool:
        deleted = self._execute(
            "DELETE FROM notifications WHERE id = %s", (notification_id,)
        )
        return deleted > 0

    @staticmethod
    def _from_row(row: dict[str, Any]) -> db_models.Notification:
        return db_models.Notification(**row)
