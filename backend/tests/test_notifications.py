"""Tests for the per-user notification inbox."""

from __future__ import annotations

import datetime
from typing import TYPE_CHECKING

import pytest

from catalog.core import errors
from catalog.db import models as db_models
from catalog.services import notifications

if TYPE_CHECKING:
    from catalog.db import database

T0 = datetime.datetime(2024, 3, 1, tzinfo=datetime.UTC)


def _add(
    repos: database.Repositories,
    notification_id: str,
    user_id: str = "creator",
    minutes: int = 0,
    priority: db_models.NotificationPriority = "normal",
) -> db_models.Notification:
    return repos.notifications.add(
        db_models.Notification(
            id=notification_id,
            user_id=user_id,
            type="MetadataStatusChange",
            title=f"Notice {notification_id}",
            message="Record updated",
            priority=priority,
            created_at=T0 + datetime.timedelta(minutes=minutes),
        )
    )


def test_notify_creates_unread_notification(repos: database.Repositories) -> None:
    service = notifications.NotificationService(repos)
    notice = service.notify(
        "creator", "SystemAlert", "Maintenance", "Down at midnight", priority="high"
    )
    assert notice.is_read is False
    assert repos.notifications.get(notice.id) == notice


def test_list_newest_first_and_unread_filter(repos: database.Repositories) -> None:
    _add(repos, "n1", minutes=0)
    _add(repos, "n2", minutes=5)
    _add(repos, "n3", minutes=10)
    _add(repos, "other", user_id="officer")
    service = notifications.NotificationService(repos)
    service.mark_read("creator", "n3")

    page = service.list_for_user("creator")
    assert [n.id for n in page.items] == ["n3", "n2", "n1"]
    unread = service.list_for_user("creator", unread_only=True)
    assert [n.id for n in unread.items] == ["n2", "n1"]


def test_counts(repos: database.Repositories) -> None:
    _add(repos, "n1", priority="high")
    _add(repos, "n2", priority="high", minutes=1)
    _add(repos, "n3", minutes=2)
    service = notifications.NotificationService(repos)
    service.mark_read("creator", "n1")
    counts = service.counts("creator")
    assert (counts.total, counts.unread, counts.high_priority_unread) == (3, 2, 1)


def test_mark_all_read_returns_changed_count(repos: database.Repositories) -> None:
    _add(repos, "n1")
    _add(repos, "n2", minutes=1)
    service = notifications.NotificationService(repos)
    assert service.mark_all_read("creator") == 2
    assert service.mark_all_read("creator") == 0


def test_other_users_notifications_are_not_found(
    repos: database.Repositories,
) -> None:
    _add(repos, "n1", user_id="officer")
    service = notifications.NotificationService(repos)
    with pytest.raises(errors.NotFoundError):
        service.mark_read("creator", "n1")
    with pytest.raises(errors.NotFoundError):
        service.delete("creator", "n1")
    service.delete("officer", "n1")
    assert repos.notifications.get("n1") is None
