"""Notification inbox endpoints for the signed-in user."""

import dataclasses
from typing import Any

import fastapi

from catalog.api import deps
from catalog.core import security
from catalog.db import database
from catalog.services import notifications

router = fastapi.APIRouter(prefix="/api/notifications", tags=["notifications"])


def _get_service(
    repos: database.Repositories = fastapi.Depends(deps.get_repositories),  # noqa: B008
) -> notifications.NotificationService:
    return notifications.NotificationService(repos)


@router.get("")
async def list_notifications(
    unread_only: bool = False,
    page: int = 1,
    page_size: int = 10,
    user_id: str = fastapi.Depends(security.get_current_user_id),  # noqa: B008
    service: notifications.NotificationService = fastapi.Depends(_get_service),  # noqa: B008
) -> dict[str, Any]:
    """The caller's notifications, newest first."""
    return service.list_for_user(user_id, unread_only, page, page_size).as_dict()


@router.get("/counts")
async def notification_counts(
    user_id: str = fastapi.Depends(security.get_current_user_id),  # noqa: B008
    service: notifications.NotificationService = fastapi.Depends(_get_service),  # noqa: B008
) -> dict[str, int]:
    return dataclasses.asdict(service.counts(user_id))


@router.post("/read-all")
async def mark_all_read(
    user_id: str = fastapi.Depends(security.get_current_user_id),  # noqa: B008
    service: notifications.NotificationService = fastapi.Depends(_get_service),  # noqa: B008
) -> dict[str, int]:
    return {"updated": service.mark_all_read(user_id)}


@router.post("/{notification_id}/read")
async def mark_read(
    notification_id: str,
    user_id: str = fastapi.Depends(security.get_current_user_id),  # noqa: B008
    service: notifications.NotificationService = fastapi.Depends(_get_service),  # noqa: B008
) -> dict[str, Any]:
    return dataclasses.asdict(service.mark_read(user_id, notification_id))


@router.delete("/{notification_id}", status_code=204)
async def delete_notification(
    notification_id: str,
    user_id: str = fastapi.Depends(security.get_current_user_id),  # noqa: B008
    service: notifications.NotificationService = fastapi.Depends(_get_service),  # noqa: B008
) -> None:
    service.delete(user_id, notification_id)
