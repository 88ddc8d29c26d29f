# src/chorus_chat/api/v1/endpoints/notifications.py
"""Notification endpoints for the Chorus Chat API."""

from __future__ import annotations

from fastapi import APIRouter, Query

from chorus_chat.core.errors import NotFound
from chorus_chat.models import Notification
from chorus_chat.schemas.chat import NotificationResponse

from ..dependencies import ChatRepositoryDep, CurrentUserDep

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationResponse])
async def list_notifications(
    current_user: CurrentUserDep,
    repository: ChatRepositoryDep,
    limit: int = Query(50, ge=1, le=100),
) -> list[Notification]:
    """Get the current user's notifications, newest first."""
    return repository.list_notifications(current_user.id, limit)


@router.put("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: int,
    current_user: CurrentUserDep,
    repository: ChatRepositoryDep,
) -> Notification:
    notification = repository.get_notification(notification_id)
    # Other users' notifications are reported as missing.
    if notification is None or notification.recipient_id != current_user.id:
        raise NotFound("Notification not found")
    return repository.mark_notification_read(notification)
