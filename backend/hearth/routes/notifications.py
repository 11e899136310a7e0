"""
Hearth Butler Backend — Notification Routes
=============================================

    GET    /api/notifications              caller's notifications with unread count
    POST   /api/notifications/{id}/read    mark one read
    POST   /api/notifications/read-all     mark every unread one read
    DELETE /api/notifications/{id}         delete
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hearth.database import get_db_session
from hearth.models.enums import NotificationStatus
from hearth.models.user import User
from hearth.routes.deps import AUTH_RESPONSES, get_current_user
from hearth.schemas.common import MessageResponse
from hearth.schemas.notification import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
)
from hearth.services.notification_service import notification_service

router = APIRouter(prefix="/api/notifications", tags=["Notifications"], responses=AUTH_RESPONSES)


@router.get("", response_model=NotificationListResponse, summary="List notifications")
async def list_notifications(
    status: Optional[NotificationStatus] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> NotificationListResponse:
    return await notification_service.list_notifications(
        db, user, status.value if status else None, limit
    )


# Declared before /{notification_id}/read so "read-all" is not parsed as an ID
@router.post("/read-all", response_model=MarkAllReadResponse, summary="Mark all read")
async def mark_all_read(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MarkAllReadResponse:
    return MarkAllReadResponse(updated=await notification_service.mark_all_read(db, user))


@router.post("/{notification_id}/read", response_model=NotificationResponse, summary="Mark read")
async def mark_read(
    notification_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> NotificationResponse:
    notification = await notification_service.mark_read(db, user, notification_id)
    return NotificationResponse.model_validate(notification)


@router.delete("/{notification_id}", response_model=MessageResponse, summary="Delete a notification")
async def delete_notification(
    notification_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await notification_service.delete_notification(db, user, notification_id)
    return MessageResponse(message="Notification deleted")
