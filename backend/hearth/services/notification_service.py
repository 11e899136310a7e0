"""
Hearth Butler Backend — Notification Service
==============================================

What:  Creates and manages in-app notifications for family members.
Who:   Budget alerts, device sync failures and report processing call
       `notify()`; the notifications routes expose the inbox.

Dedup: a notification whose dedup_key matches an unread one created in
the last 24 hours is dropped, so a failing device does not flood the inbox.
"""

import logging
import uuid
from datetime import timedelta
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hearth.exceptions import NotFoundError, PermissionDeniedError
from hearth.models.enums import NotificationPriority, NotificationStatus
from hearth.models.mixins import utcnow
from hearth.models.notification import Notification
from hearth.models.user import User
from hearth.schemas.notification import NotificationListResponse, NotificationResponse
from hearth.services.family_service import family_service

logger = logging.getLogger(__name__)

DEDUP_WINDOW = timedelta(hours=24)


class NotificationService:

    async def notify(
        self,
        db: AsyncSession,
        member_id: uuid.UUID,
        type: str,
        title: str,
        content: str,
        priority: str = NotificationPriority.MEDIUM.value,
        dedup_key: Optional[str] = None,
        action_url: Optional[str] = None,
    ) -> Optional[Notification]:
        """Stores an in-app notification. Returns None when deduplicated."""
        if dedup_key:
            result = await db.execute(
                select(Notification.id).where(
                    Notification.member_id == member_id,
                    Notification.dedup_key == dedup_key,
                    Notification.status != NotificationStatus.READ.value,
                    Notification.deleted_at.is_(None),
                    Notification.created_at >= utcnow() - DEDUP_WINDOW,
                )
            )
            if result.scalars().first() is not None:
                logger.debug("Notification %s deduplicated for member %s", dedup_key, member_id)
                return None

        now = utcnow()
        notification = Notification(
            member_id=member_id,
            type=type,
            title=title[:200],
            content=content,
            priority=priority,
            channels=["IN_APP"],
            status=NotificationStatus.SENT.value,
            sent_at=now,
            action_url=action_url,
            dedup_key=dedup_key,
        )
        db.add(notification)
        await db.flush()
        logger.info("Notification %s (%s) sent to member %s", notification.id, type, member_id)
        return notification

    async def list_notifications(
        self,
        db: AsyncSession,
        user: User,
        status: Optional[str] = None,
        limit: int = 50,
    ) -> NotificationListResponse:
        """Inbox for every member record linked to the caller."""
        member_ids = await family_service.linked_member_ids(db, user)
        if not member_ids:
            return NotificationListResponse(notifications=[], unread_count=0)

        base = [Notification.member_id.in_(member_ids), Notification.deleted_at.is_(None)]
        stmt = select(Notification).where(*base)
        if status:
            stmt = stmt.where(Notification.status == status)
        result = await db.execute(stmt.order_by(Notification.created_at.desc()).limit(limit))
        notifications = list(result.scalars().all())

        count_result = await db.execute(
            select(func.count(Notification.id)).where(
                *base, Notification.status != NotificationStatus.READ.value
            )
        )
        return NotificationListResponse(
            notifications=[NotificationResponse.model_validate(n) for n in notifications],
            unread_count=count_result.scalar() or 0,
        )

    async def _get_owned(
        self, db: AsyncSession, user: User, notification_id: uuid.UUID
    ) -> Notification:
        result = await db.execute(
            select(Notification).where(
                Notification.id == notification_id,
                Notification.deleted_at.is_(None),
            )
        )
        notification = result.scalar_one_or_none()
        if notification is None:
            raise NotFoundError(resource="notification", resource_id=str(notification_id))

        member_ids = await family_service.linked_member_ids(db, user)
        if notification.member_id not in member_ids:
            raise PermissionDeniedError(message="This notification belongs to someone else")
        return notification

    async def mark_read(
        self, db: AsyncSession, user: User, notification_id: uuid.UUID
    ) -> Notification:
        notification = await self._get_owned(db, user, notification_id)
        if notification.status != NotificationStatus.READ.value:
            notification.status = NotificationStatus.READ.value
            notification.read_at = utcnow()
            await db.flush()
        return notification

    async def mark_all_read(self, db: AsyncSession, user: User) -> int:
        member_ids = await family_service.linked_member_ids(db, user)
        if not member_ids:
            return 0
        result = await db.execute(
            update(Notification)
            .where(
                Notification.member_id.in_(member_ids),
                Notification.status != NotificationStatus.READ.value,
                Notification.deleted_at.is_(None),
            )
            .values(status=NotificationStatus.READ.value, read_at=utcnow())
        )
        return result.rowcount or 0

    async def delete_notification(
        self, db: AsyncSession, user: User, notification_id: uuid.UUID
    ) -> None:
        notification = await self._get_owned(db, user, notification_id)
        notification.deleted_at = utcnow()
        await db.flush()


notification_service = NotificationService()
