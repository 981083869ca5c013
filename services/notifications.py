"""
Admin notification service.
"""

import logging
from datetime import UTC, datetime
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import NotFoundError
from infrastructure.database.models import AdminNotification, NotificationType

logger = logging.getLogger(__name__)


def create_notification(
    db: AsyncSession,
    type: NotificationType,
    title: str,
    message: str,
    data: Optional[dict] = None,
) -> AdminNotification:
    """Queue a notification in the caller's transaction."""
    notification = AdminNotification(
        type=type.value,
        title=title,
        message=message,
        data=data,
    )
    db.add(notification)
    logger.info("Admin notification queued: %s", title)
    return notification


async def unread_count(db: AsyncSession) -> int:
    result = await db.execute(
        select(func.count()).select_from(AdminNotification).where(
            AdminNotification.is_read.is_(False)
        )
    )
    return result.scalar() or 0


async def mark_notification_read(db: AsyncSession, notification_id: str) -> AdminNotification:
    notification = await db.get(AdminNotification, notification_id)
    if notification is None:
        raise NotFoundError("Notification not found")
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = datetime.now(UTC)
        await db.commit()
    return notification


async def mark_all_notifications_read(db: AsyncSession) -> int:
    """Mark every unread notification as read. Returns how many changed."""
    result = await db.execute(
        update(AdminNotification)
        .where(AdminNotification.is_read.is_(False))
        .values(is_read=True, read_at=datetime.now(UTC))
    )
    await db.commit()
    return result.rowcount or 0
