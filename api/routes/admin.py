"""
Admin back-office API routes: dashboard, revenue, notifications, Guild
overview and manual job triggers.
"""

import logging
from datetime import UTC, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from adapters.guild import guild_adapter
from api.deps_admin import get_current_admin_user, get_current_super_admin_user
from api.schemas.admin import (
    AdminUserItem,
    DashboardResponse,
    JobRunResponse,
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
    RevenueResponse,
)
from api.utils import paginate, total_pages
from infrastructure.database.connection import get_db
from infrastructure.database.models import AdminNotification, User, UserRole
from services import notifications as notification_service
from services.dashboard import get_dashboard_stats, get_revenue_by_month
from services.lifecycle import run_lifecycle
from services.reminders import run_all_reminders

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    """Headline numbers with month-over-month growth and recent activity."""
    return await get_dashboard_stats(db)


@router.get("/revenue", response_model=RevenueResponse)
async def get_revenue(
    year: Optional[int] = Query(None, ge=2000, le=2100),
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    return await get_revenue_by_month(db, year or datetime.now(UTC).year)


# ============================================================================
# Notifications
# ============================================================================


@router.get("/notifications", response_model=NotificationListResponse)
async def list_notifications(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    unread_only: bool = Query(False),
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    query = select(AdminNotification)
    if unread_only:
        query = query.where(AdminNotification.is_read.is_(False))
    query = query.order_by(AdminNotification.created_at.desc())

    items, total = await paginate(db, query, page, page_size)
    return {
        "items": items,
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": total_pages(total, page_size),
        "unread_count": await notification_service.unread_count(db),
    }


@router.put("/notifications/read-all", response_model=MarkAllReadResponse)
async def mark_all_notifications_read(
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    updated = await notification_service.mark_all_notifications_read(db)
    return {"message": "All notifications marked as read", "updated": updated}


@router.put("/notifications/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: str,
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    return await notification_service.mark_notification_read(db, notification_id)


# ============================================================================
# Admin users
# ============================================================================


@router.get("/users", response_model=list[AdminUserItem])
async def list_admin_users(
    admin_user: User = Depends(get_current_super_admin_user),
    db: AsyncSession = Depends(get_db),
):
    """Back-office accounts (ADMIN and SUPER_ADMIN)."""
    result = await db.execute(
        select(User)
        .where(User.role.in_([UserRole.ADMIN.value, UserRole.SUPER_ADMIN.value]))
        .order_by(User.created_at)
    )
    return list(result.scalars().all())


# ============================================================================
# Guild
# ============================================================================


@router.get("/guild/health")
async def guild_health(admin_user: User = Depends(get_current_admin_user)) -> dict:
    """Guild API reachability. Reports ``unhealthy`` instead of failing."""
    return await guild_adapter.health_check()


@router.get("/guild/dashboard")
async def guild_dashboard(admin_user: User = Depends(get_current_admin_user)) -> dict:
    """Platform-wide statistics from Guild."""
    return await guild_adapter.get_dashboard_stats()


# ============================================================================
# Jobs
# ============================================================================


@router.post("/reminders/trigger", response_model=JobRunResponse)
async def trigger_reminders(
    admin_user: User = Depends(get_current_super_admin_user),
    db: AsyncSession = Depends(get_db),
):
    logger.info("Reminder job triggered by %s", admin_user.email)
    result = await run_all_reminders(db)
    return {"message": "Reminder job completed", "result": result}


@router.post("/lifecycle/run", response_model=JobRunResponse)
async def trigger_lifecycle(
    admin_user: User = Depends(get_current_super_admin_user),
    db: AsyncSession = Depends(get_db),
):
    logger.info("Lifecycle sweep triggered by %s", admin_user.email)
    result = await run_lifecycle(db)
    return {"message": "Lifecycle sweep completed", "result": result}
