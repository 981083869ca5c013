"""
Activity analytics API routes.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps_admin import get_current_admin_user
from api.routes.auth import get_current_user
from api.schemas.analytics import ActivityResponse, AnalyticsDashboardResponse
from infrastructure.database.connection import get_db
from infrastructure.database.models import User
from services.activity import get_analytics_summary, get_user_timeline

router = APIRouter(prefix="/analytics", tags=["Analytics"])


@router.get("/dashboard", response_model=AnalyticsDashboardResponse)
async def get_analytics_dashboard(
    days: int = Query(30, ge=1, le=365),
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    """Activity summary, per-day totals and the most frequent event types."""
    return await get_analytics_summary(db, days)


@router.get("/timeline/{user_id}", response_model=list[ActivityResponse])
async def get_timeline(
    user_id: str,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    return await get_user_timeline(db, user_id, limit, offset)


@router.get("/my-timeline", response_model=list[ActivityResponse])
async def get_my_timeline(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await get_user_timeline(db, current_user.id, limit, offset)
