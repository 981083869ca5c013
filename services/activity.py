"""
Activity logging and analytics.

Activities are the business audit trail: sign-ups, logins, payments and
other events worth charting. ``log_activity`` adds the row to the caller's
session; it is persisted with the caller's commit.
"""

import logging
from datetime import UTC, datetime, timedelta
from typing import Any, Optional

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import Request

from core.security.client_ip import get_real_ip
from infrastructure.database.models import Activity, ActivityType

logger = logging.getLogger(__name__)

_MOBILE_MARKERS = ("mobile", "android", "iphone", "ipad")

# Order matters: Edge and Opera user agents also contain "Chrome"
_BROWSERS = (
    ("edg/", "Edge"),
    ("opr/", "Opera"),
    ("firefox", "Firefox"),
    ("chrome", "Chrome"),
    ("safari", "Safari"),
)

_OPERATING_SYSTEMS = (
    ("windows", "Windows"),
    ("android", "Android"),
    ("iphone", "iOS"),
    ("ipad", "iOS"),
    ("mac os", "macOS"),
    ("linux", "Linux"),
)


def parse_device_info(user_agent: Optional[str]) -> dict[str, Any]:
    """Rough browser/OS detection from a User-Agent header."""
    ua = (user_agent or "").lower()
    browser = next((name for marker, name in _BROWSERS if marker in ua), "Unknown")
    os_name = next((name for marker, name in _OPERATING_SYSTEMS if marker in ua), "Unknown")
    return {
        "is_mobile": any(marker in ua for marker in _MOBILE_MARKERS),
        "browser": browser,
        "os": os_name,
    }


def log_activity(
    db: AsyncSession,
    type: ActivityType,
    description: str,
    user_id: Optional[str] = None,
    request: Optional[Request] = None,
    metadata: Optional[dict] = None,
    success: bool = True,
    error_message: Optional[str] = None,
    revenue: Optional[float] = None,
    duration_ms: Optional[int] = None,
) -> Activity:
    """Add an activity row to the session. The caller commits."""
    activity = Activity(
        type=type.value,
        description=description,
        user_id=user_id,
        extra_data=metadata,
        success=success,
        error_message=error_message,
        revenue=revenue,
        duration_ms=duration_ms,
    )

    if request is not None:
        user_agent = request.headers.get("user-agent")
        device_info = parse_device_info(user_agent)
        # Country headers set by Cloudflare or the edge proxy
        country = request.headers.get("cf-ipcountry") or request.headers.get("x-country-code")
        if country:
            device_info["country"] = country
        activity.ip_address = get_real_ip(request)
        activity.user_agent = user_agent[:500] if user_agent else None
        activity.referrer = (request.headers.get("referer") or "")[:500] or None
        activity.device_info = device_info

    db.add(activity)
    return activity


async def get_analytics_summary(db: AsyncSession, days: int = 30) -> dict[str, Any]:
    """Summary, per-day counts and most frequent types over the last ``days`` days."""
    since = datetime.now(UTC) - timedelta(days=days)
    window = Activity.created_at >= since

    def _count_type(activity_type: ActivityType):
        return func.sum(case((Activity.type == activity_type.value, 1), else_=0))

    row = (
        await db.execute(
            select(
                func.count(Activity.id),
                _count_type(ActivityType.USER_REGISTER),
                _count_type(ActivityType.USER_LOGIN),
                _count_type(ActivityType.PAYMENT_SUCCESS),
                _count_type(ActivityType.PAYMENT_FAILED),
                func.coalesce(func.sum(Activity.revenue), 0.0),
                func.sum(case((Activity.success.is_(False), 1), else_=0)),
            ).where(window)
        )
    ).one()

    total = row[0] or 0
    errors = row[6] or 0
    summary = {
        "total_activities": total,
        "user_registrations": row[1] or 0,
        "user_logins": row[2] or 0,
        "payment_success": row[3] or 0,
        "payment_failed": row[4] or 0,
        "total_revenue": float(row[5] or 0),
        "error_count": errors,
        "success_rate": round((total - errors) / total * 100, 2) if total else 100.0,
    }

    day = func.date(Activity.created_at)
    daily_rows = (
        await db.execute(
            select(day, func.count()).where(window).group_by(day).order_by(day)
        )
    ).all()

    top_rows = (
        await db.execute(
            select(Activity.type, func.count().label("n"))
            .where(window)
            .group_by(Activity.type)
            .order_by(func.count().desc())
            .limit(10)
        )
    ).all()

    return {
        "days": days,
        "summary": summary,
        "daily": [{"date": str(d), "count": n} for d, n in daily_rows],
        "top_types": [{"type": t, "count": n} for t, n in top_rows],
    }


async def get_user_timeline(
    db: AsyncSession, user_id: str, limit: int = 50, offset: int = 0
) -> list[Activity]:
    result = await db.execute(
        select(Activity)
        .where(Activity.user_id == user_id)
        .order_by(Activity.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all())
