"""
Admin dashboard and revenue analytics.
"""

import calendar
from datetime import UTC, datetime
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.models import (
    ClientOrganization,
    ClientStatus,
    DemoRequest,
    DemoStatus,
    Payment,
    PaymentStatus,
    Subscription,
    SubscriptionStatus,
)
from infrastructure.database.models.base import as_utc


def _growth(current: float, previous: float) -> float:
    if previous <= 0:
        return 0.0
    return round((current - previous) / previous * 100, 1)


def _month_bounds(now: datetime) -> tuple[datetime, datetime]:
    """Start of this month and start of last month."""
    this_month = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if this_month.month == 1:
        last_month = this_month.replace(year=this_month.year - 1, month=12)
    else:
        last_month = this_month.replace(month=this_month.month - 1)
    return this_month, last_month


async def _count(db: AsyncSession, model, *conditions) -> int:
    result = await db.execute(select(func.count()).select_from(model).where(*conditions))
    return result.scalar() or 0


async def _revenue(db: AsyncSession, *conditions) -> float:
    result = await db.execute(
        select(func.coalesce(func.sum(Payment.amount), 0.0)).where(
            Payment.status == PaymentStatus.SUCCESS.value, *conditions
        )
    )
    return float(result.scalar() or 0)


async def get_dashboard_stats(db: AsyncSession, now: Optional[datetime] = None) -> dict[str, Any]:
    now = now or datetime.now(UTC)
    this_month, last_month = _month_bounds(now)

    total_demos = await _count(db, DemoRequest)
    new_demos = await _count(db, DemoRequest, DemoRequest.status == DemoStatus.NEW.value)
    converted_demos = await _count(db, DemoRequest, DemoRequest.status == DemoStatus.CONVERTED.value)
    demos_this_month = await _count(db, DemoRequest, DemoRequest.created_at >= this_month)
    demos_last_month = await _count(
        db, DemoRequest, DemoRequest.created_at >= last_month, DemoRequest.created_at < this_month
    )

    total_clients = await _count(db, ClientOrganization)
    active_clients = await _count(
        db, ClientOrganization, ClientOrganization.status == ClientStatus.ACTIVE.value
    )
    clients_this_month = await _count(db, ClientOrganization, ClientOrganization.created_at >= this_month)

    total_subscriptions = await _count(db, Subscription)
    active_subscriptions = await _count(
        db, Subscription, Subscription.status == SubscriptionStatus.ACTIVE.value
    )
    trial_subscriptions = await _count(
        db, Subscription, Subscription.status == SubscriptionStatus.TRIAL.value
    )

    total_revenue = await _revenue(db)
    revenue_this_month = await _revenue(db, Payment.created_at >= this_month)
    revenue_last_month = await _revenue(
        db, Payment.created_at >= last_month, Payment.created_at < this_month
    )

    recent_demos = (
        await db.execute(select(DemoRequest).order_by(DemoRequest.created_at.desc()).limit(5))
    ).scalars().all()
    recent_payments = (
        await db.execute(
            select(Payment, ClientOrganization.name)
            .outerjoin(ClientOrganization, Payment.client_organization_id == ClientOrganization.id)
            .where(Payment.status == PaymentStatus.SUCCESS.value)
            .order_by(Payment.created_at.desc())
            .limit(5)
        )
    ).all()

    return {
        "total_clients": total_clients,
        "active_clients": active_clients,
        "active_subscriptions": active_subscriptions,
        "trial_subscriptions": trial_subscriptions,
        "pending_demos": new_demos,
        "total_demos": total_demos,
        "converted_demos": converted_demos,
        "total_revenue": total_revenue,
        "monthly_revenue": revenue_this_month,
        "demos": {
            "total": total_demos,
            "new": new_demos,
            "this_month": demos_this_month,
            "last_month": demos_last_month,
            "growth": _growth(demos_this_month, demos_last_month),
        },
        "clients": {
            "total": total_clients,
            "active": active_clients,
            "this_month": clients_this_month,
        },
        "subscriptions": {
            "total": total_subscriptions,
            "active": active_subscriptions,
            "trial": trial_subscriptions,
        },
        "revenue": {
            "total": total_revenue,
            "this_month": revenue_this_month,
            "last_month": revenue_last_month,
            "growth": _growth(revenue_this_month, revenue_last_month),
        },
        "recent": {
            "demos": [
                {
                    "id": d.id,
                    "organization_name": d.organization_name,
                    "contact_name": d.contact_name,
                    "contact_email": d.contact_email,
                    "status": d.status,
                    "created_at": d.created_at,
                }
                for d in recent_demos
            ],
            "payments": [
                {
                    "id": p.id,
                    "amount": p.amount,
                    "currency": p.currency,
                    "created_at": p.created_at,
                    "client_name": client_name,
                }
                for p, client_name in recent_payments
            ],
        },
    }


async def get_revenue_by_month(db: AsyncSession, year: int) -> dict[str, Any]:
    """Successful payment amounts bucketed into the 12 months of ``year``."""
    start = datetime(year, 1, 1, tzinfo=UTC)
    end = datetime(year + 1, 1, 1, tzinfo=UTC)
    result = await db.execute(
        select(Payment.amount, Payment.created_at).where(
            Payment.status == PaymentStatus.SUCCESS.value,
            Payment.created_at >= start,
            Payment.created_at < end,
        )
    )

    monthly = [0.0] * 12
    for amount, created_at in result.all():
        monthly[as_utc(created_at).month - 1] += amount

    return {
        "period": "monthly",
        "year": year,
        "data": [
            {"month": i + 1, "month_name": calendar.month_abbr[i + 1], "revenue": round(amount, 2)}
            for i, amount in enumerate(monthly)
        ],
        "total": round(sum(monthly), 2),
    }
