"""
Subscription reminder emails.

Trial reminders go out 7, 3 and 1 days before a trial ends; renewal
reminders 30, 14, 7 and 3 days before a non-renewing subscription ends.
Each reminder targets the calendar day (UTC) that far from today.
"""

import logging
from datetime import UTC, datetime, timedelta
from typing import Any, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from adapters.email.resend_adapter import email_service
from infrastructure.database.models import Subscription, SubscriptionStatus, User
from infrastructure.database.models.base import as_utc

logger = logging.getLogger(__name__)

TRIAL_REMINDER_DAYS = (7, 3, 1)
RENEWAL_REMINDER_DAYS = (30, 14, 7, 3)


def _day_window(now: datetime, days: int) -> tuple[datetime, datetime]:
    target = (now + timedelta(days=days)).replace(hour=0, minute=0, second=0, microsecond=0)
    return target, target + timedelta(days=1)


async def _first_client_user(db: AsyncSession, client_id: str) -> Optional[User]:
    result = await db.execute(
        select(User)
        .where(User.client_organization_id == client_id)
        .order_by(User.created_at)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def send_trial_reminders(db: AsyncSession, now: Optional[datetime] = None) -> dict[str, Any]:
    now = now or datetime.now(UTC)
    sent = 0

    for days in TRIAL_REMINDER_DAYS:
        start, end = _day_window(now, days)
        result = await db.execute(
            select(Subscription).where(
                Subscription.status == SubscriptionStatus.TRIAL.value,
                Subscription.trial_ends_at >= start,
                Subscription.trial_ends_at < end,
                or_(
                    Subscription.renewal_reminder_sent.is_(False),
                    Subscription.next_renewal_reminder < now,
                ),
            )
        )
        for subscription in result.scalars().all():
            user = await _first_client_user(db, subscription.client_organization_id)
            if user is None:
                logger.warning(
                    "No user to remind for trial subscription %s (client %s)",
                    subscription.id,
                    subscription.client_organization_id,
                )
                continue

            delivered = await email_service.send_trial_expiration_reminder(
                to_email=user.email,
                name=user.name,
                organization_name=subscription.client_organization.name,
                plan_name=subscription.plan.name,
                days_left=days,
                trial_ends_at=as_utc(subscription.trial_ends_at),
            )
            if delivered:
                subscription.renewal_reminder_sent = True
                subscription.next_renewal_reminder = now + timedelta(days=1)
                sent += 1

    await db.commit()
    logger.info("Trial reminders sent: %d", sent)
    return {"success": True, "total_sent": sent}


async def send_renewal_reminders(db: AsyncSession, now: Optional[datetime] = None) -> dict[str, Any]:
    now = now or datetime.now(UTC)
    sent = 0

    for days in RENEWAL_REMINDER_DAYS:
        start, end = _day_window(now, days)
        result = await db.execute(
            select(Subscription).where(
                Subscription.status == SubscriptionStatus.ACTIVE.value,
                Subscription.auto_renew.is_(False),
                Subscription.end_date >= start,
                Subscription.end_date < end,
            )
        )
        for subscription in result.scalars().all():
            user = await _first_client_user(db, subscription.client_organization_id)
            if user is None:
                continue
            if await email_service.send_subscription_expiration_reminder(
                to_email=user.email,
                name=user.name,
                organization_name=subscription.client_organization.name,
                plan_name=subscription.plan.name,
                days_left=days,
                end_date=as_utc(subscription.end_date),
            ):
                sent += 1

    logger.info("Renewal reminders sent: %d", sent)
    return {"success": True, "total_sent": sent}


async def run_all_reminders(db: AsyncSession) -> dict[str, Any]:
    """Run both reminder kinds; a failure in one does not stop the other."""
    logger.info("Starting subscription reminder job")
    summary: dict[str, Any] = {}

    for key, job in (
        ("trial_reminders", send_trial_reminders),
        ("subscription_reminders", send_renewal_reminders),
    ):
        try:
            summary[key] = await job(db)
        except Exception as e:
            logger.error("%s failed: %s", key, e, exc_info=True)
            await db.rollback()
            summary[key] = {"error": str(e)}

    logger.info("Subscription reminder job completed: %s", summary)
    return summary
