"""
Periodic subscription lifecycle sweep.
"""

import logging
from datetime import UTC, datetime, timedelta
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from adapters.guild import GuildError, guild_adapter
from core.domain.subscription import ensure_transition
from infrastructure.config.settings import settings
from infrastructure.database.models import (
    ClientStatus,
    Subscription,
    SubscriptionStatus,
)
from infrastructure.database.models.base import as_utc
from services.invoices import mark_overdue_invoices

logger = logging.getLogger(__name__)


def _enter_grace_period(subscription: Subscription, lapsed_at: datetime) -> None:
    ensure_transition(subscription.status, SubscriptionStatus.GRACE_PERIOD)
    subscription.status = SubscriptionStatus.GRACE_PERIOD.value
    subscription.grace_period_ends_at = as_utc(lapsed_at) + timedelta(days=settings.grace_period_days)


async def run_lifecycle(db: AsyncSession, now: Optional[datetime] = None) -> dict[str, Any]:
    """
    Advance lapsed subscriptions and overdue invoices.

    - TRIAL past ``trial_ends_at`` and ACTIVE past ``end_date`` enter
      GRACE_PERIOD for ``grace_period_days``.
    - GRACE_PERIOD past ``grace_period_ends_at`` becomes EXPIRED, and the
      client is suspended here and on Guild.
    - SENT invoices past due become OVERDUE.

    Returns:
        Counts of each change
    """
    now = now or datetime.now(UTC)

    lapsed_trials = (
        await db.execute(
            select(Subscription).where(
                Subscription.status == SubscriptionStatus.TRIAL.value,
                Subscription.trial_ends_at < now,
            )
        )
    ).scalars().all()
    for subscription in lapsed_trials:
        _enter_grace_period(subscription, subscription.trial_ends_at)

    lapsed_active = (
        await db.execute(
            select(Subscription).where(
                Subscription.status == SubscriptionStatus.ACTIVE.value,
                Subscription.end_date < now,
            )
        )
    ).scalars().all()
    for subscription in lapsed_active:
        _enter_grace_period(subscription, subscription.end_date)

    expiring = (
        await db.execute(
            select(Subscription).where(
                Subscription.status == SubscriptionStatus.GRACE_PERIOD.value,
                Subscription.grace_period_ends_at < now,
            )
        )
    ).scalars().all()
    to_suspend: list[tuple[str, str]] = []
    for subscription in expiring:
        ensure_transition(subscription.status, SubscriptionStatus.EXPIRED)
        subscription.status = SubscriptionStatus.EXPIRED.value
        client = subscription.client_organization
        if client is not None:
            client.status = ClientStatus.SUSPENDED.value
            if client.is_guild_provisioned and client.guild_org_id:
                to_suspend.append((client.id, client.guild_org_id))

    overdue = await mark_overdue_invoices(db, now)
    await db.commit()

    suspended = 0
    for client_id, guild_org_id in to_suspend:
        try:
            await guild_adapter.suspend_organization(guild_org_id, "Subscription expired")
            suspended += 1
        except GuildError as e:
            logger.warning("Failed to suspend Guild tenant for client %s: %s", client_id, e)

    summary = {
        "trials_lapsed": len(lapsed_trials),
        "subscriptions_lapsed": len(lapsed_active),
        "subscriptions_expired": len(expiring),
        "guild_tenants_suspended": suspended,
        "invoices_overdue": overdue,
    }
    logger.info("Lifecycle sweep completed: %s", summary)
    return summary
