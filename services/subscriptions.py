"""
Plan catalog and subscription lifecycle service.
"""

import logging
from datetime import UTC, datetime, timedelta
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from adapters.guild import GuildError, guild_adapter
from core.domain.subscription import (
    add_billing_cycle,
    calculate_amount,
    calculate_trial_end,
    ensure_transition,
)
from core.exceptions import ConflictError, NotFoundError
from infrastructure.database.models import (
    CURRENT_SUBSCRIPTION_STATUSES,
    BillingCycle,
    ClientOrganization,
    ClientStatus,
    NotificationType,
    Subscription,
    SubscriptionPlan,
    SubscriptionStatus,
)
from infrastructure.database.models.base import as_utc
from services.notifications import create_notification

logger = logging.getLogger(__name__)

# Fields an admin may change on an existing plan; the code is fixed at creation
_PLAN_UPDATABLE = {
    "name",
    "description",
    "price_monthly",
    "price_quarterly",
    "price_yearly",
    "currency",
    "max_users",
    "storage_quota_mb",
    "features",
    "is_active",
    "is_popular",
    "sort_order",
    "trial_days",
}


# ============================================================================
# Plans
# ============================================================================


async def list_plans(db: AsyncSession, include_inactive: bool = False) -> list[SubscriptionPlan]:
    query = select(SubscriptionPlan).order_by(SubscriptionPlan.sort_order, SubscriptionPlan.price_monthly)
    if not include_inactive:
        query = query.where(SubscriptionPlan.is_active.is_(True))
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_plan(db: AsyncSession, plan_id: str) -> SubscriptionPlan:
    plan = await db.get(SubscriptionPlan, plan_id)
    if plan is None:
        raise NotFoundError("Subscription plan not found")
    return plan


async def create_plan(db: AsyncSession, data: dict[str, Any]) -> SubscriptionPlan:
    """Create a plan. Codes are stored upper-case and must be unique."""
    code = data["code"].strip().upper()
    existing = await db.execute(select(SubscriptionPlan).where(SubscriptionPlan.code == code))
    if existing.scalar_one_or_none():
        raise ConflictError(f"Plan with code {code} already exists")

    plan = SubscriptionPlan(**{**data, "code": code})
    db.add(plan)
    await db.commit()
    await db.refresh(plan)
    logger.info("Created subscription plan %s", code)
    return plan


async def update_plan(db: AsyncSession, plan_id: str, data: dict[str, Any]) -> SubscriptionPlan:
    plan = await get_plan(db, plan_id)
    for field, value in data.items():
        if field in _PLAN_UPDATABLE:
            setattr(plan, field, value)
    await db.commit()
    await db.refresh(plan)
    return plan


# ============================================================================
# Subscriptions
# ============================================================================


async def get_subscription(db: AsyncSession, subscription_id: str) -> Subscription:
    subscription = await db.get(Subscription, subscription_id)
    if subscription is None:
        raise NotFoundError("Subscription not found")
    return subscription


async def get_current_subscription(
    db: AsyncSession,
    client_id: str,
    statuses: tuple[str, ...] = CURRENT_SUBSCRIPTION_STATUSES,
) -> Optional[Subscription]:
    """The client's most recently created subscription in one of ``statuses``."""
    result = await db.execute(
        select(Subscription)
        .where(
            Subscription.client_organization_id == client_id,
            Subscription.status.in_(statuses),
        )
        .order_by(Subscription.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


def build_subscription(
    client: ClientOrganization,
    plan: SubscriptionPlan,
    billing_cycle: BillingCycle | str,
    start_date: Optional[datetime] = None,
    auto_renew: bool = True,
    custom_max_users: Optional[int] = None,
    custom_storage_quota_mb: Optional[int] = None,
) -> Subscription:
    """A new TRIAL subscription priced and dated for one billing cycle."""
    start = as_utc(start_date) or datetime.now(UTC)
    cycle = BillingCycle(billing_cycle)
    return Subscription(
        client_organization_id=client.id,
        client_organization=client,
        plan_id=plan.id,
        plan=plan,
        billing_cycle=cycle.value,
        amount=calculate_amount(plan, cycle),
        currency=plan.currency,
        status=SubscriptionStatus.TRIAL.value,
        start_date=start,
        end_date=add_billing_cycle(start, cycle),
        trial_ends_at=calculate_trial_end(start, plan.trial_days),
        auto_renew=auto_renew,
        custom_max_users=custom_max_users,
        custom_storage_quota_mb=custom_storage_quota_mb,
    )


async def create_subscription(
    db: AsyncSession,
    client_id: str,
    plan_id: str,
    billing_cycle: BillingCycle | str,
    start_date: Optional[datetime] = None,
    auto_renew: bool = True,
    custom_max_users: Optional[int] = None,
    custom_storage_quota_mb: Optional[int] = None,
) -> Subscription:
    """Create a TRIAL subscription for a client (admin flow)."""
    client = await db.get(ClientOrganization, client_id)
    if client is None:
        raise NotFoundError("Client organization not found")
    plan = await get_plan(db, plan_id)

    subscription = build_subscription(
        client,
        plan,
        billing_cycle,
        start_date=start_date,
        auto_renew=auto_renew,
        custom_max_users=custom_max_users,
        custom_storage_quota_mb=custom_storage_quota_mb,
    )
    db.add(subscription)
    await db.commit()
    await db.refresh(subscription)
    logger.info(
        "Created %s subscription %s for client %s", subscription.billing_cycle, subscription.id, client_id
    )
    return subscription


def change_plan(
    subscription: Subscription, plan: SubscriptionPlan, billing_cycle: BillingCycle | str
) -> None:
    """Switch plan and cycle, re-pricing and re-dating from the original start."""
    cycle = BillingCycle(billing_cycle)
    subscription.plan_id = plan.id
    subscription.plan = plan
    subscription.billing_cycle = cycle.value
    subscription.amount = calculate_amount(plan, cycle)
    subscription.currency = plan.currency
    subscription.end_date = add_billing_cycle(as_utc(subscription.start_date), cycle)


def _reactivate_client(subscription: Subscription) -> None:
    # A paid subscription brings a new or lapsed client back to ACTIVE
    client = subscription.client_organization
    if client is not None and client.status in (
        ClientStatus.PENDING.value,
        ClientStatus.SUSPENDED.value,
    ):
        client.status = ClientStatus.ACTIVE.value


def is_lapsed_trial(subscription: Subscription) -> bool:
    """True for a GRACE_PERIOD or EXPIRED subscription that was never paid."""
    return subscription.last_renewal_at is None and subscription.status in (
        SubscriptionStatus.GRACE_PERIOD.value,
        SubscriptionStatus.EXPIRED.value,
    )


def apply_activation(subscription: Subscription, now: Optional[datetime] = None) -> None:
    """
    Move a subscription to ACTIVE after payment or admin action.

    A PENDING or SUSPENDED client becomes ACTIVE with it. A trial that
    lapsed into GRACE_PERIOD or EXPIRED without ever being paid starts a
    fresh cycle from ``now``. Does not commit.
    """
    ensure_transition(subscription.status, SubscriptionStatus.ACTIVE)
    now = now or datetime.now(UTC)
    if is_lapsed_trial(subscription):
        subscription.start_date = now
        subscription.end_date = add_billing_cycle(now, subscription.billing_cycle)
    subscription.status = SubscriptionStatus.ACTIVE.value
    subscription.last_renewal_at = now
    subscription.grace_period_ends_at = None

    _reactivate_client(subscription)


def apply_renewal(subscription: Subscription, now: Optional[datetime] = None) -> None:
    """
    Extend by one billing cycle from the later of the current end and now.

    Does not commit.
    """
    ensure_transition(subscription.status, SubscriptionStatus.ACTIVE)
    now = now or datetime.now(UTC)
    base = max(as_utc(subscription.end_date), now)
    subscription.end_date = add_billing_cycle(base, subscription.billing_cycle)
    subscription.status = SubscriptionStatus.ACTIVE.value
    subscription.last_renewal_at = now
    subscription.grace_period_ends_at = None
    subscription.renewal_reminder_sent = False
    subscription.next_renewal_reminder = None

    _reactivate_client(subscription)


async def sync_subscription_to_guild(subscription: Subscription, reactivate: bool = False) -> None:
    """Push the subscription to the client's Guild tenant, if it has one.

    ``reactivate`` lifts the suspension placed on an expired tenant.
    Failures are logged; the DigiKite record stays authoritative.
    """
    client = subscription.client_organization
    if client is None or not client.guild_org_id:
        return
    try:
        await guild_adapter.update_subscription(client.guild_org_id, subscription)
        if reactivate:
            await guild_adapter.reactivate_organization(client.guild_org_id)
    except GuildError as e:
        logger.warning("Failed to sync subscription %s to Guild: %s", subscription.id, e)


async def activate_subscription(db: AsyncSession, subscription_id: str) -> Subscription:
    subscription = await get_subscription(db, subscription_id)
    was_expired = subscription.status == SubscriptionStatus.EXPIRED.value
    apply_activation(subscription)
    await db.commit()
    await sync_subscription_to_guild(subscription, reactivate=was_expired)
    logger.info("Activated subscription %s", subscription.id)
    return subscription


async def renew_subscription(db: AsyncSession, subscription_id: str) -> Subscription:
    """
    Extend a subscription by one billing cycle.

    The new period runs from the current end date, or from now if the
    subscription has already lapsed.
    """
    subscription = await get_subscription(db, subscription_id)
    was_expired = subscription.status == SubscriptionStatus.EXPIRED.value
    apply_renewal(subscription)

    client = subscription.client_organization
    create_notification(
        db,
        NotificationType.SUBSCRIPTION_RENEWED,
        "Subscription Renewed",
        f"{client.name if client else 'A client'} renewed the "
        f"{subscription.plan.name if subscription.plan else ''} plan until "
        f"{subscription.end_date:%d %b %Y}",
        {"subscription_id": subscription.id, "client_id": subscription.client_organization_id},
    )
    await db.commit()
    await sync_subscription_to_guild(subscription, reactivate=was_expired)
    logger.info("Renewed subscription %s until %s", subscription.id, subscription.end_date)
    return subscription


async def cancel_subscription(db: AsyncSession, subscription_id: str) -> Subscription:
    subscription = await get_subscription(db, subscription_id)
    ensure_transition(subscription.status, SubscriptionStatus.CANCELLED)
    subscription.status = SubscriptionStatus.CANCELLED.value
    subscription.auto_renew = False
    subscription.cancelled_at = datetime.now(UTC)
    await db.commit()
    await sync_subscription_to_guild(subscription)
    logger.info("Cancelled subscription %s", subscription.id)
    return subscription


async def get_expiring_subscriptions(db: AsyncSession, days: int = 7) -> list[Subscription]:
    """Auto-renewing TRIAL/ACTIVE subscriptions ending within ``days`` days."""
    cutoff = datetime.now(UTC) + timedelta(days=days)
    result = await db.execute(
        select(Subscription)
        .where(
            Subscription.status.in_(
                [SubscriptionStatus.TRIAL.value, SubscriptionStatus.ACTIVE.value]
            ),
            Subscription.end_date <= cutoff,
            Subscription.auto_renew.is_(True),
        )
        .order_by(Subscription.end_date)
    )
    return list(result.scalars().all())


async def subscription_stats(db: AsyncSession) -> dict[str, Any]:
    result = await db.execute(
        select(Subscription.status, func.count()).group_by(Subscription.status)
    )
    counts = {status: n for status, n in result.all()}
    revenue = await db.execute(
        select(func.coalesce(func.sum(Subscription.amount), 0.0)).where(
            Subscription.status == SubscriptionStatus.ACTIVE.value
        )
    )
    return {
        "total": sum(counts.values()),
        "trial": counts.get(SubscriptionStatus.TRIAL.value, 0),
        "active": counts.get(SubscriptionStatus.ACTIVE.value, 0),
        "grace_period": counts.get(SubscriptionStatus.GRACE_PERIOD.value, 0),
        "expired": counts.get(SubscriptionStatus.EXPIRED.value, 0),
        "cancelled": counts.get(SubscriptionStatus.CANCELLED.value, 0),
        "monthly_revenue": float(revenue.scalar() or 0),
    }
