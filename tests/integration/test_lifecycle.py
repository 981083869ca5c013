"""
Tests for the periodic subscription lifecycle sweep.
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from adapters.guild import GuildAPIError
from infrastructure.database.models import (
    ClientOrganization,
    InvoiceStatus,
    Subscription,
    SubscriptionStatus,
)
from infrastructure.database.models.base import as_utc
from services.invoices import build_invoice
from services.lifecycle import run_lifecycle

pytestmark = pytest.mark.asyncio

NOW = datetime(2030, 6, 15, 12, 0, tzinfo=UTC)


async def _expire_grace(db_session: AsyncSession, subscription: Subscription) -> None:
    subscription.status = SubscriptionStatus.GRACE_PERIOD.value
    subscription.grace_period_ends_at = NOW - timedelta(hours=1)
    await db_session.commit()


async def test_lapsed_trial_enters_grace_period(
    db_session: AsyncSession, trial_subscription: Subscription
):
    trial_subscription.trial_ends_at = NOW - timedelta(days=1)
    trial_subscription.end_date = NOW + timedelta(days=20)
    await db_session.commit()

    summary = await run_lifecycle(db_session, now=NOW)

    assert summary["trials_lapsed"] == 1
    await db_session.refresh(trial_subscription)
    assert trial_subscription.status == "GRACE_PERIOD"
    assert as_utc(trial_subscription.grace_period_ends_at) == NOW + timedelta(days=6)


async def test_lapsed_active_enters_grace_period(
    db_session: AsyncSession, active_subscription: Subscription
):
    active_subscription.end_date = NOW - timedelta(days=2)
    await db_session.commit()

    summary = await run_lifecycle(db_session, now=NOW)

    assert summary["subscriptions_lapsed"] == 1
    await db_session.refresh(active_subscription)
    assert active_subscription.status == "GRACE_PERIOD"
    assert as_utc(active_subscription.grace_period_ends_at) == NOW + timedelta(days=5)


async def test_current_subscriptions_untouched(
    db_session: AsyncSession, active_subscription: Subscription
):
    active_subscription.end_date = NOW + timedelta(days=10)
    await db_session.commit()

    summary = await run_lifecycle(db_session, now=NOW)

    assert summary["subscriptions_lapsed"] == 0
    assert active_subscription.status == "ACTIVE"


async def test_grace_period_end_expires_and_suspends(
    db_session: AsyncSession, active_subscription: Subscription
):
    client = await db_session.get(ClientOrganization, active_subscription.client_organization_id)
    client.status = "ACTIVE"
    client.is_guild_provisioned = True
    client.guild_org_id = "42"
    await _expire_grace(db_session, active_subscription)

    with patch(
        "services.lifecycle.guild_adapter.suspend_organization", new_callable=AsyncMock
    ) as mock_suspend:
        summary = await run_lifecycle(db_session, now=NOW)

    assert summary["subscriptions_expired"] == 1
    assert summary["guild_tenants_suspended"] == 1
    mock_suspend.assert_awaited_once_with("42", "Subscription expired")
    await db_session.refresh(active_subscription)
    await db_session.refresh(client)
    assert active_subscription.status == "EXPIRED"
    assert client.status == "SUSPENDED"


async def test_guild_failure_does_not_undo_expiry(
    db_session: AsyncSession, active_subscription: Subscription
):
    client = await db_session.get(ClientOrganization, active_subscription.client_organization_id)
    client.is_guild_provisioned = True
    client.guild_org_id = "42"
    await _expire_grace(db_session, active_subscription)

    with patch(
        "services.lifecycle.guild_adapter.suspend_organization",
        new=AsyncMock(side_effect=GuildAPIError("Guild unavailable", 503)),
    ):
        summary = await run_lifecycle(db_session, now=NOW)

    assert summary["subscriptions_expired"] == 1
    assert summary["guild_tenants_suspended"] == 0
    await db_session.refresh(active_subscription)
    assert active_subscription.status == "EXPIRED"


async def test_unprovisioned_client_not_sent_to_guild(
    db_session: AsyncSession, active_subscription: Subscription
):
    await _expire_grace(db_session, active_subscription)

    with patch(
        "services.lifecycle.guild_adapter.suspend_organization", new_callable=AsyncMock
    ) as mock_suspend:
        await run_lifecycle(db_session, now=NOW)

    mock_suspend.assert_not_awaited()


async def test_overdue_invoices(db_session: AsyncSession, active_subscription: Subscription):
    invoice = build_invoice(active_subscription)
    invoice.status = InvoiceStatus.SENT.value
    invoice.due_date = NOW - timedelta(days=1)
    db_session.add(invoice)
    await db_session.commit()

    summary = await run_lifecycle(db_session, now=NOW)

    assert summary["invoices_overdue"] == 1
    await db_session.refresh(invoice)
    assert invoice.status == "OVERDUE"
