"""
Tests for trial and renewal reminder emails.
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.models import Subscription, User
from services.reminders import run_all_reminders, send_renewal_reminders, send_trial_reminders

pytestmark = pytest.mark.asyncio

NOW = datetime(2030, 3, 10, 9, 30, tzinfo=UTC)


def _patch_email(name: str, return_value: bool = True):
    return patch(
        f"services.reminders.email_service.{name}", new=AsyncMock(return_value=return_value)
    )


class TestTrialReminders:
    @pytest.mark.parametrize("days", [7, 3, 1])
    async def test_sent_on_reminder_days(
        self, db_session: AsyncSession, trial_subscription: Subscription, portal_user: User, days
    ):
        trial_subscription.trial_ends_at = NOW + timedelta(days=days, hours=5)
        await db_session.commit()

        with _patch_email("send_trial_expiration_reminder") as mock_send:
            result = await send_trial_reminders(db_session, now=NOW)

        assert result == {"success": True, "total_sent": 1}
        kwargs = mock_send.await_args.kwargs
        assert kwargs["to_email"] == "registrar@springfield.edu"
        assert kwargs["organization_name"] == "Springfield Alumni Association"
        assert kwargs["plan_name"] == "Starter"
        assert kwargs["days_left"] == days
        assert trial_subscription.renewal_reminder_sent is True

    async def test_not_sent_on_other_days(
        self, db_session: AsyncSession, trial_subscription: Subscription, portal_user
    ):
        trial_subscription.trial_ends_at = NOW + timedelta(days=5)
        await db_session.commit()

        with _patch_email("send_trial_expiration_reminder") as mock_send:
            result = await send_trial_reminders(db_session, now=NOW)

        assert result["total_sent"] == 0
        mock_send.assert_not_awaited()

    async def test_not_repeated_same_day(
        self, db_session: AsyncSession, trial_subscription: Subscription, portal_user
    ):
        trial_subscription.trial_ends_at = NOW + timedelta(days=3)
        await db_session.commit()

        with _patch_email("send_trial_expiration_reminder") as mock_send:
            await send_trial_reminders(db_session, now=NOW)
            await send_trial_reminders(db_session, now=NOW + timedelta(hours=2))

        assert mock_send.await_count == 1

    async def test_next_reminder_allowed_after_a_day(
        self, db_session: AsyncSession, trial_subscription: Subscription, portal_user
    ):
        trial_subscription.trial_ends_at = NOW + timedelta(days=3, hours=1)
        await db_session.commit()

        with _patch_email("send_trial_expiration_reminder") as mock_send:
            await send_trial_reminders(db_session, now=NOW)
            await send_trial_reminders(db_session, now=NOW + timedelta(days=2, hours=1))

        assert mock_send.await_count == 2
        assert mock_send.await_args.kwargs["days_left"] == 1

    async def test_skipped_without_client_user(
        self, db_session: AsyncSession, trial_subscription: Subscription
    ):
        trial_subscription.trial_ends_at = NOW + timedelta(days=1)
        await db_session.commit()

        with _patch_email("send_trial_expiration_reminder") as mock_send:
            result = await send_trial_reminders(db_session, now=NOW)

        assert result["total_sent"] == 0
        mock_send.assert_not_awaited()

    async def test_failed_delivery_not_marked(
        self, db_session: AsyncSession, trial_subscription: Subscription, portal_user
    ):
        trial_subscription.trial_ends_at = NOW + timedelta(days=7)
        await db_session.commit()

        with _patch_email("send_trial_expiration_reminder", return_value=False):
            result = await send_trial_reminders(db_session, now=NOW)

        assert result["total_sent"] == 0
        assert trial_subscription.renewal_reminder_sent is False


class TestRenewalReminders:
    @pytest.fixture
    async def non_renewing(
        self, db_session: AsyncSession, active_subscription: Subscription
    ) -> Subscription:
        active_subscription.auto_renew = False
        await db_session.commit()
        return active_subscription

    @pytest.mark.parametrize("days", [30, 14, 7, 3])
    async def test_sent_on_reminder_days(
        self, db_session: AsyncSession, non_renewing: Subscription, portal_user, days
    ):
        non_renewing.end_date = NOW + timedelta(days=days)
        await db_session.commit()

        with _patch_email("send_subscription_expiration_reminder") as mock_send:
            result = await send_renewal_reminders(db_session, now=NOW)

        assert result["total_sent"] == 1
        assert mock_send.await_args.kwargs["days_left"] == days

    async def test_auto_renewing_skipped(
        self, db_session: AsyncSession, active_subscription: Subscription, portal_user
    ):
        active_subscription.end_date = NOW + timedelta(days=7)
        await db_session.commit()

        with _patch_email("send_subscription_expiration_reminder") as mock_send:
            result = await send_renewal_reminders(db_session, now=NOW)

        assert result["total_sent"] == 0
        mock_send.assert_not_awaited()


async def test_run_all_isolates_failures(
    db_session: AsyncSession, trial_subscription: Subscription, portal_user
):
    with patch(
        "services.reminders.send_trial_reminders",
        new=AsyncMock(side_effect=RuntimeError("SMTP down")),
    ):
        summary = await run_all_reminders(db_session)

    assert summary["trial_reminders"] == {"error": "SMTP down"}
    assert summary["subscription_reminders"]["success"] is True
