"""
Integration tests for the admin back-office endpoints.

Covers:
- Dashboard headline numbers and monthly revenue
- Notification inbox
- Back-office accounts
- Guild overview and manual job triggers
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.models import (
    AdminNotification,
    DemoRequest,
    DemoStatus,
    NotificationType,
    Payment,
    PaymentStatus,
)
from services.notifications import create_notification

pytestmark = pytest.mark.asyncio


@pytest.fixture
async def paid(db_session: AsyncSession, active_subscription) -> Payment:
    payment = Payment(
        amount=2999.0,
        currency="INR",
        status=PaymentStatus.SUCCESS.value,
        paid_at=datetime.now(UTC),
        client_organization_id=active_subscription.client_organization_id,
        subscription_id=active_subscription.id,
    )
    db_session.add(payment)
    db_session.add(
        Payment(
            amount=500.0,
            currency="INR",
            status=PaymentStatus.FAILED.value,
            client_organization_id=active_subscription.client_organization_id,
        )
    )
    await db_session.commit()
    return payment


@pytest.fixture
async def notifications(db_session: AsyncSession) -> list[AdminNotification]:
    created = [
        create_notification(db_session, NotificationType.DEMO_REQUEST, "New Demo Request", "One"),
        create_notification(
            db_session, NotificationType.CONTACT_SUBMISSION, "New Contact Submission", "Two"
        ),
    ]
    await db_session.commit()
    return created


class TestDashboard:
    async def test_headline_numbers(
        self, async_client: AsyncClient, admin_headers, db_session, paid
    ):
        db_session.add(
            DemoRequest(
                organization_name="Lead Org",
                contact_name="Lead",
                contact_email="lead@example.org",
                organization_type="SCHOOL",
                status=DemoStatus.NEW.value,
            )
        )
        await db_session.commit()

        response = await async_client.get("/api/v1/admin/dashboard", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total_clients"] == 1
        assert data["active_subscriptions"] == 1
        assert data["trial_subscriptions"] == 0
        assert data["pending_demos"] == 1
        assert data["total_revenue"] == 2999.0
        assert data["monthly_revenue"] == 2999.0
        assert data["revenue"]["last_month"] == 0.0
        assert data["revenue"]["growth"] == 0.0
        assert data["demos"]["this_month"] == 1
        assert [p["amount"] for p in data["recent"]["payments"]] == [2999.0]
        assert data["recent"]["payments"][0]["client_name"] == "Springfield Alumni Association"
        assert data["recent"]["demos"][0]["contact_email"] == "lead@example.org"

    async def test_requires_admin(self, async_client: AsyncClient, auth_headers):
        response = await async_client.get("/api/v1/admin/dashboard", headers=auth_headers)
        assert response.status_code == 403

    async def test_revenue_by_month(self, async_client: AsyncClient, admin_headers, paid):
        now = datetime.now(UTC)

        response = await async_client.get(
            "/api/v1/admin/revenue", headers=admin_headers, params={"year": now.year}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["year"] == now.year
        assert len(data["data"]) == 12
        assert data["data"][now.month - 1]["revenue"] == 2999.0
        assert data["data"][0]["month_name"] == "Jan"
        assert data["total"] == 2999.0

    async def test_revenue_for_empty_year(self, async_client: AsyncClient, admin_headers, paid):
        response = await async_client.get(
            "/api/v1/admin/revenue", headers=admin_headers, params={"year": 2001}
        )
        assert response.json()["total"] == 0.0


class TestNotifications:
    async def test_list(self, async_client: AsyncClient, admin_headers, notifications):
        response = await async_client.get("/api/v1/admin/notifications", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert data["unread_count"] == 2

    async def test_mark_read(
        self, async_client: AsyncClient, admin_headers, notifications: list[AdminNotification]
    ):
        target = notifications[0]

        response = await async_client.put(
            f"/api/v1/admin/notifications/{target.id}/read", headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json()["is_read"] is True
        assert response.json()["read_at"] is not None

        unread = await async_client.get(
            "/api/v1/admin/notifications", headers=admin_headers, params={"unread_only": True}
        )
        assert unread.json()["total"] == 1
        assert unread.json()["unread_count"] == 1

    async def test_mark_unknown(self, async_client: AsyncClient, admin_headers):
        response = await async_client.put(
            "/api/v1/admin/notifications/missing/read", headers=admin_headers
        )
        assert response.status_code == 404

    async def test_mark_all_read(
        self, async_client: AsyncClient, admin_headers, db_session, notifications
    ):
        response = await async_client.put(
            "/api/v1/admin/notifications/read-all", headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json()["updated"] == 2

        listing = await async_client.get("/api/v1/admin/notifications", headers=admin_headers)
        assert listing.json()["unread_count"] == 0


class TestAdminUsers:
    async def test_super_admin_only(self, async_client: AsyncClient, admin_headers):
        response = await async_client.get("/api/v1/admin/users", headers=admin_headers)
        assert response.status_code == 403

    async def test_lists_back_office_accounts(
        self, async_client: AsyncClient, super_admin_headers, admin_user, test_user
    ):
        response = await async_client.get("/api/v1/admin/users", headers=super_admin_headers)

        assert response.status_code == 200
        emails = {u["email"] for u in response.json()}
        assert emails == {"admin@digikite.in", "superadmin@digikite.in"}


class TestGuildOverview:
    async def test_health(self, async_client: AsyncClient, admin_headers):
        with patch(
            "api.routes.admin.guild_adapter.health_check",
            new=AsyncMock(return_value={"status": "unhealthy", "error": "Connection refused"}),
        ):
            response = await async_client.get("/api/v1/admin/guild/health", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["status"] == "unhealthy"

    async def test_dashboard(self, async_client: AsyncClient, admin_headers):
        with patch(
            "api.routes.admin.guild_adapter.get_dashboard_stats",
            new=AsyncMock(return_value={"organizations": 7}),
        ):
            response = await async_client.get(
                "/api/v1/admin/guild/dashboard", headers=admin_headers
            )

        assert response.json() == {"organizations": 7}


class TestJobs:
    async def test_trigger_reminders(self, async_client: AsyncClient, super_admin_headers):
        response = await async_client.post(
            "/api/v1/admin/reminders/trigger", headers=super_admin_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Reminder job completed"
        assert data["result"]["trial_reminders"] == {"success": True, "total_sent": 0}
        assert data["result"]["subscription_reminders"]["total_sent"] == 0

    async def test_trigger_lifecycle(self, async_client: AsyncClient, super_admin_headers):
        response = await async_client.post(
            "/api/v1/admin/lifecycle/run", headers=super_admin_headers
        )

        assert response.status_code == 200
        assert response.json()["result"]["subscriptions_expired"] == 0

    async def test_jobs_require_super_admin(self, async_client: AsyncClient, admin_headers):
        response = await async_client.post("/api/v1/admin/lifecycle/run", headers=admin_headers)
        assert response.status_code == 403
