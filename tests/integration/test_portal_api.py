"""
Integration tests for the client self-service portal.
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from adapters.payments import RazorpayOrder
from infrastructure.database.models import (
    ClientOrganization,
    Payment,
    PaymentStatus,
    Subscription,
    SubscriptionStatus,
)
from services.invoices import build_invoice
from services.subscriptions import build_subscription

pytestmark = pytest.mark.asyncio


class TestPortalAccess:
    async def test_requires_linked_organization(self, async_client: AsyncClient, auth_headers):
        response = await async_client.get("/api/v1/portal/dashboard", headers=auth_headers)

        assert response.status_code == 403
        assert response.json()["detail"] == "No organization is linked to this account"

    async def test_requires_auth(self, async_client: AsyncClient):
        response = await async_client.get("/api/v1/portal/dashboard")
        assert response.status_code == 401


class TestDashboard:
    async def test_dashboard(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        portal_headers,
        active_subscription: Subscription,
    ):
        invoice = build_invoice(active_subscription)
        invoice.status = "SENT"
        db_session.add(invoice)
        db_session.add(
            Payment(
                amount=2999.0,
                currency="INR",
                status=PaymentStatus.SUCCESS.value,
                client_organization_id=active_subscription.client_organization_id,
                subscription_id=active_subscription.id,
            )
        )
        await db_session.commit()

        response = await async_client.get("/api/v1/portal/dashboard", headers=portal_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["organization"]["short_name"] == "SAA"
        assert data["subscription"]["id"] == active_subscription.id
        assert data["subscription"]["days_remaining"] > 7
        assert data["subscription"]["is_expiring_soon"] is False
        assert len(data["recent_payments"]) == 1
        assert data["invoices_due"] == 1

    async def test_expiring_soon(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        portal_headers,
        active_subscription: Subscription,
    ):
        active_subscription.end_date = datetime.now(UTC) + timedelta(days=3)
        await db_session.commit()

        response = await async_client.get("/api/v1/portal/subscription", headers=portal_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["days_remaining"] == 3
        assert data["is_expiring_soon"] is True
        assert data["plan_details"]["code"] == "STARTER"

    async def test_no_subscription(self, async_client: AsyncClient, portal_headers):
        dashboard = await async_client.get("/api/v1/portal/dashboard", headers=portal_headers)
        detail = await async_client.get("/api/v1/portal/subscription", headers=portal_headers)

        assert dashboard.json()["subscription"] is None
        assert detail.status_code == 404

    async def test_organization(
        self, async_client: AsyncClient, portal_headers, trial_subscription: Subscription
    ):
        response = await async_client.get("/api/v1/portal/organization", headers=portal_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Springfield Alumni Association"
        assert data["current_subscription"]["status"] == "TRIAL"
        assert data["plan"]["name"] == "Starter"


class TestRenewal:
    async def test_creates_renewal_order(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        portal_headers,
        portal_user,
        active_subscription: Subscription,
    ):
        order = RazorpayOrder(
            id="order_RENEW1", amount=299900, currency="INR", receipt="renew", status="created"
        )
        with patch(
            "services.payments.razorpay_adapter.create_order", new=AsyncMock(return_value=order)
        ) as mock_create:
            response = await async_client.post(
                "/api/v1/portal/subscription/renew", headers=portal_headers
            )

        assert response.status_code == 201
        data = response.json()
        assert data["order_id"] == "order_RENEW1"
        assert data["amount"] == 299900
        assert mock_create.await_args.kwargs["notes"]["type"] == "RENEWAL"

        payment = await db_session.get(Payment, data["payment_id"])
        assert payment.user_id == portal_user.id
        assert payment.subscription_id == active_subscription.id

    async def test_expired_subscription_can_be_renewed(
        self, async_client: AsyncClient, db_session, portal_headers, active_subscription
    ):
        active_subscription.status = SubscriptionStatus.EXPIRED.value
        await db_session.commit()

        with patch(
            "services.payments.razorpay_adapter.create_order",
            new=AsyncMock(
                return_value=RazorpayOrder(
                    id="order_RENEW2", amount=299900, currency="INR", receipt=None, status="created"
                )
            ),
        ):
            response = await async_client.post(
                "/api/v1/portal/subscription/renew", headers=portal_headers
            )

        assert response.status_code == 201

    async def test_nothing_to_renew(self, async_client: AsyncClient, portal_headers):
        response = await async_client.post(
            "/api/v1/portal/subscription/renew", headers=portal_headers
        )
        assert response.status_code == 404
        assert response.json()["detail"] == "No subscription found"


class TestBillingHistory:
    async def test_invoices_scoped_to_organization(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        portal_headers,
        active_subscription: Subscription,
        plans,
    ):
        other = ClientOrganization(
            name="Ogdenville Alumni", short_name="OA", contact_email="hi@ogdenville.edu"
        )
        db_session.add(other)
        await db_session.flush()
        other_subscription = build_subscription(other, plans["STARTER"], "MONTHLY")
        db_session.add(other_subscription)
        await db_session.flush()
        db_session.add(build_invoice(active_subscription))
        db_session.add(build_invoice(other_subscription))
        await db_session.commit()

        response = await async_client.get("/api/v1/portal/invoices", headers=portal_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["client_organization_id"] == active_subscription.client_organization_id

    async def test_payments(self, async_client: AsyncClient, portal_headers, client_org):
        response = await async_client.get("/api/v1/portal/payments", headers=portal_headers)

        assert response.status_code == 200
        assert response.json()["items"] == []
        assert response.json()["total_pages"] == 0


class TestGuildAccess:
    async def test_not_provisioned(self, async_client: AsyncClient, portal_headers):
        response = await async_client.get("/api/v1/portal/guild", headers=portal_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["is_provisioned"] is False
        assert "not yet set up" in data["message"]
        assert "web_url" not in data

    async def test_provisioned(
        self, async_client: AsyncClient, db_session, portal_headers, client_org: ClientOrganization
    ):
        client_org.is_guild_provisioned = True
        client_org.guild_org_id = "42"
        client_org.guild_tenant_code = "saa"
        client_org.guild_admin_email = "office@springfield.edu"
        await db_session.commit()

        response = await async_client.get("/api/v1/portal/guild", headers=portal_headers)

        data = response.json()
        assert data["is_provisioned"] is True
        assert data["web_url"] == "http://localhost:3001/saa"
        assert data["admin_url"] == "http://localhost:3001/saa/admin"
        assert data["admin_email"] == "office@springfield.edu"
        assert data["play_store_url"].startswith("https://play.google.com/")
        assert "message" not in data

    async def test_stats_requires_provisioning(self, async_client: AsyncClient, portal_headers):
        response = await async_client.get("/api/v1/portal/guild/stats", headers=portal_headers)
        assert response.status_code == 400

    async def test_stats(self, async_client: AsyncClient, db_session, portal_headers, client_org):
        client_org.is_guild_provisioned = True
        client_org.guild_org_id = "42"
        await db_session.commit()

        with patch(
            "api.routes.portal.guild_adapter.get_organization_stats",
            new=AsyncMock(return_value={"users": 12}),
        ):
            response = await async_client.get(
                "/api/v1/portal/guild/stats", headers=portal_headers
            )

        assert response.json() == {"users": 12}
