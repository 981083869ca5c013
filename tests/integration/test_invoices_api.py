"""
Integration tests for invoice endpoints.
"""

import re
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.models import Invoice, InvoiceStatus, Subscription
from services.invoices import build_invoice, mark_overdue_invoices

pytestmark = pytest.mark.asyncio


@pytest.fixture
async def draft_invoice(db_session: AsyncSession, active_subscription: Subscription) -> Invoice:
    invoice = build_invoice(active_subscription)
    db_session.add(invoice)
    await db_session.commit()
    return invoice


class TestCreateInvoice:
    async def test_create_with_gst(
        self, async_client: AsyncClient, admin_headers, active_subscription: Subscription
    ):
        response = await async_client.post(
            "/api/v1/invoices", headers=admin_headers, json={"subscription_id": active_subscription.id}
        )

        assert response.status_code == 201
        data = response.json()
        assert re.match(r"^DK-\d{6}-[A-Z0-9]{6}$", data["invoice_number"])
        assert data["status"] == "DRAFT"
        assert data["subtotal"] == 2999.0
        assert data["tax_rate"] == 18.0
        assert data["tax_amount"] == pytest.approx(539.82)
        assert data["total"] == pytest.approx(3538.82)
        assert data["line_items"][0]["description"] == "Starter Plan - MONTHLY Subscription"
        assert data["client_organization_id"] == active_subscription.client_organization_id

    async def test_custom_tax_and_period(
        self, async_client: AsyncClient, admin_headers, active_subscription: Subscription
    ):
        response = await async_client.post(
            "/api/v1/invoices",
            headers=admin_headers,
            json={
                "subscription_id": active_subscription.id,
                "tax_rate": 0,
                "period_start": "2030-01-01T00:00:00Z",
                "period_end": "2030-02-01T00:00:00Z",
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["total"] == 2999.0
        assert data["period_start"].startswith("2030-01-01")

    async def test_unknown_subscription(self, async_client: AsyncClient, admin_headers):
        response = await async_client.post(
            "/api/v1/invoices", headers=admin_headers, json={"subscription_id": "missing"}
        )
        assert response.status_code == 404

    async def test_tax_rate_bounds(self, async_client: AsyncClient, admin_headers, active_subscription):
        response = await async_client.post(
            "/api/v1/invoices",
            headers=admin_headers,
            json={"subscription_id": active_subscription.id, "tax_rate": 150},
        )
        assert response.status_code == 422


class TestInvoiceActions:
    async def test_send_emails_client(
        self, async_client: AsyncClient, admin_headers, draft_invoice: Invoice
    ):
        with patch(
            "services.invoices.email_service.send_invoice_email",
            new=AsyncMock(return_value=True),
        ) as mock_send:
            response = await async_client.put(
                f"/api/v1/invoices/{draft_invoice.id}/send", headers=admin_headers
            )

        assert response.status_code == 200
        assert response.json()["status"] == "SENT"
        mock_send.assert_awaited_once()
        kwargs = mock_send.await_args.kwargs
        assert kwargs["to_email"] == "office@springfield.edu"
        assert kwargs["invoice_number"] == draft_invoice.invoice_number

    async def test_send_twice(self, async_client: AsyncClient, admin_headers, draft_invoice):
        await async_client.put(f"/api/v1/invoices/{draft_invoice.id}/send", headers=admin_headers)
        response = await async_client.put(
            f"/api/v1/invoices/{draft_invoice.id}/send", headers=admin_headers
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Only draft invoices can be sent"

    async def test_cancel_records_reason(
        self, async_client: AsyncClient, admin_headers, draft_invoice
    ):
        response = await async_client.put(
            f"/api/v1/invoices/{draft_invoice.id}/cancel",
            headers=admin_headers,
            json={"reason": "Raised in error"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "CANCELLED"
        assert data["description"].endswith(" | Cancelled: Raised in error")

    async def test_cancel_without_body(self, async_client: AsyncClient, admin_headers, draft_invoice):
        response = await async_client.put(
            f"/api/v1/invoices/{draft_invoice.id}/cancel", headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["description"].endswith("Cancelled: No reason provided")

    async def test_paid_invoice_cannot_be_cancelled(
        self, async_client: AsyncClient, admin_headers, draft_invoice, db_session
    ):
        draft_invoice.status = InvoiceStatus.PAID.value
        await db_session.commit()

        response = await async_client.put(
            f"/api/v1/invoices/{draft_invoice.id}/cancel", headers=admin_headers
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Cannot cancel a paid invoice"

    async def test_pdf_not_available(self, async_client: AsyncClient, admin_headers, draft_invoice):
        response = await async_client.get(
            f"/api/v1/invoices/{draft_invoice.id}/pdf", headers=admin_headers
        )
        assert response.status_code == 404

    async def test_pdf_redirect(
        self, async_client: AsyncClient, admin_headers, draft_invoice, db_session
    ):
        draft_invoice.pdf_url = "https://files.digikite.in/invoices/inv.pdf"
        await db_session.commit()

        response = await async_client.get(
            f"/api/v1/invoices/{draft_invoice.id}/pdf", headers=admin_headers
        )
        assert response.status_code == 307
        assert response.headers["location"] == "https://files.digikite.in/invoices/inv.pdf"


class TestInvoiceQueries:
    async def test_list_by_client(
        self, async_client: AsyncClient, admin_headers, draft_invoice: Invoice
    ):
        response = await async_client.get(
            "/api/v1/invoices",
            headers=admin_headers,
            params={"client_id": draft_invoice.client_organization_id},
        )
        other = await async_client.get(
            "/api/v1/invoices", headers=admin_headers, params={"client_id": "someone-else"}
        )

        assert response.json()["total"] == 1
        assert other.json()["total"] == 0

    async def test_stats(self, async_client: AsyncClient, admin_headers, draft_invoice, db_session):
        paid = build_invoice(await db_session.get(Subscription, draft_invoice.subscription_id))
        paid.status = InvoiceStatus.PAID.value
        db_session.add(paid)
        await db_session.commit()

        response = await async_client.get("/api/v1/invoices/stats", headers=admin_headers)

        data = response.json()
        assert data["total"] == 2
        assert data["draft"] == 1
        assert data["paid"] == 1
        assert data["total_revenue"] == pytest.approx(paid.total)


async def test_overdue_sweep(db_session: AsyncSession, draft_invoice: Invoice):
    draft_invoice.status = InvoiceStatus.SENT.value
    draft_invoice.due_date = datetime.now(UTC) - timedelta(days=1)
    await db_session.commit()

    assert await mark_overdue_invoices(db_session) == 1
    await db_session.commit()
    await db_session.refresh(draft_invoice)
    assert draft_invoice.status == "OVERDUE"
