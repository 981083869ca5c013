"""
Unit tests for invoice numbering and totals.
"""

import re
from datetime import UTC, datetime
from types import SimpleNamespace

import pytest

from services.invoices import build_invoice, generate_invoice_number

NUMBER_PATTERN = re.compile(r"^DK-\d{6}-[A-Z0-9]{6}$")


@pytest.fixture
def subscription():
    return SimpleNamespace(
        id="sub-1",
        client_organization_id="org-1",
        amount=5999.0,
        currency="INR",
        billing_cycle="MONTHLY",
        start_date=datetime(2024, 3, 1, tzinfo=UTC),
        end_date=datetime(2024, 4, 1, tzinfo=UTC),
        plan=SimpleNamespace(name="Professional"),
    )


class TestInvoiceNumber:
    def test_format(self):
        assert NUMBER_PATTERN.match(generate_invoice_number())

    def test_uses_given_month(self):
        number = generate_invoice_number(datetime(2024, 7, 15, tzinfo=UTC))
        assert number.startswith("DK-202407-")

    def test_suffix_is_random(self):
        numbers = {generate_invoice_number() for _ in range(20)}
        assert len(numbers) == 20


class TestBuildInvoice:
    def test_totals_with_default_gst(self, subscription):
        invoice = build_invoice(subscription)

        assert invoice.subtotal == 5999.0
        assert invoice.tax_rate == 18.0
        assert invoice.tax_amount == pytest.approx(1079.82)
        assert invoice.total == pytest.approx(7078.82)
        assert invoice.status == "DRAFT"
        assert invoice.currency == "INR"

    def test_custom_tax_rate(self, subscription):
        invoice = build_invoice(subscription, tax_rate=0)
        assert invoice.tax_amount == 0
        assert invoice.total == 5999.0

    def test_line_item_describes_plan(self, subscription):
        invoice = build_invoice(subscription)

        assert invoice.description == "Subscription invoice for Professional Plan"
        assert invoice.line_items == [
            {
                "description": "Professional Plan - MONTHLY Subscription",
                "quantity": 1,
                "unit_price": 5999.0,
                "amount": 5999.0,
            }
        ]

    def test_period_defaults_to_subscription_term(self, subscription):
        invoice = build_invoice(subscription)
        assert invoice.period_start == subscription.start_date
        assert invoice.period_end == subscription.end_date

    def test_due_date_after_issue(self, subscription):
        invoice = build_invoice(subscription)
        assert (invoice.due_date - datetime.now(UTC)).days in (14, 15)
