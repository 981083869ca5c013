"""
Invoice service: numbering, tax calculation and status changes.
"""

import logging
import secrets
import string
from datetime import UTC, datetime, timedelta
from typing import Any, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from adapters.email.resend_adapter import email_service
from core.domain.subscription import calculate_tax
from core.exceptions import BusinessRuleError, NotFoundError
from infrastructure.config.settings import settings
from infrastructure.database.models import (
    ClientOrganization,
    Invoice,
    InvoiceStatus,
    Subscription,
)
from infrastructure.database.models.base import as_utc
from services.subscriptions import get_subscription

logger = logging.getLogger(__name__)

_NUMBER_ALPHABET = string.ascii_uppercase + string.digits


def generate_invoice_number(now: Optional[datetime] = None) -> str:
    """``DK-YYYYMM-XXXXXX`` with a random upper-case alphanumeric suffix."""
    now = now or datetime.now(UTC)
    suffix = "".join(secrets.choice(_NUMBER_ALPHABET) for _ in range(6))
    return f"{settings.invoice_number_prefix}-{now:%Y%m}-{suffix}"


def build_invoice(
    subscription: Subscription,
    tax_rate: Optional[float] = None,
    period_start: Optional[datetime] = None,
    period_end: Optional[datetime] = None,
) -> Invoice:
    """A DRAFT invoice for one period of ``subscription``."""
    rate = settings.default_tax_rate if tax_rate is None else tax_rate
    subtotal = float(subscription.amount)
    tax_amount, total = calculate_tax(subtotal, rate)
    plan_name = subscription.plan.name if subscription.plan else "Subscription"
    now = datetime.now(UTC)

    return Invoice(
        invoice_number=generate_invoice_number(now),
        client_organization_id=subscription.client_organization_id,
        subscription_id=subscription.id,
        subtotal=subtotal,
        tax_rate=rate,
        tax_amount=tax_amount,
        total=total,
        currency=subscription.currency,
        description=f"Subscription invoice for {plan_name} Plan",
        line_items=[
            {
                "description": f"{plan_name} Plan - {subscription.billing_cycle} Subscription",
                "quantity": 1,
                "unit_price": subtotal,
                "amount": subtotal,
            }
        ],
        period_start=period_start or subscription.start_date,
        period_end=period_end or subscription.end_date,
        status=InvoiceStatus.DRAFT.value,
        due_date=now + timedelta(days=settings.invoice_due_days),
    )


async def create_invoice(
    db: AsyncSession,
    subscription_id: str,
    tax_rate: Optional[float] = None,
    period_start: Optional[datetime] = None,
    period_end: Optional[datetime] = None,
) -> Invoice:
    subscription = await get_subscription(db, subscription_id)
    invoice = build_invoice(subscription, tax_rate, period_start, period_end)
    db.add(invoice)
    await db.commit()
    await db.refresh(invoice)
    logger.info("Created invoice %s (total %.2f)", invoice.invoice_number, invoice.total)
    return invoice


async def get_invoice(db: AsyncSession, invoice_id: str) -> Invoice:
    invoice = await db.get(Invoice, invoice_id)
    if invoice is None:
        raise NotFoundError("Invoice not found")
    return invoice


def mark_paid(invoice: Invoice, now: Optional[datetime] = None) -> None:
    """Does not commit."""
    invoice.status = InvoiceStatus.PAID.value
    invoice.paid_at = now or datetime.now(UTC)


async def send_invoice(db: AsyncSession, invoice_id: str) -> Invoice:
    """Issue a DRAFT invoice and email it to the client contact."""
    invoice = await get_invoice(db, invoice_id)
    if invoice.status != InvoiceStatus.DRAFT.value:
        raise BusinessRuleError("Only draft invoices can be sent")

    invoice.status = InvoiceStatus.SENT.value
    await db.commit()

    client = await db.get(ClientOrganization, invoice.client_organization_id)
    if client is not None:
        sent = await email_service.send_invoice_email(
            to_email=client.contact_email,
            organization_name=client.name,
            invoice_number=invoice.invoice_number,
            total=invoice.total,
            currency=invoice.currency,
            due_date=as_utc(invoice.due_date),
            pdf_url=invoice.pdf_url,
        )
        if not sent:
            logger.error("Invoice %s marked SENT but email delivery failed", invoice.invoice_number)
    return invoice


async def cancel_invoice(db: AsyncSession, invoice_id: str, reason: Optional[str] = None) -> Invoice:
    invoice = await get_invoice(db, invoice_id)
    if invoice.status == InvoiceStatus.PAID.value:
        raise BusinessRuleError("Cannot cancel a paid invoice")

    invoice.status = InvoiceStatus.CANCELLED.value
    note = f"Cancelled: {reason or 'No reason provided'}"
    invoice.description = f"{invoice.description} | {note}" if invoice.description else note
    await db.commit()
    logger.info("Cancelled invoice %s", invoice.invoice_number)
    return invoice


async def mark_overdue_invoices(db: AsyncSession, now: Optional[datetime] = None) -> int:
    """SENT invoices past their due date become OVERDUE. Does not commit."""
    now = now or datetime.now(UTC)
    result = await db.execute(
        update(Invoice)
        .where(Invoice.status == InvoiceStatus.SENT.value, Invoice.due_date < now)
        .values(status=InvoiceStatus.OVERDUE.value)
    )
    count = result.rowcount or 0
    if count:
        logger.info("Marked %d invoices as overdue", count)
    return count


async def invoice_stats(db: AsyncSession) -> dict[str, Any]:
    result = await db.execute(select(Invoice.status, func.count()).group_by(Invoice.status))
    counts = {status: n for status, n in result.all()}
    revenue = await db.execute(
        select(func.coalesce(func.sum(Invoice.total), 0.0)).where(
            Invoice.status == InvoiceStatus.PAID.value
        )
    )
    return {
        "total": sum(counts.values()),
        "draft": counts.get(InvoiceStatus.DRAFT.value, 0),
        "sent": counts.get(InvoiceStatus.SENT.value, 0),
        "paid": counts.get(InvoiceStatus.PAID.value, 0),
        "overdue": counts.get(InvoiceStatus.OVERDUE.value, 0),
        "cancelled": counts.get(InvoiceStatus.CANCELLED.value, 0),
        "total_revenue": float(revenue.scalar() or 0),
    }
