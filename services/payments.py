"""
Payment orchestration on top of Razorpay.

Checkout creates (or reuses) the client and its subscription and opens a
Razorpay order. A successful payment, whether reported by the browser
(``verify_checkout``) or by Razorpay's webhook, goes through
``complete_payment``, which is idempotent.
"""

import json
import logging
from datetime import UTC, datetime
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import Request

from adapters.email.resend_adapter import email_service
from adapters.payments import RazorpayOrder, razorpay_adapter
from core.exceptions import BusinessRuleError, NotFoundError
from infrastructure.database.models import (
    ActivityType,
    ClientOrganization,
    ClientStatus,
    Invoice,
    NotificationType,
    Payment,
    PaymentMethod,
    PaymentStatus,
    Subscription,
    SubscriptionStatus,
    User,
)
from infrastructure.database.models.base import as_utc
from services.activity import log_activity
from services.clients import find_client_by_email
from services.invoices import build_invoice, get_invoice, mark_paid
from services.notifications import create_notification
from services.subscriptions import (
    apply_activation,
    apply_renewal,
    build_subscription,
    change_plan,
    get_current_subscription,
    get_plan,
    get_subscription,
    is_lapsed_trial,
    sync_subscription_to_guild,
)

logger = logging.getLogger(__name__)

# Subscriptions a client may pay to renew from the portal
RENEWABLE_STATUSES = (
    SubscriptionStatus.TRIAL.value,
    SubscriptionStatus.ACTIVE.value,
    SubscriptionStatus.GRACE_PERIOD.value,
    SubscriptionStatus.EXPIRED.value,
)


def _timestamp_ms(now: Optional[datetime] = None) -> int:
    return int((now or datetime.now(UTC)).timestamp() * 1000)


async def create_payment_order(
    db: AsyncSession,
    amount: float,
    currency: str,
    receipt: str,
    notes: dict[str, Any],
    description: str,
    user_id: Optional[str] = None,
    client_id: Optional[str] = None,
    subscription_id: Optional[str] = None,
    invoice_id: Optional[str] = None,
) -> tuple[Payment, RazorpayOrder]:
    """
    Open a Razorpay order and record the matching PENDING payment.

    Does not commit.

    Raises:
        RazorpayError: Order creation failed
    """
    order = await razorpay_adapter.create_order(
        amount=amount, currency=currency, receipt=receipt, notes=notes
    )
    payment = Payment(
        amount=amount,
        currency=currency,
        status=PaymentStatus.PENDING.value,
        payment_method=PaymentMethod.RAZORPAY.value,
        razorpay_order_id=order.id,
        description=description,
        user_id=user_id,
        client_organization_id=client_id,
        subscription_id=subscription_id,
        invoice_id=invoice_id,
    )
    db.add(payment)
    await db.flush()
    return payment, order


async def get_payment(db: AsyncSession, payment_id: str) -> Payment:
    """Look a payment up by its id or by its Razorpay order id."""
    result = await db.execute(
        select(Payment).where(
            (Payment.id == payment_id) | (Payment.razorpay_order_id == payment_id)
        )
    )
    payment = result.scalars().first()
    if payment is None:
        raise NotFoundError("Payment not found")
    return payment


async def get_payment_by_order(
    db: AsyncSession, order_id: str, for_update: bool = False
) -> Optional[Payment]:
    """
    Look a payment up by its Razorpay order id.

    With ``for_update`` the row is locked until the caller commits, so a
    webhook and a browser verification for the same order are applied once.
    """
    query = select(Payment).where(Payment.razorpay_order_id == order_id)
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def _payment_result(db: AsyncSession, payment: Payment) -> dict[str, Any]:
    subscription = (
        await db.get(Subscription, payment.subscription_id) if payment.subscription_id else None
    )
    invoice = await db.get(Invoice, payment.invoice_id) if payment.invoice_id else None
    return {
        "payment": payment,
        "subscription": subscription,
        "invoice": invoice,
        "redirect_url": "/portal/subscription",
    }


async def complete_payment(
    db: AsyncSession,
    payment: Payment,
    razorpay_payment_id: Optional[str],
    razorpay_signature: Optional[str] = None,
    user: Optional[User] = None,
    request: Optional[Request] = None,
) -> dict[str, Any]:
    """
    Record a captured payment and apply it.

    A TRIAL subscription is activated, as is a trial that lapsed unpaid,
    which restarts its cycle from now. A paid ACTIVE, GRACE_PERIOD or
    EXPIRED subscription is renewed for another cycle. The linked invoice is marked PAID, or
    a PAID invoice is generated for a subscription payment. Calling this
    again for a SUCCESS payment returns the stored result unchanged.
    """
    if payment.status == PaymentStatus.SUCCESS.value:
        logger.info("Payment %s already processed", payment.razorpay_order_id)
        return await _payment_result(db, payment)

    now = datetime.now(UTC)
    payment.status = PaymentStatus.SUCCESS.value
    payment.razorpay_payment_id = razorpay_payment_id or payment.razorpay_payment_id
    if razorpay_signature:
        payment.razorpay_signature = razorpay_signature
    payment.paid_at = now
    payment.failure_reason = None

    subscription = (
        await db.get(Subscription, payment.subscription_id) if payment.subscription_id else None
    )
    period_start = None
    was_expired = False
    if subscription is not None:
        if subscription.status == SubscriptionStatus.CANCELLED.value:
            logger.warning(
                "Payment %s received for cancelled subscription %s",
                payment.razorpay_order_id,
                subscription.id,
            )
        elif subscription.status == SubscriptionStatus.TRIAL.value:
            apply_activation(subscription, now)
        elif is_lapsed_trial(subscription):
            # Never paid: the unused trial end date buys nothing
            was_expired = subscription.status == SubscriptionStatus.EXPIRED.value
            apply_activation(subscription, now)
        else:
            was_expired = subscription.status == SubscriptionStatus.EXPIRED.value
            period_start = max(as_utc(subscription.end_date), now)
            apply_renewal(subscription, now)

    invoice = None
    if payment.invoice_id:
        invoice = await get_invoice(db, payment.invoice_id)
        mark_paid(invoice, now)
    elif subscription is not None:
        invoice = build_invoice(subscription, period_start=period_start)
        mark_paid(invoice, now)
        db.add(invoice)
        await db.flush()
        payment.invoice_id = invoice.id

    payer = user
    if payer is None and payment.user_id:
        payer = await db.get(User, payment.user_id)
    if (
        user is not None
        and not user.client_organization_id
        and payment.client_organization_id
    ):
        user.client_organization_id = payment.client_organization_id
        payment.user_id = payment.user_id or user.id

    client = (
        await db.get(ClientOrganization, payment.client_organization_id)
        if payment.client_organization_id
        else None
    )
    plan_name = subscription.plan.name if subscription is not None and subscription.plan else ""

    log_activity(
        db,
        ActivityType.PAYMENT_SUCCESS,
        f"Payment of {payment.amount:.2f} {payment.currency} received",
        user_id=payer.id if payer else None,
        request=request,
        metadata={
            "payment_id": payment.id,
            "order_id": payment.razorpay_order_id,
            "subscription_id": payment.subscription_id,
            "invoice_id": payment.invoice_id,
        },
        revenue=payment.amount,
    )
    create_notification(
        db,
        NotificationType.PAYMENT_RECEIVED,
        "Payment Received",
        f"{client.name if client else 'A client'} paid {payment.amount:.2f} {payment.currency}",
        {
            "payment_id": payment.id,
            "client_id": payment.client_organization_id,
            "amount": payment.amount,
        },
    )
    await db.commit()
    logger.info("Payment %s completed", payment.razorpay_order_id)

    to_email = payer.email if payer else (client.contact_email if client else None)
    to_name = payer.name if payer else (client.name if client else "")
    if to_email:
        await email_service.send_payment_confirmation(
            to_email=to_email,
            name=to_name,
            plan_name=plan_name,
            billing_cycle=subscription.billing_cycle if subscription else "",
            amount=payment.amount,
            currency=payment.currency,
            invoice_number=invoice.invoice_number if invoice else None,
            valid_until=as_utc(subscription.end_date) if subscription else None,
        )
    await email_service.send_payment_admin_notification(
        organization_name=client.name if client else "Unknown organization",
        amount=payment.amount,
        currency=payment.currency,
        plan_name=plan_name,
    )
    if subscription is not None:
        await sync_subscription_to_guild(subscription, reactivate=was_expired)

    return {
        "payment": payment,
        "subscription": subscription,
        "invoice": invoice,
        "redirect_url": "/portal/subscription",
    }


async def verify_checkout(
    db: AsyncSession,
    razorpay_order_id: str,
    razorpay_payment_id: str,
    razorpay_signature: str,
    user: Optional[User] = None,
    request: Optional[Request] = None,
) -> dict[str, Any]:
    """
    Verify the Checkout signature and complete the payment.

    Raises:
        BusinessRuleError: Signature mismatch
        NotFoundError: No payment for the order
    """
    if not razorpay_adapter.verify_payment_signature(
        razorpay_order_id, razorpay_payment_id, razorpay_signature
    ):
        raise BusinessRuleError("Payment verification failed")

    payment = await get_payment_by_order(db, razorpay_order_id, for_update=True)
    if payment is None:
        raise NotFoundError("Payment record not found")

    return await complete_payment(
        db,
        payment,
        razorpay_payment_id,
        razorpay_signature,
        user=user,
        request=request,
    )


async def record_payment_failure(
    db: AsyncSession,
    razorpay_order_id: str,
    error_code: Optional[str] = None,
    error_description: Optional[str] = None,
    request: Optional[Request] = None,
) -> Payment:
    """Mark a payment FAILED. A payment that already succeeded is left alone."""
    payment = await get_payment_by_order(db, razorpay_order_id, for_update=True)
    if payment is None:
        raise NotFoundError("Payment record not found")

    if payment.status == PaymentStatus.SUCCESS.value:
        logger.warning("Ignoring failure report for completed payment %s", razorpay_order_id)
        return payment

    reason = f"{error_description or 'Payment failed'} ({error_code or 'UNKNOWN'})"
    payment.status = PaymentStatus.FAILED.value
    payment.failure_reason = reason
    log_activity(
        db,
        ActivityType.PAYMENT_FAILED,
        f"Payment failed for order {razorpay_order_id}",
        user_id=payment.user_id,
        request=request,
        metadata={"payment_id": payment.id, "order_id": razorpay_order_id, "error_code": error_code},
        success=False,
        error_message=reason,
    )
    await db.commit()
    logger.info("Payment %s failed: %s", razorpay_order_id, reason)
    return payment


async def handle_webhook(
    db: AsyncSession,
    raw_body: bytes,
    signature: Optional[str],
    request: Optional[Request] = None,
) -> dict[str, str]:
    """
    Process a Razorpay webhook.

    The signature is checked against the raw body before it is parsed.

    Raises:
        BusinessRuleError: Missing or invalid signature, or unreadable body
    """
    if not signature or not razorpay_adapter.verify_webhook_signature(raw_body, signature):
        raise BusinessRuleError("Invalid webhook signature")

    try:
        payload = json.loads(raw_body)
    except ValueError as e:
        raise BusinessRuleError("Invalid webhook payload") from e

    event = razorpay_adapter.parse_webhook_event(payload)

    if event.event in ("payment.captured", "payment.failed"):
        payment = (
            await get_payment_by_order(db, event.order_id, for_update=True)
            if event.order_id
            else None
        )
        if payment is None:
            logger.warning("Webhook %s for unknown order %s", event.event, event.order_id)
        elif event.event == "payment.captured":
            await complete_payment(db, payment, event.payment_id, request=request)
        else:
            await record_payment_failure(
                db,
                payment.razorpay_order_id,
                error_code=event.error_code,
                error_description=event.error_description,
                request=request,
            )
    elif event.event == "order.paid":
        logger.info("Razorpay order %s paid", event.order_id)
    else:
        logger.info("Ignoring Razorpay webhook event %s", event.event)

    return {"status": "ok"}


async def checkout(
    db: AsyncSession,
    plan_id: str,
    billing_cycle: str,
    organization_details: dict[str, Any],
    is_free_trial: bool = False,
    user: Optional[User] = None,
    request: Optional[Request] = None,
) -> dict[str, Any]:
    """
    Public checkout: organization, subscription and (unless a free trial)
    a Razorpay order in one step.

    Returns ``already_subscribed`` when the organization's current
    subscription is ACTIVE; no order is created in that case.
    """
    plan = await get_plan(db, plan_id)
    if not plan.is_active:
        raise BusinessRuleError("This plan is not available")

    details = {**organization_details, "contact_email": organization_details["contact_email"].lower()}
    client = await find_client_by_email(db, details["contact_email"])
    is_existing_client = client is not None
    subscription = None

    if client is not None:
        client.name = details["name"]
        client.short_name = details["short_name"]
        if details.get("contact_phone"):
            client.contact_phone = details["contact_phone"]
        if details.get("address"):
            client.address = details["address"]

        subscription = await get_current_subscription(db, client.id)
        if subscription is not None and subscription.status == SubscriptionStatus.ACTIVE.value:
            await db.commit()
            return {
                "already_subscribed": True,
                "subscription_id": subscription.id,
                "redirect_url": "/portal/subscription",
            }

        if subscription is not None and (
            subscription.plan_id != plan.id or subscription.billing_cycle != billing_cycle
        ):
            change_plan(subscription, plan, billing_cycle)
    else:
        client = ClientOrganization(
            name=details["name"],
            short_name=details["short_name"],
            contact_email=details["contact_email"],
            contact_phone=details.get("contact_phone"),
            address=details.get("address"),
            status=ClientStatus.PENDING.value,
        )
        db.add(client)
        await db.flush()
        log_activity(
            db,
            ActivityType.CLIENT_CREATED,
            f"Client organization {client.name} created at checkout",
            user_id=user.id if user else None,
            request=request,
            metadata={"client_id": client.id},
        )

    if subscription is None:
        subscription = build_subscription(client, plan, billing_cycle)
        db.add(subscription)
        await db.flush()
        log_activity(
            db,
            ActivityType.SUBSCRIPTION_CREATED,
            f"{plan.name} subscription created for {client.name}",
            user_id=user.id if user else None,
            request=request,
            metadata={"subscription_id": subscription.id, "client_id": client.id},
        )

    if user is not None and not user.client_organization_id:
        user.client_organization_id = client.id

    if is_free_trial:
        if subscription.status != SubscriptionStatus.TRIAL.value:
            raise BusinessRuleError("A free trial is only available for new subscriptions")
        create_notification(
            db,
            NotificationType.SUBSCRIPTION_CREATED,
            "New Free Trial",
            f"{client.name} started a free trial of the {plan.name} plan",
            {"client_id": client.id, "subscription_id": subscription.id, "plan": plan.code},
        )
        await db.commit()
        await email_service.send_trial_signup_admin_notification(
            organization_name=client.name,
            contact_email=client.contact_email,
            plan_name=plan.name,
            trial_ends_at=as_utc(subscription.trial_ends_at),
        )
        logger.info("Free trial started for client %s", client.id)
        return {
            "client_id": client.id,
            "subscription_id": subscription.id,
            "is_free_trial": True,
            "trial_ends_at": subscription.trial_ends_at,
            "is_existing_client": is_existing_client,
        }

    payment, order = await create_payment_order(
        db,
        amount=subscription.amount,
        currency=subscription.currency,
        receipt=f"ck_{_timestamp_ms()}",
        notes={
            "subscription_id": subscription.id,
            "client_id": client.id,
            "plan_code": plan.code,
            "billing_cycle": subscription.billing_cycle,
        },
        description=f"{plan.name} Plan - {subscription.billing_cycle} Subscription",
        user_id=user.id if user else None,
        client_id=client.id,
        subscription_id=subscription.id,
    )
    await db.commit()
    logger.info("Checkout order %s created for client %s", order.id, client.id)
    return {
        "client_id": client.id,
        "subscription_id": subscription.id,
        "order_id": order.id,
        "amount": order.amount,
        "currency": order.currency,
        "key_id": razorpay_adapter.key_id,
        "payment_id": payment.id,
        "plan_name": plan.name,
        "billing_cycle": subscription.billing_cycle,
        "is_existing_client": is_existing_client,
    }


async def create_renewal_order(
    db: AsyncSession, client: ClientOrganization, user: User
) -> dict[str, Any]:
    """Razorpay order for the portal's renew button."""
    subscription = await get_current_subscription(db, client.id, statuses=RENEWABLE_STATUSES)
    if subscription is None:
        raise NotFoundError("No subscription found")

    plan_name = subscription.plan.name if subscription.plan else "Subscription"
    payment, order = await create_payment_order(
        db,
        amount=subscription.amount,
        currency=subscription.currency,
        receipt=f"renew_{subscription.id[:8]}_{_timestamp_ms()}",
        notes={
            "type": "RENEWAL",
            "subscription_id": subscription.id,
            "client_id": client.id,
        },
        description=f"{plan_name} Plan - {subscription.billing_cycle} Renewal",
        user_id=user.id,
        client_id=client.id,
        subscription_id=subscription.id,
    )
    await db.commit()
    logger.info("Renewal order %s created for subscription %s", order.id, subscription.id)
    return {
        "order_id": order.id,
        "amount": order.amount,
        "currency": order.currency,
        "key_id": razorpay_adapter.key_id,
        "payment_id": payment.id,
        "subscription_id": subscription.id,
        "plan_name": plan_name,
        "billing_cycle": subscription.billing_cycle,
    }


async def create_admin_order(
    db: AsyncSession,
    admin: User,
    subscription_id: Optional[str] = None,
    invoice_id: Optional[str] = None,
) -> dict[str, Any]:
    """Razorpay order raised by an admin against a subscription or an invoice."""
    invoice = await get_invoice(db, invoice_id) if invoice_id else None
    if invoice is not None:
        subscription_id = subscription_id or invoice.subscription_id
    subscription = await get_subscription(db, subscription_id) if subscription_id else None
    if invoice is None and subscription is None:
        raise BusinessRuleError("Either subscription_id or invoice_id is required")

    if invoice is not None:
        amount, currency = invoice.total, invoice.currency
        client_id = invoice.client_organization_id
        description = f"Invoice {invoice.invoice_number}"
        receipt = invoice.invoice_number
    else:
        amount, currency = subscription.amount, subscription.currency
        client_id = subscription.client_organization_id
        description = f"{subscription.plan.name if subscription.plan else 'Subscription'} Plan"
        receipt = f"sub_{subscription.id[:8]}_{_timestamp_ms()}"

    payment, order = await create_payment_order(
        db,
        amount=amount,
        currency=currency,
        receipt=receipt,
        notes={
            "subscription_id": subscription.id if subscription else "",
            "invoice_id": invoice.id if invoice else "",
            "client_id": client_id,
        },
        description=description,
        user_id=admin.id,
        client_id=client_id,
        subscription_id=subscription.id if subscription else None,
        invoice_id=invoice.id if invoice else None,
    )
    await db.commit()
    return {
        "order_id": order.id,
        "amount": order.amount,
        "currency": order.currency,
        "key_id": razorpay_adapter.key_id,
        "payment_id": payment.id,
    }


async def lookup_organization(db: AsyncSession, email: str) -> dict[str, Any]:
    """Prefill data for checkout when the contact email is already known."""
    client = await find_client_by_email(db, email.strip())
    if client is None:
        return {"exists": False}
    subscription = await get_current_subscription(db, client.id)
    return {
        "exists": True,
        "organization": {
            "name": client.name,
            "short_name": client.short_name,
            "contact_email": client.contact_email,
            "contact_phone": client.contact_phone or "",
            "address": client.address or "",
        },
        "subscription": subscription,
        "status": client.status,
    }


async def payment_stats(db: AsyncSession) -> dict[str, Any]:
    result = await db.execute(select(Payment.status, func.count()).group_by(Payment.status))
    counts = {status: n for status, n in result.all()}

    now = datetime.now(UTC)
    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    success = Payment.status == PaymentStatus.SUCCESS.value
    total_revenue = await db.execute(select(func.coalesce(func.sum(Payment.amount), 0.0)).where(success))
    month_revenue = await db.execute(
        select(func.coalesce(func.sum(Payment.amount), 0.0)).where(
            success, Payment.paid_at >= month_start
        )
    )
    return {
        "total": sum(counts.values()),
        "pending": counts.get(PaymentStatus.PENDING.value, 0),
        "success": counts.get(PaymentStatus.SUCCESS.value, 0),
        "failed": counts.get(PaymentStatus.FAILED.value, 0),
        "refunded": counts.get(PaymentStatus.REFUNDED.value, 0),
        "total_revenue": float(total_revenue.scalar() or 0),
        "this_month_revenue": float(month_revenue.scalar() or 0),
    }