"""
Payment API routes.

Checkout, verification and the webhook are reachable without an admin
session; order creation for arbitrary subscriptions and reporting are admin
only.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Header, Query, Request, status
from fastapi.responses import JSONResponse
from pydantic import EmailStr
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps_admin import get_current_admin_user
from api.middleware.rate_limit import get_rate_limit, limiter
from api.routes.auth import get_optional_user
from api.schemas.common import PaginatedResponse
from api.schemas.payment import (
    AlreadySubscribedResponse,
    CheckoutOrderResponse,
    CheckoutRequest,
    CreateOrderRequest,
    FreeTrialResponse,
    LookupOrganizationResponse,
    OrderResponse,
    PaymentFailureRequest,
    PaymentResponse,
    PaymentStatsResponse,
    PaymentVerificationResponse,
    VerifyPaymentRequest,
    WebhookResponse,
)
from api.utils import paginate, total_pages
from infrastructure.database.connection import get_db
from infrastructure.database.models import Payment, PaymentStatus, User
from services import payments as payment_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["Payments"])


# ============================================================================
# Public checkout
# ============================================================================


@router.get("/lookup-organization", response_model=LookupOrganizationResponse)
async def lookup_organization(
    email: EmailStr = Query(...),
    db: AsyncSession = Depends(get_db),
):
    """Prefill checkout for an organization that is already a client."""
    return await payment_service.lookup_organization(db, email)


@router.post(
    "/checkout",
    status_code=status.HTTP_201_CREATED,
    responses={
        200: {"model": AlreadySubscribedResponse},
        201: {"model": CheckoutOrderResponse},
    },
)
@limiter.limit(get_rate_limit("checkout"))
async def checkout(
    request: Request,
    body: CheckoutRequest,
    current_user: Annotated[Optional[User], Depends(get_optional_user)],
    db: AsyncSession = Depends(get_db),
):
    """
    Start a subscription from the pricing page.

    Creates or updates the organization and its TRIAL subscription, then
    either starts the free trial or opens a Razorpay order.
    """
    result = await payment_service.checkout(
        db,
        plan_id=body.plan_id,
        billing_cycle=body.billing_cycle.value,
        organization_details=body.organization_details.model_dump(),
        is_free_trial=body.is_free_trial,
        user=current_user,
        request=request,
    )

    if result.get("already_subscribed"):
        content = AlreadySubscribedResponse(**result)
        status_code = status.HTTP_200_OK
    elif result.get("is_free_trial"):
        content = FreeTrialResponse(**result)
        status_code = status.HTTP_201_CREATED
    else:
        content = CheckoutOrderResponse(**result)
        status_code = status.HTTP_201_CREATED
    return JSONResponse(content=content.model_dump(mode="json"), status_code=status_code)


@router.post("/verify-checkout", response_model=PaymentVerificationResponse)
async def verify_checkout(
    request: Request,
    body: VerifyPaymentRequest,
    current_user: Annotated[Optional[User], Depends(get_optional_user)],
    db: AsyncSession = Depends(get_db),
):
    """Verify the Razorpay Checkout signature and activate the subscription."""
    return await payment_service.verify_checkout(
        db,
        body.razorpay_order_id,
        body.razorpay_payment_id,
        body.razorpay_signature,
        user=current_user,
        request=request,
    )


@router.post("/webhook", response_model=WebhookResponse)
async def razorpay_webhook(
    request: Request,
    x_razorpay_signature: Annotated[Optional[str], Header()] = None,
    db: AsyncSession = Depends(get_db),
):
    """
    Razorpay webhook receiver.

    The signature covers the raw body, so the body is read before any
    parsing.
    """
    raw_body = await request.body()
    return await payment_service.handle_webhook(db, raw_body, x_razorpay_signature, request)


# ============================================================================
# Admin
# ============================================================================


@router.post("/create-order", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    body: CreateOrderRequest,
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    return await payment_service.create_admin_order(
        db, admin_user, subscription_id=body.subscription_id, invoice_id=body.invoice_id
    )


@router.post("/verify", response_model=PaymentVerificationResponse)
async def verify_payment(
    request: Request,
    body: VerifyPaymentRequest,
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    return await payment_service.verify_checkout(
        db,
        body.razorpay_order_id,
        body.razorpay_payment_id,
        body.razorpay_signature,
        request=request,
    )


@router.post("/failure", response_model=PaymentResponse)
async def report_payment_failure(
    request: Request,
    body: PaymentFailureRequest,
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    return await payment_service.record_payment_failure(
        db,
        body.razorpay_order_id,
        error_code=body.error_code,
        error_description=body.error_description,
        request=request,
    )


@router.get("", response_model=PaginatedResponse[PaymentResponse])
async def list_payments(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    status: Optional[PaymentStatus] = Query(None),
    client_id: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None),
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    query = select(Payment)
    if status:
        query = query.where(Payment.status == status.value)
    if client_id:
        query = query.where(Payment.client_organization_id == client_id)
    if user_id:
        query = query.where(Payment.user_id == user_id)
    query = query.order_by(Payment.created_at.desc())

    items, total = await paginate(db, query, page, page_size)
    return {
        "items": items,
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": total_pages(total, page_size),
    }


@router.get("/stats", response_model=PaymentStatsResponse)
async def get_payment_stats(
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    return await payment_service.payment_stats(db)


@router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment(
    payment_id: str,
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    """Look up by payment id or Razorpay order id."""
    return await payment_service.get_payment(db, payment_id)
