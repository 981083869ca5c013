"""
Client self-service portal API routes.

Every route is scoped to the organization linked to the signed-in user.
"""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from adapters.guild import guild_adapter
from api.deps_admin import get_portal_user
from api.schemas.client import ClientResponse
from api.schemas.common import PaginatedResponse
from api.schemas.invoice import InvoiceResponse
from api.schemas.payment import OrderResponse, PaymentResponse
from api.schemas.portal import (
    GuildAccessResponse,
    PortalDashboardResponse,
    PortalOrganizationResponse,
    PortalSubscription,
    PortalSubscriptionDetail,
)
from api.schemas.subscription import PlanResponse, SubscriptionResponse
from api.utils import paginate, total_pages
from core.domain.subscription import days_remaining
from core.exceptions import BusinessRuleError, NotFoundError
from infrastructure.config.settings import settings
from infrastructure.database.connection import get_db
from infrastructure.database.models import (
    ClientOrganization,
    Invoice,
    InvoiceStatus,
    Payment,
    Subscription,
    User,
)
from infrastructure.database.models.base import as_utc
from services import payments as payment_service
from services.clients import get_client
from services.subscriptions import get_current_subscription

router = APIRouter(prefix="/portal", tags=["Client Portal"])

EXPIRING_SOON_DAYS = 7


def _portal_subscription(subscription: Subscription) -> dict:
    remaining = days_remaining(as_utc(subscription.end_date), datetime.now(UTC))
    return {
        **SubscriptionResponse.model_validate(subscription).model_dump(),
        "days_remaining": remaining,
        "is_expiring_soon": 0 < remaining <= EXPIRING_SOON_DAYS,
    }


async def _organization(db: AsyncSession, user: User) -> ClientOrganization:
    return await get_client(db, user.client_organization_id)


@router.get("/dashboard", response_model=PortalDashboardResponse)
async def get_dashboard(
    current_user: User = Depends(get_portal_user),
    db: AsyncSession = Depends(get_db),
):
    client = await _organization(db, current_user)
    subscription = await get_current_subscription(db, client.id)

    payments = await db.execute(
        select(Payment)
        .where(Payment.client_organization_id == client.id)
        .order_by(Payment.created_at.desc())
        .limit(5)
    )
    invoices_due = await db.execute(
        select(func.count())
        .select_from(Invoice)
        .where(
            Invoice.client_organization_id == client.id,
            Invoice.status.in_([InvoiceStatus.SENT.value, InvoiceStatus.OVERDUE.value]),
        )
    )

    return PortalDashboardResponse(
        organization=ClientResponse.model_validate(client),
        subscription=PortalSubscription(**_portal_subscription(subscription)) if subscription else None,
        recent_payments=[PaymentResponse.model_validate(p) for p in payments.scalars()],
        invoices_due=invoices_due.scalar() or 0,
    )


@router.get("/organization", response_model=PortalOrganizationResponse)
async def get_organization(
    current_user: User = Depends(get_portal_user),
    db: AsyncSession = Depends(get_db),
):
    client = await _organization(db, current_user)
    subscription = await get_current_subscription(db, client.id)
    return PortalOrganizationResponse(
        **ClientResponse.model_validate(client).model_dump(),
        current_subscription=SubscriptionResponse.model_validate(subscription) if subscription else None,
        plan=PlanResponse.model_validate(subscription.plan) if subscription and subscription.plan else None,
    )


@router.get("/subscription", response_model=PortalSubscriptionDetail)
async def get_subscription(
    current_user: User = Depends(get_portal_user),
    db: AsyncSession = Depends(get_db),
):
    subscription = await get_current_subscription(db, current_user.client_organization_id)
    if subscription is None:
        raise NotFoundError("No active subscription found")
    return PortalSubscriptionDetail(
        **_portal_subscription(subscription),
        plan_details=PlanResponse.model_validate(subscription.plan) if subscription.plan else None,
    )


@router.post(
    "/subscription/renew",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
)
async def renew_subscription(
    current_user: User = Depends(get_portal_user),
    db: AsyncSession = Depends(get_db),
):
    """Open a Razorpay order to renew the organization's subscription."""
    client = await _organization(db, current_user)
    return await payment_service.create_renewal_order(db, client, current_user)


@router.get("/invoices", response_model=PaginatedResponse[InvoiceResponse])
async def list_invoices(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_portal_user),
    db: AsyncSession = Depends(get_db),
):
    query = (
        select(Invoice)
        .where(Invoice.client_organization_id == current_user.client_organization_id)
        .order_by(Invoice.created_at.desc())
    )
    items, total = await paginate(db, query, page, page_size)
    return {
        "items": items,
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": total_pages(total, page_size),
    }


@router.get("/payments", response_model=PaginatedResponse[PaymentResponse])
async def list_payments(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_portal_user),
    db: AsyncSession = Depends(get_db),
):
    query = (
        select(Payment)
        .where(Payment.client_organization_id == current_user.client_organization_id)
        .order_by(Payment.created_at.desc())
    )
    items, total = await paginate(db, query, page, page_size)
    return {
        "items": items,
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": total_pages(total, page_size),
    }


@router.get("/guild", response_model=GuildAccessResponse, response_model_exclude_none=True)
async def get_guild_access(
    current_user: User = Depends(get_portal_user),
    db: AsyncSession = Depends(get_db),
):
    """Links to the organization's Guild tenant and mobile apps."""
    client = await _organization(db, current_user)
    if not client.is_guild_provisioned or not client.guild_tenant_code:
        return GuildAccessResponse(
            is_provisioned=False,
            message="Guild platform is not yet set up for your organization. Please contact support.",
        )

    base_url = f"{settings.guild_frontend_url.rstrip('/')}/{client.guild_tenant_code}"
    return GuildAccessResponse(
        is_provisioned=True,
        tenant_code=client.guild_tenant_code,
        web_url=base_url,
        admin_url=f"{base_url}/admin",
        admin_email=client.guild_admin_email,
        android_apk_url=settings.guild_android_apk_url,
        play_store_url=settings.guild_play_store_url,
    )


@router.get("/guild/stats")
async def get_guild_stats(
    current_user: User = Depends(get_portal_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    client = await _organization(db, current_user)
    if not client.is_guild_provisioned or not client.guild_org_id:
        raise BusinessRuleError("Guild platform is not set up for your organization")
    return await guild_adapter.get_organization_stats(client.guild_org_id)
