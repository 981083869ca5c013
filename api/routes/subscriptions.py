"""
Plan catalog and subscription API routes.

The active plan list is public (pricing page); everything else is admin.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps_admin import get_current_admin_user, get_current_super_admin_user
from api.schemas.client import SubscriptionDetailResponse
from api.schemas.common import PaginatedResponse
from api.schemas.invoice import InvoiceResponse
from api.schemas.payment import PaymentResponse
from api.schemas.subscription import (
    PlanCreate,
    PlanResponse,
    PlanUpdate,
    SubscriptionListItem,
    SubscriptionResponse,
    SubscriptionStatsResponse,
)
from api.utils import paginate, total_pages
from infrastructure.database.connection import get_db
from infrastructure.database.models import (
    Invoice,
    Payment,
    Subscription,
    SubscriptionStatus,
    User,
)
from services import subscriptions as subscription_service

router = APIRouter(prefix="/subscriptions", tags=["Subscriptions"])


# ============================================================================
# Plans
# ============================================================================


@router.get("/plans", response_model=list[PlanResponse])
async def list_active_plans(db: AsyncSession = Depends(get_db)):
    """Active plans in display order."""
    return await subscription_service.list_plans(db)


@router.get("/plans/all", response_model=list[PlanResponse])
async def list_all_plans(
    include_inactive: bool = Query(True),
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    return await subscription_service.list_plans(db, include_inactive=include_inactive)


@router.get("/plans/{plan_id}", response_model=PlanResponse)
async def get_plan(
    plan_id: str,
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    return await subscription_service.get_plan(db, plan_id)


@router.post("/plans", response_model=PlanResponse, status_code=status.HTTP_201_CREATED)
async def create_plan(
    body: PlanCreate,
    admin_user: User = Depends(get_current_super_admin_user),
    db: AsyncSession = Depends(get_db),
):
    return await subscription_service.create_plan(db, body.model_dump())


@router.put("/plans/{plan_id}", response_model=PlanResponse)
async def update_plan(
    plan_id: str,
    body: PlanUpdate,
    admin_user: User = Depends(get_current_super_admin_user),
    db: AsyncSession = Depends(get_db),
):
    """Partial update. The plan code cannot be changed."""
    return await subscription_service.update_plan(db, plan_id, body.model_dump(exclude_unset=True))


# ============================================================================
# Subscriptions
# ============================================================================


@router.get("", response_model=PaginatedResponse[SubscriptionListItem])
async def list_subscriptions(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    status: Optional[SubscriptionStatus] = Query(None),
    client_id: Optional[str] = Query(None),
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    query = select(Subscription)
    if status:
        query = query.where(Subscription.status == status.value)
    if client_id:
        query = query.where(Subscription.client_organization_id == client_id)
    query = query.order_by(Subscription.created_at.desc())

    items, total = await paginate(db, query, page, page_size)
    return {
        "items": items,
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": total_pages(total, page_size),
    }


@router.get("/stats", response_model=SubscriptionStatsResponse)
async def get_subscription_stats(
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    return await subscription_service.subscription_stats(db)


@router.get("/expiring", response_model=list[SubscriptionListItem])
async def get_expiring_subscriptions(
    days: int = Query(7, ge=1, le=365),
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    return await subscription_service.get_expiring_subscriptions(db, days)


@router.get("/{subscription_id}", response_model=SubscriptionDetailResponse)
async def get_subscription(
    subscription_id: str,
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    subscription = await subscription_service.get_subscription(db, subscription_id)

    payments = await db.execute(
        select(Payment)
        .where(Payment.subscription_id == subscription.id)
        .order_by(Payment.created_at.desc())
    )
    invoices = await db.execute(
        select(Invoice)
        .where(Invoice.subscription_id == subscription.id)
        .order_by(Invoice.created_at.desc())
    )

    return SubscriptionDetailResponse(
        **SubscriptionListItem.model_validate(subscription).model_dump(),
        payments=[PaymentResponse.model_validate(p) for p in payments.scalars()],
        invoices=[InvoiceResponse.model_validate(i) for i in invoices.scalars()],
    )


@router.put("/{subscription_id}/activate", response_model=SubscriptionResponse)
async def activate_subscription(
    subscription_id: str,
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    return await subscription_service.activate_subscription(db, subscription_id)


@router.put("/{subscription_id}/renew", response_model=SubscriptionResponse)
async def renew_subscription(
    subscription_id: str,
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    """Extend by one billing cycle from the later of the current end and now."""
    return await subscription_service.renew_subscription(db, subscription_id)


@router.put("/{subscription_id}/cancel", response_model=SubscriptionResponse)
async def cancel_subscription(
    subscription_id: str,
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    return await subscription_service.cancel_subscription(db, subscription_id)
