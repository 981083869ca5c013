"""
Client organization API routes (admin).
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps_admin import get_current_admin_user
from api.schemas.auth import UserResponse
from api.schemas.client import (
    ClientAdminCreate,
    ClientCreate,
    ClientDetailResponse,
    ClientListItem,
    ClientResponse,
    ClientStatsResponse,
    ClientUpdate,
    ProvisionResponse,
)
from api.schemas.common import PaginatedResponse
from api.schemas.invoice import InvoiceResponse
from api.schemas.payment import PaymentResponse
from api.schemas.subscription import SubscriptionCreate, SubscriptionResponse
from api.utils import escape_like, paginate, total_pages
from infrastructure.database.connection import get_db
from infrastructure.database.models import (
    ClientOrganization,
    ClientStatus,
    Invoice,
    Payment,
    Subscription,
    User,
)
from services import clients as client_service
from services import subscriptions as subscription_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clients", tags=["Clients"])


@router.post("", response_model=ClientResponse, status_code=status.HTTP_201_CREATED)
async def create_client(
    request: Request,
    body: ClientCreate,
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a client, optionally converting a demo request."""
    data = body.model_dump(exclude={"demo_request_id"})
    return await client_service.create_client(
        db,
        data,
        demo_request_id=body.demo_request_id,
        created_by=admin_user,
        request=request,
    )


@router.get("", response_model=PaginatedResponse[ClientListItem])
async def list_clients(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    status: Optional[ClientStatus] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    query = select(ClientOrganization)
    if status:
        query = query.where(ClientOrganization.status == status.value)
    if search:
        pattern = f"%{escape_like(search)}%"
        query = query.where(
            or_(
                ClientOrganization.name.ilike(pattern),
                ClientOrganization.short_name.ilike(pattern),
                ClientOrganization.contact_email.ilike(pattern),
            )
        )
    query = query.order_by(ClientOrganization.created_at.desc())

    clients, total = await paginate(db, query, page, page_size)
    admin_counts = await client_service.admin_user_counts(db, [c.id for c in clients])

    items = []
    for client in clients:
        current = await subscription_service.get_current_subscription(db, client.id)
        items.append(
            ClientListItem(
                **ClientResponse.model_validate(client).model_dump(),
                current_subscription=(
                    SubscriptionResponse.model_validate(current) if current else None
                ),
                admin_count=admin_counts.get(client.id, 0),
            )
        )

    return {
        "items": items,
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": total_pages(total, page_size),
    }


@router.get("/stats", response_model=ClientStatsResponse)
async def get_client_stats(
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    return await client_service.client_stats(db)


@router.get("/{client_id}", response_model=ClientDetailResponse)
async def get_client(
    client_id: str,
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    """Client with its subscriptions, users, and the latest invoices and payments."""
    client = await client_service.get_client(db, client_id)

    subscriptions = await db.execute(
        select(Subscription)
        .where(Subscription.client_organization_id == client.id)
        .order_by(Subscription.created_at.desc())
    )
    users = await db.execute(
        select(User).where(User.client_organization_id == client.id).order_by(User.created_at)
    )
    invoices = await db.execute(
        select(Invoice)
        .where(Invoice.client_organization_id == client.id)
        .order_by(Invoice.created_at.desc())
        .limit(10)
    )
    payments = await db.execute(
        select(Payment)
        .where(Payment.client_organization_id == client.id)
        .order_by(Payment.created_at.desc())
        .limit(10)
    )

    return ClientDetailResponse(
        **ClientResponse.model_validate(client).model_dump(),
        subscriptions=[SubscriptionResponse.model_validate(s) for s in subscriptions.scalars()],
        users=[UserResponse.model_validate(u) for u in users.scalars()],
        invoices=[InvoiceResponse.model_validate(i) for i in invoices.scalars()],
        payments=[PaymentResponse.model_validate(p) for p in payments.scalars()],
    )


@router.put("/{client_id}", response_model=ClientResponse)
async def update_client(
    client_id: str,
    body: ClientUpdate,
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    data = body.model_dump(exclude_unset=True)
    if data.get("status") is not None:
        data["status"] = data["status"].value
    return await client_service.update_client(db, client_id, data)


@router.post(
    "/{client_id}/admins",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_client_admin(
    client_id: str,
    body: ClientAdminCreate,
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a portal login for the organization."""
    return await client_service.create_client_user(
        db, client_id, body.name, body.email, body.password
    )


@router.post("/{client_id}/provision", response_model=ProvisionResponse)
async def provision_client(
    request: Request,
    client_id: str,
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Provision the client's tenant on Guild.

    The returned admin credentials are shown once; they are not stored.
    """
    client, guild_org = await client_service.provision_client(db, client_id, request=request)
    return ProvisionResponse(
        client=ClientResponse.model_validate(client),
        tenant_code=guild_org.tenant_code,
        guild_org_id=guild_org.org_id,
        admin_credentials=guild_org.admin_credentials or {},
        message=f"{client.name} has been provisioned on Guild",
    )


@router.get("/{client_id}/guild-stats")
async def get_client_guild_stats(
    client_id: str,
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    return await client_service.get_guild_stats(db, client_id)


@router.post(
    "/{client_id}/subscription",
    response_model=SubscriptionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_client_subscription(
    client_id: str,
    body: SubscriptionCreate,
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    """Start a TRIAL subscription for the client."""
    return await subscription_service.create_subscription(
        db,
        client_id,
        body.plan_id,
        body.billing_cycle,
        start_date=body.start_date,
        auto_renew=body.auto_renew,
        custom_max_users=body.custom_max_users,
        custom_storage_quota_mb=body.custom_storage_quota_mb,
    )
