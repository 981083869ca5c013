"""
Client organization service, including Guild tenant provisioning.
"""

import logging
from datetime import UTC, datetime
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import Request

from adapters.guild import GuildOrganization, guild_adapter
from core.exceptions import BusinessRuleError, ConflictError, NotFoundError
from core.security.password import password_hasher
from infrastructure.database.models import (
    ActivityType,
    AuthProvider,
    ClientOrganization,
    ClientStatus,
    DemoRequest,
    DemoStatus,
    NotificationType,
    SubscriptionStatus,
    User,
    UserRole,
)
from services.activity import log_activity
from services.notifications import create_notification
from services.subscriptions import get_current_subscription

logger = logging.getLogger(__name__)

# Set only by provisioning, never by a plain update
_PROTECTED_FIELDS = {
    "id",
    "guild_tenant_code",
    "guild_org_id",
    "is_guild_provisioned",
    "provisioned_at",
    "guild_admin_email",
}


async def find_client_by_email(db: AsyncSession, email: str) -> Optional[ClientOrganization]:
    result = await db.execute(
        select(ClientOrganization).where(func.lower(ClientOrganization.contact_email) == email.lower())
    )
    return result.scalar_one_or_none()


async def get_client(db: AsyncSession, client_id: str) -> ClientOrganization:
    client = await db.get(ClientOrganization, client_id)
    if client is None:
        raise NotFoundError("Client organization not found")
    return client


async def create_client(
    db: AsyncSession,
    data: dict[str, Any],
    demo_request_id: Optional[str] = None,
    created_by: Optional[User] = None,
    request: Optional[Request] = None,
) -> ClientOrganization:
    """
    Create a PENDING client organization.

    When converted from a demo request, the request is marked CONVERTED in
    the same transaction.
    """
    data = {**data, "contact_email": data["contact_email"].lower()}
    if await find_client_by_email(db, data["contact_email"]):
        raise ConflictError("A client with this contact email already exists")

    demo = None
    if demo_request_id:
        demo = await db.get(DemoRequest, demo_request_id)
        if demo is None:
            raise NotFoundError("Demo request not found")

    client = ClientOrganization(**data, status=ClientStatus.PENDING.value)
    db.add(client)
    await db.flush()

    if demo is not None:
        demo.status = DemoStatus.CONVERTED.value
        demo.converted_to_client_id = client.id

    log_activity(
        db,
        ActivityType.CLIENT_CREATED,
        f"Client organization {client.name} created",
        user_id=created_by.id if created_by else None,
        request=request,
        metadata={"client_id": client.id, "demo_request_id": demo_request_id},
    )
    await db.commit()
    logger.info("Created client organization %s (%s)", client.id, client.name)
    return client


async def update_client(db: AsyncSession, client_id: str, data: dict[str, Any]) -> ClientOrganization:
    client = await get_client(db, client_id)
    if "contact_email" in data and data["contact_email"].lower() != client.contact_email.lower():
        if await find_client_by_email(db, data["contact_email"]):
            raise ConflictError("A client with this contact email already exists")
    for field, value in data.items():
        if field not in _PROTECTED_FIELDS:
            setattr(client, field, value)
    await db.commit()
    return client


async def create_client_user(
    db: AsyncSession, client_id: str, name: str, email: str, password: str
) -> User:
    """Create a pre-verified portal user for the organization."""
    client = await get_client(db, client_id)
    email = email.lower()
    existing = await db.execute(select(User).where(User.email == email))
    if existing.scalar_one_or_none():
        raise ConflictError("User with this email already exists")

    user = User(
        email=email,
        name=name,
        password_hash=password_hasher.hash(password),
        provider=AuthProvider.EMAIL.value,
        role=UserRole.USER.value,
        is_active=True,
        email_verified=True,
        client_organization_id=client.id,
    )
    db.add(user)
    await db.commit()
    logger.info("Created portal user %s for client %s", user.id, client.id)
    return user


async def admin_user_counts(db: AsyncSession, client_ids: list[str]) -> dict[str, int]:
    if not client_ids:
        return {}
    result = await db.execute(
        select(User.client_organization_id, func.count())
        .where(User.client_organization_id.in_(client_ids))
        .group_by(User.client_organization_id)
    )
    return {client_id: n for client_id, n in result.all()}


async def provision_client(
    db: AsyncSession, client_id: str, request: Optional[Request] = None
) -> tuple[ClientOrganization, GuildOrganization]:
    """
    Create the client's Guild tenant.

    Requires a TRIAL or ACTIVE subscription, which sizes the tenant.

    Raises:
        BusinessRuleError: Already provisioned, or no usable subscription
        GuildAPIError: Guild refused the request
    """
    client = await get_client(db, client_id)
    if client.is_guild_provisioned:
        raise BusinessRuleError("Client is already provisioned on Guild")

    subscription = await get_current_subscription(
        db,
        client.id,
        statuses=(SubscriptionStatus.TRIAL.value, SubscriptionStatus.ACTIVE.value),
    )
    if subscription is None:
        raise BusinessRuleError("No active subscription found. Please create a subscription first.")

    guild_org = await guild_adapter.create_organization(client, subscription)

    client.guild_tenant_code = guild_org.tenant_code
    client.guild_org_id = guild_org.org_id
    client.is_guild_provisioned = True
    client.provisioned_at = datetime.now(UTC)
    client.guild_admin_email = (guild_org.admin_credentials or {}).get("email") or client.contact_email
    client.status = ClientStatus.ACTIVE.value

    create_notification(
        db,
        NotificationType.GUILD_PROVISIONED,
        "Guild Tenant Provisioned",
        f"{client.name} is live on Guild as {guild_org.tenant_code}",
        {"client_id": client.id, "tenant_code": guild_org.tenant_code},
    )
    log_activity(
        db,
        ActivityType.GUILD_PROVISIONED,
        f"Provisioned Guild tenant {guild_org.tenant_code}",
        request=request,
        metadata={"client_id": client.id, "guild_org_id": guild_org.org_id},
    )
    await db.commit()
    logger.info("Provisioned client %s on Guild as %s", client.id, guild_org.tenant_code)
    return client, guild_org


async def get_guild_stats(db: AsyncSession, client_id: str) -> dict[str, Any]:
    client = await get_client(db, client_id)
    if not client.is_guild_provisioned or not client.guild_org_id:
        raise BusinessRuleError("Client is not provisioned on Guild")
    return await guild_adapter.get_organization_stats(client.guild_org_id)


async def client_stats(db: AsyncSession) -> dict[str, int]:
    result = await db.execute(
        select(ClientOrganization.status, func.count()).group_by(ClientOrganization.status)
    )
    counts = {status: n for status, n in result.all()}
    return {
        "total": sum(counts.values()),
        "pending": counts.get(ClientStatus.PENDING.value, 0),
        "active": counts.get(ClientStatus.ACTIVE.value, 0),
        "suspended": counts.get(ClientStatus.SUSPENDED.value, 0),
        "churned": counts.get(ClientStatus.CHURNED.value, 0),
    }
