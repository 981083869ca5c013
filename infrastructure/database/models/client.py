"""
Client organization and demo request models.
"""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, List, Optional
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin

if TYPE_CHECKING:
    from .billing import Subscription
    from .user import User


class ClientStatus(str, Enum):
    """Client organization status enumeration."""

    PENDING = "PENDING"  # Signed up, not yet paying or provisioned
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    CHURNED = "CHURNED"


class DemoStatus(str, Enum):
    """Demo request pipeline status."""

    NEW = "NEW"
    CONTACTED = "CONTACTED"
    DEMO_SCHEDULED = "DEMO_SCHEDULED"
    DEMO_COMPLETED = "DEMO_COMPLETED"
    CONVERTED = "CONVERTED"
    LOST = "LOST"


class ClientOrganization(Base, TimestampMixin):
    """An institution that buys a Guild tenant."""

    __tablename__ = "client_organizations"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    # Profile
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    short_name: Mapped[str] = mapped_column(String(100), nullable=False)
    contact_email: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True
    )
    contact_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    website: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    logo_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    organization_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    foundation_year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(
        String(20), default=ClientStatus.PENDING.value, nullable=False
    )

    # Guild tenant provisioning
    guild_tenant_code: Mapped[Optional[str]] = mapped_column(
        String(100), unique=True, nullable=True
    )
    guild_org_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    is_guild_provisioned: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    provisioned_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    guild_admin_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Relationships
    users: Mapped[List["User"]] = relationship(
        "User", back_populates="client_organization", lazy="raise"
    )
    subscriptions: Mapped[List["Subscription"]] = relationship(
        "Subscription", back_populates="client_organization", lazy="raise"
    )

    __table_args__ = (
        Index("ix_client_organizations_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<ClientOrganization(id={self.id}, name={self.name}, status={self.status})>"


class DemoRequest(Base, TimestampMixin):
    """Sales lead captured from the marketing site."""

    __tablename__ = "demo_requests"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    organization_name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    contact_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    organization_type: Mapped[str] = mapped_column(String(100), nullable=False)
    estimated_members: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    website: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    preferred_date: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    preferred_time: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    status: Mapped[str] = mapped_column(
        String(30), default=DemoStatus.NEW.value, nullable=False
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    demo_scheduled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    demo_completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    demo_outcome: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    assigned_to_id: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    converted_to_client_id: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("client_organizations.id", ondelete="SET NULL"),
        nullable=True,
    )

    __table_args__ = (
        Index("ix_demo_requests_status", "status"),
        Index("ix_demo_requests_created", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<DemoRequest(id={self.id}, org={self.organization_name}, status={self.status})>"
