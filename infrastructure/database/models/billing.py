"""
Plan, subscription, invoice and payment models.
"""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin

if TYPE_CHECKING:
    from .client import ClientOrganization


class BillingCycle(str, Enum):
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    YEARLY = "YEARLY"


class SubscriptionStatus(str, Enum):
    """Subscription lifecycle status."""

    TRIAL = "TRIAL"
    ACTIVE = "ACTIVE"
    GRACE_PERIOD = "GRACE_PERIOD"  # Lapsed, tenant still usable
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


# Statuses in which a client is considered to have "the" subscription
CURRENT_SUBSCRIPTION_STATUSES = (
    SubscriptionStatus.TRIAL.value,
    SubscriptionStatus.ACTIVE.value,
    SubscriptionStatus.GRACE_PERIOD.value,
)


class InvoiceStatus(str, Enum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class PaymentMethod(str, Enum):
    RAZORPAY = "RAZORPAY"
    BANK_TRANSFER = "BANK_TRANSFER"
    MANUAL = "MANUAL"


class SubscriptionPlan(Base, TimestampMixin):
    """A sellable Guild plan."""

    __tablename__ = "subscription_plans"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Pricing
    price_monthly: Mapped[float] = mapped_column(Float, nullable=False)
    price_quarterly: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    price_yearly: Mapped[float] = mapped_column(Float, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="INR", nullable=False)

    # Limits
    max_users: Mapped[int] = mapped_column(Integer, default=500, nullable=False)
    storage_quota_mb: Mapped[int] = mapped_column(Integer, default=5120, nullable=False)
    features: Mapped[list] = mapped_column(JSON, default=list, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_popular: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    trial_days: Mapped[int] = mapped_column(Integer, default=7, nullable=False)

    def __repr__(self) -> str:
        return f"<SubscriptionPlan(code={self.code}, monthly={self.price_monthly})>"


class Subscription(Base, TimestampMixin):
    """A client's subscription to a plan for one billing cycle at a time."""

    __tablename__ = "subscriptions"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    client_organization_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("client_organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    plan_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("subscription_plans.id", ondelete="RESTRICT"),
        nullable=False,
    )

    billing_cycle: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="INR", nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=SubscriptionStatus.TRIAL.value, nullable=False
    )

    # Period
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    trial_ends_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    grace_period_ends_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Overrides of the plan limits
    custom_max_users: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    custom_storage_quota_mb: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Renewal
    auto_renew: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_renewal_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    renewal_reminder_sent: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    next_renewal_reminder: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    plan: Mapped["SubscriptionPlan"] = relationship("SubscriptionPlan", lazy="selectin")
    client_organization: Mapped["ClientOrganization"] = relationship(
        "ClientOrganization", back_populates="subscriptions", lazy="selectin"
    )

    __table_args__ = (
        Index("ix_subscriptions_client_status", "client_organization_id", "status"),
        Index("ix_subscriptions_end_date", "end_date"),
    )

    def __repr__(self) -> str:
        return f"<Subscription(id={self.id}, status={self.status}, cycle={self.billing_cycle})>"

    @property
    def effective_max_users(self) -> int:
        return self.custom_max_users or (self.plan.max_users if self.plan else 500)

    @property
    def effective_storage_quota_mb(self) -> int:
        return self.custom_storage_quota_mb or (
            self.plan.storage_quota_mb if self.plan else 5120
        )


class Invoice(Base, TimestampMixin):
    """Invoice for one subscription period."""

    __tablename__ = "invoices"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    invoice_number: Mapped[str] = mapped_column(
        String(50), unique=True, nullable=False, index=True
    )

    client_organization_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("client_organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    subscription_id: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("subscriptions.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Amounts (total = subtotal + tax_amount)
    subtotal: Mapped[float] = mapped_column(Float, nullable=False)
    tax_rate: Mapped[float] = mapped_column(Float, default=18.0, nullable=False)
    tax_amount: Mapped[float] = mapped_column(Float, nullable=False)
    total: Mapped[float] = mapped_column(Float, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="INR", nullable=False)

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    line_items: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    """
    Structure:
    [{"description": "Starter Plan - MONTHLY Subscription",
      "quantity": 1, "unit_price": 2999.0, "amount": 2999.0}]
    """

    period_start: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    period_end: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    status: Mapped[str] = mapped_column(
        String(20), default=InvoiceStatus.DRAFT.value, nullable=False
    )
    due_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    paid_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    pdf_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    __table_args__ = (
        Index("ix_invoices_client", "client_organization_id"),
        Index("ix_invoices_status_due", "status", "due_date"),
    )

    def __repr__(self) -> str:
        return f"<Invoice(number={self.invoice_number}, total={self.total}, status={self.status})>"


class Payment(Base, TimestampMixin):
    """A payment attempt, usually backed by a Razorpay order."""

    __tablename__ = "payments"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    amount: Mapped[float] = mapped_column(Float, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="INR", nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=PaymentStatus.PENDING.value, nullable=False
    )
    payment_method: Mapped[str] = mapped_column(
        String(20), default=PaymentMethod.RAZORPAY.value, nullable=False
    )

    razorpay_order_id: Mapped[Optional[str]] = mapped_column(
        String(100), unique=True, nullable=True, index=True
    )
    razorpay_payment_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    razorpay_signature: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    failure_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    paid_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    user_id: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    client_organization_id: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("client_organizations.id", ondelete="SET NULL"),
        nullable=True,
    )
    subscription_id: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("subscriptions.id", ondelete="SET NULL"),
        nullable=True,
    )
    invoice_id: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("invoices.id", ondelete="SET NULL"),
        nullable=True,
    )

    __table_args__ = (
        Index("ix_payments_status", "status"),
        Index("ix_payments_client", "client_organization_id"),
    )

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, order={self.razorpay_order_id}, status={self.status})>"
