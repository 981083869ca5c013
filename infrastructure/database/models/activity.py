"""
Activity log, admin notification and contact submission models.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class ActivityType(str, Enum):
    """Business events recorded in the activity log."""

    USER_REGISTER = "USER_REGISTER"
    USER_LOGIN = "USER_LOGIN"
    USER_LOGOUT = "USER_LOGOUT"
    EMAIL_VERIFY = "EMAIL_VERIFY"
    PASSWORD_CHANGE = "PASSWORD_CHANGE"
    PAYMENT_SUCCESS = "PAYMENT_SUCCESS"
    PAYMENT_FAILED = "PAYMENT_FAILED"
    DEMO_REQUEST = "DEMO_REQUEST"
    CONTACT_SUBMISSION = "CONTACT_SUBMISSION"
    CLIENT_CREATED = "CLIENT_CREATED"
    SUBSCRIPTION_CREATED = "SUBSCRIPTION_CREATED"
    GUILD_PROVISIONED = "GUILD_PROVISIONED"


class NotificationType(str, Enum):
    """Admin notification types."""

    DEMO_REQUEST = "DEMO_REQUEST"
    CONTACT_SUBMISSION = "CONTACT_SUBMISSION"
    SUBSCRIPTION_CREATED = "SUBSCRIPTION_CREATED"
    SUBSCRIPTION_RENEWED = "SUBSCRIPTION_RENEWED"
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
    GUILD_PROVISIONED = "GUILD_PROVISIONED"


class ContactSubject(str, Enum):
    DEMO = "DEMO"
    PRICING = "PRICING"
    SUPPORT = "SUPPORT"
    PARTNERSHIP = "PARTNERSHIP"
    OTHER = "OTHER"


class ContactStatus(str, Enum):
    NEW = "NEW"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"


class Activity(Base, TimestampMixin):
    """Audit trail entry for a user or system action."""

    __tablename__ = "activities"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    type: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    user_id: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Outcome
    success: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    duration_ms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    revenue: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    # "metadata" is reserved on declarative classes
    extra_data: Mapped[Optional[dict]] = mapped_column("metadata", JSON, nullable=True)

    # Request context
    ip_address: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    referrer: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    device_info: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    """
    Structure:
    {"is_mobile": false, "browser": "Chrome", "os": "Windows", "country": "IN"}
    """

    __table_args__ = (
        Index("ix_activities_type_created", "type", "created_at"),
        Index("ix_activities_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Activity(type={self.type}, user_id={self.user_id}, success={self.success})>"


class AdminNotification(Base, TimestampMixin):
    """In-app notification for the back office."""

    __tablename__ = "admin_notifications"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    data: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    read_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (Index("ix_admin_notifications_read_created", "is_read", "created_at"),)

    def __repr__(self) -> str:
        return f"<AdminNotification(type={self.type}, is_read={self.is_read})>"


class ContactSubmission(Base, TimestampMixin):
    """Message sent through the public contact form."""

    __tablename__ = "contact_submissions"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    organization: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    subject: Mapped[str] = mapped_column(
        String(20), default=ContactSubject.OTHER.value, nullable=False
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=ContactStatus.NEW.value, nullable=False
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (Index("ix_contact_submissions_status", "status"),)

    def __repr__(self) -> str:
        return f"<ContactSubmission(email={self.email}, subject={self.subject})>"
