"""
SQLAlchemy database models.
"""

from .activity import (
    Activity,
    ActivityType,
    AdminNotification,
    ContactStatus,
    ContactSubject,
    ContactSubmission,
    NotificationType,
)
from .base import Base, TimestampMixin
from .billing import (
    CURRENT_SUBSCRIPTION_STATUSES,
    BillingCycle,
    Invoice,
    InvoiceStatus,
    Payment,
    PaymentMethod,
    PaymentStatus,
    Subscription,
    SubscriptionPlan,
    SubscriptionStatus,
)
from .client import ClientOrganization, ClientStatus, DemoRequest, DemoStatus
from .user import AuthProvider, User, UserRole

__all__ = [
    "Base",
    "TimestampMixin",
    "User",
    "UserRole",
    "AuthProvider",
    "ClientOrganization",
    "ClientStatus",
    "DemoRequest",
    "DemoStatus",
    "SubscriptionPlan",
    "Subscription",
    "SubscriptionStatus",
    "BillingCycle",
    "CURRENT_SUBSCRIPTION_STATUSES",
    "Invoice",
    "InvoiceStatus",
    "Payment",
    "PaymentStatus",
    "PaymentMethod",
    "Activity",
    "ActivityType",
    "AdminNotification",
    "NotificationType",
    "ContactSubmission",
    "ContactSubject",
    "ContactStatus",
]
