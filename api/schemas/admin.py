"""
Admin API schemas for the back-office dashboard and notifications.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

# ============================================================================
# Dashboard
# ============================================================================


class DemoBlock(BaseModel):
    total: int
    new: int
    this_month: int
    last_month: int
    growth: float = Field(..., description="Month-over-month growth in percent")


class ClientBlock(BaseModel):
    total: int
    active: int
    this_month: int


class SubscriptionBlock(BaseModel):
    total: int
    active: int
    trial: int


class RevenueBlock(BaseModel):
    total: float
    this_month: float
    last_month: float
    growth: float = Field(..., description="Month-over-month growth in percent")


class RecentDemo(BaseModel):
    id: str
    organization_name: str
    contact_name: str
    contact_email: str
    status: str
    created_at: datetime


class RecentPayment(BaseModel):
    id: str
    amount: float
    currency: str
    created_at: datetime
    client_name: Optional[str] = None


class RecentBlock(BaseModel):
    demos: list[RecentDemo]
    payments: list[RecentPayment]


class DashboardResponse(BaseModel):
    """Flat headline numbers plus detailed blocks."""

    total_clients: int
    active_clients: int
    active_subscriptions: int
    trial_subscriptions: int
    pending_demos: int
    total_demos: int
    converted_demos: int
    total_revenue: float
    monthly_revenue: float
    demos: DemoBlock
    clients: ClientBlock
    subscriptions: SubscriptionBlock
    revenue: RevenueBlock
    recent: RecentBlock


class MonthlyRevenue(BaseModel):
    month: int = Field(..., ge=1, le=12)
    month_name: str
    revenue: float


class RevenueResponse(BaseModel):
    period: str = "monthly"
    year: int
    data: list[MonthlyRevenue]
    total: float


# ============================================================================
# Notifications
# ============================================================================


class NotificationResponse(BaseModel):
    id: str
    type: str
    title: str
    message: str
    data: Optional[dict[str, Any]] = None
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NotificationListResponse(BaseModel):
    items: list[NotificationResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
    unread_count: int


class MarkAllReadResponse(BaseModel):
    message: str
    updated: int


# ============================================================================
# Admin users and jobs
# ============================================================================


class AdminUserItem(BaseModel):
    id: str
    email: str
    name: str
    role: str
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class JobRunResponse(BaseModel):
    message: str
    result: dict[str, Any]
