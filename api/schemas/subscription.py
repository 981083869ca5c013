"""
Plan and subscription schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from infrastructure.database.models import BillingCycle


# ============================================================================
# Plans
# ============================================================================


class PlanCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    code: str = Field(..., min_length=2, max_length=50)
    description: Optional[str] = None
    price_monthly: float = Field(..., ge=0)
    price_quarterly: Optional[float] = Field(None, ge=0)
    price_yearly: float = Field(..., ge=0)
    currency: str = Field(default="INR", min_length=3, max_length=3)
    max_users: int = Field(default=500, ge=1)
    storage_quota_mb: int = Field(default=5120, ge=0)
    features: list[str] = Field(default_factory=list)
    is_active: bool = True
    is_popular: bool = False
    sort_order: int = 0
    trial_days: int = Field(default=7, ge=0, le=365)


class PlanUpdate(BaseModel):
    """Partial plan update. The plan code cannot be changed."""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    price_monthly: Optional[float] = Field(None, ge=0)
    price_quarterly: Optional[float] = Field(None, ge=0)
    price_yearly: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    max_users: Optional[int] = Field(None, ge=1)
    storage_quota_mb: Optional[int] = Field(None, ge=0)
    features: Optional[list[str]] = None
    is_active: Optional[bool] = None
    is_popular: Optional[bool] = None
    sort_order: Optional[int] = None
    trial_days: Optional[int] = Field(None, ge=0, le=365)


class PlanResponse(BaseModel):
    id: str
    name: str
    code: str
    description: Optional[str] = None
    price_monthly: float
    price_quarterly: Optional[float] = None
    price_yearly: float
    currency: str
    max_users: int
    storage_quota_mb: int
    features: list[str] = Field(default_factory=list)
    is_active: bool
    is_popular: bool
    sort_order: int
    trial_days: int

    model_config = ConfigDict(from_attributes=True)


class PlanSummary(BaseModel):
    id: str
    name: str
    code: str

    model_config = ConfigDict(from_attributes=True)


# ============================================================================
# Subscriptions
# ============================================================================


class SubscriptionCreate(BaseModel):
    plan_id: str
    billing_cycle: BillingCycle
    start_date: Optional[datetime] = None
    auto_renew: bool = True
    custom_max_users: Optional[int] = Field(None, ge=1)
    custom_storage_quota_mb: Optional[int] = Field(None, ge=0)


class ClientSummary(BaseModel):
    id: str
    name: str
    short_name: str
    contact_email: str
    status: str

    model_config = ConfigDict(from_attributes=True)


class SubscriptionResponse(BaseModel):
    id: str
    client_organization_id: str
    plan_id: str
    billing_cycle: str
    amount: float
    currency: str
    status: str
    start_date: datetime
    end_date: datetime
    trial_ends_at: Optional[datetime] = None
    grace_period_ends_at: Optional[datetime] = None
    auto_renew: bool
    custom_max_users: Optional[int] = None
    custom_storage_quota_mb: Optional[int] = None
    last_renewal_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    plan: Optional[PlanSummary] = None

    model_config = ConfigDict(from_attributes=True)


class SubscriptionListItem(SubscriptionResponse):
    client_organization: Optional[ClientSummary] = None


class SubscriptionStatsResponse(BaseModel):
    total: int
    trial: int
    active: int
    grace_period: int
    expired: int
    cancelled: int
    monthly_revenue: float = Field(..., description="Sum of ACTIVE subscription amounts")
