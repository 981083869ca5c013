"""
Client portal schemas.
"""

from typing import Optional

from pydantic import BaseModel, Field

from api.schemas.client import ClientResponse
from api.schemas.payment import PaymentResponse
from api.schemas.subscription import PlanResponse, SubscriptionResponse


class PortalSubscription(SubscriptionResponse):
    days_remaining: int
    is_expiring_soon: bool = Field(False, description="Ends within the next 7 days")


class PortalSubscriptionDetail(PortalSubscription):
    plan_details: Optional[PlanResponse] = None


class PortalDashboardResponse(BaseModel):
    organization: ClientResponse
    subscription: Optional[PortalSubscription] = None
    recent_payments: list[PaymentResponse]
    invoices_due: int


class PortalOrganizationResponse(ClientResponse):
    current_subscription: Optional[SubscriptionResponse] = None
    plan: Optional[PlanResponse] = None


class GuildAccessResponse(BaseModel):
    is_provisioned: bool
    message: Optional[str] = None
    tenant_code: Optional[str] = None
    web_url: Optional[str] = None
    admin_url: Optional[str] = None
    admin_email: Optional[str] = None
    android_apk_url: Optional[str] = None
    play_store_url: Optional[str] = None
