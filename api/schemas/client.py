"""
Client organization schemas, including the aggregated detail views.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from api.schemas.auth import UserResponse
from api.schemas.invoice import InvoiceResponse
from api.schemas.payment import PaymentResponse
from api.schemas.subscription import SubscriptionListItem, SubscriptionResponse
from infrastructure.database.models import ClientStatus


class ClientCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    short_name: str = Field(..., min_length=1, max_length=100)
    contact_email: EmailStr
    contact_phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = None
    website: Optional[str] = Field(None, max_length=500)
    logo_url: Optional[str] = Field(None, max_length=500)
    organization_type: Optional[str] = Field(None, max_length=100)
    foundation_year: Optional[int] = Field(None, ge=1800, le=2100)
    description: Optional[str] = None
    demo_request_id: Optional[str] = Field(None, description="Demo request this client converts")


class ClientUpdate(BaseModel):
    """Partial update. Guild provisioning fields are not editable here."""

    name: Optional[str] = Field(None, min_length=2, max_length=255)
    short_name: Optional[str] = Field(None, min_length=1, max_length=100)
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = None
    website: Optional[str] = Field(None, max_length=500)
    logo_url: Optional[str] = Field(None, max_length=500)
    organization_type: Optional[str] = Field(None, max_length=100)
    foundation_year: Optional[int] = Field(None, ge=1800, le=2100)
    description: Optional[str] = None
    status: Optional[ClientStatus] = None


class ClientAdminCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=100)


class ClientResponse(BaseModel):
    id: str
    name: str
    short_name: str
    contact_email: str
    contact_phone: Optional[str] = None
    address: Optional[str] = None
    website: Optional[str] = None
    logo_url: Optional[str] = None
    organization_type: Optional[str] = None
    foundation_year: Optional[int] = None
    description: Optional[str] = None
    status: str
    guild_tenant_code: Optional[str] = None
    guild_org_id: Optional[str] = None
    is_guild_provisioned: bool
    provisioned_at: Optional[datetime] = None
    guild_admin_email: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ClientListItem(ClientResponse):
    current_subscription: Optional[SubscriptionResponse] = None
    admin_count: int = 0


class ClientDetailResponse(ClientResponse):
    subscriptions: list[SubscriptionResponse] = Field(default_factory=list)
    users: list[UserResponse] = Field(default_factory=list)
    invoices: list[InvoiceResponse] = Field(default_factory=list)
    payments: list[PaymentResponse] = Field(default_factory=list)


class ProvisionResponse(BaseModel):
    client: ClientResponse
    tenant_code: str
    guild_org_id: str
    admin_credentials: dict[str, Any] = Field(default_factory=dict)
    message: str


class ClientStatsResponse(BaseModel):
    total: int
    pending: int
    active: int
    suspended: int
    churned: int


class SubscriptionDetailResponse(SubscriptionListItem):
    payments: list[PaymentResponse] = Field(default_factory=list)
    invoices: list[InvoiceResponse] = Field(default_factory=list)
