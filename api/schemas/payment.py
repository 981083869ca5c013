"""
Payment and checkout schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from api.schemas.invoice import InvoiceResponse
from api.schemas.subscription import SubscriptionResponse
from infrastructure.database.models import BillingCycle


class OrganizationDetails(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    short_name: str = Field(..., min_length=1, max_length=100)
    contact_email: EmailStr
    contact_phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = None


class CheckoutRequest(BaseModel):
    """Public checkout: plan choice plus the organization being subscribed."""

    plan_id: str
    billing_cycle: BillingCycle
    organization_details: OrganizationDetails
    is_free_trial: bool = False


class CheckoutOrderResponse(BaseModel):
    client_id: str
    subscription_id: str
    order_id: str
    amount: int = Field(..., description="Amount in paise")
    currency: str
    key_id: str
    payment_id: str
    plan_name: str
    billing_cycle: str
    is_existing_client: bool


class FreeTrialResponse(BaseModel):
    client_id: str
    subscription_id: str
    is_free_trial: bool = True
    trial_ends_at: Optional[datetime] = None
    is_existing_client: bool


class AlreadySubscribedResponse(BaseModel):
    already_subscribed: bool = True
    subscription_id: str
    redirect_url: str


class VerifyPaymentRequest(BaseModel):
    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str


class PaymentFailureRequest(BaseModel):
    razorpay_order_id: str
    error_code: Optional[str] = None
    error_description: Optional[str] = None


class CreateOrderRequest(BaseModel):
    """Admin order against a subscription or an invoice."""

    subscription_id: Optional[str] = None
    invoice_id: Optional[str] = None

    @model_validator(mode="after")
    def require_target(self) -> "CreateOrderRequest":
        if not self.subscription_id and not self.invoice_id:
            raise ValueError("Either subscription_id or invoice_id is required")
        return self


class OrderResponse(BaseModel):
    order_id: str
    amount: int = Field(..., description="Amount in paise")
    currency: str
    key_id: str
    payment_id: str
    subscription_id: Optional[str] = None
    plan_name: Optional[str] = None
    billing_cycle: Optional[str] = None


class PaymentResponse(BaseModel):
    id: str
    amount: float
    currency: str
    status: str
    payment_method: str
    razorpay_order_id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None
    description: Optional[str] = None
    failure_reason: Optional[str] = None
    paid_at: Optional[datetime] = None
    user_id: Optional[str] = None
    client_organization_id: Optional[str] = None
    subscription_id: Optional[str] = None
    invoice_id: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PaymentVerificationResponse(BaseModel):
    payment: PaymentResponse
    subscription: Optional[SubscriptionResponse] = None
    invoice: Optional[InvoiceResponse] = None
    redirect_url: str


class LookupOrganization(BaseModel):
    name: str
    short_name: str
    contact_email: str
    contact_phone: str = ""
    address: str = ""


class LookupOrganizationResponse(BaseModel):
    exists: bool
    organization: Optional[LookupOrganization] = None
    subscription: Optional[SubscriptionResponse] = None
    status: Optional[str] = None


class PaymentStatsResponse(BaseModel):
    total: int
    pending: int
    success: int
    failed: int
    refunded: int
    total_revenue: float
    this_month_revenue: float


class WebhookResponse(BaseModel):
    status: str = "ok"
