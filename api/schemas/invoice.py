"""
Invoice schemas.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class InvoiceCreate(BaseModel):
    subscription_id: str
    tax_rate: Optional[float] = Field(None, ge=0, le=100, description="Defaults to the GST rate")
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None


class InvoiceCancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class InvoiceResponse(BaseModel):
    id: str
    invoice_number: str
    client_organization_id: str
    subscription_id: Optional[str] = None
    subtotal: float
    tax_rate: float
    tax_amount: float
    total: float
    currency: str
    description: Optional[str] = None
    line_items: list[dict[str, Any]] = Field(default_factory=list)
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None
    status: str
    due_date: datetime
    paid_at: Optional[datetime] = None
    pdf_url: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InvoiceStatsResponse(BaseModel):
    total: int
    draft: int
    sent: int
    paid: int
    overdue: int
    cancelled: int
    total_revenue: float = Field(..., description="Sum of PAID invoice totals")
