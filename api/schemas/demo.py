"""
Demo request schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from infrastructure.database.models import DemoStatus


class DemoRequestCreate(BaseModel):
    """Public demo request form."""

    organization_name: str = Field(..., min_length=2, max_length=255)
    contact_name: str = Field(..., min_length=2, max_length=255)
    contact_email: EmailStr
    contact_phone: Optional[str] = Field(None, max_length=50)
    organization_type: str = Field(..., min_length=1, max_length=100)
    estimated_members: Optional[int] = Field(None, ge=0)
    website: Optional[str] = Field(None, max_length=500)
    message: Optional[str] = Field(None, max_length=5000)
    preferred_date: Optional[str] = Field(None, max_length=50)
    preferred_time: Optional[str] = Field(None, max_length=50)


class DemoRequestUpdate(BaseModel):
    """Admin edit of a lead. Only the fields sent are changed."""

    status: Optional[DemoStatus] = None
    notes: Optional[str] = None
    assigned_to_id: Optional[str] = None
    contact_phone: Optional[str] = Field(None, max_length=50)
    estimated_members: Optional[int] = Field(None, ge=0)
    website: Optional[str] = Field(None, max_length=500)
    demo_outcome: Optional[str] = None


class ScheduleDemoRequest(BaseModel):
    scheduled_at: datetime
    assigned_to_id: Optional[str] = None


class CompleteDemoRequest(BaseModel):
    outcome: Optional[str] = None


class DemoRequestResponse(BaseModel):
    id: str
    organization_name: str
    contact_name: str
    contact_email: str
    contact_phone: Optional[str] = None
    organization_type: str
    estimated_members: Optional[int] = None
    website: Optional[str] = None
    message: Optional[str] = None
    preferred_date: Optional[str] = None
    preferred_time: Optional[str] = None
    status: str
    notes: Optional[str] = None
    demo_scheduled_at: Optional[datetime] = None
    demo_completed_at: Optional[datetime] = None
    demo_outcome: Optional[str] = None
    assigned_to_id: Optional[str] = None
    converted_to_client_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DemoRequestCreatedResponse(BaseModel):
    id: str
    status: str
    message: str


class DemoStatsResponse(BaseModel):
    total: int
    new: int
    contacted: int
    scheduled: int
    completed: int
    converted: int
    lost: int
    conversion_rate: float = Field(..., description="Converted / total, as a percentage")
