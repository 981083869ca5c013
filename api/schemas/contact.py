"""
Contact form schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from infrastructure.database.models import ContactStatus


class ContactSubmitRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    email: EmailStr
    organization: Optional[str] = Field(None, max_length=255)
    subject: str = Field(default="other", max_length=50)
    message: str = Field(..., min_length=10, max_length=5000)


class ContactSubmitResponse(BaseModel):
    id: str
    message: str


class ContactUpdateRequest(BaseModel):
    status: Optional[ContactStatus] = None
    notes: Optional[str] = None


class ContactResponse(BaseModel):
    id: str
    name: str
    email: str
    organization: Optional[str] = None
    subject: str
    message: str
    status: str
    notes: Optional[str] = None
    resolved_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
