"""
Activity analytics schemas.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class AnalyticsSummary(BaseModel):
    total_activities: int
    user_registrations: int
    user_logins: int
    payment_success: int
    payment_failed: int
    total_revenue: float
    error_count: int
    success_rate: float = Field(..., description="Share of successful activities, in percent")


class DailyCount(BaseModel):
    date: str
    count: int


class TypeCount(BaseModel):
    type: str
    count: int


class AnalyticsDashboardResponse(BaseModel):
    days: int
    summary: AnalyticsSummary
    daily: list[DailyCount]
    top_types: list[TypeCount]


class ActivityResponse(BaseModel):
    id: str
    type: str
    description: str
    user_id: Optional[str] = None
    success: bool
    error_message: Optional[str] = None
    revenue: Optional[float] = None
    metadata: Optional[dict[str, Any]] = Field(None, validation_alias="extra_data")
    ip_address: Optional[str] = None
    device_info: Optional[dict[str, Any]] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
