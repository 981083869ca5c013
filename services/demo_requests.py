"""
Demo request (sales lead) service.
"""

import logging
from datetime import UTC, datetime
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import Request

from adapters.email.resend_adapter import email_service
from core.exceptions import NotFoundError
from infrastructure.database.models import (
    ActivityType,
    DemoRequest,
    DemoStatus,
    NotificationType,
)
from services.activity import log_activity
from services.notifications import create_notification

logger = logging.getLogger(__name__)


async def create_demo_request(
    db: AsyncSession, data: dict[str, Any], request: Optional[Request] = None
) -> DemoRequest:
    """Record a new lead, notify the back office and confirm to the requester."""
    demo = DemoRequest(**data, status=DemoStatus.NEW.value)
    db.add(demo)
    await db.flush()

    create_notification(
        db,
        NotificationType.DEMO_REQUEST,
        "New Demo Request",
        f"{demo.contact_name} from {demo.organization_name} requested a demo",
        {"demo_request_id": demo.id, "email": demo.contact_email},
    )
    log_activity(
        db,
        ActivityType.DEMO_REQUEST,
        f"Demo requested by {demo.organization_name}",
        request=request,
        metadata={"demo_request_id": demo.id},
    )
    await db.commit()

    await email_service.send_demo_request_confirmation(
        demo.contact_email, demo.contact_name, demo.organization_name
    )
    logger.info("Demo request %s created for %s", demo.id, demo.organization_name)
    return demo


async def get_demo_request(db: AsyncSession, demo_id: str) -> DemoRequest:
    demo = await db.get(DemoRequest, demo_id)
    if demo is None:
        raise NotFoundError("Demo request not found")
    return demo


async def update_demo_request(db: AsyncSession, demo_id: str, data: dict[str, Any]) -> DemoRequest:
    demo = await get_demo_request(db, demo_id)
    for field, value in data.items():
        setattr(demo, field, value)
    await db.commit()
    return demo


async def schedule_demo(
    db: AsyncSession,
    demo_id: str,
    scheduled_at: datetime,
    assigned_to_id: Optional[str] = None,
) -> DemoRequest:
    demo = await get_demo_request(db, demo_id)
    demo.status = DemoStatus.DEMO_SCHEDULED.value
    demo.demo_scheduled_at = scheduled_at
    if assigned_to_id:
        demo.assigned_to_id = assigned_to_id
    await db.commit()
    logger.info("Demo %s scheduled for %s", demo.id, scheduled_at)
    return demo


async def complete_demo(db: AsyncSession, demo_id: str, outcome: Optional[str]) -> DemoRequest:
    demo = await get_demo_request(db, demo_id)
    demo.status = DemoStatus.DEMO_COMPLETED.value
    demo.demo_completed_at = datetime.now(UTC)
    demo.demo_outcome = outcome
    await db.commit()
    return demo


async def demo_stats(db: AsyncSession) -> dict[str, Any]:
    result = await db.execute(select(DemoRequest.status, func.count()).group_by(DemoRequest.status))
    counts = {status: n for status, n in result.all()}
    total = sum(counts.values())
    converted = counts.get(DemoStatus.CONVERTED.value, 0)
    return {
        "total": total,
        "new": counts.get(DemoStatus.NEW.value, 0),
        "contacted": counts.get(DemoStatus.CONTACTED.value, 0),
        "scheduled": counts.get(DemoStatus.DEMO_SCHEDULED.value, 0),
        "completed": counts.get(DemoStatus.DEMO_COMPLETED.value, 0),
        "converted": converted,
        "lost": counts.get(DemoStatus.LOST.value, 0),
        "conversion_rate": round(converted / total * 100, 2) if total else 0.0,
    }
