"""
Public contact form.
"""

import logging
from datetime import UTC, datetime
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import Request

from adapters.email.resend_adapter import email_service
from core.exceptions import NotFoundError
from infrastructure.database.models import (
    ActivityType,
    ContactStatus,
    ContactSubject,
    ContactSubmission,
    NotificationType,
)
from services.activity import log_activity
from services.notifications import create_notification

logger = logging.getLogger(__name__)


def normalize_subject(subject: Optional[str]) -> ContactSubject:
    """Map a free-form subject onto ``ContactSubject``; unknown values are OTHER."""
    try:
        return ContactSubject((subject or "").strip().upper())
    except ValueError:
        return ContactSubject.OTHER


async def submit_contact_form(
    db: AsyncSession, data: dict[str, Any], request: Optional[Request] = None
) -> ContactSubmission:
    subject = normalize_subject(data.get("subject"))
    submission = ContactSubmission(
        name=data["name"],
        email=data["email"].lower(),
        organization=data.get("organization"),
        subject=subject.value,
        message=data["message"],
        status=ContactStatus.NEW.value,
    )
    db.add(submission)
    await db.flush()

    create_notification(
        db,
        NotificationType.CONTACT_SUBMISSION,
        "New Contact Submission",
        f"{submission.name} sent a {subject.value.lower()} enquiry",
        {"contact_id": submission.id, "email": submission.email},
    )
    log_activity(
        db,
        ActivityType.CONTACT_SUBMISSION,
        f"Contact form submitted by {submission.email}",
        request=request,
        metadata={"contact_id": submission.id, "subject": subject.value},
    )
    await db.commit()

    await email_service.send_contact_confirmation(submission.email, submission.name)
    await email_service.send_contact_admin_notification(
        name=submission.name,
        email=submission.email,
        subject=subject.value,
        message=submission.message,
        organization=submission.organization,
    )
    logger.info("Contact submission %s received", submission.id)
    return submission


async def update_contact_submission(
    db: AsyncSession,
    contact_id: str,
    status: Optional[ContactStatus] = None,
    notes: Optional[str] = None,
) -> ContactSubmission:
    submission = await db.get(ContactSubmission, contact_id)
    if submission is None:
        raise NotFoundError("Contact submission not found")

    if status is not None:
        submission.status = status.value
        if status in (ContactStatus.RESOLVED, ContactStatus.CLOSED):
            submission.resolved_at = datetime.now(UTC)
    if notes is not None:
        submission.notes = notes
    await db.commit()
    return submission
