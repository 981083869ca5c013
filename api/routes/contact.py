"""
Contact form API routes.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps_admin import get_current_admin_user
from api.middleware.rate_limit import get_rate_limit, limiter
from api.schemas.common import PaginatedResponse
from api.schemas.contact import (
    ContactResponse,
    ContactSubmitRequest,
    ContactSubmitResponse,
    ContactUpdateRequest,
)
from api.utils import escape_like, paginate, total_pages
from infrastructure.database.connection import get_db
from infrastructure.database.models import ContactStatus, ContactSubmission, User
from services import contact as contact_service

router = APIRouter(prefix="/contact", tags=["Contact"])


@router.post("/submit", response_model=ContactSubmitResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(get_rate_limit("contact"))
async def submit_contact_form(
    request: Request,
    body: ContactSubmitRequest,
    db: AsyncSession = Depends(get_db),
):
    submission = await contact_service.submit_contact_form(db, body.model_dump(), request=request)
    return ContactSubmitResponse(
        id=submission.id,
        message="Thank you for reaching out! We will get back to you within 24 hours.",
    )


@router.get("", response_model=PaginatedResponse[ContactResponse])
async def list_contact_submissions(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    status: Optional[ContactStatus] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    query = select(ContactSubmission)
    if status:
        query = query.where(ContactSubmission.status == status.value)
    if search:
        pattern = f"%{escape_like(search)}%"
        query = query.where(
            or_(
                ContactSubmission.name.ilike(pattern),
                ContactSubmission.email.ilike(pattern),
                ContactSubmission.organization.ilike(pattern),
            )
        )
    query = query.order_by(ContactSubmission.created_at.desc())

    items, total = await paginate(db, query, page, page_size)
    return {
        "items": items,
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": total_pages(total, page_size),
    }


@router.put("/{contact_id}", response_model=ContactResponse)
async def update_contact_submission(
    contact_id: str,
    body: ContactUpdateRequest,
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    return await contact_service.update_contact_submission(
        db, contact_id, status=body.status, notes=body.notes
    )
