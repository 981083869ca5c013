"""
Demo request API routes.

The request form is public; everything else is for the sales team.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps_admin import get_current_admin_user
from api.middleware.rate_limit import get_rate_limit, limiter
from api.schemas.common import PaginatedResponse
from api.schemas.demo import (
    CompleteDemoRequest,
    DemoRequestCreate,
    DemoRequestCreatedResponse,
    DemoRequestResponse,
    DemoRequestUpdate,
    DemoStatsResponse,
    ScheduleDemoRequest,
)
from api.utils import escape_like, paginate, total_pages
from infrastructure.database.connection import get_db
from infrastructure.database.models import DemoRequest, DemoStatus, User
from services import demo_requests as demo_service

router = APIRouter(prefix="/demo", tags=["Demo Requests"])


@router.post(
    "/request",
    response_model=DemoRequestCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(get_rate_limit("demo_request"))
async def request_demo(
    request: Request,
    body: DemoRequestCreate,
    db: AsyncSession = Depends(get_db),
):
    """Submit a demo request from the marketing site."""
    data = body.model_dump()
    data["contact_email"] = data["contact_email"].lower()
    demo = await demo_service.create_demo_request(db, data, request=request)
    return DemoRequestCreatedResponse(
        id=demo.id,
        status=demo.status,
        message="Thank you! Our team will contact you within 24 hours to schedule your demo.",
    )


@router.get("/requests", response_model=PaginatedResponse[DemoRequestResponse])
async def list_demo_requests(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    status: Optional[DemoStatus] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    query = select(DemoRequest)
    if status:
        query = query.where(DemoRequest.status == status.value)
    if search:
        pattern = f"%{escape_like(search)}%"
        query = query.where(
            or_(
                DemoRequest.organization_name.ilike(pattern),
                DemoRequest.contact_name.ilike(pattern),
                DemoRequest.contact_email.ilike(pattern),
            )
        )
    query = query.order_by(DemoRequest.created_at.desc())

    items, total = await paginate(db, query, page, page_size)
    return {
        "items": items,
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": total_pages(total, page_size),
    }


@router.get("/requests/stats", response_model=DemoStatsResponse)
async def get_demo_stats(
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    return await demo_service.demo_stats(db)


@router.get("/requests/{demo_id}", response_model=DemoRequestResponse)
async def get_demo_request(
    demo_id: str,
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    return await demo_service.get_demo_request(db, demo_id)


@router.put("/requests/{demo_id}", response_model=DemoRequestResponse)
async def update_demo_request(
    demo_id: str,
    body: DemoRequestUpdate,
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    """Partial update; only the fields present in the body change."""
    data = body.model_dump(exclude_unset=True)
    if data.get("status") is not None:
        data["status"] = data["status"].value
    return await demo_service.update_demo_request(db, demo_id, data)


@router.put("/requests/{demo_id}/schedule", response_model=DemoRequestResponse)
async def schedule_demo(
    demo_id: str,
    body: ScheduleDemoRequest,
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    return await demo_service.schedule_demo(db, demo_id, body.scheduled_at, body.assigned_to_id)


@router.put("/requests/{demo_id}/complete", response_model=DemoRequestResponse)
async def complete_demo(
    demo_id: str,
    body: CompleteDemoRequest,
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    return await demo_service.complete_demo(db, demo_id, body.outcome)
