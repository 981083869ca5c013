"""
Invoice API routes (admin).
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import RedirectResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps_admin import get_current_admin_user
from api.schemas.common import PaginatedResponse
from api.schemas.invoice import (
    InvoiceCancelRequest,
    InvoiceCreate,
    InvoiceResponse,
    InvoiceStatsResponse,
)
from api.utils import paginate, total_pages
from infrastructure.database.connection import get_db
from infrastructure.database.models import Invoice, InvoiceStatus, User
from services import invoices as invoice_service

router = APIRouter(prefix="/invoices", tags=["Invoices"])


@router.post("", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
async def create_invoice(
    body: InvoiceCreate,
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    """Draft an invoice for one period of a subscription, with GST applied."""
    return await invoice_service.create_invoice(
        db,
        body.subscription_id,
        tax_rate=body.tax_rate,
        period_start=body.period_start,
        period_end=body.period_end,
    )


@router.get("", response_model=PaginatedResponse[InvoiceResponse])
async def list_invoices(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    status: Optional[InvoiceStatus] = Query(None),
    client_id: Optional[str] = Query(None),
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    query = select(Invoice)
    if status:
        query = query.where(Invoice.status == status.value)
    if client_id:
        query = query.where(Invoice.client_organization_id == client_id)
    query = query.order_by(Invoice.created_at.desc())

    items, total = await paginate(db, query, page, page_size)
    return {
        "items": items,
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": total_pages(total, page_size),
    }


@router.get("/stats", response_model=InvoiceStatsResponse)
async def get_invoice_stats(
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    return await invoice_service.invoice_stats(db)


@router.get("/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(
    invoice_id: str,
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    return await invoice_service.get_invoice(db, invoice_id)


@router.get("/{invoice_id}/pdf")
async def download_invoice_pdf(
    invoice_id: str,
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    invoice = await invoice_service.get_invoice(db, invoice_id)
    if not invoice.pdf_url:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="PDF not available for this invoice",
        )
    return RedirectResponse(invoice.pdf_url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)


@router.put("/{invoice_id}/send", response_model=InvoiceResponse)
async def send_invoice(
    invoice_id: str,
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    """Mark a DRAFT invoice SENT and email it to the client contact."""
    return await invoice_service.send_invoice(db, invoice_id)


@router.put("/{invoice_id}/cancel", response_model=InvoiceResponse)
async def cancel_invoice(
    invoice_id: str,
    body: Optional[InvoiceCancelRequest] = None,
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    reason = body.reason if body else None
    return await invoice_service.cancel_invoice(db, invoice_id, reason)
