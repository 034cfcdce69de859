"""
Invoice API Endpoints.

Invoice creation, listing, approval and archiving.
"""

from fastapi import APIRouter, Depends, status, Query, Path
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from paylog.app.core.dependencies import get_current_user
from paylog.app.core.guards import require_admin
from paylog.app.db.session import get_db
from paylog.app.domain.invoices.invoice_workflow import InvoiceWorkflow
from paylog.app.models.enums import is_admin_role
from paylog.app.models.invoice import Invoice
from paylog.app.models.invoice_enums import InvoiceStatus
from paylog.app.schemas.invoice import (
    InvoiceCreate, InvoiceResponse, InvoiceDetailResponse, InvoiceListResponse, ArchiveInvoiceRequest
)
from paylog.app.schemas.master_data import RejectRequest
from paylog.app.services.audit import log_record_event, AuditAction

router = APIRouter(prefix="/invoices", tags=["Invoices"])


@router.post("", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
async def create_invoice(
    invoice_data: InvoiceCreate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Create an invoice.

    Invoices from standard users start as pending_approval; admin
    invoices are approved immediately.
    """
    invoice = await InvoiceWorkflow.create_invoice(
        db,
        created_by_user_id=current_user["user_id"],
        is_admin=is_admin_role(current_user["role"]),
        **invoice_data.model_dump()
    )

    await log_record_event(
        db=db,
        action=AuditAction.INVOICE_CREATED,
        current_user=current_user,
        target_type="invoice",
        target_id=invoice.id,
        metadata={
            "invoice_number": invoice.invoice_number,
            "amount": str(invoice.invoice_amount),
            "status": invoice.status.value
        }
    )

    return invoice


@router.get("", response_model=InvoiceListResponse)
async def list_invoices(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    invoice_status: InvoiceStatus = Query(None, alias="status", description="Filter by status"),
    profile_id: int = Query(None, description="Filter by invoice profile"),
    vendor_id: int = Query(None, description="Filter by vendor"),
    include_archived: bool = Query(False),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    List invoices, newest invoice date first.
    """
    filters = []
    if invoice_status:
        filters.append(Invoice.status == invoice_status)
    if profile_id:
        filters.append(Invoice.invoice_profile_id == profile_id)
    if vendor_id:
        filters.append(Invoice.vendor_id == vendor_id)
    if not include_archived:
        filters.append(Invoice.is_archived == False)

    total = (await db.execute(select(func.count(Invoice.id)).where(*filters))).scalar()

    offset = (page - 1) * page_size
    result = await db.execute(
        select(Invoice).where(*filters)
        .order_by(Invoice.invoice_date.desc(), Invoice.id.desc())
        .offset(offset).limit(page_size)
    )
    invoices = result.scalars().all()

    return InvoiceListResponse(
        invoices=[InvoiceResponse.model_validate(inv) for inv in invoices],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/{invoice_id}", response_model=InvoiceDetailResponse)
async def get_invoice(
    invoice_id: int = Path(..., description="Invoice ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Invoice with its TDS-aware payment position.
    """
    invoice = await InvoiceWorkflow.get_invoice(db, invoice_id)
    summary = await InvoiceWorkflow.get_payment_summary(db, invoice)

    return InvoiceDetailResponse(
        **InvoiceResponse.model_validate(invoice).model_dump(),
        tds_amount=summary.tds_amount,
        payable_amount=summary.payable_amount,
        credit_note_total=summary.credit_note_total,
        total_paid=summary.total_paid,
        remaining_balance=summary.remaining_balance,
        has_pending_payment=summary.has_pending_payment
    )


@router.post("/{invoice_id}/approve", response_model=InvoiceResponse)
async def approve_invoice(
    invoice_id: int = Path(..., description="Invoice ID"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Approve a pending_approval invoice (admin-only)."""
    invoice = await InvoiceWorkflow.approve_invoice(db, invoice_id, admin["user_id"])

    await log_record_event(
        db=db,
        action=AuditAction.INVOICE_APPROVED,
        current_user=admin,
        target_type="invoice",
        target_id=invoice.id,
        metadata={"status": invoice.status.value}
    )

    return invoice


@router.post("/{invoice_id}/reject", response_model=InvoiceResponse)
async def reject_invoice(
    request: RejectRequest,
    invoice_id: int = Path(..., description="Invoice ID"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Reject a pending_approval invoice (admin-only)."""
    invoice = await InvoiceWorkflow.reject_invoice(db, invoice_id, admin["user_id"], request.reason)

    await log_record_event(
        db=db,
        action=AuditAction.INVOICE_REJECTED,
        current_user=admin,
        target_type="invoice",
        target_id=invoice.id,
        metadata={"reason": request.reason}
    )

    return invoice


@router.post("/{invoice_id}/archive", response_model=InvoiceResponse)
async def archive_invoice(
    request: ArchiveInvoiceRequest,
    invoice_id: int = Path(..., description="Invoice ID"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Archive an invoice (admin-only).

    Archived invoices drop out of ledgers and accept no payments.
    """
    invoice = await InvoiceWorkflow.archive_invoice(db, invoice_id, request.reason)

    await log_record_event(
        db=db,
        action=AuditAction.INVOICE_ARCHIVED,
        current_user=admin,
        target_type="invoice",
        target_id=invoice.id,
        metadata={"reason": request.reason} if request.reason else None
    )

    return invoice
