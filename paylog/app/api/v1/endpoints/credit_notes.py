"""
Credit Note API Endpoints.

Raising credit notes against invoices, their approval workflow and
soft deletion.
"""

from decimal import Decimal

from fastapi import APIRouter, Depends, status, Query, Path
from sqlalchemy.ext.asyncio import AsyncSession

from paylog.app.core.dependencies import get_current_user
from paylog.app.core.guards import require_admin
from paylog.app.db.session import get_db
from paylog.app.domain.invoices.credit_notes import CreditNoteService
from paylog.app.models.enums import is_admin_role
from paylog.app.schemas.credit_note import CreditNoteCreate, CreditNoteResponse, CreditNoteListResponse
from paylog.app.schemas.master_data import RejectRequest
from paylog.app.services.audit import log_record_event, AuditAction

router = APIRouter(tags=["Credit Notes"])


@router.post(
    "/invoices/{invoice_id}/credit-notes",
    response_model=CreditNoteResponse,
    status_code=status.HTTP_201_CREATED
)
async def create_credit_note(
    credit_note_data: CreditNoteCreate,
    invoice_id: int = Path(..., description="Invoice ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Raise a credit note.

    Admin credit notes are approved immediately; standard user credit
    notes wait for approval before they reduce the invoice balance.
    """
    credit_note = await CreditNoteService.create_credit_note(
        db,
        invoice_id=invoice_id,
        created_by_user_id=current_user["user_id"],
        is_admin=is_admin_role(current_user["role"]),
        **credit_note_data.model_dump()
    )

    await log_record_event(
        db=db,
        action=AuditAction.CREDIT_NOTE_CREATED,
        current_user=current_user,
        target_type="credit_note",
        target_id=credit_note.id,
        metadata={
            "invoice_id": invoice_id,
            "amount": str(credit_note.amount),
            "status": credit_note.status.value
        }
    )

    return credit_note


@router.get("/invoices/{invoice_id}/credit-notes", response_model=CreditNoteListResponse)
async def list_invoice_credit_notes(
    invoice_id: int = Path(..., description="Invoice ID"),
    include_deleted: bool = Query(False),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Credit notes of an invoice, oldest first. Totals skip deleted notes."""
    credit_notes = await CreditNoteService.list_credit_notes(db, invoice_id, include_deleted=include_deleted)
    live = [cn for cn in credit_notes if cn.deleted_at is None]

    return CreditNoteListResponse(
        credit_notes=[CreditNoteResponse.model_validate(cn) for cn in credit_notes],
        total=len(credit_notes),
        total_amount=sum((Decimal(cn.amount) for cn in live), Decimal("0")),
        total_tds_amount=sum((Decimal(cn.tds_amount or 0) for cn in live), Decimal("0"))
    )


@router.post("/credit-notes/{credit_note_id}/approve", response_model=CreditNoteResponse)
async def approve_credit_note(
    credit_note_id: int = Path(..., description="Credit note ID"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Approve a pending credit note and update the invoice status (admin-only)."""
    credit_note = await CreditNoteService.approve_credit_note(db, credit_note_id, admin["user_id"])

    await log_record_event(
        db=db,
        action=AuditAction.CREDIT_NOTE_APPROVED,
        current_user=admin,
        target_type="credit_note",
        target_id=credit_note.id,
        metadata={"invoice_id": credit_note.invoice_id}
    )

    return credit_note


@router.post("/credit-notes/{credit_note_id}/reject", response_model=CreditNoteResponse)
async def reject_credit_note(
    request: RejectRequest,
    credit_note_id: int = Path(..., description="Credit note ID"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Reject a pending credit note (admin-only)."""
    credit_note = await CreditNoteService.reject_credit_note(db, credit_note_id, admin["user_id"], request.reason)

    await log_record_event(
        db=db,
        action=AuditAction.CREDIT_NOTE_REJECTED,
        current_user=admin,
        target_type="credit_note",
        target_id=credit_note.id,
        metadata={"invoice_id": credit_note.invoice_id, "reason": request.reason}
    )

    return credit_note


@router.delete("/credit-notes/{credit_note_id}", response_model=CreditNoteResponse)
async def delete_credit_note(
    credit_note_id: int = Path(..., description="Credit note ID"),
    reason: str = Query(None, max_length=500),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Soft-delete a credit note (admin-only)."""
    credit_note = await CreditNoteService.delete_credit_note(db, credit_note_id, admin["user_id"], reason)

    await log_record_event(
        db=db,
        action=AuditAction.CREDIT_NOTE_DELETED,
        current_user=admin,
        target_type="credit_note",
        target_id=credit_note.id,
        metadata={"invoice_id": credit_note.invoice_id, "reason": reason}
    )

    return credit_note
