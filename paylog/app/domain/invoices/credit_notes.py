"""
Credit Notes (Domain Logic).

Credit notes lower the amount owed on an approved invoice. An approved,
non-deleted credit note takes its amount, net of any TDS it reverses,
off the invoice's payable balance and can settle the invoice on its own.

Transactions are committed here; audit logging is left to the caller.
"""

import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from paylog.app.core.exceptions import BusinessRuleError, InvalidArgumentError, ResourceNotFoundError
from paylog.app.domain.invoices.invoice_workflow import InvoiceWorkflow
from paylog.app.models.credit_note import CreditNote
from paylog.app.models.invoice_enums import CreditNoteStatus, InvoiceStatus, PAYABLE_INVOICE_STATUSES

logger = logging.getLogger("paylog.credit_notes")


class CreditNoteService:

    @staticmethod
    async def get_credit_note(db: AsyncSession, credit_note_id: int) -> CreditNote:
        result = await db.execute(select(CreditNote).where(CreditNote.id == credit_note_id))
        credit_note = result.scalar_one_or_none()
        if not credit_note:
            raise ResourceNotFoundError("Credit note", credit_note_id)
        return credit_note

    @staticmethod
    async def _refresh_invoice(db: AsyncSession, invoice_id: int, today: Optional[date]) -> None:
        invoice = await InvoiceWorkflow.get_invoice(db, invoice_id)
        if invoice.status in PAYABLE_INVOICE_STATUSES:
            await InvoiceWorkflow.refresh_status(db, invoice, today or date.today())

    @staticmethod
    async def create_credit_note(
        db: AsyncSession,
        *,
        invoice_id: int,
        credit_note_number: str,
        credit_note_date: date,
        amount: Decimal,
        reason: str,
        created_by_user_id: int,
        is_admin: bool,
        notes: Optional[str] = None,
        tds_applicable: bool = False,
        tds_amount: Optional[Decimal] = None,
        today: Optional[date] = None
    ) -> CreditNote:
        """
        Raise a credit note against an invoice.

        Admin credit notes are approved immediately and update the invoice
        status; other credit notes wait for approval.

        Raises:
            ResourceNotFoundError: unknown invoice
            BusinessRuleError: invoice archived, pending approval or rejected
            InvalidArgumentError: TDS reversal on an invoice without TDS, a
                missing TDS amount, or a TDS amount above the credit amount
        """
        invoice = await InvoiceWorkflow.get_invoice(db, invoice_id)

        if invoice.is_archived:
            raise BusinessRuleError("Cannot add credit note to archived invoice")
        if invoice.status == InvoiceStatus.PENDING_APPROVAL:
            raise BusinessRuleError("Cannot add credit note to invoice pending approval")
        if invoice.status == InvoiceStatus.REJECTED:
            raise BusinessRuleError("Cannot add credit note to rejected invoice")

        if tds_applicable:
            if not invoice.tds_applicable:
                raise InvalidArgumentError(
                    "Cannot apply TDS reversal to credit note when invoice does not have TDS",
                    details={"invoice_id": invoice.id}
                )
            if tds_amount is None:
                raise InvalidArgumentError("tds_amount is required when TDS is applicable")
            if tds_amount > amount:
                raise InvalidArgumentError(
                    "TDS amount cannot exceed the credit note amount",
                    details={"amount": str(amount), "tds_amount": str(tds_amount)}
                )
        else:
            tds_amount = None

        if amount > Decimal(invoice.invoice_amount):
            logger.warning(
                "Credit note amount %s exceeds invoice %s amount %s",
                amount,
                invoice.id,
                invoice.invoice_amount,
                extra={"invoice_id": invoice.id}
            )

        now = datetime.now(timezone.utc)
        credit_note = CreditNote(
            invoice_id=invoice.id,
            credit_note_number=credit_note_number.strip(),
            credit_note_date=credit_note_date,
            amount=amount,
            reason=reason,
            notes=notes,
            tds_applicable=tds_applicable,
            tds_amount=tds_amount,
            status=CreditNoteStatus.APPROVED if is_admin else CreditNoteStatus.PENDING_APPROVAL,
            created_by_user_id=created_by_user_id,
            approved_by_user_id=created_by_user_id if is_admin else None,
            approved_at=now if is_admin else None,
        )
        db.add(credit_note)
        await db.flush()

        if is_admin:
            await InvoiceWorkflow.refresh_status(db, invoice, today or date.today())

        await db.commit()
        await db.refresh(credit_note)
        return credit_note

    @staticmethod
    async def approve_credit_note(
        db: AsyncSession, credit_note_id: int, admin_id: int, today: Optional[date] = None
    ) -> CreditNote:
        credit_note = await CreditNoteService.get_credit_note(db, credit_note_id)
        if credit_note.deleted_at is not None:
            raise BusinessRuleError("Cannot approve a deleted credit note")
        if credit_note.status == CreditNoteStatus.APPROVED:
            raise BusinessRuleError("Credit note is already approved")
        if credit_note.status == CreditNoteStatus.REJECTED:
            raise BusinessRuleError("Cannot approve a rejected credit note")

        credit_note.status = CreditNoteStatus.APPROVED
        credit_note.approved_by_user_id = admin_id
        credit_note.approved_at = datetime.now(timezone.utc)
        await db.flush()

        await CreditNoteService._refresh_invoice(db, credit_note.invoice_id, today)
        await db.commit()
        await db.refresh(credit_note)

        logger.info(
            "Credit note %s approved for invoice %s",
            credit_note.id,
            credit_note.invoice_id,
            extra={"credit_note_id": credit_note.id, "invoice_id": credit_note.invoice_id}
        )
        return credit_note

    @staticmethod
    async def reject_credit_note(db: AsyncSession, credit_note_id: int, admin_id: int, reason: str) -> CreditNote:
        credit_note = await CreditNoteService.get_credit_note(db, credit_note_id)
        if credit_note.deleted_at is not None:
            raise BusinessRuleError("Cannot reject a deleted credit note")
        if credit_note.status == CreditNoteStatus.REJECTED:
            raise BusinessRuleError("Credit note is already rejected")
        if credit_note.status == CreditNoteStatus.APPROVED:
            raise BusinessRuleError("Cannot reject an approved credit note")

        credit_note.status = CreditNoteStatus.REJECTED
        credit_note.approved_by_user_id = admin_id
        credit_note.rejection_reason = reason
        await db.commit()
        await db.refresh(credit_note)
        return credit_note

    @staticmethod
    async def delete_credit_note(
        db: AsyncSession,
        credit_note_id: int,
        admin_id: int,
        reason: Optional[str] = None,
        today: Optional[date] = None
    ) -> CreditNote:
        """Soft-delete a credit note; an approved one stops reducing the invoice balance."""
        credit_note = await CreditNoteService.get_credit_note(db, credit_note_id)
        if credit_note.deleted_at is not None:
            raise BusinessRuleError("Credit note is already deleted")

        credit_note.deleted_at = datetime.now(timezone.utc)
        credit_note.deleted_by_user_id = admin_id
        credit_note.deleted_reason = reason
        await db.flush()

        if credit_note.status == CreditNoteStatus.APPROVED:
            await CreditNoteService._refresh_invoice(db, credit_note.invoice_id, today)

        await db.commit()
        await db.refresh(credit_note)
        return credit_note

    @staticmethod
    async def list_credit_notes(
        db: AsyncSession, invoice_id: int, include_deleted: bool = False
    ) -> List[CreditNote]:
        await InvoiceWorkflow.get_invoice(db, invoice_id)

        query = select(CreditNote).where(CreditNote.invoice_id == invoice_id)
        if not include_deleted:
            query = query.where(CreditNote.deleted_at.is_(None))
        result = await db.execute(
            query.order_by(CreditNote.credit_note_date.asc(), CreditNote.id.asc())
        )
        return list(result.scalars().all())
