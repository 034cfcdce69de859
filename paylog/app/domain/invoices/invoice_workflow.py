"""
Invoice Workflow (Domain Logic).

Invoice approval, payment recording/approval and invoice status
derivation. Balances are TDS-aware: an invoice is settled once its
approved payments cover the post-TDS payable amount, less any approved
credit notes.

Transactions are committed here; audit logging is left to the caller.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from paylog.app.core.config import settings
from paylog.app.core.exceptions import BusinessRuleError, InvalidArgumentError, ResourceNotFoundError
from paylog.app.domain.ledger.tds_calculator import invoice_tds, validate_tds_percentage
from paylog.app.models.credit_note import CreditNote
from paylog.app.models.invoice import Invoice
from paylog.app.models.invoice_enums import (
    CreditNoteStatus, InvoiceStatus, MasterDataStatus, PaymentStatus, PAYABLE_INVOICE_STATUSES
)
from paylog.app.models.invoice_profile import InvoiceProfile
from paylog.app.models.payment import Payment
from paylog.app.models.payment_type import PaymentType
from paylog.app.models.vendor import Vendor

logger = logging.getLogger("paylog.invoices")

ZERO = Decimal("0")
CENTS = Decimal("0.01")


def derive_invoice_status(
    payable: Decimal,
    total_paid: Decimal,
    due_date: Optional[date],
    today: date,
    epsilon: Optional[Decimal] = None
) -> InvoiceStatus:
    """
    Status of an approved invoice from its payable amount and approved payments.

    PAID once no more than epsilon remains (the same threshold the ledger
    uses for unpaid invoices); otherwise OVERDUE past the due date, else
    PARTIAL or UNPAID.
    """
    if epsilon is None:
        epsilon = settings.ledger_unpaid_epsilon
    if payable - total_paid <= epsilon:
        return InvoiceStatus.PAID
    if due_date is not None and due_date < today:
        return InvoiceStatus.OVERDUE
    if total_paid > ZERO:
        return InvoiceStatus.PARTIAL
    return InvoiceStatus.UNPAID


def credit_note_reduction(amount: Decimal, tds_amount: Optional[Decimal]) -> Decimal:
    """Amount a credit note takes off the payable balance: its value net of reversed TDS."""
    return Decimal(amount) - Decimal(tds_amount or ZERO)


@dataclass(frozen=True)
class PaymentSummary:
    """Payment position of one invoice."""
    invoice_id: int
    invoice_amount: Decimal
    tds_amount: Decimal
    payable_amount: Decimal
    credit_note_total: Decimal
    total_paid: Decimal
    remaining_balance: Decimal
    is_fully_paid: bool
    has_pending_payment: bool


class InvoiceWorkflow:

    @staticmethod
    async def get_invoice(db: AsyncSession, invoice_id: int) -> Invoice:
        result = await db.execute(select(Invoice).where(Invoice.id == invoice_id))
        invoice = result.scalar_one_or_none()
        if not invoice:
            raise ResourceNotFoundError("Invoice", invoice_id)
        return invoice

    @staticmethod
    async def get_payment(db: AsyncSession, payment_id: int) -> Payment:
        result = await db.execute(select(Payment).where(Payment.id == payment_id))
        payment = result.scalar_one_or_none()
        if not payment:
            raise ResourceNotFoundError("Payment", payment_id)
        return payment

    @staticmethod
    async def _payments(db: AsyncSession, invoice_id: int) -> List[Payment]:
        result = await db.execute(
            select(Payment).where(Payment.invoice_id == invoice_id)
            .order_by(Payment.payment_date.asc(), Payment.id.asc())
        )
        return list(result.scalars().all())

    @staticmethod
    def _payable(invoice: Invoice) -> Decimal:
        return invoice_tds(
            Decimal(invoice.invoice_amount), invoice.tds_applicable, invoice.tds_percentage
        ).payable_amount

    @staticmethod
    async def credit_note_total(db: AsyncSession, invoice_id: int) -> Decimal:
        """Balance reduction from the invoice's approved, non-deleted credit notes."""
        result = await db.execute(
            select(CreditNote).where(
                CreditNote.invoice_id == invoice_id,
                CreditNote.status == CreditNoteStatus.APPROVED,
                CreditNote.deleted_at.is_(None)
            )
        )
        return sum(
            (credit_note_reduction(cn.amount, cn.tds_amount) for cn in result.scalars().all()), ZERO
        )

    @staticmethod
    async def get_payment_summary(db: AsyncSession, invoice: Invoice) -> PaymentSummary:
        payments = await InvoiceWorkflow._payments(db, invoice.id)
        tds = invoice_tds(Decimal(invoice.invoice_amount), invoice.tds_applicable, invoice.tds_percentage)
        credits = await InvoiceWorkflow.credit_note_total(db, invoice.id)
        total_paid = sum(
            (Decimal(p.amount_paid) for p in payments if p.status == PaymentStatus.APPROVED), ZERO
        )
        remaining = tds.payable_amount - credits - total_paid
        is_fully_paid = remaining <= settings.ledger_unpaid_epsilon
        return PaymentSummary(
            invoice_id=invoice.id,
            invoice_amount=Decimal(invoice.invoice_amount),
            tds_amount=tds.tds_amount,
            payable_amount=tds.payable_amount,
            credit_note_total=credits,
            total_paid=total_paid,
            remaining_balance=ZERO if is_fully_paid else remaining,
            is_fully_paid=is_fully_paid,
            has_pending_payment=any(p.status == PaymentStatus.PENDING for p in payments),
        )

    @staticmethod
    async def refresh_status(db: AsyncSession, invoice: Invoice, today: date) -> InvoiceStatus:
        """Recompute an approved invoice's status from its approved payments and credit notes (no commit)."""
        payments = await InvoiceWorkflow._payments(db, invoice.id)
        total_paid = sum(
            (Decimal(p.amount_paid) for p in payments if p.status == PaymentStatus.APPROVED), ZERO
        )
        credits = await InvoiceWorkflow.credit_note_total(db, invoice.id)
        invoice.status = derive_invoice_status(
            InvoiceWorkflow._payable(invoice) - credits, total_paid, invoice.due_date, today
        )
        return invoice.status

    @staticmethod
    async def create_invoice(
        db: AsyncSession,
        *,
        invoice_number: str,
        invoice_amount: Decimal,
        created_by_user_id: int,
        is_admin: bool,
        invoice_profile_id: Optional[int] = None,
        vendor_id: Optional[int] = None,
        entity_id: Optional[int] = None,
        category_id: Optional[int] = None,
        invoice_name: Optional[str] = None,
        invoice_date: Optional[date] = None,
        due_date: Optional[date] = None,
        tds_applicable: Optional[bool] = None,
        tds_percentage: Optional[Decimal] = None,
        description: Optional[str] = None,
        today: Optional[date] = None
    ) -> Invoice:
        """
        Create an invoice, optionally from a profile.

        Profile vendor/entity/category and TDS defaults fill in whatever
        the caller leaves out. Admin-created invoices are approved at once.
        """
        today = today or date.today()

        if invoice_profile_id is not None:
            result = await db.execute(select(InvoiceProfile).where(InvoiceProfile.id == invoice_profile_id))
            profile = result.scalar_one_or_none()
            if not profile:
                raise ResourceNotFoundError("Invoice profile", invoice_profile_id)
            vendor_id = vendor_id or profile.vendor_id
            entity_id = entity_id or profile.entity_id
            category_id = category_id or profile.category_id
            if tds_applicable is None:
                tds_applicable = profile.tds_applicable
                if tds_percentage is None:
                    tds_percentage = profile.tds_percentage

        if vendor_id is None:
            raise InvalidArgumentError("Either vendor_id or invoice_profile_id is required")

        result = await db.execute(select(Vendor).where(Vendor.id == vendor_id))
        vendor = result.scalar_one_or_none()
        if not vendor:
            raise ResourceNotFoundError("Vendor", vendor_id)
        if vendor.status == MasterDataStatus.REJECTED:
            raise BusinessRuleError("Cannot invoice a rejected vendor", details={"vendor_id": vendor_id})

        tds_applicable = bool(tds_applicable)
        if tds_applicable:
            if tds_percentage is None or not validate_tds_percentage(tds_percentage):
                raise InvalidArgumentError(
                    "TDS percentage between 0 and 100 is required when TDS is applicable",
                    details={"tds_percentage": str(tds_percentage)}
                )
        else:
            tds_percentage = None

        if invoice_date and due_date and due_date < invoice_date:
            raise InvalidArgumentError("due_date cannot be before invoice_date")

        now = datetime.now(timezone.utc)
        invoice = Invoice(
            invoice_number=invoice_number.strip(),
            invoice_name=invoice_name,
            invoice_profile_id=invoice_profile_id,
            vendor_id=vendor_id,
            entity_id=entity_id,
            category_id=category_id,
            invoice_amount=invoice_amount,
            tds_applicable=tds_applicable,
            tds_percentage=tds_percentage,
            invoice_date=invoice_date,
            due_date=due_date,
            description=description,
            created_by_user_id=created_by_user_id,
            status=InvoiceStatus.PENDING_APPROVAL,
        )

        if is_admin:
            invoice.approved_by_user_id = created_by_user_id
            invoice.approved_at = now
            invoice.status = derive_invoice_status(
                InvoiceWorkflow._payable(invoice), ZERO, due_date, today
            )

        db.add(invoice)
        await db.commit()
        await db.refresh(invoice)
        return invoice

    @staticmethod
    async def approve_invoice(db: AsyncSession, invoice_id: int, admin_id: int, today: Optional[date] = None) -> Invoice:
        invoice = await InvoiceWorkflow.get_invoice(db, invoice_id)
        if invoice.status != InvoiceStatus.PENDING_APPROVAL:
            raise BusinessRuleError(
                f"Invoice status is {invoice.status.value}, expected pending_approval",
                details={"invoice_id": invoice.id}
            )

        invoice.approved_by_user_id = admin_id
        invoice.approved_at = datetime.now(timezone.utc)
        invoice.rejection_reason = None
        await InvoiceWorkflow.refresh_status(db, invoice, today or date.today())
        await db.commit()
        await db.refresh(invoice)
        return invoice

    @staticmethod
    async def reject_invoice(db: AsyncSession, invoice_id: int, admin_id: int, reason: str) -> Invoice:
        invoice = await InvoiceWorkflow.get_invoice(db, invoice_id)
        if invoice.status != InvoiceStatus.PENDING_APPROVAL:
            raise BusinessRuleError(
                f"Invoice status is {invoice.status.value}, expected pending_approval",
                details={"invoice_id": invoice.id}
            )

        invoice.status = InvoiceStatus.REJECTED
        invoice.approved_by_user_id = admin_id
        invoice.rejection_reason = reason
        await db.commit()
        await db.refresh(invoice)
        return invoice

    @staticmethod
    async def archive_invoice(db: AsyncSession, invoice_id: int, reason: Optional[str] = None) -> Invoice:
        invoice = await InvoiceWorkflow.get_invoice(db, invoice_id)
        if invoice.is_archived:
            raise BusinessRuleError("Invoice is already archived", details={"invoice_id": invoice.id})

        invoice.is_archived = True
        invoice.archived_at = datetime.now(timezone.utc)
        invoice.archived_reason = reason
        await db.commit()
        await db.refresh(invoice)
        return invoice

    @staticmethod
    async def create_payment(
        db: AsyncSession,
        *,
        invoice_id: int,
        amount_paid: Decimal,
        payment_date: date,
        created_by_user_id: int,
        is_admin: bool,
        payment_type_id: Optional[int] = None,
        payment_reference: Optional[str] = None,
        tds_amount_applied: Optional[Decimal] = None,
        tds_rounded: bool = False,
        today: Optional[date] = None
    ) -> Payment:
        """
        Record a payment against an invoice.

        Admin payments are approved immediately and update the invoice
        status; other payments wait as PENDING.

        Raises:
            ResourceNotFoundError: unknown invoice or payment type
            InvalidArgumentError: payment type needs a reference and none was given
            BusinessRuleError: invoice archived/unapproved/rejected, another
                payment pending, inactive payment type, or amount above the
                remaining balance
        """
        invoice = await InvoiceWorkflow.get_invoice(db, invoice_id)

        if invoice.is_archived:
            raise BusinessRuleError("Cannot add payment to archived invoice")
        if invoice.status == InvoiceStatus.PENDING_APPROVAL:
            raise BusinessRuleError(
                "Cannot add payment to invoice pending approval. Please wait for admin approval first."
            )
        if invoice.status == InvoiceStatus.REJECTED:
            raise BusinessRuleError("Cannot add payment to rejected invoice")

        if payment_type_id is not None:
            payment_type = await db.get(PaymentType, payment_type_id)
            if payment_type is None:
                raise ResourceNotFoundError("Payment type", payment_type_id)
            if not payment_type.is_active:
                raise BusinessRuleError(f"Payment type '{payment_type.name}' is archived")
            if payment_type.requires_reference and not (payment_reference or "").strip():
                raise InvalidArgumentError(
                    f"Payment type '{payment_type.name}' requires a payment reference",
                    details={"payment_type_id": payment_type_id}
                )

        summary = await InvoiceWorkflow.get_payment_summary(db, invoice)
        if summary.has_pending_payment:
            raise BusinessRuleError(
                "Cannot add payment while another payment is pending approval",
                details={"invoice_id": invoice.id}
            )

        remaining = summary.remaining_balance.quantize(CENTS, rounding=ROUND_HALF_UP)
        if amount_paid > remaining:
            raise BusinessRuleError(
                f"Payment amount ({amount_paid}) exceeds remaining balance ({remaining})",
                details={"amount_paid": str(amount_paid), "remaining_balance": str(remaining)}
            )

        now = datetime.now(timezone.utc)
        payment = Payment(
            invoice_id=invoice.id,
            amount_paid=amount_paid,
            payment_date=payment_date,
            payment_type_id=payment_type_id,
            payment_reference=payment_reference,
            tds_amount_applied=tds_amount_applied,
            tds_rounded=tds_rounded,
            status=PaymentStatus.APPROVED if is_admin else PaymentStatus.PENDING,
            created_by_user_id=created_by_user_id,
            approved_by_user_id=created_by_user_id if is_admin else None,
            approved_at=now if is_admin else None,
        )
        db.add(payment)
        await db.flush()

        # Pending payments do not move the invoice status until approved
        if is_admin:
            await InvoiceWorkflow.refresh_status(db, invoice, today or date.today())

        await db.commit()
        await db.refresh(payment)
        return payment

    @staticmethod
    async def approve_payment(db: AsyncSession, payment_id: int, admin_id: int, today: Optional[date] = None) -> Payment:
        payment = await InvoiceWorkflow.get_payment(db, payment_id)
        if payment.status != PaymentStatus.PENDING:
            raise BusinessRuleError(
                f"Payment cannot be approved. Current status: {payment.status.value}",
                details={"payment_id": payment.id}
            )

        payment.status = PaymentStatus.APPROVED
        payment.approved_by_user_id = admin_id
        payment.approved_at = datetime.now(timezone.utc)
        await db.flush()

        invoice = await InvoiceWorkflow.get_invoice(db, payment.invoice_id)
        new_status = await InvoiceWorkflow.refresh_status(db, invoice, today or date.today())

        await db.commit()
        await db.refresh(payment)

        logger.info(
            "Payment %s approved, invoice %s is now %s",
            payment.id,
            invoice.id,
            new_status.value,
            extra={"payment_id": payment.id, "invoice_id": invoice.id}
        )
        return payment

    @staticmethod
    async def reject_payment(db: AsyncSession, payment_id: int, admin_id: int, reason: str) -> Payment:
        payment = await InvoiceWorkflow.get_payment(db, payment_id)
        if payment.status != PaymentStatus.PENDING:
            raise BusinessRuleError(
                f"Payment cannot be rejected. Current status: {payment.status.value}",
                details={"payment_id": payment.id}
            )

        payment.status = PaymentStatus.REJECTED
        payment.approved_by_user_id = admin_id
        payment.rejection_reason = reason
        await db.commit()
        await db.refresh(payment)
        return payment

    @staticmethod
    async def list_payments(db: AsyncSession, invoice_id: int) -> List[Payment]:
        await InvoiceWorkflow.get_invoice(db, invoice_id)
        return await InvoiceWorkflow._payments(db, invoice_id)

    @staticmethod
    async def recalculate_statuses(db: AsyncSession, today: Optional[date] = None) -> int:
        """
        Refresh the status of every active approved invoice.

        Returns:
            Number of invoices whose status changed
        """
        today = today or date.today()
        result = await db.execute(
            select(Invoice).where(
                Invoice.is_archived == False,
                Invoice.status.in_(PAYABLE_INVOICE_STATUSES)
            )
        )
        invoices = result.scalars().all()

        changed = 0
        for invoice in invoices:
            previous = invoice.status
            if await InvoiceWorkflow.refresh_status(db, invoice, today) != previous:
                changed += 1

        await db.commit()
        logger.info("Recalculated %d invoice statuses, %d changed", len(invoices), changed)
        return changed
