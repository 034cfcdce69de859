"""
Ledger Service (Data Access).

Loads invoice profiles, their invoices, approved payments and approved
credit notes, and feeds them to the ledger engine. Filtering by date
range and invoice number happens at the query stage; the engine only
sees the filtered snapshot.
"""

import csv
import io
import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from paylog.app.core.config import settings
from paylog.app.core.exceptions import InvalidArgumentError, ResourceNotFoundError
from paylog.app.domain.ledger.ledger_engine import (
    LedgerCreditNote, LedgerInvoice, LedgerPayment, LedgerProfileMeta, build_ledger
)
from paylog.app.models.credit_note import CreditNote
from paylog.app.models.invoice import Invoice
from paylog.app.models.invoice_enums import CreditNoteStatus, PAYABLE_INVOICE_STATUSES, PaymentStatus
from paylog.app.models.invoice_profile import InvoiceProfile
from paylog.app.models.payment import Payment
from paylog.app.schemas.ledger import (
    LedgerFilters, LedgerProfileOption, LedgerResponse, LedgerSummary
)

logger = logging.getLogger("paylog.ledger")

CSV_COLUMNS = [
    "date", "type", "description", "invoice_number", "invoice_amount",
    "tds_percentage", "tds_amount_applied", "payable_amount", "paid_amount",
    "credited_amount", "payment_method", "transaction_ref", "running_balance",
]


def _profile_meta(profile: InvoiceProfile) -> LedgerProfileMeta:
    return LedgerProfileMeta(
        profile_id=profile.id,
        profile_name=profile.name,
        vendor_name=profile.vendor.name if profile.vendor else None,
        entity_name=profile.entity.name if profile.entity else None,
    )


def _to_ledger_invoice(invoice: Invoice) -> LedgerInvoice:
    return LedgerInvoice(
        id=invoice.id,
        invoice_number=invoice.invoice_number,
        amount=Decimal(invoice.invoice_amount),
        date=invoice.invoice_date,
        tds_applicable=invoice.tds_applicable,
        tds_percentage=Decimal(invoice.tds_percentage) if invoice.tds_percentage is not None else None,
        due_date=invoice.due_date,
    )


def _to_ledger_payment(payment: Payment) -> LedgerPayment:
    return LedgerPayment(
        id=payment.id,
        invoice_id=payment.invoice_id,
        amount=Decimal(payment.amount_paid),
        date=payment.payment_date,
        payment_method=payment.payment_type.name if payment.payment_type else None,
        transaction_ref=payment.payment_reference,
        tds_amount_applied=Decimal(payment.tds_amount_applied) if payment.tds_amount_applied is not None else None,
        tds_rounded=payment.tds_rounded,
    )


def _to_ledger_credit_note(credit_note: CreditNote) -> LedgerCreditNote:
    return LedgerCreditNote(
        id=credit_note.id,
        invoice_id=credit_note.invoice_id,
        credit_note_number=credit_note.credit_note_number,
        amount=Decimal(credit_note.amount),
        date=credit_note.credit_note_date,
        tds_amount=Decimal(credit_note.tds_amount) if credit_note.tds_amount is not None else None,
    )


class LedgerService:

    @staticmethod
    async def _get_profile(db: AsyncSession, profile_id: int) -> InvoiceProfile:
        result = await db.execute(
            select(InvoiceProfile)
            .options(selectinload(InvoiceProfile.vendor), selectinload(InvoiceProfile.entity))
            .where(InvoiceProfile.id == profile_id)
        )
        profile = result.scalar_one_or_none()
        if not profile:
            raise ResourceNotFoundError("Invoice profile", profile_id)
        return profile

    @staticmethod
    async def _load_invoices(
        db: AsyncSession,
        profile_ids: Iterable[int],
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        search: Optional[str] = None
    ) -> List[Invoice]:
        """Active (non-archived, approved) invoices in invoice-date order."""
        query = select(Invoice).where(
            Invoice.invoice_profile_id.in_(list(profile_ids)),
            Invoice.is_archived == False,
            Invoice.status.in_(PAYABLE_INVOICE_STATUSES)
        )

        if start_date:
            query = query.where(Invoice.invoice_date >= start_date)
        if end_date:
            query = query.where(Invoice.invoice_date <= end_date)
        if search:
            pattern = search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            query = query.where(Invoice.invoice_number.ilike(f"%{pattern}%", escape="\\"))

        query = query.order_by(Invoice.invoice_date.asc(), Invoice.id.asc())
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def _load_payments(db: AsyncSession, invoice_ids: List[int]) -> Dict[int, List[LedgerPayment]]:
        """Approved payments grouped by invoice, ascending payment date."""
        grouped: Dict[int, List[LedgerPayment]] = defaultdict(list)
        if not invoice_ids:
            return grouped

        result = await db.execute(
            select(Payment).where(
                Payment.invoice_id.in_(invoice_ids),
                Payment.status == PaymentStatus.APPROVED
            )
            .options(selectinload(Payment.payment_type))
            .order_by(Payment.payment_date.asc(), Payment.id.asc())
        )
        for payment in result.scalars().all():
            grouped[payment.invoice_id].append(_to_ledger_payment(payment))
        return grouped

    @staticmethod
    async def _load_credit_notes(db: AsyncSession, invoice_ids: List[int]) -> Dict[int, List[LedgerCreditNote]]:
        """Approved, non-deleted credit notes grouped by invoice, ascending date."""
        grouped: Dict[int, List[LedgerCreditNote]] = defaultdict(list)
        if not invoice_ids:
            return grouped

        result = await db.execute(
            select(CreditNote).where(
                CreditNote.invoice_id.in_(invoice_ids),
                CreditNote.status == CreditNoteStatus.APPROVED,
                CreditNote.deleted_at.is_(None)
            ).order_by(CreditNote.credit_note_date.asc(), CreditNote.id.asc())
        )
        for credit_note in result.scalars().all():
            grouped[credit_note.invoice_id].append(_to_ledger_credit_note(credit_note))
        return grouped

    @staticmethod
    async def get_ledger_profiles(db: AsyncSession, today: Optional[date] = None) -> List[LedgerProfileOption]:
        """
        All invoice profiles with their outstanding balance and unpaid count.

        The engine runs once per profile over its full invoice set.
        """
        result = await db.execute(
            select(InvoiceProfile)
            .options(selectinload(InvoiceProfile.vendor), selectinload(InvoiceProfile.entity))
            .order_by(InvoiceProfile.name.asc())
        )
        profiles = result.scalars().all()
        if not profiles:
            return []

        invoices = await LedgerService._load_invoices(db, [p.id for p in profiles])
        payments = await LedgerService._load_payments(db, [inv.id for inv in invoices])
        credit_notes = await LedgerService._load_credit_notes(db, [inv.id for inv in invoices])

        invoices_by_profile: Dict[int, List[LedgerInvoice]] = defaultdict(list)
        for invoice in invoices:
            invoices_by_profile[invoice.invoice_profile_id].append(_to_ledger_invoice(invoice))

        options = []
        for profile in profiles:
            ledger = build_ledger(
                invoices_by_profile.get(profile.id, []),
                payments,
                profile=_profile_meta(profile),
                today=today,
                epsilon=settings.ledger_unpaid_epsilon,
                credit_notes_by_invoice=credit_notes,
            )
            summary = ledger.summary
            options.append(LedgerProfileOption(
                id=profile.id,
                name=profile.name,
                vendor_name=summary.vendor_name,
                entity_name=summary.entity_name,
                has_unpaid_invoices=summary.unpaid_invoice_count > 0,
                unpaid_count=summary.unpaid_invoice_count,
                total_outstanding=summary.outstanding_balance,
            ))

        return options

    @staticmethod
    async def get_ledger_by_profile(
        db: AsyncSession,
        filters: LedgerFilters,
        today: Optional[date] = None
    ) -> LedgerResponse:
        """
        Ledger of one profile.

        Raises:
            ResourceNotFoundError: unknown profile
            InvalidArgumentError: start_date after end_date
        """
        if filters.start_date and filters.end_date and filters.start_date > filters.end_date:
            raise InvalidArgumentError(
                "start_date must not be after end_date",
                details={"start_date": str(filters.start_date), "end_date": str(filters.end_date)}
            )

        profile = await LedgerService._get_profile(db, filters.profile_id)

        invoices = await LedgerService._load_invoices(
            db,
            [profile.id],
            start_date=filters.start_date,
            end_date=filters.end_date,
            search=filters.search,
        )
        payments = await LedgerService._load_payments(db, [inv.id for inv in invoices])
        credit_notes = await LedgerService._load_credit_notes(db, [inv.id for inv in invoices])

        ledger = build_ledger(
            [_to_ledger_invoice(inv) for inv in invoices],
            payments,
            profile=_profile_meta(profile),
            today=today,
            epsilon=settings.ledger_unpaid_epsilon,
            credit_notes_by_invoice=credit_notes,
        )

        entries = ledger.entries
        if filters.entry_type:
            # Running balances stay those of the full ledger
            entries = [entry for entry in entries if entry.type == filters.entry_type]

        logger.debug(
            "Built ledger for profile %s: %d entries",
            profile.id,
            len(entries),
            extra={"profile_id": profile.id, "entry_type": filters.entry_type}
        )

        return LedgerResponse(entries=entries, summary=ledger.summary, filters=filters)

    @staticmethod
    async def get_ledger_summary(db: AsyncSession, profile_id: int, today: Optional[date] = None) -> LedgerSummary:
        """Unfiltered summary for one profile."""
        response = await LedgerService.get_ledger_by_profile(
            db, LedgerFilters(profile_id=profile_id), today=today
        )
        return response.summary


def export_ledger_csv(response: LedgerResponse) -> str:
    """Render ledger entries as CSV (header row plus one row per entry)."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_COLUMNS)

    for entry in response.entries:
        writer.writerow([
            entry.date.isoformat(),
            entry.type.value,
            entry.description,
            entry.invoice_number,
            _csv_value(entry.invoice_amount),
            _csv_value(entry.tds_percentage),
            _csv_value(entry.tds_amount_applied),
            _csv_value(entry.payable_amount),
            _csv_value(entry.paid_amount),
            _csv_value(entry.credited_amount),
            entry.payment_method or "",
            entry.transaction_ref or "",
            _csv_value(entry.running_balance),
        ])

    return buffer.getvalue()


def _csv_value(value: Optional[Decimal]) -> str:
    if value is None:
        return ""
    return str(value)
