"""
Monthly TDS Report.

TDS withheld on the approved TDS invoices dated in a calendar month,
less TDS reversed by approved credit notes dated in the same month.
"""

import calendar
import csv
import io
import logging
from datetime import date
from decimal import Decimal
from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from paylog.app.core.exceptions import InvalidArgumentError
from paylog.app.domain.ledger.tds_calculator import invoice_tds
from paylog.app.models.credit_note import CreditNote
from paylog.app.models.invoice import Invoice
from paylog.app.models.invoice_enums import CreditNoteStatus, PAYABLE_INVOICE_STATUSES
from paylog.app.schemas.tds import (
    TdsReportCreditNote, TdsReportInvoice, TdsReportResponse, TdsReportTotals
)

logger = logging.getLogger("paylog.tds")

ZERO = Decimal("0")

CSV_COLUMNS = [
    "date", "type", "number", "invoice_number", "vendor",
    "invoice_amount", "tds_percentage", "tds_amount", "payable_amount",
]


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    """First and last day of a calendar month."""
    if not 1 <= month <= 12:
        raise InvalidArgumentError("month must be between 1 and 12", details={"month": month})
    if not 1 <= year <= 9999:
        raise InvalidArgumentError("year is out of range", details={"year": year})
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


def _vendor_name(invoice: Invoice) -> Optional[str]:
    return invoice.vendor.name if invoice.vendor else None


class TdsReportService:

    @staticmethod
    async def build_monthly_report(db: AsyncSession, year: int, month: int) -> TdsReportResponse:
        """
        TDS report for one month, newest first.

        Raises:
            InvalidArgumentError: month outside 1-12 or year out of range
        """
        first_day, last_day = month_bounds(year, month)

        result = await db.execute(
            select(Invoice)
            .options(selectinload(Invoice.vendor))
            .where(
                Invoice.tds_applicable == True,
                Invoice.is_archived == False,
                Invoice.status.in_(PAYABLE_INVOICE_STATUSES),
                Invoice.invoice_date >= first_day,
                Invoice.invoice_date <= last_day
            )
            .order_by(Invoice.invoice_date.desc(), Invoice.id.desc())
        )

        totals = TdsReportTotals()
        invoices = []
        for invoice in result.scalars().all():
            amount = Decimal(invoice.invoice_amount)
            tds = invoice_tds(amount, invoice.tds_applicable, invoice.tds_percentage)
            invoices.append(TdsReportInvoice(
                invoice_id=invoice.id,
                invoice_number=invoice.invoice_number,
                vendor_name=_vendor_name(invoice),
                invoice_date=invoice.invoice_date,
                invoice_amount=amount,
                tds_percentage=Decimal(invoice.tds_percentage or ZERO),
                tds_amount=tds.tds_amount,
                payable_amount=tds.payable_amount,
            ))
            totals.total_invoice_amount += amount
            totals.total_tds_deducted += tds.tds_amount
            totals.total_payable += tds.payable_amount

        result = await db.execute(
            select(CreditNote)
            .options(selectinload(CreditNote.invoice).selectinload(Invoice.vendor))
            .where(
                CreditNote.status == CreditNoteStatus.APPROVED,
                CreditNote.deleted_at.is_(None),
                CreditNote.tds_applicable == True,
                CreditNote.tds_amount > 0,
                CreditNote.credit_note_date >= first_day,
                CreditNote.credit_note_date <= last_day
            )
            .order_by(CreditNote.credit_note_date.desc(), CreditNote.id.desc())
        )

        credit_notes = []
        for credit_note in result.scalars().all():
            credit_notes.append(TdsReportCreditNote(
                credit_note_id=credit_note.id,
                credit_note_number=credit_note.credit_note_number,
                credit_note_date=credit_note.credit_note_date,
                invoice_id=credit_note.invoice_id,
                invoice_number=credit_note.invoice.invoice_number,
                vendor_name=_vendor_name(credit_note.invoice),
                tds_amount=Decimal(credit_note.tds_amount),
            ))
            totals.total_tds_reversed += Decimal(credit_note.tds_amount)

        totals.invoice_count = len(invoices)
        totals.credit_note_count = len(credit_notes)
        totals.net_tds = totals.total_tds_deducted - totals.total_tds_reversed

        logger.debug(
            "Built TDS report for %04d-%02d: %d invoices, %d credit notes",
            year,
            month,
            totals.invoice_count,
            totals.credit_note_count
        )

        return TdsReportResponse(
            year=year,
            month=month,
            invoices=invoices,
            credit_notes=credit_notes,
            totals=totals
        )


def export_tds_report_csv(report: TdsReportResponse) -> str:
    """Render a TDS report as CSV: invoices, then credit note reversals as negative TDS."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_COLUMNS)

    for row in report.invoices:
        writer.writerow([
            row.invoice_date.isoformat(),
            "invoice",
            row.invoice_number,
            row.invoice_number,
            row.vendor_name or "",
            str(row.invoice_amount),
            str(row.tds_percentage),
            str(row.tds_amount),
            str(row.payable_amount),
        ])

    for row in report.credit_notes:
        writer.writerow([
            row.credit_note_date.isoformat(),
            "credit_note",
            row.credit_note_number,
            row.invoice_number,
            row.vendor_name or "",
            "",
            "",
            str(-row.tds_amount),
            "",
        ])

    return buffer.getvalue()
