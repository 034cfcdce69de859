"""
Ledger Reconciliation Engine.

Builds the chronological, running-balance ledger of one invoice profile
from a snapshot of its invoices, their approved payments and approved
credit notes.

Flow:
1. One invoice event per dated invoice (dateless invoices are left out)
2. One payment event per payment of an invoice in the set, likewise credit notes
3. Sort by (date, kind, sequence): invoices, then payments, then credit notes
4. Single walk: invoices add their post-TDS payable, payments and credit
   notes (net of reversed TDS) subtract
5. Second pass over all invoices for unpaid/overdue counts
6. Derived totals computed from accumulators

Pure: no I/O, no logging, never raises on business data. Over-payment
simply drives the balance negative.
"""

import datetime as dt
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from paylog.app.domain.ledger.tds_calculator import invoice_tds
from paylog.app.schemas.ledger import LedgerEntry, LedgerEntryType, LedgerResult, LedgerSummary

DEFAULT_UNPAID_EPSILON = Decimal("0.01")

# Sort rank at equal dates
_INVOICE_RANK = 0
_PAYMENT_RANK = 1
_CREDIT_NOTE_RANK = 2

ZERO = Decimal("0")


@dataclass(frozen=True)
class LedgerInvoice:
    """Invoice snapshot handed to the engine."""
    id: int
    invoice_number: str
    amount: Decimal
    date: Optional[dt.date]
    tds_applicable: bool
    tds_percentage: Optional[Decimal]
    due_date: Optional[dt.date] = None


@dataclass(frozen=True)
class LedgerPayment:
    """Approved payment snapshot handed to the engine."""
    id: int
    invoice_id: int
    amount: Decimal
    date: dt.date
    payment_method: Optional[str] = None
    transaction_ref: Optional[str] = None
    tds_amount_applied: Optional[Decimal] = None
    tds_rounded: bool = False


@dataclass(frozen=True)
class LedgerCreditNote:
    """Approved credit note snapshot handed to the engine."""
    id: int
    invoice_id: int
    credit_note_number: str
    amount: Decimal
    date: dt.date
    tds_amount: Optional[Decimal] = None

    @property
    def reduction(self) -> Decimal:
        return self.amount - (self.tds_amount or ZERO)


@dataclass(frozen=True)
class LedgerProfileMeta:
    """Profile labels copied onto the summary."""
    profile_id: int
    profile_name: str
    vendor_name: Optional[str] = None
    entity_name: Optional[str] = None


def _unique_invoices(invoices: Iterable[LedgerInvoice]) -> List[LedgerInvoice]:
    seen = set()
    unique = []
    for invoice in invoices:
        if invoice.id in seen:
            continue
        seen.add(invoice.id)
        unique.append(invoice)
    return unique


def _collect_events(
    invoices: Sequence[LedgerInvoice],
    payments_by_invoice: Mapping[int, Sequence[LedgerPayment]],
    credit_notes_by_invoice: Mapping[int, Sequence[LedgerCreditNote]]
) -> List[Tuple[Tuple[dt.date, int, int], object]]:
    """Build (sort key, source) pairs. Sequence numbers keep enumeration order."""
    events = []
    sequence = 0

    for invoice in invoices:
        if invoice.date is None:
            continue
        events.append(((invoice.date, _INVOICE_RANK, sequence), invoice))
        sequence += 1

    for invoice in invoices:
        for payment in payments_by_invoice.get(invoice.id, ()):
            events.append(((payment.date, _PAYMENT_RANK, sequence), (invoice, payment)))
            sequence += 1

    for invoice in invoices:
        for credit_note in credit_notes_by_invoice.get(invoice.id, ()):
            events.append(((credit_note.date, _CREDIT_NOTE_RANK, sequence), (invoice, credit_note)))
            sequence += 1

    events.sort(key=lambda event: event[0])
    return events


def _invoice_entry(invoice: LedgerInvoice, tds_amount: Decimal, payable: Decimal, balance: Decimal) -> LedgerEntry:
    return LedgerEntry(
        id=f"inv-{invoice.id}",
        type=LedgerEntryType.INVOICE,
        date=invoice.date,
        description=f"Invoice #{invoice.invoice_number}",
        invoice_id=invoice.id,
        invoice_number=invoice.invoice_number,
        invoice_amount=invoice.amount,
        tds_percentage=invoice.tds_percentage if invoice.tds_applicable else None,
        tds_applicable=invoice.tds_applicable,
        payable_amount=payable,
        tds_amount_applied=tds_amount,
        running_balance=balance,
    )


def _payment_entry(invoice: LedgerInvoice, payment: LedgerPayment, balance: Decimal) -> LedgerEntry:
    if payment.payment_method:
        description = f"Payment ({payment.payment_method})"
    else:
        description = "Payment"
    return LedgerEntry(
        id=f"pay-{payment.id}",
        type=LedgerEntryType.PAYMENT,
        date=payment.date,
        description=description,
        invoice_id=invoice.id,
        invoice_number=invoice.invoice_number,
        paid_amount=payment.amount,
        tds_amount_applied=payment.tds_amount_applied,
        tds_rounded=payment.tds_rounded,
        transaction_ref=payment.transaction_ref,
        payment_method=payment.payment_method,
        running_balance=balance,
    )


def _credit_note_entry(invoice: LedgerInvoice, credit_note: LedgerCreditNote, balance: Decimal) -> LedgerEntry:
    return LedgerEntry(
        id=f"cn-{credit_note.id}",
        type=LedgerEntryType.CREDIT_NOTE,
        date=credit_note.date,
        description=f"Credit note #{credit_note.credit_note_number}",
        invoice_id=invoice.id,
        invoice_number=invoice.invoice_number,
        credited_amount=credit_note.reduction,
        tds_amount_applied=credit_note.tds_amount,
        running_balance=balance,
    )


def _sum_amounts(items: Iterable, attr: str) -> Decimal:
    return sum((getattr(item, attr) for item in items), ZERO)


def build_ledger(
    invoices: Iterable[LedgerInvoice],
    payments_by_invoice: Mapping[int, Sequence[LedgerPayment]],
    profile: Optional[LedgerProfileMeta] = None,
    today: Optional[dt.date] = None,
    epsilon: Decimal = DEFAULT_UNPAID_EPSILON,
    credit_notes_by_invoice: Optional[Mapping[int, Sequence[LedgerCreditNote]]] = None
) -> LedgerResult:
    """
    Build the ledger for one profile.

    Args:
        invoices: Invoices of the profile (duplicate ids are counted once)
        payments_by_invoice: Approved payments keyed by invoice id, each
            list in the order it should appear on same-day ties
        profile: Labels for the summary
        today: Reference date for overdue detection (defaults to today)
        epsilon: Remaining balance at or below this counts as paid
        credit_notes_by_invoice: Approved credit notes keyed by invoice id

    Returns:
        LedgerResult with entries in chronological order and the summary
    """
    today = today or dt.date.today()
    credit_notes_by_invoice = credit_notes_by_invoice or {}
    unique = _unique_invoices(invoices)

    payable_by_invoice: Dict[int, Decimal] = {}
    tds_by_invoice: Dict[int, Decimal] = {}
    for invoice in unique:
        tds = invoice_tds(invoice.amount, invoice.tds_applicable, invoice.tds_percentage)
        payable_by_invoice[invoice.id] = tds.payable_amount
        tds_by_invoice[invoice.id] = tds.tds_amount

    entries: List[LedgerEntry] = []
    balance = ZERO
    total_invoiced = ZERO
    total_tds = ZERO
    total_paid = ZERO
    total_credited = ZERO
    invoice_count = 0
    payment_count = 0
    credit_note_count = 0

    for _, source in _collect_events(unique, payments_by_invoice, credit_notes_by_invoice):
        if isinstance(source, LedgerInvoice):
            payable = payable_by_invoice[source.id]
            balance += payable
            total_invoiced += source.amount
            total_tds += tds_by_invoice[source.id]
            invoice_count += 1
            entries.append(_invoice_entry(source, tds_by_invoice[source.id], payable, balance))
            continue

        invoice, item = source
        if isinstance(item, LedgerCreditNote):
            balance -= item.reduction
            total_credited += item.reduction
            credit_note_count += 1
            entries.append(_credit_note_entry(invoice, item, balance))
        else:
            balance -= item.amount
            total_paid += item.amount
            payment_count += 1
            entries.append(_payment_entry(invoice, item, balance))

    # Unpaid/overdue over the whole invoice set, dated or not
    unpaid_count = 0
    overdue_count = 0
    for invoice in unique:
        paid = _sum_amounts(payments_by_invoice.get(invoice.id, ()), "amount")
        credited = _sum_amounts(credit_notes_by_invoice.get(invoice.id, ()), "reduction")
        if payable_by_invoice[invoice.id] - credited - paid > epsilon:
            unpaid_count += 1
            if invoice.due_date is not None and invoice.due_date < today:
                overdue_count += 1

    total_payable = total_invoiced - total_tds
    summary = LedgerSummary(
        profile_id=profile.profile_id if profile else None,
        profile_name=profile.profile_name if profile else None,
        vendor_name=profile.vendor_name if profile else None,
        entity_name=profile.entity_name if profile else None,
        total_invoiced=total_invoiced,
        total_tds_deducted=total_tds,
        total_payable=total_payable,
        total_paid=total_paid,
        total_credited=total_credited,
        outstanding_balance=total_payable - total_credited - total_paid,
        invoice_count=invoice_count,
        payment_count=payment_count,
        credit_note_count=credit_note_count,
        unpaid_invoice_count=unpaid_count,
        overdue_invoice_count=overdue_count,
    )

    return LedgerResult(entries=entries, summary=summary)
