"""
Ledger Schemas.

Ledger entries and summaries are derived on every request and never
persisted. Money fields are Decimal (serialized as strings in JSON).
"""

import datetime as dt
import enum
from decimal import Decimal
from pydantic import BaseModel, Field
from typing import Optional, List


class LedgerEntryType(str, enum.Enum):
    """Kind of ledger event."""
    INVOICE = "invoice"
    PAYMENT = "payment"
    CREDIT_NOTE = "credit_note"


class LedgerEntry(BaseModel):
    """
    One row of a profile ledger.

    `payable_amount` is set only on invoice entries, `paid_amount` only
    on payment entries and `credited_amount` only on credit note entries.
    """
    id: str = Field(..., description="inv-<invoice id>, pay-<payment id> or cn-<credit note id>")
    type: LedgerEntryType
    date: dt.date
    description: str
    invoice_id: int
    invoice_number: str
    invoice_amount: Optional[Decimal] = None
    tds_percentage: Optional[Decimal] = None
    tds_applicable: bool = False
    payable_amount: Optional[Decimal] = None
    paid_amount: Optional[Decimal] = None
    credited_amount: Optional[Decimal] = None
    tds_amount_applied: Optional[Decimal] = None
    tds_rounded: bool = False
    transaction_ref: Optional[str] = None
    payment_method: Optional[str] = None
    running_balance: Decimal


class LedgerSummary(BaseModel):
    """Aggregates for one profile ledger."""
    profile_id: Optional[int] = None
    profile_name: Optional[str] = None
    vendor_name: Optional[str] = None
    entity_name: Optional[str] = None
    total_invoiced: Decimal = Decimal("0")
    total_tds_deducted: Decimal = Decimal("0")
    total_payable: Decimal = Decimal("0")
    total_paid: Decimal = Decimal("0")
    total_credited: Decimal = Decimal("0")
    outstanding_balance: Decimal = Decimal("0")
    invoice_count: int = 0
    payment_count: int = 0
    credit_note_count: int = 0
    unpaid_invoice_count: int = 0
    overdue_invoice_count: int = 0


class LedgerResult(BaseModel):
    """Engine output: chronological entries plus summary."""
    entries: List[LedgerEntry]
    summary: LedgerSummary


class LedgerFilters(BaseModel):
    """Filters accepted by the profile ledger view."""
    profile_id: int
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    entry_type: Optional[LedgerEntryType] = None
    search: Optional[str] = Field(None, max_length=100, description="Invoice number contains (case-insensitive)")


class LedgerResponse(BaseModel):
    """Schema for GET /ledger/profiles/{profile_id}."""
    entries: List[LedgerEntry]
    summary: LedgerSummary
    filters: LedgerFilters


class LedgerProfileOption(BaseModel):
    """Profile picker item with headline ledger figures."""
    id: int
    name: str
    vendor_name: Optional[str] = None
    entity_name: Optional[str] = None
    has_unpaid_invoices: bool
    unpaid_count: int
    total_outstanding: Decimal
