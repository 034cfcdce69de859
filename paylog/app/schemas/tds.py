"""
TDS calculator and monthly TDS report schemas.
"""

from pydantic import BaseModel, Field
from datetime import date
from decimal import Decimal
from typing import Optional, List


class TdsCalculateRequest(BaseModel):
    """Schema for POST /tds/calculate."""
    gross_amount: Decimal = Field(..., description="Invoice amount before withholding")
    tds_percentage: Decimal = Field(..., description="Withholding rate in percent")
    round_to_whole: bool = Field(default=False, description="Round TDS to the nearest whole unit (half-up)")


class TdsCalculateResponse(BaseModel):
    """TDS preview."""
    gross_amount: Decimal
    tds_percentage: Decimal
    tds_amount: Decimal
    payable_amount: Decimal
    exact_tds: Decimal
    is_rounded: bool
    rounding_difference: Decimal


class TdsReportInvoice(BaseModel):
    """TDS withheld on one invoice of the month."""
    invoice_id: int
    invoice_number: str
    vendor_name: Optional[str] = None
    invoice_date: date
    invoice_amount: Decimal
    tds_percentage: Decimal
    tds_amount: Decimal
    payable_amount: Decimal


class TdsReportCreditNote(BaseModel):
    """TDS reversed by one credit note of the month."""
    credit_note_id: int
    credit_note_number: str
    credit_note_date: date
    invoice_id: int
    invoice_number: str
    vendor_name: Optional[str] = None
    tds_amount: Decimal


class TdsReportTotals(BaseModel):
    """Month totals. net_tds is TDS deducted less TDS reversed."""
    invoice_count: int = 0
    total_invoice_amount: Decimal = Decimal("0")
    total_tds_deducted: Decimal = Decimal("0")
    total_payable: Decimal = Decimal("0")
    credit_note_count: int = 0
    total_tds_reversed: Decimal = Decimal("0")
    net_tds: Decimal = Decimal("0")


class TdsReportResponse(BaseModel):
    """Schema for GET /tds/report."""
    year: int
    month: int = Field(..., ge=1, le=12)
    invoices: List[TdsReportInvoice]
    credit_notes: List[TdsReportCreditNote]
    totals: TdsReportTotals
