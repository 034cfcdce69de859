"""
Invoice Pydantic schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime, date
from decimal import Decimal
from typing import Optional, List
from paylog.app.models.invoice_enums import InvoiceStatus


class InvoiceCreate(BaseModel):
    """
    Schema for creating an invoice.

    Either `invoice_profile_id` or `vendor_id` is required. Missing TDS
    settings default to the profile's.
    """
    invoice_number: str = Field(..., min_length=1, max_length=100)
    invoice_name: Optional[str] = Field(None, max_length=200)
    invoice_profile_id: Optional[int] = None
    vendor_id: Optional[int] = None
    entity_id: Optional[int] = None
    category_id: Optional[int] = None
    invoice_amount: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    invoice_date: Optional[date] = None
    due_date: Optional[date] = None
    tds_applicable: Optional[bool] = None
    tds_percentage: Optional[Decimal] = Field(None, ge=0, le=100, decimal_places=2)
    description: Optional[str] = Field(None, max_length=2000)


class InvoiceResponse(BaseModel):
    """Schema for invoice response."""
    id: int
    invoice_number: str
    invoice_name: Optional[str]
    invoice_profile_id: Optional[int]
    vendor_id: int
    entity_id: Optional[int]
    category_id: Optional[int]
    invoice_amount: Decimal
    tds_applicable: bool
    tds_percentage: Optional[Decimal]
    invoice_date: Optional[date]
    due_date: Optional[date]
    description: Optional[str]
    status: InvoiceStatus
    created_by_user_id: int
    approved_by_user_id: Optional[int]
    rejection_reason: Optional[str]
    is_archived: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class InvoiceDetailResponse(InvoiceResponse):
    """Invoice with its TDS-aware payment position."""
    tds_amount: Decimal
    payable_amount: Decimal
    credit_note_total: Decimal = Decimal("0")
    total_paid: Decimal
    remaining_balance: Decimal
    has_pending_payment: bool


class InvoiceListResponse(BaseModel):
    """Schema for paginated invoice list."""
    invoices: List[InvoiceResponse]
    total: int
    page: int
    page_size: int


class ArchiveInvoiceRequest(BaseModel):
    """Schema for archiving an invoice."""
    reason: Optional[str] = Field(None, max_length=500)
