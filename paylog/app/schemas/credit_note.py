"""
Credit note Pydantic schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime, date
from decimal import Decimal
from typing import Optional, List
from paylog.app.models.invoice_enums import CreditNoteStatus


class CreditNoteCreate(BaseModel):
    """Schema for raising a credit note against an invoice."""
    credit_note_number: str = Field(..., min_length=1, max_length=100)
    credit_note_date: date
    amount: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    reason: str = Field(..., min_length=1, max_length=500)
    notes: Optional[str] = Field(None, max_length=2000)
    tds_applicable: bool = Field(default=False, description="Credit note reverses part of the invoice TDS")
    tds_amount: Optional[Decimal] = Field(None, ge=0, max_digits=14, decimal_places=2)


class CreditNoteResponse(BaseModel):
    """Schema for credit note response."""
    id: int
    invoice_id: int
    credit_note_number: str
    credit_note_date: date
    amount: Decimal
    reason: str
    notes: Optional[str]
    tds_applicable: bool
    tds_amount: Optional[Decimal]
    status: CreditNoteStatus
    created_by_user_id: int
    approved_by_user_id: Optional[int]
    approved_at: Optional[datetime]
    rejection_reason: Optional[str]
    deleted_at: Optional[datetime]
    deleted_reason: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class CreditNoteListResponse(BaseModel):
    """Credit notes of one invoice with totals over the non-deleted ones."""
    credit_notes: List[CreditNoteResponse]
    total: int
    total_amount: Decimal
    total_tds_amount: Decimal
