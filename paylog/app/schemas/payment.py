"""
Payment Pydantic schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime, date
from decimal import Decimal
from typing import Optional, List
from paylog.app.models.invoice_enums import PaymentStatus


class PaymentCreate(BaseModel):
    """Schema for recording a payment against an invoice."""
    amount_paid: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    payment_date: date
    payment_type_id: Optional[int] = None
    payment_reference: Optional[str] = Field(None, max_length=100)
    tds_amount_applied: Optional[Decimal] = Field(None, ge=0, max_digits=14, decimal_places=2)
    tds_rounded: bool = False


class PaymentResponse(BaseModel):
    """Schema for payment response."""
    id: int
    invoice_id: int
    amount_paid: Decimal
    payment_date: date
    payment_type_id: Optional[int]
    payment_reference: Optional[str]
    tds_amount_applied: Optional[Decimal]
    tds_rounded: bool
    status: PaymentStatus
    created_by_user_id: Optional[int]
    approved_by_user_id: Optional[int]
    approved_at: Optional[datetime]
    rejection_reason: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class PaymentListResponse(BaseModel):
    """Payments of one invoice."""
    payments: List[PaymentResponse]
    total: int
