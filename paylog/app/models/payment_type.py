"""
Payment type master data model.

A payment type (cash, cheque, bank transfer, ...) says how a payment
was made and whether it needs a transaction reference.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.sql import func
from paylog.app.db.session import Base


class PaymentType(Base):
    """Way a payment is made."""
    __tablename__ = "payment_types"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(String(500), nullable=True)
    requires_reference = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<PaymentType(id={self.id}, name='{self.name}')>"
