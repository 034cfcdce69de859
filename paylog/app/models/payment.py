"""
Payment database model.

Payments recorded by standard users stay PENDING until an admin
approves them; only APPROVED payments count towards balances.
"""

from sqlalchemy import Column, Integer, String, Boolean, Date, DateTime, Numeric, Enum, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from paylog.app.db.session import Base
from paylog.app.models.invoice_enums import PaymentStatus


class Payment(Base):
    """Payment against a single invoice."""
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    invoice_id = Column(Integer, ForeignKey('invoices.id'), nullable=False, index=True)

    amount_paid = Column(Numeric(14, 2), nullable=False)
    payment_date = Column(Date, nullable=False, index=True)
    payment_type_id = Column(Integer, ForeignKey('payment_types.id'), nullable=True, index=True)
    payment_reference = Column(String(100), nullable=True)

    # TDS withheld at payment time, as recorded by the payer
    tds_amount_applied = Column(Numeric(14, 2), nullable=True)
    tds_rounded = Column(Boolean, default=False, nullable=False)

    status = Column(Enum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False, index=True)

    # Approval workflow
    created_by_user_id = Column(Integer, ForeignKey('users.id'), nullable=True)
    approved_by_user_id = Column(Integer, ForeignKey('users.id'), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(String(500), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    invoice = relationship("Invoice", back_populates="payments")
    payment_type = relationship("PaymentType")

    def __repr__(self):
        return f"<Payment(id={self.id}, invoice_id={self.invoice_id}, status='{self.status.value}', amount={self.amount_paid})>"
