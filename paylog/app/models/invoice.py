"""
Invoice database model.

Amounts are fixed-point (Numeric) and surface as Decimal.
"""

from sqlalchemy import Column, Integer, String, Text, Boolean, Date, DateTime, Numeric, Enum, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from paylog.app.db.session import Base
from paylog.app.models.invoice_enums import InvoiceStatus


class Invoice(Base):
    """
    Invoice model.

    Workflow: PENDING_APPROVAL -> UNPAID -> PARTIAL/OVERDUE -> PAID,
    or PENDING_APPROVAL -> REJECTED. Invoices created by admins skip
    the approval step.
    """
    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    invoice_number = Column(String(100), nullable=False, index=True)
    invoice_name = Column(String(200), nullable=True)

    # Linkage
    invoice_profile_id = Column(Integer, ForeignKey('invoice_profiles.id'), nullable=True, index=True)
    vendor_id = Column(Integer, ForeignKey('vendors.id'), nullable=False, index=True)
    entity_id = Column(Integer, ForeignKey('entities.id'), nullable=True)
    category_id = Column(Integer, ForeignKey('categories.id'), nullable=True)

    # Financials
    invoice_amount = Column(Numeric(14, 2), nullable=False)
    tds_applicable = Column(Boolean, default=False, nullable=False)
    tds_percentage = Column(Numeric(5, 2), nullable=True)

    # Dates (invoice_date is required for the invoice to appear on a ledger)
    invoice_date = Column(Date, nullable=True, index=True)
    due_date = Column(Date, nullable=True)

    description = Column(Text, nullable=True)
    status = Column(Enum(InvoiceStatus), default=InvoiceStatus.PENDING_APPROVAL, nullable=False, index=True)

    # Approval workflow
    created_by_user_id = Column(Integer, ForeignKey('users.id'), nullable=False)
    approved_by_user_id = Column(Integer, ForeignKey('users.id'), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(String(500), nullable=True)

    # Archive (soft delete)
    is_archived = Column(Boolean, default=False, nullable=False, index=True)
    archived_at = Column(DateTime(timezone=True), nullable=True)
    archived_reason = Column(String(500), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    profile = relationship("InvoiceProfile", back_populates="invoices")
    vendor = relationship("Vendor")
    payments = relationship("Payment", back_populates="invoice", order_by="Payment.payment_date")

    def __repr__(self):
        return f"<Invoice(id={self.id}, number='{self.invoice_number}', status='{self.status.value}', amount={self.invoice_amount})>"
