"""
Credit note database model.

A credit note lowers what is owed on an invoice. When the invoice had
TDS, the note can reverse part of it (tds_amount).
"""

from sqlalchemy import Column, Integer, String, Text, Boolean, Date, DateTime, Numeric, Enum, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from paylog.app.db.session import Base
from paylog.app.models.invoice_enums import CreditNoteStatus


class CreditNote(Base):
    """Credit note against a single invoice."""
    __tablename__ = "credit_notes"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    invoice_id = Column(Integer, ForeignKey('invoices.id'), nullable=False, index=True)

    credit_note_number = Column(String(100), nullable=False)
    credit_note_date = Column(Date, nullable=False, index=True)
    amount = Column(Numeric(14, 2), nullable=False)
    reason = Column(String(500), nullable=False)
    notes = Column(Text, nullable=True)

    # TDS reversed by this note
    tds_applicable = Column(Boolean, default=False, nullable=False)
    tds_amount = Column(Numeric(14, 2), nullable=True)

    status = Column(Enum(CreditNoteStatus), default=CreditNoteStatus.PENDING_APPROVAL, nullable=False, index=True)

    # Approval workflow
    created_by_user_id = Column(Integer, ForeignKey('users.id'), nullable=False)
    approved_by_user_id = Column(Integer, ForeignKey('users.id'), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(String(500), nullable=True)

    # Soft delete
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    deleted_by_user_id = Column(Integer, ForeignKey('users.id'), nullable=True)
    deleted_reason = Column(String(500), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    invoice = relationship("Invoice")

    def __repr__(self):
        return f"<CreditNote(id={self.id}, invoice_id={self.invoice_id}, status='{self.status.value}', amount={self.amount})>"
