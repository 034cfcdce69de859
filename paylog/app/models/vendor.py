"""
Vendor database model.

Vendors submitted by standard users wait for admin approval before
they can be attached to invoice profiles.
"""

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, Enum, ForeignKey
from sqlalchemy.sql import func
from paylog.app.db.session import Base
from paylog.app.models.invoice_enums import MasterDataStatus


class Vendor(Base):
    """Vendor (payee) master data."""
    __tablename__ = "vendors"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(200), unique=True, nullable=False, index=True)
    address = Column(String(500), nullable=True)
    gst_exemption = Column(Boolean, default=False, nullable=False)
    bank_details = Column(Text, nullable=True)

    # Approval workflow
    status = Column(Enum(MasterDataStatus), default=MasterDataStatus.APPROVED, nullable=False, index=True)
    created_by_user_id = Column(Integer, ForeignKey('users.id'), nullable=True)
    approved_by_user_id = Column(Integer, ForeignKey('users.id'), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(String(500), nullable=True)

    is_active = Column(Boolean, default=True, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Vendor(id={self.id}, name='{self.name}', status='{self.status.value}')>"
