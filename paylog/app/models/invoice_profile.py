"""
Invoice Profile database model.

A profile is a recurring billing relationship (vendor + entity + category)
against which invoices and payments accumulate. The ledger is built
per profile.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Numeric, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from paylog.app.db.session import Base


class InvoiceProfile(Base):
    """Invoice profile (billing relationship template)."""
    __tablename__ = "invoice_profiles"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(200), unique=True, nullable=False)
    description = Column(String(500), nullable=True)

    vendor_id = Column(Integer, ForeignKey('vendors.id'), nullable=False, index=True)
    entity_id = Column(Integer, ForeignKey('entities.id'), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey('categories.id'), nullable=False, index=True)

    # Defaults copied onto new invoices created from this profile
    tds_applicable = Column(Boolean, default=False, nullable=False)
    tds_percentage = Column(Numeric(5, 2), nullable=True)

    is_active = Column(Boolean, default=True, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    vendor = relationship("Vendor")
    entity = relationship("Entity")
    category = relationship("Category")
    invoices = relationship("Invoice", back_populates="profile")

    def __repr__(self):
        return f"<InvoiceProfile(id={self.id}, name='{self.name}', vendor_id={self.vendor_id})>"
