"""
Invoice, payment and master data status enumerations.
"""

import enum


class InvoiceStatus(str, enum.Enum):
    """Invoice status enumeration."""
    PENDING_APPROVAL = "pending_approval"  # Submitted by a standard user
    UNPAID = "unpaid"
    PARTIAL = "partial"  # Some approved payments, balance remaining
    PAID = "paid"
    OVERDUE = "overdue"  # Not fully paid and past its due date
    REJECTED = "rejected"


# Statuses that accept payments and participate in status recalculation
PAYABLE_INVOICE_STATUSES = (
    InvoiceStatus.UNPAID,
    InvoiceStatus.PARTIAL,
    InvoiceStatus.PAID,
    InvoiceStatus.OVERDUE,
)


class PaymentStatus(str, enum.Enum):
    """Payment status enumeration. Only APPROVED payments reach the ledger."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class MasterDataStatus(str, enum.Enum):
    """Approval state of user-submitted master data (vendors)."""
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class CreditNoteStatus(str, enum.Enum):
    """Credit note status enumeration. Only APPROVED credit notes reduce a balance."""
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
