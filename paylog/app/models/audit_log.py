"""
Audit Log Database Model.

Tracks security events, admin actions and invoice/payment workflow
transitions for compliance monitoring.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from paylog.app.db.session import Base


class AuditLog(Base):
    """
    Audit log model.

    Events logged:
    - USER_BLOCKED / USER_UNBLOCKED, LOGIN_SUCCESS / LOGIN_FAILED, LOGOUT
    - VENDOR_CREATED / VENDOR_APPROVED / VENDOR_REJECTED
    - INVOICE_CREATED / INVOICE_APPROVED / INVOICE_REJECTED / INVOICE_ARCHIVED
    - PAYMENT_ADDED / PAYMENT_APPROVED / PAYMENT_REJECTED
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Who performed the action (None for system actions)
    actor_id = Column(Integer, index=True, nullable=True)
    actor_username = Column(String(100), nullable=True)

    # What action was performed
    action = Column(String(100), nullable=False, index=True)

    # User targeted by user-management actions
    target_user_id = Column(Integer, index=True, nullable=True)
    target_username = Column(String(100), nullable=True)

    # Business record targeted by workflow actions (e.g. "invoice", 42)
    target_type = Column(String(50), nullable=True, index=True)
    target_id = Column(Integer, nullable=True, index=True)

    # Additional context (JSON for flexibility)
    meta_data = Column(JSON, nullable=True)

    # IP address for login tracking
    ip_address = Column(String(50), nullable=True)

    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', actor={self.actor_username}, target={self.target_type}:{self.target_id})>"
