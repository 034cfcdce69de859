"""
Audit logging service.

Records security events, admin actions and invoice, payment, credit
note and vendor workflow transitions for compliance review.
"""

from typing import Optional, Dict, Any, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc, func
from paylog.app.models.audit_log import AuditLog


# Audit event constants
class AuditAction:
    """Standardized audit action constants."""
    USER_BLOCKED = "USER_BLOCKED"
    USER_UNBLOCKED = "USER_UNBLOCKED"
    USER_CREATED = "USER_CREATED"
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILED = "LOGIN_FAILED"
    LOGOUT = "LOGOUT"
    TOKEN_REVOKED = "TOKEN_REVOKED"

    # Master data
    VENDOR_CREATED = "VENDOR_CREATED"
    VENDOR_APPROVED = "VENDOR_APPROVED"
    VENDOR_REJECTED = "VENDOR_REJECTED"
    ENTITY_CREATED = "ENTITY_CREATED"
    CATEGORY_CREATED = "CATEGORY_CREATED"
    PROFILE_CREATED = "PROFILE_CREATED"
    PAYMENT_TYPE_CREATED = "PAYMENT_TYPE_CREATED"
    PAYMENT_TYPE_ARCHIVED = "PAYMENT_TYPE_ARCHIVED"
    PAYMENT_TYPE_RESTORED = "PAYMENT_TYPE_RESTORED"

    # Invoices
    INVOICE_CREATED = "INVOICE_CREATED"
    INVOICE_APPROVED = "INVOICE_APPROVED"
    INVOICE_REJECTED = "INVOICE_REJECTED"
    INVOICE_ARCHIVED = "INVOICE_ARCHIVED"
    INVOICE_STATUS_RECALCULATED = "INVOICE_STATUS_RECALCULATED"

    # Payments
    PAYMENT_ADDED = "PAYMENT_ADDED"
    PAYMENT_APPROVED = "PAYMENT_APPROVED"
    PAYMENT_REJECTED = "PAYMENT_REJECTED"

    # Credit notes
    CREDIT_NOTE_CREATED = "CREDIT_NOTE_CREATED"
    CREDIT_NOTE_APPROVED = "CREDIT_NOTE_APPROVED"
    CREDIT_NOTE_REJECTED = "CREDIT_NOTE_REJECTED"
    CREDIT_NOTE_DELETED = "CREDIT_NOTE_DELETED"


async def log_event(
    db: AsyncSession,
    action: str,
    actor_id: Optional[int] = None,
    actor_username: Optional[str] = None,
    target_user_id: Optional[int] = None,
    target_username: Optional[str] = None,
    target_type: Optional[str] = None,
    target_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None
) -> AuditLog:
    """
    Write one audit log row and commit it.

    Args:
        db: Database session
        action: Action being performed (use AuditAction constants)
        actor_id: ID of user performing the action
        actor_username: Username of actor
        target_user_id: ID of user being acted upon (user management)
        target_username: Username of target
        target_type: Kind of business record acted upon ("invoice", "payment", "vendor")
        target_id: ID of that record
        metadata: Additional context as JSON
        ip_address: IP address of the request

    Returns:
        Created AuditLog instance
    """
    audit_log = AuditLog(
        actor_id=actor_id,
        actor_username=actor_username,
        action=action,
        target_user_id=target_user_id,
        target_username=target_username,
        target_type=target_type,
        target_id=target_id,
        meta_data=metadata,
        ip_address=ip_address
    )

    db.add(audit_log)
    await db.commit()
    await db.refresh(audit_log)

    return audit_log


async def log_admin_action(
    db: AsyncSession,
    admin_id: int,
    admin_username: str,
    action: str,
    target_user_id: int,
    target_username: str,
    metadata: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """Log a user-management action (block, unblock)."""
    return await log_event(
        db=db,
        action=action,
        actor_id=admin_id,
        actor_username=admin_username,
        target_user_id=target_user_id,
        target_username=target_username,
        metadata=metadata
    )


async def log_auth_event(
    db: AsyncSession,
    action: str,
    user_id: Optional[int],
    username: Optional[str],
    ip_address: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """
    Log an authentication event (login success/failure, logout).

    Args:
        db: Database session
        action: AuditAction.LOGIN_SUCCESS, LOGIN_FAILED or LOGOUT
        user_id: ID of user (None when the login name matched nobody)
        username: Username attempting login
        ip_address: IP address of the attempt
        metadata: Additional context (e.g., failure reason)
    """
    return await log_event(
        db=db,
        action=action,
        actor_id=user_id,
        actor_username=username,
        ip_address=ip_address,
        metadata=metadata
    )


async def log_record_event(
    db: AsyncSession,
    action: str,
    current_user: dict,
    target_type: str,
    target_id: int,
    metadata: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """Log a workflow action by the authenticated user on a business record."""
    return await log_event(
        db=db,
        action=action,
        actor_id=current_user["user_id"],
        actor_username=current_user["sub"],
        target_type=target_type,
        target_id=target_id,
        metadata=metadata
    )


async def get_audit_trail(
    db: AsyncSession,
    target_user_id: Optional[int] = None,
    action: Optional[str] = None,
    target_type: Optional[str] = None,
    target_id: Optional[int] = None,
    limit: int = 100
) -> List[AuditLog]:
    """
    Retrieve the audit trail, most recent first.

    All filters are optional and combined with AND.
    """
    query = select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))

    if target_user_id:
        query = query.where(AuditLog.target_user_id == target_user_id)
    if action:
        query = query.where(AuditLog.action == action)
    if target_type:
        query = query.where(AuditLog.target_type == target_type)
    if target_id:
        query = query.where(AuditLog.target_id == target_id)

    result = await db.execute(query.limit(limit))
    return list(result.scalars().all())


async def count_audit_logs(db: AsyncSession, action: Optional[str] = None) -> int:
    """Total audit rows, optionally for one action."""
    query = select(func.count(AuditLog.id))
    if action:
        query = query.where(AuditLog.action == action)
    result = await db.execute(query)
    return result.scalar_one()
