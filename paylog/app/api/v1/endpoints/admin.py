"""
Admin API Endpoints.

User management, audit trail and invoice maintenance (admin-only).
"""

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from paylog.app.db.session import get_db
from paylog.app.models.user import User
from paylog.app.models.enums import UserRole, ADMIN_ROLES
from paylog.app.schemas.admin import (
    UserListResponse, UserListItem, BlockUserRequest, UnblockUserRequest,
    AdminActionResponse, AuditTrailResponse, AuditLogResponse, RecalculateStatusResponse
)
from paylog.app.core.guards import require_admin
from paylog.app.core.token_revocation import revoke_all_user_tokens, clear_user_token_revocation
from paylog.app.domain.invoices.invoice_workflow import InvoiceWorkflow
from paylog.app.services.audit import log_admin_action, log_event, AuditAction, get_audit_trail

router = APIRouter(prefix="/admin", tags=["Admin"])


async def _get_user_or_404(db: AsyncSession, user_id: int) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return user


@router.get("/users", response_model=UserListResponse)
async def list_users(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=100, description="Items per page"),
    role: UserRole = Query(None, description="Filter by role"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    List users (admin-only), newest first.
    """
    count_query = select(func.count(User.id))
    query = select(User)
    if role:
        count_query = count_query.where(User.role == role)
        query = query.where(User.role == role)

    total = (await db.execute(count_query)).scalar()

    offset = (page - 1) * page_size
    result = await db.execute(
        query.order_by(User.created_at.desc(), User.id.desc()).offset(offset).limit(page_size)
    )
    users = result.scalars().all()

    return UserListResponse(
        users=[UserListItem.model_validate(user) for user in users],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/users/{user_id}", response_model=UserListItem)
async def get_user(
    user_id: int,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Get a single user (admin-only)."""
    user = await _get_user_or_404(db, user_id)
    return UserListItem.model_validate(user)


@router.post("/users/{user_id}/block", response_model=AdminActionResponse)
async def block_user(
    user_id: int,
    request: BlockUserRequest,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Block a user and revoke all their active tokens (admin-only).

    Only a SUPER_ADMIN may block another admin.
    """
    target_user = await _get_user_or_404(db, user_id)

    if target_user.role in ADMIN_ROLES and admin["role"] != UserRole.SUPER_ADMIN.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Cannot block another admin user"
        )

    if target_user.id == admin["user_id"]:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot block yourself"
        )

    if not target_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User is already blocked"
        )

    target_user.is_active = False
    await db.commit()

    # Terminates every session of the user immediately
    await revoke_all_user_tokens(user_id)

    audit_log = await log_admin_action(
        db=db,
        admin_id=admin["user_id"],
        admin_username=admin["sub"],
        action=AuditAction.USER_BLOCKED,
        target_user_id=target_user.id,
        target_username=target_user.username,
        metadata={"reason": request.reason} if request.reason else None
    )

    return AdminActionResponse(
        success=True,
        message=f"User '{target_user.username}' has been blocked",
        user_id=user_id,
        action=AuditAction.USER_BLOCKED,
        audit_log_id=audit_log.id
    )


@router.post("/users/{user_id}/unblock", response_model=AdminActionResponse)
async def unblock_user(
    user_id: int,
    request: UnblockUserRequest,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Unblock a user and clear token revocations (admin-only).
    """
    target_user = await _get_user_or_404(db, user_id)

    if target_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User is already active"
        )

    target_user.is_active = True
    await db.commit()

    await clear_user_token_revocation(user_id)

    audit_log = await log_admin_action(
        db=db,
        admin_id=admin["user_id"],
        admin_username=admin["sub"],
        action=AuditAction.USER_UNBLOCKED,
        target_user_id=target_user.id,
        target_username=target_user.username,
        metadata={"reason": request.reason} if request.reason else None
    )

    return AdminActionResponse(
        success=True,
        message=f"User '{target_user.username}' has been unblocked",
        user_id=user_id,
        action=AuditAction.USER_UNBLOCKED,
        audit_log_id=audit_log.id
    )


@router.get("/audit-logs", response_model=AuditTrailResponse)
async def get_audit_logs(
    user_id: int = Query(None, description="Filter by target user ID"),
    action: str = Query(None, description="Filter by action type"),
    target_type: str = Query(None, description="Filter by record type (invoice, payment, vendor)"),
    target_id: int = Query(None, description="Filter by record ID"),
    limit: int = Query(100, ge=1, le=500, description="Maximum records to return"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Audit trail with optional filtering (admin-only), most recent first.
    """
    logs = await get_audit_trail(
        db=db,
        target_user_id=user_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        limit=limit
    )

    return AuditTrailResponse(
        logs=[AuditLogResponse.model_validate(log) for log in logs],
        total=len(logs)
    )


@router.post("/invoices/recalculate-status", response_model=RecalculateStatusResponse)
async def recalculate_invoice_statuses(
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Refresh paid/partial/overdue status of every active invoice (admin-only).

    Picks up invoices that became overdue since their last update.
    """
    updated = await InvoiceWorkflow.recalculate_statuses(db)

    await log_event(
        db=db,
        action=AuditAction.INVOICE_STATUS_RECALCULATED,
        actor_id=admin["user_id"],
        actor_username=admin["sub"],
        metadata={"updated_count": updated}
    )

    return RecalculateStatusResponse(
        success=True,
        updated_count=updated,
        message=f"Recalculated invoice statuses, {updated} updated"
    )
