"""
Payment API Endpoints.

Recording payments against invoices and the payment approval workflow.
"""

from fastapi import APIRouter, Depends, status, Path
from sqlalchemy.ext.asyncio import AsyncSession

from paylog.app.core.dependencies import get_current_user
from paylog.app.core.guards import require_admin
from paylog.app.db.session import get_db
from paylog.app.domain.invoices.invoice_workflow import InvoiceWorkflow
from paylog.app.models.enums import is_admin_role
from paylog.app.schemas.master_data import RejectRequest
from paylog.app.schemas.payment import PaymentCreate, PaymentResponse, PaymentListResponse
from paylog.app.services.audit import log_record_event, AuditAction

router = APIRouter(tags=["Payments"])


@router.post("/invoices/{invoice_id}/payments", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def create_payment(
    payment_data: PaymentCreate,
    invoice_id: int = Path(..., description="Invoice ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Record a payment.

    Admin payments are approved immediately; standard user payments wait
    for approval and block further payments on the invoice until decided.
    """
    payment = await InvoiceWorkflow.create_payment(
        db,
        invoice_id=invoice_id,
        created_by_user_id=current_user["user_id"],
        is_admin=is_admin_role(current_user["role"]),
        **payment_data.model_dump()
    )

    await log_record_event(
        db=db,
        action=AuditAction.PAYMENT_ADDED,
        current_user=current_user,
        target_type="payment",
        target_id=payment.id,
        metadata={
            "invoice_id": invoice_id,
            "amount": str(payment.amount_paid),
            "status": payment.status.value
        }
    )

    return payment


@router.get("/invoices/{invoice_id}/payments", response_model=PaymentListResponse)
async def list_invoice_payments(
    invoice_id: int = Path(..., description="Invoice ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """All payments of an invoice (any status), oldest first."""
    payments = await InvoiceWorkflow.list_payments(db, invoice_id)

    return PaymentListResponse(
        payments=[PaymentResponse.model_validate(p) for p in payments],
        total=len(payments)
    )


@router.post("/payments/{payment_id}/approve", response_model=PaymentResponse)
async def approve_payment(
    payment_id: int = Path(..., description="Payment ID"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Approve a PENDING payment and update the invoice status (admin-only)."""
    payment = await InvoiceWorkflow.approve_payment(db, payment_id, admin["user_id"])

    await log_record_event(
        db=db,
        action=AuditAction.PAYMENT_APPROVED,
        current_user=admin,
        target_type="payment",
        target_id=payment.id,
        metadata={"invoice_id": payment.invoice_id}
    )

    return payment


@router.post("/payments/{payment_id}/reject", response_model=PaymentResponse)
async def reject_payment(
    request: RejectRequest,
    payment_id: int = Path(..., description="Payment ID"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Reject a PENDING payment (admin-only)."""
    payment = await InvoiceWorkflow.reject_payment(db, payment_id, admin["user_id"], request.reason)

    await log_record_event(
        db=db,
        action=AuditAction.PAYMENT_REJECTED,
        current_user=admin,
        target_type="payment",
        target_id=payment.id,
        metadata={"invoice_id": payment.invoice_id, "reason": request.reason}
    )

    return payment
