"""
Master Data API Endpoints.

Vendors (with duplicate-name warnings and approval), entities,
categories, invoice profiles and payment types.
"""

from fastapi import APIRouter, Depends, HTTPException, status, Query, Path
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from typing import List

from paylog.app.core.config import settings
from paylog.app.core.dependencies import get_current_user
from paylog.app.core.exceptions import BusinessRuleError, DuplicateResourceError, ResourceNotFoundError
from paylog.app.core.guards import require_admin
from paylog.app.db.session import get_db
from paylog.app.domain.vendors.vendor_service import VendorService
from paylog.app.models.entity import Entity, Category
from paylog.app.models.enums import is_admin_role
from paylog.app.models.invoice_enums import MasterDataStatus
from paylog.app.models.invoice_profile import InvoiceProfile
from paylog.app.models.payment import Payment
from paylog.app.models.payment_type import PaymentType
from paylog.app.models.vendor import Vendor
from paylog.app.schemas.master_data import (
    VendorCreate, VendorResponse, VendorCreateResponse, VendorListResponse,
    SimilarVendor, SimilarVendorResponse, RejectRequest,
    EntityCreate, EntityResponse, CategoryCreate, CategoryResponse,
    InvoiceProfileCreate, InvoiceProfileResponse, PaymentTypeCreate, PaymentTypeResponse
)
from paylog.app.services.audit import log_event, log_record_event, AuditAction

router = APIRouter(prefix="/master-data", tags=["Master Data"])


# Vendors

@router.post("/vendors", response_model=VendorCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_vendor(
    vendor_data: VendorCreate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a vendor.

    Exact duplicates (case-insensitive) are rejected with 409. Similar
    names are returned as warnings and do not block creation. Vendors
    created by standard users wait for admin approval.
    """
    vendor, similar = await VendorService.create_vendor(
        db,
        name=vendor_data.name,
        created_by_user_id=current_user["user_id"],
        is_admin=is_admin_role(current_user["role"]),
        address=vendor_data.address,
        gst_exemption=vendor_data.gst_exemption,
        bank_details=vendor_data.bank_details
    )

    await log_record_event(
        db=db,
        action=AuditAction.VENDOR_CREATED,
        current_user=current_user,
        target_type="vendor",
        target_id=vendor.id,
        metadata={
            "name": vendor.name,
            "status": vendor.status.value,
            "similar": [match.value for match in similar]
        }
    )

    return VendorCreateResponse(
        vendor=VendorResponse.model_validate(vendor),
        similar_vendors=[SimilarVendor(name=match.value, score=match.score) for match in similar]
    )


@router.get("/vendors", response_model=VendorListResponse)
async def list_vendors(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    vendor_status: MasterDataStatus = Query(None, alias="status", description="Filter by approval status"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """List vendors alphabetically."""
    count_query = select(func.count(Vendor.id))
    query = select(Vendor)
    if vendor_status:
        count_query = count_query.where(Vendor.status == vendor_status)
        query = query.where(Vendor.status == vendor_status)

    total = (await db.execute(count_query)).scalar()

    offset = (page - 1) * page_size
    result = await db.execute(query.order_by(Vendor.name.asc()).offset(offset).limit(page_size))
    vendors = result.scalars().all()

    return VendorListResponse(
        vendors=[VendorResponse.model_validate(v) for v in vendors],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/vendors/similar", response_model=SimilarVendorResponse)
async def find_similar_vendors(
    name: str = Query(..., min_length=1, max_length=200, description="Vendor name to check"),
    threshold: float = Query(None, ge=0, le=1, description="Minimum similarity (defaults to server setting)"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Existing vendors whose names resemble `name`, best match first.

    Used by clients to warn before submitting a vendor.
    """
    if threshold is None:
        threshold = settings.vendor_similarity_threshold

    matches = await VendorService.find_similar_vendors(db, name, threshold)

    return SimilarVendorResponse(
        query=name,
        threshold=threshold,
        matches=[SimilarVendor(name=match.value, score=match.score) for match in matches]
    )


@router.get("/vendors/{vendor_id}", response_model=VendorResponse)
async def get_vendor(
    vendor_id: int = Path(..., description="Vendor ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get a vendor."""
    return await VendorService.get_vendor(db, vendor_id)


@router.post("/vendors/{vendor_id}/approve", response_model=VendorResponse)
async def approve_vendor(
    vendor_id: int = Path(..., description="Vendor ID"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Approve a PENDING_APPROVAL vendor (admin-only)."""
    vendor = await VendorService.approve_vendor(db, vendor_id, admin["user_id"])

    await log_record_event(
        db=db,
        action=AuditAction.VENDOR_APPROVED,
        current_user=admin,
        target_type="vendor",
        target_id=vendor.id
    )

    return vendor


@router.post("/vendors/{vendor_id}/reject", response_model=VendorResponse)
async def reject_vendor(
    request: RejectRequest,
    vendor_id: int = Path(..., description="Vendor ID"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Reject a PENDING_APPROVAL vendor (admin-only)."""
    vendor = await VendorService.reject_vendor(db, vendor_id, admin["user_id"], request.reason)

    await log_record_event(
        db=db,
        action=AuditAction.VENDOR_REJECTED,
        current_user=admin,
        target_type="vendor",
        target_id=vendor.id,
        metadata={"reason": request.reason}
    )

    return vendor


# Entities

@router.post("/entities", response_model=EntityResponse, status_code=status.HTTP_201_CREATED)
async def create_entity(
    entity_data: EntityCreate,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Create a paying entity (admin-only)."""
    existing = await db.execute(
        select(Entity.id).where(func.lower(Entity.name) == entity_data.name.strip().lower())
    )
    if existing.first() is not None:
        raise DuplicateResourceError("Entity", entity_data.name.strip())

    entity = Entity(
        name=entity_data.name.strip(),
        description=entity_data.description,
        address=entity_data.address,
        country=entity_data.country,
        is_active=True
    )
    db.add(entity)
    await db.commit()
    await db.refresh(entity)

    await log_event(
        db=db,
        action=AuditAction.ENTITY_CREATED,
        actor_id=admin["user_id"],
        actor_username=admin["sub"],
        target_type="entity",
        target_id=entity.id
    )

    return entity


@router.get("/entities", response_model=List[EntityResponse])
async def list_entities(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """List active entities."""
    result = await db.execute(
        select(Entity).where(Entity.is_active == True).order_by(Entity.name.asc())
    )
    return result.scalars().all()


# Categories

@router.post("/categories", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    category_data: CategoryCreate,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Create a spend category (admin-only)."""
    existing = await db.execute(
        select(Category.id).where(func.lower(Category.name) == category_data.name.strip().lower())
    )
    if existing.first() is not None:
        raise DuplicateResourceError("Category", category_data.name.strip())

    category = Category(
        name=category_data.name.strip(),
        description=category_data.description,
        is_active=True
    )
    db.add(category)
    await db.commit()
    await db.refresh(category)

    await log_event(
        db=db,
        action=AuditAction.CATEGORY_CREATED,
        actor_id=admin["user_id"],
        actor_username=admin["sub"],
        target_type="category",
        target_id=category.id
    )

    return category


@router.get("/categories", response_model=List[CategoryResponse])
async def list_categories(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """List active categories."""
    result = await db.execute(
        select(Category).where(Category.is_active == True).order_by(Category.name.asc())
    )
    return result.scalars().all()


# Invoice profiles

@router.post("/profiles", response_model=InvoiceProfileResponse, status_code=status.HTTP_201_CREATED)
async def create_invoice_profile(
    profile_data: InvoiceProfileCreate,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Create an invoice profile (admin-only).

    The vendor must be approved; entity and category must exist.
    """
    existing = await db.execute(
        select(InvoiceProfile.id).where(func.lower(InvoiceProfile.name) == profile_data.name.strip().lower())
    )
    if existing.first() is not None:
        raise DuplicateResourceError("Invoice profile", profile_data.name.strip())

    vendor = await VendorService.get_vendor(db, profile_data.vendor_id)
    if vendor.status != MasterDataStatus.APPROVED:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Vendor '{vendor.name}' is not approved"
        )
    if await db.get(Entity, profile_data.entity_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Entity not found")
    if await db.get(Category, profile_data.category_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")

    if profile_data.tds_applicable and profile_data.tds_percentage is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="tds_percentage is required when TDS is applicable"
        )

    profile = InvoiceProfile(
        name=profile_data.name.strip(),
        description=profile_data.description,
        vendor_id=profile_data.vendor_id,
        entity_id=profile_data.entity_id,
        category_id=profile_data.category_id,
        tds_applicable=profile_data.tds_applicable,
        tds_percentage=profile_data.tds_percentage if profile_data.tds_applicable else None,
        is_active=True
    )
    db.add(profile)
    await db.commit()
    await db.refresh(profile)

    await log_event(
        db=db,
        action=AuditAction.PROFILE_CREATED,
        actor_id=admin["user_id"],
        actor_username=admin["sub"],
        target_type="invoice_profile",
        target_id=profile.id,
        metadata={"name": profile.name}
    )

    return profile


@router.get("/profiles", response_model=List[InvoiceProfileResponse])
async def list_invoice_profiles(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """List active invoice profiles."""
    result = await db.execute(
        select(InvoiceProfile).where(InvoiceProfile.is_active == True).order_by(InvoiceProfile.name.asc())
    )
    return result.scalars().all()


# Payment types

@router.post("/payment-types", response_model=PaymentTypeResponse, status_code=status.HTTP_201_CREATED)
async def create_payment_type(
    payment_type_data: PaymentTypeCreate,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Create a payment type (admin-only)."""
    existing = await db.execute(
        select(PaymentType.id).where(func.lower(PaymentType.name) == payment_type_data.name.strip().lower())
    )
    if existing.first() is not None:
        raise DuplicateResourceError("Payment type", payment_type_data.name.strip())

    payment_type = PaymentType(
        name=payment_type_data.name.strip(),
        description=payment_type_data.description,
        requires_reference=payment_type_data.requires_reference,
        is_active=True
    )
    db.add(payment_type)
    await db.commit()
    await db.refresh(payment_type)

    await log_event(
        db=db,
        action=AuditAction.PAYMENT_TYPE_CREATED,
        actor_id=admin["user_id"],
        actor_username=admin["sub"],
        target_type="payment_type",
        target_id=payment_type.id,
        metadata={"name": payment_type.name}
    )

    return payment_type


@router.get("/payment-types", response_model=List[PaymentTypeResponse])
async def list_payment_types(
    include_archived: bool = Query(False),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """List payment types, active ones only unless include_archived is set."""
    query = select(PaymentType)
    if not include_archived:
        query = query.where(PaymentType.is_active == True)
    result = await db.execute(query.order_by(PaymentType.name.asc()))
    return result.scalars().all()


async def _get_payment_type(db: AsyncSession, payment_type_id: int) -> PaymentType:
    payment_type = await db.get(PaymentType, payment_type_id)
    if payment_type is None:
        raise ResourceNotFoundError("Payment type", payment_type_id)
    return payment_type


@router.post("/payment-types/{payment_type_id}/archive", response_model=PaymentTypeResponse)
async def archive_payment_type(
    payment_type_id: int = Path(..., description="Payment type ID"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Archive a payment type (admin-only).

    Types already used by a payment cannot be archived.
    """
    payment_type = await _get_payment_type(db, payment_type_id)

    usage = (await db.execute(
        select(func.count(Payment.id)).where(Payment.payment_type_id == payment_type.id)
    )).scalar()
    if usage:
        raise BusinessRuleError(
            f"Cannot archive payment type with {usage} payment(s)",
            details={"payment_type_id": payment_type.id}
        )

    payment_type.is_active = False
    await db.commit()
    await db.refresh(payment_type)

    await log_event(
        db=db,
        action=AuditAction.PAYMENT_TYPE_ARCHIVED,
        actor_id=admin["user_id"],
        actor_username=admin["sub"],
        target_type="payment_type",
        target_id=payment_type.id
    )

    return payment_type


@router.post("/payment-types/{payment_type_id}/restore", response_model=PaymentTypeResponse)
async def restore_payment_type(
    payment_type_id: int = Path(..., description="Payment type ID"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Reactivate an archived payment type (admin-only)."""
    payment_type = await _get_payment_type(db, payment_type_id)
    if payment_type.is_active:
        raise BusinessRuleError("Payment type is already active", details={"payment_type_id": payment_type.id})

    payment_type.is_active = True
    await db.commit()
    await db.refresh(payment_type)

    await log_event(
        db=db,
        action=AuditAction.PAYMENT_TYPE_RESTORED,
        actor_id=admin["user_id"],
        actor_username=admin["sub"],
        target_type="payment_type",
        target_id=payment_type.id
    )

    return payment_type
