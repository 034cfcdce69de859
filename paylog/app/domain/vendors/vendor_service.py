"""
Vendor Service.

Vendor creation with duplicate checks and the vendor approval workflow.
Exact name duplicates (ignoring case and surrounding whitespace) are
rejected; near-duplicates only produce warnings.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from paylog.app.core.config import settings
from paylog.app.core.exceptions import BusinessRuleError, DuplicateResourceError, ResourceNotFoundError
from paylog.app.domain.vendors.fuzzy_match import SimilarMatch, find_similar
from paylog.app.models.invoice_enums import MasterDataStatus
from paylog.app.models.vendor import Vendor

logger = logging.getLogger("paylog.vendors")


class VendorService:

    @staticmethod
    async def _vendor_names(db: AsyncSession, exclude_id: Optional[int] = None) -> List[str]:
        query = select(Vendor.name).where(Vendor.status != MasterDataStatus.REJECTED)
        if exclude_id is not None:
            query = query.where(Vendor.id != exclude_id)
        result = await db.execute(query.order_by(Vendor.name.asc()))
        return list(result.scalars().all())

    @staticmethod
    async def find_similar_vendors(
        db: AsyncSession,
        name: str,
        threshold: Optional[float] = None,
        exclude_id: Optional[int] = None
    ) -> List[SimilarMatch]:
        """Existing vendor names similar to `name`, best first."""
        if threshold is None:
            threshold = settings.vendor_similarity_threshold
        names = await VendorService._vendor_names(db, exclude_id=exclude_id)
        return find_similar(name, names, threshold)

    @staticmethod
    async def check_vendor_name(
        db: AsyncSession,
        name: str,
        threshold: Optional[float] = None
    ) -> List[SimilarMatch]:
        """
        Validate a new vendor name.

        Returns:
            Similar (but not identical) existing vendors, for warnings only

        Raises:
            DuplicateResourceError: a vendor with the same normalized name exists
        """
        normalized = name.strip().lower()
        result = await db.execute(
            select(Vendor.id).where(func.lower(func.trim(Vendor.name)) == normalized)
        )
        if result.first() is not None:
            raise DuplicateResourceError("Vendor", name.strip())

        similar = await VendorService.find_similar_vendors(db, name, threshold)
        if similar:
            logger.info(
                "Vendor name '%s' resembles %d existing vendor(s)",
                name,
                len(similar),
                extra={"similar": [match.value for match in similar]}
            )
        return similar

    @staticmethod
    async def create_vendor(
        db: AsyncSession,
        name: str,
        created_by_user_id: int,
        is_admin: bool,
        address: Optional[str] = None,
        gst_exemption: bool = False,
        bank_details: Optional[str] = None
    ) -> Tuple[Vendor, List[SimilarMatch]]:
        """
        Create a vendor.

        Admin-created vendors are approved immediately; others wait for
        approval. Returns the vendor and any near-duplicate warnings.
        """
        similar = await VendorService.check_vendor_name(db, name)

        now = datetime.now(timezone.utc)
        vendor = Vendor(
            name=name.strip(),
            address=address,
            gst_exemption=gst_exemption,
            bank_details=bank_details,
            status=MasterDataStatus.APPROVED if is_admin else MasterDataStatus.PENDING_APPROVAL,
            created_by_user_id=created_by_user_id,
            approved_by_user_id=created_by_user_id if is_admin else None,
            approved_at=now if is_admin else None,
            is_active=True,
        )
        db.add(vendor)
        await db.commit()
        await db.refresh(vendor)

        return vendor, similar

    @staticmethod
    async def get_vendor(db: AsyncSession, vendor_id: int) -> Vendor:
        result = await db.execute(select(Vendor).where(Vendor.id == vendor_id))
        vendor = result.scalar_one_or_none()
        if not vendor:
            raise ResourceNotFoundError("Vendor", vendor_id)
        return vendor

    @staticmethod
    async def approve_vendor(db: AsyncSession, vendor_id: int, admin_id: int) -> Vendor:
        vendor = await VendorService.get_vendor(db, vendor_id)
        if vendor.status != MasterDataStatus.PENDING_APPROVAL:
            raise BusinessRuleError(
                f"Vendor status is {vendor.status.value}, expected PENDING_APPROVAL",
                details={"vendor_id": vendor.id}
            )

        vendor.status = MasterDataStatus.APPROVED
        vendor.approved_by_user_id = admin_id
        vendor.approved_at = datetime.now(timezone.utc)
        vendor.rejection_reason = None
        await db.commit()
        await db.refresh(vendor)
        return vendor

    @staticmethod
    async def reject_vendor(db: AsyncSession, vendor_id: int, admin_id: int, reason: str) -> Vendor:
        vendor = await VendorService.get_vendor(db, vendor_id)
        if vendor.status != MasterDataStatus.PENDING_APPROVAL:
            raise BusinessRuleError(
                f"Vendor status is {vendor.status.value}, expected PENDING_APPROVAL",
                details={"vendor_id": vendor.id}
            )

        vendor.status = MasterDataStatus.REJECTED
        vendor.approved_by_user_id = admin_id
        vendor.rejection_reason = reason
        vendor.is_active = False
        await db.commit()
        await db.refresh(vendor)
        return vendor
