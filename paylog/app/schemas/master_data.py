"""
Master data Pydantic schemas.

Vendors, entities, categories and invoice profiles.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from paylog.app.models.invoice_enums import MasterDataStatus


class VendorCreate(BaseModel):
    """Schema for creating a vendor."""
    name: str = Field(..., min_length=1, max_length=200, description="Vendor name")
    address: Optional[str] = Field(None, max_length=500)
    gst_exemption: bool = Field(default=False)
    bank_details: Optional[str] = Field(None, max_length=2000)


class VendorResponse(BaseModel):
    """Schema for vendor response."""
    id: int
    name: str
    address: Optional[str]
    gst_exemption: bool
    bank_details: Optional[str]
    status: MasterDataStatus
    created_by_user_id: Optional[int]
    approved_by_user_id: Optional[int]
    approved_at: Optional[datetime]
    rejection_reason: Optional[str]
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class SimilarVendor(BaseModel):
    """Existing vendor name resembling a submitted one."""
    name: str
    score: float = Field(..., ge=0, le=1)


class VendorCreateResponse(BaseModel):
    """Created vendor plus near-duplicate warnings (advisory only)."""
    vendor: VendorResponse
    similar_vendors: List[SimilarVendor]


class SimilarVendorResponse(BaseModel):
    """Schema for GET /master-data/vendors/similar."""
    query: str
    threshold: float
    matches: List[SimilarVendor]


class VendorListResponse(BaseModel):
    """Schema for paginated vendor list."""
    vendors: List[VendorResponse]
    total: int
    page: int
    page_size: int


class RejectRequest(BaseModel):
    """Schema for rejecting a pending record."""
    reason: str = Field(..., min_length=1, max_length=500, description="Rejection reason")


class EntityCreate(BaseModel):
    """Schema for creating an entity."""
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=500)
    address: Optional[str] = Field(None, max_length=500)
    country: Optional[str] = Field(None, max_length=100)


class EntityResponse(BaseModel):
    """Schema for entity response."""
    id: int
    name: str
    description: Optional[str]
    address: Optional[str]
    country: Optional[str]
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class CategoryCreate(BaseModel):
    """Schema for creating a category."""
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)


class CategoryResponse(BaseModel):
    """Schema for category response."""
    id: int
    name: str
    description: Optional[str]
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class InvoiceProfileCreate(BaseModel):
    """Schema for creating an invoice profile."""
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=500)
    vendor_id: int
    entity_id: int
    category_id: int
    tds_applicable: bool = Field(default=False)
    tds_percentage: Optional[Decimal] = Field(None, ge=0, le=100, decimal_places=2)


class InvoiceProfileResponse(BaseModel):
    """Schema for invoice profile response."""
    id: int
    name: str
    description: Optional[str]
    vendor_id: int
    entity_id: int
    category_id: int
    tds_applicable: bool
    tds_percentage: Optional[Decimal]
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class PaymentTypeCreate(BaseModel):
    """Schema for creating a payment type."""
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    requires_reference: bool = Field(default=False, description="Payments of this type need a transaction reference")


class PaymentTypeResponse(BaseModel):
    """Schema for payment type response."""
    id: int
    name: str
    description: Optional[str]
    requires_reference: bool
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True
