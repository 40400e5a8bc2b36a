"""Goods receipt input schemas."""
from datetime import date
from typing import Optional, List
from uuid import UUID

from pydantic import Field

from app.models.receiving import GRNStatus, VarianceReason
from app.schemas.base import BaseCreateSchema, BaseUpdateSchema


class GRNBatchCreate(BaseCreateSchema):
    """Batch split of a receipt line. Blank batch numbers are generated."""
    batch_no: Optional[str] = None
    manufacture_date: Optional[date] = None
    expiry_date: Optional[date] = None
    quantity: int = Field(0, ge=0)


class GRNLineCreate(BaseCreateSchema):
    sku: str = Field(..., min_length=1, max_length=100)
    ean: Optional[str] = None
    ordered_qty: Optional[int] = Field(None, ge=0, description="Echo of the PO quantity, checked against the baseline")
    received_qty: int = Field(0, ge=0)
    rejected_qty: int = Field(0, ge=0)
    qc_pass_qty: int = Field(0, ge=0)
    qc_fail_qty: int = Field(0, ge=0)
    held_qty: int = Field(0, ge=0)
    rtv_qty: int = Field(0, ge=0)
    variance_reason: Optional[VarianceReason] = None
    remarks: Optional[str] = None
    batches: List[GRNBatchCreate] = []


class GRNPhotoCreate(BaseCreateSchema):
    url: str = Field(..., min_length=1, max_length=500)
    sku: Optional[str] = None
    reason: str = "sku-level-photo"


class GRNCreate(BaseCreateSchema):
    """One receipt event against a purchase order."""
    purchase_order_id: UUID
    lines: List[GRNLineCreate] = []
    photos: List[GRNPhotoCreate] = []
    remarks: Optional[str] = None


class GRNStatusUpdate(BaseUpdateSchema):
    """Operator update of the GRN header status."""
    status: GRNStatus
    close_reason: Optional[str] = None
