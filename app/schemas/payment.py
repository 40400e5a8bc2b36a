"""Vendor payment and credit note input schemas.

Amounts and references are checked by VendorPaymentService so callers get
the same ValidationError whether the value is missing or out of range.
"""
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import field_validator

from app.core.enum_utils import normalize_to_uppercase, VALID_PAYMENT_MODES
from app.models.payment import PaymentMode
from app.schemas.base import BaseCreateSchema


class PaymentCreate(BaseCreateSchema):
    purchase_order_id: Optional[UUID] = None
    amount: Optional[Decimal] = None
    payment_mode: PaymentMode = PaymentMode.BANK_TRANSFER
    utr_number: Optional[str] = None
    receipt_url: Optional[str] = None
    remarks: Optional[str] = None

    @field_validator('payment_mode', mode='before')
    @classmethod
    def normalize_payment_mode(cls, v):
        return normalize_to_uppercase(v, VALID_PAYMENT_MODES)


class CreditNoteCreate(BaseCreateSchema):
    """Manual credit note, linked by purchase order and/or GRN."""
    vendor_id: Optional[UUID] = None
    purchase_order_id: Optional[UUID] = None
    grn_id: Optional[UUID] = None
    amount: Optional[Decimal] = None
    reason: Optional[str] = None


class CreditNoteReview(BaseCreateSchema):
    action: Optional[str] = None  # APPROVE or REJECT
    comments: Optional[str] = None
