"""Purchase order baseline models for DC receiving.

Supports:
- DC Purchase Order header (approval status, payment terms, amounts)
- Purchase Order lines (authorized ordered quantity per catalogue SKU)
- SKU matrix (concrete sub-SKUs under a catalogue line)

The header also carries the derived payment status and due date, which are
written by the payment reconciliation engine and never read back as input.
"""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Optional, List
from decimal import Decimal

from sqlalchemy import String, DateTime, ForeignKey, Integer, Text, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import inspect as sa_inspect

from app.database import Base
from app.db_types import UUIDType, MoneyType

if TYPE_CHECKING:
    from app.models.receiving import GoodsReceiptNote
    from app.models.payment import PaymentTransaction, CreditNote


# ==================== Enums ====================

class POApprovalStatus(str, Enum):
    """DC Purchase Order approval status."""
    DRAFT = "DRAFT"
    PENDING_CATEGORY_HEAD = "PENDING_CATEGORY_HEAD"
    PENDING_ADMIN = "PENDING_ADMIN"
    PENDING_CREATOR_REVIEW = "PENDING_CREATOR_REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class PaymentType(str, Enum):
    """Vendor payment terms."""
    ADVANCE = "ADVANCE"
    CREDIT = "CREDIT"
    SELL_OR_RETURN = "SELL_OR_RETURN"
    ONE_TIME = "ONE_TIME"


class POPaymentStatus(str, Enum):
    """Derived vendor payment status of a purchase order."""
    UNPAID = "UNPAID"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    PAID = "PAID"
    ADVANCE_PAID = "ADVANCE_PAID"
    CREDIT_DUE = "CREDIT_DUE"
    CREDIT_CLEARED = "CREDIT_CLEARED"
    OVERDUE = "OVERDUE"
    RECONCILED = "RECONCILED"
    PENDING_RECONCILIATION = "PENDING_RECONCILIATION"


class POPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


# ==================== Purchase Order ====================

class PurchaseOrder(Base):
    """
    DC Purchase Order.
    The authorized baseline that receipts and payments reconcile against.
    """
    __tablename__ = "purchase_orders"
    __table_args__ = (
        Index("ix_po_dc_status", "dc_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )

    po_number: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        index=True
    )

    vendor_id: Mapped[uuid.UUID] = mapped_column(UUIDType, nullable=False, index=True)
    dc_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType,
        nullable=True,
        comment="Receiving distribution center"
    )

    # Approval workflow result (owned by the approval process)
    status: Mapped[str] = mapped_column(
        String(50),
        default=POApprovalStatus.DRAFT.value,
        nullable=False,
        index=True,
        comment="DRAFT, PENDING_CATEGORY_HEAD, PENDING_ADMIN, PENDING_CREATOR_REVIEW, APPROVED, REJECTED, CANCELLED"
    )
    priority: Mapped[str] = mapped_column(
        String(20),
        default=POPriority.MEDIUM.value,
        nullable=False,
        comment="LOW, MEDIUM, HIGH, URGENT"
    )

    total_amount: Mapped[Decimal] = mapped_column(MoneyType, default=Decimal("0"), nullable=False)

    # Payment terms
    payment_type: Mapped[str] = mapped_column(
        String(50),
        default=PaymentType.ONE_TIME.value,
        nullable=False,
        comment="ADVANCE, CREDIT, SELL_OR_RETURN, ONE_TIME"
    )
    credit_period_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    payment_due_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Derived, write-only cache of the last payment recomputation
    payment_status: Mapped[str] = mapped_column(
        String(50),
        default=POPaymentStatus.UNPAID.value,
        nullable=False,
        comment="UNPAID, PARTIALLY_PAID, PAID, ADVANCE_PAID, CREDIT_DUE, CREDIT_CLEARED, OVERDUE, RECONCILED, PENDING_RECONCILIATION"
    )

    remarks: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    # Relationships
    items: Mapped[List["PurchaseOrderItem"]] = relationship(
        "PurchaseOrderItem",
        back_populates="purchase_order",
        cascade="all, delete-orphan"
    )
    grns: Mapped[List["GoodsReceiptNote"]] = relationship(
        "GoodsReceiptNote",
        back_populates="purchase_order"
    )
    payments: Mapped[List["PaymentTransaction"]] = relationship(
        "PaymentTransaction",
        back_populates="purchase_order"
    )
    credit_notes: Mapped[List["CreditNote"]] = relationship(
        "CreditNote",
        back_populates="purchase_order"
    )

    def __repr__(self) -> str:
        try:
            if sa_inspect(self).detached:
                return f"<PurchaseOrder(id={self.id})>"
            return f"<PurchaseOrder(number='{self.po_number}', status='{self.status}')>"
        except Exception:
            return f"<PurchaseOrder(id={getattr(self, 'id', 'unknown')})>"


class PurchaseOrderItem(Base):
    """Purchase Order line: authorized quantity for a catalogue SKU."""
    __tablename__ = "purchase_order_items"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )

    purchase_order_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("purchase_orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    sku: Mapped[str] = mapped_column(String(100), nullable=False, comment="Catalogue SKU")
    product_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    unit_price: Mapped[Decimal] = mapped_column(MoneyType, default=Decimal("0"), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    # Relationships
    purchase_order: Mapped["PurchaseOrder"] = relationship(
        "PurchaseOrder",
        back_populates="items"
    )
    sku_matrix: Mapped[List["PurchaseOrderSkuMatrix"]] = relationship(
        "PurchaseOrderSkuMatrix",
        back_populates="po_item",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        try:
            if sa_inspect(self).detached:
                return f"<PurchaseOrderItem(id={self.id})>"
            return f"<PurchaseOrderItem(sku='{self.sku}', qty={self.quantity})>"
        except Exception:
            return f"<PurchaseOrderItem(id={getattr(self, 'id', 'unknown')})>"


class PurchaseOrderSkuMatrix(Base):
    """
    Concrete sub-SKU ordered under a catalogue line (size/colour variants).
    When a line has matrix rows, the sub-SKUs replace the catalogue SKU
    in the receiving baseline.
    """
    __tablename__ = "purchase_order_sku_matrix"
    __table_args__ = (
        UniqueConstraint("po_item_id", "sku", name="uq_po_sku_matrix_item_sku"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )

    po_item_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("purchase_order_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    sku: Mapped[str] = mapped_column(String(100), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    po_item: Mapped["PurchaseOrderItem"] = relationship(
        "PurchaseOrderItem",
        back_populates="sku_matrix"
    )
