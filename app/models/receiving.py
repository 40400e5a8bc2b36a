"""Goods receipt models for DC receiving.

A purchase order is received through one or more receipt events (GRNs).
Each event records per-SKU lines with their QC outcome, optional batches
and photos. Rows are append-only: corrections are new receipt events,
and the derived line status is always recomputed from the full trail.
"""
import uuid
from datetime import datetime, date, timezone
from enum import Enum
from typing import TYPE_CHECKING, Optional, List

from sqlalchemy import String, DateTime, Date, ForeignKey, Integer, Text, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import inspect as sa_inspect

from app.database import Base
from app.db_types import UUIDType

if TYPE_CHECKING:
    from app.models.purchase import PurchaseOrder


# ==================== Enums ====================

class GRNLineStatus(str, Enum):
    """Derived receiving status of a SKU line (and of the whole order)."""
    PENDING = "pending"
    PARTIAL = "partial"
    REJECTED = "rejected"
    COMPLETED = "completed"


class GRNStatus(str, Enum):
    """Operator-set status of a receipt event header."""
    PARTIAL = "partial"
    COMPLETED = "completed"
    CLOSED = "closed"
    PENDING_QC = "pending-qc"
    VARIANCE_REVIEW = "variance-review"
    RTV_INITIATED = "rtv-initiated"


class VarianceReason(str, Enum):
    SHORT = "short"
    EXCESS = "excess"
    DAMAGE = "damage"
    WRONG = "wrong"
    NEAR_EXPIRY = "near-expiry"


# ==================== Receipt Event ====================

class GoodsReceiptNote(Base):
    """
    Receipt event header.
    One physical receiving session against a purchase order.
    """
    __tablename__ = "goods_receipt_notes"
    __table_args__ = (
        UniqueConstraint("purchase_order_id", "sequence_no", name="uq_grn_po_sequence"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )

    purchase_order_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("purchase_orders.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    sequence_no: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Receipt sequence within the purchase order, starting at 1"
    )
    grn_number: Mapped[str] = mapped_column(
        String(80),
        unique=True,
        nullable=False,
        comment="GRN-{po_number}-{sequence}"
    )
    dc_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType, nullable=True)

    # Manual status, never an input to derived receiving status
    status: Mapped[str] = mapped_column(
        String(50),
        default=GRNStatus.PARTIAL.value,
        nullable=False,
        comment="partial, completed, closed, pending-qc, variance-review, rtv-initiated"
    )
    close_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    approved_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType, nullable=True)

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
    purchase_order: Mapped["PurchaseOrder"] = relationship(
        "PurchaseOrder",
        back_populates="grns"
    )
    lines: Mapped[List["GRNLine"]] = relationship(
        "GRNLine",
        back_populates="grn",
        cascade="all, delete-orphan"
    )
    photos: Mapped[List["GRNPhoto"]] = relationship(
        "GRNPhoto",
        back_populates="grn",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        try:
            if sa_inspect(self).detached:
                return f"<GoodsReceiptNote(id={self.id})>"
            return f"<GoodsReceiptNote(number='{self.grn_number}', status='{self.status}')>"
        except Exception:
            return f"<GoodsReceiptNote(id={getattr(self, 'id', 'unknown')})>"


class GRNLine(Base):
    """Per-SKU quantities recorded in one receipt event."""
    __tablename__ = "grn_lines"
    __table_args__ = (
        Index("ix_grn_lines_grn_sku", "grn_id", "sku"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )

    grn_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("goods_receipt_notes.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    sku: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    ean: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Snapshot of the authorized quantity at receipt time
    ordered_qty: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    received_qty: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    rejected_qty: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Raw rejected quantity as recorded"
    )
    qc_pass_qty: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    qc_fail_qty: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    held_qty: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    rtv_qty: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Derived on write from the full trail, informational only
    pending_qty: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    line_status: Mapped[str] = mapped_column(
        String(20),
        default=GRNLineStatus.PENDING.value,
        nullable=False,
        comment="pending, partial, rejected, completed"
    )

    variance_reason: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        comment="short, excess, damage, wrong, near-expiry"
    )
    remarks: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    # Relationships
    grn: Mapped["GoodsReceiptNote"] = relationship(
        "GoodsReceiptNote",
        back_populates="lines"
    )
    batches: Mapped[List["GRNBatch"]] = relationship(
        "GRNBatch",
        back_populates="line",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        try:
            if sa_inspect(self).detached:
                return f"<GRNLine(id={self.id})>"
            return f"<GRNLine(sku='{self.sku}', received={self.received_qty})>"
        except Exception:
            return f"<GRNLine(id={getattr(self, 'id', 'unknown')})>"


class GRNBatch(Base):
    """Batch / lot split of a receipt line."""
    __tablename__ = "grn_batches"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )

    grn_line_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("grn_lines.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    batch_no: Mapped[str] = mapped_column(String(100), nullable=False)
    manufacture_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    expiry_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    line: Mapped["GRNLine"] = relationship(
        "GRNLine",
        back_populates="batches"
    )


class GRNPhoto(Base):
    """Photo evidence attached to a receipt event. Only the URL is stored."""
    __tablename__ = "grn_photos"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )

    grn_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("goods_receipt_notes.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    purchase_order_id: Mapped[uuid.UUID] = mapped_column(UUIDType, nullable=False)

    sku: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    url: Mapped[str] = mapped_column(String(500), nullable=False)
    reason: Mapped[str] = mapped_column(String(100), default="sku-level-photo", nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    grn: Mapped["GoodsReceiptNote"] = relationship(
        "GoodsReceiptNote",
        back_populates="photos"
    )
