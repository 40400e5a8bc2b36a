"""Vendor payment ledger models.

Both tables are append-only. A payment transaction counts toward the paid
total only when SUCCESS; a credit note reduces payable only once APPROVED.
"""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Optional
from decimal import Decimal

from sqlalchemy import String, DateTime, ForeignKey, Text, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import inspect as sa_inspect

from app.database import Base
from app.db_types import UUIDType, MoneyType

if TYPE_CHECKING:
    from app.models.purchase import PurchaseOrder


# ==================== Enums ====================

class PaymentTransactionStatus(str, Enum):
    SUCCESS = "SUCCESS"
    PENDING = "PENDING"
    FAILED = "FAILED"


class PaymentMode(str, Enum):
    BANK_TRANSFER = "BANK_TRANSFER"
    UPI = "UPI"
    CHEQUE = "CHEQUE"
    CASH = "CASH"
    OTHER = "OTHER"


class CreditNoteStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    CANCELLED = "CANCELLED"


class CreditNoteSource(str, Enum):
    """Where a credit note came from."""
    MANUAL = "MANUAL"
    EXCESS_ADVANCE = "EXCESS_ADVANCE"  # Auto-issued on advance overpayment


# ==================== Payment Transaction ====================

class PaymentTransaction(Base):
    """A payment made to the vendor against a purchase order."""
    __tablename__ = "payment_transactions"
    __table_args__ = (
        Index("ix_payment_txn_po_created", "purchase_order_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )

    purchase_order_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("purchase_orders.id", ondelete="RESTRICT"),
        nullable=False
    )
    vendor_id: Mapped[uuid.UUID] = mapped_column(UUIDType, nullable=False, index=True)

    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    payment_mode: Mapped[str] = mapped_column(
        String(30),
        default=PaymentMode.BANK_TRANSFER.value,
        nullable=False,
        comment="BANK_TRANSFER, UPI, CHEQUE, CASH, OTHER"
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default=PaymentTransactionStatus.SUCCESS.value,
        nullable=False,
        comment="SUCCESS, PENDING, FAILED"
    )

    utr_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    receipt_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    remarks: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    purchase_order: Mapped["PurchaseOrder"] = relationship(
        "PurchaseOrder",
        back_populates="payments"
    )

    def __repr__(self) -> str:
        try:
            if sa_inspect(self).detached:
                return f"<PaymentTransaction(id={self.id})>"
            return f"<PaymentTransaction(amount={self.amount}, status='{self.status}')>"
        except Exception:
            return f"<PaymentTransaction(id={getattr(self, 'id', 'unknown')})>"


# ==================== Credit Note ====================

class CreditNote(Base):
    """Vendor credit against a purchase order."""
    __tablename__ = "credit_notes"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )

    credit_note_number: Mapped[str] = mapped_column(
        String(80),
        unique=True,
        nullable=False,
        index=True
    )

    purchase_order_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType,
        ForeignKey("purchase_orders.id", ondelete="RESTRICT"),
        nullable=True,
        index=True
    )
    grn_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType,
        ForeignKey("goods_receipt_notes.id", ondelete="SET NULL"),
        nullable=True
    )
    payment_transaction_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType,
        ForeignKey("payment_transactions.id", ondelete="SET NULL"),
        nullable=True
    )
    vendor_id: Mapped[uuid.UUID] = mapped_column(UUIDType, nullable=False, index=True)

    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    source: Mapped[str] = mapped_column(
        String(30),
        default=CreditNoteSource.MANUAL.value,
        nullable=False,
        comment="MANUAL, EXCESS_ADVANCE"
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default=CreditNoteStatus.PENDING.value,
        nullable=False,
        index=True,
        comment="PENDING, APPROVED, CANCELLED"
    )

    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType, nullable=True)
    approved_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType, nullable=True)
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    review_comments: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

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

    purchase_order: Mapped[Optional["PurchaseOrder"]] = relationship(
        "PurchaseOrder",
        back_populates="credit_notes"
    )

    def __repr__(self) -> str:
        try:
            if sa_inspect(self).detached:
                return f"<CreditNote(id={self.id})>"
            return f"<CreditNote(number='{self.credit_note_number}', status='{self.status}')>"
        except Exception:
            return f"<CreditNote(id={getattr(self, 'id', 'unknown')})>"
