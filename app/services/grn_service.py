"""GRN Service for DC receiving and receipt reconciliation.

This service owns the goods-receipt trail of a purchase order:
- Receipt events (GRN header + SKU lines + batches + photos), written atomically
- Operator status of a GRN header
- Reconciled receiving status, recomputed from all GRNs on every read

Flow:
1. PO approved → receiving allowed
2. GRN created → lines validated against the PO baseline and the current fold
3. Every read folds all GRN lines of the PO → per-SKU status → order status

The header status set by operators (closed, variance-review, ...) is kept
for workflow only and never feeds the derived receiving status.
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Optional, List

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.config import settings
from app.core.enum_utils import get_enum_value, is_status
from app.core.exceptions import ReconciliationError, ValidationError, NotFoundError, ConsistencyError
from app.core.request_context import RequestContext, ensure_visible
from app.models.purchase import POApprovalStatus
from app.models.receiving import GoodsReceiptNote, GRNLine, GRNBatch, GRNPhoto, GRNLineStatus, GRNStatus
from app.schemas.receiving import GRNCreate, GRNStatusUpdate
from app.services.baseline_provider import BaselineProvider
from app.services.grn_reconciliation import (
    ReconciledLine,
    reconcile_order_lines,
    reconcile_sku_line,
    resolve_receipt_status,
)

logger = logging.getLogger(__name__)


# SKUs in these states accept no further receipts. A rejected SKU stays
# open for replacement or re-inspected stock.
CLOSED_LINE_STATUSES = (GRNLineStatus.COMPLETED,)


@dataclass
class OrderReceiptStatus:
    purchase_order_id: uuid.UUID
    status: str
    has_receipt: bool
    receipt_count: int
    lines: List[ReconciledLine] = field(default_factory=list)


class GRNService:
    """Service for receipt events and receiving reconciliation."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.baseline = BaselineProvider(db)

    # ==================== STORE ACCESS ====================

    async def _load_line_records(self, po_id: uuid.UUID) -> List[GRNLine]:
        """All committed GRN lines of a purchase order, across every GRN."""
        result = await self.db.execute(
            select(GRNLine)
            .join(GoodsReceiptNote, GRNLine.grn_id == GoodsReceiptNote.id)
            .where(GoodsReceiptNote.purchase_order_id == po_id)
        )
        return list(result.scalars().all())

    async def _count_receipts(self, po_id: uuid.UUID) -> int:
        result = await self.db.execute(
            select(func.count(GoodsReceiptNote.id))
            .where(GoodsReceiptNote.purchase_order_id == po_id)
        )
        return result.scalar() or 0

    async def _next_sequence_no(self, po_id: uuid.UUID) -> int:
        """Next receipt sequence for the PO; uq_grn_po_sequence rejects a concurrent duplicate."""
        if settings.GRN_SINGLE_EVENT_PER_PO:
            return 1
        result = await self.db.execute(
            select(func.max(GoodsReceiptNote.sequence_no))
            .where(GoodsReceiptNote.purchase_order_id == po_id)
        )
        return (result.scalar() or 0) + 1

    @staticmethod
    def _generate_batch_no() -> str:
        return f"BATCH-{uuid.uuid4().hex[:12].upper()}"

    # ==================== RECONCILIATION (READ SIDE) ====================

    async def get_line_reconciliation(
        self,
        po_id: uuid.UUID,
        context: RequestContext = None,
    ) -> List[ReconciledLine]:
        """
        Reconcile every SKU of a purchase order against its baseline.

        Args:
            po_id: Purchase order id
            context: Caller context for DC scoping

        Returns:
            One ReconciledLine per baseline SKU, in PO line order
        """
        baseline = await self.baseline.get_baseline(po_id, context=context)
        records = await self._load_line_records(po_id)
        return reconcile_order_lines(baseline.ordered_qty_by_sku, records)

    async def get_sku_reconciliation(
        self,
        po_id: uuid.UUID,
        sku: str,
        context: RequestContext = None,
    ) -> ReconciledLine:
        """Reconcile a single SKU (or matrix sub-SKU) of a purchase order."""
        baseline = await self.baseline.get_baseline(po_id, context=context)
        if sku not in baseline.ordered_qty_by_sku:
            raise ValidationError(
                f"SKU {sku} is not on purchase order {baseline.po_number}",
                details={"sku": sku, "purchase_order_id": str(po_id)}
            )
        records = await self._load_line_records(po_id)
        return reconcile_sku_line(sku, baseline.ordered_qty_by_sku[sku], records)

    async def get_order_receipt_status(
        self,
        po_id: uuid.UUID,
        requested_status: Optional[str] = None,
        context: RequestContext = None,
    ) -> OrderReceiptStatus:
        """
        Derive the receiving status of a purchase order.

        Args:
            po_id: Purchase order id
            requested_status: Status the caller is filtering on; "approved"
                relabels a completed order as "approved"
            context: Caller context for DC scoping

        Returns:
            OrderReceiptStatus with the reconciled lines
        """
        baseline = await self.baseline.get_baseline(po_id, context=context)
        receipt_count = await self._count_receipts(po_id)
        records = await self._load_line_records(po_id) if receipt_count else []
        lines = reconcile_order_lines(baseline.ordered_qty_by_sku, records)

        status = resolve_receipt_status(
            [line.line_status for line in lines],
            has_receipt=receipt_count > 0,
            approval_status=baseline.approval_status,
            requested_status=requested_status,
        )
        return OrderReceiptStatus(
            purchase_order_id=po_id,
            status=status,
            has_receipt=receipt_count > 0,
            receipt_count=receipt_count,
            lines=lines,
        )

    async def get_receipt_event(self, grn_id: uuid.UUID, context: RequestContext = None) -> GoodsReceiptNote:
        """Get a GRN with its lines, batches and photos."""
        result = await self.db.execute(
            select(GoodsReceiptNote)
            .where(GoodsReceiptNote.id == grn_id)
            .options(
                selectinload(GoodsReceiptNote.lines).selectinload(GRNLine.batches),
                selectinload(GoodsReceiptNote.photos),
            )
        )
        grn = result.scalar_one_or_none()
        if grn is None:
            raise NotFoundError(f"GRN {grn_id} not found", details={"grn_id": str(grn_id)})
        ensure_visible(context, grn.dc_id, grn.purchase_order_id)
        return grn

    async def list_receipt_events(self, po_id: uuid.UUID, context: RequestContext = None) -> List[GoodsReceiptNote]:
        """GRNs of a purchase order in receipt order."""
        await self.baseline.get_purchase_order(po_id, context=context)
        result = await self.db.execute(
            select(GoodsReceiptNote)
            .where(GoodsReceiptNote.purchase_order_id == po_id)
            .options(selectinload(GoodsReceiptNote.lines))
            .order_by(GoodsReceiptNote.sequence_no)
        )
        return list(result.scalars().all())

    # ==================== RECEIPT EVENTS (WRITE SIDE) ====================

    def _validate_lines(self, data: GRNCreate) -> None:
        """Checks that need nothing but the request itself."""
        if not data.lines:
            raise ValidationError("At least one GRN line is required")

        seen = set()
        for line in data.lines:
            if line.sku in seen:
                raise ValidationError(
                    f"SKU {line.sku} appears more than once in the GRN",
                    details={"sku": line.sku}
                )
            seen.add(line.sku)

            if line.rejected_qty > 0 and not line.remarks:
                raise ValidationError(
                    f"Remarks required for rejected items of SKU {line.sku}",
                    details={"sku": line.sku, "rejected_qty": line.rejected_qty}
                )

            if line.qc_pass_qty + line.qc_fail_qty > line.received_qty:
                raise ValidationError(
                    f"QC pass + QC fail ({line.qc_pass_qty + line.qc_fail_qty}) "
                    f"exceeds received quantity ({line.received_qty}) for SKU {line.sku}",
                    details={"sku": line.sku}
                )

            if settings.GRN_ENFORCE_BATCH_QUANTITY and line.batches:
                batch_total = sum(b.quantity for b in line.batches)
                if batch_total != line.received_qty:
                    raise ValidationError(
                        f"Batch quantities ({batch_total}) do not match received quantity "
                        f"({line.received_qty}) for SKU {line.sku}",
                        details={"sku": line.sku}
                    )

    async def create_receipt_event(self, data: GRNCreate, context: RequestContext = None) -> GoodsReceiptNote:
        """
        Record one receipt event against a purchase order.

        Header, lines, batches and photos are written in one transaction;
        any failure leaves nothing behind.

        Args:
            data: GRN payload
            context: Caller context (creator and DC scoping)

        Returns:
            The created GoodsReceiptNote

        Raises:
            ValidationError: Bad line data, rejected units without remarks,
                or SKU not on the PO
            NotFoundError: PO absent or outside the caller's DC
            ConsistencyError: PO not approved, SKU already completed, or a
                GRN already recorded where only one is allowed
        """
        self._validate_lines(data)
        po_id = data.purchase_order_id

        try:
            po = await self.baseline.get_purchase_order(po_id, context=context, for_update=True)

            if not is_status(po.status, POApprovalStatus.APPROVED):
                raise ConsistencyError(
                    f"Purchase order {po.po_number} must be approved before receiving (current: {po.status})",
                    details={"purchase_order_id": str(po_id), "status": po.status}
                )

            ordered_by_sku = BaselineProvider.to_baseline(po).ordered_qty_by_sku
            for line in data.lines:
                if line.sku not in ordered_by_sku:
                    raise ValidationError(
                        f"SKU {line.sku} is not on purchase order {po.po_number}",
                        details={"sku": line.sku}
                    )
                if line.ordered_qty is not None and line.ordered_qty != ordered_by_sku[line.sku]:
                    raise ValidationError(
                        f"Ordered quantity mismatch for SKU {line.sku}: "
                        f"PO has {ordered_by_sku[line.sku]}, received {line.ordered_qty}",
                        details={"sku": line.sku}
                    )

            if settings.GRN_SINGLE_EVENT_PER_PO and await self._count_receipts(po_id):
                raise ConsistencyError(
                    f"GRN already exists for purchase order {po.po_number}",
                    details={"purchase_order_id": str(po_id)}
                )

            existing = await self._load_line_records(po_id)
            for line in data.lines:
                current = reconcile_sku_line(line.sku, ordered_by_sku[line.sku], existing)
                if current.line_status in CLOSED_LINE_STATUSES:
                    raise ConsistencyError(
                        f"SKU {line.sku} is already {current.line_status.value}, no further receipt allowed",
                        details={"sku": line.sku, "line_status": current.line_status.value}
                    )

            sequence_no = await self._next_sequence_no(po_id)
            grn = GoodsReceiptNote(
                purchase_order_id=po_id,
                sequence_no=sequence_no,
                grn_number=f"GRN-{po.po_number}-{sequence_no:03d}",
                dc_id=po.dc_id,
                status=GRNStatus.PARTIAL.value,
                remarks=data.remarks,
                created_by=context.user_id if context else None,
            )

            new_lines = []
            for line in data.lines:
                grn_line = GRNLine(
                    sku=line.sku,
                    ean=line.ean,
                    ordered_qty=ordered_by_sku[line.sku],
                    received_qty=line.received_qty,
                    rejected_qty=line.rejected_qty,
                    qc_pass_qty=line.qc_pass_qty,
                    qc_fail_qty=line.qc_fail_qty,
                    held_qty=line.held_qty,
                    rtv_qty=line.rtv_qty,
                    variance_reason=get_enum_value(line.variance_reason),
                    remarks=line.remarks,
                )
                for batch in line.batches:
                    grn_line.batches.append(GRNBatch(
                        batch_no=batch.batch_no or self._generate_batch_no(),
                        manufacture_date=batch.manufacture_date,
                        expiry_date=batch.expiry_date or (
                            date.today() + timedelta(days=settings.GRN_DEFAULT_BATCH_SHELF_LIFE_DAYS)
                        ),
                        quantity=batch.quantity,
                    ))
                grn.lines.append(grn_line)
                new_lines.append(grn_line)

            # Snapshot of the derived state including this receipt
            for grn_line in new_lines:
                folded = reconcile_sku_line(grn_line.sku, ordered_by_sku[grn_line.sku], existing + new_lines)
                grn_line.pending_qty = folded.pending_qty
                grn_line.line_status = folded.line_status.value

            for photo in data.photos:
                grn.photos.append(GRNPhoto(
                    purchase_order_id=po_id,
                    sku=photo.sku,
                    url=photo.url,
                    reason=photo.reason or "sku-level-photo",
                ))

            self.db.add(grn)
            await self.db.flush()
            await self.db.commit()

        except ReconciliationError:
            await self.db.rollback()
            raise
        except IntegrityError as e:
            await self.db.rollback()
            logger.error(f"GRN for PO {po_id} conflicted with a concurrent receipt: {e}")
            raise ConsistencyError(
                "Another GRN was recorded for this purchase order at the same time",
                details={"purchase_order_id": str(po_id)}
            ) from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Database error creating GRN for PO {po_id}: {e}")
            raise ReconciliationError("GRN creation failed") from e

        logger.info(
            f"GRN {grn.grn_number} created for PO {po.po_number} with {len(new_lines)} line(s)"
        )
        return grn

    async def update_receipt_status(
        self,
        grn_id: uuid.UUID,
        data: GRNStatusUpdate,
        context: RequestContext = None,
    ) -> GoodsReceiptNote:
        """
        Set the operator status of a GRN header.

        Closing a GRN requires a reason. The derived receiving status is
        not affected.
        """
        status = get_enum_value(data.status)
        if status == GRNStatus.CLOSED.value and not data.close_reason:
            raise ValidationError("Close reason is required to close a GRN", details={"grn_id": str(grn_id)})

        try:
            result = await self.db.execute(
                select(GoodsReceiptNote).where(GoodsReceiptNote.id == grn_id).with_for_update()
            )
            grn = result.scalar_one_or_none()
            if grn is None:
                raise NotFoundError(f"GRN {grn_id} not found", details={"grn_id": str(grn_id)})
            ensure_visible(context, grn.dc_id, grn.purchase_order_id)

            grn.status = status
            if data.close_reason:
                grn.close_reason = data.close_reason
            if status in (GRNStatus.COMPLETED.value, GRNStatus.CLOSED.value):
                grn.approved_by = context.user_id if context else None

            await self.db.commit()

        except ReconciliationError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Database error updating GRN {grn_id}: {e}")
            raise ReconciliationError("GRN status update failed") from e

        logger.info(f"GRN {grn.grn_number} status set to {status}")
        return grn
