"""
Purchase Order baseline for reconciliation.

Reads the authorized side of a purchase order: ordered quantity per
concrete SKU, total amount and payment terms. Catalogue lines that carry
a SKU matrix contribute their sub-SKUs instead of the catalogue SKU.
"""
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import NotFoundError
from app.core.request_context import RequestContext, ensure_visible
from app.models.purchase import PurchaseOrder, PurchaseOrderItem


@dataclass(frozen=True)
class OrderBaseline:
    order_id: uuid.UUID
    po_number: str
    vendor_id: uuid.UUID
    dc_id: Optional[uuid.UUID]
    approval_status: str
    total_amount: Decimal
    payment_type: str
    credit_period_days: Optional[int] = None
    payment_due_date: Optional[datetime] = None
    ordered_qty_by_sku: Dict[str, int] = field(default_factory=dict)


def build_ordered_qty_by_sku(po: PurchaseOrder) -> Dict[str, int]:
    """
    Expand PO lines into {sku: ordered quantity}.

    The same SKU on two lines is summed.
    """
    ordered: Dict[str, int] = {}
    for item in po.items:
        if item.sku_matrix:
            for entry in item.sku_matrix:
                ordered[entry.sku] = ordered.get(entry.sku, 0) + (entry.quantity or 0)
        else:
            ordered[item.sku] = ordered.get(item.sku, 0) + (item.quantity or 0)
    return ordered


class BaselineProvider:
    """Read-only access to purchase order baselines."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_purchase_order(
        self,
        po_id: uuid.UUID,
        context: RequestContext = None,
        for_update: bool = False,
    ) -> PurchaseOrder:
        """
        Load a purchase order with its lines and SKU matrix.

        Args:
            po_id: Purchase order id
            context: Caller context for DC scoping
            for_update: Take a row lock on the PO header

        Raises:
            NotFoundError: If the PO does not exist or is outside the caller's DC
        """
        stmt = (
            select(PurchaseOrder)
            .where(PurchaseOrder.id == po_id)
            .options(
                selectinload(PurchaseOrder.items).selectinload(PurchaseOrderItem.sku_matrix)
            )
        )
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)

        result = await self.db.execute(stmt)
        po = result.scalar_one_or_none()
        if po is None:
            raise NotFoundError(
                f"Purchase order {po_id} not found",
                details={"purchase_order_id": str(po_id)}
            )

        ensure_visible(context, po.dc_id, po_id)
        return po

    async def get_baseline(self, po_id: uuid.UUID, context: RequestContext = None) -> OrderBaseline:
        po = await self.get_purchase_order(po_id, context=context)
        return self.to_baseline(po)

    @staticmethod
    def to_baseline(po: PurchaseOrder) -> OrderBaseline:
        return OrderBaseline(
            order_id=po.id,
            po_number=po.po_number,
            vendor_id=po.vendor_id,
            dc_id=po.dc_id,
            approval_status=po.status,
            total_amount=po.total_amount if po.total_amount is not None else Decimal("0"),
            payment_type=po.payment_type,
            credit_period_days=po.credit_period_days,
            payment_due_date=po.payment_due_date,
            ordered_qty_by_sku=build_ordered_qty_by_sku(po),
        )
