"""
Request Context for reconciliation entry points.

Identity and DC scoping arrive as an explicit value instead of ambient
request state, so services stay callable from jobs and tests alike.

Usage:

    context = RequestContext(user_id=user.id, role="DC_MANAGER", dc_id=user.dc_id)
    status = await GRNService(db).get_order_receipt_status(po_id, context=context)

A context bound to a DC only sees purchase orders of that DC; any other
order is reported as not found.
"""
import uuid
from dataclasses import dataclass
from typing import Optional

from app.core.exceptions import NotFoundError


@dataclass(frozen=True)
class RequestContext:
    user_id: Optional[uuid.UUID] = None
    role: Optional[str] = None
    dc_id: Optional[uuid.UUID] = None

    def can_see_dc(self, dc_id: Optional[uuid.UUID]) -> bool:
        """Unscoped contexts see every DC."""
        if self.dc_id is None:
            return True
        return dc_id == self.dc_id


def ensure_visible(context: Optional[RequestContext], dc_id: Optional[uuid.UUID], po_id) -> None:
    """
    Raise NotFoundError when the purchase order lies outside the caller's DC.

    Args:
        context: Caller context, None means unscoped
        dc_id: DC of the purchase order
        po_id: Purchase order id, for the error message

    Raises:
        NotFoundError: If the context cannot see this DC
    """
    if context is None or context.can_see_dc(dc_id):
        return
    raise NotFoundError(
        f"Purchase order {po_id} not found",
        details={"purchase_order_id": str(po_id)}
    )
