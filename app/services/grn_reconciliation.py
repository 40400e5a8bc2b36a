"""
GRN Reconciliation

Pure functions that derive receiving status from the append-only GRN trail.
Nothing here touches the database; GRNService feeds it committed rows.

Per SKU, every receipt line across every GRN of the purchase order is
folded into one reconciled line:

    received / qc_pass / rejected / qc_fail / held / rtv   summed
    ordered                                                 taken from the PO baseline
    effective rejected = clamp(raw rejected, 0, ordered - qc_pass)
    pending            = max(0, ordered - received)

The line status comes from calculate_line_status() and the order status
from aggregate_order_status() over all line statuses.
"""
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional

from app.core.enum_utils import get_enum_value
from app.models.receiving import GRNLineStatus


# Line fields summed across receipt events
SUMMED_FIELDS = (
    "received_qty",
    "qc_pass_qty",
    "rejected_qty",
    "qc_fail_qty",
    "held_qty",
    "rtv_qty",
)

# Relabelled status when the caller asks for "approved"
APPROVED_SYNONYM = "approved"


@dataclass(frozen=True)
class ReceiptLineRecord:
    """One SKU line of one receipt event, as read from the store."""
    sku: str
    received_qty: int = 0
    rejected_qty: int = 0
    qc_pass_qty: int = 0
    qc_fail_qty: int = 0
    held_qty: int = 0
    rtv_qty: int = 0
    grn_id: Any = None


@dataclass(frozen=True)
class ReconciledLine:
    """Per-SKU reconciliation result across all receipt events."""
    sku: str
    ordered_qty: int
    received_qty: int
    qc_pass_qty: int
    rejected_qty: int
    raw_rejected_qty: int
    qc_fail_qty: int
    held_qty: int
    rtv_qty: int
    pending_qty: int
    line_status: GRNLineStatus
    receipt_count: int = 0


def _qty(value) -> int:
    """Quantities outside the domain (None, negative) count as zero."""
    if value is None:
        return 0
    value = int(value)
    return value if value > 0 else 0


# ==================== Line Status ====================

def calculate_line_status(ordered_qty, rejected_qty, qc_pass_qty) -> GRNLineStatus:
    """
    Derive the status of one SKU line.

    Rules are evaluated in order and the first match wins. The order is
    significant: e.g. ordered=10, rejected=0, qc_pass=10 must hit rule 3
    (completed) before rule 4 (partial) could match.

    Args:
        ordered_qty: Authorized quantity from the PO baseline
        rejected_qty: Effective (clamped) rejected quantity
        qc_pass_qty: QC-passed quantity

    Returns:
        GRNLineStatus
    """
    ordered = _qty(ordered_qty)
    rejected = _qty(rejected_qty)
    qc_pass = _qty(qc_pass_qty)

    if ordered == 0:
        return GRNLineStatus.PENDING
    if ordered == rejected:
        return GRNLineStatus.REJECTED
    if ordered == qc_pass:
        return GRNLineStatus.COMPLETED
    if ordered == rejected + qc_pass:
        return GRNLineStatus.PARTIAL
    if (ordered > rejected and rejected > 0) or (qc_pass > 0 and qc_pass < ordered):
        return GRNLineStatus.PARTIAL
    if ordered > rejected and rejected == 0 and qc_pass == 0:
        return GRNLineStatus.PENDING
    return GRNLineStatus.PENDING


# ==================== Line Aggregation ====================

def reconcile_sku_line(sku: str, ordered_qty, records: Iterable[Any]) -> ReconciledLine:
    """
    Fold every receipt line of one SKU into a reconciled line.

    Records may be ORM GRNLine rows or ReceiptLineRecord values; records for
    other SKUs are skipped. With no matching record the result is a virtual
    all-zero line.
    """
    ordered = _qty(ordered_qty)
    totals = dict.fromkeys(SUMMED_FIELDS, 0)
    events = set()

    for record in records:
        if record.sku != sku:
            continue
        for field in SUMMED_FIELDS:
            totals[field] += _qty(getattr(record, field, 0))
        grn_id = getattr(record, "grn_id", None)
        events.add(grn_id if grn_id is not None else id(record))

    qc_pass = totals["qc_pass_qty"]
    raw_rejected = totals["rejected_qty"]
    effective_rejected = min(raw_rejected, max(0, ordered - qc_pass))

    return ReconciledLine(
        sku=sku,
        ordered_qty=ordered,
        received_qty=totals["received_qty"],
        qc_pass_qty=qc_pass,
        rejected_qty=effective_rejected,
        raw_rejected_qty=raw_rejected,
        qc_fail_qty=totals["qc_fail_qty"],
        held_qty=totals["held_qty"],
        rtv_qty=totals["rtv_qty"],
        pending_qty=max(0, ordered - totals["received_qty"]),
        line_status=calculate_line_status(ordered, effective_rejected, qc_pass),
        receipt_count=len(events),
    )


def reconcile_order_lines(ordered_qty_by_sku: Mapping[str, int], records: Iterable[Any]) -> List[ReconciledLine]:
    """
    Reconcile every baseline SKU of a purchase order.

    Sub-SKUs of a matrix line appear in the baseline individually and are
    reconciled independently. Records for SKUs outside the baseline are
    ignored.
    """
    records = list(records)
    return [
        reconcile_sku_line(sku, ordered, records)
        for sku, ordered in ordered_qty_by_sku.items()
    ]


# ==================== Order Status ====================

def aggregate_order_status(line_statuses: Iterable[Any]) -> GRNLineStatus:
    """Collapse line statuses into one order-level receiving status."""
    statuses = [GRNLineStatus(get_enum_value(s)) for s in line_statuses]

    if not statuses:
        return GRNLineStatus.PENDING
    for candidate in (GRNLineStatus.COMPLETED, GRNLineStatus.REJECTED, GRNLineStatus.PENDING):
        if all(s == candidate for s in statuses):
            return candidate
    return GRNLineStatus.PARTIAL


def resolve_receipt_status(
    line_statuses: Iterable[Any],
    has_receipt: bool,
    approval_status: str,
    requested_status: Optional[str] = None,
) -> str:
    """
    Order receiving status as reported to callers.

    An order that was never received reports its approval status in lower
    case ("approved", "rejected", ...). When the caller queries for
    "approved", a derived "completed" is reported as "approved".
    """
    if not has_receipt:
        return (get_enum_value(approval_status) or "").lower()

    status = aggregate_order_status(line_statuses).value
    if (
        requested_status is not None
        and requested_status.lower() == APPROVED_SYNONYM
        and status == GRNLineStatus.COMPLETED.value
    ):
        return APPROVED_SYNONYM
    return status
