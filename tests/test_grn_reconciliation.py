import uuid

from app.models.receiving import GRNLineStatus
from app.services.grn_reconciliation import (
    ReceiptLineRecord,
    aggregate_order_status,
    reconcile_order_lines,
    reconcile_sku_line,
    resolve_receipt_status,
)


def _record(sku="SKU-A", grn_id=None, **qty):
    return ReceiptLineRecord(sku=sku, grn_id=grn_id or uuid.uuid4(), **qty)


# ==================== Line aggregation ====================

def test_two_partial_receipts_fold_into_completed():
    records = [
        _record(received_qty=6, qc_pass_qty=6),
        _record(received_qty=4, qc_pass_qty=4),
    ]
    line = reconcile_sku_line("SKU-A", 10, records)

    assert line.received_qty == 10
    assert line.qc_pass_qty == 10
    assert line.pending_qty == 0
    assert line.line_status == GRNLineStatus.COMPLETED
    assert line.receipt_count == 2


def test_ordered_quantity_comes_from_baseline_not_records():
    records = [_record(received_qty=5, qc_pass_qty=5), _record(received_qty=5, qc_pass_qty=5)]
    line = reconcile_sku_line("SKU-A", 10, records)
    assert line.ordered_qty == 10


def test_rejected_is_clamped_against_remaining_after_qc_pass():
    records = [_record(received_qty=10, qc_pass_qty=7, rejected_qty=5)]
    line = reconcile_sku_line("SKU-A", 10, records)

    assert line.raw_rejected_qty == 5
    assert line.rejected_qty == 3
    assert line.line_status == GRNLineStatus.PARTIAL


def test_rejected_never_negative_when_qc_pass_exceeds_ordered():
    records = [_record(received_qty=6, qc_pass_qty=6, rejected_qty=2)]
    line = reconcile_sku_line("SKU-A", 5, records)

    assert line.rejected_qty == 0
    assert line.pending_qty == 0


def test_fully_rejected_line():
    records = [_record(received_qty=8, rejected_qty=8, qc_fail_qty=8)]
    line = reconcile_sku_line("SKU-A", 8, records)

    assert line.rejected_qty == 8
    assert line.qc_fail_qty == 8
    assert line.line_status == GRNLineStatus.REJECTED


def test_no_records_gives_virtual_zero_line():
    line = reconcile_sku_line("SKU-A", 10, [])

    assert line.received_qty == 0
    assert line.rejected_qty == 0
    assert line.pending_qty == 10
    assert line.receipt_count == 0
    assert line.line_status == GRNLineStatus.PENDING


def test_negative_record_quantities_count_as_zero():
    records = [_record(received_qty=-5, qc_pass_qty=-2, rejected_qty=-1, held_qty=-3)]
    line = reconcile_sku_line("SKU-A", 10, records)

    assert line.received_qty == 0
    assert line.qc_pass_qty == 0
    assert line.held_qty == 0
    assert line.line_status == GRNLineStatus.PENDING


def test_other_sku_records_are_ignored():
    records = [_record(sku="SKU-B", received_qty=10, qc_pass_qty=10)]
    line = reconcile_sku_line("SKU-A", 10, records)
    assert line.received_qty == 0


def test_held_and_rtv_are_summed():
    records = [_record(received_qty=5, held_qty=2, rtv_qty=1), _record(received_qty=3, held_qty=1, rtv_qty=2)]
    line = reconcile_sku_line("SKU-A", 10, records)

    assert line.held_qty == 3
    assert line.rtv_qty == 3
    assert line.pending_qty == 2


def test_matrix_sub_skus_reconcile_independently():
    baseline = {"TEE-M": 5, "TEE-L": 5}
    records = [_record(sku="TEE-M", received_qty=5, qc_pass_qty=5)]

    lines = {line.sku: line for line in reconcile_order_lines(baseline, records)}

    assert lines["TEE-M"].line_status == GRNLineStatus.COMPLETED
    assert lines["TEE-L"].line_status == GRNLineStatus.PENDING
    assert aggregate_order_status(line.line_status for line in lines.values()) == GRNLineStatus.PARTIAL


def test_recomputation_is_deterministic():
    baseline = {"SKU-A": 10, "SKU-B": 4}
    records = [
        _record(sku="SKU-A", received_qty=10, qc_pass_qty=7, rejected_qty=3),
        _record(sku="SKU-B", received_qty=2, qc_pass_qty=2),
    ]
    assert reconcile_order_lines(baseline, records) == reconcile_order_lines(baseline, records)


# ==================== Order status ====================

def test_order_status_empty_is_pending():
    assert aggregate_order_status([]) == GRNLineStatus.PENDING


def test_order_status_uniform_lines():
    assert aggregate_order_status(["completed", "completed"]) == GRNLineStatus.COMPLETED
    assert aggregate_order_status(["rejected", "rejected"]) == GRNLineStatus.REJECTED
    assert aggregate_order_status(["pending", "pending"]) == GRNLineStatus.PENDING


def test_order_status_mixed_is_partial():
    assert aggregate_order_status([GRNLineStatus.COMPLETED, GRNLineStatus.REJECTED]) == GRNLineStatus.PARTIAL
    assert aggregate_order_status([GRNLineStatus.COMPLETED, GRNLineStatus.PENDING]) == GRNLineStatus.PARTIAL


def test_unreceived_order_reports_approval_status():
    assert resolve_receipt_status([], has_receipt=False, approval_status="APPROVED") == "approved"
    assert resolve_receipt_status([], has_receipt=False, approval_status="REJECTED") == "rejected"
    assert resolve_receipt_status([], has_receipt=False, approval_status="PENDING_ADMIN") == "pending_admin"


def test_completed_is_relabelled_when_querying_approved():
    statuses = [GRNLineStatus.COMPLETED]
    assert resolve_receipt_status(statuses, True, "APPROVED", requested_status="approved") == "approved"
    assert resolve_receipt_status(statuses, True, "APPROVED") == "completed"


def test_partial_is_not_relabelled():
    statuses = [GRNLineStatus.COMPLETED, GRNLineStatus.PENDING]
    assert resolve_receipt_status(statuses, True, "APPROVED", requested_status="approved") == "partial"
