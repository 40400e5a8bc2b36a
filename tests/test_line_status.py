import pytest

from app.models.receiving import GRNLineStatus
from app.services.grn_reconciliation import calculate_line_status


@pytest.mark.parametrize(
    "ordered, rejected, qc_pass, expected",
    [
        (0, 0, 0, GRNLineStatus.PENDING),
        (0, 5, 5, GRNLineStatus.PENDING),
        (10, 10, 0, GRNLineStatus.REJECTED),
        (10, 0, 10, GRNLineStatus.COMPLETED),
        (10, 4, 6, GRNLineStatus.PARTIAL),
        (10, 3, 2, GRNLineStatus.PARTIAL),
        (10, 0, 4, GRNLineStatus.PARTIAL),
        (10, 3, 0, GRNLineStatus.PARTIAL),
        (10, 0, 0, GRNLineStatus.PENDING),
    ],
)
def test_line_status_rules(ordered, rejected, qc_pass, expected):
    assert calculate_line_status(ordered, rejected, qc_pass) == expected


def test_full_qc_pass_is_completed_not_partial():
    # ordered == rejected + qc_pass also holds here; completed must win
    assert calculate_line_status(10, 0, 10) == GRNLineStatus.COMPLETED


def test_fully_rejected_wins_over_other_rules():
    assert calculate_line_status(5, 5, 0) == GRNLineStatus.REJECTED


def test_qc_pass_above_ordered_falls_back_to_pending():
    assert calculate_line_status(5, 0, 6) == GRNLineStatus.PENDING


def test_negative_and_missing_inputs_are_clamped():
    assert calculate_line_status(10, -3, -1) == GRNLineStatus.PENDING
    assert calculate_line_status(None, None, None) == GRNLineStatus.PENDING
    assert calculate_line_status(-4, 0, 0) == GRNLineStatus.PENDING
