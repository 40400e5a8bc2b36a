import uuid

import pytest

from app.core.exceptions import ConsistencyError
from app.models.payment import CreditNoteStatus
from app.services.credit_note_state_machine import (
    can_transition,
    get_allowed_transitions,
    transition_values,
    validate_transition,
)

PENDING = CreditNoteStatus.PENDING.value
APPROVED = CreditNoteStatus.APPROVED.value
CANCELLED = CreditNoteStatus.CANCELLED.value


def test_pending_can_be_approved_or_rejected():
    assert can_transition(PENDING, APPROVED)
    assert can_transition(PENDING, CANCELLED)
    assert get_allowed_transitions(PENDING) == [APPROVED, CANCELLED]


def test_approved_cannot_be_approved_again():
    assert not can_transition(APPROVED, APPROVED)
    with pytest.raises(ConsistencyError) as exc:
        validate_transition(APPROVED, APPROVED)
    assert exc.value.message == "Credit Note is already APPROVED"


@pytest.mark.parametrize("current", [APPROVED, CANCELLED])
def test_reviewed_notes_are_terminal(current):
    assert get_allowed_transitions(current) == []
    for target in (PENDING, APPROVED, CANCELLED):
        with pytest.raises(ConsistencyError):
            validate_transition(current, target)


def test_unknown_target_is_rejected():
    with pytest.raises(ConsistencyError) as exc:
        validate_transition(PENDING, "SETTLED")
    assert exc.value.details["allowed"] == [APPROVED, CANCELLED]


def test_transition_values_record_reviewer():
    reviewer = uuid.uuid4()
    values = transition_values(PENDING, CANCELLED, user_id=reviewer, comments="Duplicate claim")

    assert values["status"] == CANCELLED
    assert values["approved_by"] == reviewer
    assert values["review_comments"] == "Duplicate claim"
    assert values["approved_at"] is not None


def test_approval_without_comments_leaves_comments_untouched():
    values = transition_values(PENDING, APPROVED, user_id=uuid.uuid4())
    assert values["status"] == APPROVED
    assert "review_comments" not in values
