"""
Credit Note State Machine

This module is the SINGLE SOURCE OF TRUTH for credit note status transitions.
All status changes must go through this module.

    PENDING ──approve──> APPROVED
       │
       └──reject───> CANCELLED

A credit note is reviewed exactly once. Re-approving an APPROVED note
raises ConsistencyError.
"""

from typing import List, Dict
from datetime import datetime, timezone

from app.core.exceptions import ConsistencyError
from app.models.payment import CreditNoteStatus


# =============================================================================
# TRANSITION RULES
# =============================================================================

# Format: current_status -> [list of allowed next statuses]
CREDIT_NOTE_TRANSITIONS: Dict[str, List[str]] = {
    CreditNoteStatus.PENDING.value: [
        CreditNoteStatus.APPROVED.value,    # Approve
        CreditNoteStatus.CANCELLED.value,   # Reject with comment
    ],
    CreditNoteStatus.APPROVED.value: [],    # Terminal state
    CreditNoteStatus.CANCELLED.value: [],   # Terminal state
}


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def can_transition(current_status: str, new_status: str) -> bool:
    """Check if a transition is allowed."""
    return new_status in CREDIT_NOTE_TRANSITIONS.get(current_status, [])


def get_allowed_transitions(current_status: str) -> List[str]:
    return CREDIT_NOTE_TRANSITIONS.get(current_status, [])


def validate_transition(current_status: str, new_status: str) -> None:
    """
    Validate a status transition. Raises ConsistencyError if invalid.
    """
    if can_transition(current_status, new_status):
        return

    if current_status != CreditNoteStatus.PENDING.value and new_status in (
        CreditNoteStatus.APPROVED.value, CreditNoteStatus.CANCELLED.value
    ):
        raise ConsistencyError(
            f"Credit Note is already {current_status}",
            details={"current_status": current_status, "requested_status": new_status}
        )

    raise ConsistencyError(
        f"Cannot change credit note from '{current_status}' to '{new_status}'",
        details={
            "current_status": current_status,
            "requested_status": new_status,
            "allowed": get_allowed_transitions(current_status),
        }
    )


# =============================================================================
# TRANSITION EXECUTOR
# =============================================================================

def transition_values(current_status: str, new_status: str, user_id=None, comments: str = None) -> Dict:
    """
    Validate a transition and build the column values it writes.

    The caller applies them with an UPDATE guarded on current_status, so
    a concurrent reviewer that got there first makes the update match
    zero rows instead of overwriting the review.

    Args:
        current_status: Status as last read
        new_status: Target status
        user_id: Reviewer id
        comments: Review comments

    Returns:
        Dict of column values for the UPDATE

    Raises:
        ConsistencyError: If transition is not allowed
    """
    validate_transition(current_status, new_status)

    values = {
        "status": new_status,
        "approved_by": user_id,
        "approved_at": datetime.now(timezone.utc),
    }
    if comments:
        values["review_comments"] = comments
    return values
