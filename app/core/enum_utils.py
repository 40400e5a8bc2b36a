"""
Enum Utilities for VARCHAR-based Status Fields

STORAGE STANDARD:
━━━━━━━━━━━━━━━━━
• Database: VARCHAR - NOT PostgreSQL ENUM
• SQLAlchemy: String(n) with Mapped[str]
• Python: str-Enum for validation and comparisons
• Purchase order, payment and credit note values are stored in UPPERCASE
• Receiving statuses (line status, GRN header status) are stored lowercase,
  matching the vocabulary reported to callers

DATA FLOW:
━━━━━━━━━━
INPUT:
    Enum → .value → String → Database
    Example: CreditNoteStatus.PENDING → "PENDING" → VARCHAR

OUTPUT:
    Database → String → compare with is_status()
    Example: VARCHAR "APPROVED" → is_status(po.status, POApprovalStatus.APPROVED)
"""

from enum import Enum
from typing import Any, Set


def get_enum_value(value: Any) -> str:
    """
    Safely get string value from an enum or string.

    Args:
        value: Either an Enum instance or a string

    Returns:
        The string value

    Examples:
        >>> get_enum_value(CreditNoteStatus.PENDING)
        'PENDING'
        >>> get_enum_value("PENDING")
        'PENDING'
        >>> get_enum_value(None)
        None
    """
    if value is None:
        return None
    if isinstance(value, Enum):
        return value.value
    return str(value)


# =============================================================================
# COMPARISON HELPERS
# =============================================================================

def is_status(db_value: str, enum_value: Enum) -> bool:
    """
    Compare a database string with an enum value.

    Examples:
        >>> is_status(po.status, POApprovalStatus.APPROVED)
        True
    """
    if db_value is None:
        return False
    return db_value == enum_value.value


# =============================================================================
# CASE NORMALIZATION FOR PYDANTIC SCHEMAS
# =============================================================================

def normalize_to_uppercase(value: Any, valid_values: Set[str]) -> Any:
    """
    Normalize a string value to UPPERCASE if it's a valid enum value.

    Use this in Pydantic field_validators to accept case-insensitive input
    while ensuring UPPERCASE storage in the database.

    Examples:
        >>> normalize_to_uppercase('approve', {'APPROVE', 'REJECT'})
        'APPROVE'
        >>> normalize_to_uppercase('invalid', {'APPROVE', 'REJECT'})
        'invalid'  # Returns as-is for Pydantic to raise validation error
    """
    if value is None:
        return value
    if isinstance(value, str):
        upper_v = value.strip().upper()
        if upper_v in valid_values:
            return upper_v
    return value


# =============================================================================
# PRE-DEFINED VALID VALUE SETS
# =============================================================================

VALID_PAYMENT_MODES = {"BANK_TRANSFER", "UPI", "CHEQUE", "CASH", "OTHER"}

VALID_REVIEW_ACTIONS = {"APPROVE", "REJECT"}
