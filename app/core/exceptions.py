"""
Reconciliation error types.

Every service in this package raises one of these. Callers (an HTTP layer,
a job runner) map them to their own surface:

    ValidationError  -> bad input, nothing was written
    NotFoundError    -> referenced entity is absent or not visible
    ConsistencyError -> state conflict (duplicate receipt, double approval)

Any other failure inside a write is rolled back and surfaced as a plain
ReconciliationError with a generic message.
"""
from typing import Dict


class ReconciliationError(Exception):
    """Base exception for receiving and payment reconciliation errors."""
    def __init__(self, message: str, details: Dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(ReconciliationError):
    """Raised when input is missing or out of range."""
    pass


class NotFoundError(ReconciliationError):
    """Raised when a referenced purchase order, GRN or credit note is absent."""
    pass


class ConsistencyError(ReconciliationError):
    """Raised when an operation conflicts with the current persisted state."""
    pass
