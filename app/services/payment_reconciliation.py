"""
Payment Reconciliation

Pure aggregation and status decision for vendor payments against a
purchase order. VendorPaymentService drives these inside a transaction
and applies the side effects the decision asks for.

    total_paid   = sum of SUCCESS payment amounts
    total_credit = sum of APPROVED credit note amounts, excess-advance excluded
    payable      = total_amount - total_credit
    remaining    = max(payable - total_paid, 0)
    overpaid     = max(total_paid - payable, 0)

Excess-advance credit notes are issued *because* of overpayment, so they
are tracked as issued_excess_credit and kept out of total_credit.
Counting them would grow overpaid by the note amount on every
recomputation and issue the same excess again. total_credit is therefore
the APPROVED sum minus issued_excess_credit, not the plain APPROVED sum.
"""
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Iterable, Optional

from app.core.enum_utils import get_enum_value
from app.models.payment import CreditNoteSource, CreditNoteStatus, PaymentTransactionStatus
from app.models.purchase import PaymentType, POPaymentStatus


ZERO = Decimal("0")


def _money(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class PaymentAggregates:
    total_amount: Decimal
    total_paid: Decimal
    total_credit: Decimal
    issued_excess_credit: Decimal = ZERO

    @property
    def payable(self) -> Decimal:
        return self.total_amount - self.total_credit

    @property
    def remaining(self) -> Decimal:
        return max(self.payable - self.total_paid, ZERO)

    @property
    def overpaid(self) -> Decimal:
        return max(self.total_paid - self.payable, ZERO)


@dataclass(frozen=True)
class PaymentDecision:
    """
    Outcome of one payment status recomputation.

    excess_credit_amount > 0 asks the caller to issue an approved
    excess-advance credit note; new_due_date asks it to start the credit
    period clock.
    """
    payment_status: POPaymentStatus
    excess_credit_amount: Decimal = ZERO
    new_due_date: Optional[datetime] = None
    is_overdue: bool = False


def aggregate_payments(total_amount, payments: Iterable[Any], credit_notes: Iterable[Any]) -> PaymentAggregates:
    """
    Sum the payment ledger of one purchase order.

    Args:
        total_amount: Order total from the PO baseline
        payments: Objects with ``amount`` and ``status``
        credit_notes: Objects with ``amount``, ``status`` and optionally ``source``

    Returns:
        PaymentAggregates
    """
    total_paid = ZERO
    for payment in payments:
        if get_enum_value(payment.status) == PaymentTransactionStatus.SUCCESS.value:
            total_paid += _money(payment.amount)

    total_credit = ZERO
    issued_excess = ZERO
    for note in credit_notes:
        status = get_enum_value(note.status)
        source = get_enum_value(getattr(note, "source", None)) or CreditNoteSource.MANUAL.value
        if source == CreditNoteSource.EXCESS_ADVANCE.value:
            if status != CreditNoteStatus.CANCELLED.value:
                issued_excess += _money(note.amount)
        elif status == CreditNoteStatus.APPROVED.value:
            total_credit += _money(note.amount)

    return PaymentAggregates(
        total_amount=_money(total_amount),
        total_paid=total_paid,
        total_credit=total_credit,
        issued_excess_credit=issued_excess,
    )


def decide_payment_status(
    payment_type,
    aggregates: PaymentAggregates,
    payment_due_date: Optional[datetime] = None,
    credit_period_days: Optional[int] = None,
    now: Optional[datetime] = None,
) -> PaymentDecision:
    """
    Decide the payment status of a purchase order from its aggregates.

    Rules are evaluated top-down per payment type; unknown types follow
    the one-time rules.
    """
    now = as_utc(now) or datetime.now(timezone.utc)
    payment_type = get_enum_value(payment_type)
    paid = aggregates.total_paid
    remaining = aggregates.remaining
    overpaid = aggregates.overpaid

    if payment_type == PaymentType.ADVANCE.value:
        if overpaid > 0:
            excess = max(overpaid - aggregates.issued_excess_credit, ZERO)
            return PaymentDecision(POPaymentStatus.ADVANCE_PAID, excess_credit_amount=excess)
        if remaining > 0 and paid > 0:
            return PaymentDecision(POPaymentStatus.PARTIALLY_PAID)
        if remaining <= 0:
            return PaymentDecision(POPaymentStatus.ADVANCE_PAID)
        return PaymentDecision(POPaymentStatus.UNPAID)

    if payment_type == PaymentType.CREDIT.value:
        due_date = as_utc(payment_due_date)
        new_due_date = None

        if remaining > 0 and paid > 0:
            status = POPaymentStatus.CREDIT_DUE
            if due_date is None and credit_period_days:
                new_due_date = now + timedelta(days=credit_period_days)
        elif remaining <= 0:
            status = POPaymentStatus.CREDIT_CLEARED
        else:
            status = POPaymentStatus.UNPAID

        effective_due = new_due_date or due_date
        overdue = effective_due is not None and remaining > 0 and effective_due < now
        if overdue:
            status = POPaymentStatus.OVERDUE
        return PaymentDecision(status, new_due_date=new_due_date, is_overdue=overdue)

    if payment_type == PaymentType.SELL_OR_RETURN.value:
        if remaining <= 0:
            return PaymentDecision(POPaymentStatus.RECONCILED)
        return PaymentDecision(POPaymentStatus.PENDING_RECONCILIATION)

    if remaining <= 0:
        return PaymentDecision(POPaymentStatus.PAID)
    if paid > 0:
        return PaymentDecision(POPaymentStatus.PARTIALLY_PAID)
    return PaymentDecision(POPaymentStatus.UNPAID)


def days_until(due_date: Optional[datetime], now: Optional[datetime] = None) -> Optional[int]:
    """Whole days left until the due date, rounded up. Negative once past due."""
    if due_date is None:
        return None
    now = as_utc(now) or datetime.now(timezone.utc)
    seconds = (as_utc(due_date) - now).total_seconds()
    return math.ceil(seconds / 86400)
