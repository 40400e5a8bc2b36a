"""Vendor Payment Service for purchase order payment reconciliation.

Handles:
- Recording vendor payments against a purchase order
- Recomputing the PO payment status from the full payment ledger
- Auto-issuing credit notes for excess advance payments
- Manual credit notes and their one-time review (approve / reject)
- Credit period due dates and overdue detection

Every write runs in one transaction with the PO row locked, so concurrent
payments on the same PO are serialized and see each other's rows.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, List

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.enum_utils import get_enum_value, is_status, normalize_to_uppercase, VALID_REVIEW_ACTIONS
from app.core.exceptions import ReconciliationError, ValidationError, NotFoundError, ConsistencyError
from app.core.request_context import RequestContext
from app.models.payment import (
    PaymentTransaction,
    PaymentTransactionStatus,
    CreditNote,
    CreditNoteStatus,
    CreditNoteSource,
)
from app.models.purchase import PurchaseOrder, PaymentType
from app.models.receiving import GoodsReceiptNote
from app.schemas.payment import PaymentCreate, CreditNoteCreate, CreditNoteReview
from app.services.baseline_provider import BaselineProvider
from app.services.credit_note_state_machine import transition_values
from app.services.payment_reconciliation import (
    aggregate_payments,
    decide_payment_status,
    days_until,
    as_utc,
)

logger = logging.getLogger(__name__)


@dataclass
class PaymentOutcome:
    """Result of a payment status recomputation."""
    purchase_order_id: uuid.UUID
    payment_status: str
    total_amount: Decimal
    total_paid: Decimal
    total_credit: Decimal
    remaining: Decimal
    overpaid: Decimal
    payment_due_date: Optional[datetime] = None
    payment: Optional[PaymentTransaction] = None
    credit_note: Optional[CreditNote] = None


@dataclass
class CreditDueInfo:
    purchase_order_id: uuid.UUID
    payment_status: str
    total_amount: Decimal
    total_paid: Decimal
    total_credit: Decimal
    remaining: Decimal
    credit_period_days: Optional[int]
    payment_due_date: Optional[datetime]
    remaining_days: Optional[int]
    is_overdue: bool


class VendorPaymentService:
    """Service for vendor payments and credit notes against purchase orders."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.baseline = BaselineProvider(db)

    # ==================== LEDGER ====================

    async def _load_ledger(self, po_id: uuid.UUID):
        payments = await self.db.execute(
            select(PaymentTransaction).where(PaymentTransaction.purchase_order_id == po_id)
        )
        credit_notes = await self.db.execute(
            select(CreditNote).where(CreditNote.purchase_order_id == po_id)
        )
        return list(payments.scalars().all()), list(credit_notes.scalars().all())

    @staticmethod
    def _credit_note_number(reference: str) -> str:
        return f"{settings.CREDIT_NOTE_NUMBER_PREFIX}-{reference}-{uuid.uuid4().hex[:8].upper()}"

    async def _recalculate(
        self,
        po: PurchaseOrder,
        payment: PaymentTransaction = None,
        context: RequestContext = None,
        now: datetime = None,
    ) -> PaymentOutcome:
        """
        Recompute and write the payment status of a locked PO.

        Applies the side effects the decision asks for: an approved excess
        credit note and the credit due date. Caller commits.
        """
        now = as_utc(now) or datetime.now(timezone.utc)
        payments, credit_notes = await self._load_ledger(po.id)
        aggregates = aggregate_payments(po.total_amount, payments, credit_notes)
        decision = decide_payment_status(
            po.payment_type,
            aggregates,
            payment_due_date=po.payment_due_date,
            credit_period_days=po.credit_period_days,
            now=now,
        )

        credit_note = None
        if decision.excess_credit_amount > 0:
            user_id = context.user_id if context else None
            credit_note = CreditNote(
                credit_note_number=self._credit_note_number(po.po_number),
                purchase_order_id=po.id,
                payment_transaction_id=payment.id if payment else None,
                vendor_id=po.vendor_id,
                amount=decision.excess_credit_amount,
                reason=settings.EXCESS_ADVANCE_REASON,
                source=CreditNoteSource.EXCESS_ADVANCE.value,
                status=CreditNoteStatus.APPROVED.value,
                created_by=user_id,
                approved_by=user_id,
                approved_at=now,
            )
            self.db.add(credit_note)
            logger.info(
                f"Excess advance credit note {credit_note.credit_note_number} "
                f"for {decision.excess_credit_amount} issued on PO {po.po_number}"
            )

        if decision.new_due_date is not None:
            po.payment_due_date = decision.new_due_date

        po.payment_status = decision.payment_status.value
        await self.db.flush()

        return PaymentOutcome(
            purchase_order_id=po.id,
            payment_status=po.payment_status,
            total_amount=aggregates.total_amount,
            total_paid=aggregates.total_paid,
            total_credit=aggregates.total_credit,
            remaining=aggregates.remaining,
            overpaid=aggregates.overpaid,
            payment_due_date=po.payment_due_date,
            payment=payment,
            credit_note=credit_note,
        )

    # ==================== PAYMENTS ====================

    async def process_payment(
        self,
        data: PaymentCreate,
        context: RequestContext = None,
        now: datetime = None,
    ) -> PaymentOutcome:
        """
        Record a vendor payment and recompute the PO payment status.

        Args:
            data: Payment payload
            context: Caller context (creator and DC scoping)
            now: Clock override for due date calculations

        Returns:
            PaymentOutcome with the new totals and status

        Raises:
            ValidationError: Missing PO reference or non-positive amount
            NotFoundError: PO absent or outside the caller's DC
        """
        if not data.purchase_order_id:
            raise ValidationError("Purchase order id is required")
        if data.amount is None or data.amount <= 0:
            raise ValidationError(
                "Payment amount must be greater than zero",
                details={"amount": str(data.amount)}
            )

        try:
            po = await self.baseline.get_purchase_order(
                data.purchase_order_id, context=context, for_update=True
            )

            payment = PaymentTransaction(
                purchase_order_id=po.id,
                vendor_id=po.vendor_id,
                amount=data.amount,
                payment_mode=get_enum_value(data.payment_mode),
                status=PaymentTransactionStatus.SUCCESS.value,
                utr_number=data.utr_number,
                receipt_url=data.receipt_url,
                remarks=data.remarks,
                created_by=context.user_id if context else None,
            )
            self.db.add(payment)
            await self.db.flush()

            outcome = await self._recalculate(po, payment=payment, context=context, now=now)
            await self.db.commit()

        except ReconciliationError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Database error processing payment for PO {data.purchase_order_id}: {e}")
            raise ReconciliationError("Payment processing failed") from e

        logger.info(
            f"Payment of {data.amount} recorded for PO {po.po_number}: "
            f"status={outcome.payment_status}, remaining={outcome.remaining}"
        )
        return outcome

    async def recalculate_payment_status(
        self,
        po_id: uuid.UUID,
        context: RequestContext = None,
        now: datetime = None,
    ) -> PaymentOutcome:
        """Recompute the payment status of a PO without recording a payment."""
        try:
            po = await self.baseline.get_purchase_order(po_id, context=context, for_update=True)
            outcome = await self._recalculate(po, context=context, now=now)
            await self.db.commit()
        except ReconciliationError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Database error recalculating payment status for PO {po_id}: {e}")
            raise ReconciliationError("Payment status recalculation failed") from e
        return outcome

    async def get_payments(self, po_id: uuid.UUID, context: RequestContext = None) -> List[PaymentTransaction]:
        """Payments of a PO, newest first."""
        await self.baseline.get_purchase_order(po_id, context=context)
        result = await self.db.execute(
            select(PaymentTransaction)
            .where(PaymentTransaction.purchase_order_id == po_id)
            .order_by(PaymentTransaction.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_credit_due_info(
        self,
        po_id: uuid.UUID,
        context: RequestContext = None,
        now: datetime = None,
    ) -> CreditDueInfo:
        """
        Credit period position of a CREDIT purchase order.

        Raises:
            ValidationError: If the PO is not on credit terms
        """
        now = as_utc(now) or datetime.now(timezone.utc)
        po = await self.baseline.get_purchase_order(po_id, context=context)
        if not is_status(po.payment_type, PaymentType.CREDIT):
            raise ValidationError(
                f"Purchase order {po.po_number} is not a credit-type purchase order",
                details={"payment_type": po.payment_type}
            )

        payments, credit_notes = await self._load_ledger(po.id)
        aggregates = aggregate_payments(po.total_amount, payments, credit_notes)
        due_date = as_utc(po.payment_due_date)

        return CreditDueInfo(
            purchase_order_id=po.id,
            payment_status=po.payment_status,
            total_amount=aggregates.total_amount,
            total_paid=aggregates.total_paid,
            total_credit=aggregates.total_credit,
            remaining=aggregates.remaining,
            credit_period_days=po.credit_period_days,
            payment_due_date=due_date,
            remaining_days=days_until(due_date, now),
            is_overdue=due_date is not None and aggregates.remaining > 0 and due_date < now,
        )

    # ==================== CREDIT NOTES ====================

    async def create_credit_note(self, data: CreditNoteCreate, context: RequestContext = None) -> CreditNote:
        """
        Create a manual credit note. It stays PENDING until reviewed.

        The purchase order may be given directly or derived from the GRN.
        """
        if data.amount is None or data.amount <= 0:
            raise ValidationError("Credit amount must be greater than zero")
        if not data.reason:
            raise ValidationError("Reason is required for a credit note")
        if context is None or context.user_id is None:
            raise ValidationError("Creator is required for a credit note")

        try:
            po_id = data.purchase_order_id
            grn_id = data.grn_id

            if grn_id is not None:
                grn = await self.db.get(GoodsReceiptNote, grn_id)
                if grn is None:
                    raise NotFoundError(f"GRN {grn_id} not found", details={"grn_id": str(grn_id)})
                if po_id is not None and po_id != grn.purchase_order_id:
                    raise ValidationError(
                        "GRN does not belong to the given purchase order",
                        details={"grn_id": str(grn_id), "purchase_order_id": str(po_id)}
                    )
                po_id = grn.purchase_order_id

            po = None
            vendor_id = data.vendor_id
            if po_id is not None:
                po = await self.baseline.get_purchase_order(po_id, context=context)
                if vendor_id is not None and vendor_id != po.vendor_id:
                    raise ValidationError(
                        "Vendor does not match the purchase order",
                        details={"vendor_id": str(vendor_id)}
                    )
                vendor_id = po.vendor_id
            if vendor_id is None:
                raise ValidationError("Vendor is required for a credit note")

            credit_note = CreditNote(
                credit_note_number=self._credit_note_number(po.po_number if po else "MANUAL"),
                purchase_order_id=po.id if po else None,
                grn_id=grn_id,
                vendor_id=vendor_id,
                amount=data.amount,
                reason=data.reason,
                source=CreditNoteSource.MANUAL.value,
                status=CreditNoteStatus.PENDING.value,
                created_by=context.user_id,
            )
            self.db.add(credit_note)
            await self.db.flush()
            await self.db.commit()

        except ReconciliationError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Database error creating credit note: {e}")
            raise ReconciliationError("Credit note creation failed") from e

        logger.info(f"Credit note {credit_note.credit_note_number} created for {data.amount}, pending approval")
        return credit_note

    async def review_credit_note(
        self,
        credit_note_id: uuid.UUID,
        data: CreditNoteReview,
        context: RequestContext = None,
        now: datetime = None,
    ) -> CreditNote:
        """
        Approve or reject a PENDING credit note.

        Approval recomputes the PO payment status in the same transaction.

        Raises:
            ValidationError: Unknown action, or reject without comments
            NotFoundError: Credit note absent or outside the caller's DC
            ConsistencyError: Credit note already reviewed
        """
        action = normalize_to_uppercase(data.action, VALID_REVIEW_ACTIONS)
        if action not in VALID_REVIEW_ACTIONS:
            raise ValidationError(
                f"Invalid review action: {data.action}",
                details={"allowed": sorted(VALID_REVIEW_ACTIONS)}
            )
        if action == "REJECT" and not data.comments:
            raise ValidationError("Comments are required to reject a credit note")

        new_status = CreditNoteStatus.APPROVED.value if action == "APPROVE" else CreditNoteStatus.CANCELLED.value
        user_id = context.user_id if context else None

        try:
            result = await self.db.execute(
                select(CreditNote)
                .where(CreditNote.id == credit_note_id)
                .execution_options(populate_existing=True)
            )
            credit_note = result.scalar_one_or_none()
            if credit_note is None:
                raise NotFoundError(
                    f"Credit note {credit_note_id} not found",
                    details={"credit_note_id": str(credit_note_id)}
                )

            po = None
            if credit_note.purchase_order_id is not None:
                po = await self.baseline.get_purchase_order(
                    credit_note.purchase_order_id, context=context, for_update=True
                )

            current_status = credit_note.status
            values = transition_values(current_status, new_status, user_id=user_id, comments=data.comments)

            # Guarded on the status we validated against
            updated = await self.db.execute(
                update(CreditNote)
                .where(CreditNote.id == credit_note_id, CreditNote.status == current_status)
                .values(**values)
            )
            if updated.rowcount != 1:
                raise ConsistencyError(
                    "Credit Note was reviewed by another user",
                    details={"credit_note_id": str(credit_note_id)}
                )
            await self.db.refresh(credit_note)

            if new_status == CreditNoteStatus.APPROVED.value and po is not None:
                await self._recalculate(po, context=context, now=now)

            await self.db.commit()

        except ReconciliationError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Database error reviewing credit note {credit_note_id}: {e}")
            raise ReconciliationError("Credit note review failed") from e

        logger.info(f"Credit note {credit_note.credit_note_number} {credit_note.status} by {user_id}")
        return credit_note

    async def approve_credit_note(
        self,
        credit_note_id: uuid.UUID,
        context: RequestContext = None,
        now: datetime = None,
    ) -> CreditNote:
        return await self.review_credit_note(
            credit_note_id, CreditNoteReview(action="APPROVE"), context=context, now=now
        )
