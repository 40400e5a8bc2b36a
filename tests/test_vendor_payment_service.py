import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import select

from app.core.exceptions import ConsistencyError, NotFoundError, ValidationError
from app.core.request_context import RequestContext
from app.models.payment import CreditNote, CreditNoteStatus, PaymentTransaction
from app.models.purchase import PaymentType, POPaymentStatus, PurchaseOrder
from app.schemas.payment import CreditNoteCreate, CreditNoteReview, PaymentCreate
from app.schemas.receiving import GRNCreate, GRNLineCreate
from app.services.grn_service import GRNService
from app.services.payment_reconciliation import as_utc
from app.services.vendor_payment_service import VendorPaymentService

T0 = datetime(2026, 5, 1, 9, 30, tzinfo=timezone.utc)
ACCOUNTS = RequestContext(user_id=uuid.uuid4(), role="ACCOUNTS")


def _pay(po_id, amount) -> PaymentCreate:
    return PaymentCreate(purchase_order_id=po_id, amount=Decimal(amount), utr_number="UTR123")


async def _stored_po(session_factory, po_id) -> PurchaseOrder:
    async with session_factory() as other:
        return await other.get(PurchaseOrder, po_id)


async def _credit_notes(session_factory, po_id):
    async with session_factory() as other:
        result = await other.execute(select(CreditNote).where(CreditNote.purchase_order_id == po_id))
        return list(result.scalars().all())


# ==================== Payments ====================

@pytest.mark.asyncio
async def test_credit_order_paid_in_full_is_cleared(session, session_factory, make_po):
    po = await make_po(total_amount="1000", payment_type=PaymentType.CREDIT, credit_period_days=30)
    po_id = po.id

    outcome = await VendorPaymentService(session).process_payment(_pay(po_id, "1000"), now=T0)

    assert outcome.payment_status == POPaymentStatus.CREDIT_CLEARED.value
    assert outcome.remaining == Decimal("0")
    assert (await _stored_po(session_factory, po_id)).payment_status == POPaymentStatus.CREDIT_CLEARED.value


@pytest.mark.asyncio
async def test_advance_overpayment_issues_one_credit_note(session, session_factory, make_po):
    po = await make_po(total_amount="1000", payment_type=PaymentType.ADVANCE)
    po_id = po.id
    service = VendorPaymentService(session)

    outcome = await service.process_payment(_pay(po_id, "1200"), context=ACCOUNTS)

    assert outcome.payment_status == POPaymentStatus.ADVANCE_PAID.value
    assert outcome.overpaid == Decimal("200")
    assert outcome.remaining == Decimal("0")
    assert outcome.credit_note is not None
    assert outcome.credit_note.payment_transaction_id == outcome.payment.id

    notes = await _credit_notes(session_factory, po_id)
    assert len(notes) == 1
    assert notes[0].amount == Decimal("200")
    assert notes[0].status == CreditNoteStatus.APPROVED.value
    assert notes[0].reason == "Excess advance payment"
    assert notes[0].approved_by == ACCOUNTS.user_id

    # Recomputing must not issue the same excess again
    again = await service.recalculate_payment_status(po_id)
    assert again.credit_note is None
    assert len(await _credit_notes(session_factory, po_id)) == 1


@pytest.mark.asyncio
async def test_further_advance_overpayment_credits_only_the_increment(session, session_factory, make_po):
    po = await make_po(total_amount="1000", payment_type=PaymentType.ADVANCE)
    po_id = po.id
    service = VendorPaymentService(session)

    await service.process_payment(_pay(po_id, "1200"))
    outcome = await service.process_payment(_pay(po_id, "100"))

    assert outcome.credit_note.amount == Decimal("100")
    notes = await _credit_notes(session_factory, po_id)
    assert sum(note.amount for note in notes) == Decimal("300")


@pytest.mark.asyncio
async def test_advance_partial_payment(session, make_po):
    po = await make_po(total_amount="1000", payment_type=PaymentType.ADVANCE)

    outcome = await VendorPaymentService(session).process_payment(_pay(po.id, "250"))

    assert outcome.payment_status == POPaymentStatus.PARTIALLY_PAID.value
    assert outcome.remaining == Decimal("750")
    assert outcome.credit_note is None


@pytest.mark.asyncio
async def test_credit_period_starts_once_and_goes_overdue(session, make_po):
    po = await make_po(total_amount="1000", payment_type=PaymentType.CREDIT, credit_period_days=30)
    po_id = po.id
    service = VendorPaymentService(session)

    first = await service.process_payment(_pay(po_id, "400"), now=T0)
    assert first.payment_status == POPaymentStatus.CREDIT_DUE.value
    assert as_utc(first.payment_due_date) == T0 + timedelta(days=30)

    second = await service.process_payment(_pay(po_id, "100"), now=T0 + timedelta(days=5))
    assert second.payment_status == POPaymentStatus.CREDIT_DUE.value
    assert as_utc(second.payment_due_date) == T0 + timedelta(days=30)

    late = await service.recalculate_payment_status(po_id, now=T0 + timedelta(days=31))
    assert late.payment_status == POPaymentStatus.OVERDUE.value
    assert late.remaining == Decimal("500")


@pytest.mark.asyncio
async def test_sell_or_return_reconciles(session, make_po):
    po = await make_po(total_amount="300", payment_type=PaymentType.SELL_OR_RETURN)
    po_id = po.id
    service = VendorPaymentService(session)

    assert (await service.process_payment(_pay(po_id, "100"))).payment_status == POPaymentStatus.PENDING_RECONCILIATION.value
    assert (await service.process_payment(_pay(po_id, "200"))).payment_status == POPaymentStatus.RECONCILED.value


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [None, Decimal("0"), Decimal("-10")])
async def test_non_positive_amount_is_rejected(session, session_factory, make_po, amount):
    po = await make_po()
    po_id = po.id

    with pytest.raises(ValidationError):
        await VendorPaymentService(session).process_payment(
            PaymentCreate(purchase_order_id=po_id, amount=amount)
        )

    async with session_factory() as other:
        result = await other.execute(select(PaymentTransaction))
        assert result.scalars().all() == []


@pytest.mark.asyncio
async def test_missing_order_reference_is_rejected(session):
    with pytest.raises(ValidationError):
        await VendorPaymentService(session).process_payment(PaymentCreate(amount=Decimal("10")))


@pytest.mark.asyncio
async def test_payment_for_unknown_order_is_not_found(session):
    with pytest.raises(NotFoundError):
        await VendorPaymentService(session).process_payment(_pay(uuid.uuid4(), "10"))


@pytest.mark.asyncio
async def test_payment_outside_callers_dc_is_not_found(session, make_po):
    po = await make_po(dc_id=uuid.uuid4())

    with pytest.raises(NotFoundError):
        await VendorPaymentService(session).process_payment(
            _pay(po.id, "10"), context=RequestContext(user_id=uuid.uuid4(), dc_id=uuid.uuid4())
        )


@pytest.mark.asyncio
async def test_payments_are_listed_newest_first(session, make_po):
    po = await make_po()
    po_id = po.id
    service = VendorPaymentService(session)
    await service.process_payment(_pay(po_id, "100"))
    await service.process_payment(_pay(po_id, "200"))

    payments = await service.get_payments(po_id)
    assert [p.amount for p in payments] == [Decimal("200"), Decimal("100")]


# ==================== Credit notes ====================

@pytest.mark.asyncio
async def test_pending_credit_note_does_not_reduce_remaining(session, session_factory, make_po):
    po = await make_po(total_amount="1000")
    po_id = po.id
    service = VendorPaymentService(session)
    await service.process_payment(_pay(po_id, "400"))

    note = await service.create_credit_note(
        CreditNoteCreate(purchase_order_id=po_id, amount=Decimal("100"), reason="Damaged cartons"),
        context=ACCOUNTS,
    )
    assert note.status == CreditNoteStatus.PENDING.value
    assert (await service.recalculate_payment_status(po_id)).remaining == Decimal("600")

    approved = await service.approve_credit_note(note.id, context=ACCOUNTS)
    assert approved.status == CreditNoteStatus.APPROVED.value
    assert approved.approved_by == ACCOUNTS.user_id
    assert (await service.recalculate_payment_status(po_id)).remaining == Decimal("500")


@pytest.mark.asyncio
async def test_approval_recomputes_payment_status(session, session_factory, make_po):
    po = await make_po(total_amount="1000")
    po_id = po.id
    service = VendorPaymentService(session)
    await service.process_payment(_pay(po_id, "900"))
    note = await service.create_credit_note(
        CreditNoteCreate(purchase_order_id=po_id, amount=Decimal("100"), reason="Short supply"),
        context=ACCOUNTS,
    )

    await service.approve_credit_note(note.id, context=ACCOUNTS)

    assert (await _stored_po(session_factory, po_id)).payment_status == POPaymentStatus.PAID.value


@pytest.mark.asyncio
async def test_second_approval_fails_and_counts_once(session, make_po):
    po = await make_po(total_amount="1000")
    po_id = po.id
    service = VendorPaymentService(session)
    note = await service.create_credit_note(
        CreditNoteCreate(purchase_order_id=po_id, amount=Decimal("100"), reason="Rate difference"),
        context=ACCOUNTS,
    )
    note_id = note.id
    await service.approve_credit_note(note_id, context=ACCOUNTS)

    with pytest.raises(ConsistencyError):
        await service.approve_credit_note(note_id, context=ACCOUNTS)

    outcome = await service.recalculate_payment_status(po_id)
    assert outcome.total_credit == Decimal("100")


@pytest.mark.asyncio
async def test_review_action_and_comment_validation(session, make_po):
    po = await make_po()
    service = VendorPaymentService(session)
    note = await service.create_credit_note(
        CreditNoteCreate(purchase_order_id=po.id, amount=Decimal("50"), reason="Late delivery penalty"),
        context=ACCOUNTS,
    )
    note_id = note.id

    with pytest.raises(ValidationError):
        await service.review_credit_note(note_id, CreditNoteReview(action="ESCALATE"), context=ACCOUNTS)
    with pytest.raises(ValidationError):
        await service.review_credit_note(note_id, CreditNoteReview(action="reject"), context=ACCOUNTS)

    rejected = await service.review_credit_note(
        note_id, CreditNoteReview(action="reject", comments="Penalty waived"), context=ACCOUNTS
    )
    assert rejected.status == CreditNoteStatus.CANCELLED.value
    assert rejected.review_comments == "Penalty waived"

    with pytest.raises(ConsistencyError):
        await service.approve_credit_note(note_id, context=ACCOUNTS)


@pytest.mark.asyncio
async def test_unknown_credit_note_is_not_found(session):
    with pytest.raises(NotFoundError):
        await VendorPaymentService(session).approve_credit_note(uuid.uuid4(), context=ACCOUNTS)


@pytest.mark.asyncio
async def test_credit_note_by_grn_resolves_order(session, make_po):
    po = await make_po(items={"SKU-A": 10})
    po_id, vendor_id = po.id, po.vendor_id
    grn = await GRNService(session).create_receipt_event(
        GRNCreate(purchase_order_id=po_id, lines=[GRNLineCreate(sku="SKU-A", received_qty=10, qc_pass_qty=8, rejected_qty=2, remarks="Seal broken")])
    )

    note = await VendorPaymentService(session).create_credit_note(
        CreditNoteCreate(grn_id=grn.id, amount=Decimal("20"), reason="2 units rejected at QC"),
        context=ACCOUNTS,
    )

    assert note.purchase_order_id == po_id
    assert note.vendor_id == vendor_id
    assert note.grn_id == grn.id


@pytest.mark.asyncio
async def test_credit_note_input_validation(session, make_po):
    po = await make_po()
    po_id = po.id
    service = VendorPaymentService(session)

    with pytest.raises(ValidationError):
        await service.create_credit_note(
            CreditNoteCreate(purchase_order_id=po_id, amount=Decimal("0"), reason="x"), context=ACCOUNTS
        )
    with pytest.raises(ValidationError):
        await service.create_credit_note(
            CreditNoteCreate(purchase_order_id=po_id, amount=Decimal("10")), context=ACCOUNTS
        )
    with pytest.raises(ValidationError):
        await service.create_credit_note(
            CreditNoteCreate(purchase_order_id=po_id, amount=Decimal("10"), reason="x")
        )
    with pytest.raises(ValidationError):
        await service.create_credit_note(
            CreditNoteCreate(amount=Decimal("10"), reason="No order, no vendor"), context=ACCOUNTS
        )
    with pytest.raises(NotFoundError):
        await service.create_credit_note(
            CreditNoteCreate(grn_id=uuid.uuid4(), amount=Decimal("10"), reason="x"), context=ACCOUNTS
        )


@pytest.mark.asyncio
async def test_vendor_only_credit_note(session):
    note = await VendorPaymentService(session).create_credit_note(
        CreditNoteCreate(vendor_id=uuid.uuid4(), amount=Decimal("75"), reason="Annual rebate"),
        context=ACCOUNTS,
    )
    assert note.purchase_order_id is None
    assert note.credit_note_number.startswith("CN-MANUAL-")
    assert note.status == CreditNoteStatus.PENDING.value


# ==================== Credit due info ====================

@pytest.mark.asyncio
async def test_credit_due_info(session, make_po):
    po = await make_po(total_amount="1000", payment_type=PaymentType.CREDIT, credit_period_days=30)
    po_id = po.id
    service = VendorPaymentService(session)
    await service.process_payment(_pay(po_id, "400"), now=T0)

    info = await service.get_credit_due_info(po_id, now=T0)
    assert info.remaining == Decimal("600")
    assert info.remaining_days == 30
    assert info.is_overdue is False

    late = await service.get_credit_due_info(po_id, now=T0 + timedelta(days=31))
    assert late.remaining_days == -1
    assert late.is_overdue is True


@pytest.mark.asyncio
async def test_credit_due_info_requires_credit_terms(session, make_po):
    po = await make_po(payment_type=PaymentType.ADVANCE)

    with pytest.raises(ValidationError):
        await VendorPaymentService(session).get_credit_due_info(po.id)
