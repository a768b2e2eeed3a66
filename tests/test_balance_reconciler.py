from datetime import date
from decimal import Decimal
import uuid

import pytest
from sqlalchemy import update

from dairy_billing.core.exceptions import IntegrityFault, NotFoundError
from dairy_billing.models.delivery import DeliveryRecord
from dairy_billing.schemas.billing import StatementEntryType
from dairy_billing.services.balance import BalanceCounter
from dairy_billing.services.balance_reconciler import BalanceReconciler
from dairy_billing.services.bill_generator import BillGenerator
from dairy_billing.services.customer_service import CustomerService
from dairy_billing.services.payment_processor import PaymentProcessor

from conftest import TODAY, NOV_2024, make_customer, record, seed_per_liter_month


async def _bill_and_pay(db, customer, amount):
    bill = await BillGenerator(db, today=TODAY).generate_for_customer(customer.id, *NOV_2024)
    if amount:
        await PaymentProcessor(db, today=TODAY).record_payment(bill.id, Decimal(amount))
    return bill


async def test_balance_matches_ledger_after_bills_and_payments(db):
    customer = await make_customer(db)
    await seed_per_liter_month(db, customer.id)
    await record(db, customer.id, date(2024, 10, 15), "2")
    await BillGenerator(db, today=TODAY).generate_for_customer(customer.id, 2024, 10)
    await _bill_and_pay(db, customer, "500")

    result = await BalanceReconciler(db).reconcile(customer.id)

    assert result.bills_total == Decimal("710.00")
    assert result.payments_total == Decimal("500.00")
    assert result.computed_balance == Decimal("210.00")
    assert result.stored_balance == Decimal("210.00")
    assert result.discrepancy == Decimal("0.00")
    assert result.is_consistent


async def test_customer_without_history_is_consistent(db):
    customer = await make_customer(db)
    result = await BalanceReconciler(db).reconcile(customer.id)
    assert result.computed_balance == Decimal("0.00")
    assert result.is_consistent


async def test_reconcile_unknown_customer(db):
    with pytest.raises(NotFoundError):
        await BalanceReconciler(db).reconcile(uuid.uuid4())


async def test_discrepancy_raises_fault_and_places_hold(db):
    customer = await make_customer(db)
    await seed_per_liter_month(db, customer.id)
    await _bill_and_pay(db, customer, None)
    # Out-of-band write that bypasses the ledger
    await BalanceCounter(db).apply(customer.id, Decimal("-40"))
    await db.commit()

    reconciler = BalanceReconciler(db)
    with pytest.raises(IntegrityFault) as exc_info:
        await reconciler.verify(customer.id)

    assert exc_info.value.discrepancy == Decimal("-40.00")
    held = await CustomerService(db).get_customer(customer.id)
    assert held.billing_hold is True
    assert "differs from ledger balance" in held.billing_hold_reason
    # Never auto-corrected
    assert await BalanceCounter(db).current(customer.id) == Decimal("550.00")


async def test_held_customer_is_skipped_by_generation(db):
    customer = await make_customer(db)
    await seed_per_liter_month(db, customer.id)
    await BalanceCounter(db).apply(customer.id, Decimal("5"))
    await db.commit()
    with pytest.raises(IntegrityFault):
        await BalanceReconciler(db).verify(customer.id)

    result = await BillGenerator(db, today=TODAY).generate(*NOV_2024, customer_ids=[customer.id])

    assert result.bills_generated == 0
    assert result.errors == 1
    assert "billing hold" in result.details[0].error


async def test_release_hold_only_when_consistent(db):
    customer = await make_customer(db)
    await seed_per_liter_month(db, customer.id)
    await _bill_and_pay(db, customer, None)
    counter = BalanceCounter(db)
    await counter.apply(customer.id, Decimal("15"))
    await db.commit()
    reconciler = BalanceReconciler(db)
    with pytest.raises(IntegrityFault):
        await reconciler.verify(customer.id)

    with pytest.raises(IntegrityFault):
        await reconciler.release_hold(customer.id)

    # Operator corrects the stored balance, then releases
    await counter.apply(customer.id, Decimal("-15"))
    await db.commit()
    result = await reconciler.release_hold(customer.id)

    assert result.is_consistent
    assert result.billing_hold is False
    assert (await CustomerService(db).get_customer(customer.id)).billing_hold is False


async def test_reconcile_all_reports_and_holds_inconsistent(db):
    clean = await make_customer(db, name="Clean")
    broken = await make_customer(db, name="Broken")
    await BalanceCounter(db).apply(broken.id, Decimal("99"))
    await db.commit()

    report = await BalanceReconciler(db).reconcile_all(place_holds=True)

    assert report.checked == 2
    assert [r.customer_id for r in report.inconsistent] == [broken.id]
    assert report.inconsistent[0].billing_hold is True
    assert (await CustomerService(db).get_customer(clean.id)).billing_hold is False


# ==================== DAY BREAKDOWN ====================

async def test_breakdown_lists_every_day_of_period(db):
    customer = await make_customer(db)
    await seed_per_liter_month(db, customer.id)
    bill = await _bill_and_pay(db, customer, None)

    breakdown = await BalanceReconciler(db).period_breakdown(bill.id)

    assert len(breakdown.days) == 30
    first, second, third, fourth = breakdown.days[:4]
    assert (first.status, first.quantity, first.milk_amount) == ("present", Decimal("5"), Decimal("300.00"))
    assert first.additional_amount == Decimal("50.00")
    assert first.additional_products[0].product_type == "eggs"
    assert second.status == "absent"
    assert third.milk_amount == Decimal("240.00")
    assert fourth.status == "no_record"

    summary = breakdown.summary
    assert summary.present_days == 2
    assert summary.absent_days == 1
    assert summary.no_record_days == 27
    assert summary.computed_total == Decimal("590.00")
    assert summary.has_mismatch is False


async def test_breakdown_reports_mismatch_without_correcting(db):
    customer = await make_customer(db)
    await seed_per_liter_month(db, customer.id)
    bill = await _bill_and_pay(db, customer, None)
    await db.execute(
        update(DeliveryRecord)
        .where(DeliveryRecord.customer_id == customer.id, DeliveryRecord.delivery_date == date(2024, 11, 1))
        .values(quantity=Decimal("6"))
    )
    await db.commit()

    breakdown = await BalanceReconciler(db).period_breakdown(bill.id)

    assert breakdown.summary.has_mismatch is True
    assert breakdown.summary.liters_mismatch == Decimal("1")
    assert breakdown.summary.amount_mismatch == Decimal("60.00")
    assert breakdown.summary.bill_total_amount == Decimal("590.00")


async def test_subscription_breakdown_uses_flat_fee(db):
    customer = await make_customer(db, subscription_amount="1800")
    await record(db, customer.id, date(2024, 11, 2), "1", extras=[("paneer", "1", "120")])
    bill = await _bill_and_pay(db, customer, None)

    breakdown = await BalanceReconciler(db).period_breakdown(bill.id)

    assert breakdown.days[1].milk_amount == Decimal("0.00")
    assert breakdown.summary.recorded_milk_amount == Decimal("1800.00")
    assert breakdown.summary.computed_total == Decimal("1920.00")
    assert breakdown.summary.has_mismatch is False


# ==================== STATEMENT & DOCUMENT ====================

async def test_statement_running_balance_ends_at_computed_balance(db):
    customer = await make_customer(db)
    await seed_per_liter_month(db, customer.id)
    bill = await _bill_and_pay(db, customer, None)
    processor = PaymentProcessor(db, today=TODAY)
    await processor.record_payment(bill.id, Decimal("200"), payment_date=date(2099, 1, 1))
    await processor.record_payment(bill.id, Decimal("400"), payment_date=date(2099, 1, 2))

    statement = await BalanceReconciler(db).customer_statement(customer.id)

    assert [e.entry_type for e in statement.entries] == [
        StatementEntryType.BILL, StatementEntryType.PAYMENT, StatementEntryType.PAYMENT
    ]
    assert [e.running_balance for e in statement.entries] == [
        Decimal("590.00"), Decimal("390.00"), Decimal("-10.00")
    ]
    assert statement.closing_balance == Decimal("-10.00")
    assert statement.stored_balance == Decimal("-10.00")


async def test_bill_document_includes_contact_and_breakdown(db):
    customer = await make_customer(db, name="Meera Iyer")
    await seed_per_liter_month(db, customer.id)
    bill = await _bill_and_pay(db, customer, "100")

    document = await BalanceReconciler(db).bill_document(bill.id)

    assert document.customer.name == "Meera Iyer"
    assert document.bill.invoice_number == bill.invoice_number
    assert document.bill.amount_paid == Decimal("100.00")
    assert document.breakdown.summary.computed_total == Decimal("590.00")
