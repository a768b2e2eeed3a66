from datetime import date
from decimal import Decimal
import uuid

import pytest

from dairy_billing.core.exceptions import BilledPeriodLockedError, NotFoundError, ValidationError
from dairy_billing.models.delivery import DeliveryStatus
from dairy_billing.schemas.delivery import BulkDeliveryCreate, DeliveryEntry
from dairy_billing.services.bill_generator import BillGenerator
from dairy_billing.services.delivery_ledger_service import DeliveryLedgerService

from conftest import TODAY, NOV_2024, make_customer, record, seed_per_liter_month


async def test_absent_day_forces_zero_quantity(db):
    customer = await make_customer(db)
    saved = await record(db, customer.id, date(2024, 11, 1), "3", present=False)
    assert saved.status == DeliveryStatus.ABSENT.value
    assert saved.quantity == Decimal("0")


async def test_record_defaults_unit_price_and_line_totals(db):
    customer = await make_customer(db, price_per_liter="55")
    saved = await record(db, customer.id, date(2024, 11, 1), "2", extras=[("eggs", "6", "7.5")])

    assert saved.unit_price == Decimal("55.00")
    assert saved.additional_products[0].total_amount == Decimal("45.00")
    assert saved.additional_total == Decimal("45.00")


async def test_recording_same_day_replaces_record(db):
    customer = await make_customer(db)
    day = date(2024, 11, 1)
    await record(db, customer.id, day, "2", extras=[("eggs", "6", "5")])
    await record(db, customer.id, day, "3", extras=[("ghee", "1", "250")])

    records = await DeliveryLedgerService(db).list_deliveries(customer.id, day, day)

    assert len(records) == 1
    assert records[0].quantity == Decimal("3")
    assert [line.product_type for line in records[0].additional_products] == ["ghee"]


async def test_list_deliveries_is_ordered_and_bounded(db):
    customer = await make_customer(db)
    for day in (3, 1, 2):
        await record(db, customer.id, date(2024, 11, day), "1")
    await record(db, customer.id, date(2024, 12, 1), "1")

    records = await DeliveryLedgerService(db).list_deliveries(
        customer.id, date(2024, 11, 1), date(2024, 11, 30)
    )

    assert [r.delivery_date.day for r in records] == [1, 2, 3]


async def test_list_deliveries_rejects_reversed_range(db):
    customer = await make_customer(db)
    with pytest.raises(ValidationError):
        await DeliveryLedgerService(db).list_deliveries(customer.id, date(2024, 11, 30), date(2024, 11, 1))


async def test_unknown_customer_is_rejected(db):
    with pytest.raises(NotFoundError):
        await record(db, uuid.uuid4(), date(2024, 11, 1), "1")


async def test_billed_period_is_locked(db):
    customer = await make_customer(db)
    await seed_per_liter_month(db, customer.id)
    await BillGenerator(db, today=TODAY).generate_for_customer(customer.id, *NOV_2024)
    ledger = DeliveryLedgerService(db)

    with pytest.raises(BilledPeriodLockedError):
        await record(db, customer.id, date(2024, 11, 20), "1")

    existing = (await ledger.list_deliveries(customer.id, date(2024, 11, 1), date(2024, 11, 1)))[0]
    with pytest.raises(BilledPeriodLockedError):
        await ledger.delete_delivery(existing.id)

    # The following month is still open
    await record(db, customer.id, date(2024, 12, 1), "1")


async def test_bulk_record_reports_errors_per_entry(db):
    first = await make_customer(db, name="First")
    second = await make_customer(db, name="Second")
    unknown = uuid.uuid4()

    saved, errors = await DeliveryLedgerService(db).record_bulk(BulkDeliveryCreate(
        delivery_date=date(2024, 11, 5),
        entries=[
            DeliveryEntry(customer_id=first.id, status=DeliveryStatus.PRESENT, quantity=Decimal("1")),
            DeliveryEntry(customer_id=unknown, status=DeliveryStatus.PRESENT, quantity=Decimal("1")),
            DeliveryEntry(customer_id=second.id, status=DeliveryStatus.ABSENT),
        ],
    ))

    assert [r.customer_id for r in saved] == [first.id, second.id]
    assert [e.customer_id for e in errors] == [unknown]


async def test_pending_customers_excludes_marked(db):
    marked = await make_customer(db, name="Marked")
    pending = await make_customer(db, name="Pending")
    await make_customer(db, name="No Plan", price_per_liter=None)
    await record(db, marked.id, date(2024, 11, 5), "1")

    result = await DeliveryLedgerService(db).pending_customers(date(2024, 11, 5))

    assert [c.id for c in result] == [pending.id]


async def test_delete_open_record(db):
    customer = await make_customer(db)
    saved = await record(db, customer.id, date(2024, 11, 5), "1")
    ledger = DeliveryLedgerService(db)

    await ledger.delete_delivery(saved.id)

    assert await ledger.get_delivery(saved.id) is None
    with pytest.raises(NotFoundError):
        await ledger.delete_delivery(saved.id)
