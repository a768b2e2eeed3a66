import asyncio
from datetime import date
from decimal import Decimal

from dairy_billing.jobs.overdue_sweep import run_overdue_sweep_job
from dairy_billing.jobs.reconciliation import run_reconciliation_job
from dairy_billing.jobs.scheduler import scheduler, start_scheduler, shutdown_scheduler, get_job_status
from dairy_billing.models.bill import BillStatus
from dairy_billing.services.balance import BalanceCounter
from dairy_billing.services.bill_generator import BillGenerator
from dairy_billing.services.bill_service import BillService
from dairy_billing.services.customer_service import CustomerService

from conftest import TODAY, NOV_2024, make_customer, seed_per_liter_month


async def test_overdue_sweep_job_reports_count(db):
    customer = await make_customer(db)
    await seed_per_liter_month(db, customer.id)
    bill = await BillGenerator(db, today=TODAY).generate_for_customer(customer.id, *NOV_2024)

    before_due = await run_overdue_sweep_job(db, today=date(2024, 12, 10))
    after_due = await run_overdue_sweep_job(db, today=date(2024, 12, 11))

    assert before_due["bills_marked_overdue"] == 0
    assert after_due["bills_marked_overdue"] == 1
    assert after_due["errors"] == []
    assert (await BillService(db).require_bill(bill.id)).status == BillStatus.OVERDUE.value


async def test_reconciliation_job_holds_inconsistent_customers(db):
    customer = await make_customer(db)
    await BalanceCounter(db).apply(customer.id, Decimal("1"))
    await db.commit()

    results = await run_reconciliation_job(db)

    assert results["customers_checked"] == 1
    assert results["customers_held"] == [str(customer.id)]
    assert (await CustomerService(db).get_customer(customer.id)).billing_hold is True


async def test_scheduler_registers_billing_jobs():
    start_scheduler()
    try:
        job_ids = {job["id"] for job in get_job_status()}
        assert job_ids == {"overdue_bill_sweep", "balance_reconciliation"}
    finally:
        shutdown_scheduler()
    # AsyncIOScheduler finishes shutting down on the next loop iteration
    await asyncio.sleep(0)
    assert not scheduler.running
