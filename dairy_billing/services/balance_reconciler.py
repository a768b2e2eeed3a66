"""
Balance Reconciler.

Recomputes each customer's balance from the append-only bill/payment ledger
and compares it with the stored balance_due:

    computed_balance = sum(bill.total_amount) - sum(payment.amount)
    discrepancy      = stored_balance - computed_balance

A non-zero discrepancy is a data-integrity fault. It is reported and the
customer is put on billing hold; it is never corrected automatically.

Also provides the read-only day-level view of a bill's period and the
customer statement used for billing transparency.
"""
import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import List

from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from dairy_billing.models.bill import Bill, BillPayment
from dairy_billing.models.customer import Customer, BillingType
from dairy_billing.schemas.bill import BillResponse
from dairy_billing.schemas.billing import (
    ReconciliationResult, ReconciliationReport, DayBreakdown, AdditionalProductSummary,
    PeriodBreakdown, PeriodBreakdownSummary, StatementEntry, StatementEntryType,
    CustomerStatement, CustomerContact, BillDocument,
)
from dairy_billing.services.bill_service import BillService
from dairy_billing.services.delivery_ledger_service import DeliveryLedgerService
from dairy_billing.core.exceptions import IntegrityFault, NotFoundError
from dairy_billing.core.periods import BillingPeriod, to_money

logger = logging.getLogger(__name__)

NO_RECORD = "no_record"


class BalanceReconciler:
    """Ledger-vs-balance verification and billing transparency views."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.bills = BillService(db)

    async def _require_customer(self, customer_id: uuid.UUID) -> Customer:
        customer = await self.db.get(Customer, customer_id, populate_existing=True)
        if customer is None:
            raise NotFoundError(f"Customer {customer_id} not found")
        return customer

    # =========================================================================
    # BALANCE RECONCILIATION
    # =========================================================================

    async def reconcile(self, customer_id: uuid.UUID) -> ReconciliationResult:
        """Compare the stored balance with the one derived from the ledger."""
        customer = await self._require_customer(customer_id)

        bills_total = to_money(await self.db.scalar(
            select(func.coalesce(func.sum(Bill.total_amount), 0))
            .where(Bill.customer_id == customer_id)
        ))
        payments_total = to_money(await self.db.scalar(
            select(func.coalesce(func.sum(BillPayment.amount), 0))
            .where(BillPayment.customer_id == customer_id)
        ))
        computed = bills_total - payments_total
        stored = to_money(customer.balance_due)
        discrepancy = stored - computed

        return ReconciliationResult(
            customer_id=customer.id,
            customer_name=customer.name,
            bills_total=bills_total,
            payments_total=payments_total,
            computed_balance=computed,
            stored_balance=stored,
            discrepancy=discrepancy,
            is_consistent=discrepancy == 0,
            billing_hold=customer.billing_hold,
        )

    async def _place_hold(self, result: ReconciliationResult) -> None:
        reason = (
            f"Stored balance {result.stored_balance} differs from ledger balance "
            f"{result.computed_balance} by {result.discrepancy}"
        )
        await self.db.execute(
            update(Customer)
            .where(Customer.id == result.customer_id)
            .values(billing_hold=True, billing_hold_reason=reason)
            .execution_options(synchronize_session=False)
        )
        logger.error("Integrity fault for customer %s: %s", result.customer_id, reason)

    async def verify(self, customer_id: uuid.UUID) -> ReconciliationResult:
        """
        Reconcile and raise IntegrityFault on any discrepancy.

        The customer is put on billing hold before the fault is raised, so
        bill generation and payment recording stop until an operator
        resolves the ledger and calls release_hold().
        """
        result = await self.reconcile(customer_id)
        if not result.is_consistent:
            await self._place_hold(result)
            await self.db.commit()
            raise IntegrityFault(customer_id, result.discrepancy)
        return result

    async def release_hold(self, customer_id: uuid.UUID) -> ReconciliationResult:
        """Clear a billing hold once the balance agrees with the ledger again."""
        result = await self.reconcile(customer_id)
        if not result.is_consistent:
            raise IntegrityFault(customer_id, result.discrepancy)

        await self.db.execute(
            update(Customer)
            .where(Customer.id == customer_id)
            .values(billing_hold=False, billing_hold_reason=None)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        logger.info("Billing hold released for customer %s", customer_id)
        return result.model_copy(update={"billing_hold": False})

    async def reconcile_all(self, place_holds: bool = True) -> ReconciliationReport:
        """Reconcile every customer; report (and optionally hold) the inconsistent ones."""
        customer_ids = list((await self.db.execute(
            select(Customer.id).order_by(Customer.name)
        )).scalars().all())

        inconsistent: List[ReconciliationResult] = []
        for customer_id in customer_ids:
            result = await self.reconcile(customer_id)
            if not result.is_consistent:
                if place_holds:
                    await self._place_hold(result)
                    result = result.model_copy(update={"billing_hold": True})
                inconsistent.append(result)

        if place_holds and inconsistent:
            await self.db.commit()

        logger.info(
            "Reconciled %d customers, %d inconsistent",
            len(customer_ids), len(inconsistent)
        )
        return ReconciliationReport(
            checked=len(customer_ids),
            inconsistent=inconsistent,
            generated_at=datetime.now(timezone.utc),
        )

    # =========================================================================
    # DAY-LEVEL VIEW
    # =========================================================================

    async def period_breakdown(self, bill_id: uuid.UUID) -> PeriodBreakdown:
        """
        Pair every day of the bill's period with its delivery record.

        The independently computed total is compared with the bill's stored
        totals; any difference is reported in the summary and left alone.
        """
        bill = await self.bills.require_bill(bill_id)
        period = BillingPeriod.parse(bill.billing_period)
        per_liter = bill.billing_type == BillingType.PER_LITER.value
        price = Decimal(bill.price_per_liter or 0)

        records = await DeliveryLedgerService(self.db).list_deliveries(
            bill.customer_id, period.first_day, period.last_day
        )
        by_date = {record.delivery_date: record for record in records}

        days: List[DayBreakdown] = []
        present_days = absent_days = no_record_days = 0
        recorded_liters = Decimal("0")
        recorded_additional = Decimal("0")

        for day in period.dates():
            record = by_date.get(day)
            if record is None:
                no_record_days += 1
                days.append(DayBreakdown(
                    day=day.day,
                    delivery_date=day,
                    status=NO_RECORD,
                    quantity=Decimal("0"),
                    milk_amount=Decimal("0.00"),
                    additional_amount=Decimal("0.00"),
                ))
                continue

            quantity = Decimal(record.quantity) if record.is_present else Decimal("0")
            if record.is_present:
                present_days += 1
            else:
                absent_days += 1
            recorded_liters += quantity
            additional_amount = to_money(record.additional_total)
            recorded_additional += additional_amount

            days.append(DayBreakdown(
                day=day.day,
                delivery_date=day,
                status=record.status,
                quantity=quantity,
                milk_amount=to_money(quantity * price) if per_liter else Decimal("0.00"),
                additional_products=[
                    AdditionalProductSummary(
                        product_type=line.product_type,
                        quantity=line.quantity,
                        unit_price=line.unit_price,
                        total_amount=line.total_amount,
                    )
                    for line in record.additional_products
                ],
                additional_amount=additional_amount,
                notes=record.notes,
            ))

        if per_liter:
            recorded_milk = to_money(recorded_liters * price)
        else:
            recorded_milk = to_money(bill.subscription_amount)
        recorded_additional = to_money(recorded_additional)
        computed_total = to_money(recorded_milk + recorded_additional)

        bill_liters = Decimal(bill.total_liters)
        bill_total = to_money(bill.total_amount)
        liters_mismatch = recorded_liters - bill_liters
        amount_mismatch = computed_total - bill_total
        has_mismatch = liters_mismatch != 0 or amount_mismatch != 0
        if has_mismatch:
            logger.warning(
                "Bill %s disagrees with delivery records: liters %+s, amount %+s",
                bill.invoice_number, liters_mismatch, amount_mismatch
            )

        return PeriodBreakdown(
            bill_id=bill.id,
            invoice_number=bill.invoice_number,
            customer_id=bill.customer_id,
            billing_period=bill.billing_period,
            billing_type=bill.billing_type,
            days=days,
            summary=PeriodBreakdownSummary(
                present_days=present_days,
                absent_days=absent_days,
                no_record_days=no_record_days,
                total_days=period.days,
                recorded_liters=recorded_liters,
                recorded_milk_amount=recorded_milk,
                recorded_additional_amount=recorded_additional,
                computed_total=computed_total,
                bill_total_liters=bill_liters,
                bill_total_amount=bill_total,
                liters_mismatch=liters_mismatch,
                amount_mismatch=amount_mismatch,
                has_mismatch=has_mismatch,
            ),
        )

    # =========================================================================
    # STATEMENT & DOCUMENT DATA
    # =========================================================================

    async def customer_statement(self, customer_id: uuid.UUID) -> CustomerStatement:
        """Bills (debits) and payments (credits) in date order with a running balance."""
        customer = await self._require_customer(customer_id)
        bills, _ = await self.bills.list_bills(customer_id=customer_id, limit=10_000)

        entries = []
        for bill in bills:
            entries.append((bill.created_at.date(), 0, bill.billing_period, 0, StatementEntry(
                entry_date=bill.created_at.date(),
                entry_type=StatementEntryType.BILL,
                reference=bill.invoice_number,
                billing_period=bill.billing_period,
                debit=to_money(bill.total_amount),
                running_balance=Decimal("0"),
            )))
            for payment in bill.payments:
                entries.append((payment.payment_date, 1, bill.billing_period, payment.sequence, StatementEntry(
                    entry_date=payment.payment_date,
                    entry_type=StatementEntryType.PAYMENT,
                    reference=payment.transaction_id or f"{bill.invoice_number}/{payment.sequence}",
                    billing_period=bill.billing_period,
                    credit=to_money(payment.amount),
                    running_balance=Decimal("0"),
                )))

        entries.sort(key=lambda item: item[:4])

        balance = Decimal("0.00")
        ordered: List[StatementEntry] = []
        for *_, entry in entries:
            balance = balance + entry.debit - entry.credit
            ordered.append(entry.model_copy(update={"running_balance": balance}))

        return CustomerStatement(
            customer_id=customer.id,
            customer_name=customer.name,
            entries=ordered,
            closing_balance=balance,
            stored_balance=to_money(customer.balance_due),
        )

    async def bill_document(self, bill_id: uuid.UUID) -> BillDocument:
        """Data a rendering collaborator needs to produce the bill document."""
        bill = await self.bills.require_bill(bill_id)
        customer = await self._require_customer(bill.customer_id)
        breakdown = await self.period_breakdown(bill_id)
        return BillDocument(
            bill=BillResponse.model_validate(bill),
            customer=CustomerContact(
                name=customer.name,
                phone=customer.phone,
                email=customer.email,
                address=customer.address,
            ),
            breakdown=breakdown,
            generated_at=datetime.now(timezone.utc),
        )
