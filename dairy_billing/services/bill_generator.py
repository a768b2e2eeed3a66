"""
Bill Generator - monthly billing from the delivery ledger.

For a (year, month) and a set of customers, issues one Bill per customer:

    per_liter:     total = total_liters x price_per_liter + additional products
    subscription:  total = subscription_amount + additional products

Each customer is billed in its own transaction (bill insert + balance
increment). A batch never aborts on a single customer's failure, and
re-running a batch skips customers that are already billed.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional, List, Iterable

from sqlalchemy import select, and_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dairy_billing.config import settings
from dairy_billing.models.bill import Bill, BillStatus
from dairy_billing.models.customer import Customer, BillingPlan, SubscriptionPlan, PerLiterPlan
from dairy_billing.models.delivery import DeliveryRecord
from dairy_billing.schemas.billing import BillingRunResult, BillingRunDetail, BillingOutcome
from dairy_billing.services.balance import BalanceCounter, ensure_not_on_hold
from dairy_billing.services.bill_service import BillService
from dairy_billing.services.delivery_ledger_service import DeliveryLedgerService
from dairy_billing.core.exceptions import (
    BillingError, DuplicateBillError, InvoiceNumberCollisionError, NotFoundError, ValidationError
)
from dairy_billing.core.periods import BillingPeriod, format_invoice_number, to_money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BillAmounts:
    total_liters: Decimal
    delivered_days: int
    milk_amount: Decimal
    additional_products_total: Decimal
    total_amount: Decimal


def compute_bill_amounts(plan: BillingPlan, deliveries: Iterable[DeliveryRecord]) -> BillAmounts:
    """Price a period's deliveries under a billing plan."""
    total_liters = Decimal("0")
    delivered_days = 0
    additional = Decimal("0")

    for record in deliveries:
        if record.is_present:
            total_liters += Decimal(record.quantity)
            delivered_days += 1
        # Additional products are billed whether or not milk was delivered
        additional += record.additional_total

    if isinstance(plan, PerLiterPlan):
        milk_amount = to_money(total_liters * plan.price_per_liter)
    elif isinstance(plan, SubscriptionPlan):
        milk_amount = to_money(plan.amount)
    else:
        raise ValidationError(f"Unsupported billing plan: {plan!r}")

    additional = to_money(additional)
    return BillAmounts(
        total_liters=total_liters,
        delivered_days=delivered_days,
        milk_amount=milk_amount,
        additional_products_total=additional,
        total_amount=to_money(milk_amount + additional),
    )


class BillGenerator:
    """Batch and single-customer monthly bill generation."""

    def __init__(self, db: AsyncSession, today: Optional[date] = None):
        self.db = db
        self.today = today
        self.bills = BillService(db)
        self.ledger = DeliveryLedgerService(db)

    def _billing_period(self, year: int, month: int) -> BillingPeriod:
        period = BillingPeriod(year, month)
        if period.is_future(self.today or date.today()):
            raise ValidationError(f"Cannot bill {period}: the month has not started")
        return period

    async def _candidate_ids(self, customer_ids: Optional[List[uuid.UUID]]) -> List[uuid.UUID]:
        if customer_ids is not None:
            # De-duplicate, keep caller's order
            return list(dict.fromkeys(customer_ids))
        result = await self.db.execute(
            select(Customer.id)
            .where(
                and_(
                    Customer.is_active == True,  # noqa: E712
                    Customer.billing_type.is_not(None)
                )
            )
            .order_by(Customer.name)
        )
        return [row[0] for row in result.all()]

    async def _next_invoice_number(self, customer_id: uuid.UUID, period: BillingPeriod) -> str:
        issued = await self.bills.count_bills_in_period(period.label)
        return format_invoice_number(settings.INVOICE_PREFIX, period, customer_id, issued + 1)

    async def _bill_customer(self, customer_id: uuid.UUID, period: BillingPeriod) -> Bill:
        """Issue one bill and increment the balance in a single transaction."""
        customer = await self.db.get(Customer, customer_id, populate_existing=True)
        if customer is None:
            raise NotFoundError(f"Customer {customer_id} not found")
        await ensure_not_on_hold(self.db, customer_id)

        if await self.bills.get_bill_by_period(customer_id, period.label) is not None:
            raise DuplicateBillError(customer_id, period.label)

        plan = customer.billing_plan
        deliveries = await self.ledger.list_deliveries(customer_id, period.first_day, period.last_day)
        amounts = compute_bill_amounts(plan, deliveries)
        if amounts.total_amount <= 0:
            raise ValidationError(
                f"Bill total for {customer.name} in {period} is {amounts.total_amount}; "
                "nothing to bill"
            )

        bill = Bill(
            invoice_number=await self._next_invoice_number(customer_id, period),
            customer_id=customer_id,
            customer_name=customer.name,
            billing_period=period.label,
            billing_type=plan.billing_type.value,
            price_per_liter=plan.price_per_liter if isinstance(plan, PerLiterPlan) else None,
            subscription_amount=plan.amount if isinstance(plan, SubscriptionPlan) else None,
            total_liters=amounts.total_liters,
            milk_amount=amounts.milk_amount,
            additional_products_total=amounts.additional_products_total,
            total_amount=amounts.total_amount,
            delivered_days=amounts.delivered_days,
            total_days=period.days,
            due_date=period.due_date(settings.BILL_DUE_DAY),
            status=BillStatus.UNPAID.value,
        )
        invoice_number = bill.invoice_number
        self.db.add(bill)

        try:
            await self.db.flush()
            await BalanceCounter(self.db).apply(customer_id, amounts.total_amount)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            if await self.bills.get_bill_by_period(customer_id, period.label) is not None:
                raise DuplicateBillError(customer_id, period.label)
            raise InvoiceNumberCollisionError(
                f"Invoice number {invoice_number} is already in use"
            )
        except Exception:
            await self.db.rollback()
            raise

        return await self.bills.require_bill(bill.id)

    async def generate(
        self,
        year: int,
        month: int,
        customer_ids: Optional[List[uuid.UUID]] = None
    ) -> BillingRunResult:
        """
        Generate bills for a month.

        Args:
            year, month: a month that has started (current or closed)
            customer_ids: customers to bill; defaults to all active customers
                with a billing type

        Returns:
            BillingRunResult whose bills_generated + errors equals the number
            of customers attempted
        """
        period = self._billing_period(year, month)
        candidates = await self._candidate_ids(customer_ids)
        result = BillingRunResult(billing_period=period.label)

        logger.info("Generating bills for %s: %d customers", period, len(candidates))

        for customer_id in candidates:
            try:
                bill = await self._bill_customer(customer_id, period)
            except DuplicateBillError as e:
                logger.info("Skipping customer %s: %s", customer_id, e.message)
                result.errors += 1
                result.details.append(BillingRunDetail(
                    customer_id=customer_id,
                    outcome=BillingOutcome.SKIPPED_DUPLICATE,
                    error=e.message,
                ))
            except BillingError as e:
                logger.warning("Billing failed for customer %s in %s: %s", customer_id, period, e.message)
                result.errors += 1
                result.details.append(BillingRunDetail(
                    customer_id=customer_id,
                    outcome=BillingOutcome.FAILED,
                    error=e.message,
                ))
            except SQLAlchemyError as e:
                await self.db.rollback()
                logger.exception("Database error billing customer %s in %s", customer_id, period)
                result.errors += 1
                result.details.append(BillingRunDetail(
                    customer_id=customer_id,
                    outcome=BillingOutcome.FAILED,
                    error=f"{type(e).__name__}: {e}",
                ))
            else:
                result.bills_generated += 1
                result.details.append(BillingRunDetail(
                    customer_id=customer_id,
                    customer_name=bill.customer_name,
                    outcome=BillingOutcome.CREATED,
                    invoice_number=bill.invoice_number,
                    total_amount=bill.total_amount,
                ))

        logger.info(
            "Billing for %s completed: %d generated, %d errors",
            period, result.bills_generated, result.errors
        )
        return result

    async def generate_for_customer(
        self,
        customer_id: uuid.UUID,
        year: int,
        month: int
    ) -> Bill:
        """Bill one customer. Raises DuplicateBillError if already billed."""
        period = self._billing_period(year, month)
        return await self._bill_customer(customer_id, period)
