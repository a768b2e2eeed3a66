"""
Payment Processor.

Applies recorded payments to bills. A payment is appended to the bill's
ledger, the bill becomes PAID once its payments reach the bill total, and the
customer's balance is decremented by the payment amount. Overpayment is
accepted; the excess shows up as a negative balance (advance credit).
"""
import logging
import uuid
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

from sqlalchemy import select, update, and_
from sqlalchemy.ext.asyncio import AsyncSession

from dairy_billing.models.bill import Bill, BillPayment, BillStatus, PaymentMethod
from dairy_billing.models.customer import Customer
from dairy_billing.services.balance import BalanceCounter, ensure_not_on_hold
from dairy_billing.services.bill_service import BillService
from dairy_billing.core.enum_utils import to_enum
from dairy_billing.core.exceptions import NotFoundError, ValidationError
from dairy_billing.core.periods import BillingPeriod, to_money

logger = logging.getLogger(__name__)


def _positive_amount(amount) -> Decimal:
    try:
        value = to_money(amount) if amount is not None else None
        if value is not None and not value.is_finite():
            raise ValidationError(f"Invalid payment amount: {amount!r}")
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"Invalid payment amount: {amount!r}")
    if value is None or value <= 0:
        raise ValidationError("amount must be positive")
    return value


def _calendar_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raise ValidationError(f"Invalid payment date: {value!r}")


class PaymentProcessor:
    """Record payments and manage bill status transitions."""

    def __init__(self, db: AsyncSession, today: Optional[date] = None):
        self.db = db
        self.today = today
        self.bills = BillService(db)

    def _today(self) -> date:
        return self.today or date.today()

    async def record_payment(
        self,
        bill_id: uuid.UUID,
        amount,
        payment_method=PaymentMethod.CASH,
        payment_date: Optional[date] = None,
        transaction_id: Optional[str] = None,
        notes: Optional[str] = None,
        recorded_by: Optional[str] = None
    ) -> Bill:
        """
        Record a payment against a bill.

        Raises:
            ValidationError: amount not positive, unknown method, bad date
            NotFoundError: bill does not exist
            IntegrityFault: customer is on billing hold
        """
        amount = _positive_amount(amount)
        method = to_enum(payment_method, PaymentMethod)
        if method is None:
            raise ValidationError(f"Unknown payment method: {payment_method!r}")
        payment_date = _calendar_date(payment_date if payment_date is not None else self._today())

        bill = await self.bills.require_bill(bill_id, for_update=True)
        await ensure_not_on_hold(self.db, bill.customer_id)

        try:
            sequence = await self.bills.payment_count(bill.id) + 1
            self.db.add(BillPayment(
                bill_id=bill.id,
                customer_id=bill.customer_id,
                sequence=sequence,
                payment_date=payment_date,
                payment_method=method.value,
                amount=amount,
                transaction_id=transaction_id or None,
                notes=notes or None,
                recorded_by=recorded_by,
            ))
            await self.db.flush()

            paid = await self.bills.amount_paid(bill.id)
            if paid >= bill.total_amount and bill.status != BillStatus.PAID.value:
                bill.status = BillStatus.PAID.value

            await BalanceCounter(self.db).apply(bill.customer_id, -amount)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "Recorded %s payment of %s on bill %s (paid %s of %s)",
            method.value, amount, bill.invoice_number, paid, bill.total_amount
        )
        return await self.bills.require_bill(bill_id)

    async def update_status(
        self,
        bill_id: uuid.UUID,
        status,
        notes: Optional[str] = None
    ) -> Bill:
        """
        Move a bill to a new status. Never touches the customer balance.

        - overdue: only from unpaid, and only after the due date
        - paid: only when payments cover the bill total
        - unpaid: only when payments do not cover the bill total
        """
        target = to_enum(status, BillStatus)
        if target is None:
            raise ValidationError(f"Unknown bill status: {status!r}")

        bill = await self.bills.require_bill(bill_id, for_update=True)
        paid = await self.bills.amount_paid(bill.id)
        covered = paid >= bill.total_amount

        # Rejected transitions leave the session untouched
        if target == BillStatus.OVERDUE:
            if bill.status == BillStatus.PAID.value:
                raise ValidationError(f"Bill {bill.invoice_number} is already paid")
            if self._today() <= bill.due_date:
                raise ValidationError(
                    f"Bill {bill.invoice_number} is not past its due date {bill.due_date}"
                )
        elif target == BillStatus.PAID and not covered:
            raise ValidationError(
                f"Bill {bill.invoice_number} has {paid} paid of {bill.total_amount}; "
                "record the payment first"
            )
        elif target == BillStatus.UNPAID and covered:
            raise ValidationError(f"Bill {bill.invoice_number} is fully paid")

        try:
            bill.status = target.value
            if notes is not None:
                bill.notes = notes
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info("Bill %s status set to %s", bill.invoice_number, target.value)
        return await self.bills.require_bill(bill_id)

    async def update_status_by_period(
        self,
        customer_id: uuid.UUID,
        billing_period: str,
        status,
        notes: Optional[str] = None
    ) -> Bill:
        """Status transition for the customer's bill of a YYYY-MM month."""
        period = BillingPeriod.parse(billing_period)
        bill = await self.bills.get_bill_by_period(customer_id, period.label)
        if bill is None:
            raise NotFoundError(f"No bill for customer {customer_id} in {period}")
        return await self.update_status(bill.id, status, notes)

    async def mark_overdue_bills(self, today: Optional[date] = None) -> int:
        """
        Overdue sweep: unpaid bills past their due date become overdue.

        Bills of customers on billing hold are left as they are.
        """
        today = today or self._today()
        unheld = select(Customer.id).where(Customer.billing_hold == False)  # noqa: E712
        result = await self.db.execute(
            update(Bill)
            .where(
                and_(
                    Bill.status == BillStatus.UNPAID.value,
                    Bill.due_date < today,
                    Bill.customer_id.in_(unheld)
                )
            )
            .values(status=BillStatus.OVERDUE.value)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        count = result.rowcount or 0
        logger.info("Marked %d bills overdue as of %s", count, today)
        return count
