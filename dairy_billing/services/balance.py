"""
Atomic balance counter for customers.balance_due.

Both write paths (bill generation and payment recording) change the balance
only through BalanceCounter.apply, which issues a single
UPDATE ... SET balance_due = balance_due + :delta inside the caller's
transaction. There is no read-modify-write in Python.
"""
import logging
import uuid
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from dairy_billing.models.customer import Customer
from dairy_billing.core.exceptions import NotFoundError, IntegrityFault
from dairy_billing.core.periods import to_money

logger = logging.getLogger(__name__)


class BalanceCounter:
    """Increment/decrement a customer's running balance."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def apply(self, customer_id: uuid.UUID, delta: Decimal) -> None:
        """Add `delta` (positive for bills, negative for payments). Does not commit."""
        delta = to_money(delta)
        result = await self.db.execute(
            update(Customer)
            .where(Customer.id == customer_id)
            .values(balance_due=Customer.balance_due + delta)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFoundError(f"Customer {customer_id} not found")
        logger.debug("Balance of customer %s changed by %s", customer_id, delta)

    async def current(self, customer_id: uuid.UUID) -> Decimal:
        """Read the stored balance straight from the database."""
        balance = await self.db.scalar(
            select(Customer.balance_due).where(Customer.id == customer_id)
        )
        if balance is None:
            raise NotFoundError(f"Customer {customer_id} not found")
        return to_money(balance)


async def ensure_not_on_hold(db: AsyncSession, customer_id: uuid.UUID) -> None:
    """Refuse automated writes for customers with an unresolved integrity fault."""
    row = (await db.execute(
        select(Customer.billing_hold, Customer.billing_hold_reason)
        .where(Customer.id == customer_id)
    )).first()
    if row is None:
        raise NotFoundError(f"Customer {customer_id} not found")
    on_hold, reason = row
    if on_hold:
        raise IntegrityFault(
            customer_id,
            message=f"Customer {customer_id} is on billing hold: {reason or 'balance discrepancy'}"
        )
