"""
Bill lookups shared by the generator, the payment processor and the API.
"""
import uuid
from decimal import Decimal
from typing import Optional, List, Tuple

from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from dairy_billing.models.bill import Bill, BillPayment, BillStatus
from dairy_billing.core.enum_utils import get_enum_value
from dairy_billing.core.exceptions import NotFoundError
from dairy_billing.core.periods import to_money


class BillService:
    """Read access to bills and their payments."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_bill(
        self,
        bill_id: uuid.UUID,
        for_update: bool = False
    ) -> Optional[Bill]:
        """Get bill by ID with payments loaded."""
        query = select(Bill).where(Bill.id == bill_id).execution_options(populate_existing=True)
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def require_bill(self, bill_id: uuid.UUID, for_update: bool = False) -> Bill:
        bill = await self.get_bill(bill_id, for_update=for_update)
        if bill is None:
            raise NotFoundError(f"Bill {bill_id} not found")
        return bill

    async def get_bill_by_period(
        self,
        customer_id: uuid.UUID,
        billing_period: str
    ) -> Optional[Bill]:
        """Get the customer's bill for a YYYY-MM period."""
        result = await self.db.execute(
            select(Bill)
            .where(
                and_(
                    Bill.customer_id == customer_id,
                    Bill.billing_period == billing_period
                )
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_bills(
        self,
        customer_id: Optional[uuid.UUID] = None,
        status: Optional[BillStatus] = None,
        billing_period: Optional[str] = None,
        skip: int = 0,
        limit: int = 100
    ) -> Tuple[List[Bill], int]:
        """List bills, newest period first."""
        query = select(Bill)
        if customer_id:
            query = query.where(Bill.customer_id == customer_id)
        if status:
            query = query.where(Bill.status == get_enum_value(status))
        if billing_period:
            query = query.where(Bill.billing_period == billing_period)

        count_query = select(func.count()).select_from(query.subquery())
        total = await self.db.scalar(count_query) or 0

        query = (
            query.order_by(Bill.billing_period.desc(), Bill.created_at.desc())
            .offset(skip)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def count_bills_in_period(self, billing_period: str) -> int:
        return await self.db.scalar(
            select(func.count(Bill.id)).where(Bill.billing_period == billing_period)
        ) or 0

    async def amount_paid(self, bill_id: uuid.UUID) -> Decimal:
        """Sum of payments on a bill, computed in the database."""
        total = await self.db.scalar(
            select(func.coalesce(func.sum(BillPayment.amount), 0))
            .where(BillPayment.bill_id == bill_id)
        )
        return to_money(total)

    async def payment_count(self, bill_id: uuid.UUID) -> int:
        return await self.db.scalar(
            select(func.count(BillPayment.id)).where(BillPayment.bill_id == bill_id)
        ) or 0
