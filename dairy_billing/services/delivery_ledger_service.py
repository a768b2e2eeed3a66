"""
Delivery Ledger Service.

Stores one attendance record per customer per calendar day, with any
additional product lines delivered that day. Records belonging to a period
that has already been billed for the customer are closed for edits.
"""
import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import Optional, List, Tuple

from sqlalchemy import select, and_, exists
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from dairy_billing.models.bill import Bill
from dairy_billing.models.customer import Customer
from dairy_billing.models.delivery import (
    DeliveryRecord, AdditionalProductLine, DeliveryStatus
)
from dairy_billing.schemas.delivery import (
    DeliveryRecordCreate, BulkDeliveryCreate, BulkDeliveryError
)
from dairy_billing.core.enum_utils import get_enum_value
from dairy_billing.core.exceptions import (
    BillingError, BilledPeriodLockedError, NotFoundError, ValidationError
)
from dairy_billing.core.periods import BillingPeriod, to_money

logger = logging.getLogger(__name__)


class DeliveryLedgerService:
    """Service for daily delivery (attendance) records."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def is_period_billed(self, customer_id: uuid.UUID, day: date) -> bool:
        """True when the customer already has a bill for the month containing `day`."""
        period = BillingPeriod.containing(day)
        return bool(await self.db.scalar(
            select(exists().where(
                and_(
                    Bill.customer_id == customer_id,
                    Bill.billing_period == period.label
                )
            ))
        ))

    async def _ensure_open(self, customer_id: uuid.UUID, day: date) -> None:
        if await self.is_period_billed(customer_id, day):
            raise BilledPeriodLockedError(
                f"{BillingPeriod.containing(day)} is already billed for customer "
                f"{customer_id}; delivery records are closed"
            )

    async def _get_by_customer_date(
        self,
        customer_id: uuid.UUID,
        day: date
    ) -> Optional[DeliveryRecord]:
        result = await self.db.execute(
            select(DeliveryRecord)
            .options(selectinload(DeliveryRecord.additional_products))
            .where(
                and_(
                    DeliveryRecord.customer_id == customer_id,
                    DeliveryRecord.delivery_date == day
                )
            )
        )
        return result.scalar_one_or_none()

    async def get_delivery(self, record_id: uuid.UUID) -> Optional[DeliveryRecord]:
        """Get delivery record by ID."""
        result = await self.db.execute(
            select(DeliveryRecord)
            .options(selectinload(DeliveryRecord.additional_products))
            .where(DeliveryRecord.id == record_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def record_delivery(
        self,
        data: DeliveryRecordCreate,
        recorded_by: Optional[str] = None
    ) -> DeliveryRecord:
        """Create the record for (customer, date), or replace the existing one."""
        customer = await self.db.get(Customer, data.customer_id)
        if customer is None:
            raise NotFoundError(f"Customer {data.customer_id} not found")
        await self._ensure_open(data.customer_id, data.delivery_date)

        present = data.status == DeliveryStatus.PRESENT
        quantity = data.quantity if present else Decimal("0")
        unit_price = data.unit_price if data.unit_price is not None else customer.price_per_liter

        lines = []
        for number, item in enumerate(data.additional_products, start=1):
            total = item.total_amount
            if total is None:
                total = item.quantity * item.unit_price
            lines.append(AdditionalProductLine(
                line_number=number,
                product_type=get_enum_value(item.product_type),
                quantity=item.quantity,
                unit_price=to_money(item.unit_price),
                total_amount=to_money(total),
            ))

        record = await self._get_by_customer_date(data.customer_id, data.delivery_date)
        if record is None:
            record = DeliveryRecord(
                customer_id=data.customer_id,
                delivery_date=data.delivery_date,
            )
            self.db.add(record)
        else:
            record.additional_products.clear()

        record.status = get_enum_value(data.status)
        record.quantity = quantity
        record.unit_price = unit_price
        record.notes = data.notes
        record.recorded_by = recorded_by
        record.additional_products.extend(lines)

        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        return await self.get_delivery(record.id)

    async def record_bulk(
        self,
        data: BulkDeliveryCreate,
        recorded_by: Optional[str] = None
    ) -> Tuple[List[DeliveryRecord], List[BulkDeliveryError]]:
        """Record many customers for one date; failures do not stop the batch."""
        saved: List[DeliveryRecord] = []
        errors: List[BulkDeliveryError] = []

        for entry in data.entries:
            payload = DeliveryRecordCreate(
                delivery_date=data.delivery_date,
                **entry.model_dump()
            )
            try:
                saved.append(await self.record_delivery(payload, recorded_by))
            except BillingError as e:
                logger.warning(
                    "Skipping delivery for customer %s on %s: %s",
                    entry.customer_id, data.delivery_date, e.message
                )
                errors.append(BulkDeliveryError(customer_id=entry.customer_id, error=e.message))

        return saved, errors

    async def list_deliveries(
        self,
        customer_id: uuid.UUID,
        start: date,
        end: date
    ) -> List[DeliveryRecord]:
        """Records for a customer within [start, end], ordered by date."""
        if end < start:
            raise ValidationError("Date range end is before its start")
        result = await self.db.execute(
            select(DeliveryRecord)
            .options(selectinload(DeliveryRecord.additional_products))
            .where(
                and_(
                    DeliveryRecord.customer_id == customer_id,
                    DeliveryRecord.delivery_date >= start,
                    DeliveryRecord.delivery_date <= end
                )
            )
            .order_by(DeliveryRecord.delivery_date)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def list_for_date(self, day: date) -> List[DeliveryRecord]:
        """All records for a date."""
        result = await self.db.execute(
            select(DeliveryRecord)
            .options(selectinload(DeliveryRecord.additional_products))
            .where(DeliveryRecord.delivery_date == day)
            .order_by(DeliveryRecord.created_at)
        )
        return list(result.scalars().all())

    async def pending_customers(self, day: date) -> List[Customer]:
        """Active customers with a billing plan and no record for the date yet."""
        marked = select(DeliveryRecord.customer_id).where(DeliveryRecord.delivery_date == day)
        result = await self.db.execute(
            select(Customer)
            .where(
                and_(
                    Customer.is_active == True,  # noqa: E712
                    Customer.billing_type.is_not(None),
                    Customer.id.not_in(marked)
                )
            )
            .order_by(Customer.name)
        )
        return list(result.scalars().all())

    async def delete_delivery(self, record_id: uuid.UUID) -> None:
        """Delete a record from an unbilled period."""
        record = await self.get_delivery(record_id)
        if record is None:
            raise NotFoundError(f"Delivery record {record_id} not found")
        await self._ensure_open(record.customer_id, record.delivery_date)

        await self.db.delete(record)
        await self.db.commit()
