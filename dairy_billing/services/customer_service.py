"""
Customer account service.

Manages contact details and the billing plan. balance_due is owned by the
bill generator and the payment processor and cannot be set here.
"""
import logging
import uuid
from typing import Optional, List, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from dairy_billing.models.customer import Customer, BillingType
from dairy_billing.schemas.customer import (
    CustomerCreate, CustomerUpdate, SubscriptionPlanInput, PerLiterPlanInput,
)
from dairy_billing.core.enum_utils import get_enum_value
from dairy_billing.core.exceptions import NotFoundError

logger = logging.getLogger(__name__)


class CustomerService:
    """Service for customer accounts."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def _apply_plan(customer: Customer, plan) -> None:
        if isinstance(plan, SubscriptionPlanInput):
            customer.billing_type = BillingType.SUBSCRIPTION.value
            customer.subscription_amount = plan.subscription_amount
            customer.price_per_liter = None
        elif isinstance(plan, PerLiterPlanInput):
            customer.billing_type = BillingType.PER_LITER.value
            customer.price_per_liter = plan.price_per_liter
            customer.subscription_amount = None

    async def create_customer(self, data: CustomerCreate) -> Customer:
        """Create a customer account with a zero balance."""
        customer = Customer(
            name=data.name,
            phone=data.phone,
            email=data.email,
            address=data.address,
            pincode=data.pincode,
            customer_type=get_enum_value(data.customer_type),
        )
        if data.billing_plan is not None:
            self._apply_plan(customer, data.billing_plan)

        self.db.add(customer)
        await self.db.commit()
        await self.db.refresh(customer)
        logger.info("Created customer %s (%s)", customer.name, customer.id)
        return customer

    async def get_customer(self, customer_id: uuid.UUID) -> Optional[Customer]:
        """Get customer by ID."""
        return await self.db.get(Customer, customer_id, populate_existing=True)

    async def require_customer(self, customer_id: uuid.UUID) -> Customer:
        customer = await self.get_customer(customer_id)
        if customer is None:
            raise NotFoundError(f"Customer {customer_id} not found")
        return customer

    async def list_customers(
        self,
        is_active: Optional[bool] = None,
        billing_type: Optional[BillingType] = None,
        skip: int = 0,
        limit: int = 100
    ) -> Tuple[List[Customer], int]:
        """List customers with filters."""
        query = select(Customer)
        if is_active is not None:
            query = query.where(Customer.is_active == is_active)
        if billing_type:
            query = query.where(Customer.billing_type == get_enum_value(billing_type))

        count_query = select(func.count()).select_from(query.subquery())
        total = await self.db.scalar(count_query) or 0

        query = query.order_by(Customer.name).offset(skip).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def update_customer(
        self,
        customer_id: uuid.UUID,
        data: CustomerUpdate
    ) -> Customer:
        """Update contact details, plan or active flag."""
        customer = await self.require_customer(customer_id)

        update_data = data.model_dump(exclude_unset=True, exclude={"billing_plan"})
        for field, value in update_data.items():
            if field == "customer_type" and value is not None:
                value = get_enum_value(value)
            setattr(customer, field, value)

        if data.billing_plan is not None:
            self._apply_plan(customer, data.billing_plan)

        await self.db.commit()
        await self.db.refresh(customer)
        return customer
