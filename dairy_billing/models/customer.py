"""
Customer account model.

Holds the customer's billing plan and the authoritative running balance:
positive balance_due = customer owes money, negative = advance credit.
"""
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Optional, List, Union

from sqlalchemy import String, Boolean, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dairy_billing.database import Base
from dairy_billing.db_types import UUIDType, MoneyType
from dairy_billing.core.enum_utils import enum_comment
from dairy_billing.core.exceptions import ValidationError

if TYPE_CHECKING:
    from dairy_billing.models.bill import Bill
    from dairy_billing.models.delivery import DeliveryRecord


class BillingType(str, Enum):
    """How a customer's milk is priced."""
    SUBSCRIPTION = "subscription"  # Flat monthly fee
    PER_LITER = "per_liter"        # Liters delivered x price


class CustomerType(str, Enum):
    DAILY = "daily"  # Daily milk customer, billed monthly
    GUEST = "guest"  # Registered from the storefront, no regular delivery


@dataclass(frozen=True)
class SubscriptionPlan:
    amount: Decimal
    billing_type: BillingType = BillingType.SUBSCRIPTION


@dataclass(frozen=True)
class PerLiterPlan:
    price_per_liter: Decimal
    billing_type: BillingType = BillingType.PER_LITER


BillingPlan = Union[SubscriptionPlan, PerLiterPlan]


class Customer(Base):
    """Customer account with billing configuration and balance."""
    __tablename__ = "customers"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )

    # Contact
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    pincode: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)

    customer_type: Mapped[str] = mapped_column(
        String(20),
        default=CustomerType.DAILY.value,
        nullable=False,
        comment=enum_comment(CustomerType)
    )

    # Billing configuration
    billing_type: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        index=True,
        comment=enum_comment(BillingType)
    )
    subscription_amount: Mapped[Optional[Decimal]] = mapped_column(MoneyType, nullable=True)
    price_per_liter: Mapped[Optional[Decimal]] = mapped_column(MoneyType, nullable=True)

    # Running balance, changed only through BalanceCounter
    balance_due: Mapped[Decimal] = mapped_column(
        MoneyType,
        default=Decimal("0"),
        nullable=False
    )

    # Set when reconciliation finds a discrepancy; blocks billing writes
    billing_hold: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    billing_hold_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )

    # Relationships
    bills: Mapped[List["Bill"]] = relationship(
        "Bill",
        back_populates="customer",
        order_by="Bill.billing_period"
    )
    deliveries: Mapped[List["DeliveryRecord"]] = relationship(
        "DeliveryRecord",
        back_populates="customer"
    )

    @property
    def billing_plan(self) -> BillingPlan:
        """Billing configuration as a tagged variant."""
        if self.billing_type == BillingType.SUBSCRIPTION.value:
            if self.subscription_amount is None:
                raise ValidationError(f"Customer {self.name} has no subscription amount")
            return SubscriptionPlan(amount=Decimal(self.subscription_amount))
        if self.billing_type == BillingType.PER_LITER.value:
            if self.price_per_liter is None or self.price_per_liter <= 0:
                raise ValidationError(f"Customer {self.name} has no price per liter")
            return PerLiterPlan(price_per_liter=Decimal(self.price_per_liter))
        raise ValidationError(f"Customer {self.name} has no billing type configured")

    @property
    def has_advance_credit(self) -> bool:
        return self.balance_due < 0

    def __repr__(self) -> str:
        return f"<Customer {self.name} balance={self.balance_due}>"
