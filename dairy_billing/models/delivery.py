"""
Delivery ledger models.

- DeliveryRecord: one attendance entry per customer per calendar day
- AdditionalProductLine: ad hoc items (eggs, paneer, ...) delivered that day
"""
import uuid
from datetime import datetime, timezone, date
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Optional, List

from sqlalchemy import (
    String, DateTime, ForeignKey, Integer, Text, Date, UniqueConstraint
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dairy_billing.database import Base
from dairy_billing.db_types import UUIDType, MoneyType, QuantityType
from dairy_billing.core.enum_utils import enum_comment

if TYPE_CHECKING:
    from dairy_billing.models.customer import Customer


class DeliveryStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"


class ProductType(str, Enum):
    MILK = "milk"
    EGGS = "eggs"
    PANEER = "paneer"
    GHEE = "ghee"
    MITHAI = "mithai"


class DeliveryRecord(Base):
    """Attendance for one customer on one day."""
    __tablename__ = "delivery_records"
    __table_args__ = (
        UniqueConstraint('customer_id', 'delivery_date', name='uq_delivery_customer_date'),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    customer_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("customers.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    delivery_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        comment=enum_comment(DeliveryStatus)
    )
    quantity: Mapped[Decimal] = mapped_column(
        QuantityType,
        default=Decimal("0"),
        nullable=False,
        comment="Liters delivered, 0 when absent"
    )
    unit_price: Mapped[Optional[Decimal]] = mapped_column(
        MoneyType,
        nullable=True,
        comment="Customer's price per liter on the day of delivery"
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    recorded_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

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
    customer: Mapped["Customer"] = relationship("Customer", back_populates="deliveries")
    additional_products: Mapped[List["AdditionalProductLine"]] = relationship(
        "AdditionalProductLine",
        back_populates="delivery",
        cascade="all, delete-orphan",
        order_by="AdditionalProductLine.line_number"
    )

    @property
    def is_present(self) -> bool:
        return self.status == DeliveryStatus.PRESENT.value

    @property
    def additional_total(self) -> Decimal:
        return sum((line.total_amount for line in self.additional_products), Decimal("0"))


class AdditionalProductLine(Base):
    """Ad hoc product delivered alongside regular milk."""
    __tablename__ = "delivery_additional_products"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    delivery_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("delivery_records.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    product_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment=enum_comment(ProductType)
    )
    quantity: Mapped[Decimal] = mapped_column(QuantityType, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    delivery: Mapped["DeliveryRecord"] = relationship(
        "DeliveryRecord",
        back_populates="additional_products"
    )
