"""
Bill and Payment models.

- Bill: one invoice per customer per billing period (YYYY-MM)
- BillPayment: append-only payment ledger entries applied to a bill

A bill's status is PAID once the sum of its payments reaches total_amount.
Any excess is advance credit on the customer, never on the bill.
"""
import uuid
from datetime import datetime, timezone, date
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Optional, List

from sqlalchemy import (
    String, DateTime, ForeignKey, Integer, Text, Date, Index, UniqueConstraint,
    CheckConstraint
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dairy_billing.database import Base
from dairy_billing.db_types import UUIDType, MoneyType, QuantityType
from dairy_billing.core.enum_utils import enum_comment

if TYPE_CHECKING:
    from dairy_billing.models.customer import Customer


class BillStatus(str, Enum):
    UNPAID = "unpaid"
    PAID = "paid"
    OVERDUE = "overdue"


class PaymentMethod(str, Enum):
    CASH = "cash"
    ONLINE = "online"
    CHEQUE = "cheque"
    BANK_TRANSFER = "bank_transfer"


class Bill(Base):
    """Monthly invoice for a customer."""
    __tablename__ = "bills"
    __table_args__ = (
        UniqueConstraint('customer_id', 'billing_period', name='uq_bill_customer_period'),
        UniqueConstraint('invoice_number', name='uq_bill_invoice_number'),
        CheckConstraint('total_amount >= 0', name='ck_bill_total_non_negative'),
        Index('ix_bills_status_due', 'status', 'due_date'),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    invoice_number: Mapped[str] = mapped_column(String(40), nullable=False)

    customer_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("customers.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    customer_name: Mapped[str] = mapped_column(String(200), nullable=False)

    billing_period: Mapped[str] = mapped_column(
        String(7),
        nullable=False,
        index=True,
        comment="YYYY-MM"
    )

    # Pricing snapshot taken at generation time
    billing_type: Mapped[str] = mapped_column(String(20), nullable=False)
    price_per_liter: Mapped[Optional[Decimal]] = mapped_column(MoneyType, nullable=True)
    subscription_amount: Mapped[Optional[Decimal]] = mapped_column(MoneyType, nullable=True)

    # Amounts
    total_liters: Mapped[Decimal] = mapped_column(QuantityType, default=Decimal("0"))
    milk_amount: Mapped[Decimal] = mapped_column(MoneyType, default=Decimal("0"))
    additional_products_total: Mapped[Decimal] = mapped_column(MoneyType, default=Decimal("0"))
    total_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    # Delivery summary
    delivered_days: Mapped[int] = mapped_column(Integer, default=0)
    total_days: Mapped[int] = mapped_column(Integer, default=0)

    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        default=BillStatus.UNPAID.value,
        nullable=False,
        comment=enum_comment(BillStatus)
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

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
    customer: Mapped["Customer"] = relationship("Customer", back_populates="bills")
    payments: Mapped[List["BillPayment"]] = relationship(
        "BillPayment",
        back_populates="bill",
        order_by="BillPayment.sequence",
        lazy="selectin"
    )

    @property
    def amount_paid(self) -> Decimal:
        return sum((p.amount for p in self.payments), Decimal("0"))

    @property
    def amount_outstanding(self) -> Decimal:
        return max(self.total_amount - self.amount_paid, Decimal("0"))

    @property
    def excess_paid(self) -> Decimal:
        return max(self.amount_paid - self.total_amount, Decimal("0"))

    def effective_status(self, today: Optional[date] = None) -> str:
        """Stored status, surfacing unpaid bills past their due date as overdue."""
        today = today or date.today()
        if self.status == BillStatus.UNPAID.value and today > self.due_date:
            return BillStatus.OVERDUE.value
        return self.status

    @property
    def current_status(self) -> str:
        return self.effective_status()

    def __repr__(self) -> str:
        return f"<Bill {self.invoice_number} {self.billing_period} {self.status}>"


class BillPayment(Base):
    """A payment recorded against a bill. Never updated or deleted."""
    __tablename__ = "bill_payments"
    __table_args__ = (
        CheckConstraint('amount > 0', name='ck_bill_payment_positive'),
        UniqueConstraint('bill_id', 'sequence', name='uq_bill_payment_sequence'),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    bill_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("bills.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    customer_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("customers.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    sequence: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        comment="Position of this payment on its bill"
    )

    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    payment_method: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PaymentMethod.CASH.value,
        comment=enum_comment(PaymentMethod)
    )
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    transaction_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    recorded_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc)
    )

    bill: Mapped["Bill"] = relationship("Bill", back_populates="payments")
