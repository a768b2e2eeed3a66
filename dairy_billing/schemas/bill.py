from datetime import datetime, date
from decimal import Decimal
from typing import Optional, List
import uuid

from pydantic import BaseModel, Field

from dairy_billing.schemas.base import BaseResponseSchema, BaseCreateSchema
from dairy_billing.models.bill import BillStatus, PaymentMethod


# ==================== PAYMENTS ====================

class PaymentCreate(BaseCreateSchema):
    """
    Payment to apply to a bill.

    Amount positivity is checked by the payment processor so the caller
    gets the same message from every entry point.
    """
    amount: Decimal
    payment_method: PaymentMethod = PaymentMethod.CASH
    payment_date: Optional[date] = None  # defaults to today
    transaction_id: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None


class PaymentResponse(BaseResponseSchema):
    id: uuid.UUID
    sequence: int
    payment_date: date
    payment_method: str
    amount: Decimal
    transaction_id: Optional[str] = None
    notes: Optional[str] = None
    recorded_by: Optional[str] = None
    recorded_at: datetime


# ==================== BILLS ====================

class BillResponse(BaseResponseSchema):
    id: uuid.UUID
    invoice_number: str
    customer_id: uuid.UUID
    customer_name: str
    billing_period: str
    billing_type: str
    price_per_liter: Optional[Decimal] = None
    subscription_amount: Optional[Decimal] = None
    total_liters: Decimal
    milk_amount: Decimal
    additional_products_total: Decimal
    total_amount: Decimal
    delivered_days: int
    total_days: int
    due_date: date
    status: str
    current_status: str
    amount_paid: Decimal
    amount_outstanding: Decimal
    excess_paid: Decimal
    notes: Optional[str] = None
    payments: List[PaymentResponse] = []
    created_at: datetime
    updated_at: datetime


class BillStatusUpdate(BaseCreateSchema):
    status: BillStatus
    notes: Optional[str] = None


class BillPeriodStatusUpdate(BaseCreateSchema):
    """Status transition addressed by customer and bill month (YYYY-MM)."""
    bill_month: str = Field(..., pattern=r"^\d{4}-\d{2}$")
    status: BillStatus
    notes: Optional[str] = None


class BillListResponse(BaseModel):
    """Paginated bill list."""
    items: List[BillResponse]
    total: int
    skip: int
    limit: int
