from datetime import datetime, date
from decimal import Decimal
from typing import Optional, List
import uuid

from pydantic import Field

from dairy_billing.schemas.base import BaseResponseSchema, BaseCreateSchema
from dairy_billing.models.delivery import DeliveryStatus, ProductType


class AdditionalProductInput(BaseCreateSchema):
    """Additional product line; total defaults to quantity x unit_price."""
    product_type: ProductType
    quantity: Decimal = Field(..., gt=0)
    unit_price: Decimal = Field(..., ge=0)
    total_amount: Optional[Decimal] = Field(None, ge=0)


class DeliveryEntry(BaseCreateSchema):
    """One customer's attendance for a day (used standalone and in bulk)."""
    customer_id: uuid.UUID
    status: DeliveryStatus
    quantity: Decimal = Field(default=Decimal("0"), ge=0)
    unit_price: Optional[Decimal] = Field(None, ge=0)
    additional_products: List[AdditionalProductInput] = Field(default_factory=list)
    notes: Optional[str] = None


class DeliveryRecordCreate(DeliveryEntry):
    """Create or replace the record for (customer, date)."""
    delivery_date: date


class BulkDeliveryCreate(BaseCreateSchema):
    delivery_date: date
    entries: List[DeliveryEntry] = Field(..., min_length=1)


class AdditionalProductResponse(BaseResponseSchema):
    line_number: int
    product_type: str
    quantity: Decimal
    unit_price: Decimal
    total_amount: Decimal


class DeliveryRecordResponse(BaseResponseSchema):
    id: uuid.UUID
    customer_id: uuid.UUID
    delivery_date: date
    status: str
    quantity: Decimal
    unit_price: Optional[Decimal] = None
    additional_products: List[AdditionalProductResponse] = []
    additional_total: Decimal
    notes: Optional[str] = None
    recorded_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class BulkDeliveryError(BaseCreateSchema):
    customer_id: uuid.UUID
    error: str


class BulkDeliveryResult(BaseCreateSchema):
    saved: List[DeliveryRecordResponse]
    errors: List[BulkDeliveryError]
