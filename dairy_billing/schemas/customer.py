from datetime import datetime
from decimal import Decimal
from typing import Optional, List, Union, Literal, Annotated
import uuid

from pydantic import BaseModel, Field

from dairy_billing.schemas.base import BaseResponseSchema, BaseCreateSchema
from dairy_billing.models.customer import CustomerType


# ==================== BILLING PLAN ====================

class SubscriptionPlanInput(BaseCreateSchema):
    """Flat monthly fee, independent of liters delivered."""
    billing_type: Literal["subscription"] = "subscription"
    subscription_amount: Decimal = Field(..., ge=0)


class PerLiterPlanInput(BaseCreateSchema):
    """Liters delivered multiplied by a per-liter price."""
    billing_type: Literal["per_liter"] = "per_liter"
    price_per_liter: Decimal = Field(..., gt=0)


BillingPlanInput = Annotated[
    Union[SubscriptionPlanInput, PerLiterPlanInput],
    Field(discriminator="billing_type")
]


# ==================== CUSTOMER SCHEMAS ====================

class CustomerCreate(BaseCreateSchema):
    """Customer creation schema."""
    name: str = Field(..., min_length=1, max_length=200)
    phone: str = Field(..., min_length=6, max_length=20)
    email: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = None
    pincode: Optional[str] = Field(None, max_length=10)
    customer_type: CustomerType = CustomerType.DAILY
    billing_plan: Optional[BillingPlanInput] = None


class CustomerUpdate(BaseCreateSchema):
    """Customer update schema. The balance is not editable here."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    phone: Optional[str] = Field(None, min_length=6, max_length=20)
    email: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = None
    pincode: Optional[str] = Field(None, max_length=10)
    customer_type: Optional[CustomerType] = None
    billing_plan: Optional[BillingPlanInput] = None
    is_active: Optional[bool] = None


class CustomerResponse(BaseResponseSchema):
    """Customer response schema."""
    id: uuid.UUID
    name: str
    phone: str
    email: Optional[str] = None
    address: Optional[str] = None
    pincode: Optional[str] = None
    customer_type: str
    billing_type: Optional[str] = None
    subscription_amount: Optional[Decimal] = None
    price_per_liter: Optional[Decimal] = None
    balance_due: Decimal
    has_advance_credit: bool
    billing_hold: bool
    billing_hold_reason: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class CustomerListResponse(BaseModel):
    """Paginated customer list."""
    items: List[CustomerResponse]
    total: int
    skip: int
    limit: int
