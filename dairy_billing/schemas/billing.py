"""
Billing run, reconciliation and reporting schemas.
"""
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, List
import uuid

from pydantic import BaseModel, Field

from dairy_billing.schemas.base import BaseCreateSchema
from dairy_billing.schemas.bill import BillResponse


# ============================================================================
# BILL GENERATION
# ============================================================================

class GenerateBillsRequest(BaseCreateSchema):
    year: int = Field(..., ge=2000, le=9999)
    month: int = Field(..., ge=1, le=12)
    customer_ids: Optional[List[uuid.UUID]] = None


class GenerateCustomerBillRequest(BaseCreateSchema):
    year: int = Field(..., ge=2000, le=9999)
    month: int = Field(..., ge=1, le=12)


class BillingOutcome(str, Enum):
    CREATED = "created"
    SKIPPED_DUPLICATE = "skipped_duplicate"
    FAILED = "failed"


class BillingRunDetail(BaseModel):
    customer_id: uuid.UUID
    customer_name: Optional[str] = None
    outcome: BillingOutcome
    invoice_number: Optional[str] = None
    total_amount: Optional[Decimal] = None
    error: Optional[str] = None


class BillingRunResult(BaseModel):
    """Summary of a generation batch; bills_generated + errors == attempted."""
    billing_period: str
    bills_generated: int = 0
    errors: int = 0
    details: List[BillingRunDetail] = []

    @property
    def attempted(self) -> int:
        return self.bills_generated + self.errors


# ============================================================================
# RECONCILIATION
# ============================================================================

class ReconciliationResult(BaseModel):
    customer_id: uuid.UUID
    customer_name: str
    bills_total: Decimal
    payments_total: Decimal
    computed_balance: Decimal
    stored_balance: Decimal
    discrepancy: Decimal
    is_consistent: bool
    billing_hold: bool = False


class ReconciliationReport(BaseModel):
    checked: int
    inconsistent: List[ReconciliationResult]
    generated_at: datetime


class AdditionalProductSummary(BaseModel):
    product_type: str
    quantity: Decimal
    unit_price: Decimal
    total_amount: Decimal


class DayBreakdown(BaseModel):
    day: int
    delivery_date: date
    status: str  # present, absent or no_record
    quantity: Decimal
    milk_amount: Decimal
    additional_products: List[AdditionalProductSummary] = []
    additional_amount: Decimal
    notes: Optional[str] = None


class PeriodBreakdownSummary(BaseModel):
    present_days: int
    absent_days: int
    no_record_days: int
    total_days: int
    recorded_liters: Decimal
    recorded_milk_amount: Decimal
    recorded_additional_amount: Decimal
    computed_total: Decimal
    bill_total_liters: Decimal
    bill_total_amount: Decimal
    liters_mismatch: Decimal
    amount_mismatch: Decimal
    has_mismatch: bool


class PeriodBreakdown(BaseModel):
    """Day-by-day view of a bill's period. Read-only; mismatches are reported."""
    bill_id: uuid.UUID
    invoice_number: str
    customer_id: uuid.UUID
    billing_period: str
    billing_type: str
    days: List[DayBreakdown]
    summary: PeriodBreakdownSummary


class StatementEntryType(str, Enum):
    BILL = "bill"
    PAYMENT = "payment"


class StatementEntry(BaseModel):
    entry_date: date
    entry_type: StatementEntryType
    reference: str
    billing_period: str
    debit: Decimal = Decimal("0")
    credit: Decimal = Decimal("0")
    running_balance: Decimal


class CustomerStatement(BaseModel):
    customer_id: uuid.UUID
    customer_name: str
    entries: List[StatementEntry]
    closing_balance: Decimal
    stored_balance: Decimal


class CustomerContact(BaseModel):
    name: str
    phone: str
    email: Optional[str] = None
    address: Optional[str] = None


class BillDocument(BaseModel):
    """Everything a renderer needs to produce a bill document."""
    bill: BillResponse
    customer: CustomerContact
    breakdown: PeriodBreakdown
    generated_at: datetime
