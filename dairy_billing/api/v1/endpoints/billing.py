"""
Bill Generation API Endpoints.

Monthly bill generation from the delivery ledger:
- Batch generation for a month (all active customers or a subset)
- Single-customer generation
"""
from uuid import UUID

from fastapi import APIRouter, status

from dairy_billing.api.deps import DB, AdminUser
from dairy_billing.schemas.bill import BillResponse
from dairy_billing.schemas.billing import (
    GenerateBillsRequest, GenerateCustomerBillRequest, BillingRunResult
)
from dairy_billing.services.bill_generator import BillGenerator

router = APIRouter()


@router.post(
    "/generate",
    response_model=BillingRunResult,
    summary="Generate Monthly Bills"
)
async def generate_bills(
    data: GenerateBillsRequest,
    db: DB,
    current_user: AdminUser,
):
    """
    Generate bills for a month.

    Customers that are already billed, on billing hold, or missing a
    billing plan are counted in `errors` and reported in `details`;
    the rest of the batch continues.
    """
    generator = BillGenerator(db)
    return await generator.generate(data.year, data.month, data.customer_ids)


@router.post(
    "/generate/{customer_id}",
    response_model=BillResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Generate Bill for Customer"
)
async def generate_customer_bill(
    customer_id: UUID,
    data: GenerateCustomerBillRequest,
    db: DB,
    current_user: AdminUser,
):
    """Generate one customer's bill. 409 if the month is already billed."""
    generator = BillGenerator(db)
    return await generator.generate_for_customer(customer_id, data.year, data.month)
