"""
Customer API Endpoints.
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from dairy_billing.api.deps import DB, CurrentUser, AdminUser, ensure_customer_access
from dairy_billing.models.customer import BillingType
from dairy_billing.schemas.customer import (
    CustomerCreate, CustomerUpdate, CustomerResponse, CustomerListResponse
)
from dairy_billing.schemas.billing import CustomerStatement
from dairy_billing.services.customer_service import CustomerService
from dairy_billing.services.balance_reconciler import BalanceReconciler

router = APIRouter()


@router.post(
    "",
    response_model=CustomerResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Customer"
)
async def create_customer(
    data: CustomerCreate,
    db: DB,
    current_user: AdminUser,
):
    """Create a customer account with an optional billing plan."""
    return await CustomerService(db).create_customer(data)


@router.get(
    "",
    response_model=CustomerListResponse,
    summary="List Customers"
)
async def list_customers(
    db: DB,
    current_user: AdminUser,
    is_active: Optional[bool] = None,
    billing_type: Optional[BillingType] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
):
    """List customers."""
    customers, total = await CustomerService(db).list_customers(
        is_active=is_active,
        billing_type=billing_type,
        skip=skip,
        limit=limit
    )
    return CustomerListResponse(
        items=[CustomerResponse.model_validate(c) for c in customers],
        total=total,
        skip=skip,
        limit=limit
    )


@router.get(
    "/{customer_id}",
    response_model=CustomerResponse,
    summary="Get Customer"
)
async def get_customer(
    customer_id: UUID,
    db: DB,
    current_user: CurrentUser,
):
    """Get a customer, including the current balance."""
    ensure_customer_access(current_user, customer_id)
    customer = await CustomerService(db).get_customer(customer_id)
    if not customer:
        raise HTTPException(status_code=404, detail="Customer not found")
    return customer


@router.patch(
    "/{customer_id}",
    response_model=CustomerResponse,
    summary="Update Customer"
)
async def update_customer(
    customer_id: UUID,
    data: CustomerUpdate,
    db: DB,
    current_user: AdminUser,
):
    """Update contact details, billing plan or active flag."""
    return await CustomerService(db).update_customer(customer_id, data)


@router.get(
    "/{customer_id}/statement",
    response_model=CustomerStatement,
    summary="Get Customer Statement"
)
async def get_customer_statement(
    customer_id: UUID,
    db: DB,
    current_user: CurrentUser,
):
    """Bills and payments in date order with a running balance."""
    ensure_customer_access(current_user, customer_id)
    return await BalanceReconciler(db).customer_statement(customer_id)
