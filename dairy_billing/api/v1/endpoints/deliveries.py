"""
Delivery Ledger API Endpoints.

Daily attendance (delivery) records:
- Single and bulk recording for a date
- Per-customer range listing and per-date listing
- Customers still pending for a date
"""
from datetime import date
from typing import List
from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from dairy_billing.api.deps import DB, CurrentUser, AdminUser, ensure_customer_access
from dairy_billing.schemas.customer import CustomerResponse
from dairy_billing.schemas.delivery import (
    DeliveryRecordCreate, DeliveryRecordResponse, BulkDeliveryCreate, BulkDeliveryResult
)
from dairy_billing.services.delivery_ledger_service import DeliveryLedgerService

router = APIRouter()


@router.post(
    "",
    response_model=DeliveryRecordResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record Delivery"
)
async def record_delivery(
    data: DeliveryRecordCreate,
    db: DB,
    current_user: AdminUser,
):
    """Create or replace the record for a customer and date."""
    return await DeliveryLedgerService(db).record_delivery(data, current_user.subject)


@router.post(
    "/bulk",
    response_model=BulkDeliveryResult,
    summary="Record Deliveries in Bulk"
)
async def record_bulk(
    data: BulkDeliveryCreate,
    db: DB,
    current_user: AdminUser,
):
    """Record a date for many customers; failures are reported per entry."""
    saved, errors = await DeliveryLedgerService(db).record_bulk(data, current_user.subject)
    return BulkDeliveryResult(
        saved=[DeliveryRecordResponse.model_validate(r) for r in saved],
        errors=errors
    )


@router.get(
    "/date/{delivery_date}",
    response_model=List[DeliveryRecordResponse],
    summary="List Deliveries for Date"
)
async def list_for_date(
    delivery_date: date,
    db: DB,
    current_user: AdminUser,
):
    """All records for a date."""
    return await DeliveryLedgerService(db).list_for_date(delivery_date)


@router.get(
    "/date/{delivery_date}/pending",
    response_model=List[CustomerResponse],
    summary="List Pending Customers"
)
async def list_pending(
    delivery_date: date,
    db: DB,
    current_user: AdminUser,
):
    """Active customers without a record for the date."""
    return await DeliveryLedgerService(db).pending_customers(delivery_date)


@router.get(
    "/customer/{customer_id}",
    response_model=List[DeliveryRecordResponse],
    summary="List Customer Deliveries"
)
async def list_customer_deliveries(
    customer_id: UUID,
    start_date: date,
    end_date: date,
    db: DB,
    current_user: CurrentUser,
):
    """A customer's records between two dates (inclusive), ordered by date."""
    ensure_customer_access(current_user, customer_id)
    return await DeliveryLedgerService(db).list_deliveries(customer_id, start_date, end_date)


@router.get(
    "/{record_id}",
    response_model=DeliveryRecordResponse,
    summary="Get Delivery"
)
async def get_delivery(
    record_id: UUID,
    db: DB,
    current_user: CurrentUser,
):
    """Get a delivery record."""
    record = await DeliveryLedgerService(db).get_delivery(record_id)
    if not record:
        raise HTTPException(status_code=404, detail="Delivery record not found")
    ensure_customer_access(current_user, record.customer_id)
    return record


@router.delete(
    "/{record_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Delivery"
)
async def delete_delivery(
    record_id: UUID,
    db: DB,
    current_user: AdminUser,
):
    """Delete a record. Rejected once the month is billed."""
    await DeliveryLedgerService(db).delete_delivery(record_id)
