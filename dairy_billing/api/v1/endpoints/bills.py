"""
Bill API Endpoints.

Bills, payments and status transitions:
- Bill listing and lookup (admins: all bills; customers: their own)
- Payment recording
- Status transitions by bill id or by customer and bill month
- Day-level breakdown and document data for a bill
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from dairy_billing.api.deps import DB, CurrentUser, AdminUser, ensure_customer_access
from dairy_billing.models.bill import BillStatus
from dairy_billing.schemas.bill import (
    BillResponse, BillListResponse, PaymentCreate, BillStatusUpdate, BillPeriodStatusUpdate
)
from dairy_billing.schemas.billing import PeriodBreakdown, BillDocument
from dairy_billing.services.bill_service import BillService
from dairy_billing.services.balance_reconciler import BalanceReconciler
from dairy_billing.services.payment_processor import PaymentProcessor
from dairy_billing.services.payment_policy import check_payment_window

router = APIRouter()


async def _get_visible_bill(db, bill_id: UUID, current_user):
    bill = await BillService(db).get_bill(bill_id)
    if not bill:
        raise HTTPException(status_code=404, detail="Bill not found")
    ensure_customer_access(current_user, bill.customer_id)
    return bill


# ============================================================================
# BILLS
# ============================================================================

@router.get(
    "",
    response_model=BillListResponse,
    summary="List Bills"
)
async def list_bills(
    db: DB,
    current_user: CurrentUser,
    customer_id: Optional[UUID] = None,
    bill_status: Optional[BillStatus] = Query(None, alias="status"),
    billing_period: Optional[str] = Query(None, pattern=r"^\d{4}-\d{2}$"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
):
    """List bills, newest period first. Customers only see their own."""
    if not current_user.is_admin:
        customer_id = current_user.customer_id

    bills, total = await BillService(db).list_bills(
        customer_id=customer_id,
        status=bill_status,
        billing_period=billing_period,
        skip=skip,
        limit=limit
    )
    return BillListResponse(
        items=[BillResponse.model_validate(b) for b in bills],
        total=total,
        skip=skip,
        limit=limit
    )


@router.get(
    "/customer/{customer_id}",
    response_model=BillListResponse,
    summary="List Customer Bills"
)
async def list_customer_bills(
    customer_id: UUID,
    db: DB,
    current_user: CurrentUser,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
):
    """All bills of one customer, newest period first."""
    ensure_customer_access(current_user, customer_id)
    bills, total = await BillService(db).list_bills(customer_id=customer_id, skip=skip, limit=limit)
    return BillListResponse(
        items=[BillResponse.model_validate(b) for b in bills],
        total=total,
        skip=skip,
        limit=limit
    )


@router.get(
    "/{bill_id}",
    response_model=BillResponse,
    summary="Get Bill"
)
async def get_bill(
    bill_id: UUID,
    db: DB,
    current_user: CurrentUser,
):
    """Get a bill with its payments."""
    return await _get_visible_bill(db, bill_id, current_user)


# ============================================================================
# PAYMENTS & STATUS
# ============================================================================

@router.post(
    "/{bill_id}/payments",
    response_model=BillResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record Payment"
)
async def record_payment(
    bill_id: UUID,
    data: PaymentCreate,
    db: DB,
    current_user: AdminUser,
):
    """
    Record a payment against a bill.

    The bill becomes paid once its payments cover the total. Overpayment is
    accepted and leaves the customer with advance credit.
    """
    bill = await BillService(db).get_bill(bill_id)
    if not bill:
        raise HTTPException(status_code=404, detail="Bill not found")
    check_payment_window(bill.billing_period)

    processor = PaymentProcessor(db)
    return await processor.record_payment(
        bill_id,
        data.amount,
        payment_method=data.payment_method,
        payment_date=data.payment_date,
        transaction_id=data.transaction_id,
        notes=data.notes,
        recorded_by=current_user.subject,
    )


@router.put(
    "/customer/{customer_id}/status",
    response_model=BillResponse,
    summary="Update Bill Status by Month"
)
async def update_status_by_month(
    customer_id: UUID,
    data: BillPeriodStatusUpdate,
    db: DB,
    current_user: AdminUser,
):
    """Status transition for the customer's bill of `bill_month` (YYYY-MM)."""
    processor = PaymentProcessor(db)
    return await processor.update_status_by_period(
        customer_id, data.bill_month, data.status, data.notes
    )


@router.put(
    "/{bill_id}/status",
    response_model=BillResponse,
    summary="Update Bill Status"
)
async def update_status(
    bill_id: UUID,
    data: BillStatusUpdate,
    db: DB,
    current_user: AdminUser,
):
    """Status transition. Never changes the customer's balance."""
    processor = PaymentProcessor(db)
    return await processor.update_status(bill_id, data.status, data.notes)


# ============================================================================
# TRANSPARENCY
# ============================================================================

@router.get(
    "/{bill_id}/breakdown",
    response_model=PeriodBreakdown,
    summary="Get Bill Day Breakdown"
)
async def get_bill_breakdown(
    bill_id: UUID,
    db: DB,
    current_user: CurrentUser,
):
    """Every day of the bill's month with its delivery record, plus a mismatch summary."""
    await _get_visible_bill(db, bill_id, current_user)
    return await BalanceReconciler(db).period_breakdown(bill_id)


@router.get(
    "/{bill_id}/document",
    response_model=BillDocument,
    summary="Get Bill Document Data"
)
async def get_bill_document(
    bill_id: UUID,
    db: DB,
    current_user: CurrentUser,
):
    """Data for rendering the bill document."""
    await _get_visible_bill(db, bill_id, current_user)
    return await BalanceReconciler(db).bill_document(bill_id)
