"""
Balance Reconciliation API Endpoints.
"""
from uuid import UUID

from fastapi import APIRouter

from dairy_billing.api.deps import DB, CurrentUser, AdminUser, ensure_customer_access
from dairy_billing.schemas.billing import ReconciliationResult, ReconciliationReport
from dairy_billing.services.balance_reconciler import BalanceReconciler

router = APIRouter()


@router.get(
    "",
    response_model=ReconciliationReport,
    summary="Reconcile All Customers"
)
async def reconcile_all(
    db: DB,
    current_user: AdminUser,
    place_holds: bool = False,
):
    """Report every customer whose stored balance disagrees with the ledger."""
    return await BalanceReconciler(db).reconcile_all(place_holds=place_holds)


@router.get(
    "/{customer_id}",
    response_model=ReconciliationResult,
    summary="Reconcile Customer Balance"
)
async def reconcile_customer(
    customer_id: UUID,
    db: DB,
    current_user: CurrentUser,
):
    """Compare the stored balance with the one computed from bills and payments."""
    ensure_customer_access(current_user, customer_id)
    return await BalanceReconciler(db).reconcile(customer_id)


@router.post(
    "/{customer_id}/verify",
    response_model=ReconciliationResult,
    summary="Verify Customer Balance"
)
async def verify_customer(
    customer_id: UUID,
    db: DB,
    current_user: AdminUser,
):
    """Reconcile; on a discrepancy the customer is put on billing hold and 500 is returned."""
    return await BalanceReconciler(db).verify(customer_id)


@router.post(
    "/{customer_id}/release-hold",
    response_model=ReconciliationResult,
    summary="Release Billing Hold"
)
async def release_hold(
    customer_id: UUID,
    db: DB,
    current_user: AdminUser,
):
    """Clear the billing hold once the balance agrees with the ledger."""
    return await BalanceReconciler(db).release_hold(customer_id)
