from fastapi import APIRouter

from dairy_billing.api.v1.endpoints import (
    customers,
    deliveries,
    billing,
    bills,
    reconciliation,
)


api_router = APIRouter(prefix="/api/v1")

api_router.include_router(
    customers.router,
    prefix="/customers",
    tags=["Customers"]
)
api_router.include_router(
    deliveries.router,
    prefix="/deliveries",
    tags=["Deliveries"]
)
api_router.include_router(
    billing.router,
    prefix="/billing",
    tags=["Bill Generation"]
)
api_router.include_router(
    bills.router,
    prefix="/bills",
    tags=["Bills & Payments"]
)
api_router.include_router(
    reconciliation.router,
    prefix="/reconciliation",
    tags=["Balance Reconciliation"]
)
