"""
Shared fixtures: an in-memory SQLite database per test and an API client
wired to it.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("SECRET_KEY", "test-secret")

import uuid
from datetime import date, timedelta
from decimal import Decimal
from typing import List, Optional

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from dairy_billing.database import init_db, get_db
from dairy_billing.core.security import create_access_token
from dairy_billing.models.delivery import DeliveryStatus, ProductType
from dairy_billing.schemas.customer import CustomerCreate, PerLiterPlanInput, SubscriptionPlanInput
from dairy_billing.schemas.delivery import DeliveryRecordCreate, AdditionalProductInput
from dairy_billing.services.customer_service import CustomerService
from dairy_billing.services.delivery_ledger_service import DeliveryLedgerService


# Billing tests run "today" in December 2024 and bill November 2024
TODAY = date(2024, 12, 5)
NOV_2024 = (2024, 11)


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_db(bind=engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    from dairy_billing.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    token = create_access_token("admin-1", additional_claims={"role": "admin"})
    return {"Authorization": f"Bearer {token}"}


def customer_headers(customer_id: uuid.UUID) -> dict:
    token = create_access_token(
        f"user-{customer_id.hex[:6]}",
        additional_claims={"role": "customer", "customer_id": str(customer_id)},
    )
    return {"Authorization": f"Bearer {token}"}


async def make_customer(
    db: AsyncSession,
    name: str = "Asha Rao",
    price_per_liter: Optional[str] = "60",
    subscription_amount: Optional[str] = None,
):
    if subscription_amount is not None:
        plan = SubscriptionPlanInput(subscription_amount=Decimal(subscription_amount))
    elif price_per_liter is not None:
        plan = PerLiterPlanInput(price_per_liter=Decimal(price_per_liter))
    else:
        plan = None
    return await CustomerService(db).create_customer(
        CustomerCreate(name=name, phone="9876543210", billing_plan=plan)
    )


async def record(
    db: AsyncSession,
    customer_id: uuid.UUID,
    day: date,
    quantity: str = "0",
    present: bool = True,
    extras: Optional[List[tuple]] = None,
):
    """Record one day; extras are (product_type, quantity, unit_price) tuples."""
    data = DeliveryRecordCreate(
        customer_id=customer_id,
        delivery_date=day,
        status=DeliveryStatus.PRESENT if present else DeliveryStatus.ABSENT,
        quantity=Decimal(quantity),
        additional_products=[
            AdditionalProductInput(
                product_type=ProductType(kind),
                quantity=Decimal(qty),
                unit_price=Decimal(price),
            )
            for kind, qty, price in (extras or [])
        ],
    )
    return await DeliveryLedgerService(db).record_delivery(data, recorded_by="test")


async def seed_per_liter_month(db: AsyncSession, customer_id: uuid.UUID) -> None:
    """5 L, absent, 4 L at 60/L plus 50 of eggs: 9 L, 540 milk, 590 total."""
    start = date(2024, 11, 1)
    await record(db, customer_id, start, "5", extras=[("eggs", "10", "5")])
    await record(db, customer_id, start + timedelta(days=1), present=False)
    await record(db, customer_id, start + timedelta(days=2), "4")
