from decimal import Decimal
import uuid

from conftest import customer_headers


async def _create_customer(client, headers, name="Asha Rao", price="60"):
    response = await client.post(
        "/api/v1/customers",
        json={
            "name": name,
            "phone": "9876543210",
            "billing_plan": {"billing_type": "per_liter", "price_per_liter": price},
        },
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


async def _seed_november(client, headers, customer_id):
    entries = [
        {"delivery_date": "2024-11-01", "customer_id": customer_id, "status": "present", "quantity": "5",
         "additional_products": [{"product_type": "eggs", "quantity": "10", "unit_price": "5"}]},
        {"delivery_date": "2024-11-02", "customer_id": customer_id, "status": "absent"},
        {"delivery_date": "2024-11-03", "customer_id": customer_id, "status": "present", "quantity": "4"},
    ]
    for entry in entries:
        response = await client.post("/api/v1/deliveries", json=entry, headers=headers)
        assert response.status_code == 201, response.text


async def _generate(client, headers, customer_id):
    response = await client.post(
        "/api/v1/billing/generate",
        json={"year": 2024, "month": 11, "customer_ids": [customer_id]},
        headers=headers,
    )
    assert response.status_code == 200, response.text
    return response.json()


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


async def test_requires_token(client):
    response = await client.get("/api/v1/bills")
    assert response.status_code in (401, 403)


async def test_customer_role_cannot_generate(client):
    response = await client.post(
        "/api/v1/billing/generate",
        json={"year": 2024, "month": 11},
        headers=customer_headers(uuid.uuid4()),
    )
    assert response.status_code == 403


async def test_billing_flow(client, admin_headers):
    customer = await _create_customer(client, admin_headers)
    await _seed_november(client, admin_headers, customer["id"])

    run = await _generate(client, admin_headers, customer["id"])
    assert run["bills_generated"] == 1
    assert run["errors"] == 0

    listing = (await client.get(f"/api/v1/bills/customer/{customer['id']}", headers=admin_headers)).json()
    assert listing["total"] == 1
    bill = listing["items"][0]
    assert Decimal(bill["total_amount"]) == Decimal("590")
    assert bill["billing_period"] == "2024-11"

    paid = await client.post(
        f"/api/v1/bills/{bill['id']}/payments",
        json={"amount": "600", "payment_method": "online", "transaction_id": "UPI-42"},
        headers=admin_headers,
    )
    assert paid.status_code == 201, paid.text
    assert paid.json()["status"] == "paid"
    assert Decimal(paid.json()["excess_paid"]) == Decimal("10")

    account = (await client.get(f"/api/v1/customers/{customer['id']}", headers=admin_headers)).json()
    assert Decimal(account["balance_due"]) == Decimal("-10")
    assert account["has_advance_credit"] is True

    reconciliation = (await client.get(
        f"/api/v1/reconciliation/{customer['id']}", headers=admin_headers
    )).json()
    assert reconciliation["is_consistent"] is True

    breakdown = (await client.get(f"/api/v1/bills/{bill['id']}/breakdown", headers=admin_headers)).json()
    assert len(breakdown["days"]) == 30
    assert breakdown["summary"]["has_mismatch"] is False

    statement = (await client.get(
        f"/api/v1/customers/{customer['id']}/statement", headers=admin_headers
    )).json()
    assert Decimal(statement["closing_balance"]) == Decimal("-10")


async def test_duplicate_generation_returns_conflict(client, admin_headers):
    customer = await _create_customer(client, admin_headers)
    await _seed_november(client, admin_headers, customer["id"])
    await _generate(client, admin_headers, customer["id"])

    rerun = await _generate(client, admin_headers, customer["id"])
    assert rerun["bills_generated"] == 0
    assert rerun["errors"] == 1

    response = await client.post(
        f"/api/v1/billing/generate/{customer['id']}",
        json={"year": 2024, "month": 11},
        headers=admin_headers,
    )
    assert response.status_code == 409
    assert response.json()["type"] == "DuplicateBillError"


async def test_billed_period_delivery_edit_is_rejected(client, admin_headers):
    customer = await _create_customer(client, admin_headers)
    await _seed_november(client, admin_headers, customer["id"])
    await _generate(client, admin_headers, customer["id"])

    response = await client.post(
        "/api/v1/deliveries",
        json={"delivery_date": "2024-11-10", "customer_id": customer["id"], "status": "present", "quantity": "1"},
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert response.json()["type"] == "BilledPeriodLockedError"


async def test_payment_validation_errors(client, admin_headers):
    customer = await _create_customer(client, admin_headers)
    await _seed_november(client, admin_headers, customer["id"])
    await _generate(client, admin_headers, customer["id"])
    bill = (await client.get("/api/v1/bills", headers=admin_headers)).json()["items"][0]

    zero = await client.post(
        f"/api/v1/bills/{bill['id']}/payments", json={"amount": "0"}, headers=admin_headers
    )
    assert zero.status_code == 400
    assert zero.json()["error"] == "amount must be positive"

    missing = await client.post(
        f"/api/v1/bills/{uuid.uuid4()}/payments", json={"amount": "10"}, headers=admin_headers
    )
    assert missing.status_code == 404


async def test_status_update_by_bill_month(client, admin_headers):
    customer = await _create_customer(client, admin_headers)
    await _seed_november(client, admin_headers, customer["id"])
    await _generate(client, admin_headers, customer["id"])
    bill = (await client.get("/api/v1/bills", headers=admin_headers)).json()["items"][0]

    early = await client.put(
        f"/api/v1/bills/customer/{customer['id']}/status",
        json={"bill_month": "2024-11", "status": "paid"},
        headers=admin_headers,
    )
    assert early.status_code == 400

    await client.post(f"/api/v1/bills/{bill['id']}/payments", json={"amount": "590"}, headers=admin_headers)
    approved = await client.put(
        f"/api/v1/bills/customer/{customer['id']}/status",
        json={"bill_month": "2024-11", "status": "paid", "notes": "proof approved"},
        headers=admin_headers,
    )
    assert approved.status_code == 200, approved.text
    assert approved.json()["notes"] == "proof approved"


async def test_customer_sees_only_own_bills(client, admin_headers):
    mine = await _create_customer(client, admin_headers, name="Mine")
    theirs = await _create_customer(client, admin_headers, name="Theirs")
    for customer in (mine, theirs):
        await _seed_november(client, admin_headers, customer["id"])
        await _generate(client, admin_headers, customer["id"])

    headers = customer_headers(uuid.UUID(mine["id"]))
    own = (await client.get("/api/v1/bills", headers=headers)).json()
    assert own["total"] == 1
    assert own["items"][0]["customer_id"] == mine["id"]

    other = await client.get(f"/api/v1/bills/customer/{theirs['id']}", headers=headers)
    assert other.status_code == 403
    statement = await client.get(f"/api/v1/customers/{theirs['id']}/statement", headers=headers)
    assert statement.status_code == 403


async def test_verify_reports_integrity_fault(client, admin_headers, db):
    from dairy_billing.services.balance import BalanceCounter

    customer = await _create_customer(client, admin_headers)
    customer_id = uuid.UUID(customer["id"])
    await BalanceCounter(db).apply(customer_id, Decimal("12.50"))
    await db.commit()

    response = await client.post(f"/api/v1/reconciliation/{customer_id}/verify", headers=admin_headers)
    assert response.status_code == 500
    assert response.json()["type"] == "IntegrityFault"

    report = (await client.get("/api/v1/reconciliation", headers=admin_headers)).json()
    assert report["inconsistent"][0]["billing_hold"] is True
