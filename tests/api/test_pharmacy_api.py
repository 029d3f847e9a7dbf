from datetime import date, timedelta

import pytest

from app.db.models import Clinic, InventoryBatch, Product

API = "/api/v1/clinic/pharmacy"


async def _add_stock(client, headers, name="Paracetamol 500mg", quantity=10, price=5.0, expiry=None):
    response = await client.post(f"{API}/inventory", json={
        "product_name": name,
        "generic_name": "Acetaminophen",
        "unit": "tablet",
        "batch_number": "B-001",
        "expiry_date": (expiry or date.today() + timedelta(days=365)).isoformat(),
        "quantity": quantity,
        "purchase_price": 3,
        "selling_price": price,
    }, headers=headers)
    assert response.status_code == 201
    return response.json()["batch"]


def _line(batch, quantity, unit_price=5.0):
    return {
        "product_id": batch["product"]["id"],
        "batch_id": batch["id"],
        "product_name": batch["product"]["name"],
        "quantity": quantity,
        "unit_price": unit_price,
    }


@pytest.fixture
async def pharmacist(add_staff):
    _, headers = await add_staff("PHARMACY", "pharma@example.com")
    return headers


async def test_cash_sale_decrements_stock(client, pharmacist):
    batch = await _add_stock(client, pharmacist)

    response = await client.post(f"{API}/sale", json={
        "items": [_line(batch, 4)],
        "amount_paid": 50,
    }, headers=pharmacist)
    assert response.status_code == 200
    body = response.json()
    sale = body["sale"]
    assert sale["sale_number"] == f"SALE-{date.today():%Y%m%d}-0001"
    assert sale["total"] == 20
    assert sale["amount_due"] == 0
    assert "Sunrise Clinic" in body["receipt"]
    assert "Change:" in body["receipt"]

    response = await client.get(f"{API}/inventory", headers=pharmacist)
    assert response.json()["batches"][0]["quantity"] == 6


async def test_sale_numbers_continue_from_last(client, pharmacist):
    batch = await _add_stock(client, pharmacist)
    numbers = []
    for _ in range(2):
        response = await client.post(f"{API}/sale", json={"items": [_line(batch, 1)]}, headers=pharmacist)
        numbers.append(response.json()["sale"]["sale_number"])
    assert [n[-4:] for n in numbers] == ["0001", "0002"]


async def test_sale_that_empties_batch_deactivates_it(client, pharmacist):
    batch = await _add_stock(client, pharmacist, quantity=3)
    response = await client.post(f"{API}/sale", json={"items": [_line(batch, 3)]}, headers=pharmacist)
    assert response.status_code == 200

    response = await client.get(f"{API}/inventory", headers=pharmacist)
    assert response.json()["batches"] == []

    response = await client.get(f"{API}/inventory", params={"includeInactive": "true"}, headers=pharmacist)
    batches = response.json()["batches"]
    assert batches[0]["quantity"] == 0
    assert batches[0]["is_active"] is False


async def test_insufficient_stock_counts_repeated_lines(client, pharmacist):
    batch = await _add_stock(client, pharmacist, quantity=5)
    response = await client.post(f"{API}/sale", json={
        "items": [_line(batch, 3), _line(batch, 3)],
    }, headers=pharmacist)
    assert response.status_code == 400
    assert response.json() == {"error": "Insufficient stock for Paracetamol 500mg. Available: 5"}


async def test_sale_validation(client, pharmacist, db):
    response = await client.post(f"{API}/sale", json={"items": []}, headers=pharmacist)
    assert response.json() == {"error": "Cart is empty"}

    batch = await _add_stock(client, pharmacist)
    response = await client.post(f"{API}/sale", json={"items": [_line(batch, 0)]}, headers=pharmacist)
    assert response.json() == {"error": "Invalid quantity for product: Paracetamol 500mg"}

    other = Clinic(name="Other", slug="other-clinic", address="Patan", phone="9801111111", email="o@example.com")
    db.add(other)
    await db.flush()
    product = Product(clinic_id=other.id, name="Foreign")
    db.add(product)
    await db.flush()
    foreign = InventoryBatch(clinic_id=other.id, product_id=product.id, batch_number="X", quantity=100)
    db.add(foreign)
    await db.commit()

    response = await client.post(f"{API}/sale", json={"items": [{
        "batch_id": str(foreign.id),
        "product_name": "Foreign",
        "quantity": 1,
    }]}, headers=pharmacist)
    assert response.json() == {"error": "Invalid batch for product: Foreign"}


async def test_credit_sale_and_payment(client, pharmacist):
    batch = await _add_stock(client, pharmacist, price=100)
    response = await client.post(f"{API}/credit-accounts", json={
        "name": "Bishnu KC",
        "phone": "9800000001",
        "credit_limit": 5000,
    }, headers=pharmacist)
    assert response.status_code == 201
    account_id = response.json()["account"]["id"]

    response = await client.post(f"{API}/sale", json={
        "items": [_line(batch, 2, unit_price=100)],
        "is_credit": True,
        "credit_account_id": account_id,
        "payment_mode": "CASH",
    }, headers=pharmacist)
    assert response.status_code == 200
    sale = response.json()["sale"]
    assert sale["is_credit"] is True
    assert sale["amount_paid"] == 0
    assert sale["amount_due"] == 200
    assert "Balance Due:" in response.json()["receipt"]

    response = await client.get(f"{API}/credit-accounts", params={"search": "bishnu"}, headers=pharmacist)
    assert response.json()["accounts"][0]["current_balance"] == 200

    url = f"{API}/credit-accounts/{account_id}/payment"
    response = await client.post(url, json={"amount": 500}, headers=pharmacist)
    assert response.status_code == 400
    assert response.json() == {"error": "Payment amount exceeds outstanding balance"}

    response = await client.post(url, json={"amount": 150, "payment_mode": "ESEWA"}, headers=pharmacist)
    assert response.status_code == 200
    body = response.json()
    assert body["account"]["current_balance"] == 50
    assert body["transaction"]["type"] == "PAYMENT"
    assert body["transaction"]["balance"] == 50

    response = await client.get(f"{API}/credit-accounts/{account_id}", headers=pharmacist)
    assert response.status_code == 200
    detail = response.json()
    assert detail["account"]["current_balance"] == 50
    assert [t["type"] for t in detail["transactions"]] == ["PAYMENT", "SALE"]
    assert [t["balance"] for t in detail["transactions"]] == [50, 200]
    assert [s["sale_number"] for s in detail["sales"]] == [sale["sale_number"]]
    assert detail["sales"][0]["amount_due"] == 200


async def test_credit_account_detail_not_found(client, pharmacist):
    response = await client.get(f"{API}/credit-accounts/00000000-0000-0000-0000-000000000000",
                                headers=pharmacist)
    assert response.status_code == 404
    assert response.json() == {"error": "Credit account not found"}


async def test_credit_sale_requires_account(client, pharmacist):
    batch = await _add_stock(client, pharmacist)
    response = await client.post(f"{API}/sale", json={
        "items": [_line(batch, 1)],
        "is_credit": True,
    }, headers=pharmacist)
    assert response.json() == {"error": "Credit account is required for credit sale"}


async def test_duplicate_credit_account_phone(client, pharmacist):
    payload = {"name": "Bishnu KC", "phone": "9800000001"}
    await client.post(f"{API}/credit-accounts", json=payload, headers=pharmacist)
    response = await client.post(f"{API}/credit-accounts", json=payload, headers=pharmacist)
    assert response.status_code == 400
    assert response.json() == {"error": "A credit account with this phone number already exists"}


async def test_inventory_expiring_filter(client, pharmacist):
    await _add_stock(client, pharmacist, name="Amoxicillin", expiry=date.today() + timedelta(days=10))
    await _add_stock(client, pharmacist, name="Cetirizine", expiry=date.today() + timedelta(days=400))

    response = await client.get(f"{API}/inventory", params={"expiringWithinDays": 30}, headers=pharmacist)
    body = response.json()
    assert [b["product"]["name"] for b in body["batches"]] == ["Amoxicillin"]
    assert body["totalUnits"] == 10

    response = await client.get(f"{API}/inventory", params={"search": "cetir"}, headers=pharmacist)
    assert [b["product"]["name"] for b in response.json()["batches"]] == ["Cetirizine"]


async def test_add_stock_validation(client, pharmacist):
    response = await client.post(f"{API}/inventory", json={
        "batch_number": "B-1", "quantity": 5, "selling_price": 1,
    }, headers=pharmacist)
    assert response.json() == {"error": "Product is required"}

    response = await client.post(f"{API}/inventory", json={
        "product_name": "X", "batch_number": "B-1", "quantity": 0, "selling_price": 1,
    }, headers=pharmacist)
    assert response.json() == {"error": "Quantity must be greater than 0"}


async def test_nurse_has_no_pharmacy_access(client, add_staff):
    _, headers = await add_staff("NURSE", "nurse@example.com")
    response = await client.get(f"{API}/inventory", headers=headers)
    assert response.status_code == 403
    assert response.json()["code"] == "permission_denied"
