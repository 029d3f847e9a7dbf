from datetime import date, timedelta

import pytest

API = "/api/v1/clinic/pharmacy"

NEXT_YEAR = (date.today() + timedelta(days=365)).isoformat()


@pytest.fixture
async def pharmacist(add_staff):
    _, headers = await add_staff("PHARMACY", "pharma@example.com")
    return headers


async def _supplier(client, headers, name="Himal Pharma Traders"):
    response = await client.post(f"{API}/suppliers", json={
        "name": name, "contact_name": "Binod", "phone": "014412345", "payment_terms": "30 days",
    }, headers=headers)
    assert response.status_code == 201
    return response.json()["supplier"]


async def _product(client, headers, **extra):
    payload = {"name": "Amoxicillin 500mg", "generic_name": "Amoxicillin", "min_stock_level": 20, **extra}
    response = await client.post(f"{API}/products", json=payload, headers=headers)
    assert response.status_code == 201
    return response.json()["product"]


def _item(product, batch_number="AMX-01", quantity=30, **extra):
    return {
        "product_id": product["id"],
        "batch_number": batch_number,
        "expiry_date": NEXT_YEAR,
        "quantity": quantity,
        "purchase_price": 8,
        "mrp": 15,
        "selling_price": 12,
        **extra,
    }


async def test_supplier_lifecycle(client, pharmacist):
    supplier = await _supplier(client, pharmacist)
    assert supplier["payment_terms"] == "30 days"
    assert supplier["is_active"] is True

    response = await client.post(f"{API}/suppliers", json={"name": "himal pharma traders"}, headers=pharmacist)
    assert response.status_code == 400
    assert response.json() == {"error": "A supplier with this name already exists"}

    response = await client.post(f"{API}/suppliers", json={"name": " "}, headers=pharmacist)
    assert response.json() == {"error": "Supplier name is required"}

    url = f"{API}/suppliers/{supplier['id']}"
    response = await client.patch(url, json={"is_active": False, "notes": "Closed"}, headers=pharmacist)
    assert response.json()["supplier"]["is_active"] is False
    assert response.json()["supplier"]["name"] == "Himal Pharma Traders"

    response = await client.get(f"{API}/suppliers", params={"isActive": "true"}, headers=pharmacist)
    assert response.json()["suppliers"] == []
    response = await client.get(f"{API}/suppliers", params={"search": "himal"}, headers=pharmacist)
    assert [s["id"] for s in response.json()["suppliers"]] == [supplier["id"]]

    response = await client.delete(url, headers=pharmacist)
    assert response.json() == {"success": True, "message": "Supplier deleted"}


async def test_supplier_with_products_cannot_be_deleted(client, pharmacist):
    supplier = await _supplier(client, pharmacist)
    await _product(client, pharmacist, supplier_id=supplier["id"])
    response = await client.delete(f"{API}/suppliers/{supplier['id']}", headers=pharmacist)
    assert response.status_code == 400
    assert response.json() == {
        "error": "Cannot delete supplier with linked products or purchases. Deactivate it instead."
    }


async def test_product_catalogue(client, pharmacist):
    product = await _product(client, pharmacist, barcode="8901234567890")
    assert product["category"] == "MEDICINE"
    assert product["unit"] == "strip"
    assert product["total_stock"] == 0
    assert product["low_stock"] is True

    response = await client.post(f"{API}/products", json={"name": "Other", "barcode": "8901234567890"},
                                 headers=pharmacist)
    assert response.json() == {"error": "A product with this barcode already exists"}

    response = await client.post(f"{API}/products", json={"generic_name": "Nothing"}, headers=pharmacist)
    assert response.json() == {"error": "Product name is required"}

    response = await client.post(f"{API}/products", json={
        "name": "Orphan", "supplier_id": "00000000-0000-0000-0000-000000000000",
    }, headers=pharmacist)
    assert response.status_code == 404
    assert response.json() == {"error": "Supplier not found"}

    response = await client.patch(f"{API}/products/{product['id']}", json={"min_stock_level": 5, "unit": "tablet"},
                                  headers=pharmacist)
    assert response.json()["product"]["unit"] == "tablet"
    assert response.json()["product"]["min_stock_level"] == 5

    response = await client.get(f"{API}/products", params={"search": "8901234"}, headers=pharmacist)
    body = response.json()
    assert [p["id"] for p in body["products"]] == [product["id"]]
    assert body["pagination"]["total"] == 1

    response = await client.delete(f"{API}/products/{product['id']}", headers=pharmacist)
    assert response.json() == {"success": True, "message": "Product deleted"}


async def test_purchase_creates_then_tops_up_batches(client, pharmacist):
    supplier = await _supplier(client, pharmacist)
    product = await _product(client, pharmacist, supplier_id=supplier["id"])

    response = await client.post(f"{API}/purchases", json={
        "supplier_id": supplier["id"],
        "invoice_number": "INV-100",
        "items": [_item(product)],
    }, headers=pharmacist)
    assert response.status_code == 201
    body = response.json()
    assert body["summary"] == {
        "total_items": 1, "created": 1, "updated": 0, "total_quantity": 30, "total_value": 240,
    }
    assert body["supplier"]["name"] == "Himal Pharma Traders"
    assert body["batches"][0]["quantity"] == 30

    response = await client.post(f"{API}/purchases", json={
        "supplier_id": supplier["id"],
        "invoice_number": "INV-101",
        "items": [_item(product, quantity=10, selling_price=13)],
    }, headers=pharmacist)
    body = response.json()
    assert body["summary"]["updated"] == 1
    assert body["batches"][0]["quantity"] == 40
    assert body["batches"][0]["selling_price"] == 13

    response = await client.get(f"{API}/products", headers=pharmacist)
    listed = response.json()["products"][0]
    assert listed["total_stock"] == 40
    assert listed["low_stock"] is False

    response = await client.get(f"{API}/purchases", params={"supplierId": supplier["id"]}, headers=pharmacist)
    purchases = response.json()["purchases"]
    assert [p["invoice_number"] for p in purchases] == ["INV-101"]
    assert purchases[0]["received_date"] == date.today().isoformat()

    # stock on hand keeps the product from being deleted
    response = await client.delete(f"{API}/products/{product['id']}", headers=pharmacist)
    assert response.json() == {"error": "Cannot delete product with existing stock. Deactivate it instead."}


async def test_purchase_validation(client, pharmacist):
    supplier = await _supplier(client, pharmacist)
    product = await _product(client, pharmacist)

    response = await client.post(f"{API}/purchases", json={"items": [_item(product)]}, headers=pharmacist)
    assert response.json() == {"error": "Supplier is required"}

    response = await client.post(f"{API}/purchases", json={"supplier_id": supplier["id"]}, headers=pharmacist)
    assert response.json() == {"error": "At least one item is required"}

    response = await client.post(f"{API}/purchases", json={
        "supplier_id": supplier["id"],
        "items": [_item({"id": "00000000-0000-0000-0000-000000000000"})],
    }, headers=pharmacist)
    assert response.json() == {"error": "One or more invalid products"}

    response = await client.post(f"{API}/purchases", json={
        "supplier_id": supplier["id"],
        "items": [
            _item(product),
            _item(product, batch_number="", quantity=0, expiry_date=date.today().isoformat()),
        ],
    }, headers=pharmacist)
    assert response.status_code == 400
    assert response.json() == {
        "error": "Validation failed",
        "details": [
            "Item 2: Batch number is required",
            "Item 2: Expiry date must be in the future",
            "Item 2: Quantity must be greater than 0",
        ],
    }

    await client.patch(f"{API}/suppliers/{supplier['id']}", json={"is_active": False}, headers=pharmacist)
    response = await client.post(f"{API}/purchases", json={
        "supplier_id": supplier["id"], "items": [_item(product)],
    }, headers=pharmacist)
    assert response.json() == {"error": "Invalid supplier"}


async def test_catalogue_needs_pharmacy_permission(client, add_staff):
    _, headers = await add_staff("RECEPTIONIST", "front@example.com")
    response = await client.get(f"{API}/products", headers=headers)
    assert response.status_code == 403
    assert response.json()["code"] == "permission_denied"
