from datetime import date

API = "/api/v1/clinic"


def _items():
    return [
        {"service_id": "consult", "name": "Consultation", "quantity": 1, "unit_price": 500},
        {"service_id": "cbc", "name": "CBC", "quantity": 2, "unit_price": 350},
    ]


async def test_create_invoice(client, owner_headers, patient):
    response = await client.post(f"{API}/invoices", json={
        "patient_id": str(patient.id),
        "items": _items(),
        "discount": 100,
        "tax": 50,
        "payment_mode": "ESEWA",
    }, headers=owner_headers)
    assert response.status_code == 201
    invoice = response.json()["invoice"]
    assert invoice["invoice_number"] == f"INV-{date.today().year}-0001"
    assert invoice["subtotal"] == 1200
    assert invoice["total"] == 1150
    assert invoice["items"][1]["amount"] == 700
    assert invoice["payment_mode"] == "ESEWA"
    assert invoice["payment_status"] == "PENDING"
    assert invoice["patient"]["full_name"] == "Sita Gurung"


async def test_invoice_numbers_increase(client, owner_headers, patient):
    numbers = []
    for _ in range(2):
        response = await client.post(f"{API}/invoices", json={
            "patient_id": str(patient.id),
            "items": _items(),
        }, headers=owner_headers)
        numbers.append(response.json()["invoice"]["invoice_number"])
    assert [n[-4:] for n in numbers] == ["0001", "0002"]


async def test_unknown_payment_mode_falls_back_to_cash(client, owner_headers, patient):
    response = await client.post(f"{API}/invoices", json={
        "patient_id": str(patient.id),
        "items": _items(),
        "payment_mode": "BARTER",
    }, headers=owner_headers)
    assert response.json()["invoice"]["payment_mode"] == "CASH"


async def test_invoice_validation(client, owner_headers, patient):
    response = await client.post(f"{API}/invoices", json={"items": _items()}, headers=owner_headers)
    assert response.json() == {"error": "Patient is required"}

    response = await client.post(f"{API}/invoices", json={"patient_id": str(patient.id), "items": []},
                                 headers=owner_headers)
    assert response.json() == {"error": "At least one item is required"}

    bad_items = [{"service_id": "x", "name": "X", "quantity": 0, "unit_price": 10}]
    response = await client.post(f"{API}/invoices", json={"patient_id": str(patient.id), "items": bad_items},
                                 headers=owner_headers)
    assert response.json() == {"error": "Invalid item data"}


async def test_invoice_detail_and_payment_update(client, owner_headers, patient):
    response = await client.post(f"{API}/invoices", json={
        "patient_id": str(patient.id),
        "items": _items(),
    }, headers=owner_headers)
    invoice_id = response.json()["invoice"]["id"]

    response = await client.get(f"{API}/invoices/{invoice_id}", headers=owner_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["clinic"]["name"] == "Sunrise Clinic"
    assert body["invoice"]["patient"]["address"] == "Pokhara"
    assert body["invoice"]["appointment"] is None

    response = await client.patch(f"{API}/invoices/{invoice_id}", json={"payment_status": "PAID"},
                                  headers=owner_headers)
    assert response.json()["invoice"]["payment_status"] == "PAID"

    response = await client.patch(f"{API}/invoices/{invoice_id}", json={"payment_status": "MAYBE"},
                                  headers=owner_headers)
    assert response.status_code == 400

    response = await client.get(f"{API}/invoices", params={"paymentStatus": "PAID"}, headers=owner_headers)
    body = response.json()
    assert body["total"] == 1
    assert body["totalPages"] == 1


async def test_list_invoices_rejects_bad_dates(client, owner_headers):
    response = await client.get(f"{API}/invoices", params={"dateFrom": "yesterday"}, headers=owner_headers)
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid dateFrom. Use YYYY-MM-DD"}


async def test_services(client, owner_headers):
    response = await client.post(f"{API}/services", json={"name": " X-Ray ", "price": 800, "category": "Radiology"},
                                 headers=owner_headers)
    assert response.status_code == 201
    assert response.json()["service"]["name"] == "X-Ray"

    response = await client.post(f"{API}/services", json={"name": "Free", "price": -1}, headers=owner_headers)
    assert response.json() == {"error": "Valid price is required"}

    response = await client.get(f"{API}/services", headers=owner_headers)
    assert [s["name"] for s in response.json()["services"]] == ["X-Ray"]


async def test_billing_staff_can_invoice(client, add_staff, patient):
    _, headers = await add_staff("BILLING", "billing@example.com")
    response = await client.post(f"{API}/invoices", json={
        "patient_id": str(patient.id),
        "items": _items(),
    }, headers=headers)
    assert response.status_code == 201


async def test_receptionist_cannot_invoice(client, add_staff, patient):
    _, headers = await add_staff("RECEPTIONIST", "front@example.com")
    response = await client.post(f"{API}/invoices", json={
        "patient_id": str(patient.id),
        "items": _items(),
    }, headers=headers)
    assert response.status_code == 403
    assert response.json() == {
        "error": "Permission 'billing' required. Your role (RECEPTIONIST) does not have this permission.",
        "code": "permission_denied",
    }
