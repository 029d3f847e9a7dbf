from datetime import date, timedelta

import pytest

API = "/api/v1/clinic"

ITEMS = [
    {"drug_name": "Paracetamol 500mg", "dosage": "1 tab", "frequency": "TDS", "duration": "3 days"},
    {"drug_name": "Cetirizine 10mg", "dosage": "1 tab", "frequency": "HS", "duration": "5 days", "route": "oral"},
]


async def _draft(client, headers, patient, doctor, **extra):
    return await client.post(f"{API}/prescriptions", json={
        "patient_id": str(patient.id),
        "doctor_id": str(doctor.id),
        "items": ITEMS,
        "instructions": " Plenty of fluids ",
        **extra,
    }, headers=headers)


async def test_draft_edit_and_issue(client, owner_headers, patient, doctor, make_user):
    response = await _draft(client, owner_headers, patient, doctor)
    assert response.status_code == 201
    prescription = response.json()["prescription"]
    assert prescription["prescription_number"] == f"RX-{date.today().year}-0001"
    assert prescription["status"] == "DRAFT"
    assert prescription["instructions"] == "Plenty of fluids"
    assert prescription["items"][1]["route"] == "oral"
    assert prescription["items"][0]["route"] is None

    url = f"{API}/prescriptions/{prescription['id']}"
    response = await client.patch(url, json={"items": ITEMS[:1]}, headers=owner_headers)
    assert [i["drug_name"] for i in response.json()["prescription"]["items"]] == ["Paracetamol 500mg"]
    assert response.json()["prescription"]["instructions"] == "Plenty of fluids"

    response = await client.post(f"{url}/issue", json={"validity_days": 7}, headers=owner_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Prescription issued successfully"
    assert body["prescription"]["status"] == "ISSUED"
    assert body["prescription"]["issued_at"] is not None
    assert body["prescription"]["valid_until"] == (date.today() + timedelta(days=7)).isoformat()

    response = await client.patch(url, json={"instructions": "late change"}, headers=owner_headers)
    assert response.json() == {"error": "Only DRAFT prescriptions can be edited"}
    response = await client.post(f"{url}/issue", headers=owner_headers)
    assert response.json() == {"error": "Only DRAFT prescriptions can be issued"}
    response = await client.delete(url, headers=owner_headers)
    assert response.json() == {"error": "Only DRAFT prescriptions can be deleted"}

    # issued prescriptions show up in the patient's portal
    _, portal_headers = await make_user(phone=patient.phone)
    response = await client.get("/api/v1/patient/prescriptions", headers=portal_headers)
    assert [p["status"] for p in response.json()["prescriptions"]] == ["ISSUED"]


async def test_issue_defaults_to_thirty_days(client, owner_headers, patient, doctor):
    prescription = (await _draft(client, owner_headers, patient, doctor)).json()["prescription"]
    response = await client.post(f"{API}/prescriptions/{prescription['id']}/issue", headers=owner_headers)
    assert response.json()["prescription"]["valid_until"] == (date.today() + timedelta(days=30)).isoformat()


async def test_issue_needs_medication(client, owner_headers, patient, doctor):
    prescription = (await _draft(client, owner_headers, patient, doctor, items=[])).json()["prescription"]
    response = await client.post(f"{API}/prescriptions/{prescription['id']}/issue", headers=owner_headers)
    assert response.json() == {"error": "Prescription must have at least one medication"}


async def test_numbering_and_listing(client, owner_headers, patient, doctor):
    first = (await _draft(client, owner_headers, patient, doctor)).json()["prescription"]
    second = (await _draft(client, owner_headers, patient, doctor)).json()["prescription"]
    assert second["prescription_number"].endswith("-0002")
    await client.post(f"{API}/prescriptions/{first['id']}/issue", headers=owner_headers)

    response = await client.get(f"{API}/prescriptions", headers=owner_headers)
    assert response.json()["pagination"]["total"] == 2

    response = await client.get(f"{API}/prescriptions", params={"status": "DRAFT"}, headers=owner_headers)
    assert [p["id"] for p in response.json()["prescriptions"]] == [second["id"]]

    response = await client.get(f"{API}/prescriptions", params={"status": "VOID"}, headers=owner_headers)
    assert response.status_code == 400

    response = await client.delete(f"{API}/prescriptions/{second['id']}", headers=owner_headers)
    assert response.json() == {"success": True, "message": "Prescription deleted"}
    response = await client.get(f"{API}/prescriptions/{second['id']}", headers=owner_headers)
    assert response.status_code == 404
    assert response.json() == {"error": "Prescription not found"}


async def test_item_validation(client, owner_headers, patient, doctor):
    response = await _draft(client, owner_headers, patient, doctor, items=[
        {"drug_name": "Amoxicillin", "dosage": "500mg", "frequency": "TDS", "duration": ""},
        {"dosage": "1 tab", "frequency": "OD", "duration": "1 day"},
    ])
    assert response.status_code == 400
    assert response.json() == {
        "error": "Invalid prescription items",
        "details": ["Item 1: duration is required", "Item 2: drug_name is required"],
    }


async def test_create_requires_clinic_patient_and_doctor(client, owner_headers, patient, doctor):
    response = await client.post(f"{API}/prescriptions", json={"patient_id": str(patient.id)},
                                 headers=owner_headers)
    assert response.json() == {"error": "patient_id and doctor_id are required"}

    response = await client.post(f"{API}/prescriptions", json={
        "patient_id": "00000000-0000-0000-0000-000000000000", "doctor_id": str(doctor.id),
    }, headers=owner_headers)
    assert response.status_code == 404
    assert response.json() == {"error": "Patient not found in your clinic"}


@pytest.mark.parametrize("role, status", [("DOCTOR", 201), ("RECEPTIONIST", 403)])
async def test_writing_prescriptions_by_role(client, add_staff, patient, doctor, role, status):
    _, headers = await add_staff(role, f"{role.lower()}@example.com")
    response = await _draft(client, headers, patient, doctor)
    assert response.status_code == status
