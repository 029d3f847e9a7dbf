from datetime import date, time, timedelta
from uuid import UUID

import pytest

from app.db.models import Appointment, LabOrder, LabResult, LabTest, Prescription

API = "/api/v1/patient"


async def _appointment(db, clinic, doctor, patient, day, status="SCHEDULED", token=1):
    appointment = Appointment(
        clinic_id=clinic.id,
        doctor_id=doctor.id,
        patient_id=patient.id,
        appointment_date=day,
        time_slot_start=time(9, 0),
        time_slot_end=time(9, 15),
        token_number=token,
        status=status,
    )
    db.add(appointment)
    await db.commit()
    return appointment


async def test_family_member_lifecycle(client, make_user):
    _, headers = await make_user(email="parent@example.com")

    response = await client.post(f"{API}/family-members", json={
        "name": " Aarav ",
        "relation": "CHILD",
        "date_of_birth": "2018-04-01",
        "gender": "male",
        "blood_group": "O+",
        "phone": "98 4111 1111",
    }, headers=headers)
    assert response.status_code == 201
    member = response.json()["family_member"]
    assert member["name"] == "Aarav"
    assert member["phone"] == "9841111111"

    response = await client.put(f"{API}/family-members/{member['id']}", json={"phone": None, "gender": "other"},
                                headers=headers)
    assert response.status_code == 200
    updated = response.json()["family_member"]
    assert updated["phone"] is None
    assert updated["gender"] == "other"
    assert updated["date_of_birth"] == "2018-04-01"

    response = await client.get(f"{API}/family-members", headers=headers)
    assert [m["name"] for m in response.json()["family_members"]] == ["Aarav"]

    response = await client.delete(f"{API}/family-members/{member['id']}", headers=headers)
    assert response.json() == {"success": True}
    response = await client.get(f"{API}/family-members/{member['id']}", headers=headers)
    assert response.status_code == 404


@pytest.mark.foreign_keys
async def test_deleting_family_member_keeps_their_appointments(client, db, clinic, doctor, patient, make_user):
    _, headers = await make_user(email="parent@example.com")
    response = await client.post(f"{API}/family-members", json={"name": "Aarav", "relation": "CHILD"},
                                 headers=headers)
    member_id = response.json()["family_member"]["id"]

    appointment = Appointment(
        clinic_id=clinic.id,
        doctor_id=doctor.id,
        patient_id=patient.id,
        family_member_id=UUID(member_id),
        appointment_date=date.today() + timedelta(days=1),
        time_slot_start=time(9, 0),
        time_slot_end=time(9, 15),
        token_number=1,
    )
    db.add(appointment)
    await db.commit()

    response = await client.delete(f"{API}/family-members/{member_id}", headers=headers)
    assert response.json() == {"success": True}

    await db.refresh(appointment)
    assert appointment.family_member_id is None


async def test_family_member_validation(client, make_user):
    _, headers = await make_user(email="parent@example.com")

    response = await client.post(f"{API}/family-members", json={"name": "X", "relation": "COUSIN"}, headers=headers)
    assert response.status_code == 400
    assert response.json()["error"].startswith("Invalid relation. Must be one of:")

    future = (date.today() + timedelta(days=2)).isoformat()
    response = await client.post(f"{API}/family-members", json={
        "name": "X", "relation": "CHILD", "date_of_birth": future,
    }, headers=headers)
    assert response.json() == {"error": "Date of birth cannot be in the future"}

    response = await client.post(f"{API}/family-members", json={"relation": "CHILD"}, headers=headers)
    assert response.json() == {"error": "Name is required"}


async def test_family_member_limit(client, make_user):
    _, headers = await make_user(email="parent@example.com")
    for i in range(10):
        response = await client.post(f"{API}/family-members", json={"name": f"Kid {i}", "relation": "CHILD"},
                                     headers=headers)
        assert response.status_code == 201
    response = await client.post(f"{API}/family-members", json={"name": "One more", "relation": "CHILD"},
                                 headers=headers)
    assert response.json() == {"error": "Maximum of 10 family members allowed"}


async def test_family_members_are_private(client, make_user):
    _, owner_headers = await make_user(email="parent@example.com")
    _, other_headers = await make_user(email="other@example.com")
    response = await client.post(f"{API}/family-members", json={"name": "Aarav", "relation": "CHILD"},
                                 headers=owner_headers)
    member_id = response.json()["family_member"]["id"]

    response = await client.get(f"{API}/family-members/{member_id}", headers=other_headers)
    assert response.status_code == 404


async def test_appointments_are_matched_by_phone(client, db, clinic, doctor, patient, make_user):
    _, headers = await make_user(phone=patient.phone)
    upcoming = await _appointment(db, clinic, doctor, patient, date.today() + timedelta(days=3))
    await _appointment(db, clinic, doctor, patient, date.today() - timedelta(days=3), status="COMPLETED", token=2)

    response = await client.get(f"{API}/appointments", headers=headers)
    assert response.json()["pagination"]["total"] == 2

    response = await client.get(f"{API}/appointments", params={"filter": "upcoming"}, headers=headers)
    appointments = response.json()["appointments"]
    assert [a["id"] for a in appointments] == [str(upcoming.id)]
    assert appointments[0]["clinic"]["name"] == "Sunrise Clinic"
    assert appointments[0]["doctor"]["full_name"] == "Ram Sharma"

    response = await client.get(f"{API}/appointments", params={"filter": "past"}, headers=headers)
    assert [a["status"] for a in response.json()["appointments"]] == ["COMPLETED"]

    response = await client.get(f"{API}/appointments", params={"filter": "later"}, headers=headers)
    assert response.status_code == 400


async def test_user_without_patient_records(client, make_user):
    _, headers = await make_user(email="nobody@example.com")
    response = await client.get(f"{API}/appointments", headers=headers)
    body = response.json()
    assert body["appointments"] == []
    assert body["message"] == "No patient records found for your account"


async def test_lab_results_list(client, db, clinic, patient, make_user):
    _, headers = await make_user(phone=patient.phone)
    test = LabTest(clinic_id=clinic.id, name="Hemoglobin", unit="g/dL", normal_range="12-16")
    db.add(test)
    await db.flush()
    order = LabOrder(
        clinic_id=clinic.id,
        patient_id=patient.id,
        order_number="LAB-20250101-0001",
        status="COMPLETED",
    )
    db.add(order)
    await db.flush()
    db.add(LabResult(lab_order_id=order.id, lab_test_id=test.id, result_value="13.1", flag="NORMAL"))
    await db.commit()

    response = await client.get(f"{API}/lab-results", headers=headers)
    assert response.status_code == 200
    orders = response.json()["labOrders"]
    assert [o["order_number"] for o in orders] == ["LAB-20250101-0001"]


async def test_prescriptions_filter_by_status(client, db, clinic, doctor, patient, make_user):
    _, headers = await make_user(phone=patient.phone)
    db.add(Prescription(
        clinic_id=clinic.id,
        patient_id=patient.id,
        doctor_id=doctor.id,
        prescription_number="RX-0001",
        items=[{"medicine": "Paracetamol 500mg", "dosage": "1-0-1", "days": 3}],
        status="ISSUED",
    ))
    await db.commit()

    response = await client.get(f"{API}/prescriptions", params={"status": "ISSUED"}, headers=headers)
    prescriptions = response.json()["prescriptions"]
    assert [p["prescription_number"] for p in prescriptions] == ["RX-0001"]
    assert prescriptions[0]["items"][0]["medicine"] == "Paracetamol 500mg"

    response = await client.get(f"{API}/prescriptions", params={"status": "DRAFT"}, headers=headers)
    assert response.json()["prescriptions"] == []

    response = await client.get(f"{API}/prescriptions", params={"status": "LOST"}, headers=headers)
    assert response.status_code == 400


async def test_portal_requires_login(client):
    response = await client.get(f"{API}/family-members")
    assert response.status_code == 401
