from app.db.models import Clinic, Professional

API = "/api/v1/clinic"


async def _walk_in(client, headers, doctor, phone="9841000001", name="Hari Thapa"):
    response = await client.post(f"{API}/queue/register", json={
        "doctorId": str(doctor.id),
        "patientName": name,
        "patientPhone": phone,
        "chiefComplaint": "Fever",
    }, headers=headers)
    assert response.status_code == 200
    return response.json()


async def test_walk_in_joins_todays_queue(client, owner_headers, doctor):
    first = await _walk_in(client, owner_headers, doctor)
    assert first["tokenNumber"] == 1
    assert first["doctorName"] == "Ram Sharma"
    assert first["patientNumber"].startswith("P-")

    second = await _walk_in(client, owner_headers, doctor, phone="9841000002", name="Gita Thapa")
    assert second["tokenNumber"] == 2

    response = await client.get(f"{API}/queue", headers=owner_headers)
    assert response.status_code == 200
    queue = response.json()["appointments"]
    assert [entry["token_number"] for entry in queue] == [1, 2]
    assert queue[0]["status"] == "CHECKED_IN"
    assert queue[0]["source"] == "WALK_IN"
    assert queue[0]["patient"]["full_name"] == "Hari Thapa"


async def test_walk_in_reuses_patient_by_phone(client, owner_headers, doctor):
    first = await _walk_in(client, owner_headers, doctor)
    second = await _walk_in(client, owner_headers, doctor, name="Hari Bahadur Thapa")
    assert second["patientNumber"] == first["patientNumber"]
    assert second["patientName"] == "Hari Bahadur Thapa"


async def test_walk_in_validation(client, owner_headers, doctor):
    response = await client.post(f"{API}/queue/register", json={
        "doctorId": str(doctor.id),
        "patientName": "Hari",
        "patientPhone": "12345",
    }, headers=owner_headers)
    assert response.status_code == 400

    response = await client.post(f"{API}/queue/register", json={
        "patientName": "Hari",
        "patientPhone": "9841000001",
    }, headers=owner_headers)
    assert response.json() == {"error": "doctorId is required"}


async def test_walk_in_rejects_unaffiliated_doctor(client, db, owner_headers):
    outsider = Professional(type="DOCTOR", registration_number="NMC-99999", full_name="Outside Doc")
    db.add(outsider)
    await db.commit()

    response = await client.post(f"{API}/queue/register", json={
        "doctorId": str(outsider.id),
        "patientName": "Hari",
        "patientPhone": "9841000001",
    }, headers=owner_headers)
    assert response.status_code == 400
    assert response.json() == {"error": "Doctor is not affiliated with this clinic"}


async def test_update_queue_status(client, owner_headers, doctor):
    walk_in = await _walk_in(client, owner_headers, doctor)
    url = f"{API}/queue/{walk_in['appointmentId']}/status"

    response = await client.patch(url, json={"status": "COMPLETED"}, headers=owner_headers)
    assert response.status_code == 200
    appointment = response.json()["appointment"]
    assert appointment["status"] == "COMPLETED"
    assert appointment["completed_at"] is not None

    response = await client.patch(url, json={"status": "DONE"}, headers=owner_headers)
    assert response.status_code == 400
    assert response.json()["error"].startswith("Invalid status. Must be one of:")


async def test_queue_rejects_bad_date(client, owner_headers):
    response = await client.get(f"{API}/queue", params={"date": "18-10-2026"}, headers=owner_headers)
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid date format. Use YYYY-MM-DD"}


async def test_receptionist_can_use_queue(client, add_staff, doctor):
    _, headers = await add_staff("RECEPTIONIST", "front@example.com")
    await _walk_in(client, headers, doctor)


async def test_pharmacy_staff_cannot_use_queue(client, add_staff):
    _, headers = await add_staff("PHARMACY", "pharma@example.com")
    response = await client.get(f"{API}/queue", headers=headers)
    assert response.status_code == 403
    body = response.json()
    assert body["code"] == "permission_denied"
    assert body["error"] == (
        "Permission 'reception' required. Your role (PHARMACY) does not have this permission."
    )


async def test_queue_requires_authentication(client, clinic):
    response = await client.get(f"{API}/queue", headers={"X-Clinic-Id": str(clinic.id)})
    assert response.status_code == 401
    assert response.json() == {"error": "Authentication required", "code": "unauthenticated"}


async def test_queue_rejects_foreign_clinic(client, clinic, make_user, db):
    other = Clinic(name="Other", slug="other-clinic", address="Patan", phone="9801111111", email="o@example.com")
    db.add(other)
    await db.commit()

    _, headers = await make_user(email="stranger@example.com")
    response = await client.get(f"{API}/queue", headers={**headers, "X-Clinic-Id": str(other.id)})
    assert response.status_code == 403
    assert response.json()["code"] == "no_access"

    response = await client.get(f"{API}/queue", headers=headers)
    assert response.status_code == 403
    assert response.json()["code"] == "no_clinic"
