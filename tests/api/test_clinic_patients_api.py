API = "/api/v1/clinic"


async def test_register_and_search_patients(client, owner_headers, patient):
    response = await client.post(f"{API}/patients", json={
        "full_name": " Hari Bahadur ",
        "phone": "97 1234 5678",
        "gender": "male",
        "blood_group": "B+",
        "date_of_birth": "1980-02-10",
    }, headers=owner_headers)
    assert response.status_code == 201
    created = response.json()["patient"]
    assert created["full_name"] == "Hari Bahadur"
    assert created["phone"] == "9712345678"
    assert created["patient_number"] == "P-000002"

    response = await client.get(f"{API}/patients", params={"q": "hari"}, headers=owner_headers)
    assert [p["id"] for p in response.json()["patients"]] == [created["id"]]

    # one character is too short to filter on
    response = await client.get(f"{API}/patients", params={"q": "h"}, headers=owner_headers)
    assert response.json()["pagination"]["total"] == 2

    response = await client.get(f"{API}/patients", params={"sort": "full_name", "order": "asc"},
                                headers=owner_headers)
    assert [p["full_name"] for p in response.json()["patients"]] == ["Hari Bahadur", "Sita Gurung"]

    response = await client.get(f"{API}/patients/{created['id']}", headers=owner_headers)
    assert response.json()["patient"]["appointmentCount"] == 0


async def test_duplicate_phone_is_a_conflict(client, owner_headers, patient):
    response = await client.post(f"{API}/patients", json={"full_name": "Someone Else", "phone": patient.phone},
                                 headers=owner_headers)
    assert response.status_code == 409
    body = response.json()
    assert body["code"] == "DUPLICATE_PHONE"
    assert body["error"] == "A patient with this phone number already exists: Sita Gurung (P-000001)"
    assert body["existingPatient"]["id"] == str(patient.id)


async def test_patient_validation(client, owner_headers):
    response = await client.post(f"{API}/patients", json={"phone": "9841000000"}, headers=owner_headers)
    assert response.json() == {"error": "Patient name is required"}

    response = await client.post(f"{API}/patients", json={"full_name": "X", "phone": "0123456789"},
                                 headers=owner_headers)
    assert response.json() == {
        "error": "Invalid phone number format. Must be 10 digits starting with 98 or 97."
    }

    response = await client.post(f"{API}/patients", json={
        "full_name": "X", "phone": "9841000000", "blood_group": "C+",
    }, headers=owner_headers)
    assert response.json() == {"error": "Invalid blood group."}


async def test_update_patient(client, db, owner_headers, clinic, patient):
    url = f"{API}/patients/{patient.id}"
    response = await client.patch(url, json={"address": "Butwal", "email": None}, headers=owner_headers)
    assert response.status_code == 200
    updated = response.json()["patient"]
    assert updated["address"] == "Butwal"
    assert updated["full_name"] == "Sita Gurung"

    other = await client.post(f"{API}/patients", json={"full_name": "Gita Rai", "phone": "9841111111"},
                              headers=owner_headers)
    response = await client.patch(f"{API}/patients/{other.json()['patient']['id']}",
                                  json={"phone": patient.phone}, headers=owner_headers)
    assert response.status_code == 409

    response = await client.patch(url, json={"full_name": "  "}, headers=owner_headers)
    assert response.json() == {"error": "Patient name is required"}


async def test_patient_permissions(client, add_staff, patient):
    _, lab_headers = await add_staff("LAB", "lab@example.com")
    response = await client.get(f"{API}/patients", headers=lab_headers)
    assert response.status_code == 200
    response = await client.post(f"{API}/patients", json={"full_name": "X", "phone": "9841000000"},
                                 headers=lab_headers)
    assert response.status_code == 403

    _, nurse_headers = await add_staff("NURSE", "nurse@example.com")
    response = await client.get(f"{API}/patients/{patient.id}", headers=nurse_headers)
    assert response.status_code == 403
