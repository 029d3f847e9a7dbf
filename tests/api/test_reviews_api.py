from datetime import date, time

from app.db.models import Appointment

API = "/api/v1/reviews"


async def _review(client, clinic, patient, rating, **extra):
    return await client.post(API, json={
        "clinicId": str(clinic.id),
        "patientId": str(patient.id),
        "rating": rating,
        **extra,
    })


async def test_create_and_list_reviews(client, clinic, patient, doctor):
    response = await _review(client, clinic, patient, 5, doctorId=str(doctor.id), review="Very caring")
    assert response.status_code == 201
    assert response.json()["success"] is True
    await _review(client, clinic, patient, 4)

    response = await client.get(API, params={"clinicId": str(clinic.id)})
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert body["totalReviews"] == 2
    assert body["averageRating"] == 4.5
    assert {r["patient"]["full_name"] for r in body["reviews"]} == {"Sita Gurung"}

    response = await client.get(API, params={"clinicId": str(clinic.id), "doctorId": str(doctor.id)})
    assert [r["rating"] for r in response.json()["reviews"]] == [5]


async def test_review_validation(client, clinic, patient):
    response = await _review(client, clinic, patient, 6)
    assert response.status_code == 400
    assert response.json() == {"error": "Rating must be between 1 and 5"}

    response = await client.post(API, json={"clinicId": str(clinic.id), "rating": 3})
    assert response.json() == {"error": "clinicId, patientId, and rating are required"}

    response = await client.get(API)
    assert response.json() == {"error": "clinicId is required"}


async def test_one_review_per_completed_appointment(client, db, clinic, patient, doctor):
    appointment = Appointment(
        clinic_id=clinic.id,
        doctor_id=doctor.id,
        patient_id=patient.id,
        appointment_date=date(2025, 1, 6),
        time_slot_start=time(9, 0),
        time_slot_end=time(9, 15),
        token_number=1,
        status="COMPLETED",
    )
    db.add(appointment)
    await db.commit()

    response = await _review(client, clinic, patient, 5, appointmentId=str(appointment.id))
    assert response.status_code == 201
    response = await _review(client, clinic, patient, 4, appointmentId=str(appointment.id))
    assert response.status_code == 400
    assert response.json() == {"error": "Review already exists for this appointment"}


async def test_moderation_hides_review(client, clinic, patient, make_user):
    review_id = (await _review(client, clinic, patient, 1)).json()["review"]["id"]
    _, admin_headers = await make_user(email="admin@example.com", role="ADMIN")
    _, user_headers = await make_user(email="user@example.com")

    payload = {"action": "moderate", "is_published": False}
    response = await client.patch(f"{API}/{review_id}", json=payload, headers=user_headers)
    assert response.status_code == 403

    response = await client.patch(f"{API}/{review_id}", json=payload, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["review"]["is_published"] is False

    response = await client.get(API, params={"clinicId": str(clinic.id)})
    assert response.json()["total"] == 0
    response = await client.get(API, params={"clinicId": str(clinic.id), "published": "all"})
    assert response.json()["total"] == 1


async def test_only_claiming_doctor_can_respond(client, db, clinic, patient, doctor, make_user):
    review_id = (await _review(client, clinic, patient, 4, doctorId=str(doctor.id))).json()["review"]["id"]
    doctor_user, doctor_headers = await make_user(email="ram@example.com", role="PROFESSIONAL")
    _, other_headers = await make_user(email="other@example.com", role="PROFESSIONAL")
    doctor.claimed_by_id = doctor_user.id
    db.add(doctor)
    await db.commit()

    payload = {"action": "respond", "doctorResponse": "Thank you!"}
    response = await client.patch(f"{API}/{review_id}", json=payload, headers=other_headers)
    assert response.status_code == 403
    assert response.json() == {"error": "Only the reviewed doctor can respond"}

    response = await client.patch(f"{API}/{review_id}", json=payload, headers=doctor_headers)
    assert response.status_code == 200
    assert response.json()["review"]["doctor_response"] == "Thank you!"


async def test_only_admin_deletes(client, clinic, patient, make_user):
    review_id = (await _review(client, clinic, patient, 2)).json()["review"]["id"]
    _, user_headers = await make_user(email="user@example.com")
    response = await client.delete(f"{API}/{review_id}", headers=user_headers)
    assert response.status_code == 403

    _, admin_headers = await make_user(email="admin@example.com", role="ADMIN")
    response = await client.delete(f"{API}/{review_id}", headers=admin_headers)
    assert response.json() == {"success": True}

    response = await client.get(f"{API}/{review_id}")
    assert response.status_code == 404
