from datetime import date, time, timedelta

import pytest

from app.db.models import DoctorLeave, DoctorSchedule
from app.services.appointment_service import db_day_of_week

API = "/api/v1"


@pytest.fixture
def tomorrow():
    return date.today() + timedelta(days=1)


@pytest.fixture
async def schedule(db, clinic, doctor, tomorrow):
    schedule = DoctorSchedule(
        clinic_id=clinic.id,
        doctor_id=doctor.id,
        day_of_week=db_day_of_week(tomorrow),
        start_time=time(9, 0),
        end_time=time(10, 0),
        slot_duration_minutes=15,
        max_patients_per_slot=1,
    )
    db.add(schedule)
    await db.commit()
    return schedule


def _booking(clinic, doctor, day, slot="09:00-09:15", **extra):
    return {
        "clinicId": str(clinic.id),
        "doctorId": str(doctor.id),
        "date": day.isoformat(),
        "timeSlot": slot,
        "patientName": "Sita Gurung",
        "patientPhone": "9841234567",
        **extra,
    }


async def test_book_appointment(client, clinic, doctor, schedule, tomorrow):
    response = await client.post(f"{API}/appointments", json=_booking(clinic, doctor, tomorrow))
    assert response.status_code == 201
    appointment = response.json()["appointment"]
    assert appointment["tokenNumber"] == 1
    assert appointment["status"] == "SCHEDULED"
    assert appointment["doctorName"] == "Ram Sharma"
    assert appointment["clinicName"] == "Sunrise Clinic"

    response = await client.post(
        f"{API}/appointments",
        json=_booking(clinic, doctor, tomorrow, slot="09:15-09:30", patientPhone="9800000002"),
    )
    assert response.json()["appointment"]["tokenNumber"] == 2


async def test_full_slot_is_rejected(client, clinic, doctor, schedule, tomorrow):
    await client.post(f"{API}/appointments", json=_booking(clinic, doctor, tomorrow))
    response = await client.post(
        f"{API}/appointments",
        json=_booking(clinic, doctor, tomorrow, patientPhone="9800000002"),
    )
    assert response.status_code == 400
    assert response.json() == {"error": "SLOT_UNAVAILABLE", "message": "This time slot is fully booked"}


async def test_slot_outside_schedule(client, clinic, doctor, schedule, tomorrow):
    response = await client.post(f"{API}/appointments", json=_booking(clinic, doctor, tomorrow, slot="10:00-10:15"))
    assert response.json() == {"error": "SLOT_UNAVAILABLE", "message": "Time slot is outside doctor's schedule"}


async def test_no_schedule_for_day(client, clinic, doctor, schedule, tomorrow):
    day_after = tomorrow + timedelta(days=1)
    response = await client.post(f"{API}/appointments", json=_booking(clinic, doctor, day_after))
    assert response.json() == {"error": "SLOT_UNAVAILABLE", "message": "Doctor has no schedule for this day"}


async def test_leave_blocks_booking(client, db, clinic, doctor, schedule, tomorrow):
    db.add(DoctorLeave(
        clinic_id=clinic.id,
        doctor_id=doctor.id,
        start_date=tomorrow,
        end_date=tomorrow,
        start_time=time(9, 0),
        end_time=time(9, 30),
    ))
    await db.commit()

    response = await client.post(f"{API}/appointments", json=_booking(clinic, doctor, tomorrow))
    assert response.json() == {"error": "SLOT_UNAVAILABLE", "message": "Doctor is on leave during this time"}

    response = await client.post(f"{API}/appointments", json=_booking(clinic, doctor, tomorrow, slot="09:30-09:45"))
    assert response.status_code == 201


@pytest.mark.parametrize("field, value, error", [
    ("patientPhone", "12345", "Invalid phone number format. Must be 10 digits starting with 98 or 97."),
    ("timeSlot", "9-10", "Invalid timeSlot format. Use HH:MM-HH:MM"),
    ("date", "2020-01-01", "Cannot book appointments for past dates"),
    ("patientEmail", "not-an-email", "Invalid email format"),
])
async def test_booking_validation(client, clinic, doctor, schedule, tomorrow, field, value, error):
    response = await client.post(f"{API}/appointments", json=_booking(clinic, doctor, tomorrow, **{field: value}))
    assert response.status_code == 400
    assert response.json() == {"error": error}


async def test_unverified_clinic_rejects_booking(client, db, clinic, doctor, schedule, tomorrow):
    clinic.verified = False
    db.add(clinic)
    await db.commit()
    response = await client.post(f"{API}/appointments", json=_booking(clinic, doctor, tomorrow))
    assert response.status_code == 400
    assert response.json() == {"error": "Clinic is not verified"}


async def test_family_member_booking_needs_login(client, clinic, doctor, schedule, tomorrow, make_user):
    payload = _booking(clinic, doctor, tomorrow, familyMemberId="00000000-0000-0000-0000-000000000001")
    response = await client.post(f"{API}/appointments", json=payload)
    assert response.status_code == 401

    _, headers = await make_user(email="parent@example.com")
    response = await client.post(
        "/api/v1/patient/family-members",
        json={"name": "Aarav", "relation": "CHILD"},
        headers=headers,
    )
    member_id = response.json()["family_member"]["id"]

    payload = _booking(clinic, doctor, tomorrow, familyMemberId=member_id)
    response = await client.post(f"{API}/appointments", json=payload, headers=headers)
    assert response.status_code == 201
    assert response.json()["appointment"]["familyMemberName"] == "Aarav"


async def test_available_slots(client, clinic, doctor, schedule, tomorrow):
    await client.post(f"{API}/appointments", json=_booking(clinic, doctor, tomorrow, slot="09:15-09:30"))

    response = await client.get(
        f"{API}/clinic/{clinic.id}/slots",
        params={"doctorId": str(doctor.id), "date": tomorrow.isoformat()},
    )
    assert response.status_code == 200
    body = response.json()
    assert [s["start"] for s in body["slots"]] == ["09:00", "09:15", "09:30", "09:45"]
    assert [s["available"] for s in body["slots"]] == [True, False, True, True]
    assert body["slots"][1]["bookedCount"] == 1
    assert body["schedule"] == {"startTime": "09:00", "endTime": "10:00", "slotDuration": 15}


async def test_slots_without_schedule(client, clinic, doctor, tomorrow):
    response = await client.get(
        f"{API}/clinic/{clinic.id}/slots",
        params={"doctorId": str(doctor.id), "date": tomorrow.isoformat()},
    )
    body = response.json()
    assert body["slots"] == []
    assert body["message"] == "Doctor has no schedule for this day"


async def test_slots_require_doctor(client, clinic, tomorrow):
    response = await client.get(f"{API}/clinic/{clinic.id}/slots", params={"date": tomorrow.isoformat()})
    assert response.status_code == 400
    assert response.json() == {"error": "doctorId query parameter is required"}
