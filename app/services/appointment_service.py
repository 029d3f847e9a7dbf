import re
from datetime import date, datetime, time, timedelta
from typing import List, Optional, Tuple
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select, func, or_

from app.core.logger import logger
from app.core.utils import INVALID_PHONE_MESSAGE, clean_phone, is_valid_booking_phone, is_valid_email
from app.db.models import (
    Appointment,
    Clinic,
    ClinicDoctor,
    DoctorLeave,
    DoctorSchedule,
    FamilyMember,
    Patient,
    Professional,
    User,
)
from app.db.models.enums import (
    ACTIVE_APPOINTMENT_STATUSES,
    AppointmentSource,
    AppointmentStatus,
    AppointmentType,
)
from app.schemas.appointment import AppointmentBookingRequest, TimeSlot

DATE_REGEX = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_SLOT_REGEX = re.compile(r"^(\d{2}):(\d{2})-(\d{2}):(\d{2})$")
# slots starting within this many minutes of now can no longer be booked
BOOKING_LEAD_MINUTES = 15


def db_day_of_week(day: date) -> int:
    # DB stores day_of_week as 0=Sunday..6=Saturday
    # Python date.weekday() is 0=Monday..6=Sunday
    python_day = day.weekday()
    return 0 if python_day == 6 else python_day + 1


def format_time(value: time) -> str:
    return value.strftime("%H:%M")


def to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def parse_date(value: str) -> Optional[date]:
    if not DATE_REGEX.match(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def parse_time_slot(value: str) -> Optional[Tuple[time, time]]:
    match = TIME_SLOT_REGEX.match(value)
    if not match:
        return None
    try:
        start = time(int(match.group(1)), int(match.group(2)))
        end = time(int(match.group(3)), int(match.group(4)))
    except ValueError:
        return None
    if end <= start:
        return None
    return start, end


def is_slot_during_leave(start: time, end: time, leave: DoctorLeave) -> bool:
    # a leave without times covers the whole day
    if leave.start_time is None or leave.end_time is None:
        return True
    return start < leave.end_time and end > leave.start_time


def slot_has_passed(day: date, start: time) -> bool:
    now = datetime.now()
    if day != now.date():
        return False
    return to_minutes(start) <= now.hour * 60 + now.minute + BOOKING_LEAD_MINUTES


async def generate_patient_number(session: AsyncSession, clinic_id: UUID) -> str:
    stmt = select(func.count(Patient.id)).where(Patient.clinic_id == clinic_id)
    count = (await session.execute(stmt)).scalar() or 0
    return f"P-{count + 1:06d}"


async def generate_token_number(session: AsyncSession, clinic_id: UUID, day: date) -> int:
    stmt = select(func.count(Appointment.id)).where(
        Appointment.clinic_id == clinic_id,
        Appointment.appointment_date == day,
    )
    count = (await session.execute(stmt)).scalar() or 0
    return count + 1


def slot_unavailable(message: str) -> HTTPException:
    return HTTPException(status_code=400, detail={"error": "SLOT_UNAVAILABLE", "message": message})


class AppointmentService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_verified_clinic_doctor(self, clinic_id: UUID, doctor_id: UUID) -> Tuple[Clinic, Professional]:
        clinic = await self.session.get(Clinic, clinic_id)
        if not clinic:
            raise HTTPException(status_code=404, detail="Clinic not found")
        if not clinic.verified:
            raise HTTPException(status_code=400, detail="Clinic is not verified")

        stmt = (
            select(Professional)
            .join(ClinicDoctor, ClinicDoctor.doctor_id == Professional.id)
            .where(ClinicDoctor.clinic_id == clinic_id, ClinicDoctor.doctor_id == doctor_id)
        )
        doctor = (await self.session.execute(stmt)).scalars().first()
        if not doctor:
            raise HTTPException(status_code=400, detail="Doctor is not affiliated with this clinic")
        return clinic, doctor

    async def get_schedule(self, clinic_id: UUID, doctor_id: UUID, day: date) -> Optional[DoctorSchedule]:
        stmt = select(DoctorSchedule).where(
            DoctorSchedule.clinic_id == clinic_id,
            DoctorSchedule.doctor_id == doctor_id,
            DoctorSchedule.day_of_week == db_day_of_week(day),
            DoctorSchedule.is_active == True,
            or_(DoctorSchedule.effective_from == None, DoctorSchedule.effective_from <= day),
            or_(DoctorSchedule.effective_to == None, DoctorSchedule.effective_to >= day),
        ).order_by(DoctorSchedule.start_time)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_leaves(self, clinic_id: UUID, doctor_id: UUID, day: date) -> List[DoctorLeave]:
        stmt = select(DoctorLeave).where(
            DoctorLeave.clinic_id == clinic_id,
            DoctorLeave.doctor_id == doctor_id,
            DoctorLeave.start_date <= day,
            DoctorLeave.end_date >= day,
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def count_active_bookings(self, clinic_id: UUID, doctor_id: UUID, day: date, start: time, end: time) -> int:
        stmt = select(func.count(Appointment.id)).where(
            Appointment.clinic_id == clinic_id,
            Appointment.doctor_id == doctor_id,
            Appointment.appointment_date == day,
            Appointment.time_slot_start == start,
            Appointment.time_slot_end == end,
            Appointment.status.in_(ACTIVE_APPOINTMENT_STATUSES),
        )
        return (await self.session.execute(stmt)).scalar() or 0

    async def find_or_create_patient(self, clinic_id: UUID, name: str, phone: str, email: Optional[str]) -> Patient:
        stmt = select(Patient).where(Patient.clinic_id == clinic_id, Patient.phone == phone)
        patient = (await self.session.execute(stmt)).scalars().first()
        if patient:
            patient.full_name = name
            patient.email = email or patient.email
        else:
            patient = Patient(
                clinic_id=clinic_id,
                patient_number=await generate_patient_number(self.session, clinic_id),
                full_name=name,
                phone=phone,
                email=email,
            )
        self.session.add(patient)
        return patient

    async def book(self, data: AppointmentBookingRequest, user: Optional[User]) -> dict:
        if not data.clinic_id:
            raise HTTPException(status_code=400, detail="clinicId is required")
        if not data.doctor_id:
            raise HTTPException(status_code=400, detail="doctorId is required")
        if not data.date:
            raise HTTPException(status_code=400, detail="date is required (format: YYYY-MM-DD)")
        if not data.time_slot:
            raise HTTPException(status_code=400, detail="timeSlot is required (format: HH:MM-HH:MM)")
        if not data.patient_name or not data.patient_name.strip():
            raise HTTPException(status_code=400, detail="patientName is required")
        if not data.patient_phone:
            raise HTTPException(status_code=400, detail="patientPhone is required")

        phone = clean_phone(data.patient_phone)
        if not is_valid_booking_phone(phone):
            raise HTTPException(status_code=400, detail=INVALID_PHONE_MESSAGE)

        email = data.patient_email.strip() if data.patient_email else None
        if email and not is_valid_email(email):
            raise HTTPException(status_code=400, detail="Invalid email format")

        appointment_date = parse_date(data.date)
        if appointment_date is None:
            raise HTTPException(status_code=400, detail="Invalid date format. Use YYYY-MM-DD")
        if appointment_date < date.today():
            raise HTTPException(status_code=400, detail="Cannot book appointments for past dates")

        slot = parse_time_slot(data.time_slot)
        if slot is None:
            raise HTTPException(status_code=400, detail="Invalid timeSlot format. Use HH:MM-HH:MM")
        slot_start, slot_end = slot

        clinic, doctor = await self.get_verified_clinic_doctor(data.clinic_id, data.doctor_id)

        schedule = await self.get_schedule(clinic.id, doctor.id, appointment_date)
        if not schedule:
            raise slot_unavailable("Doctor has no schedule for this day")
        if slot_start < schedule.start_time or slot_end > schedule.end_time:
            raise slot_unavailable("Time slot is outside doctor's schedule")

        leaves = await self.get_leaves(clinic.id, doctor.id, appointment_date)
        if any(is_slot_during_leave(slot_start, slot_end, leave) for leave in leaves):
            raise slot_unavailable("Doctor is on leave during this time")

        booked = await self.count_active_bookings(clinic.id, doctor.id, appointment_date, slot_start, slot_end)
        if booked >= schedule.max_patients_per_slot:
            raise slot_unavailable("This time slot is fully booked")

        if slot_has_passed(appointment_date, slot_start):
            raise slot_unavailable("This time slot has already passed")

        family_member = None
        if data.family_member_id:
            if user is None:
                raise HTTPException(status_code=401, detail="Authentication required to book for a family member")
            stmt = select(FamilyMember).where(
                FamilyMember.id == data.family_member_id,
                FamilyMember.user_id == user.id,
            )
            family_member = (await self.session.execute(stmt)).scalars().first()
            if not family_member:
                raise HTTPException(status_code=404, detail="Family member not found")

        patient = await self.find_or_create_patient(clinic.id, data.patient_name.strip(), phone, email)
        await self.session.flush()

        appointment = Appointment(
            clinic_id=clinic.id,
            doctor_id=doctor.id,
            patient_id=patient.id,
            family_member_id=family_member.id if family_member else None,
            booked_by_id=user.id if user else None,
            appointment_date=appointment_date,
            time_slot_start=slot_start,
            time_slot_end=slot_end,
            token_number=await generate_token_number(self.session, clinic.id, appointment_date),
            status=AppointmentStatus.SCHEDULED.value,
            type=AppointmentType.NEW.value,
            source=AppointmentSource.ONLINE.value,
            chief_complaint=data.chief_complaint.strip() if data.chief_complaint else None,
        )
        self.session.add(appointment)
        await self.session.commit()
        await self.session.refresh(appointment)

        logger.info(f"Booked appointment {appointment.id} token {appointment.token_number} at clinic {clinic.id}")

        return {
            "success": True,
            "appointment": {
                "id": str(appointment.id),
                "tokenNumber": appointment.token_number,
                "date": appointment_date.isoformat(),
                "timeSlot": f"{format_time(slot_start)}-{format_time(slot_end)}",
                "status": appointment.status,
                "doctorName": doctor.full_name,
                "doctorType": doctor.type,
                "clinicName": clinic.name,
                "clinicAddress": clinic.address,
                "clinicPhone": clinic.phone,
                "patientName": patient.full_name,
                "patientPhone": patient.phone,
                "familyMemberName": family_member.name if family_member else None,
            },
        }

    async def get_available_slots(self, clinic_id: UUID, doctor_id: Optional[UUID], date_str: Optional[str]) -> dict:
        if not doctor_id:
            raise HTTPException(status_code=400, detail="doctorId query parameter is required")
        if not date_str:
            raise HTTPException(status_code=400, detail="date query parameter is required (format: YYYY-MM-DD)")
        requested_date = parse_date(date_str)
        if requested_date is None:
            raise HTTPException(status_code=400, detail="Invalid date format. Use YYYY-MM-DD")
        if requested_date < date.today():
            raise HTTPException(status_code=400, detail="Cannot get slots for past dates")

        clinic, doctor = await self.get_verified_clinic_doctor(clinic_id, doctor_id)
        day_of_week = db_day_of_week(requested_date)
        doctor_info = {"id": str(doctor.id), "name": doctor.full_name, "type": doctor.type}

        schedule = await self.get_schedule(clinic.id, doctor.id, requested_date)
        if not schedule:
            return {
                "slots": [],
                "doctor": doctor_info,
                "date": requested_date.isoformat(),
                "dayOfWeek": day_of_week,
                "message": "Doctor has no schedule for this day",
            }

        leaves = await self.get_leaves(clinic.id, doctor.id, requested_date)

        stmt = select(Appointment.time_slot_start, Appointment.time_slot_end).where(
            Appointment.clinic_id == clinic.id,
            Appointment.doctor_id == doctor.id,
            Appointment.appointment_date == requested_date,
            Appointment.status.in_(ACTIVE_APPOINTMENT_STATUSES),
        )
        booked = (await self.session.execute(stmt)).all()

        slots = []
        duration = timedelta(minutes=schedule.slot_duration_minutes)
        cursor = datetime.combine(requested_date, schedule.start_time)
        end_of_day = datetime.combine(requested_date, schedule.end_time)
        while cursor + duration <= end_of_day:
            start, end = cursor.time(), (cursor + duration).time()
            booked_count = sum(1 for s, e in booked if s == start and e == end)
            available = (
                booked_count < schedule.max_patients_per_slot
                and not any(is_slot_during_leave(start, end, leave) for leave in leaves)
                and not slot_has_passed(requested_date, start)
            )
            slots.append(TimeSlot(
                start=format_time(start),
                end=format_time(end),
                available=available,
                bookedCount=booked_count,
                maxPatients=schedule.max_patients_per_slot,
            ))
            cursor += duration

        return {
            "slots": [slot.model_dump() for slot in slots],
            "doctor": doctor_info,
            "clinic": {"id": str(clinic.id), "name": clinic.name},
            "date": requested_date.isoformat(),
            "dayOfWeek": day_of_week,
            "schedule": {
                "startTime": format_time(schedule.start_time),
                "endTime": format_time(schedule.end_time),
                "slotDuration": schedule.slot_duration_minutes,
            },
        }
