from datetime import date, datetime, time, timedelta
from typing import Optional
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.clinic_access import ClinicAccess
from app.core.logger import logger
from app.core.utils import INVALID_PHONE_MESSAGE, clean_phone, is_valid_booking_phone
from app.db.models import Appointment, ClinicDoctor, Patient, Professional
from app.db.models.enums import AppointmentSource, AppointmentStatus, AppointmentType
from app.schemas.clinic import QueueStatusUpdate, WalkInRequest
from app.services.appointment_service import (
    format_time,
    generate_patient_number,
    generate_token_number,
    parse_date,
)

WALK_IN_SLOT_MINUTES = 30
VALID_STATUSES = [s.value for s in AppointmentStatus]


def queue_entry(appointment: Appointment, patient: Patient, doctor: Professional) -> dict:
    return {
        "id": str(appointment.id),
        "appointment_date": appointment.appointment_date.isoformat(),
        "time_slot_start": format_time(appointment.time_slot_start),
        "time_slot_end": format_time(appointment.time_slot_end),
        "status": appointment.status,
        "source": appointment.source,
        "token_number": appointment.token_number,
        "chief_complaint": appointment.chief_complaint,
        "checked_in_at": appointment.checked_in_at.isoformat() if appointment.checked_in_at else None,
        "completed_at": appointment.completed_at.isoformat() if appointment.completed_at else None,
        "patient": {
            "id": str(patient.id),
            "patient_number": patient.patient_number,
            "full_name": patient.full_name,
            "phone": patient.phone,
        },
        "doctor": {"id": str(doctor.id), "full_name": doctor.full_name},
    }


class QueueService:
    def __init__(self, session: AsyncSession):
        self.session = session

    def _queue_query(self):
        return (
            select(Appointment, Patient, Professional)
            .join(Patient, Patient.id == Appointment.patient_id)
            .join(Professional, Professional.id == Appointment.doctor_id)
        )

    async def get_queue(self, access: ClinicAccess, date_str: Optional[str] = None) -> dict:
        day = date.today()
        if date_str:
            day = parse_date(date_str)
            if day is None:
                raise HTTPException(status_code=400, detail="Invalid date format. Use YYYY-MM-DD")

        stmt = self._queue_query().where(
            Appointment.clinic_id == access.clinic_id,
            Appointment.appointment_date == day,
            Appointment.status != AppointmentStatus.CANCELLED.value,
        ).order_by(Appointment.token_number)
        rows = (await self.session.execute(stmt)).all()
        return {"date": day.isoformat(), "appointments": [queue_entry(*row) for row in rows]}

    async def update_status(self, access: ClinicAccess, appointment_id: UUID, data: QueueStatusUpdate) -> dict:
        if not data.status or data.status not in VALID_STATUSES:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid status. Must be one of: {', '.join(VALID_STATUSES)}",
            )

        appointment = await self.session.get(Appointment, appointment_id)
        if not appointment or appointment.clinic_id != access.clinic_id:
            raise HTTPException(status_code=404, detail="Appointment not found")

        appointment.status = data.status
        now = datetime.utcnow()
        if data.status == AppointmentStatus.CHECKED_IN.value:
            appointment.checked_in_at = now
        elif data.status == AppointmentStatus.COMPLETED.value:
            appointment.completed_at = now
        self.session.add(appointment)
        await self.session.commit()

        row = (await self.session.execute(self._queue_query().where(Appointment.id == appointment_id))).first()
        return {"success": True, "appointment": queue_entry(*row)}

    async def register_walk_in(self, access: ClinicAccess, data: WalkInRequest) -> dict:
        if not data.doctor_id:
            raise HTTPException(status_code=400, detail="doctorId is required")
        if not data.patient_name or not data.patient_name.strip():
            raise HTTPException(status_code=400, detail="patientName is required")
        if not data.patient_phone or not data.patient_phone.strip():
            raise HTTPException(status_code=400, detail="patientPhone is required")
        phone = clean_phone(data.patient_phone)
        if not is_valid_booking_phone(phone):
            raise HTTPException(status_code=400, detail=INVALID_PHONE_MESSAGE)

        clinic_id = access.clinic_id
        stmt = (
            select(Professional)
            .join(ClinicDoctor, ClinicDoctor.doctor_id == Professional.id)
            .where(ClinicDoctor.clinic_id == clinic_id, ClinicDoctor.doctor_id == data.doctor_id)
        )
        doctor = (await self.session.execute(stmt)).scalars().first()
        if not doctor:
            raise HTTPException(status_code=400, detail="Doctor is not affiliated with this clinic")

        name = data.patient_name.strip()
        if data.existing_patient_id:
            patient = await self.session.get(Patient, data.existing_patient_id)
            if not patient or patient.clinic_id != clinic_id:
                raise HTTPException(status_code=404, detail="Patient not found")
        else:
            stmt = select(Patient).where(Patient.clinic_id == clinic_id, Patient.phone == phone)
            patient = (await self.session.execute(stmt)).scalars().first()
            if patient:
                patient.full_name = name
            else:
                patient = Patient(
                    clinic_id=clinic_id,
                    patient_number=await generate_patient_number(self.session, clinic_id),
                    full_name=name,
                    phone=phone,
                )
            self.session.add(patient)
            await self.session.flush()

        now = datetime.now()
        start = time(now.hour, now.minute)
        end_at = now + timedelta(minutes=WALK_IN_SLOT_MINUTES)
        # keep the slot inside today
        end = time(end_at.hour, end_at.minute) if end_at.date() == now.date() else time(23, 59)
        today = now.date()

        appointment = Appointment(
            clinic_id=clinic_id,
            doctor_id=doctor.id,
            patient_id=patient.id,
            appointment_date=today,
            time_slot_start=start,
            time_slot_end=end,
            token_number=await generate_token_number(self.session, clinic_id, today),
            status=AppointmentStatus.CHECKED_IN.value,
            type=AppointmentType.NEW.value,
            source=AppointmentSource.WALK_IN.value,
            chief_complaint=data.chief_complaint.strip() if data.chief_complaint else None,
            checked_in_at=datetime.utcnow(),
        )
        self.session.add(appointment)
        await self.session.commit()
        await self.session.refresh(appointment)

        logger.info(f"Walk-in token {appointment.token_number} issued at clinic {clinic_id}")

        return {
            "success": True,
            "appointmentId": str(appointment.id),
            "tokenNumber": appointment.token_number,
            "patientNumber": patient.patient_number,
            "patientName": patient.full_name,
            "doctorName": doctor.full_name,
            "timeSlot": f"{format_time(start)}-{format_time(end)}",
        }
