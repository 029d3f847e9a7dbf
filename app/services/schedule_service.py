import re
from datetime import date, time
from typing import List, Optional
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.clinic_access import ClinicAccess
from app.core.logger import logger
from app.db.models import Appointment, DoctorLeave, DoctorSchedule, Patient
from app.db.models.enums import AppointmentStatus
from app.schemas.clinic import LeaveCreate, SchedulesUpdate
from app.services.appointment_service import format_time, is_slot_during_leave, parse_date
from app.services.clinic_doctor_service import get_affiliated_doctor

TIME_REGEX = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
MIN_SLOT_MINUTES = 5
# appointments a leave can still disrupt
LEAVE_AFFECTED_STATUSES = [AppointmentStatus.SCHEDULED.value, AppointmentStatus.CHECKED_IN.value]


def parse_clock(value: Optional[str]) -> Optional[time]:
    match = TIME_REGEX.match(value or "")
    if not match:
        return None
    return time(int(match.group(1)), int(match.group(2)))


def schedule_summary(schedule: DoctorSchedule) -> dict:
    return {
        "id": str(schedule.id),
        "doctor_id": str(schedule.doctor_id),
        "day_of_week": schedule.day_of_week,
        "start_time": format_time(schedule.start_time),
        "end_time": format_time(schedule.end_time),
        "slot_duration_minutes": schedule.slot_duration_minutes,
        "max_patients_per_slot": schedule.max_patients_per_slot,
        "is_active": schedule.is_active,
    }


def leave_summary(leave: DoctorLeave) -> dict:
    return {
        "id": str(leave.id),
        "doctor_id": str(leave.doctor_id),
        "start_date": leave.start_date.isoformat(),
        "end_date": leave.end_date.isoformat(),
        "start_time": format_time(leave.start_time) if leave.start_time else None,
        "end_time": format_time(leave.end_time) if leave.end_time else None,
        "full_day": leave.start_time is None,
        "reason": leave.reason,
        "created_at": leave.created_at.isoformat(),
    }


class ScheduleService:
    """Weekly doctor schedules and leaves for the current clinic."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_schedules(self, access: ClinicAccess, doctor_id: Optional[UUID]) -> dict:
        conditions = [DoctorSchedule.clinic_id == access.clinic_id]
        if doctor_id:
            await get_affiliated_doctor(self.session, access.clinic_id, doctor_id)
            conditions.append(DoctorSchedule.doctor_id == doctor_id)
        stmt = select(DoctorSchedule).where(*conditions).order_by(
            DoctorSchedule.day_of_week, DoctorSchedule.start_time
        )
        schedules = (await self.session.execute(stmt)).scalars().all()
        return {"schedules": [schedule_summary(s) for s in schedules]}

    async def replace_schedules(self, access: ClinicAccess, data: SchedulesUpdate) -> dict:
        """Swap every weekly schedule of one doctor for the submitted set."""
        if not data.doctor_id:
            raise HTTPException(status_code=400, detail="Doctor ID is required")
        if data.schedules is None:
            raise HTTPException(status_code=400, detail="Schedules array is required")
        doctor = await get_affiliated_doctor(self.session, access.clinic_id, data.doctor_id)

        rows = []
        for entry in data.schedules:
            if entry.day_of_week is None or not 0 <= entry.day_of_week <= 6:
                raise HTTPException(status_code=400, detail="Invalid day_of_week value (must be 0-6)")
            if not entry.start_time or not entry.end_time:
                raise HTTPException(status_code=400, detail="start_time and end_time are required")
            start, end = parse_clock(entry.start_time), parse_clock(entry.end_time)
            if start is None or end is None:
                raise HTTPException(status_code=400, detail="Invalid time format (use HH:MM)")
            if end <= start:
                raise HTTPException(status_code=400, detail="end_time must be after start_time")
            if entry.slot_duration_minutes < MIN_SLOT_MINUTES:
                raise HTTPException(status_code=400, detail="slot_duration_minutes must be at least 5")
            if entry.max_patients_per_slot < 1:
                raise HTTPException(status_code=400, detail="max_patients_per_slot must be at least 1")
            rows.append(DoctorSchedule(
                clinic_id=access.clinic_id,
                doctor_id=doctor.id,
                day_of_week=entry.day_of_week,
                start_time=start,
                end_time=end,
                slot_duration_minutes=entry.slot_duration_minutes,
                max_patients_per_slot=entry.max_patients_per_slot,
                is_active=entry.is_active,
            ))

        await self.session.execute(
            delete(DoctorSchedule).where(
                DoctorSchedule.clinic_id == access.clinic_id, DoctorSchedule.doctor_id == doctor.id
            )
        )
        self.session.add_all(rows)
        await self.session.commit()

        logger.info(f"Saved {len(rows)} schedules for doctor {doctor.id} at clinic {access.clinic_id}")
        rows.sort(key=lambda s: (s.day_of_week, s.start_time))
        return {"success": True, "count": len(rows), "schedules": [schedule_summary(s) for s in rows]}

    async def delete_schedule(self, access: ClinicAccess, schedule_id: UUID) -> dict:
        schedule = await self.session.get(DoctorSchedule, schedule_id)
        if not schedule or schedule.clinic_id != access.clinic_id:
            raise HTTPException(status_code=404, detail="Schedule not found")
        await self.session.delete(schedule)
        await self.session.commit()
        return {"success": True, "message": "Schedule deleted"}

    async def list_leaves(self, access: ClinicAccess, doctor_id: Optional[UUID], upcoming: bool = False) -> dict:
        conditions = [DoctorLeave.clinic_id == access.clinic_id]
        if doctor_id:
            conditions.append(DoctorLeave.doctor_id == doctor_id)
        if upcoming:
            conditions.append(DoctorLeave.end_date >= date.today())
        stmt = select(DoctorLeave).where(*conditions).order_by(DoctorLeave.start_date)
        leaves = (await self.session.execute(stmt)).scalars().all()
        return {"leaves": [leave_summary(leave) for leave in leaves]}

    async def affected_appointments(self, clinic_id: UUID, leave: DoctorLeave) -> List[dict]:
        stmt = (
            select(Appointment, Patient)
            .join(Patient, Patient.id == Appointment.patient_id)
            .where(
                Appointment.clinic_id == clinic_id,
                Appointment.doctor_id == leave.doctor_id,
                Appointment.appointment_date >= leave.start_date,
                Appointment.appointment_date <= leave.end_date,
                Appointment.status.in_(LEAVE_AFFECTED_STATUSES),
            )
            .order_by(Appointment.appointment_date, Appointment.time_slot_start)
        )
        rows = (await self.session.execute(stmt)).all()
        return [
            {
                "id": str(appointment.id),
                "appointment_date": appointment.appointment_date.isoformat(),
                "time_slot_start": format_time(appointment.time_slot_start),
                "time_slot_end": format_time(appointment.time_slot_end),
                "token_number": appointment.token_number,
                "status": appointment.status,
                "patient": {"id": str(patient.id), "full_name": patient.full_name, "phone": patient.phone},
            }
            for appointment, patient in rows
            if is_slot_during_leave(appointment.time_slot_start, appointment.time_slot_end, leave)
        ]

    async def create_leave(self, access: ClinicAccess, data: LeaveCreate) -> dict:
        if not data.doctor_id:
            raise HTTPException(status_code=400, detail="Doctor ID is required")
        if not data.start_date:
            raise HTTPException(status_code=400, detail="Leave date is required")
        if not data.reason or not data.reason.strip():
            raise HTTPException(status_code=400, detail="Reason is required")

        start_date = parse_date(data.start_date)
        end_date = parse_date(data.end_date) if data.end_date else start_date
        if start_date is None or end_date is None:
            raise HTTPException(status_code=400, detail="Invalid date format. Use YYYY-MM-DD")
        if end_date < start_date:
            raise HTTPException(status_code=400, detail="End date cannot be before start date")

        start_time = end_time = None
        if data.start_time or data.end_time:
            if not data.start_time or not data.end_time:
                raise HTTPException(
                    status_code=400,
                    detail="Both start time and end time must be provided for partial day leave",
                )
            start_time = parse_clock(data.start_time)
            if start_time is None:
                raise HTTPException(status_code=400, detail="Invalid start time format (use HH:MM)")
            end_time = parse_clock(data.end_time)
            if end_time is None:
                raise HTTPException(status_code=400, detail="Invalid end time format (use HH:MM)")
            if end_time <= start_time:
                raise HTTPException(status_code=400, detail="End time must be after start time")

        doctor = await get_affiliated_doctor(self.session, access.clinic_id, data.doctor_id)
        leave = DoctorLeave(
            clinic_id=access.clinic_id,
            doctor_id=doctor.id,
            start_date=start_date,
            end_date=end_date,
            start_time=start_time,
            end_time=end_time,
            reason=data.reason.strip(),
        )
        affected = await self.affected_appointments(access.clinic_id, leave)

        # dry run: report the clash without saving
        if data.check_affected:
            return {"affectedCount": len(affected), "affectedAppointments": affected}

        self.session.add(leave)
        await self.session.commit()
        await self.session.refresh(leave)

        logger.info(f"Leave {leave.id} recorded for doctor {doctor.id}, {len(affected)} appointments affected")
        return {"success": True, "leave": leave_summary(leave), "affectedCount": len(affected)}

    async def delete_leave(self, access: ClinicAccess, leave_id: UUID) -> dict:
        leave = await self.session.get(DoctorLeave, leave_id)
        if not leave or leave.clinic_id != access.clinic_id:
            raise HTTPException(status_code=404, detail="Leave not found")
        await self.session.delete(leave)
        await self.session.commit()
        return {"success": True, "message": "Leave deleted"}
