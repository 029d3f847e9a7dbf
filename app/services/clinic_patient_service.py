from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select, func, or_

from app.core.clinic_access import ClinicAccess
from app.core.logger import logger
from app.core.utils import BLOOD_GROUPS, GENDERS, INVALID_PHONE_MESSAGE, is_valid_email, pagination
from app.db.models import Appointment, Patient
from app.schemas.patient import ClinicPatientCreate, ClinicPatientUpdate
from app.services.appointment_service import generate_patient_number
from app.services.patient_service import normalize_member_phone, parse_date_of_birth

MIN_QUERY_LENGTH = 2
SORT_COLUMNS = {
    "created_at": Patient.created_at,
    "full_name": Patient.full_name,
    "patient_number": Patient.patient_number,
}


def patient_summary(patient: Patient) -> dict:
    return {
        "id": str(patient.id),
        "patient_number": patient.patient_number,
        "full_name": patient.full_name,
        "phone": patient.phone,
        "email": patient.email,
        "date_of_birth": patient.date_of_birth.isoformat() if patient.date_of_birth else None,
        "gender": patient.gender,
        "blood_group": patient.blood_group,
        "address": patient.address,
        "created_at": patient.created_at.isoformat(),
    }


def optional_text(value: Optional[str]) -> Optional[str]:
    return value.strip() if value and value.strip() else None


class ClinicPatientService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _get(self, access: ClinicAccess, patient_id: UUID) -> Patient:
        patient = await self.session.get(Patient, patient_id)
        if not patient or patient.clinic_id != access.clinic_id:
            raise HTTPException(status_code=404, detail="Patient not found")
        return patient

    async def _check_duplicate_phone(self, clinic_id: UUID, phone: str, exclude_id: Optional[UUID] = None):
        stmt = select(Patient).where(Patient.clinic_id == clinic_id, Patient.phone == phone)
        if exclude_id:
            stmt = stmt.where(Patient.id != exclude_id)
        existing = (await self.session.execute(stmt)).scalars().first()
        if existing:
            raise HTTPException(status_code=409, detail={
                "error": f"A patient with this phone number already exists: "
                         f"{existing.full_name} ({existing.patient_number})",
                "code": "DUPLICATE_PHONE",
                "existingPatient": patient_summary(existing),
            })

    def _check_fields(self, email: Optional[str], gender: Optional[str], blood_group: Optional[str]):
        if email and not is_valid_email(email.strip()):
            raise HTTPException(status_code=400, detail="Invalid email format")
        if gender and gender not in GENDERS:
            raise HTTPException(status_code=400, detail="Invalid gender.")
        if blood_group and blood_group not in BLOOD_GROUPS:
            raise HTTPException(status_code=400, detail="Invalid blood group.")

    async def list_patients(
        self,
        access: ClinicAccess,
        q: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
        sort: str = "created_at",
        order: str = "desc",
    ) -> dict:
        page = max(1, page)
        limit = min(100, max(1, limit))
        conditions = [Patient.clinic_id == access.clinic_id]
        term = (q or "").strip()
        # single characters match too much to be useful
        if len(term) >= MIN_QUERY_LENGTH:
            pattern = f"%{term}%"
            conditions.append(or_(
                Patient.full_name.ilike(pattern),
                Patient.phone.ilike(pattern),
                Patient.patient_number.ilike(pattern),
                Patient.email.ilike(pattern),
            ))

        column = SORT_COLUMNS.get(sort, Patient.created_at)
        stmt = (
            select(Patient)
            .where(*conditions)
            .order_by(column.asc() if order == "asc" else column.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        patients = (await self.session.execute(stmt)).scalars().all()
        total = (await self.session.execute(select(func.count(Patient.id)).where(*conditions))).scalar() or 0
        return {"patients": [patient_summary(p) for p in patients], "pagination": pagination(total, page, limit)}

    async def get_patient(self, access: ClinicAccess, patient_id: UUID) -> dict:
        patient = await self._get(access, patient_id)
        stmt = select(func.count(Appointment.id)).where(Appointment.patient_id == patient.id)
        visits = (await self.session.execute(stmt)).scalar() or 0
        return {"patient": {**patient_summary(patient), "appointmentCount": visits}}

    async def create_patient(self, access: ClinicAccess, data: ClinicPatientCreate) -> dict:
        if not data.full_name or not data.full_name.strip():
            raise HTTPException(status_code=400, detail="Patient name is required")
        if not data.phone:
            raise HTTPException(status_code=400, detail=INVALID_PHONE_MESSAGE)
        phone = normalize_member_phone(data.phone)
        self._check_fields(data.email, data.gender, data.blood_group)
        await self._check_duplicate_phone(access.clinic_id, phone)

        patient = Patient(
            clinic_id=access.clinic_id,
            patient_number=await generate_patient_number(self.session, access.clinic_id),
            full_name=data.full_name.strip(),
            phone=phone,
            email=optional_text(data.email),
            date_of_birth=parse_date_of_birth(data.date_of_birth) if data.date_of_birth else None,
            gender=data.gender or None,
            blood_group=data.blood_group or None,
            address=optional_text(data.address),
        )
        self.session.add(patient)
        await self.session.commit()
        await self.session.refresh(patient)

        logger.info(f"Patient {patient.patient_number} registered at clinic {access.clinic_id}")
        return {"patient": patient_summary(patient)}

    async def update_patient(self, access: ClinicAccess, patient_id: UUID, data: ClinicPatientUpdate) -> dict:
        patient = await self._get(access, patient_id)
        fields = data.model_dump(exclude_unset=True)
        self._check_fields(fields.get("email"), fields.get("gender"), fields.get("blood_group"))

        if "full_name" in fields:
            if not optional_text(fields["full_name"]):
                raise HTTPException(status_code=400, detail="Patient name is required")
            patient.full_name = fields["full_name"].strip()
        if "phone" in fields:
            if not fields["phone"]:
                raise HTTPException(status_code=400, detail=INVALID_PHONE_MESSAGE)
            phone = normalize_member_phone(fields["phone"])
            await self._check_duplicate_phone(access.clinic_id, phone, exclude_id=patient.id)
            patient.phone = phone
        if "date_of_birth" in fields:
            value = fields["date_of_birth"]
            patient.date_of_birth = parse_date_of_birth(value) if value else None
        for key in ("email", "address"):
            if key in fields:
                setattr(patient, key, optional_text(fields[key]))
        for key in ("gender", "blood_group"):
            if key in fields:
                setattr(patient, key, fields[key] or None)

        patient.updated_at = datetime.utcnow()
        self.session.add(patient)
        await self.session.commit()
        await self.session.refresh(patient)
        return {"patient": patient_summary(patient)}
