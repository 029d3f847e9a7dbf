from datetime import date, datetime, timedelta
from typing import List, Optional
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select, func

from app.core.clinic_access import ClinicAccess
from app.core.logger import logger
from app.core.utils import next_sequence, pagination
from app.db.models import Appointment, Patient, Prescription, Professional
from app.db.models.enums import PrescriptionStatus
from app.schemas.prescription import PrescriptionCreate, PrescriptionIssue, PrescriptionItem, PrescriptionUpdate
from app.services.clinic_doctor_service import get_affiliated_doctor

PRESCRIPTION_STATUSES = [s.value for s in PrescriptionStatus]
REQUIRED_ITEM_FIELDS = ("drug_name", "dosage", "frequency", "duration")
MAX_VALIDITY_DAYS = 365


def validate_items(items: List[PrescriptionItem]) -> List[dict]:
    errors = []
    cleaned = []
    for index, item in enumerate(items, start=1):
        values = {key: value.strip() if isinstance(value, str) else value for key, value in item.model_dump().items()}
        for field in REQUIRED_ITEM_FIELDS:
            if not values.get(field):
                errors.append(f"Item {index}: {field} is required")
        cleaned.append({key: value or None for key, value in values.items()})
    if errors:
        raise HTTPException(status_code=400, detail={"error": "Invalid prescription items", "details": errors})
    return cleaned


def prescription_summary(prescription: Prescription, patient: Patient, doctor: Professional) -> dict:
    return {
        "id": str(prescription.id),
        "prescription_number": prescription.prescription_number,
        "appointment_id": str(prescription.appointment_id) if prescription.appointment_id else None,
        "items": prescription.items or [],
        "instructions": prescription.instructions,
        "status": prescription.status,
        "issued_at": prescription.issued_at.isoformat() if prescription.issued_at else None,
        "valid_until": prescription.valid_until.isoformat() if prescription.valid_until else None,
        "created_at": prescription.created_at.isoformat(),
        "patient": {
            "id": str(patient.id),
            "patient_number": patient.patient_number,
            "full_name": patient.full_name,
            "phone": patient.phone,
        },
        "doctor": {"id": str(doctor.id), "full_name": doctor.full_name},
    }


class PrescriptionService:
    def __init__(self, session: AsyncSession):
        self.session = session

    def _query(self):
        return (
            select(Prescription, Patient, Professional)
            .join(Patient, Patient.id == Prescription.patient_id)
            .join(Professional, Professional.id == Prescription.doctor_id)
        )

    async def _load(self, access: ClinicAccess, prescription_id: UUID) -> tuple:
        stmt = self._query().where(
            Prescription.id == prescription_id, Prescription.clinic_id == access.clinic_id
        )
        row = (await self.session.execute(stmt)).first()
        if not row:
            raise HTTPException(status_code=404, detail="Prescription not found")
        return row

    async def _load_draft(self, access: ClinicAccess, prescription_id: UUID, verb: str) -> tuple:
        row = await self._load(access, prescription_id)
        if row[0].status != PrescriptionStatus.DRAFT.value:
            raise HTTPException(status_code=400, detail=f"Only DRAFT prescriptions can be {verb}")
        return row

    async def next_prescription_number(self, clinic_id: UUID) -> str:
        prefix = f"RX-{date.today().year}"
        stmt = (
            select(Prescription.prescription_number)
            .where(Prescription.clinic_id == clinic_id, Prescription.prescription_number.startswith(prefix))
            .order_by(Prescription.prescription_number.desc())
        )
        last = (await self.session.execute(stmt)).scalars().first()
        return f"{prefix}-{next_sequence(last):04d}"

    async def list_prescriptions(
        self,
        access: ClinicAccess,
        patient_id: Optional[UUID] = None,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> dict:
        page = max(1, page)
        limit = min(100, max(1, limit))
        conditions = [Prescription.clinic_id == access.clinic_id]
        if patient_id:
            conditions.append(Prescription.patient_id == patient_id)
        if status:
            if status not in PRESCRIPTION_STATUSES:
                raise HTTPException(
                    status_code=400,
                    detail=f"Invalid status. Must be one of: {', '.join(PRESCRIPTION_STATUSES)}",
                )
            conditions.append(Prescription.status == status)

        stmt = (
            self._query()
            .where(*conditions)
            .order_by(Prescription.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        rows = (await self.session.execute(stmt)).all()
        total = (await self.session.execute(select(func.count(Prescription.id)).where(*conditions))).scalar() or 0
        return {
            "prescriptions": [prescription_summary(*row) for row in rows],
            "pagination": pagination(total, page, limit),
        }

    async def get_prescription(self, access: ClinicAccess, prescription_id: UUID) -> dict:
        return {"prescription": prescription_summary(*await self._load(access, prescription_id))}

    async def create_prescription(self, access: ClinicAccess, data: PrescriptionCreate) -> dict:
        if not data.patient_id or not data.doctor_id:
            raise HTTPException(status_code=400, detail="patient_id and doctor_id are required")

        patient = await self.session.get(Patient, data.patient_id)
        if not patient or patient.clinic_id != access.clinic_id:
            raise HTTPException(status_code=404, detail="Patient not found in your clinic")
        doctor = await get_affiliated_doctor(self.session, access.clinic_id, data.doctor_id)

        if data.appointment_id:
            appointment = await self.session.get(Appointment, data.appointment_id)
            if not appointment or appointment.clinic_id != access.clinic_id or appointment.patient_id != patient.id:
                raise HTTPException(status_code=404, detail="Appointment not found")

        prescription = Prescription(
            clinic_id=access.clinic_id,
            patient_id=patient.id,
            doctor_id=doctor.id,
            appointment_id=data.appointment_id,
            prescription_number=await self.next_prescription_number(access.clinic_id),
            items=validate_items(data.items),
            instructions=data.instructions.strip() if data.instructions and data.instructions.strip() else None,
            status=PrescriptionStatus.DRAFT.value,
        )
        self.session.add(prescription)
        await self.session.commit()
        await self.session.refresh(prescription)

        logger.info(f"Prescription {prescription.prescription_number} drafted at clinic {access.clinic_id}")
        return {"prescription": prescription_summary(prescription, patient, doctor)}

    async def update_prescription(self, access: ClinicAccess, prescription_id: UUID, data: PrescriptionUpdate) -> dict:
        prescription, patient, doctor = await self._load_draft(access, prescription_id, "edited")
        fields = data.model_dump(exclude_unset=True)
        if "items" in fields:
            prescription.items = validate_items(data.items or [])
        if "instructions" in fields:
            value = fields["instructions"]
            prescription.instructions = value.strip() if value and value.strip() else None
        prescription.updated_at = datetime.utcnow()
        self.session.add(prescription)
        await self.session.commit()
        await self.session.refresh(prescription)
        return {"prescription": prescription_summary(prescription, patient, doctor)}

    async def delete_prescription(self, access: ClinicAccess, prescription_id: UUID) -> dict:
        prescription, _, _ = await self._load_draft(access, prescription_id, "deleted")
        await self.session.delete(prescription)
        await self.session.commit()
        return {"success": True, "message": "Prescription deleted"}

    async def issue_prescription(self, access: ClinicAccess, prescription_id: UUID, data: PrescriptionIssue) -> dict:
        prescription, patient, doctor = await self._load_draft(access, prescription_id, "issued")
        if not prescription.items:
            raise HTTPException(status_code=400, detail="Prescription must have at least one medication")
        if not 1 <= data.validity_days <= MAX_VALIDITY_DAYS:
            raise HTTPException(status_code=400, detail="validity_days must be between 1 and 365")

        now = datetime.utcnow()
        prescription.status = PrescriptionStatus.ISSUED.value
        prescription.issued_at = now
        prescription.valid_until = now.date() + timedelta(days=data.validity_days)
        prescription.updated_at = now
        self.session.add(prescription)
        await self.session.commit()
        await self.session.refresh(prescription)

        logger.info(f"Prescription {prescription.prescription_number} issued")
        return {
            "prescription": prescription_summary(prescription, patient, doctor),
            "message": "Prescription issued successfully",
        }
