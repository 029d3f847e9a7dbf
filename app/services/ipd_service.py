from datetime import date, datetime
from typing import Optional
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.clinic_access import ClinicAccess
from app.core.logger import logger
from app.core.utils import next_sequence
from app.db.models import Admission, Bed, ClinicDoctor, Patient, Professional, Ward
from app.db.models.enums import AdmissionStatus, BedStatus, WardType
from app.schemas.ipd import AdmissionCreate, BedCreate, DischargeRequest, WardCreate

WARD_TYPES = [t.value for t in WardType]
ADMISSION_STATUSES = [s.value for s in AdmissionStatus]


def clean(value: Optional[str]) -> Optional[str]:
    return value.strip() if value and value.strip() else None


def ward_summary(ward: Ward, beds: Optional[list] = None) -> dict:
    data = {
        "id": str(ward.id),
        "name": ward.name,
        "type": ward.type,
        "floor": ward.floor,
        "daily_rate": ward.daily_rate,
        "is_active": ward.is_active,
        "created_at": ward.created_at.isoformat(),
    }
    if beds is not None:
        data["totalBeds"] = len(beds)
        data["occupiedBeds"] = sum(1 for bed in beds if bed.status == BedStatus.OCCUPIED.value)
        data["availableBeds"] = sum(1 for bed in beds if bed.status == BedStatus.AVAILABLE.value)
    return data


def doctor_brief(doctor: Optional[Professional]) -> Optional[dict]:
    if doctor is None:
        return None
    return {"id": str(doctor.id), "full_name": doctor.full_name, "type": doctor.type}


def admission_summary(
    admission: Admission,
    patient: Patient,
    bed: Bed,
    ward: Ward,
    admitting: Professional,
    attending: Optional[Professional] = None,
) -> dict:
    return {
        "id": str(admission.id),
        "admission_number": admission.admission_number,
        "status": admission.status,
        "admission_date": admission.admission_date.isoformat(),
        "admission_diagnosis": admission.admission_diagnosis,
        "chief_complaint": admission.chief_complaint,
        "notes": admission.notes,
        "discharge_date": admission.discharge_date.isoformat() if admission.discharge_date else None,
        "discharge_type": admission.discharge_type,
        "discharge_diagnosis": admission.discharge_diagnosis,
        "discharge_summary": admission.discharge_summary,
        "discharge_advice": admission.discharge_advice,
        "patient": {
            "id": str(patient.id),
            "full_name": patient.full_name,
            "patient_number": patient.patient_number,
            "phone": patient.phone,
            "gender": patient.gender,
        },
        "bed": {
            "id": str(bed.id),
            "bed_number": bed.bed_number,
            "ward": {"id": str(ward.id), "name": ward.name, "type": ward.type},
        },
        "admitting_doctor": doctor_brief(admitting),
        "attending_doctor": doctor_brief(attending),
    }


class IpdService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_wards(self, access: ClinicAccess) -> dict:
        wards = (
            await self.session.execute(
                select(Ward).where(Ward.clinic_id == access.clinic_id).order_by(Ward.name)
            )
        ).scalars().all()
        beds = (
            await self.session.execute(select(Bed).where(Bed.ward_id.in_([w.id for w in wards])))
        ).scalars().all() if wards else []
        by_ward = {}
        for bed in beds:
            by_ward.setdefault(bed.ward_id, []).append(bed)
        return {"wards": [ward_summary(ward, by_ward.get(ward.id, [])) for ward in wards]}

    async def create_ward(self, access: ClinicAccess, data: WardCreate) -> dict:
        name = clean(data.name)
        if not name or not data.type:
            raise HTTPException(status_code=400, detail="Name and type are required")
        if data.type not in WARD_TYPES:
            raise HTTPException(status_code=400, detail="Invalid ward type")
        if data.daily_rate < 0:
            raise HTTPException(status_code=400, detail="Daily rate cannot be negative")

        stmt = select(Ward).where(Ward.clinic_id == access.clinic_id, Ward.name == name)
        if (await self.session.execute(stmt)).scalars().first():
            raise HTTPException(status_code=400, detail="A ward with this name already exists")

        ward = Ward(
            clinic_id=access.clinic_id,
            name=name,
            type=data.type,
            floor=clean(data.floor),
            daily_rate=data.daily_rate,
        )
        self.session.add(ward)
        await self.session.commit()
        await self.session.refresh(ward)
        logger.info(f"Ward {ward.name} created at clinic {access.clinic_id}")
        return {"ward": ward_summary(ward, [])}

    async def get_clinic_ward(self, access: ClinicAccess, ward_id: UUID) -> Optional[Ward]:
        ward = await self.session.get(Ward, ward_id)
        if not ward or ward.clinic_id != access.clinic_id:
            return None
        return ward

    async def list_beds(self, access: ClinicAccess, ward_id: Optional[UUID] = None) -> dict:
        conditions = [Ward.clinic_id == access.clinic_id]
        if ward_id:
            conditions.append(Ward.id == ward_id)
        stmt = (
            select(Bed, Ward)
            .join(Ward, Ward.id == Bed.ward_id)
            .where(*conditions)
            .order_by(Ward.name, Bed.bed_number)
        )
        rows = (await self.session.execute(stmt)).all()

        occupants = {}
        if rows:
            active = (
                select(Admission, Patient)
                .join(Patient, Patient.id == Admission.patient_id)
                .where(
                    Admission.bed_id.in_([bed.id for bed, _ in rows]),
                    Admission.status == AdmissionStatus.ADMITTED.value,
                )
            )
            for admission, patient in (await self.session.execute(active)).all():
                occupants[admission.bed_id] = (admission, patient)

        beds = []
        for bed, ward in rows:
            admission, patient = occupants.get(bed.id, (None, None))
            beds.append({
                "id": str(bed.id),
                "bed_number": bed.bed_number,
                "status": bed.status,
                "ward_id": str(ward.id),
                "ward": {"id": str(ward.id), "name": ward.name, "type": ward.type},
                "current_patient": {
                    "id": str(patient.id),
                    "full_name": patient.full_name,
                    "patient_number": patient.patient_number,
                } if patient else None,
                "current_admission_id": str(admission.id) if admission else None,
            })
        return {"beds": beds}

    async def create_bed(self, access: ClinicAccess, data: BedCreate) -> dict:
        bed_number = clean(data.bed_number)
        if not data.ward_id or not bed_number:
            raise HTTPException(status_code=400, detail="Ward ID and bed number are required")
        ward = await self.get_clinic_ward(access, data.ward_id)
        if not ward:
            raise HTTPException(status_code=404, detail="Ward not found")

        stmt = select(Bed).where(Bed.ward_id == ward.id, Bed.bed_number == bed_number)
        if (await self.session.execute(stmt)).scalars().first():
            raise HTTPException(status_code=400, detail="A bed with this number already exists in this ward")

        bed = Bed(ward_id=ward.id, bed_number=bed_number)
        self.session.add(bed)
        await self.session.commit()
        await self.session.refresh(bed)
        return {
            "bed": {
                "id": str(bed.id),
                "bed_number": bed.bed_number,
                "status": bed.status,
                "ward": {"id": str(ward.id), "name": ward.name, "type": ward.type},
            }
        }

    def _admission_query(self):
        return (
            select(Admission, Patient, Bed, Ward, Professional)
            .join(Patient, Patient.id == Admission.patient_id)
            .join(Bed, Bed.id == Admission.bed_id)
            .join(Ward, Ward.id == Bed.ward_id)
            .join(Professional, Professional.id == Admission.admitting_doctor_id)
        )

    async def _attending_doctors(self, admissions) -> dict:
        ids = {a.attending_doctor_id for a in admissions if a.attending_doctor_id}
        if not ids:
            return {}
        doctors = (
            await self.session.execute(select(Professional).where(Professional.id.in_(ids)))
        ).scalars().all()
        return {doctor.id: doctor for doctor in doctors}

    async def _describe(self, admission_id: UUID) -> dict:
        row = (
            await self.session.execute(self._admission_query().where(Admission.id == admission_id))
        ).first()
        attending = await self._attending_doctors([row[0]])
        return admission_summary(*row, attending.get(row[0].attending_doctor_id))

    async def list_admissions(
        self,
        access: ClinicAccess,
        status: Optional[str] = None,
        patient_id: Optional[UUID] = None,
    ) -> dict:
        conditions = [Admission.clinic_id == access.clinic_id]
        if status:
            if status not in ADMISSION_STATUSES:
                raise HTTPException(status_code=400, detail="Invalid status filter")
            conditions.append(Admission.status == status)
        if patient_id:
            conditions.append(Admission.patient_id == patient_id)

        stmt = self._admission_query().where(*conditions).order_by(Admission.admission_date.desc())
        rows = (await self.session.execute(stmt)).all()
        attending = await self._attending_doctors([row[0] for row in rows])
        return {
            "admissions": [
                admission_summary(*row, attending.get(row[0].attending_doctor_id)) for row in rows
            ]
        }

    async def is_affiliated(self, clinic_id: UUID, doctor_id: UUID) -> bool:
        stmt = select(ClinicDoctor).where(
            ClinicDoctor.clinic_id == clinic_id,
            ClinicDoctor.doctor_id == doctor_id,
        )
        return (await self.session.execute(stmt)).scalars().first() is not None

    async def next_admission_number(self, clinic_id: UUID) -> str:
        prefix = f"ADM-{date.today().strftime('%Y%m')}"
        stmt = (
            select(Admission.admission_number)
            .where(Admission.clinic_id == clinic_id, Admission.admission_number.startswith(prefix))
            .order_by(Admission.admission_number.desc())
        )
        last = (await self.session.execute(stmt)).scalars().first()
        return f"{prefix}-{next_sequence(last):04d}"

    async def admit(self, access: ClinicAccess, data: AdmissionCreate) -> dict:
        if not data.patient_id or not data.bed_id or not data.admitting_doctor_id:
            raise HTTPException(status_code=400, detail="Patient, bed, and admitting doctor are required")

        patient = await self.session.get(Patient, data.patient_id)
        if not patient or patient.clinic_id != access.clinic_id:
            raise HTTPException(status_code=404, detail="Patient not found")

        row = (
            await self.session.execute(
                select(Bed, Ward)
                .join(Ward, Ward.id == Bed.ward_id)
                .where(Bed.id == data.bed_id, Ward.clinic_id == access.clinic_id)
            )
        ).first()
        if not row:
            raise HTTPException(status_code=404, detail="Bed not found")
        bed, _ = row
        if bed.status != BedStatus.AVAILABLE.value:
            raise HTTPException(status_code=400, detail="Bed is not available for admission")

        if not await self.is_affiliated(access.clinic_id, data.admitting_doctor_id):
            raise HTTPException(status_code=400, detail="Admitting doctor is not affiliated with this clinic")
        if data.attending_doctor_id and data.attending_doctor_id != data.admitting_doctor_id:
            if not await self.is_affiliated(access.clinic_id, data.attending_doctor_id):
                raise HTTPException(
                    status_code=400,
                    detail="Attending doctor is not affiliated with this clinic",
                )

        existing = select(Admission.id).where(
            Admission.patient_id == patient.id,
            Admission.clinic_id == access.clinic_id,
            Admission.status == AdmissionStatus.ADMITTED.value,
        )
        if (await self.session.execute(existing)).first():
            raise HTTPException(status_code=400, detail="Patient is already admitted")

        admission = Admission(
            clinic_id=access.clinic_id,
            patient_id=patient.id,
            bed_id=bed.id,
            admitting_doctor_id=data.admitting_doctor_id,
            attending_doctor_id=data.attending_doctor_id,
            admission_number=await self.next_admission_number(access.clinic_id),
            admission_diagnosis=clean(data.admission_diagnosis),
            chief_complaint=clean(data.chief_complaint),
            notes=clean(data.notes),
        )
        bed.status = BedStatus.OCCUPIED.value
        self.session.add(admission)
        self.session.add(bed)
        await self.session.commit()

        logger.info(f"Admission {admission.admission_number} created for patient {patient.id}")
        return {"admission": await self._describe(admission.id)}

    async def discharge(self, access: ClinicAccess, admission_id: UUID, data: DischargeRequest) -> dict:
        stmt = select(Admission).where(
            Admission.id == admission_id,
            Admission.clinic_id == access.clinic_id,
            Admission.status == AdmissionStatus.ADMITTED.value,
        )
        admission = (await self.session.execute(stmt)).scalars().first()
        if not admission:
            raise HTTPException(status_code=404, detail="Active admission not found")

        admission.status = AdmissionStatus.DISCHARGED.value
        admission.discharge_date = datetime.utcnow()
        admission.discharge_diagnosis = clean(data.discharge_diagnosis)
        admission.discharge_summary = clean(data.discharge_summary)
        admission.discharge_type = clean(data.discharge_type) or "Normal"
        admission.discharge_advice = clean(data.discharge_advice)
        self.session.add(admission)

        bed = await self.session.get(Bed, admission.bed_id)
        if bed:
            bed.status = BedStatus.AVAILABLE.value
            self.session.add(bed)
        await self.session.commit()

        logger.info(f"Admission {admission.admission_number} discharged")
        return {"admission": await self._describe(admission.id)}
