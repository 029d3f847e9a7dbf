from uuid import UUID

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.clinic_access import ClinicAccess
from app.core.logger import logger
from app.db.models import ClinicDoctor, Professional
from app.schemas.clinic import DoctorAffiliationCreate
from app.services.search_service import professional_summary


def affiliation_summary(link: ClinicDoctor, doctor: Professional) -> dict:
    return {
        **professional_summary(doctor),
        "clinicDoctorId": str(link.id),
        "designation": link.designation,
        "consultation_fee": link.consultation_fee,
        "joinedAt": link.created_at.isoformat(),
    }


async def get_affiliated_doctor(session: AsyncSession, clinic_id: UUID, doctor_id: UUID) -> Professional:
    stmt = (
        select(Professional)
        .join(ClinicDoctor, ClinicDoctor.doctor_id == Professional.id)
        .where(ClinicDoctor.clinic_id == clinic_id, ClinicDoctor.doctor_id == doctor_id)
    )
    doctor = (await session.execute(stmt)).scalars().first()
    if not doctor:
        raise HTTPException(status_code=400, detail="Doctor not affiliated with this clinic")
    return doctor


class ClinicDoctorService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_doctors(self, access: ClinicAccess) -> dict:
        stmt = (
            select(ClinicDoctor, Professional)
            .join(Professional, Professional.id == ClinicDoctor.doctor_id)
            .where(ClinicDoctor.clinic_id == access.clinic_id)
            .order_by(Professional.full_name)
        )
        rows = (await self.session.execute(stmt)).all()
        return {"doctors": [affiliation_summary(link, doctor) for link, doctor in rows]}

    async def add_doctor(self, access: ClinicAccess, data: DoctorAffiliationCreate) -> dict:
        if not data.doctor_id:
            raise HTTPException(status_code=400, detail="Doctor ID is required")
        if data.consultation_fee is not None and data.consultation_fee < 0:
            raise HTTPException(status_code=400, detail="Consultation fee cannot be negative")

        doctor = await self.session.get(Professional, data.doctor_id)
        if not doctor:
            raise HTTPException(status_code=404, detail="Doctor not found")
        if not doctor.verified:
            raise HTTPException(status_code=400, detail="Only verified professionals can be added to a clinic")

        stmt = select(ClinicDoctor).where(
            ClinicDoctor.clinic_id == access.clinic_id, ClinicDoctor.doctor_id == doctor.id
        )
        if (await self.session.execute(stmt)).scalars().first():
            raise HTTPException(status_code=400, detail="Doctor is already affiliated with this clinic")

        link = ClinicDoctor(
            clinic_id=access.clinic_id,
            doctor_id=doctor.id,
            designation=data.designation.strip() if data.designation and data.designation.strip() else None,
            consultation_fee=data.consultation_fee,
        )
        self.session.add(link)
        await self.session.commit()
        await self.session.refresh(link)

        logger.info(f"Doctor {doctor.id} affiliated with clinic {access.clinic_id}")
        return {"success": True, "doctor": affiliation_summary(link, doctor)}

    async def remove_doctor(self, access: ClinicAccess, clinic_doctor_id: UUID) -> dict:
        link = await self.session.get(ClinicDoctor, clinic_doctor_id)
        if not link or link.clinic_id != access.clinic_id:
            raise HTTPException(status_code=404, detail="Clinic doctor relationship not found")
        await self.session.delete(link)
        await self.session.commit()

        logger.info(f"Doctor {link.doctor_id} removed from clinic {access.clinic_id}")
        return {"success": True, "message": "Doctor removed from clinic"}
