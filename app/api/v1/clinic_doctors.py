from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import require_permission
from app.core.clinic_access import ClinicAccess
from app.db.session import get_session
from app.schemas.clinic import DoctorAffiliationCreate
from app.services.clinic_doctor_service import ClinicDoctorService

router = APIRouter()

async def get_clinic_doctor_service(session: AsyncSession = Depends(get_session)) -> ClinicDoctorService:
    return ClinicDoctorService(session)

@router.get("/doctors")
async def read_doctors(
    access: ClinicAccess = Depends(require_permission("doctors")),
    service: ClinicDoctorService = Depends(get_clinic_doctor_service)
):
    return await service.list_doctors(access)

@router.post("/doctors", status_code=201)
async def add_doctor(
    payload: DoctorAffiliationCreate,
    access: ClinicAccess = Depends(require_permission("doctors")),
    service: ClinicDoctorService = Depends(get_clinic_doctor_service)
):
    return await service.add_doctor(access, payload)

@router.delete("/doctors/{clinic_doctor_id}")
async def remove_doctor(
    clinic_doctor_id: UUID,
    access: ClinicAccess = Depends(require_permission("doctors")),
    service: ClinicDoctorService = Depends(get_clinic_doctor_service)
):
    return await service.remove_doctor(access, clinic_doctor_id)
