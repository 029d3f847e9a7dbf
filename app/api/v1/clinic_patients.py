from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import require_permission
from app.core.clinic_access import ClinicAccess
from app.db.session import get_session
from app.schemas.patient import ClinicPatientCreate, ClinicPatientUpdate
from app.services.clinic_patient_service import ClinicPatientService

router = APIRouter()

async def get_clinic_patient_service(session: AsyncSession = Depends(get_session)) -> ClinicPatientService:
    return ClinicPatientService(session)

@router.get("/patients")
async def read_patients(
    q: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
    sort: str = "created_at",
    order: str = "desc",
    access: ClinicAccess = Depends(require_permission("patients:view")),
    service: ClinicPatientService = Depends(get_clinic_patient_service)
):
    return await service.list_patients(access, q, page, limit, sort, order)

@router.post("/patients", status_code=201)
async def create_patient(
    payload: ClinicPatientCreate,
    access: ClinicAccess = Depends(require_permission("patients")),
    service: ClinicPatientService = Depends(get_clinic_patient_service)
):
    return await service.create_patient(access, payload)

@router.get("/patients/{patient_id}")
async def read_patient(
    patient_id: UUID,
    access: ClinicAccess = Depends(require_permission("patients:view")),
    service: ClinicPatientService = Depends(get_clinic_patient_service)
):
    return await service.get_patient(access, patient_id)

@router.patch("/patients/{patient_id}")
async def update_patient(
    patient_id: UUID,
    payload: ClinicPatientUpdate,
    access: ClinicAccess = Depends(require_permission("patients")),
    service: ClinicPatientService = Depends(get_clinic_patient_service)
):
    return await service.update_patient(access, patient_id, payload)
