from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import require_permission
from app.core.clinic_access import ClinicAccess
from app.db.session import get_session
from app.schemas.ipd import AdmissionCreate, BedCreate, DischargeRequest, WardCreate
from app.services.ipd_service import IpdService

router = APIRouter()

async def get_ipd_service(session: AsyncSession = Depends(get_session)) -> IpdService:
    return IpdService(session)

@router.get("/ipd/wards")
async def read_wards(
    access: ClinicAccess = Depends(require_permission("ipd")),
    service: IpdService = Depends(get_ipd_service)
):
    return await service.list_wards(access)

@router.post("/ipd/wards", status_code=201)
async def create_ward(
    payload: WardCreate,
    access: ClinicAccess = Depends(require_permission("ipd")),
    service: IpdService = Depends(get_ipd_service)
):
    return await service.create_ward(access, payload)

@router.get("/ipd/beds")
async def read_beds(
    ward_id: Optional[UUID] = None,
    access: ClinicAccess = Depends(require_permission("ipd")),
    service: IpdService = Depends(get_ipd_service)
):
    return await service.list_beds(access, ward_id)

@router.post("/ipd/beds", status_code=201)
async def create_bed(
    payload: BedCreate,
    access: ClinicAccess = Depends(require_permission("ipd")),
    service: IpdService = Depends(get_ipd_service)
):
    return await service.create_bed(access, payload)

@router.get("/ipd/admissions")
async def read_admissions(
    status: Optional[str] = None,
    patient_id: Optional[UUID] = None,
    access: ClinicAccess = Depends(require_permission("ipd")),
    service: IpdService = Depends(get_ipd_service)
):
    return await service.list_admissions(access, status, patient_id)

@router.post("/ipd/admissions", status_code=201)
async def admit_patient(
    payload: AdmissionCreate,
    access: ClinicAccess = Depends(require_permission("ipd")),
    service: IpdService = Depends(get_ipd_service)
):
    return await service.admit(access, payload)

@router.post("/ipd/admissions/{admission_id}/discharge")
async def discharge_patient(
    admission_id: UUID,
    payload: DischargeRequest,
    access: ClinicAccess = Depends(require_permission("ipd")),
    service: IpdService = Depends(get_ipd_service)
):
    return await service.discharge(access, admission_id, payload)
