from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import require_permission
from app.core.clinic_access import ClinicAccess
from app.db.session import get_session
from app.schemas.prescription import PrescriptionCreate, PrescriptionIssue, PrescriptionUpdate
from app.services.prescription_service import PrescriptionService

router = APIRouter()

async def get_prescription_service(session: AsyncSession = Depends(get_session)) -> PrescriptionService:
    return PrescriptionService(session)

@router.get("/prescriptions")
async def read_prescriptions(
    patient_id: Optional[UUID] = None,
    status: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
    access: ClinicAccess = Depends(require_permission("prescriptions")),
    service: PrescriptionService = Depends(get_prescription_service)
):
    return await service.list_prescriptions(access, patient_id, status, page, limit)

@router.post("/prescriptions", status_code=201)
async def create_prescription(
    payload: PrescriptionCreate,
    access: ClinicAccess = Depends(require_permission("prescriptions:write")),
    service: PrescriptionService = Depends(get_prescription_service)
):
    return await service.create_prescription(access, payload)

@router.get("/prescriptions/{prescription_id}")
async def read_prescription(
    prescription_id: UUID,
    access: ClinicAccess = Depends(require_permission("prescriptions")),
    service: PrescriptionService = Depends(get_prescription_service)
):
    return await service.get_prescription(access, prescription_id)

@router.patch("/prescriptions/{prescription_id}")
async def update_prescription(
    prescription_id: UUID,
    payload: PrescriptionUpdate,
    access: ClinicAccess = Depends(require_permission("prescriptions:write")),
    service: PrescriptionService = Depends(get_prescription_service)
):
    return await service.update_prescription(access, prescription_id, payload)

@router.delete("/prescriptions/{prescription_id}")
async def delete_prescription(
    prescription_id: UUID,
    access: ClinicAccess = Depends(require_permission("prescriptions:write")),
    service: PrescriptionService = Depends(get_prescription_service)
):
    return await service.delete_prescription(access, prescription_id)

@router.post("/prescriptions/{prescription_id}/issue")
async def issue_prescription(
    prescription_id: UUID,
    payload: Optional[PrescriptionIssue] = None,
    access: ClinicAccess = Depends(require_permission("prescriptions:write")),
    service: PrescriptionService = Depends(get_prescription_service)
):
    return await service.issue_prescription(access, prescription_id, payload or PrescriptionIssue())
