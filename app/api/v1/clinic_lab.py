from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import require_permission
from app.core.clinic_access import ClinicAccess
from app.db.session import get_session
from app.schemas.lab import LabOrderCreate, LabResultsUpdate, LabTestCreate
from app.services.lab_service import LabService

router = APIRouter()

async def get_lab_service(session: AsyncSession = Depends(get_session)) -> LabService:
    return LabService(session)

@router.get("/lab-tests")
async def read_lab_tests(
    q: Optional[str] = None,
    category: Optional[str] = None,
    access: ClinicAccess = Depends(require_permission("lab")),
    service: LabService = Depends(get_lab_service)
):
    return await service.list_tests(access, q, category)

@router.post("/lab-tests", status_code=201)
async def create_lab_test(
    payload: LabTestCreate,
    access: ClinicAccess = Depends(require_permission("lab")),
    service: LabService = Depends(get_lab_service)
):
    return await service.create_test(access, **payload.model_dump())

@router.get("/lab-orders")
async def read_lab_orders(
    status: Optional[str] = None,
    patient_id: Optional[UUID] = None,
    page: int = 1,
    limit: int = 20,
    access: ClinicAccess = Depends(require_permission("lab:view")),
    service: LabService = Depends(get_lab_service)
):
    return await service.list_orders(access, status, patient_id, page, limit)

@router.get("/lab-orders/{order_id}")
async def read_lab_order(
    order_id: UUID,
    access: ClinicAccess = Depends(require_permission("lab:view")),
    service: LabService = Depends(get_lab_service)
):
    return await service.get_order(access, order_id)

@router.post("/lab-orders", status_code=201)
async def create_lab_order(
    payload: LabOrderCreate,
    access: ClinicAccess = Depends(require_permission("lab:order")),
    service: LabService = Depends(get_lab_service)
):
    return await service.create_order(
        access, payload.patient_id, payload.test_ids, payload.priority, payload.clinical_notes
    )

@router.patch("/lab-orders/{order_id}/results")
async def record_lab_results(
    order_id: UUID,
    payload: LabResultsUpdate,
    access: ClinicAccess = Depends(require_permission("lab")),
    service: LabService = Depends(get_lab_service)
):
    return await service.record_results(access, order_id, payload.results)
