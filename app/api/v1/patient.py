from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.db.models import User
from app.db.session import get_session
from app.schemas.patient import FamilyMemberCreate, FamilyMemberUpdate
from app.services.patient_service import PatientPortalService

router = APIRouter()

async def get_patient_service(session: AsyncSession = Depends(get_session)) -> PatientPortalService:
    return PatientPortalService(session)

@router.get("/appointments")
async def read_my_appointments(
    page: int = 1,
    limit: int = 20,
    filter: Optional[str] = None,
    status: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    service: PatientPortalService = Depends(get_patient_service)
):
    return await service.list_appointments(current_user, page, limit, filter, status)

@router.get("/lab-results")
async def read_my_lab_results(
    page: int = 1,
    limit: int = 10,
    current_user: User = Depends(get_current_user),
    service: PatientPortalService = Depends(get_patient_service)
):
    return await service.list_lab_results(current_user, page, limit)

@router.get("/prescriptions")
async def read_my_prescriptions(
    page: int = 1,
    limit: int = 20,
    status: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    service: PatientPortalService = Depends(get_patient_service)
):
    return await service.list_prescriptions(current_user, page, limit, status)

@router.get("/family-members")
async def read_family_members(
    current_user: User = Depends(get_current_user),
    service: PatientPortalService = Depends(get_patient_service)
):
    return await service.list_family_members(current_user)

@router.post("/family-members", status_code=201)
async def create_family_member(
    payload: FamilyMemberCreate,
    current_user: User = Depends(get_current_user),
    service: PatientPortalService = Depends(get_patient_service)
):
    return await service.create_family_member(current_user, payload)

@router.get("/family-members/{member_id}")
async def read_family_member(
    member_id: UUID,
    current_user: User = Depends(get_current_user),
    service: PatientPortalService = Depends(get_patient_service)
):
    return await service.get_family_member(current_user, member_id)

@router.put("/family-members/{member_id}")
async def update_family_member(
    member_id: UUID,
    payload: FamilyMemberUpdate,
    current_user: User = Depends(get_current_user),
    service: PatientPortalService = Depends(get_patient_service)
):
    return await service.update_family_member(current_user, member_id, payload)

@router.delete("/family-members/{member_id}")
async def delete_family_member(
    member_id: UUID,
    current_user: User = Depends(get_current_user),
    service: PatientPortalService = Depends(get_patient_service)
):
    return await service.delete_family_member(current_user, member_id)
