from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import require_permission
from app.core.clinic_access import ClinicAccess
from app.db.session import get_session
from app.schemas.clinic import StaffInvite, StaffRoleUpdate
from app.services.staff_service import StaffService

router = APIRouter()

async def get_staff_service(session: AsyncSession = Depends(get_session)) -> StaffService:
    return StaffService(session)

@router.get("/staff")
async def read_staff(
    access: ClinicAccess = Depends(require_permission("staff")),
    service: StaffService = Depends(get_staff_service)
):
    return await service.list_staff(access)

@router.post("/staff", status_code=201)
async def invite_staff(
    payload: StaffInvite,
    background_tasks: BackgroundTasks,
    access: ClinicAccess = Depends(require_permission("staff")),
    service: StaffService = Depends(get_staff_service)
):
    return await service.invite_staff(access, payload.email, payload.role, background_tasks)

@router.patch("/staff/{staff_id}")
async def update_staff_role(
    staff_id: UUID,
    payload: StaffRoleUpdate,
    access: ClinicAccess = Depends(require_permission("staff")),
    service: StaffService = Depends(get_staff_service)
):
    return await service.update_role(access, staff_id, payload.role)

@router.delete("/staff/{staff_id}")
async def remove_staff(
    staff_id: UUID,
    access: ClinicAccess = Depends(require_permission("staff")),
    service: StaffService = Depends(get_staff_service)
):
    return await service.remove_staff(access, staff_id)
