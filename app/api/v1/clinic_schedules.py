from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import require_permission
from app.core.clinic_access import ClinicAccess
from app.db.session import get_session
from app.schemas.clinic import LeaveCreate, SchedulesUpdate
from app.services.schedule_service import ScheduleService

router = APIRouter()

async def get_schedule_service(session: AsyncSession = Depends(get_session)) -> ScheduleService:
    return ScheduleService(session)

@router.get("/schedules")
async def read_schedules(
    doctorId: Optional[UUID] = None,
    access: ClinicAccess = Depends(require_permission("schedules")),
    service: ScheduleService = Depends(get_schedule_service)
):
    return await service.list_schedules(access, doctorId)

@router.post("/schedules")
async def replace_schedules(
    payload: SchedulesUpdate,
    access: ClinicAccess = Depends(require_permission("schedules")),
    service: ScheduleService = Depends(get_schedule_service)
):
    return await service.replace_schedules(access, payload)

@router.delete("/schedules/{schedule_id}")
async def delete_schedule(
    schedule_id: UUID,
    access: ClinicAccess = Depends(require_permission("schedules")),
    service: ScheduleService = Depends(get_schedule_service)
):
    return await service.delete_schedule(access, schedule_id)

@router.get("/leaves")
async def read_leaves(
    doctorId: Optional[UUID] = None,
    upcoming: bool = False,
    access: ClinicAccess = Depends(require_permission("leaves")),
    service: ScheduleService = Depends(get_schedule_service)
):
    return await service.list_leaves(access, doctorId, upcoming)

@router.post("/leaves")
async def create_leave(
    payload: LeaveCreate,
    access: ClinicAccess = Depends(require_permission("leaves")),
    service: ScheduleService = Depends(get_schedule_service)
):
    return await service.create_leave(access, payload)

@router.delete("/leaves/{leave_id}")
async def delete_leave(
    leave_id: UUID,
    access: ClinicAccess = Depends(require_permission("leaves")),
    service: ScheduleService = Depends(get_schedule_service)
):
    return await service.delete_leave(access, leave_id)
