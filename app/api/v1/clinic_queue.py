from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import require_permission
from app.core.clinic_access import ClinicAccess
from app.db.session import get_session
from app.schemas.clinic import QueueStatusUpdate, WalkInRequest
from app.services.queue_service import QueueService

router = APIRouter()

async def get_queue_service(session: AsyncSession = Depends(get_session)) -> QueueService:
    return QueueService(session)

@router.get("/queue")
async def read_queue(
    date: Optional[str] = None,
    access: ClinicAccess = Depends(require_permission("reception")),
    service: QueueService = Depends(get_queue_service)
):
    return await service.get_queue(access, date)

@router.patch("/queue/{appointment_id}/status")
async def update_queue_status(
    appointment_id: UUID,
    payload: QueueStatusUpdate,
    access: ClinicAccess = Depends(require_permission("reception")),
    service: QueueService = Depends(get_queue_service)
):
    return await service.update_status(access, appointment_id, payload)

@router.post("/queue/register")
async def register_walk_in(
    payload: WalkInRequest,
    access: ClinicAccess = Depends(require_permission("reception")),
    service: QueueService = Depends(get_queue_service)
):
    return await service.register_walk_in(access, payload)
