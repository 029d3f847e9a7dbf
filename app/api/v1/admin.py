from typing import Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_admin
from app.db.models import User
from app.db.session import get_session
from app.schemas.admin import AdminAction
from app.services.admin_service import AdminService

router = APIRouter()

async def get_admin_service(session: AsyncSession = Depends(get_session)) -> AdminService:
    return AdminService(session)

@router.get("/claims")
async def read_pending_claims(
    admin: User = Depends(get_current_admin),
    service: AdminService = Depends(get_admin_service)
):
    return await service.list_pending_claims()

@router.post("/claims/{claim_id}")
async def process_claim(
    claim_id: UUID,
    payload: AdminAction,
    request: Request,
    background_tasks: BackgroundTasks,
    admin: User = Depends(get_current_admin),
    service: AdminService = Depends(get_admin_service)
):
    return await service.process_claim(claim_id, payload, admin, background_tasks, request)

@router.get("/clinics")
async def read_pending_clinics(
    admin: User = Depends(get_current_admin),
    service: AdminService = Depends(get_admin_service)
):
    return await service.list_pending_clinics()

@router.post("/clinics/{clinic_id}")
async def process_clinic(
    clinic_id: UUID,
    payload: AdminAction,
    request: Request,
    background_tasks: BackgroundTasks,
    admin: User = Depends(get_current_admin),
    service: AdminService = Depends(get_admin_service)
):
    return await service.process_clinic(clinic_id, payload, admin, background_tasks, request)

@router.get("/reviews")
async def read_reviews(
    published: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
    admin: User = Depends(get_current_admin),
    service: AdminService = Depends(get_admin_service)
):
    return await service.list_reviews(published, limit, offset)
