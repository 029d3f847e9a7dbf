from typing import Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Request, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.db.models import User
from app.db.session import get_session
from app.services.verification_service import VerificationService

router = APIRouter()

async def get_verification_service(session: AsyncSession = Depends(get_session)) -> VerificationService:
    return VerificationService(session)

@router.post("/verification")
async def submit_verification(
    request: Request,
    background_tasks: BackgroundTasks,
    professionalId: Optional[UUID] = Form(default=None),
    governmentId: Optional[UploadFile] = File(default=None),
    certificate: Optional[UploadFile] = File(default=None),
    current_user: User = Depends(get_current_user),
    service: VerificationService = Depends(get_verification_service)
):
    return await service.submit_claim(
        current_user, professionalId, governmentId, certificate, background_tasks, request
    )

@router.get("/dashboard/claims")
async def read_my_claims(
    current_user: User = Depends(get_current_user),
    service: VerificationService = Depends(get_verification_service)
):
    return await service.list_user_claims(current_user)
