from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.db.models import User
from app.db.session import get_session
from app.schemas.review import ReviewCreate, ReviewUpdate
from app.services.review_service import ReviewService

router = APIRouter()

async def get_review_service(session: AsyncSession = Depends(get_session)) -> ReviewService:
    return ReviewService(session)

@router.get("")
async def read_reviews(
    clinicId: Optional[UUID] = None,
    doctorId: Optional[UUID] = None,
    published: Optional[str] = None,
    limit: int = 10,
    offset: int = 0,
    service: ReviewService = Depends(get_review_service)
):
    return await service.list_reviews(clinicId, doctorId, published, limit, offset)

@router.post("", status_code=201)
async def create_review(
    payload: ReviewCreate,
    service: ReviewService = Depends(get_review_service)
):
    return await service.create_review(payload)

@router.get("/{review_id}")
async def read_review(
    review_id: UUID,
    service: ReviewService = Depends(get_review_service)
):
    return await service.get_review(review_id)

@router.patch("/{review_id}")
async def update_review(
    review_id: UUID,
    payload: ReviewUpdate,
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service)
):
    return await service.update_review(review_id, payload, current_user)

@router.delete("/{review_id}")
async def delete_review(
    review_id: UUID,
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service)
):
    return await service.delete_review(review_id, current_user)
