from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_session
from app.services.search_service import DEFAULT_LIMIT, DEFAULT_RADIUS_KM, SearchService

router = APIRouter()

async def get_search_service(session: AsyncSession = Depends(get_session)) -> SearchService:
    return SearchService(session)

@router.get("/clinics/nearby")
async def nearby_clinics(
    lat: Optional[float] = None,
    lng: Optional[float] = None,
    radius: float = DEFAULT_RADIUS_KM,
    q: Optional[str] = None,
    type: Optional[str] = None,
    limit: int = DEFAULT_LIMIT,
    service: SearchService = Depends(get_search_service)
):
    return await service.nearby_clinics(lat, lng, radius, q, type, limit)

@router.get("/professionals/nearby")
async def nearby_professionals(
    lat: Optional[float] = None,
    lng: Optional[float] = None,
    radius: float = DEFAULT_RADIUS_KM,
    q: Optional[str] = None,
    type: Optional[str] = None,
    limit: int = DEFAULT_LIMIT,
    service: SearchService = Depends(get_search_service)
):
    return await service.nearby_professionals(lat, lng, radius, q, type, limit)

@router.get("/professionals/search")
async def search_professionals(
    q: Optional[str] = None,
    type: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
    service: SearchService = Depends(get_search_service)
):
    return await service.search_professionals(q, type, page, limit)

@router.get("/professionals/{professional_id}")
async def read_professional(
    professional_id: UUID,
    service: SearchService = Depends(get_search_service)
):
    return await service.get_professional(professional_id)
