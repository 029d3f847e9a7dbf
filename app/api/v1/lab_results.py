from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.rate_limit import enforce, get_client_ip, lab_lookup_limiter
from app.db.session import get_session
from app.services.lab_lookup_service import LabLookupService

router = APIRouter()

async def get_lab_lookup_service(session: AsyncSession = Depends(get_session)) -> LabLookupService:
    return LabLookupService(session)

@router.get("/lookup")
async def lookup_lab_results(
    request: Request,
    phone: Optional[str] = None,
    order_number: Optional[str] = None,
    service: LabLookupService = Depends(get_lab_lookup_service)
):
    enforce(
        lab_lookup_limiter,
        get_client_ip(request),
        {"found": False, "message": "Too many requests. Please try again in a minute."},
    )
    return await service.lookup(phone, order_number)
