from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_optional_user
from app.db.models import User
from app.db.session import get_session
from app.schemas.appointment import AppointmentBookingRequest
from app.services.appointment_service import AppointmentService

router = APIRouter()

async def get_appointment_service(session: AsyncSession = Depends(get_session)) -> AppointmentService:
    return AppointmentService(session)

@router.post("/appointments", status_code=201)
async def book_appointment(
    request: AppointmentBookingRequest,
    current_user: Optional[User] = Depends(get_optional_user),
    service: AppointmentService = Depends(get_appointment_service)
):
    return await service.book(request, current_user)

@router.get("/clinic/{clinic_id}/slots")
async def read_available_slots(
    clinic_id: UUID,
    doctorId: Optional[UUID] = None,
    date: Optional[str] = None,
    service: AppointmentService = Depends(get_appointment_service)
):
    return await service.get_available_slots(clinic_id, doctorId, date)
