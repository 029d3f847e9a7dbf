from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_clinic_access, get_current_user
from app.core.clinic_access import ClinicAccess
from app.db.models import User
from app.db.session import get_session
from app.services.clinic_service import ClinicService

router = APIRouter()

async def get_clinic_service(session: AsyncSession = Depends(get_session)) -> ClinicService:
    return ClinicService(session)

@router.get("/check-slug")
async def check_slug(
    slug: Optional[str] = None,
    service: ClinicService = Depends(get_clinic_service)
):
    return await service.check_slug(slug)

@router.post("/register", status_code=201)
async def register_clinic(
    background_tasks: BackgroundTasks,
    name: Optional[str] = Form(default=None),
    type: Optional[str] = Form(default=None),
    address: Optional[str] = Form(default=None),
    phone: Optional[str] = Form(default=None),
    email: Optional[str] = Form(default=None),
    website: Optional[str] = Form(default=None),
    timings: Optional[str] = Form(default=None),
    services: Optional[str] = Form(default=None),
    lat: Optional[float] = Form(default=None),
    lng: Optional[float] = Form(default=None),
    slug: Optional[str] = Form(default=None),
    logo: Optional[UploadFile] = File(default=None),
    photos: Optional[List[UploadFile]] = File(default=None),
    current_user: User = Depends(get_current_user),
    service: ClinicService = Depends(get_clinic_service)
):
    return await service.register_clinic(
        current_user, background_tasks,
        name=name, type=type, address=address, phone=phone, email=email,
        website=website, timings=timings, services=services,
        lat=lat, lng=lng, slug=slug, logo=logo, photos=photos,
    )

@router.get("/permissions")
async def read_my_permissions(
    access: ClinicAccess = Depends(get_clinic_access),
    service: ClinicService = Depends(get_clinic_service)
):
    return service.describe_access(access)
