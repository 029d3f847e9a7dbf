import json
import re
from typing import List, Optional
from urllib.parse import urlparse

from fastapi import BackgroundTasks, HTTPException, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.clinic_access import ClinicAccess
from app.core.email import send_clinic_registration_submitted_email
from app.core.logger import logger
from app.core.permissions import ROLE_DESCRIPTIONS, ROLE_LABELS, get_role_permissions
from app.core.slugs import validate_slug
from app.core.storage import MB, read_upload, save_upload
from app.core.utils import generate_slug, is_valid_email
from app.db.models import Clinic, ClinicStaff, User
from app.db.models.enums import ClinicRole, ClinicType

CLINIC_PHONE_REGEX = re.compile(r"^(9[78]\d{8}|0\d{1,2}-?\d{6,7})$")
ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/png")
MAX_IMAGE_BYTES = 5 * MB
MAX_PHOTOS = 5
SLUG_ATTEMPTS = 10


def clinic_brief(clinic: Clinic) -> dict:
    return {
        "id": str(clinic.id),
        "name": clinic.name,
        "slug": clinic.slug,
        "type": clinic.type,
        "verified": clinic.verified,
        "created_at": clinic.created_at.isoformat(),
    }


def _is_valid_url(value: str) -> bool:
    parsed = urlparse(value)
    return bool(parsed.scheme and parsed.netloc)


class ClinicService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def slug_exists(self, slug: str) -> bool:
        result = await self.session.execute(select(Clinic.id).where(Clinic.slug == slug))
        return result.first() is not None

    async def check_slug(self, slug: Optional[str]) -> dict:
        slug = (slug or "").strip().lower()
        if not slug:
            raise HTTPException(status_code=400, detail={"available": False, "error": "Slug parameter is required"})
        error = validate_slug(slug)
        if error:
            return {"available": False, "error": error}
        if await self.slug_exists(slug):
            return {"available": False, "error": "This subdomain is already taken"}
        return {"available": True}

    async def pick_slug(self, name: str, preferred: Optional[str]) -> str:
        if preferred:
            slug = preferred.strip().lower()
            error = validate_slug(slug)
            if error:
                raise HTTPException(status_code=400, detail=error)
            if await self.slug_exists(slug):
                raise HTTPException(status_code=400, detail="This subdomain is already taken")
            return slug

        for _ in range(SLUG_ATTEMPTS):
            slug = generate_slug(name)
            if not await self.slug_exists(slug):
                return slug
        raise HTTPException(status_code=500, detail="Failed to generate unique clinic identifier")

    async def register_clinic(
        self,
        user: User,
        background_tasks: BackgroundTasks,
        name: Optional[str],
        type: Optional[str],
        address: Optional[str],
        phone: Optional[str],
        email: Optional[str],
        website: Optional[str] = None,
        timings: Optional[str] = None,
        services: Optional[str] = None,
        lat: Optional[float] = None,
        lng: Optional[float] = None,
        slug: Optional[str] = None,
        logo: Optional[UploadFile] = None,
        photos: Optional[List[UploadFile]] = None,
    ) -> dict:
        if not name or not name.strip():
            raise HTTPException(status_code=400, detail="Clinic name is required")
        if type not in [t.value for t in ClinicType]:
            raise HTTPException(status_code=400, detail="Valid clinic type is required")
        if not address or not address.strip():
            raise HTTPException(status_code=400, detail="Address is required")
        if not phone or not phone.strip():
            raise HTTPException(status_code=400, detail="Phone number is required")
        if not email or not email.strip():
            raise HTTPException(status_code=400, detail="Email is required")
        if not is_valid_email(email.strip()):
            raise HTTPException(status_code=400, detail="Invalid email format")
        if not CLINIC_PHONE_REGEX.match(re.sub(r"\s", "", phone)):
            raise HTTPException(status_code=400, detail="Invalid phone number format")
        if website and website.strip() and not _is_valid_url(website.strip()):
            raise HTTPException(status_code=400, detail="Invalid website URL")

        parsed_timings = None
        if timings:
            try:
                parsed_timings = json.loads(timings)
            except ValueError:
                raise HTTPException(status_code=400, detail="Invalid timings format")

        parsed_services = []
        if services:
            try:
                parsed_services = json.loads(services)
            except ValueError:
                raise HTTPException(status_code=400, detail="Invalid services format")
            if not isinstance(parsed_services, list):
                parsed_services = []

        # read everything before writing anything
        logo_content = None
        if logo is not None and logo.filename:
            logo_content = await read_upload(
                logo, ALLOWED_IMAGE_TYPES, MAX_IMAGE_BYTES,
                "Logo must be JPG or PNG", "Logo file size exceeds 5MB limit",
            )
        photo_files = [photo for photo in (photos or []) if photo.filename]
        if len(photo_files) > MAX_PHOTOS:
            raise HTTPException(status_code=400, detail=f"Maximum {MAX_PHOTOS} photos allowed")
        photo_contents = []
        for photo in photo_files:
            content = await read_upload(
                photo, ALLOWED_IMAGE_TYPES, MAX_IMAGE_BYTES,
                "Photos must be JPG or PNG", "Each photo file size must not exceed 5MB",
            )
            photo_contents.append((photo.filename, content))

        clinic_slug = await self.pick_slug(name, slug)

        logo_url = await save_upload("clinics", logo.filename, logo_content) if logo_content is not None else None
        photo_urls = [await save_upload("clinics", filename, content) for filename, content in photo_contents]

        clinic_email = email.strip().lower()
        clinic = Clinic(
            name=name.strip(),
            slug=clinic_slug,
            type=type,
            address=address.strip(),
            phone=phone.strip(),
            email=clinic_email,
            website=website.strip() if website and website.strip() else None,
            logo_url=logo_url,
            photos=photo_urls,
            timings=parsed_timings,
            services=parsed_services,
            lat=lat,
            lng=lng,
            verified=False,
            claimed_by_id=user.id,
        )
        self.session.add(clinic)
        await self.session.flush()
        self.session.add(ClinicStaff(clinic_id=clinic.id, user_id=user.id, role=ClinicRole.OWNER.value))
        await self.session.commit()
        await self.session.refresh(clinic)

        logger.info(f"Clinic {clinic.slug} registered by user {user.id}, pending verification")

        background_tasks.add_task(
            send_clinic_registration_submitted_email,
            clinic_email, clinic.name, clinic.type, clinic.address, clinic.phone,
        )
        return {"success": True, "clinic": clinic_brief(clinic)}

    def describe_access(self, access: ClinicAccess) -> dict:
        clinic = access.clinic
        return {
            "clinic": {"id": str(clinic.id), "name": clinic.name, "slug": clinic.slug},
            "role": access.role,
            "permissions": get_role_permissions(access.role),
            "roleLabel": ROLE_LABELS.get(access.role, access.role),
            "roleDescription": ROLE_DESCRIPTIONS.get(access.role, ""),
        }
