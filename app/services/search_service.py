import math
from typing import Optional
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select, func, or_

from app.core.geo import bounding_box, haversine_km
from app.core.utils import format_professional_name
from app.db.models import Clinic, ClinicDoctor, Professional, Review

DEFAULT_RADIUS_KM = 10
MAX_RADIUS_KM = 100
DEFAULT_LIMIT = 100
MAX_LIMIT = 200


def clinic_summary(clinic: Clinic) -> dict:
    return {
        "id": str(clinic.id),
        "name": clinic.name,
        "slug": clinic.slug,
        "type": clinic.type,
        "address": clinic.address,
        "phone": clinic.phone,
        "logo_url": clinic.logo_url,
        "lat": clinic.lat,
        "lng": clinic.lng,
    }


def professional_summary(professional: Professional) -> dict:
    return {
        "id": str(professional.id),
        "type": professional.type,
        "full_name": professional.full_name,
        "display_name": format_professional_name(professional.full_name, professional.type),
        "registration_number": professional.registration_number,
        "degree": professional.degree,
        "specialties": professional.specialties,
        "address": professional.address,
        "photo_url": professional.photo_url,
        "verified": professional.verified,
    }


class SearchService:
    def __init__(self, session: AsyncSession):
        self.session = session

    def _check_area(self, lat: Optional[float], lng: Optional[float], radius: float):
        if lat is None or lng is None:
            raise HTTPException(status_code=400, detail="lat and lng query parameters are required")
        if radius <= 0 or radius > MAX_RADIUS_KM:
            raise HTTPException(status_code=400, detail="radius must be between 0 and 100 km")

    async def nearby_clinics(
        self,
        lat: Optional[float],
        lng: Optional[float],
        radius: float = DEFAULT_RADIUS_KM,
        q: Optional[str] = None,
        clinic_type: Optional[str] = None,
        limit: int = DEFAULT_LIMIT,
    ) -> dict:
        self._check_area(lat, lng, radius)
        limit = min(max(limit, 1), MAX_LIMIT)
        min_lat, max_lat, min_lng, max_lng = bounding_box(lat, lng, radius)

        stmt = select(Clinic).where(
            Clinic.verified == True,
            Clinic.lat != None,
            Clinic.lng != None,
            Clinic.lat >= min_lat,
            Clinic.lat <= max_lat,
            Clinic.lng >= min_lng,
            Clinic.lng <= max_lng,
        )
        if q:
            stmt = stmt.where(or_(Clinic.name.ilike(f"%{q}%"), Clinic.address.ilike(f"%{q}%")))
        if clinic_type:
            stmt = stmt.where(Clinic.type == clinic_type)

        result = await self.session.execute(stmt)
        found = []
        for clinic in result.scalars().all():
            distance = haversine_km(lat, lng, clinic.lat, clinic.lng)
            if distance <= radius:
                found.append({**clinic_summary(clinic), "distance": distance})

        found.sort(key=lambda c: c["distance"])
        found = found[:limit]
        return {"clinics": found, "total": len(found)}

    async def nearby_professionals(
        self,
        lat: Optional[float],
        lng: Optional[float],
        radius: float = DEFAULT_RADIUS_KM,
        q: Optional[str] = None,
        professional_type: Optional[str] = None,
        limit: int = DEFAULT_LIMIT,
    ) -> dict:
        self._check_area(lat, lng, radius)
        limit = min(max(limit, 1), MAX_LIMIT)
        min_lat, max_lat, min_lng, max_lng = bounding_box(lat, lng, radius)

        stmt = (
            select(Professional, Clinic)
            .join(ClinicDoctor, ClinicDoctor.doctor_id == Professional.id)
            .join(Clinic, Clinic.id == ClinicDoctor.clinic_id)
            .where(
                Professional.verified == True,
                Clinic.verified == True,
                Clinic.lat != None,
                Clinic.lng != None,
                Clinic.lat >= min_lat,
                Clinic.lat <= max_lat,
                Clinic.lng >= min_lng,
                Clinic.lng <= max_lng,
            )
        )
        if q:
            stmt = stmt.where(or_(
                Professional.full_name.ilike(f"%{q}%"),
                Professional.degree.ilike(f"%{q}%"),
                Professional.address.ilike(f"%{q}%"),
            ))
        if professional_type:
            stmt = stmt.where(Professional.type == professional_type)

        result = await self.session.execute(stmt)

        # nearest affiliated clinic per professional
        nearest: dict[UUID, tuple[Professional, Clinic, float]] = {}
        for professional, clinic in result.all():
            distance = haversine_km(lat, lng, clinic.lat, clinic.lng)
            current = nearest.get(professional.id)
            if current is None or distance < current[2]:
                nearest[professional.id] = (professional, clinic, distance)

        found = [
            {
                **professional_summary(professional),
                "distance": distance,
                "nearestClinic": clinic_summary(clinic),
            }
            for professional, clinic, distance in nearest.values()
            if distance <= radius
        ]
        found.sort(key=lambda p: p["distance"])
        found = found[:limit]
        return {"professionals": found, "total": len(found)}

    async def search_professionals(
        self,
        q: Optional[str] = None,
        professional_type: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> dict:
        page = max(page, 1)
        limit = min(max(limit, 1), 100)

        conditions = []
        if q:
            conditions.append(or_(
                Professional.full_name.ilike(f"%{q}%"),
                Professional.registration_number.ilike(f"%{q}%"),
                Professional.degree.ilike(f"%{q}%"),
            ))
        if professional_type:
            conditions.append(Professional.type == professional_type)

        count_stmt = select(func.count(Professional.id)).where(*conditions)
        total = (await self.session.execute(count_stmt)).scalar() or 0

        stmt = (
            select(Professional)
            .where(*conditions)
            .order_by(Professional.verified.desc(), Professional.full_name)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return {
            "professionals": [professional_summary(p) for p in result.scalars().all()],
            "total": total,
            "page": page,
            "limit": limit,
            "totalPages": math.ceil(total / limit),
        }

    async def get_professional(self, professional_id: UUID) -> dict:
        professional = await self.session.get(Professional, professional_id)
        if not professional:
            raise HTTPException(status_code=404, detail="Professional not found")

        stmt = (
            select(Clinic)
            .join(ClinicDoctor, ClinicDoctor.clinic_id == Clinic.id)
            .where(ClinicDoctor.doctor_id == professional_id, Clinic.verified == True)
            .order_by(Clinic.name)
        )
        clinics = (await self.session.execute(stmt)).scalars().all()

        rating_stmt = select(func.avg(Review.rating), func.count(Review.id)).where(
            Review.doctor_id == professional_id,
            Review.is_published == True,
        )
        average, count = (await self.session.execute(rating_stmt)).one()

        return {
            **professional_summary(professional),
            "claimed": professional.claimed_by_id is not None,
            "clinics": [clinic_summary(c) for c in clinics],
            "averageRating": round(float(average), 1) if average is not None else None,
            "totalReviews": count,
        }
