from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select, func

from app.db.models import Appointment, Clinic, Patient, Professional, Review, User
from app.db.models.enums import AppointmentStatus, UserRole
from app.schemas.review import ReviewCreate, ReviewUpdate


def review_summary(review: Review) -> dict:
    return {
        "id": str(review.id),
        "clinic_id": str(review.clinic_id),
        "patient_id": str(review.patient_id),
        "doctor_id": str(review.doctor_id) if review.doctor_id else None,
        "appointment_id": str(review.appointment_id) if review.appointment_id else None,
        "rating": review.rating,
        "review": review.review,
        "is_published": review.is_published,
        "doctor_response": review.doctor_response,
        "responded_at": review.responded_at.isoformat() if review.responded_at else None,
        "created_at": review.created_at.isoformat(),
    }


def review_detail(
    review: Review,
    clinic: Optional[Clinic],
    patient: Optional[Patient],
    doctor: Optional[Professional],
) -> dict:
    return {
        **review_summary(review),
        "clinic": {"id": str(clinic.id), "name": clinic.name, "slug": clinic.slug} if clinic else None,
        "patient": {"id": str(patient.id), "full_name": patient.full_name} if patient else None,
        "doctor": {"id": str(doctor.id), "full_name": doctor.full_name} if doctor else None,
    }


class ReviewService:
    def __init__(self, session: AsyncSession):
        self.session = session

    def _detail_query(self):
        return (
            select(Review, Clinic, Patient, Professional)
            .join(Clinic, Clinic.id == Review.clinic_id)
            .join(Patient, Patient.id == Review.patient_id)
            .outerjoin(Professional, Professional.id == Review.doctor_id)
        )

    async def list_reviews(
        self,
        clinic_id: Optional[UUID],
        doctor_id: Optional[UUID] = None,
        published: Optional[str] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> dict:
        if not clinic_id:
            raise HTTPException(status_code=400, detail="clinicId is required")

        conditions = [Review.clinic_id == clinic_id]
        if published != "all":
            conditions.append(Review.is_published == True)
        if doctor_id:
            conditions.append(Review.doctor_id == doctor_id)

        stmt = self._detail_query().where(*conditions).order_by(Review.created_at.desc()).offset(offset).limit(limit)
        rows = (await self.session.execute(stmt)).all()
        total = (await self.session.execute(select(func.count(Review.id)).where(*conditions))).scalar() or 0

        aggregate = select(func.avg(Review.rating), func.count(Review.id)).where(
            Review.clinic_id == clinic_id,
            Review.is_published == True,
        )
        average, count = (await self.session.execute(aggregate)).one()

        return {
            "reviews": [review_detail(*row) for row in rows],
            "total": total,
            "averageRating": float(average) if average is not None else 0,
            "totalReviews": count or 0,
        }

    async def create_review(self, data: ReviewCreate) -> dict:
        if not data.clinic_id or not data.patient_id or data.rating is None:
            raise HTTPException(status_code=400, detail="clinicId, patientId, and rating are required")
        if data.rating < 1 or data.rating > 5:
            raise HTTPException(status_code=400, detail="Rating must be between 1 and 5")

        if data.appointment_id:
            stmt = select(Appointment).where(
                Appointment.id == data.appointment_id,
                Appointment.patient_id == data.patient_id,
                Appointment.clinic_id == data.clinic_id,
                Appointment.status == AppointmentStatus.COMPLETED.value,
            )
            if not (await self.session.execute(stmt)).scalars().first():
                raise HTTPException(status_code=400, detail="Appointment not found or not eligible for review")

            existing = select(Review).where(Review.appointment_id == data.appointment_id)
            if (await self.session.execute(existing)).scalars().first():
                raise HTTPException(status_code=400, detail="Review already exists for this appointment")

        review = Review(
            clinic_id=data.clinic_id,
            patient_id=data.patient_id,
            doctor_id=data.doctor_id,
            appointment_id=data.appointment_id,
            rating=data.rating,
            review=data.review or None,
            is_published=True,
        )
        self.session.add(review)
        await self.session.commit()
        await self.session.refresh(review)

        return {"success": True, "review": review_summary(review)}

    async def get_review(self, review_id: UUID) -> dict:
        row = (await self.session.execute(self._detail_query().where(Review.id == review_id))).first()
        if not row:
            raise HTTPException(status_code=404, detail="Review not found")
        return {"review": review_detail(*row)}

    async def update_review(self, review_id: UUID, data: ReviewUpdate, user: User) -> dict:
        review = await self.session.get(Review, review_id)
        if not review:
            raise HTTPException(status_code=404, detail="Review not found")

        if data.action == "respond":
            is_reviewed_doctor = False
            if review.doctor_id:
                doctor = await self.session.get(Professional, review.doctor_id)
                is_reviewed_doctor = doctor is not None and doctor.claimed_by_id == user.id
            if not is_reviewed_doctor:
                raise HTTPException(status_code=403, detail="Only the reviewed doctor can respond")
            review.doctor_response = data.doctor_response
            review.responded_at = datetime.utcnow()
        elif data.action == "moderate":
            if user.role != UserRole.ADMIN:
                raise HTTPException(status_code=403, detail="Only admins can moderate reviews")
            if data.is_published is None:
                raise HTTPException(status_code=400, detail="is_published is required")
            review.is_published = data.is_published
        else:
            raise HTTPException(status_code=400, detail="Invalid action")

        review.updated_at = datetime.utcnow()
        self.session.add(review)
        await self.session.commit()
        await self.session.refresh(review)
        return {"success": True, "review": review_summary(review)}

    async def delete_review(self, review_id: UUID, user: User) -> dict:
        if user.role != UserRole.ADMIN:
            raise HTTPException(status_code=403, detail="Only admins can delete reviews")
        review = await self.session.get(Review, review_id)
        if not review:
            raise HTTPException(status_code=404, detail="Review not found")
        await self.session.delete(review)
        await self.session.commit()
        return {"success": True}
