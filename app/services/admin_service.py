from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import BackgroundTasks, HTTPException, Request
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select, func

from app.core.audit import log_audit
from app.core.email import (
    send_clinic_approved_email,
    send_clinic_changes_requested_email,
    send_clinic_rejected_email,
    send_verification_approved_email,
    send_verification_rejected_email,
)
from app.db.models import (
    Clinic,
    ClinicDoctor,
    ClinicStaff,
    DoctorLeave,
    DoctorSchedule,
    Patient,
    Professional,
    Review,
    User,
    VerificationRequest,
)
from app.db.models.enums import AuditAction, UserRole, VerificationStatus
from app.schemas.admin import AdminAction
from app.services.review_service import review_detail
from app.services.search_service import professional_summary
from app.services.verification_service import verification_request_summary


def user_summary(user: Optional[User]) -> Optional[dict]:
    if user is None:
        return None
    return {"id": str(user.id), "name": user.name, "email": user.email, "phone": user.phone}


class AdminService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_pending_claims(self) -> dict:
        stmt = (
            select(VerificationRequest, User, Professional)
            .join(User, User.id == VerificationRequest.user_id)
            .join(Professional, Professional.id == VerificationRequest.professional_id)
            .where(VerificationRequest.status == VerificationStatus.PENDING.value)
            .order_by(VerificationRequest.submitted_at)
        )
        result = await self.session.execute(stmt)
        return {
            "claims": [
                {
                    **verification_request_summary(claim),
                    "government_id_url": claim.government_id_url,
                    "certificate_url": claim.certificate_url,
                    "user": user_summary(user),
                    "professional": professional_summary(professional),
                }
                for claim, user, professional in result.all()
            ]
        }

    async def process_claim(
        self,
        claim_id: UUID,
        data: AdminAction,
        admin: User,
        background_tasks: BackgroundTasks,
        request: Optional[Request] = None,
    ) -> dict:
        if data.action not in ("approve", "reject"):
            raise HTTPException(status_code=400, detail="Invalid action. Must be 'approve' or 'reject'")

        claim = await self.session.get(VerificationRequest, claim_id)
        if not claim:
            raise HTTPException(status_code=404, detail="Verification request not found")
        if claim.status != VerificationStatus.PENDING.value:
            raise HTTPException(status_code=400, detail="This request has already been processed")

        professional = await self.session.get(Professional, claim.professional_id)
        claimant = await self.session.get(User, claim.user_id)
        now = datetime.utcnow()

        if data.action == "approve":
            if professional.claimed_by_id and professional.claimed_by_id != claim.user_id:
                raise HTTPException(status_code=400, detail="This profile has already been claimed by another user")

            claim.status = VerificationStatus.APPROVED.value
            claim.reviewed_at = now
            claim.reviewed_by_id = admin.id
            professional.claimed_by_id = claim.user_id
            professional.claimed_at = now
            professional.verified = True
            claimant.role = UserRole.PROFESSIONAL.value
            self.session.add_all([claim, professional, claimant])
            await self.session.commit()

            if claimant.email:
                background_tasks.add_task(
                    send_verification_approved_email,
                    claimant.email,
                    claimant.name or claimant.email,
                    str(professional.id),
                )
            action = AuditAction.CLAIM_APPROVED
            message = "Verification request approved"
        else:
            reason = (data.reason or "").strip() or None
            claim.status = VerificationStatus.REJECTED.value
            claim.rejection_reason = reason
            claim.reviewed_at = now
            claim.reviewed_by_id = admin.id
            self.session.add(claim)
            await self.session.commit()

            if claimant.email:
                background_tasks.add_task(
                    send_verification_rejected_email,
                    claimant.email,
                    claimant.name or claimant.email,
                    reason or "No reason provided",
                )
            action = AuditAction.CLAIM_REJECTED
            message = "Verification request rejected"

        response = {"success": True, "message": message, "status": claim.status}
        await log_audit(
            self.session,
            action,
            "VerificationRequest",
            claim_id,
            actor_id=admin.id,
            metadata={"professionalId": str(claim.professional_id), "userId": str(claim.user_id), "reason": data.reason},
            request=request,
        )
        return response

    async def list_pending_clinics(self) -> dict:
        stmt = (
            select(Clinic, User)
            .outerjoin(User, User.id == Clinic.claimed_by_id)
            .where(Clinic.verified == False)
            .order_by(Clinic.created_at)
        )
        result = await self.session.execute(stmt)
        return {
            "clinics": [
                {
                    "id": str(clinic.id),
                    "name": clinic.name,
                    "slug": clinic.slug,
                    "type": clinic.type,
                    "address": clinic.address,
                    "phone": clinic.phone,
                    "email": clinic.email,
                    "website": clinic.website,
                    "logo_url": clinic.logo_url,
                    "photos": clinic.photos,
                    "created_at": clinic.created_at.isoformat(),
                    "claimed_by": user_summary(owner),
                }
                for clinic, owner in result.all()
            ]
        }

    async def process_clinic(
        self,
        clinic_id: UUID,
        data: AdminAction,
        admin: User,
        background_tasks: BackgroundTasks,
        request: Optional[Request] = None,
    ) -> dict:
        if data.action not in ("approve", "reject", "request_changes"):
            raise HTTPException(
                status_code=400,
                detail="Invalid action. Must be 'approve', 'reject' or 'request_changes'",
            )
        reason = (data.reason or "").strip()
        if data.action == "reject" and not reason:
            raise HTTPException(status_code=400, detail="Rejection reason is required")
        if data.action == "request_changes" and not reason:
            raise HTTPException(status_code=400, detail="Please describe the changes required")

        clinic = await self.session.get(Clinic, clinic_id)
        if not clinic:
            raise HTTPException(status_code=404, detail="Clinic not found")
        if clinic.verified:
            raise HTTPException(status_code=400, detail="This clinic has already been verified")

        owner = await self.session.get(User, clinic.claimed_by_id) if clinic.claimed_by_id else None
        recipient = clinic.email or (owner.email if owner else None)
        metadata = {"clinicName": clinic.name, "clinicSlug": clinic.slug}

        if data.action == "approve":
            clinic.verified = True
            clinic.updated_at = datetime.utcnow()
            self.session.add(clinic)
            await self.session.commit()
            if recipient:
                background_tasks.add_task(send_clinic_approved_email, recipient, clinic.name, clinic.slug)
            action = AuditAction.CLINIC_APPROVED
            response = {"success": True, "message": "Clinic approved successfully"}
        elif data.action == "request_changes":
            if recipient:
                background_tasks.add_task(send_clinic_changes_requested_email, recipient, clinic.name, reason)
            action = AuditAction.CLINIC_CHANGES_REQUESTED
            metadata["reason"] = reason
            response = {"success": True, "message": "Changes requested from clinic"}
        else:
            if recipient:
                background_tasks.add_task(send_clinic_rejected_email, recipient, clinic.name, reason)
            # clinic work is locked until verification, so only these rows can point at it
            for model in (DoctorLeave, DoctorSchedule, ClinicDoctor, ClinicStaff):
                await self.session.execute(delete(model).where(model.clinic_id == clinic.id))
            await self.session.delete(clinic)
            await self.session.commit()
            action = AuditAction.CLINIC_REJECTED
            metadata["reason"] = reason
            response = {"success": True, "message": "Clinic rejected and removed"}

        await log_audit(self.session, action, "Clinic", clinic_id, actor_id=admin.id, metadata=metadata, request=request)
        return response

    async def list_reviews(self, published: Optional[str], limit: int = 50, offset: int = 0) -> dict:
        conditions = []
        if published == "true":
            conditions.append(Review.is_published == True)
        elif published == "false":
            conditions.append(Review.is_published == False)

        total = (await self.session.execute(select(func.count(Review.id)).where(*conditions))).scalar() or 0
        stmt = (
            select(Review, Clinic, Patient, Professional)
            .join(Clinic, Clinic.id == Review.clinic_id)
            .join(Patient, Patient.id == Review.patient_id)
            .outerjoin(Professional, Professional.id == Review.doctor_id)
            .where(*conditions)
            .order_by(Review.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return {
            "reviews": [review_detail(*row) for row in result.all()],
            "total": total,
        }
