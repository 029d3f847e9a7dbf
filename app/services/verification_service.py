from fastapi import BackgroundTasks, HTTPException, Request, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select
from typing import Optional
from uuid import UUID

from app.core.audit import log_audit
from app.core.email import send_verification_submitted_email
from app.core.storage import MB, read_upload, save_upload
from app.db.models import Professional, User, VerificationRequest
from app.db.models.enums import AuditAction, VerificationStatus

ALLOWED_DOCUMENT_TYPES = ("image/jpeg", "image/png", "application/pdf")
MAX_DOCUMENT_BYTES = 10 * MB


def verification_request_summary(request: VerificationRequest) -> dict:
    return {
        "id": str(request.id),
        "professional_id": str(request.professional_id),
        "status": request.status,
        "rejection_reason": request.rejection_reason,
        "submitted_at": request.submitted_at.isoformat(),
        "reviewed_at": request.reviewed_at.isoformat() if request.reviewed_at else None,
    }


class VerificationService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def submit_claim(
        self,
        user: User,
        professional_id: Optional[UUID],
        government_id: Optional[UploadFile],
        certificate: Optional[UploadFile],
        background_tasks: BackgroundTasks,
        request: Optional[Request] = None,
    ) -> dict:
        if not professional_id:
            raise HTTPException(status_code=400, detail="Professional ID is required")
        if not government_id or not certificate:
            raise HTTPException(status_code=400, detail="Both government ID and certificate files are required")

        documents = []
        for upload in (government_id, certificate):
            content = await read_upload(
                upload,
                ALLOWED_DOCUMENT_TYPES,
                MAX_DOCUMENT_BYTES,
                "Invalid file type. Only JPG, PNG, and PDF are allowed",
                "File size exceeds 10MB limit",
            )
            documents.append((upload.filename, content))

        professional = await self.session.get(Professional, professional_id)
        if not professional:
            raise HTTPException(status_code=404, detail="Professional not found")
        if professional.claimed_by_id:
            raise HTTPException(status_code=400, detail="ALREADY_CLAIMED")

        stmt = select(VerificationRequest).where(
            VerificationRequest.user_id == user.id,
            VerificationRequest.professional_id == professional_id,
            VerificationRequest.status == VerificationStatus.PENDING.value,
        )
        if (await self.session.execute(stmt)).scalars().first():
            raise HTTPException(status_code=400, detail="ALREADY_PENDING")

        government_id_url = await save_upload("verification", *documents[0])
        certificate_url = await save_upload("verification", *documents[1])

        verification_request = VerificationRequest(
            user_id=user.id,
            professional_id=professional_id,
            government_id_url=government_id_url,
            certificate_url=certificate_url,
            status=VerificationStatus.PENDING.value,
        )
        self.session.add(verification_request)
        await self.session.commit()
        await self.session.refresh(verification_request)

        response = {
            "success": True,
            "verificationRequest": {
                "id": str(verification_request.id),
                "status": verification_request.status,
                "submitted_at": verification_request.submitted_at.isoformat(),
            },
        }

        if user.email:
            background_tasks.add_task(
                send_verification_submitted_email,
                user.email,
                user.name or user.email,
                professional.full_name,
            )
        await log_audit(
            self.session,
            AuditAction.CLAIM_SUBMITTED,
            "VerificationRequest",
            verification_request.id,
            actor_id=user.id,
            metadata={"professionalId": str(professional.id), "professionalName": professional.full_name},
            request=request,
        )
        return response

    async def list_user_claims(self, user: User) -> dict:
        stmt = (
            select(VerificationRequest, Professional)
            .join(Professional, Professional.id == VerificationRequest.professional_id)
            .where(VerificationRequest.user_id == user.id)
            .order_by(VerificationRequest.submitted_at.desc())
        )
        result = await self.session.execute(stmt)
        return {
            "claims": [
                {
                    **verification_request_summary(claim),
                    "professional": {
                        "id": str(professional.id),
                        "full_name": professional.full_name,
                        "type": professional.type,
                    },
                }
                for claim, professional in result.all()
            ]
        }
