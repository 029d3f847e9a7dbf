from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from uuid import UUID, uuid4

class VerificationRequest(SQLModel, table=True):
    __tablename__ = "verification_requests"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(foreign_key="users.id", index=True)
    professional_id: UUID = Field(foreign_key="professionals.id", index=True)
    government_id_url: str
    certificate_url: str
    status: str = Field(default="PENDING") # PENDING, APPROVED, REJECTED
    rejection_reason: Optional[str] = None
    submitted_at: datetime = Field(default_factory=datetime.utcnow)
    reviewed_at: Optional[datetime] = None
    reviewed_by_id: Optional[UUID] = Field(default=None, foreign_key="users.id")
