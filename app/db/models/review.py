from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from uuid import UUID, uuid4

class Review(SQLModel, table=True):
    __tablename__ = "reviews"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    clinic_id: UUID = Field(foreign_key="clinics.id", index=True)
    patient_id: UUID = Field(foreign_key="patients.id")
    doctor_id: Optional[UUID] = Field(default=None, foreign_key="professionals.id", index=True)
    appointment_id: Optional[UUID] = Field(default=None, foreign_key="appointments.id", unique=True)
    rating: int
    review: Optional[str] = None
    is_published: bool = Field(default=True)
    doctor_response: Optional[str] = None
    responded_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
