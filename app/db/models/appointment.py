from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime, date, time
from uuid import UUID, uuid4

class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    clinic_id: UUID = Field(foreign_key="clinics.id", index=True)
    doctor_id: UUID = Field(foreign_key="professionals.id", index=True)
    patient_id: UUID = Field(foreign_key="patients.id", index=True)
    family_member_id: Optional[UUID] = Field(default=None, foreign_key="family_members.id")
    booked_by_id: Optional[UUID] = Field(default=None, foreign_key="users.id")
    appointment_date: date = Field(index=True)
    time_slot_start: time
    time_slot_end: time
    token_number: int
    status: str = Field(default="SCHEDULED") # SCHEDULED, CHECKED_IN, IN_PROGRESS, COMPLETED, NO_SHOW, CANCELLED
    type: str = Field(default="NEW") # NEW, FOLLOW_UP
    source: str = Field(default="ONLINE") # ONLINE, WALK_IN, PHONE
    chief_complaint: Optional[str] = None
    notes: Optional[str] = None
    checked_in_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
