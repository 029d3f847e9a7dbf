from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import date, datetime
from uuid import UUID, uuid4
from sqlalchemy import Column

from .types import JSONType

class Prescription(SQLModel, table=True):
    __tablename__ = "prescriptions"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    clinic_id: UUID = Field(foreign_key="clinics.id", index=True)
    patient_id: UUID = Field(foreign_key="patients.id", index=True)
    doctor_id: UUID = Field(foreign_key="professionals.id")
    appointment_id: Optional[UUID] = Field(default=None, foreign_key="appointments.id")
    prescription_number: str
    items: Optional[list] = Field(default=None, sa_column=Column(JSONType))
    instructions: Optional[str] = None
    status: str = Field(default="DRAFT") # DRAFT, ISSUED, DISPENSED, CANCELLED
    issued_at: Optional[datetime] = None
    valid_until: Optional[date] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
