from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from uuid import UUID, uuid4

class Ward(SQLModel, table=True):
    __tablename__ = "wards"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    clinic_id: UUID = Field(foreign_key="clinics.id", index=True)
    name: str
    type: str = Field(default="GENERAL") # GENERAL, SEMI_PRIVATE, PRIVATE, ICU, NICU, EMERGENCY
    floor: Optional[str] = None
    daily_rate: float = Field(default=0)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Bed(SQLModel, table=True):
    __tablename__ = "beds"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    ward_id: UUID = Field(foreign_key="wards.id", index=True)
    bed_number: str
    status: str = Field(default="AVAILABLE") # AVAILABLE, OCCUPIED, RESERVED, MAINTENANCE
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Admission(SQLModel, table=True):
    __tablename__ = "admissions"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    clinic_id: UUID = Field(foreign_key="clinics.id", index=True)
    patient_id: UUID = Field(foreign_key="patients.id", index=True)
    bed_id: UUID = Field(foreign_key="beds.id")
    admitting_doctor_id: UUID = Field(foreign_key="professionals.id")
    attending_doctor_id: Optional[UUID] = Field(default=None, foreign_key="professionals.id")
    admission_number: str
    status: str = Field(default="ADMITTED") # ADMITTED, DISCHARGED, TRANSFERRED
    admission_date: datetime = Field(default_factory=datetime.utcnow)
    admission_diagnosis: Optional[str] = None
    chief_complaint: Optional[str] = None
    notes: Optional[str] = None
    discharge_date: Optional[datetime] = None
    discharge_type: Optional[str] = None
    discharge_diagnosis: Optional[str] = None
    discharge_summary: Optional[str] = None
    discharge_advice: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
