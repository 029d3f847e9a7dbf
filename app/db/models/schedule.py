from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime, date, time
from uuid import UUID, uuid4

class DoctorSchedule(SQLModel, table=True):
    __tablename__ = "doctor_schedules"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    clinic_id: UUID = Field(foreign_key="clinics.id", index=True)
    doctor_id: UUID = Field(foreign_key="professionals.id", index=True)
    day_of_week: int # 0=Sunday..6=Saturday
    start_time: time
    end_time: time
    slot_duration_minutes: int = Field(default=15)
    max_patients_per_slot: int = Field(default=1)
    is_active: bool = Field(default=True)
    effective_from: Optional[date] = None
    effective_to: Optional[date] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)


class DoctorLeave(SQLModel, table=True):
    __tablename__ = "doctor_leaves"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    clinic_id: UUID = Field(foreign_key="clinics.id", index=True)
    doctor_id: UUID = Field(foreign_key="professionals.id", index=True)
    start_date: date
    end_date: date
    # both None means the whole day
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    reason: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
