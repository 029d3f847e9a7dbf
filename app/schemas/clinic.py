from pydantic import BaseModel, Field
from typing import List, Optional
from uuid import UUID

class QueueStatusUpdate(BaseModel):
    status: Optional[str] = None

class WalkInRequest(BaseModel):
    doctor_id: Optional[UUID] = Field(default=None, alias="doctorId")
    patient_name: Optional[str] = Field(default=None, alias="patientName")
    patient_phone: Optional[str] = Field(default=None, alias="patientPhone")
    chief_complaint: Optional[str] = Field(default=None, alias="chiefComplaint")
    existing_patient_id: Optional[UUID] = Field(default=None, alias="existingPatientId")

    class Config:
        populate_by_name = True

class StaffInvite(BaseModel):
    email: Optional[str] = None
    role: Optional[str] = None

class StaffRoleUpdate(BaseModel):
    role: Optional[str] = None

class DoctorAffiliationCreate(BaseModel):
    doctor_id: Optional[UUID] = Field(default=None, alias="doctorId")
    designation: Optional[str] = None
    consultation_fee: Optional[float] = None

    class Config:
        populate_by_name = True

class ScheduleEntry(BaseModel):
    day_of_week: Optional[int] = None # 0=Sunday..6=Saturday
    start_time: Optional[str] = None # HH:MM
    end_time: Optional[str] = None
    slot_duration_minutes: int = 15
    max_patients_per_slot: int = 1
    is_active: bool = True

class SchedulesUpdate(BaseModel):
    doctor_id: Optional[UUID] = Field(default=None, alias="doctorId")
    schedules: Optional[List[ScheduleEntry]] = None

    class Config:
        populate_by_name = True

class LeaveCreate(BaseModel):
    doctor_id: Optional[UUID] = Field(default=None, alias="doctorId")
    start_date: Optional[str] = Field(default=None, alias="startDate")
    end_date: Optional[str] = Field(default=None, alias="endDate")
    start_time: Optional[str] = Field(default=None, alias="startTime")
    end_time: Optional[str] = Field(default=None, alias="endTime")
    reason: Optional[str] = None
    check_affected: bool = Field(default=False, alias="checkAffected")

    class Config:
        populate_by_name = True
