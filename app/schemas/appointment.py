from pydantic import BaseModel, Field
from uuid import UUID
from typing import Optional

class AppointmentBookingRequest(BaseModel):
    clinic_id: Optional[UUID] = Field(default=None, alias="clinicId")
    doctor_id: Optional[UUID] = Field(default=None, alias="doctorId")
    date: Optional[str] = None # YYYY-MM-DD
    time_slot: Optional[str] = Field(default=None, alias="timeSlot") # HH:MM-HH:MM
    patient_name: Optional[str] = Field(default=None, alias="patientName")
    patient_phone: Optional[str] = Field(default=None, alias="patientPhone")
    patient_email: Optional[str] = Field(default=None, alias="patientEmail")
    chief_complaint: Optional[str] = Field(default=None, alias="chiefComplaint")
    family_member_id: Optional[UUID] = Field(default=None, alias="familyMemberId")

    class Config:
        populate_by_name = True

class TimeSlot(BaseModel):
    start: str
    end: str
    available: bool = True
    bookedCount: int = 0
    maxPatients: int = 1
