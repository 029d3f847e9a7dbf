from pydantic import BaseModel, Field
from typing import Optional
from uuid import UUID

class ReviewCreate(BaseModel):
    clinic_id: Optional[UUID] = Field(default=None, alias="clinicId")
    patient_id: Optional[UUID] = Field(default=None, alias="patientId")
    doctor_id: Optional[UUID] = Field(default=None, alias="doctorId")
    appointment_id: Optional[UUID] = Field(default=None, alias="appointmentId")
    rating: Optional[int] = None
    review: Optional[str] = None

    class Config:
        populate_by_name = True

class ReviewUpdate(BaseModel):
    action: Optional[str] = None # respond, moderate
    doctor_response: Optional[str] = Field(default=None, alias="doctorResponse")
    is_published: Optional[bool] = None

    class Config:
        populate_by_name = True
