from pydantic import BaseModel
from typing import Optional
from uuid import UUID

class WardCreate(BaseModel):
    name: Optional[str] = None
    type: Optional[str] = None
    floor: Optional[str] = None
    daily_rate: float = 0

class BedCreate(BaseModel):
    ward_id: Optional[UUID] = None
    bed_number: Optional[str] = None

class AdmissionCreate(BaseModel):
    patient_id: Optional[UUID] = None
    bed_id: Optional[UUID] = None
    admitting_doctor_id: Optional[UUID] = None
    attending_doctor_id: Optional[UUID] = None
    admission_diagnosis: Optional[str] = None
    chief_complaint: Optional[str] = None
    notes: Optional[str] = None

class DischargeRequest(BaseModel):
    discharge_diagnosis: Optional[str] = None
    discharge_summary: Optional[str] = None
    discharge_type: Optional[str] = None
    discharge_advice: Optional[str] = None
