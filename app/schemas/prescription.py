from pydantic import BaseModel
from typing import List, Optional
from uuid import UUID

class PrescriptionItem(BaseModel):
    drug_name: Optional[str] = None
    dosage: Optional[str] = None
    frequency: Optional[str] = None
    duration: Optional[str] = None
    route: Optional[str] = None
    instructions: Optional[str] = None

class PrescriptionCreate(BaseModel):
    patient_id: Optional[UUID] = None
    doctor_id: Optional[UUID] = None
    appointment_id: Optional[UUID] = None
    items: List[PrescriptionItem] = []
    instructions: Optional[str] = None

class PrescriptionUpdate(BaseModel):
    items: Optional[List[PrescriptionItem]] = None
    instructions: Optional[str] = None

class PrescriptionIssue(BaseModel):
    validity_days: int = 30
