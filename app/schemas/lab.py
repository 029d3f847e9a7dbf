from pydantic import BaseModel
from typing import List, Optional
from uuid import UUID

class LabTestCreate(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None
    unit: Optional[str] = None
    normal_range: Optional[str] = None
    price: float = 0

class LabOrderCreate(BaseModel):
    patient_id: Optional[UUID] = None
    test_ids: List[UUID] = []
    priority: Optional[str] = None
    clinical_notes: Optional[str] = None

class ResultEntry(BaseModel):
    id: UUID
    result_value: Optional[str] = None
    unit: Optional[str] = None
    normal_range: Optional[str] = None
    flag: Optional[str] = None
    remarks: Optional[str] = None

class LabResultsUpdate(BaseModel):
    results: List[ResultEntry] = []
