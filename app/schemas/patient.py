from pydantic import BaseModel
from typing import Optional

class FamilyMemberCreate(BaseModel):
    name: Optional[str] = None
    relation: Optional[str] = None
    date_of_birth: Optional[str] = None # YYYY-MM-DD
    gender: Optional[str] = None
    blood_group: Optional[str] = None
    phone: Optional[str] = None

class FamilyMemberUpdate(FamilyMemberCreate):
    """Only the fields present in the body are applied; an explicit null clears the field."""

class ClinicPatientCreate(BaseModel):
    full_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    date_of_birth: Optional[str] = None # YYYY-MM-DD
    gender: Optional[str] = None
    blood_group: Optional[str] = None
    address: Optional[str] = None

class ClinicPatientUpdate(ClinicPatientCreate):
    """Only the fields present in the body are applied."""
