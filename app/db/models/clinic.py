from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from uuid import UUID, uuid4
from sqlalchemy import Column, UniqueConstraint

from .types import JSONType

class Clinic(SQLModel, table=True):
    __tablename__ = "clinics"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    name: str
    slug: str = Field(unique=True, index=True)
    type: str = Field(default="CLINIC") # CLINIC, POLYCLINIC, HOSPITAL, PHARMACY
    address: str
    phone: str
    email: str
    website: Optional[str] = None
    description: Optional[str] = None
    logo_url: Optional[str] = None
    photos: Optional[list] = Field(default=None, sa_column=Column(JSONType))
    timings: Optional[dict] = Field(default=None, sa_column=Column(JSONType))
    services: Optional[list] = Field(default=None, sa_column=Column(JSONType))
    lat: Optional[float] = None
    lng: Optional[float] = None
    verified: bool = Field(default=False)
    claimed_by_id: Optional[UUID] = Field(default=None, foreign_key="users.id")
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class ClinicDoctor(SQLModel, table=True):
    __tablename__ = "clinic_doctors"
    __table_args__ = (UniqueConstraint("clinic_id", "doctor_id"),)
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    clinic_id: UUID = Field(foreign_key="clinics.id", index=True)
    doctor_id: UUID = Field(foreign_key="professionals.id", index=True)
    designation: Optional[str] = None
    consultation_fee: Optional[float] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)


class ClinicStaff(SQLModel, table=True):
    __tablename__ = "clinic_staff"
    __table_args__ = (UniqueConstraint("clinic_id", "user_id"),)
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    clinic_id: UUID = Field(foreign_key="clinics.id", index=True)
    user_id: UUID = Field(foreign_key="users.id", index=True)
    role: str # OWNER, ADMIN, DOCTOR, RECEPTIONIST, BILLING, LAB, PHARMACY, NURSE
    invited_by_id: Optional[UUID] = Field(default=None, foreign_key="users.id")
    created_at: datetime = Field(default_factory=datetime.utcnow)
