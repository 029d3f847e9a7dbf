from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from uuid import UUID, uuid4
from sqlalchemy import Column

from .types import JSONType

class Professional(SQLModel, table=True):
    __tablename__ = "professionals"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    type: str = Field(index=True) # DOCTOR, DENTIST, PHARMACIST
    registration_number: str = Field(index=True)
    full_name: str
    gender: Optional[str] = None
    degree: Optional[str] = None
    address: Optional[str] = None
    photo_url: Optional[str] = None
    specialties: Optional[list] = Field(default=None, sa_column=Column(JSONType))
    verified: bool = Field(default=False)
    claimed_by_id: Optional[UUID] = Field(default=None, foreign_key="users.id")
    claimed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
