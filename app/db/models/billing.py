from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from uuid import UUID, uuid4
from sqlalchemy import Column

from .types import JSONType

class Service(SQLModel, table=True):
    __tablename__ = "services"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    clinic_id: UUID = Field(foreign_key="clinics.id", index=True)
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    price: float = Field(default=0)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Invoice(SQLModel, table=True):
    __tablename__ = "invoices"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    clinic_id: UUID = Field(foreign_key="clinics.id", index=True)
    patient_id: UUID = Field(foreign_key="patients.id", index=True)
    appointment_id: Optional[UUID] = Field(default=None, foreign_key="appointments.id", unique=True)
    invoice_number: str
    items: list = Field(default_factory=list, sa_column=Column(JSONType))
    subtotal: float = Field(default=0)
    discount: float = Field(default=0)
    tax: float = Field(default=0)
    total: float = Field(default=0)
    payment_mode: str = Field(default="CASH") # CASH, CARD, ESEWA, KHALTI, BANK_TRANSFER, CREDIT
    payment_status: str = Field(default="PENDING") # PENDING, PARTIAL, PAID, REFUNDED, CANCELLED
    notes: Optional[str] = None
    created_by_id: Optional[UUID] = Field(default=None, foreign_key="users.id")
    created_at: datetime = Field(default_factory=datetime.utcnow)
