from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from uuid import UUID, uuid4

class LabTest(SQLModel, table=True):
    __tablename__ = "lab_tests"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    clinic_id: UUID = Field(foreign_key="clinics.id", index=True)
    name: str
    category: Optional[str] = None
    unit: Optional[str] = None
    normal_range: Optional[str] = None
    price: float = Field(default=0)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class LabOrder(SQLModel, table=True):
    __tablename__ = "lab_orders"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    clinic_id: UUID = Field(foreign_key="clinics.id", index=True)
    patient_id: UUID = Field(foreign_key="patients.id", index=True)
    ordered_by_id: Optional[UUID] = Field(default=None, foreign_key="users.id")
    order_number: str = Field(index=True)
    status: str = Field(default="ORDERED") # ORDERED, SAMPLE_COLLECTED, PROCESSING, COMPLETED, CANCELLED
    priority: str = Field(default="ROUTINE") # ROUTINE, URGENT, STAT
    clinical_notes: Optional[str] = None
    completed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)


class LabResult(SQLModel, table=True):
    __tablename__ = "lab_results"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    lab_order_id: UUID = Field(foreign_key="lab_orders.id", index=True)
    lab_test_id: UUID = Field(foreign_key="lab_tests.id")
    result_value: Optional[str] = None
    unit: Optional[str] = None
    normal_range: Optional[str] = None
    flag: Optional[str] = None # NORMAL, LOW, HIGH, CRITICAL
    remarks: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
