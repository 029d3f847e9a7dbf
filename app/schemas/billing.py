from pydantic import BaseModel
from typing import List, Optional
from uuid import UUID

class InvoiceItemIn(BaseModel):
    service_id: Optional[str] = None
    name: Optional[str] = None
    quantity: Optional[float] = None
    unit_price: float = 0

class InvoiceCreate(BaseModel):
    patient_id: Optional[UUID] = None
    appointment_id: Optional[UUID] = None
    items: Optional[List[InvoiceItemIn]] = None
    discount: Optional[float] = None
    tax: Optional[float] = None
    payment_mode: Optional[str] = None
    payment_status: Optional[str] = None
    notes: Optional[str] = None

class InvoiceUpdate(BaseModel):
    payment_status: Optional[str] = None

class ServiceCreate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = None
    category: Optional[str] = None
    is_active: Optional[bool] = True
