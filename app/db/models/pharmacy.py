from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime, date
from uuid import UUID, uuid4
from sqlalchemy import Column

from .types import JSONType

class Supplier(SQLModel, table=True):
    __tablename__ = "suppliers"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    clinic_id: UUID = Field(foreign_key="clinics.id", index=True)
    name: str
    contact_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    pan_number: Optional[str] = None
    payment_terms: Optional[str] = None
    notes: Optional[str] = None
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class Product(SQLModel, table=True):
    __tablename__ = "products"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    clinic_id: UUID = Field(foreign_key="clinics.id", index=True)
    supplier_id: Optional[UUID] = Field(default=None, foreign_key="suppliers.id")
    name: str
    generic_name: Optional[str] = None
    category: Optional[str] = None
    manufacturer: Optional[str] = None
    barcode: Optional[str] = Field(default=None, index=True)
    unit: Optional[str] = None
    pack_size: Optional[int] = None
    min_stock_level: int = Field(default=0)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class InventoryBatch(SQLModel, table=True):
    __tablename__ = "inventory_batches"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    clinic_id: UUID = Field(foreign_key="clinics.id", index=True)
    product_id: UUID = Field(foreign_key="products.id", index=True)
    batch_number: str
    expiry_date: Optional[date] = None
    quantity: int = Field(default=0)
    purchase_price: float = Field(default=0)
    mrp: Optional[float] = None
    selling_price: float = Field(default=0)
    supplier_id: Optional[UUID] = Field(default=None, foreign_key="suppliers.id", index=True)
    invoice_number: Optional[str] = None
    received_date: Optional[date] = None
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class CreditAccount(SQLModel, table=True):
    __tablename__ = "credit_accounts"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    clinic_id: UUID = Field(foreign_key="clinics.id", index=True)
    customer_name: str
    phone: Optional[str] = None
    address: Optional[str] = None
    credit_limit: float = Field(default=0)
    current_balance: float = Field(default=0)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Sale(SQLModel, table=True):
    __tablename__ = "sales"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    clinic_id: UUID = Field(foreign_key="clinics.id", index=True)
    sale_number: str = Field(index=True)
    items: list = Field(default_factory=list, sa_column=Column(JSONType))
    subtotal: float = Field(default=0)
    discount: float = Field(default=0)
    tax_amount: float = Field(default=0)
    total: float = Field(default=0)
    amount_paid: float = Field(default=0)
    amount_due: float = Field(default=0)
    payment_mode: str = Field(default="CASH")
    is_credit: bool = Field(default=False)
    credit_account_id: Optional[UUID] = Field(default=None, foreign_key="credit_accounts.id")
    prescription_id: Optional[UUID] = Field(default=None, foreign_key="prescriptions.id")
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)


class CreditTransaction(SQLModel, table=True):
    __tablename__ = "credit_transactions"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    clinic_id: UUID = Field(foreign_key="clinics.id", index=True)
    credit_account_id: UUID = Field(foreign_key="credit_accounts.id", index=True)
    sale_id: Optional[UUID] = Field(default=None, foreign_key="sales.id")
    type: str # SALE, PAYMENT
    amount: float
    balance: float
    description: Optional[str] = None
    payment_mode: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
