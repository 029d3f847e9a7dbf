from pydantic import BaseModel
from typing import List, Optional
from uuid import UUID
from datetime import date

class SaleItemIn(BaseModel):
    product_id: Optional[UUID] = None
    batch_id: UUID
    product_name: str
    batch_number: Optional[str] = None
    quantity: int
    unit_price: float = 0
    discount: float = 0
    amount: Optional[float] = None

class SaleCreate(BaseModel):
    items: Optional[List[SaleItemIn]] = None
    subtotal: Optional[float] = None
    discount: float = 0
    tax_amount: float = 0
    total: Optional[float] = None
    amount_paid: float = 0
    payment_mode: str = "CASH"
    is_credit: bool = False
    credit_account_id: Optional[UUID] = None
    prescription_id: Optional[UUID] = None
    notes: Optional[str] = None

class CreditAccountCreate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    credit_limit: Optional[float] = None

class CreditPayment(BaseModel):
    amount: Optional[float] = None
    payment_mode: Optional[str] = None
    notes: Optional[str] = None

class BatchCreate(BaseModel):
    product_id: Optional[UUID] = None
    product_name: Optional[str] = None
    generic_name: Optional[str] = None
    category: Optional[str] = None
    unit: Optional[str] = None
    batch_number: Optional[str] = None
    expiry_date: Optional[date] = None
    quantity: Optional[int] = None
    purchase_price: float = 0
    selling_price: Optional[float] = None

class SupplierCreate(BaseModel):
    name: Optional[str] = None
    contact_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    pan_number: Optional[str] = None
    payment_terms: Optional[str] = None
    notes: Optional[str] = None

class SupplierUpdate(SupplierCreate):
    is_active: Optional[bool] = None

class ProductCreate(BaseModel):
    name: Optional[str] = None
    generic_name: Optional[str] = None
    category: Optional[str] = None
    manufacturer: Optional[str] = None
    barcode: Optional[str] = None
    unit: Optional[str] = None
    pack_size: Optional[int] = None
    min_stock_level: Optional[int] = None
    supplier_id: Optional[UUID] = None

class ProductUpdate(ProductCreate):
    is_active: Optional[bool] = None

class PurchaseItem(BaseModel):
    product_id: UUID
    batch_number: Optional[str] = None
    expiry_date: Optional[date] = None
    quantity: Optional[int] = None
    purchase_price: Optional[float] = None
    mrp: Optional[float] = None
    selling_price: Optional[float] = None

class PurchaseCreate(BaseModel):
    supplier_id: Optional[UUID] = None
    invoice_number: Optional[str] = None
    received_date: Optional[date] = None
    items: List[PurchaseItem] = []
