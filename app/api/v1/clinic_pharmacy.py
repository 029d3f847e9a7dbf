from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import require_permission
from app.core.clinic_access import ClinicAccess
from app.db.session import get_session
from app.schemas.pharmacy import (
    BatchCreate,
    CreditAccountCreate,
    CreditPayment,
    ProductCreate,
    ProductUpdate,
    PurchaseCreate,
    SaleCreate,
    SupplierCreate,
    SupplierUpdate,
)
from app.services.pharmacy_service import PharmacyService
from app.services.pharmacy_stock_service import PharmacyStockService

router = APIRouter()

async def get_pharmacy_service(session: AsyncSession = Depends(get_session)) -> PharmacyService:
    return PharmacyService(session)

async def get_pharmacy_stock_service(session: AsyncSession = Depends(get_session)) -> PharmacyStockService:
    return PharmacyStockService(session)

@router.post("/pharmacy/sale")
async def create_sale(
    payload: SaleCreate,
    access: ClinicAccess = Depends(require_permission("pharmacy")),
    service: PharmacyService = Depends(get_pharmacy_service)
):
    return await service.create_sale(access, payload)

@router.get("/pharmacy/credit-accounts")
async def read_credit_accounts(
    search: Optional[str] = None,
    isActive: Optional[bool] = None,
    access: ClinicAccess = Depends(require_permission("pharmacy")),
    service: PharmacyService = Depends(get_pharmacy_service)
):
    return await service.list_credit_accounts(access, search, isActive)

@router.post("/pharmacy/credit-accounts", status_code=201)
async def create_credit_account(
    payload: CreditAccountCreate,
    access: ClinicAccess = Depends(require_permission("pharmacy")),
    service: PharmacyService = Depends(get_pharmacy_service)
):
    return await service.create_credit_account(access, payload)

@router.get("/pharmacy/credit-accounts/{account_id}")
async def read_credit_account(
    account_id: UUID,
    access: ClinicAccess = Depends(require_permission("pharmacy")),
    service: PharmacyService = Depends(get_pharmacy_service)
):
    return await service.get_credit_account(access, account_id)

@router.post("/pharmacy/credit-accounts/{account_id}/payment")
async def record_credit_payment(
    account_id: UUID,
    payload: CreditPayment,
    access: ClinicAccess = Depends(require_permission("pharmacy")),
    service: PharmacyService = Depends(get_pharmacy_service)
):
    return await service.record_payment(access, account_id, payload)

@router.get("/pharmacy/inventory")
async def read_inventory(
    search: Optional[str] = None,
    expiringWithinDays: Optional[int] = None,
    includeInactive: bool = False,
    access: ClinicAccess = Depends(require_permission("pharmacy")),
    service: PharmacyService = Depends(get_pharmacy_service)
):
    return await service.list_inventory(access, search, expiringWithinDays, includeInactive)

@router.post("/pharmacy/inventory", status_code=201)
async def add_stock(
    payload: BatchCreate,
    access: ClinicAccess = Depends(require_permission("pharmacy")),
    service: PharmacyService = Depends(get_pharmacy_service)
):
    return await service.add_stock(access, payload)

@router.get("/pharmacy/products")
async def read_products(
    search: Optional[str] = None,
    category: Optional[str] = None,
    supplierId: Optional[UUID] = None,
    isActive: Optional[bool] = None,
    page: int = 1,
    limit: int = 50,
    access: ClinicAccess = Depends(require_permission("pharmacy")),
    service: PharmacyStockService = Depends(get_pharmacy_stock_service)
):
    return await service.list_products(access, search, category, supplierId, isActive, page, limit)

@router.post("/pharmacy/products", status_code=201)
async def create_product(
    payload: ProductCreate,
    access: ClinicAccess = Depends(require_permission("pharmacy")),
    service: PharmacyStockService = Depends(get_pharmacy_stock_service)
):
    return await service.create_product(access, payload)

@router.patch("/pharmacy/products/{product_id}")
async def update_product(
    product_id: UUID,
    payload: ProductUpdate,
    access: ClinicAccess = Depends(require_permission("pharmacy")),
    service: PharmacyStockService = Depends(get_pharmacy_stock_service)
):
    return await service.update_product(access, product_id, payload)

@router.delete("/pharmacy/products/{product_id}")
async def delete_product(
    product_id: UUID,
    access: ClinicAccess = Depends(require_permission("pharmacy")),
    service: PharmacyStockService = Depends(get_pharmacy_stock_service)
):
    return await service.delete_product(access, product_id)

@router.get("/pharmacy/suppliers")
async def read_suppliers(
    search: Optional[str] = None,
    isActive: Optional[bool] = None,
    access: ClinicAccess = Depends(require_permission("pharmacy")),
    service: PharmacyStockService = Depends(get_pharmacy_stock_service)
):
    return await service.list_suppliers(access, search, isActive)

@router.post("/pharmacy/suppliers", status_code=201)
async def create_supplier(
    payload: SupplierCreate,
    access: ClinicAccess = Depends(require_permission("pharmacy")),
    service: PharmacyStockService = Depends(get_pharmacy_stock_service)
):
    return await service.create_supplier(access, payload)

@router.patch("/pharmacy/suppliers/{supplier_id}")
async def update_supplier(
    supplier_id: UUID,
    payload: SupplierUpdate,
    access: ClinicAccess = Depends(require_permission("pharmacy")),
    service: PharmacyStockService = Depends(get_pharmacy_stock_service)
):
    return await service.update_supplier(access, supplier_id, payload)

@router.delete("/pharmacy/suppliers/{supplier_id}")
async def delete_supplier(
    supplier_id: UUID,
    access: ClinicAccess = Depends(require_permission("pharmacy")),
    service: PharmacyStockService = Depends(get_pharmacy_stock_service)
):
    return await service.delete_supplier(access, supplier_id)

@router.get("/pharmacy/purchases")
async def read_purchases(
    supplierId: Optional[UUID] = None,
    invoiceNumber: Optional[str] = None,
    startDate: Optional[str] = None,
    endDate: Optional[str] = None,
    page: int = 1,
    limit: int = 50,
    access: ClinicAccess = Depends(require_permission("pharmacy")),
    service: PharmacyStockService = Depends(get_pharmacy_stock_service)
):
    return await service.list_purchases(access, supplierId, invoiceNumber, startDate, endDate, page, limit)

@router.post("/pharmacy/purchases", status_code=201)
async def record_purchase(
    payload: PurchaseCreate,
    access: ClinicAccess = Depends(require_permission("pharmacy")),
    service: PharmacyStockService = Depends(get_pharmacy_stock_service)
):
    return await service.record_purchase(access, payload)
