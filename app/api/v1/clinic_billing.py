from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import require_permission
from app.core.clinic_access import ClinicAccess
from app.db.session import get_session
from app.schemas.billing import InvoiceCreate, InvoiceUpdate, ServiceCreate
from app.services.billing_service import BillingService

router = APIRouter()

async def get_billing_service(session: AsyncSession = Depends(get_session)) -> BillingService:
    return BillingService(session)

@router.get("/invoices")
async def read_invoices(
    page: int = 1,
    limit: int = 20,
    dateFrom: Optional[str] = None,
    dateTo: Optional[str] = None,
    paymentStatus: Optional[str] = None,
    access: ClinicAccess = Depends(require_permission("billing")),
    service: BillingService = Depends(get_billing_service)
):
    return await service.list_invoices(access, page, limit, dateFrom, dateTo, paymentStatus)

@router.post("/invoices", status_code=201)
async def create_invoice(
    payload: InvoiceCreate,
    access: ClinicAccess = Depends(require_permission("billing")),
    service: BillingService = Depends(get_billing_service)
):
    return await service.create_invoice(access, payload)

@router.get("/invoices/{invoice_id}")
async def read_invoice(
    invoice_id: UUID,
    access: ClinicAccess = Depends(require_permission("billing")),
    service: BillingService = Depends(get_billing_service)
):
    return await service.get_invoice(access, invoice_id)

@router.patch("/invoices/{invoice_id}")
async def update_invoice(
    invoice_id: UUID,
    payload: InvoiceUpdate,
    access: ClinicAccess = Depends(require_permission("billing")),
    service: BillingService = Depends(get_billing_service)
):
    return await service.update_invoice(access, invoice_id, payload)

@router.get("/services")
async def read_services(
    access: ClinicAccess = Depends(require_permission("services")),
    service: BillingService = Depends(get_billing_service)
):
    return await service.list_services(access)

@router.post("/services", status_code=201)
async def create_service(
    payload: ServiceCreate,
    access: ClinicAccess = Depends(require_permission("services")),
    service: BillingService = Depends(get_billing_service)
):
    return await service.create_service(access, payload)
