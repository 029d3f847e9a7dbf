import math
from datetime import date, datetime, time
from typing import Optional
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select, func

from app.core.clinic_access import ClinicAccess
from app.core.logger import logger
from app.db.models import Appointment, Invoice, Patient, Professional, Service
from app.db.models.enums import PaymentMode, PaymentStatus
from app.schemas.billing import InvoiceCreate, InvoiceUpdate, ServiceCreate
from app.services.appointment_service import parse_date

PAYMENT_MODES = [mode.value for mode in PaymentMode]
PAYMENT_STATUSES = [status.value for status in PaymentStatus]


def service_summary(service: Service) -> dict:
    return {
        "id": str(service.id),
        "name": service.name,
        "description": service.description,
        "category": service.category,
        "price": service.price,
        "is_active": service.is_active,
        "created_at": service.created_at.isoformat(),
    }


def invoice_summary(invoice: Invoice, patient: Optional[Patient] = None) -> dict:
    data = {
        "id": str(invoice.id),
        "invoice_number": invoice.invoice_number,
        "patient_id": str(invoice.patient_id),
        "appointment_id": str(invoice.appointment_id) if invoice.appointment_id else None,
        "items": invoice.items or [],
        "subtotal": invoice.subtotal,
        "discount": invoice.discount,
        "tax": invoice.tax,
        "total": invoice.total,
        "payment_mode": invoice.payment_mode,
        "payment_status": invoice.payment_status,
        "notes": invoice.notes,
        "created_at": invoice.created_at.isoformat(),
    }
    if patient is not None:
        data["patient"] = {
            "id": str(patient.id),
            "patient_number": patient.patient_number,
            "full_name": patient.full_name,
            "phone": patient.phone,
        }
    return data


class BillingService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_invoices(
        self,
        access: ClinicAccess,
        page: int = 1,
        limit: int = 20,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        payment_status: Optional[str] = None,
    ) -> dict:
        page = max(1, page)
        limit = min(100, max(1, limit))
        conditions = [Invoice.clinic_id == access.clinic_id]
        if date_from:
            start = parse_date(date_from)
            if start is None:
                raise HTTPException(status_code=400, detail="Invalid dateFrom. Use YYYY-MM-DD")
            conditions.append(Invoice.created_at >= datetime.combine(start, time.min))
        if date_to:
            end = parse_date(date_to)
            if end is None:
                raise HTTPException(status_code=400, detail="Invalid dateTo. Use YYYY-MM-DD")
            # inclusive of the whole end day
            conditions.append(Invoice.created_at <= datetime.combine(end, time.max))
        if payment_status:
            conditions.append(Invoice.payment_status == payment_status)

        stmt = (
            select(Invoice, Patient)
            .join(Patient, Patient.id == Invoice.patient_id)
            .where(*conditions)
            .order_by(Invoice.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        rows = (await self.session.execute(stmt)).all()
        total = (await self.session.execute(select(func.count(Invoice.id)).where(*conditions))).scalar() or 0
        return {
            "invoices": [invoice_summary(invoice, patient) for invoice, patient in rows],
            "total": total,
            "page": page,
            "limit": limit,
            "totalPages": math.ceil(total / limit),
        }

    async def next_invoice_number(self, clinic_id: UUID) -> str:
        year = date.today().year
        stmt = select(func.count(Invoice.id)).where(
            Invoice.clinic_id == clinic_id,
            Invoice.created_at >= datetime(year, 1, 1),
            Invoice.created_at < datetime(year + 1, 1, 1),
        )
        count = (await self.session.execute(stmt)).scalar() or 0
        return f"INV-{year}-{count + 1:04d}"

    async def create_invoice(self, access: ClinicAccess, data: InvoiceCreate) -> dict:
        if not data.patient_id:
            raise HTTPException(status_code=400, detail="Patient is required")
        if not data.items:
            raise HTTPException(status_code=400, detail="At least one item is required")
        for item in data.items:
            if not item.service_id or not item.name or not item.quantity or item.quantity <= 0:
                raise HTTPException(status_code=400, detail="Invalid item data")

        patient = await self.session.get(Patient, data.patient_id)
        if not patient or patient.clinic_id != access.clinic_id:
            raise HTTPException(status_code=404, detail="Patient not found")

        if data.appointment_id:
            stmt = select(Appointment).where(
                Appointment.id == data.appointment_id,
                Appointment.clinic_id == access.clinic_id,
                Appointment.patient_id == patient.id,
            )
            if not (await self.session.execute(stmt)).scalars().first():
                raise HTTPException(status_code=404, detail="Appointment not found")
            existing = select(Invoice.id).where(Invoice.appointment_id == data.appointment_id)
            if (await self.session.execute(existing)).first():
                raise HTTPException(status_code=400, detail="Appointment already has an invoice")

        items = [
            {
                "service_id": item.service_id,
                "name": item.name,
                "quantity": item.quantity,
                "unit_price": item.unit_price,
                "amount": item.quantity * item.unit_price,
            }
            for item in data.items
        ]
        subtotal = sum(item["amount"] for item in items)
        discount = data.discount or 0
        tax = data.tax or 0

        invoice = Invoice(
            clinic_id=access.clinic_id,
            patient_id=patient.id,
            appointment_id=data.appointment_id,
            created_by_id=access.user.id,
            invoice_number=await self.next_invoice_number(access.clinic_id),
            items=items,
            subtotal=subtotal,
            discount=discount,
            tax=tax,
            total=subtotal - discount + tax,
            payment_mode=data.payment_mode if data.payment_mode in PAYMENT_MODES else PaymentMode.CASH.value,
            payment_status=(
                data.payment_status if data.payment_status in PAYMENT_STATUSES else PaymentStatus.PENDING.value
            ),
            notes=data.notes.strip() if data.notes and data.notes.strip() else None,
        )
        self.session.add(invoice)
        await self.session.commit()
        await self.session.refresh(invoice)

        logger.info(f"Invoice {invoice.invoice_number} created at clinic {access.clinic_id}")
        return {"invoice": invoice_summary(invoice, patient)}

    async def get_clinic_invoice(self, access: ClinicAccess, invoice_id: UUID) -> Invoice:
        invoice = await self.session.get(Invoice, invoice_id)
        if not invoice or invoice.clinic_id != access.clinic_id:
            raise HTTPException(status_code=404, detail="Invoice not found")
        return invoice

    async def get_invoice(self, access: ClinicAccess, invoice_id: UUID) -> dict:
        invoice = await self.get_clinic_invoice(access, invoice_id)
        patient = await self.session.get(Patient, invoice.patient_id)
        data = invoice_summary(invoice, patient)
        data["patient"]["address"] = patient.address

        data["appointment"] = None
        if invoice.appointment_id:
            stmt = (
                select(Appointment, Professional)
                .join(Professional, Professional.id == Appointment.doctor_id)
                .where(Appointment.id == invoice.appointment_id)
            )
            row = (await self.session.execute(stmt)).first()
            if row:
                appointment, doctor = row
                data["appointment"] = {
                    "id": str(appointment.id),
                    "appointment_date": appointment.appointment_date.isoformat(),
                    "doctor": {"id": str(doctor.id), "full_name": doctor.full_name},
                }

        clinic = access.clinic
        return {
            "invoice": data,
            "clinic": {
                "id": str(clinic.id),
                "name": clinic.name,
                "address": clinic.address,
                "phone": clinic.phone,
                "email": clinic.email,
                "logo_url": clinic.logo_url,
            },
        }

    async def update_invoice(self, access: ClinicAccess, invoice_id: UUID, data: InvoiceUpdate) -> dict:
        if data.payment_status not in PAYMENT_STATUSES:
            raise HTTPException(status_code=400, detail="Invalid payment status")
        invoice = await self.get_clinic_invoice(access, invoice_id)
        invoice.payment_status = data.payment_status
        self.session.add(invoice)
        await self.session.commit()
        await self.session.refresh(invoice)
        patient = await self.session.get(Patient, invoice.patient_id)
        return {"invoice": invoice_summary(invoice, patient)}

    async def list_services(self, access: ClinicAccess) -> dict:
        stmt = (
            select(Service)
            .where(Service.clinic_id == access.clinic_id)
            .order_by(Service.category, Service.name)
        )
        services = (await self.session.execute(stmt)).scalars().all()
        return {"services": [service_summary(service) for service in services]}

    async def create_service(self, access: ClinicAccess, data: ServiceCreate) -> dict:
        if not data.name or not data.name.strip():
            raise HTTPException(status_code=400, detail="Service name is required")
        if data.price is None or data.price < 0:
            raise HTTPException(status_code=400, detail="Valid price is required")

        service = Service(
            clinic_id=access.clinic_id,
            name=data.name.strip(),
            description=data.description.strip() if data.description and data.description.strip() else None,
            category=data.category.strip() if data.category and data.category.strip() else None,
            price=data.price,
            is_active=data.is_active is not False,
        )
        self.session.add(service)
        await self.session.commit()
        await self.session.refresh(service)
        return {"service": service_summary(service)}
