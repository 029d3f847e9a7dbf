import re
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.utils import clean_phone
from app.db.models import Clinic, LabOrder, LabResult, LabTest, Patient
from app.db.models.enums import LabOrderStatus

LOOKUP_PHONE_REGEX = re.compile(r"^(98|97|96|0)\d{7,9}$")
ORDER_NUMBER_REGEX = re.compile(r"^LAB-\d{8}-\d{4}$")


def not_found(status_code: int, message: str) -> HTTPException:
    return HTTPException(status_code=status_code, detail={"found": False, "message": message})


class LabLookupService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def lookup(self, phone: Optional[str], order_number: Optional[str]) -> dict:
        if not phone or not order_number:
            raise not_found(400, "Phone number and order number are required")
        phone = clean_phone(phone)
        if not LOOKUP_PHONE_REGEX.match(phone):
            raise not_found(400, "Invalid phone number format")
        if not ORDER_NUMBER_REGEX.match(order_number):
            raise not_found(400, "Invalid order number format. Expected: LAB-XXXXXXXX-XXXX")

        stmt = (
            select(LabOrder, Patient, Clinic)
            .join(Patient, Patient.id == LabOrder.patient_id)
            .join(Clinic, Clinic.id == LabOrder.clinic_id)
            .where(LabOrder.order_number == order_number, Patient.phone == phone)
        )
        row = (await self.session.execute(stmt)).first()
        if not row:
            raise not_found(
                404,
                "No lab order found with the provided details. Please check your phone number and order number.",
            )
        order, patient, clinic = row

        payload = {
            "id": str(order.id),
            "order_number": order.order_number,
            "status": order.status,
            "priority": order.priority,
            "created_at": order.created_at.isoformat(),
            "completed_at": order.completed_at.isoformat() if order.completed_at else None,
            # first name only
            "patient_name": patient.full_name.split(" ")[0],
            "clinic": {"name": clinic.name, "address": clinic.address, "phone": clinic.phone},
        }

        if order.status == LabOrderStatus.COMPLETED.value:
            result_stmt = (
                select(LabResult, LabTest)
                .join(LabTest, LabTest.id == LabResult.lab_test_id)
                .where(LabResult.lab_order_id == order.id)
                .order_by(LabTest.name)
            )
            payload["results"] = [
                {
                    "test_name": test.name,
                    "category": test.category,
                    "result_value": result.result_value,
                    "unit": result.unit or test.unit,
                    "normal_range": result.normal_range or test.normal_range,
                    "flag": result.flag,
                    "remarks": result.remarks,
                }
                for result, test in (await self.session.execute(result_stmt)).all()
            ]

        return {"found": True, "order": payload}
