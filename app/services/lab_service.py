from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select, func

from app.core.clinic_access import ClinicAccess
from app.core.logger import logger
from app.core.utils import next_sequence, pagination
from app.db.models import LabOrder, LabResult, LabTest, Patient
from app.db.models.enums import LabOrderStatus, LabPriority, ResultFlag

PRIORITIES = [p.value for p in LabPriority]
ORDER_STATUSES = [s.value for s in LabOrderStatus]
RESULT_FLAGS = [f.value for f in ResultFlag]


def lab_test_summary(test: LabTest) -> dict:
    return {
        "id": str(test.id),
        "name": test.name,
        "category": test.category,
        "unit": test.unit,
        "normal_range": test.normal_range,
        "price": test.price,
        "is_active": test.is_active,
    }


def lab_result_summary(result: LabResult, test: LabTest) -> dict:
    return {
        "id": str(result.id),
        "result_value": result.result_value,
        "unit": result.unit,
        "normal_range": result.normal_range,
        "flag": result.flag,
        "remarks": result.remarks,
        "lab_test": lab_test_summary(test),
    }


def lab_order_summary(order: LabOrder, patient: Patient, results: List[tuple]) -> dict:
    return {
        "id": str(order.id),
        "order_number": order.order_number,
        "status": order.status,
        "priority": order.priority,
        "clinical_notes": order.clinical_notes,
        "completed_at": order.completed_at.isoformat() if order.completed_at else None,
        "created_at": order.created_at.isoformat(),
        "patient": {
            "id": str(patient.id),
            "full_name": patient.full_name,
            "patient_number": patient.patient_number,
        },
        "results": [lab_result_summary(result, test) for result, test in results],
    }


class LabService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_tests(self, access: ClinicAccess, q: Optional[str] = None, category: Optional[str] = None) -> dict:
        conditions = [LabTest.clinic_id == access.clinic_id, LabTest.is_active == True]
        if q:
            conditions.append(LabTest.name.ilike(f"%{q}%"))
        if category:
            conditions.append(LabTest.category == category)
        stmt = select(LabTest).where(*conditions).order_by(LabTest.category, LabTest.name)
        tests = (await self.session.execute(stmt)).scalars().all()
        categories = sorted({test.category for test in tests if test.category})
        return {"tests": [lab_test_summary(test) for test in tests], "categories": categories}

    async def create_test(self, access: ClinicAccess, name: Optional[str], **fields) -> dict:
        if not name or not name.strip():
            raise HTTPException(status_code=400, detail="Test name is required")
        if fields.get("price", 0) < 0:
            raise HTTPException(status_code=400, detail="Price cannot be negative")
        test = LabTest(
            clinic_id=access.clinic_id,
            name=name.strip(),
            category=fields.get("category") or None,
            unit=fields.get("unit") or None,
            normal_range=fields.get("normal_range") or None,
            price=fields.get("price", 0),
        )
        self.session.add(test)
        await self.session.commit()
        await self.session.refresh(test)
        return {"labTest": lab_test_summary(test)}

    async def next_order_number(self, clinic_id: UUID) -> str:
        prefix = f"LAB-{date.today().strftime('%Y%m%d')}"
        stmt = (
            select(LabOrder.order_number)
            .where(LabOrder.clinic_id == clinic_id, LabOrder.order_number.startswith(prefix))
            .order_by(LabOrder.order_number.desc())
        )
        last = (await self.session.execute(stmt)).scalars().first()
        return f"{prefix}-{next_sequence(last):04d}"

    async def _results(self, order_id: UUID) -> List[tuple]:
        stmt = (
            select(LabResult, LabTest)
            .join(LabTest, LabTest.id == LabResult.lab_test_id)
            .where(LabResult.lab_order_id == order_id)
            .order_by(LabTest.name)
        )
        return (await self.session.execute(stmt)).all()

    async def list_orders(
        self,
        access: ClinicAccess,
        status: Optional[str] = None,
        patient_id: Optional[UUID] = None,
        page: int = 1,
        limit: int = 20,
    ) -> dict:
        page = max(1, page)
        limit = min(100, max(1, limit))
        conditions = [LabOrder.clinic_id == access.clinic_id]
        if status:
            if status not in ORDER_STATUSES:
                raise HTTPException(status_code=400, detail="Invalid status")
            conditions.append(LabOrder.status == status)
        if patient_id:
            conditions.append(LabOrder.patient_id == patient_id)

        stmt = (
            select(LabOrder, Patient)
            .join(Patient, Patient.id == LabOrder.patient_id)
            .where(*conditions)
            .order_by(LabOrder.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        rows = (await self.session.execute(stmt)).all()
        total = (await self.session.execute(select(func.count(LabOrder.id)).where(*conditions))).scalar() or 0
        orders = [lab_order_summary(order, patient, await self._results(order.id)) for order, patient in rows]
        return {"labOrders": orders, "pagination": pagination(total, page, limit)}

    async def get_order(self, access: ClinicAccess, order_id: UUID) -> dict:
        order = await self.session.get(LabOrder, order_id)
        if not order or order.clinic_id != access.clinic_id:
            raise HTTPException(status_code=404, detail="Lab order not found")
        patient = await self.session.get(Patient, order.patient_id)
        return {"labOrder": lab_order_summary(order, patient, await self._results(order.id))}

    async def create_order(
        self,
        access: ClinicAccess,
        patient_id: Optional[UUID],
        test_ids: List[UUID],
        priority: Optional[str] = None,
        clinical_notes: Optional[str] = None,
    ) -> dict:
        if not patient_id or not test_ids:
            raise HTTPException(status_code=400, detail="patient_id and test_ids are required")
        priority = priority or LabPriority.ROUTINE.value
        if priority not in PRIORITIES:
            raise HTTPException(status_code=400, detail="Invalid priority")

        patient = await self.session.get(Patient, patient_id)
        if not patient or patient.clinic_id != access.clinic_id:
            raise HTTPException(status_code=404, detail="Patient not found")

        unique_ids = list(dict.fromkeys(test_ids))
        stmt = select(LabTest).where(LabTest.id.in_(unique_ids), LabTest.clinic_id == access.clinic_id)
        tests = (await self.session.execute(stmt)).scalars().all()
        if len(tests) != len(unique_ids):
            raise HTTPException(status_code=400, detail="One or more lab tests are invalid")

        order = LabOrder(
            clinic_id=access.clinic_id,
            patient_id=patient.id,
            ordered_by_id=access.user.id,
            order_number=await self.next_order_number(access.clinic_id),
            priority=priority,
            clinical_notes=clinical_notes.strip() if clinical_notes and clinical_notes.strip() else None,
        )
        self.session.add(order)
        await self.session.flush()
        for test in tests:
            self.session.add(LabResult(
                lab_order_id=order.id,
                lab_test_id=test.id,
                unit=test.unit,
                normal_range=test.normal_range,
            ))
        await self.session.commit()

        logger.info(f"Lab order {order.order_number} created with {len(tests)} tests")
        return {"labOrder": lab_order_summary(order, patient, await self._results(order.id))}

    async def record_results(self, access: ClinicAccess, order_id: UUID, entries: list) -> dict:
        order = await self.session.get(LabOrder, order_id)
        if not order or order.clinic_id != access.clinic_id:
            raise HTTPException(status_code=404, detail="Lab order not found")
        if order.status == LabOrderStatus.CANCELLED.value:
            raise HTTPException(status_code=400, detail="Cannot record results for a cancelled order")
        if not entries:
            raise HTTPException(status_code=400, detail="At least one result is required")

        rows = await self._results(order.id)
        results = {result.id: result for result, _ in rows}
        now = datetime.utcnow()
        for entry in entries:
            result = results.get(entry.id)
            if result is None:
                raise HTTPException(status_code=404, detail="Lab result not found")
            if entry.flag and entry.flag not in RESULT_FLAGS:
                raise HTTPException(status_code=400, detail="Invalid result flag")
            fields = entry.model_dump(exclude_unset=True, exclude={"id"})
            for key, value in fields.items():
                setattr(result, key, value or None)
            result.updated_at = now
            self.session.add(result)

        if all(result.result_value for result in results.values()):
            if order.status != LabOrderStatus.COMPLETED.value:
                order.status = LabOrderStatus.COMPLETED.value
                order.completed_at = now
        elif order.status == LabOrderStatus.ORDERED.value:
            order.status = LabOrderStatus.PROCESSING.value
        self.session.add(order)
        await self.session.commit()

        patient = await self.session.get(Patient, order.patient_id)
        return {"labOrder": lab_order_summary(order, patient, await self._results(order.id))}
