from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select, func, or_

from app.core.utils import (
    BLOOD_GROUPS,
    GENDERS,
    INVALID_PHONE_MESSAGE,
    clean_phone,
    is_valid_booking_phone,
    pagination,
)
from app.db.models import (
    Appointment,
    Clinic,
    FamilyMember,
    LabOrder,
    LabResult,
    LabTest,
    Patient,
    Prescription,
    Professional,
    User,
)
from app.db.models.enums import (
    ACTIVE_APPOINTMENT_STATUSES,
    AppointmentStatus,
    FamilyRelation,
    LabOrderStatus,
    PrescriptionStatus,
)
from app.schemas.patient import FamilyMemberCreate, FamilyMemberUpdate

MAX_FAMILY_MEMBERS = 10
NO_PATIENT_RECORDS_MESSAGE = "No patient records found for your account"

VALID_RELATIONS = [relation.value for relation in FamilyRelation]
VALID_PRESCRIPTION_STATUSES = [status.value for status in PrescriptionStatus]
TERMINAL_APPOINTMENT_STATUSES = [
    AppointmentStatus.COMPLETED.value,
    AppointmentStatus.CANCELLED.value,
    AppointmentStatus.NO_SHOW.value,
]


def clinic_brief(clinic: Clinic) -> dict:
    return {"id": str(clinic.id), "name": clinic.name, "address": clinic.address, "phone": clinic.phone}


def doctor_brief(doctor: Professional) -> dict:
    return {
        "id": str(doctor.id),
        "full_name": doctor.full_name,
        "degree": doctor.degree,
        "specialties": doctor.specialties or [],
        "photo_url": doctor.photo_url,
        "registration_number": doctor.registration_number,
    }


def family_member_summary(member: FamilyMember) -> dict:
    return {
        "id": str(member.id),
        "name": member.name,
        "relation": member.relation,
        "date_of_birth": member.date_of_birth.isoformat() if member.date_of_birth else None,
        "gender": member.gender,
        "blood_group": member.blood_group,
        "phone": member.phone,
        "created_at": member.created_at.isoformat(),
        "updated_at": member.updated_at.isoformat(),
    }


def parse_date_of_birth(value: str) -> date:
    try:
        parsed = date.fromisoformat(value[:10])
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid date_of_birth format")
    if parsed > date.today():
        raise HTTPException(status_code=400, detail="Date of birth cannot be in the future")
    return parsed


def check_choice(value: Optional[str], choices: List[str], label: str):
    if value is not None and value not in choices:
        raise HTTPException(status_code=400, detail=f"Invalid {label}. Must be one of: {', '.join(choices)}")


def normalize_member_phone(phone: str) -> str:
    cleaned = clean_phone(phone)
    if not is_valid_booking_phone(cleaned):
        raise HTTPException(status_code=400, detail=INVALID_PHONE_MESSAGE)
    return cleaned


class PatientPortalService:
    """Self-service views over the clinic patient records that belong to a user."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_patient_ids(self, user: User) -> List[UUID]:
        # clinics keep their own patient rows, matched to the account by contact details
        conditions = []
        if user.email:
            conditions.append(Patient.email == user.email)
        if user.phone:
            conditions.append(Patient.phone == user.phone)
        if not conditions:
            return []
        result = await self.session.execute(select(Patient.id).where(or_(*conditions)))
        return list(result.scalars().all())

    async def list_appointments(
        self,
        user: User,
        page: int = 1,
        limit: int = 20,
        filter: Optional[str] = None,
        status: Optional[str] = None,
    ) -> dict:
        page = max(1, page)
        limit = min(100, max(1, limit))
        if filter and filter not in ("upcoming", "past"):
            raise HTTPException(status_code=400, detail="Invalid filter. Must be 'upcoming' or 'past'.")
        if status and status not in [s.value for s in AppointmentStatus]:
            raise HTTPException(status_code=400, detail="Invalid status")

        patient_ids = await self.get_patient_ids(user)
        if not patient_ids:
            return {"appointments": [], "pagination": pagination(0, page, limit), "message": NO_PATIENT_RECORDS_MESSAGE}

        today = date.today()
        conditions = [Appointment.patient_id.in_(patient_ids)]
        if filter == "upcoming":
            conditions.append(Appointment.appointment_date >= today)
            conditions.append(Appointment.status.in_(ACTIVE_APPOINTMENT_STATUSES))
        elif filter == "past":
            conditions.append(or_(
                Appointment.appointment_date < today,
                Appointment.status.in_(TERMINAL_APPOINTMENT_STATUSES),
            ))
        if status:
            conditions.append(Appointment.status == status)

        if filter == "past":
            order = (Appointment.appointment_date.desc(), Appointment.time_slot_start.desc())
        else:
            order = (Appointment.appointment_date.asc(), Appointment.time_slot_start.asc())

        stmt = (
            select(Appointment, Professional, Clinic)
            .join(Professional, Professional.id == Appointment.doctor_id)
            .join(Clinic, Clinic.id == Appointment.clinic_id)
            .where(*conditions)
            .order_by(*order)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        rows = (await self.session.execute(stmt)).all()
        total = (await self.session.execute(select(func.count(Appointment.id)).where(*conditions))).scalar() or 0

        appointments = [
            {
                "id": str(appointment.id),
                "appointment_date": appointment.appointment_date.isoformat(),
                "time_slot_start": appointment.time_slot_start.strftime("%H:%M"),
                "time_slot_end": appointment.time_slot_end.strftime("%H:%M"),
                "status": appointment.status,
                "type": appointment.type,
                "chief_complaint": appointment.chief_complaint,
                "token_number": appointment.token_number,
                "source": appointment.source,
                "created_at": appointment.created_at.isoformat(),
                "doctor": doctor_brief(doctor),
                "clinic": clinic_brief(clinic),
            }
            for appointment, doctor, clinic in rows
        ]
        return {"appointments": appointments, "pagination": pagination(total, page, limit)}

    async def list_lab_results(self, user: User, page: int = 1, limit: int = 10) -> dict:
        page = max(1, page)
        limit = min(100, max(1, limit))
        patient_ids = await self.get_patient_ids(user)
        if not patient_ids:
            return {"labOrders": [], "pagination": pagination(0, page, limit), "message": NO_PATIENT_RECORDS_MESSAGE}

        conditions = [
            LabOrder.patient_id.in_(patient_ids),
            LabOrder.status == LabOrderStatus.COMPLETED.value,
        ]
        stmt = (
            select(LabOrder, Clinic)
            .join(Clinic, Clinic.id == LabOrder.clinic_id)
            .where(*conditions)
            .order_by(LabOrder.completed_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        rows = (await self.session.execute(stmt)).all()
        total = (await self.session.execute(select(func.count(LabOrder.id)).where(*conditions))).scalar() or 0

        results_by_order = {}
        order_ids = [order.id for order, _ in rows]
        if order_ids:
            result_stmt = (
                select(LabResult, LabTest)
                .join(LabTest, LabTest.id == LabResult.lab_test_id)
                .where(LabResult.lab_order_id.in_(order_ids))
                .order_by(LabTest.name)
            )
            for result, test in (await self.session.execute(result_stmt)).all():
                results_by_order.setdefault(result.lab_order_id, []).append({
                    "id": str(result.id),
                    "result_value": result.result_value,
                    "unit": result.unit or test.unit,
                    "normal_range": result.normal_range or test.normal_range,
                    "flag": result.flag,
                    "remarks": result.remarks,
                    "lab_test": {"id": str(test.id), "name": test.name, "category": test.category},
                })

        lab_orders = [
            {
                "id": str(order.id),
                "order_number": order.order_number,
                "status": order.status,
                "priority": order.priority,
                "created_at": order.created_at.isoformat(),
                "completed_at": order.completed_at.isoformat() if order.completed_at else None,
                "clinic": clinic_brief(clinic),
                "results": results_by_order.get(order.id, []),
            }
            for order, clinic in rows
        ]
        return {"labOrders": lab_orders, "pagination": pagination(total, page, limit)}

    async def list_prescriptions(self, user: User, page: int = 1, limit: int = 20, status: Optional[str] = None) -> dict:
        page = max(1, page)
        limit = min(100, max(1, limit))
        if status and status not in VALID_PRESCRIPTION_STATUSES:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid status. Must be one of: {', '.join(VALID_PRESCRIPTION_STATUSES)}",
            )

        patient_ids = await self.get_patient_ids(user)
        if not patient_ids:
            return {"prescriptions": [], "pagination": pagination(0, page, limit), "message": NO_PATIENT_RECORDS_MESSAGE}

        conditions = [Prescription.patient_id.in_(patient_ids)]
        if status:
            conditions.append(Prescription.status == status)

        stmt = (
            select(Prescription, Professional, Clinic)
            .join(Professional, Professional.id == Prescription.doctor_id)
            .join(Clinic, Clinic.id == Prescription.clinic_id)
            .where(*conditions)
            .order_by(Prescription.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        rows = (await self.session.execute(stmt)).all()
        total = (await self.session.execute(select(func.count(Prescription.id)).where(*conditions))).scalar() or 0

        prescriptions = [
            {
                "id": str(rx.id),
                "prescription_number": rx.prescription_number,
                "items": rx.items or [],
                "instructions": rx.instructions,
                "status": rx.status,
                "issued_at": rx.issued_at.isoformat() if rx.issued_at else None,
                "valid_until": rx.valid_until.isoformat() if rx.valid_until else None,
                "created_at": rx.created_at.isoformat(),
                "doctor": doctor_brief(doctor),
                "clinic": clinic_brief(clinic),
            }
            for rx, doctor, clinic in rows
        ]
        return {"prescriptions": prescriptions, "pagination": pagination(total, page, limit)}

    async def list_family_members(self, user: User) -> dict:
        stmt = select(FamilyMember).where(FamilyMember.user_id == user.id).order_by(FamilyMember.created_at)
        members = (await self.session.execute(stmt)).scalars().all()
        return {"family_members": [family_member_summary(member) for member in members]}

    async def get_owned_family_member(self, user: User, member_id: UUID) -> FamilyMember:
        stmt = select(FamilyMember).where(FamilyMember.id == member_id, FamilyMember.user_id == user.id)
        member = (await self.session.execute(stmt)).scalars().first()
        if not member:
            raise HTTPException(status_code=404, detail="Family member not found")
        return member

    async def get_family_member(self, user: User, member_id: UUID) -> dict:
        member = await self.get_owned_family_member(user, member_id)
        return {"family_member": family_member_summary(member)}

    async def create_family_member(self, user: User, data: FamilyMemberCreate) -> dict:
        if not data.name or not data.name.strip():
            raise HTTPException(status_code=400, detail="Name is required")
        if not data.relation:
            raise HTTPException(status_code=400, detail="Relation is required")
        check_choice(data.relation, VALID_RELATIONS, "relation")
        check_choice(data.gender or None, GENDERS, "gender")
        check_choice(data.blood_group or None, BLOOD_GROUPS, "blood group")
        phone = normalize_member_phone(data.phone) if data.phone else None
        date_of_birth = parse_date_of_birth(data.date_of_birth) if data.date_of_birth else None

        count_stmt = select(func.count(FamilyMember.id)).where(FamilyMember.user_id == user.id)
        existing = (await self.session.execute(count_stmt)).scalar() or 0
        if existing >= MAX_FAMILY_MEMBERS:
            raise HTTPException(status_code=400, detail=f"Maximum of {MAX_FAMILY_MEMBERS} family members allowed")

        member = FamilyMember(
            user_id=user.id,
            name=data.name.strip(),
            relation=data.relation,
            date_of_birth=date_of_birth,
            gender=data.gender or None,
            blood_group=data.blood_group or None,
            phone=phone,
        )
        self.session.add(member)
        await self.session.commit()
        await self.session.refresh(member)
        return {"success": True, "family_member": family_member_summary(member)}

    async def update_family_member(self, user: User, member_id: UUID, data: FamilyMemberUpdate) -> dict:
        member = await self.get_owned_family_member(user, member_id)
        fields = data.model_dump(exclude_unset=True)
        if not fields:
            raise HTTPException(status_code=400, detail="No fields to update")

        if "name" in fields:
            if not fields["name"] or not fields["name"].strip():
                raise HTTPException(status_code=400, detail="Name cannot be empty")
            member.name = fields["name"].strip()
        if "relation" in fields:
            if fields["relation"] not in VALID_RELATIONS:
                raise HTTPException(
                    status_code=400,
                    detail=f"Invalid relation. Must be one of: {', '.join(VALID_RELATIONS)}",
                )
            member.relation = fields["relation"]
        if "date_of_birth" in fields:
            value = fields["date_of_birth"]
            member.date_of_birth = parse_date_of_birth(value) if value else None
        if "gender" in fields:
            check_choice(fields["gender"], GENDERS, "gender")
            member.gender = fields["gender"]
        if "blood_group" in fields:
            check_choice(fields["blood_group"], BLOOD_GROUPS, "blood group")
            member.blood_group = fields["blood_group"]
        if "phone" in fields:
            value = fields["phone"]
            member.phone = normalize_member_phone(value) if value else None

        member.updated_at = datetime.utcnow()
        self.session.add(member)
        await self.session.commit()
        await self.session.refresh(member)
        return {"success": True, "family_member": family_member_summary(member)}

    async def delete_family_member(self, user: User, member_id: UUID) -> dict:
        member = await self.get_owned_family_member(user, member_id)
        # past bookings stay, detached from the member
        await self.session.execute(
            update(Appointment).where(Appointment.family_member_id == member.id).values(family_member_id=None)
        )
        await self.session.delete(member)
        await self.session.commit()
        return {"success": True}
