from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.permissions import has_permission
from app.db.models import Clinic, ClinicStaff, User
from app.db.models.enums import ClinicRole

DENIAL_STATUS = {
    "unauthenticated": 401,
    "no_clinic": 403,
    "no_access": 403,
    "permission_denied": 403,
    "not_verified": 403,
}


@dataclass
class ClinicAccess:
    clinic: Clinic
    role: str
    user: User
    staff: Optional[ClinicStaff] = None

    @property
    def clinic_id(self) -> UUID:
        return self.clinic.id


def deny(reason: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=DENIAL_STATUS[reason],
        detail={"error": message, "code": reason},
    )


async def resolve_clinic_access(
    session: AsyncSession, user: User, clinic_id: Optional[UUID] = None
) -> ClinicAccess:
    """
    Find the clinic the user works at and the role they hold there.

    Staff membership wins; a verified clinic the user claimed before staff
    roles existed grants OWNER.
    """
    stmt = select(ClinicStaff).where(ClinicStaff.user_id == user.id)
    if clinic_id:
        stmt = stmt.where(ClinicStaff.clinic_id == clinic_id)
    stmt = stmt.order_by(ClinicStaff.created_at)
    result = await session.execute(stmt)
    staff = result.scalars().first()
    if staff:
        clinic = await session.get(Clinic, staff.clinic_id)
        if clinic:
            return ClinicAccess(clinic=clinic, role=staff.role, user=user, staff=staff)

    stmt = select(Clinic).where(Clinic.claimed_by_id == user.id, Clinic.verified == True)
    if clinic_id:
        stmt = stmt.where(Clinic.id == clinic_id)
    result = await session.execute(stmt.order_by(Clinic.created_at))
    clinic = result.scalars().first()
    if clinic:
        return ClinicAccess(clinic=clinic, role=ClinicRole.OWNER.value, user=user)

    if clinic_id:
        raise deny("no_access", "You do not have access to this clinic")
    raise deny("no_clinic", "No clinic found for your account")


def check_permission(access: ClinicAccess, permission: str) -> ClinicAccess:
    # staff of a clinic still under review can see their role but not work in it
    if not access.clinic.verified:
        raise deny("not_verified", "Clinic is pending verification")
    if not has_permission(access.role, permission):
        raise deny(
            "permission_denied",
            f"Permission '{permission}' required. Your role ({access.role}) does not have this permission.",
        )
    return access
