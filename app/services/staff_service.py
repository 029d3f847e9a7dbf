from typing import Optional
from uuid import UUID

from fastapi import BackgroundTasks, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.clinic_access import ClinicAccess
from app.core.email import send_staff_invitation_email, send_staff_welcome_email
from app.core.logger import logger
from app.core.permissions import ROLE_LABELS, can_manage_role, is_valid_role
from app.core.security import get_password_hash
from app.core.utils import generate_temp_password
from app.db.models import ClinicStaff, User
from app.db.models.enums import ClinicRole

# listing order follows the role hierarchy
ROLE_ORDER = {role.value: index for index, role in enumerate(ClinicRole)}


def staff_summary(staff: ClinicStaff, user: User) -> dict:
    return {
        "id": str(staff.id),
        "userId": str(staff.user_id),
        "name": user.name,
        "email": user.email,
        "role": staff.role,
        "roleLabel": ROLE_LABELS.get(staff.role, staff.role),
        "joinedAt": staff.created_at.isoformat(),
        "invitedBy": str(staff.invited_by_id) if staff.invited_by_id else None,
    }


class StaffService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_staff(self, access: ClinicAccess) -> dict:
        stmt = (
            select(ClinicStaff, User)
            .join(User, User.id == ClinicStaff.user_id)
            .where(ClinicStaff.clinic_id == access.clinic_id)
        )
        rows = (await self.session.execute(stmt)).all()
        rows = sorted(rows, key=lambda row: (ROLE_ORDER.get(row[0].role, len(ROLE_ORDER)), row[0].created_at))
        return {
            "staff": [staff_summary(staff, user) for staff, user in rows],
            "currentUserId": str(access.user.id),
            "currentUserRole": access.role,
        }

    async def invite_staff(
        self,
        access: ClinicAccess,
        email: Optional[str],
        role: Optional[str],
        background_tasks: BackgroundTasks,
    ) -> dict:
        if not email or not email.strip() or "@" not in email:
            raise HTTPException(status_code=400, detail="Valid email is required")
        if not role or not is_valid_role(role):
            raise HTTPException(status_code=400, detail="Valid role is required")
        if not can_manage_role(access.role, role):
            label = "owner" if role == ClinicRole.OWNER.value else "admin"
            raise HTTPException(status_code=403, detail=f"Only owners can assign the {label} role")

        normalized_email = email.strip().lower()
        stmt = (
            select(ClinicStaff)
            .join(User, User.id == ClinicStaff.user_id)
            .where(ClinicStaff.clinic_id == access.clinic_id, User.email == normalized_email)
        )
        if (await self.session.execute(stmt)).scalars().first():
            raise HTTPException(status_code=400, detail="This user is already a staff member at this clinic")

        inviter_name = access.user.name or access.user.email or "A clinic administrator"

        user = (await self.session.execute(select(User).where(User.email == normalized_email))).scalars().first()
        temp_password = None
        if not user:
            temp_password = generate_temp_password()
            user = User(
                email=normalized_email,
                name=normalized_email.split("@")[0],
                password_hash=get_password_hash(temp_password),
            )
            self.session.add(user)
            await self.session.flush()

        staff = ClinicStaff(
            clinic_id=access.clinic_id,
            user_id=user.id,
            role=role,
            invited_by_id=access.user.id,
        )
        self.session.add(staff)
        await self.session.commit()
        await self.session.refresh(staff)
        await self.session.refresh(user)

        logger.info(f"User {user.id} added to clinic {access.clinic_id} as {role}")

        clinic_name = access.clinic.name
        if temp_password:
            background_tasks.add_task(
                send_staff_welcome_email, normalized_email, clinic_name, inviter_name, role, temp_password
            )
            message = "Staff member invited. A welcome email with login credentials has been sent."
        else:
            background_tasks.add_task(send_staff_invitation_email, normalized_email, clinic_name, inviter_name, role)
            message = "Staff member added. An invitation email has been sent."

        return {
            "staff": staff_summary(staff, user),
            "isNewUser": temp_password is not None,
            "message": message,
        }

    async def get_clinic_member(self, access: ClinicAccess, staff_id: UUID) -> ClinicStaff:
        staff = await self.session.get(ClinicStaff, staff_id)
        if not staff:
            raise HTTPException(status_code=404, detail="Staff member not found")
        if staff.clinic_id != access.clinic_id:
            raise HTTPException(status_code=404, detail="Staff member not found in this clinic")
        return staff

    async def update_role(self, access: ClinicAccess, staff_id: UUID, role: Optional[str]) -> dict:
        if not role or not is_valid_role(role):
            raise HTTPException(status_code=400, detail="Valid role is required")
        staff = await self.get_clinic_member(access, staff_id)
        if staff.user_id == access.user.id:
            raise HTTPException(status_code=403, detail="You cannot change your own role")
        for guarded in (ClinicRole.OWNER.value, ClinicRole.ADMIN.value):
            if guarded in (staff.role, role) and not can_manage_role(access.role, guarded):
                raise HTTPException(status_code=403, detail=f"Only owners can change {guarded.lower()} roles")

        staff.role = role
        self.session.add(staff)
        await self.session.commit()
        await self.session.refresh(staff)
        user = await self.session.get(User, staff.user_id)
        return {"staff": staff_summary(staff, user), "message": "Staff role updated successfully"}

    async def remove_staff(self, access: ClinicAccess, staff_id: UUID) -> dict:
        staff = await self.get_clinic_member(access, staff_id)
        if staff.user_id == access.user.id:
            raise HTTPException(status_code=403, detail="You cannot remove yourself from the clinic")
        if not can_manage_role(access.role, staff.role):
            raise HTTPException(status_code=403, detail="Only owners can remove owners or admins")

        user = await self.session.get(User, staff.user_id)
        display_name = (user.name or user.email) if user else "Staff member"
        await self.session.delete(staff)
        await self.session.commit()
        return {"message": f"{display_name} has been removed from the clinic"}
