"""
Clinic role to permission matrix.

Permissions are flat strings. A scoped permission such as ``lab:view`` is
also granted by its base permission (``lab``).
"""
from typing import Dict, List

from app.db.models.enums import ClinicRole

ROLE_PERMISSIONS: Dict[str, List[str]] = {
    ClinicRole.OWNER: ["*"],
    ClinicRole.ADMIN: [
        "dashboard",
        "reception",
        "patients",
        "appointments",
        "doctors",
        "schedules",
        "leaves",
        "billing",
        "services",
        "lab",
        "pharmacy",
        "ipd",
        "reports",
        "staff",
        "settings",
        "page-builder",
        "check-in",
        "consultations",
        "prescriptions",
    ],
    ClinicRole.DOCTOR: [
        "dashboard",
        "patients",
        "consultations",
        "prescriptions",
        "lab:view",
        "lab:order",
        "schedules:own",
        "leaves:own",
        "check-in:own",
    ],
    ClinicRole.RECEPTIONIST: [
        "dashboard",
        "reception",
        "patients",
        "appointments",
        "check-in",
    ],
    ClinicRole.BILLING: [
        "dashboard",
        "billing",
        "invoices",
        "services",
        "reports:financial",
    ],
    ClinicRole.LAB: ["dashboard", "lab", "patients:view"],
    ClinicRole.PHARMACY: ["dashboard", "pharmacy", "patients:view"],
    ClinicRole.NURSE: [
        "dashboard",
        "patients:vitals",
        "reception",
        "appointments:view",
        "check-in",
    ],
}

PERMISSION_GROUPS: Dict[str, List[str]] = {
    "clinical": ["consultations", "prescriptions", "patients", "lab", "ipd"],
    "administrative": ["reception", "appointments", "schedules", "leaves", "check-in", "doctors"],
    "financial": ["billing", "invoices", "services", "reports"],
    "pharmacy": ["pharmacy"],
    "settings": ["staff", "settings", "page-builder"],
}

PERMISSION_LABELS: Dict[str, str] = {
    "dashboard": "Dashboard",
    "reception": "Reception",
    "patients": "Patients",
    "patients:view": "View Patients",
    "patients:vitals": "Record Vitals",
    "appointments": "Appointments",
    "appointments:view": "View Appointments",
    "doctors": "Manage Doctors",
    "schedules": "Schedules",
    "schedules:own": "Own Schedule",
    "leaves": "Leaves",
    "leaves:own": "Own Leaves",
    "billing": "Billing",
    "invoices": "Invoices",
    "services": "Services",
    "lab": "Laboratory",
    "lab:view": "View Lab Results",
    "lab:order": "Order Lab Tests",
    "pharmacy": "Pharmacy",
    "ipd": "IPD Management",
    "reports": "Reports",
    "reports:financial": "Financial Reports",
    "staff": "Staff Management",
    "settings": "Settings",
    "page-builder": "Page Builder",
    "check-in": "Doctor Check-in",
    "check-in:own": "Own Check-in",
    "consultations": "Consultations",
    "prescriptions": "Prescriptions",
}

ROLE_LABELS: Dict[str, str] = {
    ClinicRole.OWNER: "Owner",
    ClinicRole.ADMIN: "Administrator",
    ClinicRole.DOCTOR: "Doctor",
    ClinicRole.RECEPTIONIST: "Receptionist",
    ClinicRole.BILLING: "Billing Staff",
    ClinicRole.LAB: "Lab Technician",
    ClinicRole.PHARMACY: "Pharmacy Staff",
    ClinicRole.NURSE: "Nurse",
}

ROLE_DESCRIPTIONS: Dict[str, str] = {
    ClinicRole.OWNER: "Full access to all clinic features including deletion",
    ClinicRole.ADMIN: "Full access except clinic deletion; can manage staff",
    ClinicRole.DOCTOR: "Clinical access: consultations, prescriptions, lab orders",
    ClinicRole.RECEPTIONIST: "Front desk: reception, appointments, patient registration",
    ClinicRole.BILLING: "Financial: invoices, payments, billing reports",
    ClinicRole.LAB: "Laboratory: manage lab orders and results",
    ClinicRole.PHARMACY: "Pharmacy: POS, inventory, suppliers",
    ClinicRole.NURSE: "Nursing: vitals, basic clinical notes, reception support",
}

PRIVILEGED_ROLES = (ClinicRole.OWNER, ClinicRole.ADMIN)


def has_permission(role: str, permission: str) -> bool:
    permissions = ROLE_PERMISSIONS.get(role)
    if not permissions:
        return False
    if "*" in permissions:
        return True
    if permission in permissions:
        return True
    # "lab" grants "lab:view"
    base = permission.split(":")[0]
    if base != permission and base in permissions:
        return True
    return False


def get_role_permissions(role: str) -> List[str]:
    if role == ClinicRole.OWNER:
        merged: List[str] = []
        for permissions in ROLE_PERMISSIONS.values():
            for permission in permissions:
                if permission != "*" and permission not in merged:
                    merged.append(permission)
        return merged
    return list(ROLE_PERMISSIONS.get(role, []))


def is_valid_role(role: str) -> bool:
    return role in ROLE_PERMISSIONS


def can_manage_role(actor_role: str, target_role: str) -> bool:
    """Only owners may grant, change or revoke the owner and admin roles."""
    if target_role in PRIVILEGED_ROLES:
        return actor_role == ClinicRole.OWNER
    return True
