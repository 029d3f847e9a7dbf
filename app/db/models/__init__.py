from sqlmodel import SQLModel
from .user import User
from .otp import Otp
from .professional import Professional
from .clinic import Clinic, ClinicDoctor, ClinicStaff
from .patient import Patient, FamilyMember
from .schedule import DoctorSchedule, DoctorLeave
from .appointment import Appointment
from .prescription import Prescription
from .lab import LabTest, LabOrder, LabResult
from .ipd import Ward, Bed, Admission
from .billing import Service, Invoice
from .pharmacy import Supplier, Product, InventoryBatch, CreditAccount, Sale, CreditTransaction
from .review import Review
from .verification import VerificationRequest
from .audit_log import AuditLog

__all__ = [
    "SQLModel",
    "User",
    "Otp",
    "Professional",
    "Clinic",
    "ClinicDoctor",
    "ClinicStaff",
    "Patient",
    "FamilyMember",
    "DoctorSchedule",
    "DoctorLeave",
    "Appointment",
    "Prescription",
    "LabTest",
    "LabOrder",
    "LabResult",
    "Ward",
    "Bed",
    "Admission",
    "Service",
    "Invoice",
    "Supplier",
    "Product",
    "InventoryBatch",
    "CreditAccount",
    "Sale",
    "CreditTransaction",
    "Review",
    "VerificationRequest",
    "AuditLog",
]
