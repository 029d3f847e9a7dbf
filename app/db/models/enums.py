from enum import Enum


class UserRole(str, Enum):
    USER = "USER"
    PROFESSIONAL = "PROFESSIONAL"
    ADMIN = "ADMIN"


class ProfessionalType(str, Enum):
    DOCTOR = "DOCTOR"
    DENTIST = "DENTIST"
    PHARMACIST = "PHARMACIST"


class ClinicType(str, Enum):
    CLINIC = "CLINIC"
    POLYCLINIC = "POLYCLINIC"
    HOSPITAL = "HOSPITAL"
    PHARMACY = "PHARMACY"


class ClinicRole(str, Enum):
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    DOCTOR = "DOCTOR"
    RECEPTIONIST = "RECEPTIONIST"
    BILLING = "BILLING"
    LAB = "LAB"
    PHARMACY = "PHARMACY"
    NURSE = "NURSE"


class OtpPurpose(str, Enum):
    REGISTER = "REGISTER"
    FORGOT_PASSWORD = "FORGOT_PASSWORD"
    VERIFY_PHONE = "VERIFY_PHONE"


class AppointmentStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    CHECKED_IN = "CHECKED_IN"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    NO_SHOW = "NO_SHOW"
    CANCELLED = "CANCELLED"


ACTIVE_APPOINTMENT_STATUSES = [
    AppointmentStatus.SCHEDULED.value,
    AppointmentStatus.CHECKED_IN.value,
    AppointmentStatus.IN_PROGRESS.value,
]


class AppointmentType(str, Enum):
    NEW = "NEW"
    FOLLOW_UP = "FOLLOW_UP"


class AppointmentSource(str, Enum):
    ONLINE = "ONLINE"
    WALK_IN = "WALK_IN"
    PHONE = "PHONE"


class FamilyRelation(str, Enum):
    SPOUSE = "SPOUSE"
    CHILD = "CHILD"
    PARENT = "PARENT"
    SIBLING = "SIBLING"
    GRANDPARENT = "GRANDPARENT"
    GRANDCHILD = "GRANDCHILD"
    OTHER = "OTHER"


class PrescriptionStatus(str, Enum):
    DRAFT = "DRAFT"
    ISSUED = "ISSUED"
    DISPENSED = "DISPENSED"
    CANCELLED = "CANCELLED"


class LabOrderStatus(str, Enum):
    ORDERED = "ORDERED"
    SAMPLE_COLLECTED = "SAMPLE_COLLECTED"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class LabPriority(str, Enum):
    ROUTINE = "ROUTINE"
    URGENT = "URGENT"
    STAT = "STAT"


class ResultFlag(str, Enum):
    NORMAL = "NORMAL"
    LOW = "LOW"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class WardType(str, Enum):
    GENERAL = "GENERAL"
    SEMI_PRIVATE = "SEMI_PRIVATE"
    PRIVATE = "PRIVATE"
    ICU = "ICU"
    NICU = "NICU"
    EMERGENCY = "EMERGENCY"


class BedStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    OCCUPIED = "OCCUPIED"
    RESERVED = "RESERVED"
    MAINTENANCE = "MAINTENANCE"


class AdmissionStatus(str, Enum):
    ADMITTED = "ADMITTED"
    DISCHARGED = "DISCHARGED"
    TRANSFERRED = "TRANSFERRED"


class PaymentMode(str, Enum):
    CASH = "CASH"
    CARD = "CARD"
    ESEWA = "ESEWA"
    KHALTI = "KHALTI"
    BANK_TRANSFER = "BANK_TRANSFER"
    CREDIT = "CREDIT"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    PAID = "PAID"
    REFUNDED = "REFUNDED"
    CANCELLED = "CANCELLED"


class CreditTransactionType(str, Enum):
    SALE = "SALE"
    PAYMENT = "PAYMENT"


class VerificationStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class AuditAction(str, Enum):
    CLAIM_SUBMITTED = "CLAIM_SUBMITTED"
    CLAIM_APPROVED = "CLAIM_APPROVED"
    CLAIM_REJECTED = "CLAIM_REJECTED"
    CLINIC_APPROVED = "CLINIC_APPROVED"
    CLINIC_REJECTED = "CLINIC_REJECTED"
    CLINIC_CHANGES_REQUESTED = "CLINIC_CHANGES_REQUESTED"
