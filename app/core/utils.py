import math
import re
import secrets
import string
from typing import Optional

BOOKING_PHONE_REGEX = re.compile(r"^(98|97)\d{8}$")
EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
BLOOD_GROUPS = ["A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-"]
GENDERS = ["male", "female", "other"]

INVALID_PHONE_MESSAGE = "Invalid phone number format. Must be 10 digits starting with 98 or 97."


def clean_phone(phone: Optional[str]) -> str:
    return re.sub(r"\s", "", phone or "")


def is_valid_booking_phone(phone: str) -> bool:
    return bool(BOOKING_PHONE_REGEX.match(phone))


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_REGEX.match(email))


def generate_temp_password() -> str:
    # 8 random bytes as hex
    return secrets.token_hex(8)


def generate_slug(name: str, max_length: int = 40) -> str:
    slug = name.lower()
    # Remove special characters
    slug = re.sub(r'[^a-z0-9\s-]', '', slug)
    # Replace spaces with hyphens
    slug = re.sub(r'\s+', '-', slug)
    slug = re.sub(r'-+', '-', slug).strip('-')
    # Add random suffix to ensure uniqueness
    suffix = ''.join(secrets.choice(string.ascii_lowercase + string.digits) for i in range(4))
    base = slug[: max_length - len(suffix) - 1].strip('-') or "clinic"
    return f"{base}-{suffix}"


def pagination(total: int, page: int, limit: int) -> dict:
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "totalPages": math.ceil(total / limit) if limit else 0,
    }


def next_sequence(last_number: Optional[str]) -> int:
    """Next counter for numbers shaped like PREFIX-...-NNNN."""
    if not last_number:
        return 1
    try:
        return int(last_number.split("-")[-1]) + 1
    except ValueError:
        return 1


def format_professional_name(full_name: str, professional_type: str) -> str:
    """Pharmacists are listed by name; everyone else gets a single Dr. prefix."""
    if professional_type == "PHARMACIST":
        return full_name
    stripped = re.sub(r"^Dr\.?\s*", "", full_name, flags=re.IGNORECASE).strip()
    return f"Dr. {stripped}"
