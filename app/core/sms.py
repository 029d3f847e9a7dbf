import re
import secrets
from dataclasses import dataclass
from typing import Optional

import httpx

from app.core.config import settings
from app.core.logger import logger

NEPAL_PHONE_REGEX = re.compile(r"^9[678]\d{8}$")
SMS_TIMEOUT_SECONDS = 10

OTP_PURPOSE_TEXT = {
    "register": "account registration",
    "login": "login verification",
    "reset": "password reset",
}


@dataclass
class SmsResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


def normalize_phone(phone: str) -> Optional[str]:
    """Reduce a Nepal mobile number to its 10 digit local form."""
    digits = re.sub(r"\D", "", phone or "")
    if digits.startswith("977") and len(digits) == 13:
        return digits[3:]
    if len(digits) == 10 and digits.startswith("9"):
        return digits
    return None


def is_valid_nepal_phone(phone: str) -> bool:
    return bool(NEPAL_PHONE_REGEX.match(phone))


def mask_phone(phone: str) -> str:
    return f"{phone[:3]}****{phone[-3:]}"


def generate_otp() -> str:
    return str(100000 + secrets.randbelow(900000))


async def send_sms(phone: str, message: str) -> SmsResult:
    if not settings.AAKASH_SMS_TOKEN:
        logger.error("AAKASH_SMS_TOKEN is not configured")
        return SmsResult(success=False, error="SMS service not configured")

    normalized = normalize_phone(phone)
    if not normalized:
        return SmsResult(success=False, error="Invalid phone number format")

    payload = {
        "auth_token": settings.AAKASH_SMS_TOKEN,
        "to": normalized,
        "text": message,
    }
    try:
        async with httpx.AsyncClient(timeout=SMS_TIMEOUT_SECONDS) as client:
            response = await client.post(settings.AAKASH_SMS_URL, json=payload)
        data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"SMS send failed for {mask_phone(normalized)}: {e}")
        return SmsResult(success=False, error="Network error sending SMS")

    if data.get("error"):
        logger.error(f"SMS gateway error: {data.get('message')}")
        return SmsResult(success=False, error=data.get("message") or "Failed to send SMS")

    result = data.get("data") or {}
    valid = result.get("valid") or []
    if valid:
        return SmsResult(success=True, message_id=str(valid[0].get("id")))
    if result.get("invalid"):
        return SmsResult(success=False, error="Invalid phone number")

    # queued without per-number detail
    return SmsResult(success=True)


async def send_otp_sms(phone: str, otp: str, purpose: str) -> SmsResult:
    purpose_text = OTP_PURPOSE_TEXT.get(purpose, "verification")
    message = (
        f"Your DoctorSewa {purpose_text} code is: {otp}. "
        "Valid for 5 minutes. Do not share this code."
    )
    return await send_sms(phone, message)
