"""
Transactional email over the Resend HTTP API.

Senders never raise: a failed delivery is logged and reported through the
returned ``EmailResult`` so that callers can schedule them as background
tasks after the main write has committed.
"""
from dataclasses import dataclass
from html import escape
from typing import Optional

import httpx

from app.core.config import settings
from app.core.logger import logger
from app.core.permissions import ROLE_LABELS

RESEND_API_URL = "https://api.resend.com/emails"
EMAIL_TIMEOUT_SECONDS = 10


@dataclass
class EmailResult:
    success: bool
    error: Optional[str] = None


def _layout(heading: str, body: str) -> str:
    return (
        "<div style=\"font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;\">"
        f"<h1 style=\"font-size: 24px;\">{escape(heading)}</h1>"
        f"{body}"
        "<p style=\"color: #666; font-size: 12px;\">DoctorSewa</p>"
        "</div>"
    )


def _p(text: str) -> str:
    return f"<p>{text}</p>"


async def send_email(to: str, subject: str, html: str) -> EmailResult:
    if not settings.RESEND_API_KEY:
        logger.info(f"[Email] Skipping send, no RESEND_API_KEY configured | To: {to} | Subject: {subject}")
        return EmailResult(success=True)

    payload = {
        "from": settings.EMAIL_FROM,
        "to": [to],
        "subject": subject,
        "html": html,
    }
    headers = {"Authorization": f"Bearer {settings.RESEND_API_KEY}"}
    try:
        async with httpx.AsyncClient(timeout=EMAIL_TIMEOUT_SECONDS) as client:
            response = await client.post(RESEND_API_URL, json=payload, headers=headers)
            response.raise_for_status()
    except httpx.HTTPError as e:
        logger.error(f"[Email] Send to {to} failed: {e}")
        return EmailResult(success=False, error=str(e))
    return EmailResult(success=True)


async def send_clinic_registration_submitted_email(to: str, name: str, clinic_type: str, address: str, phone: str):
    body = (
        _p("Hello,")
        + _p(f"Thank you for registering \"{escape(name)}\" on DoctorSewa.")
        + _p("Your registration is now pending verification by our team. "
             "We will review your submission and get back to you within 2-3 business days.")
        + "<ul>"
        + f"<li>Name: {escape(name)}</li>"
        + f"<li>Type: {escape(clinic_type)}</li>"
        + f"<li>Address: {escape(address)}</li>"
        + f"<li>Phone: {escape(phone)}</li>"
        + "</ul>"
    )
    return await send_email(to, "Your Clinic Registration Has Been Submitted", _layout("Registration Submitted", body))


async def send_verification_submitted_email(to: str, name: str, professional_name: str):
    body = (
        _p(f"Hello {escape(name)},")
        + _p(f"Thank you for submitting the verification request for {escape(professional_name)} on DoctorSewa.")
        + _p("Our team will review your documents and get back to you within 2-3 business days.")
    )
    return await send_email(to, "Your Verification Request Has Been Submitted", _layout("Request Submitted", body))


async def send_verification_approved_email(to: str, name: str, professional_id: str):
    profile_url = f"{settings.APP_URL}/professionals/{professional_id}"
    body = (
        _p(f"Congratulations {escape(name)}!")
        + _p("Your profile verification request has been approved.")
        + _p(f"<a href=\"{profile_url}\">View Your Profile</a>")
    )
    return await send_email(to, "Congratulations! Your Profile Has Been Verified", _layout("Verification Approved", body))


async def send_verification_rejected_email(to: str, name: str, reason: str):
    body = (
        _p(f"Hello {escape(name)},")
        + _p("Unfortunately, we were unable to approve your verification request at this time.")
        + _p(f"<strong>Reason:</strong> {escape(reason)}")
        + _p("You can submit a new verification request with the correct documents.")
    )
    return await send_email(to, "Update on Your Verification Request", _layout("Verification Request Update", body))


async def send_clinic_approved_email(to: str, name: str, slug: str):
    body = (
        _p(f"\"{escape(name)}\" has been verified and is now visible to patients on DoctorSewa.")
        + _p(f"<a href=\"{settings.APP_URL}/clinic/{slug}\">View Your Clinic</a>")
    )
    return await send_email(to, "Congratulations! Your Clinic Has Been Verified", _layout("Clinic Verified", body))


async def send_clinic_rejected_email(to: str, name: str, reason: str):
    body = (
        _p(f"We were unable to approve the registration of \"{escape(name)}\".")
        + _p(f"<strong>Reason:</strong> {escape(reason)}")
        + _p("You are welcome to register again with updated details.")
    )
    return await send_email(to, "Update on Your Clinic Registration", _layout("Registration Update", body))


async def send_clinic_changes_requested_email(to: str, name: str, reason: str):
    body = (
        _p(f"Our team reviewed \"{escape(name)}\" and needs a few changes before it can be verified.")
        + _p(f"<strong>Requested changes:</strong> {escape(reason)}")
    )
    return await send_email(
        to, "Action Required: Changes Requested for Your Clinic", _layout("Changes Requested", body)
    )


async def send_staff_invitation_email(to: str, clinic_name: str, inviter_name: str, role: str):
    role_label = ROLE_LABELS.get(role, role)
    body = (
        _p("Hello,")
        + _p(f"{escape(inviter_name)} has added you to \"{escape(clinic_name)}\" on DoctorSewa.")
        + _p(f"You have been assigned the role of <strong>{escape(role_label)}</strong>.")
        + _p(f"<a href=\"{settings.APP_URL}/clinic/dashboard\">Go to Dashboard</a>")
    )
    return await send_email(to, f"You've been added to {clinic_name} on DoctorSewa", _layout("Welcome to the Team!", body))


async def send_staff_welcome_email(to: str, clinic_name: str, inviter_name: str, role: str, temp_password: str):
    role_label = ROLE_LABELS.get(role, role)
    body = (
        _p("Hello,")
        + _p(f"{escape(inviter_name)} has created a DoctorSewa account for you at \"{escape(clinic_name)}\".")
        + _p(f"Role: <strong>{escape(role_label)}</strong>")
        + _p(f"Email: {escape(to)}<br>Temporary password: <code>{escape(temp_password)}</code>")
        + _p("Please log in and change your password right away.")
    )
    return await send_email(to, f"Welcome to {clinic_name} on DoctorSewa", _layout("Your Account Is Ready", body))
