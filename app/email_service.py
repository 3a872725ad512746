"""
Email Service using Resend
Templates are written in MJML (see email_templates) and compiled to HTML before sending
"""

import logging
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from .config import ADMIN_EMAIL, BOOKINGS_FROM_ADDRESS, EMAIL_FROM_ADDRESS, RESEND_API_KEY
from .email_templates import (
    admin_booking_received_template,
    booking_cancelled_template,
    booking_confirmed_template,
    booking_rejected_template,
    booking_rescheduled_template,
    email_verification_link_template,
    password_reset_template,
)

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


class EmailNotConfigured(Exception):
    pass


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    result = mjml_to_html(mjml_content)
    # mjml_to_html returns an object with 'html' and 'errors'
    errors = getattr(result, "errors", None) or (result.get("errors") if isinstance(result, dict) else None)
    if errors:
        logger.warning(f"MJML compilation warnings: {errors}")
    if isinstance(result, dict):
        return result.get("html", "")
    return getattr(result, "html", str(result))


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
    cc: Optional[list[str]] = None,
) -> dict:
    """
    Send an email through Resend

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (will be compiled to HTML)
        from_address: Optional custom from address
        cc: Optional copy recipients

    Returns:
        Send response dict
    """
    if not RESEND_API_KEY:
        logger.error("❌ No email service configured - RESEND_API_KEY missing")
        raise EmailNotConfigured("Email service not configured")

    recipients = [to] if isinstance(to, str) else to
    email_data = {
        "from": from_address or EMAIL_FROM_ADDRESS,
        "to": recipients,
        "subject": subject,
        "html": compile_mjml_to_html(mjml_content),
    }
    if cc:
        email_data["cc"] = cc

    logger.info(f"📧 Sending email via Resend to: {recipients}")
    response = resend.Emails.send(email_data)
    logger.info(f"✅ Email sent successfully via Resend: {response}")
    return response


# ============================================
# Account emails
# ============================================


async def send_email_verification_link(to: str, user_name: str, link: str) -> dict:
    return await send_email(
        to=to,
        subject="Verify your EkahHealth email",
        mjml_content=email_verification_link_template(user_name, link),
    )


async def send_password_reset_email(to: str, reset_link: str) -> dict:
    return await send_email(
        to=to,
        subject="Reset your EkahHealth password",
        mjml_content=password_reset_template(reset_link),
    )


# ============================================
# Booking emails
# ============================================


async def send_admin_booking_notification(
    patient_name: str,
    patient_email: str,
    patient_phone: Optional[str],
    service_type: Optional[str],
    appointment: str,
    confirmation_number: str,
) -> dict:
    return await send_email(
        to=ADMIN_EMAIL,
        subject=f"New Appointment Request: {patient_name} - {appointment}",
        mjml_content=admin_booking_received_template(
            patient_name, patient_email, patient_phone, service_type, appointment, confirmation_number
        ),
        from_address=BOOKINGS_FROM_ADDRESS,
    )


async def send_booking_confirmation(
    to: str,
    patient_name: str,
    appointment: str,
    service_type: Optional[str],
    confirmation_number: str,
    meet_link: str,
) -> dict:
    return await send_email(
        to=to,
        subject=f"Video Meeting Ready - {appointment} | Booking {confirmation_number}",
        mjml_content=booking_confirmed_template(
            patient_name, appointment, service_type, confirmation_number, meet_link
        ),
        cc=[ADMIN_EMAIL],
    )


async def send_booking_rejection(to: str, patient_name: str, appointment: str, reason: str) -> dict:
    return await send_email(
        to=to,
        subject="Update on your EkahHealth appointment request",
        mjml_content=booking_rejected_template(patient_name, appointment, reason),
    )


async def send_reschedule_notification(
    to: str,
    patient_name: str,
    old_appointment: str,
    new_appointment: str,
    reason: Optional[str],
    meet_link: Optional[str],
) -> dict:
    return await send_email(
        to=to,
        subject=f"Appointment rescheduled to {new_appointment}",
        mjml_content=booking_rescheduled_template(
            patient_name, old_appointment, new_appointment, reason, meet_link
        ),
        cc=[ADMIN_EMAIL],
    )


async def send_cancellation_notification(
    to: str, patient_name: str, appointment: str, reason: Optional[str]
) -> dict:
    return await send_email(
        to=to,
        subject="Your EkahHealth appointment was cancelled",
        mjml_content=booking_cancelled_template(patient_name, appointment, reason),
        cc=[ADMIN_EMAIL],
    )
