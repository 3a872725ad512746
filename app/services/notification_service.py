"""
Booking Notification Service
Dispatches booking lifecycle emails. Always called after the store transaction
has committed, so nothing here may raise back into a state transition.
"""

import logging

from ..email_service import (
    send_admin_booking_notification,
    send_booking_confirmation,
    send_booking_rejection,
    send_cancellation_notification,
    send_reschedule_notification,
)
from ..models import Booking

logger = logging.getLogger(__name__)


def format_appointment(date: str | None, time: str | None) -> str:
    if date and time:
        return f"{date} at {time}"
    return date or "a time to be confirmed"


async def send_notification(notification_type: str, recipient: str | None, email_func, **email_kwargs) -> dict:
    """
    Send one notification email, logging instead of raising on failure

    Args:
        notification_type: Type of notification (for logging)
        recipient: Email address the notification is for
        email_func: Email function to call
        email_kwargs: Kwargs for email function

    Returns:
        Dict with email_sent status and email_error
    """
    result = {"type": notification_type, "email_sent": False, "email_error": None}

    if not recipient:
        logger.debug(f"⚠️ No email address for {notification_type} notification")
        result["email_error"] = "No recipient"
        return result

    try:
        logger.info(f"📧 Sending {notification_type} email to {recipient}")
        await email_func(**email_kwargs)
        result["email_sent"] = True
        logger.info(f"✅ {notification_type} email sent successfully to {recipient}")
    except Exception as e:
        result["email_error"] = str(e)
        logger.error(f"❌ Failed to send {notification_type} email to {recipient}: {e}")

    return result


async def notify_booking_received(booking: Booking) -> dict:
    return await send_notification(
        "booking_received",
        "admin",
        send_admin_booking_notification,
        patient_name=booking.patient_name,
        patient_email=booking.email,
        patient_phone=booking.phone,
        service_type=booking.service_type,
        appointment=format_appointment(booking.preferred_date, booking.preferred_time),
        confirmation_number=booking.confirmation_number,
    )


async def notify_booking_confirmed(booking: Booking) -> dict:
    return await send_notification(
        "booking_confirmed",
        booking.email,
        send_booking_confirmation,
        to=booking.email,
        patient_name=booking.patient_name,
        appointment=format_appointment(booking.confirmed_date, booking.confirmed_time),
        service_type=booking.service_type,
        confirmation_number=booking.confirmation_number,
        meet_link=booking.meet_link,
    )


async def notify_booking_rejected(booking: Booking) -> dict:
    return await send_notification(
        "booking_rejected",
        booking.email,
        send_booking_rejection,
        to=booking.email,
        patient_name=booking.patient_name,
        appointment=format_appointment(booking.preferred_date, booking.preferred_time),
        reason=booking.rejection_reason,
    )


async def notify_booking_rescheduled(booking: Booking, old_appointment: str) -> dict:
    return await send_notification(
        "booking_rescheduled",
        booking.email,
        send_reschedule_notification,
        to=booking.email,
        patient_name=booking.patient_name,
        old_appointment=old_appointment,
        new_appointment=format_appointment(booking.confirmed_date, booking.confirmed_time),
        reason=booking.reschedule_reason,
        meet_link=booking.meet_link,
    )


async def notify_booking_cancelled(booking: Booking) -> dict:
    return await send_notification(
        "booking_cancelled",
        booking.email,
        send_cancellation_notification,
        to=booking.email,
        patient_name=booking.patient_name,
        appointment=format_appointment(booking.confirmed_date, booking.confirmed_time),
        reason=booking.cancellation_reason,
    )
