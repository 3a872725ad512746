"""
MJML Email Templates
All email templates using MJML for responsive, cross-client compatibility
"""

from typing import Optional

from .config import FRONTEND_URL
from .utils.sanitization import sanitize_string as esc

# Ekah theme colors - warm orange/teal
THEME = {
    "primary": "#FF6B35",
    "primary_dark": "#E85A2A",
    "accent": "#4ECDC4",
    "background": "#faf7f5",
    "text_primary": "#1f2933",
    "text_secondary": "#3e4c59",
    "text_muted": "#7b8794",
    "border": "#e4e7eb",
    "success": "#27ae60",
    "danger": "#e74c3c",
}

LOGO_URL = "https://ekah.life/logo.png"
SUPPORT_EMAIL = "hello@ekah.life"


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button
              href="{cta_url}"
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="600"
              border-radius="8px"
              padding="18px 40px"
              font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', 'Helvetica Neue', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="#ffffff" padding="32px 20px">
          <mj-column>
            <mj-image src="{LOGO_URL}" alt="EkahHealth" width="140px" href="https://ekah.life" padding="0" />
          </mj-column>
        </mj-section>

        <mj-section background-color="#ffffff" padding="0 40px 48px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              {title}
            </mj-text>

            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="0">
              Questions? Write to <a href="mailto:{SUPPORT_EMAIL}" style="color: {THEME['text_muted']};">{SUPPORT_EMAIL}</a>
            </mj-text>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="12px 0 0 0">
              EkahHealth · Your Health, Our Priority
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _detail_rows(rows: list[tuple[str, Optional[str]]]) -> str:
    lines = "<br/>".join(f"<strong>{label}:</strong> {esc(value)}" for label, value in rows if value)
    return f"""
    <mj-text padding="16px" container-background-color="{THEME['background']}">
      {lines}
    </mj-text>
    """


def email_verification_link_template(user_name: str, link: str) -> str:
    content = f"""
    <mj-text>Hi {esc(user_name)},</mj-text>
    <mj-text>
      Please confirm your email address to finish setting up your EkahHealth account.
    </mj-text>
    """
    return get_base_template(
        title="Verify your email address",
        preview_text="Confirm your email to get started",
        content_sections=content,
        cta_url=link,
        cta_label="Verify Email",
    )


def password_reset_template(reset_link: str) -> str:
    content = f"""
    <mj-text>
      We received a request to reset your password. The link below is valid for one hour.
    </mj-text>
    <mj-text color="{THEME['text_muted']}">
      If you didn't ask for this, you can safely ignore this email.
    </mj-text>
    """
    return get_base_template(
        title="Reset your password",
        preview_text="Reset your EkahHealth password",
        content_sections=content,
        cta_url=reset_link,
        cta_label="Reset Password",
    )


def admin_booking_received_template(
    patient_name: str,
    patient_email: str,
    patient_phone: Optional[str],
    service_type: Optional[str],
    appointment: str,
    confirmation_number: str,
) -> str:
    content = f"""
    <mj-text>A new appointment request is waiting for your confirmation.</mj-text>
    {_detail_rows([
        ("Patient", patient_name),
        ("Email", patient_email),
        ("Phone", patient_phone),
        ("Service", service_type or "General Consultation"),
        ("Requested time", appointment),
        ("Confirmation #", confirmation_number),
    ])}
    """
    return get_base_template(
        title="New booking awaiting confirmation",
        preview_text=f"{patient_name} requested {appointment}",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/admin/bookings",
        cta_label="Review Booking",
    )


def booking_confirmed_template(
    patient_name: str,
    appointment: str,
    service_type: Optional[str],
    confirmation_number: str,
    meet_link: str,
) -> str:
    content = f"""
    <mj-text>Hello {esc(patient_name)},</mj-text>
    <mj-text>
      Your video consultation has been confirmed. Join the meeting from your browser
      or the Jitsi Meet app; no account is needed.
    </mj-text>
    {_detail_rows([
        ("Booking", confirmation_number),
        ("Date &amp; time", appointment),
        ("Service", service_type or "General Consultation"),
        ("Meeting link", meet_link),
    ])}
    <mj-text color="{THEME['text_muted']}">
      Please join five minutes early to test your camera and microphone.
    </mj-text>
    """
    return get_base_template(
        title="Your appointment is confirmed",
        preview_text=f"Video meeting ready for {appointment}",
        content_sections=content,
        cta_url=meet_link,
        cta_label="Join Video Meeting",
    )


def booking_rejected_template(patient_name: str, appointment: str, reason: str) -> str:
    content = f"""
    <mj-text>Hello {esc(patient_name)},</mj-text>
    <mj-text>
      Unfortunately we could not confirm your appointment request for {esc(appointment)}.
    </mj-text>
    {_detail_rows([("Reason", reason)])}
    <mj-text>You are welcome to choose another time that suits you.</mj-text>
    """
    return get_base_template(
        title="We couldn't confirm your booking",
        preview_text="Your appointment request needs a new time",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/booking",
        cta_label="Choose Another Time",
    )


def booking_rescheduled_template(
    patient_name: str, old_appointment: str, new_appointment: str, reason: Optional[str], meet_link: Optional[str]
) -> str:
    content = f"""
    <mj-text>Hello {esc(patient_name)},</mj-text>
    <mj-text>Your appointment has been moved.</mj-text>
    {_detail_rows([
        ("Previous time", old_appointment),
        ("New time", new_appointment),
        ("Reason", reason),
        ("Meeting link", meet_link),
    ])}
    """
    return get_base_template(
        title="Your appointment was rescheduled",
        preview_text=f"New time: {new_appointment}",
        content_sections=content,
    )


def booking_cancelled_template(patient_name: str, appointment: str, reason: Optional[str]) -> str:
    content = f"""
    <mj-text>Hello {esc(patient_name)},</mj-text>
    <mj-text>Your appointment for {esc(appointment)} has been cancelled.</mj-text>
    {_detail_rows([("Reason", reason)])}
    """
    return get_base_template(
        title="Appointment cancelled",
        preview_text="Your appointment has been cancelled",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/booking",
        cta_label="Book Again",
    )
