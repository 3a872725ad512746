import asyncio

import pytest

from app.email_service import EmailNotConfigured, send_email
from app.email_templates import booking_confirmed_template, booking_rejected_template
from app.errors import ValidationError
from app.models import Booking
from app.services import notification_service
from app.services.notification_service import format_appointment, send_notification
from app.utils.sanitization import clean_dict, clean_text


def confirmed_booking() -> Booking:
    return Booking(
        id="b-1",
        confirmation_number="EH123456ABC",
        first_name="Maya",
        last_name="Patel",
        email="maya@ekahhealth.com",
        service_type="Holistic Reset",
        confirmed_date="2026-11-02",
        confirmed_time="10:00",
        meet_link="https://meet.jit.si/EkahHealth-b-1",
    )


def test_format_appointment():
    assert format_appointment("2026-11-02", "10:00") == "2026-11-02 at 10:00"
    assert format_appointment("2026-11-02", None) == "2026-11-02"
    assert format_appointment(None, None) == "a time to be confirmed"


def test_send_email_requires_api_key():
    with pytest.raises(EmailNotConfigured):
        asyncio.run(send_email("maya@ekahhealth.com", "Hi", "<mjml></mjml>"))


def test_notification_failure_is_reported_not_raised():
    async def broken(**kwargs):
        raise RuntimeError("provider down")

    result = asyncio.run(send_notification("booking_confirmed", "maya@ekahhealth.com", broken, to="maya@ekahhealth.com"))

    assert result == {"type": "booking_confirmed", "email_sent": False, "email_error": "provider down"}


def test_notification_without_recipient_is_skipped():
    async def never(**kwargs):
        raise AssertionError("should not send")

    result = asyncio.run(send_notification("booking_rejected", None, never))

    assert result["email_sent"] is False
    assert result["email_error"] == "No recipient"


def test_confirmation_email_carries_meet_link(monkeypatch):
    sent = []

    async def fake_send(**kwargs):
        sent.append(kwargs)
        return {"id": "email-1"}

    monkeypatch.setattr(notification_service, "send_booking_confirmation", fake_send)

    result = asyncio.run(notification_service.notify_booking_confirmed(confirmed_booking()))

    assert result["email_sent"] is True
    assert sent[0]["meet_link"] == "https://meet.jit.si/EkahHealth-b-1"
    assert sent[0]["appointment"] == "2026-11-02 at 10:00"
    assert sent[0]["patient_name"] == "Maya Patel"


def test_templates_escape_user_text():
    mjml = booking_rejected_template("<b>Maya</b>", "2026-11-02 at 10:00", "Fully <booked>")

    assert "<b>Maya</b>" not in mjml
    assert "&lt;b&gt;Maya&lt;/b&gt;" in mjml
    assert "Fully &lt;booked&gt;" in mjml


def test_confirmed_template_links_meeting():
    mjml = booking_confirmed_template("Maya", "2026-11-02 at 10:00", None, "EH1", "https://meet.test/b-1")

    assert 'href="https://meet.test/b-1"' in mjml
    assert "General Consultation" in mjml


def test_clean_text():
    assert clean_text("  hi\x00 there \n", 20) == "hi there"
    with pytest.raises(ValidationError):
        clean_text(" \t ", 20)
    with pytest.raises(ValidationError):
        clean_text("x" * 21, 20)


def test_clean_dict_strips_control_chars_without_escaping():
    cleaned = clean_dict(
        {"goal": "Sleep & stress <less coffee>\x00", "nested": {"note": "Tom's \"plan\"\x07"}, "tags": ["<i>\x1f", 3], "age": 41}
    )

    assert cleaned == {
        "goal": "Sleep & stress <less coffee>",
        "nested": {"note": "Tom's \"plan\""},
        "tags": ["<i>", 3],
        "age": 41,
    }
