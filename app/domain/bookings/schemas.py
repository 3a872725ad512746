"""Booking domain schemas - Pydantic models for validation"""

import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, field_validator

from ...models import Booking, BookingStatus, SlotStatus, TimeSlot

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_PATTERN = re.compile(r"^\d{2}:\d{2}$")


def _check_date(v: Optional[str]) -> Optional[str]:
    if v is not None and not DATE_PATTERN.match(v):
        raise ValueError("Date must be formatted YYYY-MM-DD")
    return v


def _check_time(v: Optional[str]) -> Optional[str]:
    if v is not None and not TIME_PATTERN.match(v):
        raise ValueError("Time must be formatted HH:MM")
    return v


class SelectedService(BaseModel):
    """Snapshot of a catalog entry chosen while booking"""

    id: Optional[str] = None
    title: str
    category: Optional[str] = None
    duration: Optional[str] = None
    description: Optional[str] = None


class BookingCreate(BaseModel):
    """Schema for an appointment request"""

    firstName: str
    lastName: str
    email: EmailStr
    phone: Optional[str] = None
    serviceType: Optional[str] = None
    sessionType: Optional[str] = None  # video, chat, phone
    selectedServices: list[SelectedService] = []
    preferredDate: Optional[str] = None
    preferredTime: Optional[str] = None
    medicalHistory: Optional[str] = None
    currentConcerns: Optional[str] = None
    specialRequests: Optional[str] = None

    @field_validator("firstName", "lastName")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Name is required")
        return v

    @field_validator("preferredDate")
    @classmethod
    def validate_date(cls, v):
        return _check_date(v)

    @field_validator("preferredTime")
    @classmethod
    def validate_time(cls, v):
        return _check_time(v)


class ConfirmBookingRequest(BaseModel):
    notes: Optional[str] = None
    confirmedDate: Optional[str] = None
    confirmedTime: Optional[str] = None

    @field_validator("confirmedDate")
    @classmethod
    def validate_date(cls, v):
        return _check_date(v)

    @field_validator("confirmedTime")
    @classmethod
    def validate_time(cls, v):
        return _check_time(v)


class RejectBookingRequest(BaseModel):
    reason: Optional[str] = None
    notes: Optional[str] = None


class RescheduleRequest(BaseModel):
    newDate: str
    newTime: str
    reason: Optional[str] = None

    @field_validator("newDate")
    @classmethod
    def validate_date(cls, v):
        return _check_date(v)

    @field_validator("newTime")
    @classmethod
    def validate_time(cls, v):
        return _check_time(v)


class CancelBookingRequest(BaseModel):
    reason: Optional[str] = None


class SlotRequest(BaseModel):
    date: str
    time: str
    notes: Optional[str] = None

    @field_validator("date")
    @classmethod
    def validate_date(cls, v):
        return _check_date(v)

    @field_validator("time")
    @classmethod
    def validate_time(cls, v):
        return _check_time(v)


class BookingStatsResponse(BaseModel):
    total: int
    pending: int
    confirmed: int
    completed: int
    cancelled: int


class TimeSlotResponse(BaseModel):
    id: str
    date: str
    time: str
    status: SlotStatus
    bookingId: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_model(cls, slot: TimeSlot) -> "TimeSlotResponse":
        return cls(
            id=slot.id,
            date=slot.date,
            time=slot.time,
            status=SlotStatus(slot.status),
            bookingId=slot.booking_id,
            notes=slot.notes,
        )


class BookingResponse(BaseModel):
    id: str
    userId: Optional[int] = None
    confirmationNumber: str
    firstName: str
    lastName: str
    email: str
    phone: Optional[str] = None
    serviceType: Optional[str] = None
    sessionType: Optional[str] = None
    selectedServices: list[dict]
    preferredDate: Optional[str] = None
    preferredTime: Optional[str] = None
    slotId: Optional[str] = None
    confirmedDate: Optional[str] = None
    confirmedTime: Optional[str] = None
    status: BookingStatus
    rejectionReason: Optional[str] = None
    cancellationReason: Optional[str] = None
    rescheduleReason: Optional[str] = None
    confirmedBy: Optional[str] = None
    adminNotes: Optional[str] = None
    meetLink: Optional[str] = None
    medicalHistory: Optional[str] = None
    currentConcerns: Optional[str] = None
    specialRequests: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, booking: Booking) -> "BookingResponse":
        return cls(
            id=booking.id,
            userId=booking.user_id,
            confirmationNumber=booking.confirmation_number,
            firstName=booking.first_name,
            lastName=booking.last_name,
            email=booking.email,
            phone=booking.phone,
            serviceType=booking.service_type,
            sessionType=booking.session_type,
            selectedServices=booking.selected_services or [],
            preferredDate=booking.preferred_date,
            preferredTime=booking.preferred_time,
            slotId=booking.slot_id,
            confirmedDate=booking.confirmed_date,
            confirmedTime=booking.confirmed_time,
            status=BookingStatus(booking.status),
            rejectionReason=booking.rejection_reason,
            cancellationReason=booking.cancellation_reason,
            rescheduleReason=booking.reschedule_reason,
            confirmedBy=booking.confirmed_by,
            adminNotes=booking.admin_notes,
            meetLink=booking.meet_link,
            medicalHistory=booking.medical_history,
            currentConcerns=booking.current_concerns,
            specialRequests=booking.special_requests,
            created_at=booking.created_at,
            updated_at=booking.updated_at,
        )
