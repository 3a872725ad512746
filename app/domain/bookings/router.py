"""Booking router - FastAPI endpoints for appointment requests and admin review"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from ...auth import get_current_admin, get_current_user
from ...database import get_db
from ...models import User
from ...realtime import BOOKINGS_TOPIC, event_stream, hub
from ...services.meeting_service import MeetingProvider, get_meeting_provider
from ...services.notification_service import (
    format_appointment,
    notify_booking_cancelled,
    notify_booking_confirmed,
    notify_booking_received,
    notify_booking_rejected,
    notify_booking_rescheduled,
)
from .schemas import (
    BookingCreate,
    BookingResponse,
    BookingStatsResponse,
    CancelBookingRequest,
    ConfirmBookingRequest,
    RejectBookingRequest,
    RescheduleRequest,
    SlotRequest,
    TimeSlotResponse,
)
from .service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["Bookings"])


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db)


# ============================================================================
# CLIENT REQUESTS
# ============================================================================


@router.post("", response_model=BookingResponse, status_code=201)
async def create_booking(
    data: BookingCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Request an appointment; a preferred slot is held until an admin reviews it"""
    booking = service.create_booking(current_user, data)
    background_tasks.add_task(notify_booking_received, booking)
    return BookingResponse.from_model(booking)


@router.get("/mine", response_model=list[BookingResponse])
async def list_my_bookings(
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    return [BookingResponse.from_model(b) for b in service.list_for_user(current_user.id)]


# ============================================================================
# TIME SLOTS
# ============================================================================


@router.get("/slots", response_model=list[TimeSlotResponse])
async def list_slots(date: str = Query(...), service: BookingService = Depends(get_booking_service)):
    """Known slots for a day; missing slots are implicitly available"""
    return [TimeSlotResponse.from_model(s) for s in service.list_slots(date)]


@router.post("/slots/block", response_model=TimeSlotResponse)
async def block_slot(
    data: SlotRequest,
    _admin: User = Depends(get_current_admin),
    service: BookingService = Depends(get_booking_service),
):
    return TimeSlotResponse.from_model(service.block_slot(data.date, data.time, data.notes))


@router.post("/slots/unblock", response_model=TimeSlotResponse)
async def unblock_slot(
    data: SlotRequest,
    _admin: User = Depends(get_current_admin),
    service: BookingService = Depends(get_booking_service),
):
    return TimeSlotResponse.from_model(service.unblock_slot(data.date, data.time))


# ============================================================================
# ADMIN DASHBOARD
# ============================================================================


@router.get("", response_model=list[BookingResponse])
async def list_bookings(
    status: str = Query("all"),
    search: Optional[str] = Query(None),
    _admin: User = Depends(get_current_admin),
    service: BookingService = Depends(get_booking_service),
):
    """All bookings, newest first, filtered by status and search text"""
    return [BookingResponse.from_model(b) for b in service.list_bookings(status, search)]


@router.get("/stats", response_model=BookingStatsResponse)
async def booking_stats(
    _admin: User = Depends(get_current_admin),
    service: BookingService = Depends(get_booking_service),
):
    return service.booking_stats()


@router.get("/stream")
async def stream_bookings(request: Request, _admin: User = Depends(get_current_admin)):
    """Live booking status changes for the admin dashboard"""
    subscription = hub.subscribe(BOOKINGS_TOPIC)
    return StreamingResponse(event_stream(request, subscription), media_type="text/event-stream")


# ============================================================================
# SINGLE BOOKING
# ============================================================================


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: str,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    return BookingResponse.from_model(service.get_booking(booking_id, current_user))


@router.post("/{booking_id}/submit", response_model=BookingResponse)
async def submit_for_review(
    booking_id: str,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    return BookingResponse.from_model(service.submit_for_review(booking_id, current_user))


@router.post("/{booking_id}/confirm", response_model=BookingResponse)
async def confirm_booking(
    booking_id: str,
    data: ConfirmBookingRequest,
    background_tasks: BackgroundTasks,
    admin: User = Depends(get_current_admin),
    service: BookingService = Depends(get_booking_service),
    provider: MeetingProvider = Depends(get_meeting_provider),
):
    """Confirm a booking under review; the client is emailed the meeting link"""
    booking = service.atomic_admin_confirm_booking(
        booking_id,
        admin,
        provider,
        notes=data.notes,
        confirmed_date=data.confirmedDate,
        confirmed_time=data.confirmedTime,
    )
    background_tasks.add_task(notify_booking_confirmed, booking)
    return BookingResponse.from_model(booking)


@router.post("/{booking_id}/reject", response_model=BookingResponse)
async def reject_booking(
    booking_id: str,
    data: RejectBookingRequest,
    background_tasks: BackgroundTasks,
    admin: User = Depends(get_current_admin),
    service: BookingService = Depends(get_booking_service),
):
    booking = service.atomic_admin_reject_booking(booking_id, admin, data.reason, data.notes)
    background_tasks.add_task(notify_booking_rejected, booking)
    return BookingResponse.from_model(booking)


@router.post("/{booking_id}/reschedule", response_model=BookingResponse)
async def reschedule_booking(
    booking_id: str,
    data: RescheduleRequest,
    background_tasks: BackgroundTasks,
    _admin: User = Depends(get_current_admin),
    service: BookingService = Depends(get_booking_service),
):
    current = service.get_booking(booking_id)
    old_appointment = format_appointment(current.confirmed_date, current.confirmed_time)

    booking = service.reschedule_booking(booking_id, data.newDate, data.newTime, data.reason)
    background_tasks.add_task(notify_booking_rescheduled, booking, old_appointment)
    return BookingResponse.from_model(booking)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: str,
    data: CancelBookingRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    booking = service.cancel_booking(booking_id, current_user, data.reason)
    background_tasks.add_task(notify_booking_cancelled, booking)
    return BookingResponse.from_model(booking)


@router.post("/{booking_id}/complete", response_model=BookingResponse)
async def complete_booking(
    booking_id: str,
    _admin: User = Depends(get_current_admin),
    service: BookingService = Depends(get_booking_service),
):
    return BookingResponse.from_model(service.complete_booking(booking_id))
