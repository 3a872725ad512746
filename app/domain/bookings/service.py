"""Booking service - Appointment requests and the admin confirmation state machine

pending -> pending_admin_confirmation -> confirmed | rejected
confirmed -> cancelled | completed

Every transition that touches both a booking and its time slot runs as one
transaction of conditional updates. If either update matches no row, another
writer changed the booking or took the slot first and the whole transaction
is rolled back.
"""

import logging
import secrets
import string
import time
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...database import commit
from ...errors import AuthorizationError, InvalidStateError, NotFoundError, ValidationError
from ...models import Booking, BookingStatus, SlotStatus, TimeSlot, User, UserRole, generate_id
from ...realtime import BOOKINGS_TOPIC, hub
from ...services.meeting_service import JitsiMeetingProvider, MeetingProvider
from .repository import BookingRepository, slot_id_for
from .schemas import BookingCreate

logger = logging.getLogger(__name__)

CONFIRMATION_ALPHABET = string.ascii_uppercase + string.digits

# Dashboard filter -> statuses it covers
STATUS_FILTERS = {"all": None, **{status.value: [status.value] for status in BookingStatus}}

CLAIMABLE_SLOT = [SlotStatus.AVAILABLE.value, SlotStatus.HELD.value]


def generate_confirmation_number() -> str:
    """EH + last six digits of epoch millis + three random alphanumerics"""
    millis = str(int(time.time() * 1000))[-6:]
    suffix = "".join(secrets.choice(CONFIRMATION_ALPHABET) for _ in range(3))
    return f"EH{millis}{suffix}"


def validate_date_time(date: Optional[str], time_: Optional[str]) -> None:
    try:
        if date:
            datetime.strptime(date, "%Y-%m-%d")
        if time_:
            datetime.strptime(time_, "%H:%M")
    except ValueError as e:
        raise ValidationError("Dates must be YYYY-MM-DD and times HH:MM") from e


class BookingService:
    """Service layer for bookings and time slots"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BookingRepository()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_booking(self, booking_id: str, actor: Optional[User] = None) -> Booking:
        booking = self.repo.get_booking(self.db, booking_id)
        if not booking:
            raise NotFoundError("Booking not found")
        if actor is not None and actor.role != UserRole.ADMIN.value and booking.user_id != actor.id:
            raise AuthorizationError("You do not have access to this booking")
        return booking

    def list_bookings(self, status_filter: str = "all", search: Optional[str] = None) -> list[Booking]:
        if status_filter not in STATUS_FILTERS:
            raise ValidationError(f"Unknown status filter: {status_filter}")
        return self.repo.list_bookings(self.db, STATUS_FILTERS[status_filter], search or None)

    def list_for_user(self, user_id: int) -> list[Booking]:
        return self.repo.list_for_user(self.db, user_id)

    def booking_stats(self) -> dict:
        counts = self.repo.count_by_status(self.db)

        def total_of(*statuses: BookingStatus) -> int:
            return sum(counts.get(s.value, 0) for s in statuses)

        return {
            "total": sum(counts.values()),
            "pending": total_of(BookingStatus.PENDING, BookingStatus.PENDING_ADMIN_CONFIRMATION),
            "confirmed": total_of(BookingStatus.CONFIRMED),
            "completed": total_of(BookingStatus.COMPLETED),
            "cancelled": total_of(BookingStatus.CANCELLED, BookingStatus.REJECTED),
        }

    # ------------------------------------------------------------------
    # Client requests
    # ------------------------------------------------------------------

    def create_booking(self, user: Optional[User], data: BookingCreate) -> Booking:
        """
        Store an appointment request. With a preferred date and time the
        matching slot is claimed (held) in the same transaction and the booking
        goes straight to admin review.

        Raises:
            ValidationError: If the requested slot is booked or blocked
        """
        validate_date_time(data.preferredDate, data.preferredTime)

        now = datetime.utcnow()
        selected = [s.model_dump() for s in data.selectedServices]
        booking = Booking(
            id=generate_id(),
            user_id=user.id if user else None,
            confirmation_number=generate_confirmation_number(),
            first_name=data.firstName.strip(),
            last_name=data.lastName.strip(),
            email=data.email,
            phone=data.phone,
            service_type=data.serviceType or ", ".join(s["title"] for s in selected) or None,
            session_type=data.sessionType,
            selected_services=selected,
            preferred_date=data.preferredDate,
            preferred_time=data.preferredTime,
            status=BookingStatus.PENDING.value,
            medical_history=data.medicalHistory,
            current_concerns=data.currentConcerns,
            special_requests=data.specialRequests,
            created_at=now,
            updated_at=now,
        )
        self.db.add(booking)

        if data.preferredDate and data.preferredTime:
            try:
                self._claim_requested_slot(booking)
            except IntegrityError as e:
                self.db.rollback()
                raise ValidationError("Selected slot is no longer available") from e
            except ValidationError:
                self.db.rollback()
                raise

        commit(self.db)
        self.db.refresh(booking)

        logger.info(f"📅 Booking {booking.id} ({booking.confirmation_number}) created as {booking.status}")
        self._publish(booking)
        return booking

    def _claim_requested_slot(self, booking: Booking) -> None:
        slot = self.repo.ensure_slot(self.db, booking.preferred_date, booking.preferred_time)
        if slot.status in (SlotStatus.BOOKED.value, SlotStatus.BLOCKED.value):
            raise ValidationError("Selected slot is no longer available")

        if slot.status == SlotStatus.AVAILABLE.value:
            claimed = self.repo.update_slot_if(
                self.db,
                slot.id,
                [SlotStatus.AVAILABLE.value],
                {"status": SlotStatus.HELD.value, "booking_id": booking.id},
            )
            if claimed == 0:
                raise ValidationError("Selected slot is no longer available")

        booking.slot_id = slot.id
        booking.status = BookingStatus.PENDING_ADMIN_CONFIRMATION.value

    def submit_for_review(self, booking_id: str, actor: User) -> Booking:
        """Legacy pending booking -> pending_admin_confirmation"""
        booking = self.get_booking(booking_id, actor)
        if booking.status != BookingStatus.PENDING.value:
            raise InvalidStateError(f"Only pending bookings can be submitted, this one is {booking.status}")

        changed = self.repo.update_booking_if(
            self.db,
            booking.id,
            [BookingStatus.PENDING.value],
            {"status": BookingStatus.PENDING_ADMIN_CONFIRMATION.value, "updated_at": datetime.utcnow()},
        )
        self._finish(booking, changed > 0)
        logger.info(f"📨 Booking {booking.id} submitted for admin review")
        return booking

    # ------------------------------------------------------------------
    # Admin review
    # ------------------------------------------------------------------

    def atomic_admin_confirm_booking(
        self,
        booking_id: str,
        admin: User,
        provider: MeetingProvider,
        notes: Optional[str] = None,
        confirmed_date: Optional[str] = None,
        confirmed_time: Optional[str] = None,
    ) -> Booking:
        """
        Confirm a booking under review: book its slot and attach a meeting link.

        Raises:
            NotFoundError: If the booking does not exist
            InvalidStateError: If the booking is not awaiting confirmation, or
                it was processed or its slot taken concurrently
        """
        booking = self.get_booking(booking_id)
        if booking.status != BookingStatus.PENDING_ADMIN_CONFIRMATION.value:
            raise InvalidStateError(f"Booking is {booking.status}, not awaiting confirmation")

        date = confirmed_date or booking.preferred_date
        time_ = confirmed_time or booking.preferred_time
        if not date or not time_:
            raise ValidationError("A confirmed date and time are required")
        validate_date_time(date, time_)

        meet_link = self._meeting_link(provider, booking, date, time_)
        now = datetime.utcnow()

        try:
            slot = self.repo.ensure_slot(self.db, date, time_)
            if booking.slot_id and booking.slot_id != slot.id:
                self._release_slot(booking.slot_id, booking.id, [SlotStatus.HELD.value])

            booking_rows = self.repo.update_booking_if(
                self.db,
                booking.id,
                [BookingStatus.PENDING_ADMIN_CONFIRMATION.value],
                {
                    "status": BookingStatus.CONFIRMED.value,
                    "confirmed_date": date,
                    "confirmed_time": time_,
                    "confirmed_by": admin.email,
                    "admin_notes": notes,
                    "meet_link": meet_link,
                    "slot_id": slot.id,
                    "updated_at": now,
                },
            )
            slot_rows = self.repo.update_slot_if(
                self.db,
                slot.id,
                CLAIMABLE_SLOT,
                {"status": SlotStatus.BOOKED.value, "booking_id": booking.id},
            )
        except IntegrityError as e:
            self.db.rollback()
            raise InvalidStateError("The time slot changed while confirming, please retry") from e

        if booking_rows == 0:
            self.db.rollback()
            logger.warning(f"⚠️ Booking {booking_id} was processed by another admin")
            raise InvalidStateError("Booking was already processed")
        if slot_rows == 0:
            self.db.rollback()
            logger.warning(f"⚠️ Slot {slot_id_for(date, time_)} is no longer free for booking {booking_id}")
            raise InvalidStateError("The selected time slot is no longer available")

        commit(self.db)
        self.db.refresh(booking)

        logger.info(f"✅ Booking {booking.id} confirmed by {admin.email} for {date} {time_}")
        self._publish(booking)
        return booking

    def atomic_admin_reject_booking(
        self, booking_id: str, admin: User, reason: Optional[str], notes: Optional[str] = None
    ) -> Booking:
        booking = self.get_booking(booking_id)
        if booking.status != BookingStatus.PENDING_ADMIN_CONFIRMATION.value:
            raise InvalidStateError(f"Booking is {booking.status}, not awaiting confirmation")
        if not reason or not reason.strip():
            raise ValidationError("A rejection reason is required")

        changed = self.repo.update_booking_if(
            self.db,
            booking.id,
            [BookingStatus.PENDING_ADMIN_CONFIRMATION.value],
            {
                "status": BookingStatus.REJECTED.value,
                "rejection_reason": reason.strip(),
                "admin_notes": notes,
                "meet_link": None,
                "updated_at": datetime.utcnow(),
            },
        )
        if changed and booking.slot_id:
            self._release_slot(booking.slot_id, booking.id, [SlotStatus.HELD.value])
        self._finish(booking, changed > 0)

        logger.info(f"❌ Booking {booking.id} rejected by {admin.email}")
        return booking

    def reschedule_booking(
        self, booking_id: str, new_date: str, new_time: str, reason: Optional[str] = None
    ) -> Booking:
        """Move a confirmed booking: book the new slot and free the old one atomically"""
        booking = self.get_booking(booking_id)
        if booking.status != BookingStatus.CONFIRMED.value:
            raise InvalidStateError("Only confirmed bookings can be rescheduled")
        validate_date_time(new_date, new_time)

        new_slot_id = slot_id_for(new_date, new_time)
        if new_slot_id == booking.slot_id:
            raise ValidationError("Booking is already scheduled for this time")

        try:
            self.repo.ensure_slot(self.db, new_date, new_time)
            slot_rows = self.repo.update_slot_if(
                self.db,
                new_slot_id,
                CLAIMABLE_SLOT,
                {"status": SlotStatus.BOOKED.value, "booking_id": booking.id},
            )
            if booking.slot_id:
                self._release_slot(booking.slot_id, booking.id, [SlotStatus.BOOKED.value])
            booking_rows = self.repo.update_booking_if(
                self.db,
                booking.id,
                [BookingStatus.CONFIRMED.value],
                {
                    "confirmed_date": new_date,
                    "confirmed_time": new_time,
                    "slot_id": new_slot_id,
                    "reschedule_reason": reason,
                    "updated_at": datetime.utcnow(),
                },
            )
        except IntegrityError as e:
            self.db.rollback()
            raise InvalidStateError("The time slot changed while rescheduling, please retry") from e

        if slot_rows == 0:
            self.db.rollback()
            raise InvalidStateError("The new time slot is not available")
        self._finish(booking, booking_rows > 0)

        logger.info(f"🔄 Booking {booking.id} rescheduled to {new_date} {new_time}")
        return booking

    def cancel_booking(self, booking_id: str, actor: User, reason: Optional[str] = None) -> Booking:
        booking = self.get_booking(booking_id, actor)
        return self._close_confirmed(
            booking, BookingStatus.CANCELLED, {"cancellation_reason": reason}
        )

    def complete_booking(self, booking_id: str) -> Booking:
        booking = self.get_booking(booking_id)
        return self._close_confirmed(booking, BookingStatus.COMPLETED, {})

    def _close_confirmed(self, booking: Booking, target: BookingStatus, extra: dict) -> Booking:
        if booking.status != BookingStatus.CONFIRMED.value:
            raise InvalidStateError(f"Only confirmed bookings can be {target.value}")

        changed = self.repo.update_booking_if(
            self.db,
            booking.id,
            [BookingStatus.CONFIRMED.value],
            {"status": target.value, "updated_at": datetime.utcnow(), **extra},
        )
        if changed and booking.slot_id:
            self._release_slot(booking.slot_id, booking.id, [SlotStatus.BOOKED.value])
        self._finish(booking, changed > 0)

        logger.info(f"🏁 Booking {booking.id} is now {target.value}")
        return booking

    # ------------------------------------------------------------------
    # Time slots
    # ------------------------------------------------------------------

    def list_slots(self, date: str) -> list[TimeSlot]:
        validate_date_time(date, None)
        return self.repo.list_slots(self.db, date)

    def block_slot(self, date: str, time_: str, notes: Optional[str] = None) -> TimeSlot:
        validate_date_time(date, time_)
        slot = self.repo.ensure_slot(self.db, date, time_)
        changed = self.repo.update_slot_if(
            self.db,
            slot.id,
            [SlotStatus.AVAILABLE.value],
            {"status": SlotStatus.BLOCKED.value, "notes": notes},
        )
        if changed == 0:
            self.db.rollback()
            raise InvalidStateError("Only available slots can be blocked")
        commit(self.db)
        self.db.refresh(slot)
        logger.info(f"🚧 Slot {slot.id} blocked")
        return slot

    def unblock_slot(self, date: str, time_: str) -> TimeSlot:
        validate_date_time(date, time_)
        slot = self.repo.get_slot(self.db, slot_id_for(date, time_))
        if not slot:
            raise NotFoundError("Time slot not found")
        changed = self.repo.update_slot_if(
            self.db,
            slot.id,
            [SlotStatus.BLOCKED.value],
            {"status": SlotStatus.AVAILABLE.value, "notes": None},
        )
        if changed == 0:
            raise InvalidStateError("Slot is not blocked")
        commit(self.db)
        self.db.refresh(slot)
        logger.info(f"🟢 Slot {slot.id} unblocked")
        return slot

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _release_slot(self, slot_id: str, booking_id: str, from_statuses: list[str]) -> int:
        """Free a slot, but only if this booking is the one holding it"""
        return self.repo.update_slot_if(
            self.db,
            slot_id,
            from_statuses,
            {"status": SlotStatus.AVAILABLE.value, "booking_id": None},
            held_by=booking_id,
        )

    def _finish(self, booking: Booking, changed: bool) -> None:
        """Commit a conditional booking write, or roll back if it lost a race"""
        if not changed:
            self.db.rollback()
            logger.warning(f"⚠️ Booking {booking.id} changed concurrently")
            raise InvalidStateError("Booking was modified by someone else, please reload")
        commit(self.db)
        self.db.refresh(booking)
        self._publish(booking)

    def _meeting_link(self, provider: MeetingProvider, booking: Booking, date: str, time_: str) -> str:
        try:
            return provider.create_meeting_link(booking.id, booking.patient_name, date, time_)
        except Exception as e:
            logger.warning(f"⚠️ Meeting provider failed for booking {booking.id}, using Jitsi fallback: {e}")
            return JitsiMeetingProvider().create_meeting_link(booking.id, booking.patient_name, date, time_)

    def _publish(self, booking: Booking) -> None:
        hub.publish(BOOKINGS_TOPIC, "booking_status", {"bookingId": booking.id, "status": booking.status})
