"""Booking repository - Database operations for bookings and time slots"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ...models import Booking, SlotStatus, TimeSlot


def slot_id_for(date: str, time: str) -> str:
    """Slot document id: YYYY-MM-DD_HHMM"""
    return f"{date}_{time.replace(':', '')}"


class BookingRepository:
    """Repository for booking and time slot database operations"""

    # Bookings

    @staticmethod
    def get_booking(db: Session, booking_id: str) -> Optional[Booking]:
        return db.query(Booking).filter(Booking.id == booking_id).first()

    @staticmethod
    def list_bookings(
        db: Session, statuses: Optional[list[str]] = None, search: Optional[str] = None
    ) -> list[Booking]:
        """Newest first, optionally filtered by status and a free-text search"""
        query = db.query(Booking)
        if statuses:
            query = query.filter(Booking.status.in_(statuses))
        if search:
            term = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    Booking.first_name.ilike(term),
                    Booking.last_name.ilike(term),
                    Booking.email.ilike(term),
                    Booking.confirmation_number.ilike(term),
                    Booking.service_type.ilike(term),
                )
            )
        return query.order_by(Booking.created_at.desc(), Booking.id).all()

    @staticmethod
    def list_for_user(db: Session, user_id: int) -> list[Booking]:
        return (
            db.query(Booking)
            .filter(Booking.user_id == user_id)
            .order_by(Booking.created_at.desc())
            .all()
        )

    @staticmethod
    def count_by_status(db: Session) -> dict[str, int]:
        rows = db.query(Booking.status, func.count(Booking.id)).group_by(Booking.status).all()
        return {status: count for status, count in rows}

    @staticmethod
    def update_booking_if(db: Session, booking_id: str, from_statuses: list[str], values: dict) -> int:
        """Compare-and-set on booking status; returns rows changed"""
        return (
            db.query(Booking)
            .filter(Booking.id == booking_id, Booking.status.in_(from_statuses))
            .update(values, synchronize_session="fetch")
        )

    # Time slots

    @staticmethod
    def get_slot(db: Session, slot_id: str) -> Optional[TimeSlot]:
        return db.query(TimeSlot).filter(TimeSlot.id == slot_id).first()

    @staticmethod
    def list_slots(db: Session, date: str) -> list[TimeSlot]:
        return db.query(TimeSlot).filter(TimeSlot.date == date).order_by(TimeSlot.time).all()

    @staticmethod
    def ensure_slot(db: Session, date: str, time: str) -> TimeSlot:
        """Fetch the slot for date/time, creating it as available when missing (not committed)"""
        slot_id = slot_id_for(date, time)
        slot = db.query(TimeSlot).filter(TimeSlot.id == slot_id).first()
        if slot is None:
            slot = TimeSlot(id=slot_id, date=date, time=time, status=SlotStatus.AVAILABLE.value)
            db.add(slot)
            db.flush()
        return slot

    @staticmethod
    def update_slot_if(
        db: Session,
        slot_id: str,
        from_statuses: list[str],
        values: dict,
        held_by: Optional[str] = None,
    ) -> int:
        """Compare-and-set on slot status, optionally also on the booking holding it"""
        query = db.query(TimeSlot).filter(TimeSlot.id == slot_id, TimeSlot.status.in_(from_statuses))
        if held_by is not None:
            query = query.filter(TimeSlot.booking_id == held_by)
        return query.update(values, synchronize_session="fetch")
