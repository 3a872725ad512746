import enum
import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_id():
    """Generate an opaque document ID"""
    return str(uuid.uuid4())


class UserRole(str, enum.Enum):
    CLIENT = "client"
    PRACTITIONER = "practitioner"
    ADMIN = "admin"


class ProgramCategory(str, enum.Enum):
    PERSONAL = "personal"
    HOLISTIC = "holistic"
    WOMEN_HEALTH = "women-health"
    GROUP = "group"


class SubscriptionStatus(str, enum.Enum):
    PENDING_SETUP = "pending_setup"
    ACTIVE = "active"
    PAUSED = "paused"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    PENDING_ADMIN_CONFIRMATION = "pending_admin_confirmation"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class SlotStatus(str, enum.Enum):
    AVAILABLE = "available"
    HELD = "held"  # claimed by a booking awaiting admin review
    BOOKED = "booked"
    BLOCKED = "blocked"  # closed by an admin


class RoomStatus(str, enum.Enum):
    ACTIVE = "active"
    CLOSED = "closed"


class MessageType(str, enum.Enum):
    TEXT = "text"
    SYSTEM = "system"


class SenderType(str, enum.Enum):
    CLIENT = "client"
    PRACTITIONER = "practitioner"
    SYSTEM = "system"


SYSTEM_SENDER = "system"

DEFAULT_ROOM_SETTINGS = {
    "allowVideoCall": True,
    "allowFileSharing": True,
    "allowAppointmentBooking": True,
    "notificationsEnabled": True,
}


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    firebase_uid = Column(String(255), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=True)
    role = Column(String(20), default=UserRole.CLIENT.value, nullable=False)
    email_verified = Column(Boolean, default=False, nullable=False)
    # Summary index of the user's subscriptions: [{id, planId, status, createdAt}]
    subscriptions = Column(JSON, default=list, nullable=False)
    has_active_subscriptions = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    @property
    def display_name(self) -> str:
        return self.full_name or self.email


class Program(Base):
    __tablename__ = "wellness_programs"

    id = Column(String(36), primary_key=True, default=generate_id)
    title = Column(String(255), nullable=False)
    category = Column(String(30), default=ProgramCategory.PERSONAL.value, nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False, default=0)
    original_price = Column(Float, nullable=True)
    duration_label = Column(String(100), nullable=True)  # e.g. "3 months"
    duration_details = Column(String(255), nullable=True)
    sessions_included = Column(Integer, default=1, nullable=False)
    practitioner_type = Column(String(100), nullable=True)  # e.g. "Nutritionist"
    features = Column(JSON, default=list, nullable=False)
    benefits = Column(JSON, default=list, nullable=False)
    rating = Column(Float, default=4.5)
    is_active = Column(Boolean, default=True, nullable=False)
    popular = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    # Plain reference: catalog entries may be edited or removed after purchase
    plan_id = Column(String(36), nullable=False, index=True)
    # Snapshot of the program at purchase time
    plan_title = Column(String(255), nullable=False)
    plan_category = Column(String(30), nullable=True)
    price = Column(Float, nullable=False)
    duration_label = Column(String(100), nullable=True)
    practitioner_type = Column(String(100), nullable=True)
    features = Column(JSON, default=list, nullable=False)

    status = Column(String(30), default=SubscriptionStatus.PENDING_SETUP.value, nullable=False)
    # Set only while status == active; the room itself is keyed by subscription
    room_id = Column(String(36), nullable=True)
    practitioner_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    setup_complete = Column(Boolean, default=False, nullable=False)
    client_preferences = Column(JSON, nullable=True)
    billing_cycle = Column(String(20), default="monthly")
    next_billing_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", foreign_keys=[user_id])
    practitioner = relationship("User", foreign_keys=[practitioner_id])


class TimeSlot(Base):
    __tablename__ = "time_slots"

    id = Column(String(20), primary_key=True)  # YYYY-MM-DD_HHMM
    date = Column(String(10), nullable=False, index=True)  # YYYY-MM-DD
    time = Column(String(5), nullable=False)  # HH:MM
    status = Column(String(20), default=SlotStatus.AVAILABLE.value, nullable=False)
    booking_id = Column(String(36), nullable=True)
    notes = Column(String(500), nullable=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    confirmation_number = Column(String(20), unique=True, index=True, nullable=False)

    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)

    service_type = Column(String(255), nullable=True)
    session_type = Column(String(50), nullable=True)  # video, chat, phone
    selected_services = Column(JSON, default=list, nullable=False)

    preferred_date = Column(String(10), nullable=True)  # YYYY-MM-DD
    preferred_time = Column(String(5), nullable=True)  # HH:MM
    slot_id = Column(String(20), nullable=True, index=True)
    confirmed_date = Column(String(10), nullable=True)
    confirmed_time = Column(String(5), nullable=True)

    status = Column(String(40), default=BookingStatus.PENDING.value, nullable=False, index=True)
    rejection_reason = Column(String(1000), nullable=True)
    cancellation_reason = Column(String(1000), nullable=True)
    reschedule_reason = Column(String(1000), nullable=True)
    confirmed_by = Column(String(255), nullable=True)
    admin_notes = Column(String(1000), nullable=True)
    meet_link = Column(String(500), nullable=True)
    calendar_event_id = Column(String(255), nullable=True)

    medical_history = Column(Text, nullable=True)
    current_concerns = Column(Text, nullable=True)
    special_requests = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now(), index=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    @property
    def patient_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class ConsultationRoom(Base):
    __tablename__ = "consultation_rooms"
    __table_args__ = (
        # One room per subscription, also guards concurrent setup completion
        UniqueConstraint("subscription_id", name="uq_room_subscription"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    subscription_id = Column(String(36), ForeignKey("subscriptions.id"), nullable=False)
    client_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    client_name = Column(String(255), nullable=True)
    client_email = Column(String(255), nullable=True)
    practitioner_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    plan_title = Column(String(255), nullable=True)
    plan_category = Column(String(30), nullable=True)
    practitioner_type = Column(String(100), nullable=True)
    status = Column(String(20), default=RoomStatus.ACTIVE.value, nullable=False)
    settings = Column(JSON, default=dict, nullable=False)
    last_activity = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    messages = relationship(
        "Message", back_populates="room", order_by="Message.timestamp", cascade="all, delete-orphan"
    )


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    room_id = Column(String(36), ForeignKey("consultation_rooms.id"), nullable=False, index=True)
    type = Column(String(10), default=MessageType.TEXT.value, nullable=False)
    content = Column(Text, nullable=False)
    sender = Column(String(255), nullable=False)  # user id or "system"
    sender_name = Column(String(255), nullable=True)
    sender_type = Column(String(20), nullable=False)
    timestamp = Column(DateTime, nullable=False, index=True)
    read = Column(Boolean, default=False, nullable=False)

    room = relationship("ConsultationRoom", back_populates="messages")


class SystemSetting(Base):
    __tablename__ = "system_settings"

    key = Column(String(100), primary_key=True)
    value = Column(JSON, nullable=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
