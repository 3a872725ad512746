"""Consultation service - Private rooms between a client and their practitioner"""

import logging
from datetime import datetime
from typing import Iterator

from sqlalchemy.orm import Session

from ...config import MESSAGE_MAX_LENGTH
from ...database import commit
from ...errors import AuthorizationError, InvalidStateError, NotFoundError, ValidationError
from ...models import (
    DEFAULT_ROOM_SETTINGS,
    ConsultationRoom,
    Message,
    MessageType,
    RoomStatus,
    SenderType,
    User,
    UserRole,
)
from ...realtime import hub, room_topic
from ...utils.sanitization import clean_text
from .repository import ConsultationRepository
from .schemas import MessageResponse

logger = logging.getLogger(__name__)


def sender_type_for(user: User) -> SenderType:
    # Admins speak for the practice
    if user.role == UserRole.CLIENT.value:
        return SenderType.CLIENT
    return SenderType.PRACTITIONER


class ConsultationService:
    """Service layer for consultation rooms and messaging"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ConsultationRepository()

    def get_room(self, room_id: str, actor: User) -> ConsultationRoom:
        """Room for a member: its client, the assigned practitioner, or an admin"""
        room = self.repo.get_room(self.db, room_id)
        if not room:
            raise NotFoundError("Consultation room not found")
        if actor.role != UserRole.ADMIN.value and actor.id not in (room.client_id, room.practitioner_id):
            logger.warning(f"⚠️ User {actor.id} tried to access room {room_id}")
            raise AuthorizationError("You are not a member of this consultation room")
        return room

    def list_rooms_for_user(self, actor: User) -> list[ConsultationRoom]:
        if actor.role == UserRole.ADMIN.value:
            return self.repo.list_rooms(self.db)
        if actor.role == UserRole.PRACTITIONER.value:
            return self.repo.list_rooms(self.db, practitioner_id=actor.id)
        return self.repo.list_rooms(self.db, client_id=actor.id)

    def send_message(self, room_id: str, sender: User, content: str) -> Message:
        """
        Post a text message to an active room.

        Raises:
            ValidationError: If the content is empty or too long
            InvalidStateError: If the room is closed
        """
        room = self.get_room(room_id, sender)
        if room.status != RoomStatus.ACTIVE.value:
            raise InvalidStateError("This consultation room is closed")
        text = clean_text(content, MESSAGE_MAX_LENGTH, "Message")

        now = datetime.utcnow()
        message = Message(
            room_id=room.id,
            type=MessageType.TEXT.value,
            content=text,
            sender=str(sender.id),
            sender_name=sender.display_name,
            sender_type=sender_type_for(sender).value,
            timestamp=now,
            read=False,
        )
        self.db.add(message)
        room.last_activity = now
        commit(self.db)
        self.db.refresh(message)

        logger.info(f"💬 Message {message.id} posted to room {room.id} by user {sender.id}")
        hub.publish(room_topic(room.id), "message", MessageResponse.from_model(message).model_dump(mode="json"))
        return message

    def mark_as_read(self, room_id: str, viewer: User) -> int:
        """Mark every message not sent by the viewer as read; returns how many changed"""
        room = self.get_room(room_id, viewer)
        count = self.repo.mark_read(self.db, room.id, str(viewer.id))
        commit(self.db)
        if count:
            logger.debug(f"👀 {count} messages read in room {room.id} by user {viewer.id}")
            hub.publish(room_topic(room.id), "read", {"readerId": viewer.id, "count": count})
        return count

    def unread_count(self, room_id: str, viewer: User) -> int:
        room = self.get_room(room_id, viewer)
        return self.repo.count_unread(self.db, room.id, str(viewer.id))

    def list_messages(self, room_id: str, actor: User | None = None) -> list[Message]:
        if actor is not None:
            self.get_room(room_id, actor)
        return self.repo.messages_query(self.db, room_id).all()

    def iter_messages(self, room_id: str, batch_size: int = 100) -> Iterator[Message]:
        """Lazily walk a room's history in order; each call starts from the beginning"""
        yield from self.repo.messages_query(self.db, room_id).yield_per(batch_size)

    def update_settings(self, room_id: str, actor: User, settings: dict) -> ConsultationRoom:
        room = self.get_room(room_id, actor)
        if actor.role == UserRole.PRACTITIONER.value:
            raise AuthorizationError("Only the client or an admin can change room settings")

        unknown = set(settings) - set(DEFAULT_ROOM_SETTINGS)
        if unknown:
            raise ValidationError(f"Unknown room settings: {', '.join(sorted(unknown))}")
        if not all(isinstance(v, bool) for v in settings.values()):
            raise ValidationError("Room settings must be true or false")

        room.settings = {**DEFAULT_ROOM_SETTINGS, **(room.settings or {}), **settings}
        commit(self.db)
        self.db.refresh(room)

        logger.info(f"⚙️ Room {room.id} settings updated: {settings}")
        hub.publish(room_topic(room.id), "settings", room.settings)
        return room
