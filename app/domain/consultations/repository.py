"""Consultation repository - Database operations for rooms and messages"""

from typing import Optional

from sqlalchemy.orm import Query, Session

from ...models import ConsultationRoom, Message


class ConsultationRepository:
    """Repository for consultation room database operations"""

    @staticmethod
    def get_room(db: Session, room_id: str) -> Optional[ConsultationRoom]:
        return db.query(ConsultationRoom).filter(ConsultationRoom.id == room_id).first()

    @staticmethod
    def list_rooms(
        db: Session, client_id: Optional[int] = None, practitioner_id: Optional[int] = None
    ) -> list[ConsultationRoom]:
        query = db.query(ConsultationRoom)
        if client_id is not None:
            query = query.filter(ConsultationRoom.client_id == client_id)
        if practitioner_id is not None:
            query = query.filter(ConsultationRoom.practitioner_id == practitioner_id)
        return query.order_by(ConsultationRoom.last_activity.desc()).all()

    @staticmethod
    def messages_query(db: Session, room_id: str) -> Query:
        """Room messages in chronological order; id breaks timestamp ties"""
        return (
            db.query(Message)
            .filter(Message.room_id == room_id)
            .order_by(Message.timestamp.asc(), Message.id.asc())
        )

    @staticmethod
    def mark_read(db: Session, room_id: str, viewer: str) -> int:
        return (
            db.query(Message)
            .filter(Message.room_id == room_id, Message.sender != viewer, Message.read.is_(False))
            .update({"read": True}, synchronize_session="fetch")
        )

    @staticmethod
    def count_unread(db: Session, room_id: str, viewer: str) -> int:
        return (
            db.query(Message)
            .filter(Message.room_id == room_id, Message.sender != viewer, Message.read.is_(False))
            .count()
        )
