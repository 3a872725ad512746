"""Subscription repository - Database operations for subscriptions and their rooms"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import ConsultationRoom, Message, MessageType, Subscription, User


class SubscriptionRepository:
    """Repository for subscription database operations"""

    @staticmethod
    def get_subscription(db: Session, subscription_id: str) -> Optional[Subscription]:
        return db.query(Subscription).filter(Subscription.id == subscription_id).first()

    @staticmethod
    def list_for_user(db: Session, user_id: int) -> list[Subscription]:
        return (
            db.query(Subscription)
            .filter(Subscription.user_id == user_id)
            .order_by(Subscription.created_at.desc())
            .all()
        )

    @staticmethod
    def list_all(db: Session, status: Optional[str] = None) -> list[Subscription]:
        query = db.query(Subscription)
        if status:
            query = query.filter(Subscription.status == status)
        return query.order_by(Subscription.created_at.desc()).all()

    @staticmethod
    def list_for_practitioner(db: Session, practitioner_id: int) -> list[Subscription]:
        return (
            db.query(Subscription)
            .filter(Subscription.practitioner_id == practitioner_id)
            .order_by(Subscription.created_at.desc())
            .all()
        )

    @staticmethod
    def transition(db: Session, subscription_id: str, from_statuses: list[str], **values) -> int:
        """
        Conditional update: applies only while the row is still in one of from_statuses.
        Returns the number of rows changed (0 when another writer got there first).
        """
        return (
            db.query(Subscription)
            .filter(Subscription.id == subscription_id, Subscription.status.in_(from_statuses))
            .update(values, synchronize_session="fetch")
        )

    @staticmethod
    def get_room_for_subscription(db: Session, subscription_id: str) -> Optional[ConsultationRoom]:
        return db.query(ConsultationRoom).filter(ConsultationRoom.subscription_id == subscription_id).first()

    @staticmethod
    def has_system_message(db: Session, room_id: str) -> bool:
        return (
            db.query(Message.id)
            .filter(Message.room_id == room_id, Message.type == MessageType.SYSTEM.value)
            .first()
            is not None
        )

    @staticmethod
    def get_user(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()
