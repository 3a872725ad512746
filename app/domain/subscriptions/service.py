"""Subscription service - Lifecycle of a client's program subscription

pending_setup -> active -> paused | cancelled | expired
paused -> active (resume), pending_setup -> cancelled (setup abandoned)

A subscription carries a room_id exactly while it is active with setup
complete. The room itself is keyed by subscription, so leaving active closes
it and resuming re-opens the same room.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...database import commit
from ...errors import AuthorizationError, InvalidStateError, NotFoundError, ValidationError
from ...models import (
    DEFAULT_ROOM_SETTINGS,
    SYSTEM_SENDER,
    ConsultationRoom,
    Message,
    MessageType,
    Program,
    RoomStatus,
    SenderType,
    Subscription,
    SubscriptionStatus,
    User,
    UserRole,
    generate_id,
)
from ...realtime import hub, room_topic
from ...utils.sanitization import clean_dict
from ..catalog.repository import ProgramRepository
from .repository import SubscriptionRepository

logger = logging.getLogger(__name__)

BILLING_PERIOD_DAYS = 30

# Allowed source states per transition
PAUSABLE = [SubscriptionStatus.ACTIVE.value]
RESUMABLE = [SubscriptionStatus.PAUSED.value]
CANCELLABLE = [
    SubscriptionStatus.PENDING_SETUP.value,
    SubscriptionStatus.ACTIVE.value,
    SubscriptionStatus.PAUSED.value,
]
EXPIRABLE = [SubscriptionStatus.ACTIVE.value, SubscriptionStatus.PAUSED.value]


def welcome_message_text(plan_title: str, practitioner_type: Optional[str]) -> str:
    return (
        "Welcome to your private consultation room! 🎉\n\n"
        f"Your {plan_title} subscription is now active. "
        f"A {practitioner_type or 'practitioner'} will be assigned to you within 24 hours.\n\n"
        "In the meantime, feel free to share any questions or concerns you have."
    )


class SubscriptionService:
    """Service layer for the subscription state machine"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SubscriptionRepository()
        self.programs = ProgramRepository()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_subscription(self, subscription_id: str, actor: Optional[User] = None) -> Subscription:
        """Load a subscription; with an actor, only the owner, its practitioner or an admin may see it"""
        subscription = self.repo.get_subscription(self.db, subscription_id)
        if not subscription:
            raise NotFoundError("Subscription not found")

        if actor is not None and actor.role != UserRole.ADMIN.value:
            if actor.id not in (subscription.user_id, subscription.practitioner_id):
                raise AuthorizationError("You do not have access to this subscription")
        return subscription

    def list_for_user(self, user_id: int) -> list[Subscription]:
        return self.repo.list_for_user(self.db, user_id)

    def list_for_actor(self, actor: User) -> list[Subscription]:
        if actor.role == UserRole.PRACTITIONER.value:
            return self.repo.list_for_practitioner(self.db, actor.id)
        return self.repo.list_for_user(self.db, actor.id)

    def list_all(self, status: Optional[SubscriptionStatus] = None) -> list[Subscription]:
        return self.repo.list_all(self.db, status.value if status else None)

    # ------------------------------------------------------------------
    # Creation and setup
    # ------------------------------------------------------------------

    def create_subscription(self, user: User, program_id: str) -> Subscription:
        """Subscribe a client to a program, snapshotting the program's terms"""
        program: Optional[Program] = self.programs.get_program(self.db, program_id)
        if not program:
            raise NotFoundError("Program not found")
        if not program.is_active:
            raise ValidationError("This program is not currently available")

        now = datetime.utcnow()
        subscription = Subscription(
            id=generate_id(),
            user_id=user.id,
            plan_id=program.id,
            plan_title=program.title,
            plan_category=program.category,
            price=program.price,
            duration_label=program.duration_label,
            practitioner_type=program.practitioner_type,
            features=list(program.features or []),
            status=SubscriptionStatus.PENDING_SETUP.value,
            room_id=None,
            practitioner_id=None,
            setup_complete=False,
            billing_cycle="monthly",
            next_billing_date=now + timedelta(days=BILLING_PERIOD_DAYS),
            created_at=now,
        )
        self.db.add(subscription)
        self.db.flush()
        self._refresh_user_index(user.id)
        commit(self.db)
        self.db.refresh(subscription)

        logger.info(f"🆕 Subscription {subscription.id} created for user {user.id} on plan {program.id}")
        return subscription

    def complete_setup(self, subscription_id: str, preferences: dict, actor: User) -> Subscription:
        """
        Activate a pending subscription: open its consultation room, post the
        welcome message and store the client's preferences in one transaction.

        Raises:
            InvalidStateError: If the subscription is not pending setup, or a
                concurrent call completed it first
        """
        subscription = self.get_subscription(subscription_id)
        if subscription.user_id != actor.id:
            raise AuthorizationError("Only the subscribing client can complete setup")
        if subscription.status != SubscriptionStatus.PENDING_SETUP.value:
            raise InvalidStateError(f"Subscription is {subscription.status}, setup requires pending_setup")

        now = datetime.utcnow()
        try:
            room = self.repo.get_room_for_subscription(self.db, subscription.id)
            if room is None:
                room = ConsultationRoom(
                    id=generate_id(),
                    subscription_id=subscription.id,
                    client_id=subscription.user_id,
                    client_name=actor.display_name,
                    client_email=actor.email,
                    practitioner_id=subscription.practitioner_id,
                    plan_title=subscription.plan_title,
                    plan_category=subscription.plan_category,
                    practitioner_type=subscription.practitioner_type,
                    status=RoomStatus.ACTIVE.value,
                    settings=dict(DEFAULT_ROOM_SETTINGS),
                    last_activity=now,
                    created_at=now,
                )
                self.db.add(room)
                # Surfaces the one-room-per-subscription constraint before the status write
                self.db.flush()
            else:
                room.status = RoomStatus.ACTIVE.value
                room.last_activity = now

            if not self.repo.has_system_message(self.db, room.id):
                self.db.add(
                    Message(
                        room_id=room.id,
                        type=MessageType.SYSTEM.value,
                        content=welcome_message_text(subscription.plan_title, subscription.practitioner_type),
                        sender=SYSTEM_SENDER,
                        sender_name="EkahHealth",
                        sender_type=SenderType.SYSTEM.value,
                        timestamp=now,
                        read=False,
                    )
                )

            changed = self.repo.transition(
                self.db,
                subscription.id,
                [SubscriptionStatus.PENDING_SETUP.value],
                status=SubscriptionStatus.ACTIVE.value,
                setup_complete=True,
                room_id=room.id,
                client_preferences=clean_dict(preferences or {}),
                updated_at=now,
            )
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"⚠️ Concurrent setup detected for subscription {subscription_id}: {e}")
            raise InvalidStateError("Setup has already been completed for this subscription") from e

        if changed == 0:
            self.db.rollback()
            logger.warning(f"⚠️ Subscription {subscription_id} left pending_setup before setup finished")
            raise InvalidStateError("Setup has already been completed for this subscription")

        self.db.flush()
        self._refresh_user_index(subscription.user_id)
        commit(self.db)
        self.db.refresh(subscription)

        logger.info(f"✅ Subscription {subscription.id} active, room {subscription.room_id}")
        return subscription

    # ------------------------------------------------------------------
    # Admin assignment
    # ------------------------------------------------------------------

    def assign_practitioner(self, subscription_id: str, practitioner_id: int) -> Subscription:
        subscription = self.get_subscription(subscription_id)
        if subscription.status != SubscriptionStatus.ACTIVE.value:
            raise InvalidStateError("A practitioner can only be assigned to an active subscription")

        practitioner = self.repo.get_user(self.db, practitioner_id)
        if not practitioner or practitioner.role != UserRole.PRACTITIONER.value:
            raise NotFoundError("Practitioner not found")

        subscription.practitioner_id = practitioner.id
        room = self.repo.get_room_for_subscription(self.db, subscription.id)
        if room:
            room.practitioner_id = practitioner.id
        commit(self.db)
        self.db.refresh(subscription)

        logger.info(f"👩‍⚕️ Practitioner {practitioner.id} assigned to subscription {subscription.id}")
        if room:
            hub.publish(
                room_topic(room.id),
                "practitioner_assigned",
                {"practitionerId": practitioner.id, "practitionerName": practitioner.display_name},
            )
        return subscription

    # ------------------------------------------------------------------
    # Status changes
    # ------------------------------------------------------------------

    def pause(self, subscription_id: str, actor: User) -> Subscription:
        return self._leave_active(subscription_id, actor, PAUSABLE, SubscriptionStatus.PAUSED)

    def cancel(self, subscription_id: str, actor: User) -> Subscription:
        return self._leave_active(subscription_id, actor, CANCELLABLE, SubscriptionStatus.CANCELLED)

    def expire(self, subscription_id: str) -> Subscription:
        return self._leave_active(subscription_id, None, EXPIRABLE, SubscriptionStatus.EXPIRED)

    def resume(self, subscription_id: str, actor: User) -> Subscription:
        """paused -> active, re-linking the subscription's existing room"""
        subscription = self._get_for_owner(subscription_id, actor)
        if subscription.status not in RESUMABLE:
            raise InvalidStateError(f"Cannot resume a {subscription.status} subscription")

        room = self.repo.get_room_for_subscription(self.db, subscription.id)
        if room is None:
            raise InvalidStateError("Subscription has no consultation room to resume")

        room.status = RoomStatus.ACTIVE.value
        self._apply_transition(
            subscription,
            RESUMABLE,
            status=SubscriptionStatus.ACTIVE.value,
            room_id=room.id,
            updated_at=datetime.utcnow(),
        )
        logger.info(f"▶️ Subscription {subscription.id} resumed with room {room.id}")
        return subscription

    def _leave_active(
        self,
        subscription_id: str,
        actor: Optional[User],
        from_statuses: list[str],
        target: SubscriptionStatus,
    ) -> Subscription:
        subscription = (
            self._get_for_owner(subscription_id, actor) if actor else self.get_subscription(subscription_id)
        )
        if subscription.status not in from_statuses:
            raise InvalidStateError(f"Cannot move a {subscription.status} subscription to {target.value}")

        room = self.repo.get_room_for_subscription(self.db, subscription.id)
        if room:
            room.status = RoomStatus.CLOSED.value

        self._apply_transition(
            subscription, from_statuses, status=target.value, room_id=None, updated_at=datetime.utcnow()
        )
        logger.info(f"⏹️ Subscription {subscription.id} is now {target.value}")
        if room:
            hub.publish(room_topic(room.id), "room_closed", {"roomId": room.id, "status": target.value})
        return subscription

    def _apply_transition(self, subscription: Subscription, from_statuses: list[str], **values) -> None:
        changed = self.repo.transition(self.db, subscription.id, from_statuses, **values)
        if changed == 0:
            self.db.rollback()
            raise InvalidStateError("Subscription status changed concurrently, please retry")
        self.db.flush()
        self._refresh_user_index(subscription.user_id)
        commit(self.db)
        self.db.refresh(subscription)

    def _get_for_owner(self, subscription_id: str, actor: User) -> Subscription:
        subscription = self.get_subscription(subscription_id)
        if actor.role != UserRole.ADMIN.value and subscription.user_id != actor.id:
            raise AuthorizationError("You can only manage your own subscriptions")
        return subscription

    def _refresh_user_index(self, user_id: int) -> None:
        """Rewrite the user's subscription summary list inside the current transaction"""
        user = self.repo.get_user(self.db, user_id)
        if not user:
            return
        subscriptions = self.repo.list_for_user(self.db, user_id)
        user.subscriptions = [
            {
                "id": s.id,
                "planId": s.plan_id,
                "status": s.status,
                "createdAt": s.created_at.isoformat() if s.created_at else None,
            }
            for s in reversed(subscriptions)
        ]
        user.has_active_subscriptions = any(s.status == SubscriptionStatus.ACTIVE.value for s in subscriptions)
