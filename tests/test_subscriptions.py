from datetime import datetime

import pytest

from app.domain.subscriptions.service import SubscriptionService
from app.errors import AuthorizationError, InvalidStateError, NotFoundError, ValidationError
from app.models import (
    ConsultationRoom,
    Message,
    MessageType,
    Program,
    SYSTEM_SENDER,
    RoomStatus,
    SenderType,
    Subscription,
    SubscriptionStatus,
    User,
)
from tests.conftest import as_user


def assert_room_invariant(subscription: Subscription) -> None:
    if subscription.room_id is not None:
        assert subscription.status == SubscriptionStatus.ACTIVE.value
        assert subscription.setup_complete is True
    if subscription.status == SubscriptionStatus.ACTIVE.value:
        assert subscription.room_id is not None


def test_create_subscription_starts_pending_setup(db, client_user, make_program):
    program = make_program(id="p1", price=399, is_active=True)

    subscription = SubscriptionService(db).create_subscription(client_user, program.id)

    assert subscription.status == SubscriptionStatus.PENDING_SETUP.value
    assert subscription.room_id is None
    assert subscription.practitioner_id is None
    assert subscription.price == 399
    assert subscription.practitioner_type == "Nutritionist"
    assert subscription.billing_cycle == "monthly"
    assert subscription.next_billing_date is not None
    assert_room_invariant(subscription)

    db.refresh(client_user)
    assert [s["id"] for s in client_user.subscriptions] == [subscription.id]
    assert client_user.subscriptions[0]["status"] == "pending_setup"
    assert client_user.subscriptions[0]["planId"] == "p1"


def test_snapshot_survives_catalog_edits(db, client_user, program):
    subscription = SubscriptionService(db).create_subscription(client_user, program.id)

    program.price = 999
    program.features = ["Something else"]
    db.commit()
    db.refresh(subscription)

    assert subscription.price == 120.0
    assert subscription.features == ["Weekly video session", "Private chat"]


def test_inactive_program_cannot_be_subscribed(db, client_user, make_program):
    program = make_program(is_active=False)

    with pytest.raises(ValidationError):
        SubscriptionService(db).create_subscription(client_user, program.id)

    assert db.query(Subscription).count() == 0


def test_unknown_program_is_not_found(db, client_user):
    with pytest.raises(NotFoundError):
        SubscriptionService(db).create_subscription(client_user, "missing")


def test_complete_setup_activates_with_room_and_welcome(db, client_user, make_program):
    program = make_program(id="p1", price=399)
    service = SubscriptionService(db)
    subscription = service.create_subscription(client_user, program.id)

    subscription = service.complete_setup(subscription.id, {"healthGoals": "lose weight"}, client_user)

    assert subscription.status == SubscriptionStatus.ACTIVE.value
    assert subscription.setup_complete is True
    assert subscription.room_id is not None
    assert subscription.client_preferences == {"healthGoals": "lose weight"}
    assert_room_invariant(subscription)

    room = db.get(ConsultationRoom, subscription.room_id)
    assert room.subscription_id == subscription.id
    assert room.status == RoomStatus.ACTIVE.value
    assert all(room.settings.values())

    messages = db.query(Message).filter(Message.room_id == room.id).all()
    assert len(messages) == 1
    assert messages[0].type == MessageType.SYSTEM.value
    assert "Nutritionist" in messages[0].content
    assert program.title in messages[0].content

    db.refresh(client_user)
    assert client_user.has_active_subscriptions is True
    assert client_user.subscriptions[0]["status"] == "active"


def test_complete_setup_twice_fails_without_second_room(db, client_user, program):
    service = SubscriptionService(db)
    subscription = service.create_subscription(client_user, program.id)
    service.complete_setup(subscription.id, {}, client_user)

    with pytest.raises(InvalidStateError):
        service.complete_setup(subscription.id, {}, client_user)

    assert db.query(ConsultationRoom).filter(ConsultationRoom.subscription_id == subscription.id).count() == 1
    assert db.query(Message).count() == 1


def test_complete_setup_reuses_orphaned_room(db, client_user, program):
    service = SubscriptionService(db)
    subscription = service.create_subscription(client_user, program.id)
    orphan = ConsultationRoom(
        id="orphan-room",
        subscription_id=subscription.id,
        client_id=client_user.id,
        status=RoomStatus.ACTIVE.value,
        settings={},
    )
    db.add(orphan)
    db.commit()

    subscription = service.complete_setup(subscription.id, {}, client_user)

    assert subscription.room_id == "orphan-room"
    assert db.query(ConsultationRoom).count() == 1
    assert db.query(Message).filter(Message.room_id == "orphan-room").count() == 1


def test_reused_room_keeps_single_welcome_message(db, client_user, program):
    service = SubscriptionService(db)
    subscription = service.create_subscription(client_user, program.id)
    db.add(
        ConsultationRoom(
            id="orphan-room",
            subscription_id=subscription.id,
            client_id=client_user.id,
            status=RoomStatus.ACTIVE.value,
            settings={},
        )
    )
    db.add(
        Message(
            room_id="orphan-room",
            type=MessageType.SYSTEM.value,
            content="Welcome to your Holistic Reset consultation room!",
            sender=SYSTEM_SENDER,
            sender_name="EkahHealth",
            sender_type=SenderType.SYSTEM.value,
            timestamp=datetime.utcnow(),
            read=False,
        )
    )
    db.commit()

    service.complete_setup(subscription.id, {}, client_user)

    system_messages = (
        db.query(Message)
        .filter(Message.room_id == "orphan-room", Message.type == MessageType.SYSTEM.value)
        .count()
    )
    assert system_messages == 1


def test_preferences_are_stored_as_received(db, client_user, program):
    service = SubscriptionService(db)
    subscription = service.create_subscription(client_user, program.id)
    preferences = {"healthGoals": "Sleep & stress <less coffee>", "notes": "Tom's \"plan\"\x00"}

    subscription = service.complete_setup(subscription.id, preferences, client_user)

    assert subscription.client_preferences == {
        "healthGoals": "Sleep & stress <less coffee>",
        "notes": "Tom's \"plan\"",
    }


def test_only_owner_can_complete_setup(db, client_user, other_client, program):
    service = SubscriptionService(db)
    subscription = service.create_subscription(client_user, program.id)

    with pytest.raises(AuthorizationError):
        service.complete_setup(subscription.id, {}, other_client)

    db.refresh(subscription)
    assert subscription.status == SubscriptionStatus.PENDING_SETUP.value
    assert db.query(ConsultationRoom).count() == 0


def test_assign_practitioner_requires_active(db, client_user, practitioner, program):
    service = SubscriptionService(db)
    subscription = service.create_subscription(client_user, program.id)

    with pytest.raises(InvalidStateError):
        service.assign_practitioner(subscription.id, practitioner.id)

    service.complete_setup(subscription.id, {}, client_user)
    subscription = service.assign_practitioner(subscription.id, practitioner.id)

    assert subscription.practitioner_id == practitioner.id
    assert subscription.status == SubscriptionStatus.ACTIVE.value
    assert db.get(ConsultationRoom, subscription.room_id).practitioner_id == practitioner.id


def test_assign_practitioner_rejects_non_practitioner(db, client_user, other_client, program):
    service = SubscriptionService(db)
    subscription = service.create_subscription(client_user, program.id)
    service.complete_setup(subscription.id, {}, client_user)

    with pytest.raises(NotFoundError):
        service.assign_practitioner(subscription.id, other_client.id)


def test_pause_clears_room_and_resume_restores_it(db, client_user, program):
    service = SubscriptionService(db)
    subscription = service.create_subscription(client_user, program.id)
    subscription = service.complete_setup(subscription.id, {}, client_user)
    room_id = subscription.room_id

    subscription = service.pause(subscription.id, client_user)
    assert subscription.status == SubscriptionStatus.PAUSED.value
    assert subscription.room_id is None
    assert db.get(ConsultationRoom, room_id).status == RoomStatus.CLOSED.value
    assert_room_invariant(subscription)

    subscription = service.resume(subscription.id, client_user)
    assert subscription.status == SubscriptionStatus.ACTIVE.value
    assert subscription.room_id == room_id
    assert db.get(ConsultationRoom, room_id).status == RoomStatus.ACTIVE.value
    assert_room_invariant(subscription)


def test_cancel_and_expire_are_terminal(db, client_user, program):
    service = SubscriptionService(db)
    pending = service.create_subscription(client_user, program.id)
    cancelled = service.cancel(pending.id, client_user)
    assert cancelled.status == SubscriptionStatus.CANCELLED.value

    with pytest.raises(InvalidStateError):
        service.complete_setup(cancelled.id, {}, client_user)
    with pytest.raises(InvalidStateError):
        service.resume(cancelled.id, client_user)

    active = service.create_subscription(client_user, program.id)
    service.complete_setup(active.id, {}, client_user)
    expired = service.expire(active.id)
    assert expired.status == SubscriptionStatus.EXPIRED.value
    assert expired.room_id is None

    db.refresh(client_user)
    assert client_user.has_active_subscriptions is False
    assert {s["status"] for s in client_user.subscriptions} == {"cancelled", "expired"}


def test_other_client_cannot_pause(db, client_user, other_client, program):
    service = SubscriptionService(db)
    subscription = service.create_subscription(client_user, program.id)
    service.complete_setup(subscription.id, {}, client_user)

    with pytest.raises(AuthorizationError):
        service.pause(subscription.id, other_client)


# HTTP surface


def test_subscribe_and_setup_over_http(client, db, client_user, program):
    response = client.post("/subscriptions", json={"programId": program.id}, headers=as_user(client_user))
    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "pending_setup"
    assert body["roomId"] is None

    response = client.post(
        f"/subscriptions/{body['id']}/setup",
        json={"preferences": {"healthGoals": "lose weight"}},
        headers=as_user(client_user),
    )
    assert response.status_code == 200
    assert response.json()["status"] == "active"
    assert response.json()["roomId"]

    response = client.post(f"/subscriptions/{body['id']}/setup", json={}, headers=as_user(client_user))
    assert response.status_code == 409
    assert response.json()["error"] == "invalid_state"


def test_inactive_program_returns_validation_error(client, client_user, make_program):
    program = make_program(is_active=False)

    response = client.post("/subscriptions", json={"programId": program.id}, headers=as_user(client_user))

    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


def test_assign_requires_admin(client, db, client_user, practitioner, admin, program):
    service = SubscriptionService(db)
    subscription = service.create_subscription(client_user, program.id)
    service.complete_setup(subscription.id, {}, client_user)

    payload = {"practitionerId": practitioner.id}
    response = client.post(f"/subscriptions/{subscription.id}/assign", json=payload, headers=as_user(client_user))
    assert response.status_code == 403

    response = client.post(f"/subscriptions/{subscription.id}/assign", json=payload, headers=as_user(admin))
    assert response.status_code == 200
    assert response.json()["practitionerId"] == practitioner.id


def test_practitioner_sees_assigned_subscriptions(client, db, client_user, practitioner, program):
    service = SubscriptionService(db)
    subscription = service.create_subscription(client_user, program.id)
    service.complete_setup(subscription.id, {}, client_user)
    service.assign_practitioner(subscription.id, practitioner.id)

    response = client.get("/subscriptions", headers=as_user(practitioner))

    assert response.status_code == 200
    assert [s["id"] for s in response.json()] == [subscription.id]


def test_missing_token_is_unauthenticated(client):
    response = client.get("/subscriptions")
    assert response.status_code == 401


def test_concurrent_setup_creates_one_room(file_sessions):
    first, second = file_sessions(), file_sessions()
    try:
        owner = User(firebase_uid="race-owner", email="race@ekahhealth.com", role="client", subscriptions=[])
        program = Program(title="Gut Health", price=80.0, practitioner_type="Nutritionist", features=[], benefits=[])
        first.add_all([owner, program])
        first.commit()
        subscription = SubscriptionService(first).create_subscription(owner, program.id)

        # The second session reads the subscription while it is still pending
        stale_owner = second.get(User, owner.id)
        stale = SubscriptionService(second).get_subscription(subscription.id)
        assert stale.status == SubscriptionStatus.PENDING_SETUP.value

        SubscriptionService(first).complete_setup(subscription.id, {}, owner)

        with pytest.raises(InvalidStateError):
            SubscriptionService(second).complete_setup(subscription.id, {}, stale_owner)

        first.expire_all()
        assert first.query(ConsultationRoom).count() == 1
        assert first.query(Message).count() == 1
        assert first.get(Subscription, subscription.id).status == SubscriptionStatus.ACTIVE.value
    finally:
        first.close()
        second.close()


def test_unverified_user_cannot_subscribe(client, make_user, program):
    unverified = make_user(verified=False)

    response = client.post("/subscriptions", json={"programId": program.id}, headers=as_user(unverified))

    assert response.status_code == 403
