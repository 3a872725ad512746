import pytest

from app.config import MESSAGE_MAX_LENGTH, MESSAGE_RATE_LIMIT
from app.domain.consultations.service import ConsultationService, sender_type_for
from app.domain.subscriptions.service import SubscriptionService
from app.errors import AuthorizationError, InvalidStateError, NotFoundError, ValidationError
from app.models import Message, MessageType, SenderType
from tests.conftest import as_user


@pytest.fixture
def room(db, client_user, practitioner, program):
    subscriptions = SubscriptionService(db)
    subscription = subscriptions.create_subscription(client_user, program.id)
    subscription = subscriptions.complete_setup(subscription.id, {}, client_user)
    subscriptions.assign_practitioner(subscription.id, practitioner.id)
    return ConsultationService(db).get_room(subscription.room_id, client_user)


def test_sender_type_by_role(client_user, practitioner, admin):
    assert sender_type_for(client_user) == SenderType.CLIENT
    assert sender_type_for(practitioner) == SenderType.PRACTITIONER
    assert sender_type_for(admin) == SenderType.PRACTITIONER


def test_send_then_list_in_order(db, room, client_user, practitioner):
    service = ConsultationService(db)

    sent = service.send_message(room.id, client_user, "  Hello, I have a question  ")
    reply = service.send_message(room.id, practitioner, "Happy to help")

    assert sent.content == "Hello, I have a question"
    assert sent.sender == str(client_user.id)
    assert sent.sender_type == SenderType.CLIENT.value
    assert sent.read is False

    messages = service.list_messages(room.id, practitioner)
    assert [m.type for m in messages] == [MessageType.SYSTEM.value, MessageType.TEXT.value, MessageType.TEXT.value]
    assert [m.id for m in messages[1:]] == [sent.id, reply.id]
    assert messages[2].sender_type == SenderType.PRACTITIONER.value


def test_mark_read_only_touches_other_party(db, room, client_user, practitioner):
    service = ConsultationService(db)
    sent = service.send_message(room.id, client_user, "Hello")

    # The sender reading the room leaves their own message unread
    assert service.mark_as_read(room.id, client_user) == 1
    db.expire_all()
    assert db.get(Message, sent.id).read is False
    assert service.unread_count(room.id, practitioner) == 1

    assert service.mark_as_read(room.id, practitioner) == 1
    db.expire_all()
    assert db.get(Message, sent.id).read is True
    assert service.unread_count(room.id, practitioner) == 0
    assert service.mark_as_read(room.id, practitioner) == 0


@pytest.mark.parametrize("content", ["", "   \n\t", "\x00\x01"])
def test_empty_message_rejected(db, room, client_user, content):
    with pytest.raises(ValidationError):
        ConsultationService(db).send_message(room.id, client_user, content)


def test_too_long_message_rejected(db, room, client_user):
    with pytest.raises(ValidationError):
        ConsultationService(db).send_message(room.id, client_user, "a" * (MESSAGE_MAX_LENGTH + 1))


def test_non_member_cannot_read_or_post(db, room, other_client, admin):
    service = ConsultationService(db)

    with pytest.raises(AuthorizationError):
        service.list_messages(room.id, other_client)
    with pytest.raises(AuthorizationError):
        service.send_message(room.id, other_client, "Hi")

    assert service.get_room(room.id, admin).id == room.id
    with pytest.raises(NotFoundError):
        service.get_room("no-such-room", admin)


def test_closed_room_rejects_messages(db, room, client_user):
    SubscriptionService(db).pause(room.subscription_id, client_user)

    with pytest.raises(InvalidStateError):
        ConsultationService(db).send_message(room.id, client_user, "Still there?")


def test_update_settings(db, room, client_user, practitioner):
    service = ConsultationService(db)

    updated = service.update_settings(room.id, client_user, {"allowVideoCall": False})
    assert updated.settings["allowVideoCall"] is False
    assert updated.settings["notificationsEnabled"] is True

    with pytest.raises(AuthorizationError):
        service.update_settings(room.id, practitioner, {"allowVideoCall": True})
    with pytest.raises(ValidationError):
        service.update_settings(room.id, client_user, {"allowScreenShare": True})


def test_room_listing_by_role(db, room, client_user, other_client, practitioner, admin):
    service = ConsultationService(db)

    assert [r.id for r in service.list_rooms_for_user(client_user)] == [room.id]
    assert [r.id for r in service.list_rooms_for_user(practitioner)] == [room.id]
    assert [r.id for r in service.list_rooms_for_user(admin)] == [room.id]
    assert service.list_rooms_for_user(other_client) == []


def test_iter_messages_restarts_each_time(db, room, client_user):
    service = ConsultationService(db)
    service.send_message(room.id, client_user, "One")

    assert len(list(service.iter_messages(room.id))) == 2
    assert len(list(service.iter_messages(room.id))) == 2


# HTTP surface


def test_messages_over_http(client, room, client_user, practitioner, other_client):
    response = client.post(
        f"/consultations/rooms/{room.id}/messages", json={"content": "Hello"}, headers=as_user(client_user)
    )
    assert response.status_code == 201
    message = response.json()
    assert message["read"] is False
    assert message["senderType"] == "client"

    # Sender's own view does not mark the message read
    history = client.get(f"/consultations/rooms/{room.id}/messages", headers=as_user(client_user)).json()
    assert history[-1]["id"] == message["id"]
    assert history[-1]["read"] is False

    unread = client.get(f"/consultations/rooms/{room.id}/unread", headers=as_user(practitioner)).json()
    assert unread["unread"] == 1

    history = client.get(f"/consultations/rooms/{room.id}/messages", headers=as_user(practitioner)).json()
    assert all(m["read"] for m in history)

    response = client.get(f"/consultations/rooms/{room.id}/messages", headers=as_user(other_client))
    assert response.status_code == 403
    assert response.json()["error"] == "authorization_error"


def test_message_validation_over_http(client, room, client_user):
    response = client.post(
        f"/consultations/rooms/{room.id}/messages", json={"content": "   "}, headers=as_user(client_user)
    )
    assert response.status_code == 400

    response = client.post(
        f"/consultations/rooms/{room.id}/messages",
        json={"content": "x" * (MESSAGE_MAX_LENGTH + 1)},
        headers=as_user(client_user),
    )
    assert response.status_code == 400

    response = client.post("/consultations/rooms/missing/messages", json={"content": "Hi"}, headers=as_user(client_user))
    assert response.status_code == 404


def test_message_rate_limit(client, room, client_user):
    headers = as_user(client_user)

    for i in range(MESSAGE_RATE_LIMIT):
        response = client.post(f"/consultations/rooms/{room.id}/messages", json={"content": f"#{i}"}, headers=headers)
        assert response.status_code == 201

    response = client.post(f"/consultations/rooms/{room.id}/messages", json={"content": "one more"}, headers=headers)
    assert response.status_code == 429


def test_settings_over_http(client, room, client_user, practitioner):
    response = client.patch(
        f"/consultations/rooms/{room.id}/settings",
        json={"allowFileSharing": False},
        headers=as_user(client_user),
    )
    assert response.status_code == 200
    assert response.json()["settings"]["allowFileSharing"] is False

    response = client.patch(
        f"/consultations/rooms/{room.id}/settings", json={"allowFileSharing": True}, headers=as_user(practitioner)
    )
    assert response.status_code == 403
