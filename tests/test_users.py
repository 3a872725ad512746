import asyncio

import pytest
from fastapi import HTTPException
from firebase_admin import auth as firebase_auth

from app.auth import resolve_user
from app.domain.users.service import UserService
from app.errors import AuthorizationError, NotFoundError, ValidationError
from app.identity import IdentityProvider, UserHandle, get_identity_provider
from app.main import app
from app.models import User, UserRole
from tests.conftest import as_user


class FakeIdentityProvider(IdentityProvider):
    """Stands in for Firebase: registers locally and checks a fixed password"""

    async def register(self, db, email, password, full_name=None):
        if len(password) < 6:
            raise ValidationError("Password must be at least 6 characters")
        db.add(User(firebase_uid=f"uid-{email}", email=email, full_name=full_name, subscriptions=[]))
        db.commit()
        handle = UserHandle(uid=f"uid-{email}", email=email, display_name=full_name)
        self._emit("registered", handle)
        return handle

    async def login(self, email, password):
        if password != "correct-horse":
            raise AuthorizationError("Invalid email or password")
        handle = UserHandle(uid=f"uid-{email}", email=email, email_verified=True, id_token="token")
        self._emit("signed_in", handle)
        return handle


@pytest.fixture
def identity(client):
    provider = FakeIdentityProvider()
    app.dependency_overrides[get_identity_provider] = lambda: provider
    return provider


def test_resolve_user_creates_then_reuses(db):
    claims = {"sub": "firebase-123", "email": "new@ekahhealth.com", "email_verified": False, "name": "New Person"}

    created = resolve_user(db, claims)
    assert created.role == UserRole.CLIENT.value
    assert created.full_name == "New Person"

    again = resolve_user(db, {**claims, "email_verified": True})
    assert again.id == created.id
    assert again.email_verified is True


def test_resolve_user_links_existing_email(db, client_user):
    user = resolve_user(db, {"sub": "google-uid", "email": client_user.email, "email_verified": True})

    assert user.id == client_user.id
    assert user.firebase_uid == "google-uid"


def test_resolve_user_requires_subject(db):
    with pytest.raises(HTTPException) as exc:
        resolve_user(db, {"email": "x@ekahhealth.com"})
    assert exc.value.status_code == 401


def test_set_role(db, client_user, admin):
    service = UserService(db)

    assert service.set_role(client_user.id, UserRole.PRACTITIONER, admin).role == "practitioner"
    assert [u.id for u in service.list_users(UserRole.PRACTITIONER)] == [client_user.id]

    with pytest.raises(ValidationError):
        service.set_role(admin.id, UserRole.CLIENT, admin)
    with pytest.raises(NotFoundError):
        service.set_role(9999, UserRole.ADMIN, admin)


def test_auth_state_listeners(identity):
    events = []
    unsubscribe = identity.on_auth_state_changed(lambda event, handle: events.append((event, handle.email)))

    identity._emit("signed_in", UserHandle(uid="u1", email="a@ekahhealth.com"))
    unsubscribe()
    identity._emit("signed_out", UserHandle(uid="u1", email="a@ekahhealth.com"))

    assert events == [("signed_in", "a@ekahhealth.com")]


def test_register_and_login_over_http(client, db, identity):
    events = []
    identity.on_auth_state_changed(lambda event, handle: events.append(event))

    response = client.post(
        "/auth/register",
        json={"email": "nina@ekahhealth.com", "password": "correct-horse", "fullName": "Nina Shah"},
    )
    assert response.status_code == 201
    assert response.json()["emailVerified"] is False
    assert db.query(User).filter(User.email == "nina@ekahhealth.com").count() == 1

    response = client.post("/auth/register", json={"email": "short@ekahhealth.com", "password": "123"})
    assert response.status_code == 400

    response = client.post("/auth/login", json={"email": "nina@ekahhealth.com", "password": "wrong"})
    assert response.status_code == 403

    response = client.post("/auth/login", json={"email": "nina@ekahhealth.com", "password": "correct-horse"})
    assert response.status_code == 200
    assert response.json()["idToken"] == "token"
    assert events == ["registered", "signed_in"]


def test_me_and_role_management_over_http(client, client_user, admin):
    me = client.get("/auth/me", headers=as_user(client_user)).json()
    assert me["email"] == client_user.email
    assert me["role"] == "client"

    assert client.get("/users", headers=as_user(client_user)).status_code == 403

    response = client.patch(f"/users/{client_user.id}/role", json={"role": "practitioner"}, headers=as_user(admin))
    assert response.status_code == 200
    assert response.json()["role"] == "practitioner"

    users = client.get("/users", params={"role": "practitioner"}, headers=as_user(admin)).json()
    assert [u["id"] for u in users] == [client_user.id]


def test_current_user_reports_verification(monkeypatch):
    monkeypatch.setattr("app.identity.ensure_firebase_app", lambda: None)
    monkeypatch.setattr(
        "app.identity.firebase_auth.verify_id_token",
        lambda token, check_revoked: {"uid": "u-1", "email": "maya@ekahhealth.com", "email_verified": True},
    )

    handle = IdentityProvider().current_user("id-token")

    assert handle.uid == "u-1"
    assert handle.email_verified is True


def test_resend_verification_refuses_verified_accounts(client_user):
    with pytest.raises(ValidationError):
        asyncio.run(IdentityProvider().resend_verification(client_user))


def test_current_user_rejects_revoked_session(monkeypatch):
    def revoked(token, check_revoked):
        assert check_revoked is True
        raise firebase_auth.RevokedIdTokenError("The Firebase ID token has been revoked.")

    monkeypatch.setattr("app.identity.ensure_firebase_app", lambda: None)
    monkeypatch.setattr("app.identity.firebase_auth.verify_id_token", revoked)

    with pytest.raises(AuthorizationError):
        IdentityProvider().current_user("revoked-token")
