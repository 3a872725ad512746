import pytest

from app.domain.setup.service import SetupService, check_system_initialized
from app.errors import AuthorizationError
from app.models import User, UserRole
from tests.conftest import as_user


@pytest.fixture
def owner(make_user):
    return make_user(email="owner@ekahhealth.com", full_name="Clinic Owner")


def test_fresh_system_is_not_initialized(db):
    assert check_system_initialized(db) is False
    status = SetupService(db).get_status()
    assert status == {"initialized": False, "initializedAt": None, "initializedBy": None, "adminCount": 0}


def test_default_admin_initializes_and_is_promoted(db, owner, client_user):
    status = SetupService(db).initialize_system(owner)

    assert status["initialized"] is True
    assert status["initializedBy"] == owner.email
    assert status["adminCount"] == 1
    db.refresh(owner)
    db.refresh(client_user)
    assert owner.role == UserRole.ADMIN.value
    assert client_user.role == UserRole.CLIENT.value


def test_stranger_cannot_initialize_before_default_admin_signs_in(db, make_user):
    stranger = make_user(email="stranger@ekahhealth.com", verified=False)
    verified_stranger = make_user(email="someone@ekahhealth.com")

    with pytest.raises(AuthorizationError):
        SetupService(db).initialize_system(stranger)
    with pytest.raises(AuthorizationError):
        SetupService(db).initialize_system(verified_stranger)

    db.refresh(stranger)
    db.refresh(verified_stranger)
    assert stranger.role == UserRole.CLIENT.value
    assert verified_stranger.role == UserRole.CLIENT.value
    assert check_system_initialized(db) is False


def test_caller_becomes_first_admin_without_default(db, client_user, monkeypatch):
    monkeypatch.setattr("app.domain.setup.service.DEFAULT_ADMIN_EMAIL", "")

    SetupService(db).initialize_system(client_user)

    db.refresh(client_user)
    assert client_user.role == UserRole.ADMIN.value
    assert check_system_initialized(db) is True


def test_unverified_caller_is_never_promoted(db, make_user, monkeypatch):
    monkeypatch.setattr("app.domain.setup.service.DEFAULT_ADMIN_EMAIL", "")
    unverified = make_user(email="fresh@ekahhealth.com", verified=False)

    with pytest.raises(AuthorizationError):
        SetupService(db).initialize_system(unverified)

    db.refresh(unverified)
    assert unverified.role == UserRole.CLIENT.value


def test_initialize_is_idempotent(db, owner, other_client):
    service = SetupService(db)
    first = service.initialize_system(owner)

    second = service.initialize_system(other_client)

    assert second == first
    assert db.query(User).filter(User.role == UserRole.ADMIN.value).count() == 1


def test_existing_admins_guard_initialization(db, admin, client_user):
    with pytest.raises(AuthorizationError):
        SetupService(db).initialize_system(client_user)

    assert SetupService(db).initialize_system(admin)["initialized"] is True


def test_existing_admin_initializes_and_promotes_default(db, admin, owner):
    status = SetupService(db).initialize_system(admin)

    db.refresh(owner)
    assert owner.role == UserRole.ADMIN.value
    assert status["adminCount"] == 2


def test_reset_clears_flag_but_keeps_admins(db, owner):
    service = SetupService(db)
    service.initialize_system(owner)

    status = service.reset_system()

    assert status["initialized"] is False
    assert status["adminCount"] == 1


def test_setup_over_http(client, owner, client_user, make_user):
    assert client.get("/setup/status").json()["initialized"] is False

    unverified = make_user(email="unverified@ekahhealth.com", verified=False)
    assert client.post("/setup/initialize", headers=as_user(unverified)).status_code == 403
    assert client.post("/setup/initialize", headers=as_user(client_user)).status_code == 403

    response = client.post("/setup/initialize", headers=as_user(owner))
    assert response.status_code == 200
    assert response.json()["initialized"] is True

    assert client.post("/setup/reset", headers=as_user(client_user)).status_code == 403
    assert client.post("/setup/reset", headers=as_user(owner)).json()["initialized"] is False
