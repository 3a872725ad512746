import pytest

from app.domain.catalog.schemas import CATEGORY_STYLES, ProgramCreate, ProgramResponse, ProgramUpdate
from app.domain.catalog.service import CatalogService, validate_program_values
from app.errors import NotFoundError, ValidationError
from app.models import Program, ProgramCategory
from tests.conftest import as_user


def new_program(**overrides) -> ProgramCreate:
    values = {
        "title": "Cycle Sync",
        "category": ProgramCategory.WOMEN_HEALTH,
        "price": 89.0,
        "originalPrice": 110.0,
        "durationLabel": "1 month",
        "sessionsIncluded": 4,
        "practitionerType": "Gynecologist",
        "features": ["Hormone review"],
    }
    values.update(overrides)
    return ProgramCreate(**values)


@pytest.mark.parametrize(
    "title, price, original_price, sessions",
    [
        ("", 10.0, None, 1),
        ("Plan", -1.0, None, 1),
        ("Plan", 100.0, 80.0, 1),
        ("Plan", 100.0, None, 0),
    ],
)
def test_invalid_program_values(title, price, original_price, sessions):
    with pytest.raises(ValidationError):
        validate_program_values(title, price, original_price, sessions)


def test_create_program_sets_values(db):
    program = CatalogService(db).create_program(new_program(title="  Cycle Sync  "))

    assert program.title == "Cycle Sync"
    assert program.category == "women-health"
    assert program.original_price == 110.0
    assert program.sessions_included == 4
    assert program.is_active is True


def test_style_follows_category(db):
    program = CatalogService(db).create_program(new_program(title="Mindful Group", category=ProgramCategory.GROUP))

    response = ProgramResponse.from_model(program)

    assert response.style.icon == CATEGORY_STYLES[ProgramCategory.GROUP]["icon"]
    assert response.style.color == "#95A5A6"


def test_list_hides_inactive_and_orders_popular_first(db, make_program):
    make_program(title="Alpha")
    make_program(title="Zen", popular=True)
    make_program(title="Beta", is_active=False)

    service = CatalogService(db)

    assert [p["title"] for p in service.list_programs()] == ["Zen", "Alpha"]
    assert [p["title"] for p in service.list_programs(active_only=False)] == ["Zen", "Alpha", "Beta"]


def test_partial_update_keeps_other_fields(db, program):
    service = CatalogService(db)

    updated = service.update_program(program.id, ProgramUpdate(price=130.0))

    assert updated.price == 130.0
    assert updated.title == "Holistic Reset"
    assert updated.original_price == 150.0


def test_update_validates_against_stored_values(db, program):
    with pytest.raises(ValidationError):
        CatalogService(db).update_program(program.id, ProgramUpdate(price=200.0))

    db.refresh(program)
    assert program.price == 120.0


def test_update_can_clear_original_price(db, program):
    updated = CatalogService(db).update_program(program.id, ProgramUpdate(originalPrice=None))

    assert updated.original_price is None
    assert updated.price == 120.0


def test_update_cannot_clear_required_fields(db, program):
    with pytest.raises(ValidationError):
        CatalogService(db).update_program(program.id, ProgramUpdate(title=None))

    db.refresh(program)
    assert program.title == "Holistic Reset"


def test_toggle_and_delete(db, program):
    service = CatalogService(db)

    assert service.set_active(program.id, False).is_active is False
    assert service.list_programs() == []

    service.delete_program(program.id)
    assert db.query(Program).count() == 0
    with pytest.raises(NotFoundError):
        service.get_program(program.id)


# HTTP surface


def test_public_catalog(client, make_program):
    make_program(title="Visible")
    make_program(title="Hidden", is_active=False)

    response = client.get("/programs")

    assert response.status_code == 200
    assert [p["title"] for p in response.json()] == ["Visible"]
    assert response.json()[0]["style"]["gradient"].startswith("linear-gradient")


def test_admin_writes(client, admin, client_user):
    payload = new_program().model_dump(mode="json")

    assert client.post("/programs", json=payload, headers=as_user(client_user)).status_code == 403

    response = client.post("/programs", json=payload, headers=as_user(admin))
    assert response.status_code == 201
    program_id = response.json()["id"]

    response = client.patch(f"/programs/{program_id}", json={"popular": True}, headers=as_user(admin))
    assert response.json()["popular"] is True

    response = client.patch(f"/programs/{program_id}", json={"originalPrice": None}, headers=as_user(admin))
    assert response.status_code == 200
    assert response.json()["originalPrice"] is None

    response = client.post(f"/programs/{program_id}/active", json={"isActive": False}, headers=as_user(admin))
    assert response.json()["isActive"] is False
    assert client.get("/programs").json() == []
    assert len(client.get("/programs/all", headers=as_user(admin)).json()) == 1

    assert client.delete(f"/programs/{program_id}", headers=as_user(admin)).status_code == 200
    assert client.get(f"/programs/{program_id}").status_code == 404


def test_invalid_program_over_http(client, admin):
    payload = new_program(price=200.0).model_dump(mode="json")

    response = client.post("/programs", json=payload, headers=as_user(admin))

    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"
