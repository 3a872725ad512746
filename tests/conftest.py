import os
import uuid

# Configure before the app (and its engine) is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REDIS_ENABLED"] = "false"
os.environ["RESEND_API_KEY"] = ""
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["DEFAULT_ADMIN_EMAIL"] = "owner@ekahhealth.com"

import pytest
from fastapi import Depends, HTTPException, Request
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from app import rate_limiter
from app.auth import get_current_user
from app.database import Base, SessionLocal, build_engine, engine, get_db
from app.main import app
from app.models import Program, ProgramCategory, User, UserRole
from app.services.meeting_service import MeetingProvider, get_meeting_provider

TEST_USER_HEADER = "X-Test-User"


class FakeMeetingProvider(MeetingProvider):
    def __init__(self):
        self.calls = []

    def create_meeting_link(self, booking_id, patient_name, date, time_):
        self.calls.append(booking_id)
        return f"https://meet.test/{booking_id}"


def current_user_from_header(request: Request, db: Session = Depends(get_db)) -> User:
    """Resolve the acting user from a test header instead of a Firebase token"""
    user_id = request.headers.get(TEST_USER_HEADER)
    if not user_id:
        raise HTTPException(status_code=401, detail="Not authenticated")
    user = db.get(User, int(user_id))
    request.state.user_id = user.id
    return user


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def meeting_provider():
    return FakeMeetingProvider()


@pytest.fixture
def client(db, meeting_provider):
    app.dependency_overrides[get_current_user] = current_user_from_header
    app.dependency_overrides[get_meeting_provider] = lambda: meeting_provider
    with_client = TestClient(app)
    yield with_client
    app.dependency_overrides.clear()


def as_user(user: User) -> dict:
    return {TEST_USER_HEADER: str(user.id)}


@pytest.fixture
def make_user(db):
    def _make_user(email=None, role=UserRole.CLIENT, full_name="Test User", verified=True):
        user = User(
            firebase_uid=uuid.uuid4().hex[:28],
            email=email or f"{uuid.uuid4().hex[:8]}@ekahhealth.com",
            full_name=full_name,
            role=role.value,
            email_verified=verified,
            subscriptions=[],
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def client_user(make_user):
    return make_user(email="maya@ekahhealth.com", full_name="Maya Patel")


@pytest.fixture
def other_client(make_user):
    return make_user(email="leo@ekahhealth.com", full_name="Leo Brandt")


@pytest.fixture
def practitioner(make_user):
    return make_user(email="dr.rao@ekahhealth.com", role=UserRole.PRACTITIONER, full_name="Dr. Anika Rao")


@pytest.fixture
def admin(make_user):
    return make_user(email="admin@ekahhealth.com", role=UserRole.ADMIN, full_name="Clinic Admin")


@pytest.fixture
def make_program(db):
    def _make_program(title="Holistic Reset", is_active=True, **overrides):
        values = {
            "title": title,
            "category": ProgramCategory.HOLISTIC.value,
            "description": "Eight weeks of guided wellness coaching",
            "price": 120.0,
            "original_price": 150.0,
            "duration_label": "2 months",
            "sessions_included": 8,
            "practitioner_type": "Nutritionist",
            "features": ["Weekly video session", "Private chat"],
            "benefits": ["Better sleep"],
            "is_active": is_active,
        }
        values.update(overrides)
        program = Program(**values)
        db.add(program)
        db.commit()
        db.refresh(program)
        return program

    return _make_program


@pytest.fixture
def program(make_program):
    return make_program()


@pytest.fixture
def file_sessions(tmp_path):
    """Sessionmaker over a file-backed database so two sessions hold separate connections"""
    file_engine = build_engine(f"sqlite:///{tmp_path}/concurrency.db")
    Base.metadata.create_all(bind=file_engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=file_engine)
    yield factory
    Base.metadata.drop_all(bind=file_engine)
    file_engine.dispose()


@pytest.fixture(autouse=True)
def reset_rate_limits():
    # User ids restart with every fresh database
    rate_limiter.memory_cache.clear()
    yield
    rate_limiter.memory_cache.clear()
