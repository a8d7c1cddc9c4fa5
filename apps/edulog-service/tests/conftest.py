import os
import uuid
from datetime import date, time, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from edulog.db import database, models
from edulog.db.database import SessionLocal, engine
from edulog.security.rate_limiter import reset_rate_limiter_for_tests
from edulog.services import email_service as email_module


ADMIN_EMAIL = "admin@example.com"


@pytest.fixture(scope="session", autouse=True)
def create_schema_once():
    """Create all tables once per test session (SQLite in-memory resets per process)."""
    try:
        models.Base.metadata.create_all(bind=engine)
    except OperationalError as e:
        pytest.exit(f"Failed to create test schema: {e}")
    yield
    models.Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_data():
    """Empty every table between tests without dropping the schema."""
    connection = engine.connect()
    trans = connection.begin()
    for table in reversed(models.Base.metadata.sorted_tables):
        connection.execute(table.delete())
    trans.commit()
    connection.close()
    yield


@pytest.fixture(autouse=True)
def _test_env(monkeypatch):
    monkeypatch.setenv("ADMIN_EMAILS", ADMIN_EMAIL)
    monkeypatch.setenv("RATE_LIMIT_ENABLED", "false")
    monkeypatch.setenv("APP_BASE_URL", "http://localhost:3000")
    monkeypatch.delenv("DEV_MODE", raising=False)
    for var in ("SMTP_HOST", "SMTP_USERNAME", "SMTP_PASSWORD"):
        monkeypatch.delenv(var, raising=False)
    reset_rate_limiter_for_tests()
    email_module.reset_email_service_for_tests()
    yield
    reset_rate_limiter_for_tests()
    email_module.reset_email_service_for_tests()


@pytest.fixture
def db_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client(db_session):
    from edulog.api.main import app

    def _override_get_db():
        yield db_session

    app.dependency_overrides[database.get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(database.get_db, None)


class RecordingEmailService(email_module.EmailService):
    """Renders the real templates but keeps messages in memory instead of using SMTP."""

    def __init__(self):
        super().__init__(email_module.EmailServiceConfig())
        self.sent = []
        self.fail = False

    async def send_email(self, to_email, subject, html_content, text_content=None, reply_to=None, attachments=None):
        if self.fail:
            return {'success': False, 'error': 'smtp down'}
        self.sent.append({
            'to': to_email,
            'subject': subject,
            'html': html_content,
            'text': text_content,
            'attachments': attachments or [],
        })
        return {'success': True, 'message_id': f"<msg-{len(self.sent)}@test>"}


@pytest.fixture
def email_outbox(monkeypatch):
    service = RecordingEmailService()
    monkeypatch.setattr(email_module, "get_email_service", lambda: service)
    return service


@pytest.fixture
def identity_factory(db_session: Session):
    def _create(email: str = None, *, full_name: str = None, role: str = 'member',
                is_superadmin: bool = False, preferred_language: str = 'ko', nickname: str = None):
        email = email or f"user-{uuid.uuid4().hex[:8]}@example.com"
        identity = models.Identity(
            email=email,
            full_name=full_name,
            role=role,
            is_superadmin=is_superadmin,
            preferred_language=preferred_language,
        )
        db_session.add(identity)
        db_session.flush()
        db_session.add(models.UserProfile(user_id=identity.id, email=email, full_name=full_name,
                                          nickname=nickname, role=role))
        db_session.commit()
        db_session.refresh(identity)
        return identity
    return _create


@pytest.fixture
def appointment_type_factory(db_session: Session):
    def _create(instructor, type_name: str = "1:1 상담", duration_minutes: int = 60, price: int = 50000):
        appointment_type = models.AppointmentType(
            instructor_id=instructor.id,
            type_name=type_name,
            duration_minutes=duration_minutes,
            price=price,
        )
        db_session.add(appointment_type)
        db_session.commit()
        db_session.refresh(appointment_type)
        return appointment_type
    return _create


@pytest.fixture
def appointment_factory(db_session: Session, appointment_type_factory):
    def _create(user, instructor, *, days_ahead: int = 7, start: time = time(14, 0), end: time = time(15, 0),
                status: str = 'pending', meeting_type: str = 'online', meeting_link: str = "https://meet.example.com/abc",
                meeting_location: str = None, title: str = "수학 과외", appointment_type=None, **extra):
        appointment_type = appointment_type or appointment_type_factory(instructor)
        appointment = models.Appointment(
            user_id=user.id,
            instructor_id=instructor.id,
            appointment_type_id=appointment_type.id,
            appointment_date=date.today() + timedelta(days=days_ahead),
            start_time=start,
            end_time=end,
            duration_minutes=int((end.hour * 60 + end.minute) - (start.hour * 60 + start.minute)),
            title=title,
            status=status,
            meeting_type=meeting_type,
            meeting_link=meeting_link,
            meeting_location=meeting_location,
            **extra,
        )
        db_session.add(appointment)
        db_session.commit()
        db_session.refresh(appointment)
        return appointment
    return _create


@pytest.fixture
def booking(identity_factory, appointment_factory):
    """A student, an instructor and a pending appointment a week out."""
    student = identity_factory("student@example.com", full_name="김학생")
    instructor = identity_factory("teacher@example.com", full_name="이강사", role='instructor')
    appointment = appointment_factory(student, instructor)
    return student, instructor, appointment


def _h(user: str = "student", email: str = "student@example.com"):
    return {"x-auth-request-user": user, "x-auth-request-email": email}


@pytest.fixture
def auth_headers():
    return _h


def pytest_collection_modifyitems(config, items):
    if os.getenv("SKIP_DOCKER_TESTS") != "1":
        return
    skip = pytest.mark.skip(reason="SKIP_DOCKER_TESTS=1")
    for item in items:
        if "e2e" in item.keywords:
            item.add_marker(skip)
