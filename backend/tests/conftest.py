"""
Shared fixtures: an in-memory database per test and a TestClient wired to it.

Integration settings are blanked before the app is imported so a local .env
never leaks secrets or a real database into the test run.
"""

import os

for _name in (
    "ELEVENLABS_WEBHOOK_SECRET",
    "ELEVENLABS_API_KEY",
    "TWILIO_ACCOUNT_SID",
    "TWILIO_AUTH_TOKEN",
    "TWILIO_PHONE_NUMBER",
    "OPS_ALERT_PHONE",
    "DEFAULT_OWNER_ID",
):
    os.environ[_name] = ""
os.environ["DATABASE_URL"] = "sqlite://"

from datetime import timedelta  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app import models  # noqa: E402,F401
from app.api.call_complete import get_call_alert_notifier, get_elevenlabs_service  # noqa: E402
from app.database import Base, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models.call_session import CallSession  # noqa: E402
from app.utils.helpers import utc_now  # noqa: E402


class StubEnrichment:
    """Stands in for ElevenLabsService; records lookups."""

    def __init__(self, detail=None, error=None, enabled=True):
        self.detail = detail or {}
        self.error = error
        self.enabled = enabled
        self.calls = []

    def can_enrich(self):
        return self.enabled

    async def get_conversation(self, conversation_id):
        self.calls.append(conversation_id)
        if self.error is not None:
            raise self.error
        return self.detail

    async def aclose(self):
        return None


class RecordingNotifier:
    """Stands in for CallAlertNotifier; keeps every alert it is handed."""

    def __init__(self):
        self.alerts = []

    async def notify(self, alert):
        self.alerts.append(alert)
        return True


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def enrichment():
    return StubEnrichment(enabled=False)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def client(session_factory, enrichment, notifier):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_elevenlabs_service] = lambda: enrichment
    app.dependency_overrides[get_call_alert_notifier] = lambda: notifier
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_placeholder(db):
    """Insert a call-start placeholder session (duration 0)."""

    def _make(minutes_ago=5, **fields):
        fields.setdefault("duration_seconds", 0)
        fields.setdefault("call_direction", "inbound")
        session = CallSession(call_started_at=utc_now() - timedelta(minutes=minutes_ago), **fields)
        db.add(session)
        db.commit()
        db.refresh(session)
        return session

    return _make
