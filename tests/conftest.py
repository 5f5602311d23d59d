"""
Pytest configuration and fixtures for the Geo Events API tests.

Provides shared fixtures for:
- A throwaway SQLite database per test
- Users and actors
- Event services wired to recording notifiers
- A ``TestClient`` running the full application
"""

import asyncio
import uuid
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from geo_events_api.app.core.config import settings
from geo_events_api.app.core.db import get_connection, init_db
from geo_events_api.app.core.i18n import Translator
from geo_events_api.app.core.security import hash_password
from geo_events_api.app.schemas.event import EventCreate, GeoPoint
from geo_events_api.app.schemas.user import Actor
from geo_events_api.app.services.event_service import EventService
from geo_events_api.app.services.event_store import EventStore
from geo_events_api.app.services.notification_service import NotificationDispatcher, Notifier


# ============================================================================
# Notifier doubles
# ============================================================================

class RecordingNotifier(Notifier):
    """Keeps every message it is asked to send."""

    def __init__(self):
        self.sent = []

    async def notify(self, recipient, subject, body):
        self.sent.append((recipient, subject, body))
        return True


class FailingNotifier(Notifier):
    async def notify(self, recipient, subject, body):
        raise RuntimeError("mail relay is down")


class SlowNotifier(Notifier):
    async def notify(self, recipient, subject, body):
        await asyncio.sleep(10)
        return True


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def test_database(tmp_path, monkeypatch):
    """Point the application at a fresh database file for each test."""
    monkeypatch.setattr(settings, "database_url", str(tmp_path / "test.db"))
    monkeypatch.setattr(settings, "admin_can_manage_all_events", True)
    init_db()
    yield tmp_path / "test.db"


@pytest.fixture
def create_user():
    """Factory inserting a user row and returning the matching ``Actor``."""

    def _create(email, role="user", name="Test User", password="secret123"):
        user_id = uuid.uuid4().hex
        conn = get_connection()
        try:
            conn.execute(
                "INSERT INTO users (id, name, email, password, role) VALUES (?, ?, ?, ?, ?)",
                (user_id, name, email, hash_password(password), role),
            )
            conn.commit()
        finally:
            conn.close()
        return Actor(id=user_id, email=email, role=role)

    return _create


@pytest.fixture
def alice(create_user):
    return create_user("alice@example.com", name="Alice")


@pytest.fixture
def bob(create_user):
    return create_user("bob@example.com", name="Bob")


@pytest.fixture
def admin(create_user):
    return create_user("admin@example.com", role="admin", name="Admin")


# ============================================================================
# Service Fixtures
# ============================================================================

@pytest.fixture
def store():
    return EventStore()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def dispatcher(notifier):
    return NotificationDispatcher(notifier, Translator("en"), timeout=1.0)


@pytest.fixture
def event_service(store, dispatcher):
    return EventService(store, dispatcher=dispatcher)


@pytest.fixture
def failing_service(store):
    """Service whose notifier raises on every send."""
    dispatcher = NotificationDispatcher(FailingNotifier(), Translator("en"), timeout=1.0)
    return EventService(store, dispatcher=dispatcher)


@pytest.fixture
def slow_service(store):
    """Service whose notifier never answers within the send timeout."""
    dispatcher = NotificationDispatcher(SlowNotifier(), Translator("en"), timeout=0.05)
    return EventService(store, dispatcher=dispatcher)


@pytest.fixture
def make_event():
    """Factory for a complete ``EventCreate`` payload."""

    def _make(**overrides):
        data = {
            "title": "Gig",
            "description": "Live music",
            "category": "music",
            "date": datetime(2025, 6, 1, 19, 0, tzinfo=timezone.utc),
            "location": GeoPoint(longitude=0.0, latitude=0.0),
        }
        data.update(overrides)
        return EventCreate(**data)

    return _make


# ============================================================================
# API Fixtures
# ============================================================================

@pytest.fixture
def client():
    """Client for the full application; startup and shutdown hooks run."""
    from geo_events_api.app.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def register(client):
    """Register a user through the API and return its auth headers."""

    def _register(email, name="Test User", password="secret123"):
        response = client.post(
            "/api/v1/users/register",
            json={"name": name, "email": email, "password": password},
        )
        assert response.status_code == 201, response.text
        body = response.json()
        return {"Authorization": f"Bearer {body['token']}"}, body["user"]

    return _register
