"""Shared fixtures for the notification dispatch tests."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Ensure the project root (which contains the ``app`` package) is importable
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("APP_TIMEZONE", "UTC")

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import reset_settings_cache
from app.domain.entities import Channel, DeliveryOutcome, Notification, NotificationPriority
from app.infrastructure.database import Base, initialize_database
from app.infrastructure.models import UserModel
from app.infrastructure.repositories import (
    NotificationDeliveryRepository,
    NotificationOutboxRepository,
    NotificationRepository,
    PushTokenRepository,
)

reset_settings_cache()


@pytest.fixture()
def engine():
    """Return an in-memory SQLite engine shared across sessions."""

    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    initialize_database(test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def outbox_repo(session) -> NotificationOutboxRepository:
    return NotificationOutboxRepository(session)


@pytest.fixture()
def delivery_repo(session) -> NotificationDeliveryRepository:
    return NotificationDeliveryRepository(session)


@pytest.fixture()
def token_repo(session) -> PushTokenRepository:
    return PushTokenRepository(session)


@pytest.fixture()
def add_user(session):
    def _add(user_id: int, email: str | None = None, *, is_active: bool = True) -> None:
        session.add(UserModel(id=user_id, email=email, is_active=is_active))
        session.commit()

    return _add


@pytest.fixture()
def notification(session) -> Notification:
    """Persist and return a representative notification."""

    return NotificationRepository(session).create(
        title="Algebra - Homework posted",
        content="Solve exercises 1 to 10 <before> Friday & bring notes.",
        notification_type="class_update_homework",
        priority=NotificationPriority.HIGH,
        action_url="class/42",
        action_data={"class_id": 42, "update_id": 7},
    )


def make_notification(**overrides) -> Notification:
    values = {
        "id": 1,
        "title": "Title",
        "content": "Content",
        "notification_type": "announcement",
        "priority": NotificationPriority.NORMAL,
        "created_at": datetime(2024, 5, 1, 8, 30, tzinfo=timezone.utc),
    }
    values.update(overrides)
    return Notification(**values)


class FakeClock:
    """Deterministic clock that can be advanced by tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime.now(timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@dataclass
class StubProvider:
    """Channel provider returning scripted outcomes or raising scripted errors."""

    channel: Channel
    outcomes: list = field(default_factory=list)
    error_classifier: object | None = None
    calls: list = field(default_factory=list)

    def send(self, user_id: int, notification: Notification) -> DeliveryOutcome:
        self.calls.append((user_id, notification.id))
        outcome = self.outcomes.pop(0) if self.outcomes else DeliveryOutcome.SENT
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome
