"""
Shared pytest fixtures.

Uses a file-backed SQLite database so no Postgres is required for tests.
Every table is emptied after each test: the batch analyzer reads all active
activities across all users, so tests must not see each other's rows.
"""
import json
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from lastmove.db.base import Base, get_db
from lastmove.main import app
from lastmove.models import (
    Activity,
    Move,
    Notification,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
    User,
    UserNotificationSettings,
)
from lastmove.services.push import PushResponse, PushTransport, get_push_transport
from lastmove.services.urgency import as_utc

SQLITE_URL = "sqlite:///./test_lastmove.db"

KST = ZoneInfo("Asia/Seoul")

engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def kst(year, month, day, hour=0, minute=0) -> datetime:
    """Aware datetime at a Seoul wall-clock time."""
    return datetime(year, month, day, hour, minute, tzinfo=KST)


class FakeTransport(PushTransport):
    """In-memory push transport that records every send."""

    def __init__(self):
        self.calls: list[dict] = []
        self.status_code = 201
        self.status_for: dict[str, int] = {}
        self.raise_for: set[str] = set()
        self.missing: list[str] = []

    def missing_config(self) -> list[str]:
        return list(self.missing)

    def send(self, subscription, payload, ttl_seconds, urgency):
        endpoint = subscription["endpoint"]
        self.calls.append({
            "endpoint": endpoint,
            "payload": json.loads(payload),
            "ttl_seconds": ttl_seconds,
            "urgency": urgency,
        })
        if endpoint in self.raise_for:
            raise ConnectionError("push service unreachable")
        return PushResponse(status_code=self.status_for.get(endpoint, self.status_code))


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session", autouse=True)
def create_tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_tables():
    yield
    db = TestingSessionLocal()
    try:
        for table in reversed(Base.metadata.sorted_tables):
            db.execute(table.delete())
        db.commit()
    finally:
        db.close()


@pytest.fixture()
def db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def transport():
    return FakeTransport()


@pytest.fixture()
def client(db, transport):
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_push_transport] = lambda: transport
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Row factories
# ---------------------------------------------------------------------------

@pytest.fixture()
def make_user(db):
    counter = {"n": 0}

    def _make(subscribed: bool = True, subscription: str | None = None, **toggles) -> User:
        """`toggles` are UserNotificationSettings columns, e.g. long_inactive_days=3."""
        counter["n"] += 1
        user = User(email=f"user{counter['n']}@example.com", name=f"User {counter['n']}")
        db.add(user)
        db.flush()
        if subscribed or subscription is not None or toggles:
            raw = subscription
            if raw is None and subscribed:
                raw = json.dumps({
                    "endpoint": f"https://push.example.com/send/{user.id}",
                    "keys": {"p256dh": "BPubKey", "auth": "authsecret"},
                })
            db.add(UserNotificationSettings(user_id=user.id, push_subscription=raw, **toggles))
        db.commit()
        return user

    return _make


@pytest.fixture()
def make_activity(db):
    def _make(
        user: User,
        unit: str = "weeks",
        value: int = 1,
        last_executed_at: datetime | None = None,
        title: str = "Exercise",
        is_active: bool = True,
    ) -> Activity:
        activity = Activity(
            user_id=user.id,
            title=title,
            frequency_value=value,
            frequency_unit=unit,
            is_active=is_active,
        )
        db.add(activity)
        db.flush()
        if last_executed_at is not None:
            # SQLite keeps wall-clock values only, so store UTC
            last_executed_at = as_utc(last_executed_at)
            # an older move too, so the analyzer has to pick the latest
            db.add(Move(activity_id=activity.id, executed_at=last_executed_at - timedelta(days=30)))
            db.add(Move(activity_id=activity.id, executed_at=last_executed_at))
        db.commit()
        return activity

    return _make


@pytest.fixture()
def make_notification(db):
    def _make(
        user: User,
        priority: NotificationPriority = NotificationPriority.normal,
        scheduled_at: datetime | None = None,
        retry_count: int = 0,
        status: NotificationStatus = NotificationStatus.pending,
        title: str = "Exercise reminder",
        claimed_at: datetime | None = None,
    ) -> Notification:
        n = Notification(
            user_id=user.id,
            type=NotificationType.daily_reminder,
            priority=priority,
            status=status,
            title=title,
            body="Your weekly activity is coming due.",
            data=json.dumps({"activity_id": 1, "urgency_percent": 85.0}),
            scheduled_at=as_utc(scheduled_at or kst(2026, 3, 10, 19, 0)),
            retry_count=retry_count,
            is_sent=False,
            claimed_at=as_utc(claimed_at) if claimed_at else None,
        )
        db.add(n)
        db.commit()
        return n

    return _make
