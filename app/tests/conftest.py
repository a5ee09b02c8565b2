import os

# Keep the application's own engine off disk while the test suite imports it
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, timedelta, timezone
from itertools import count

import fakeredis
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import Engine, StaticPool, create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.session import Session

from app.core import redis_config
from app.core.celery_config import celery_app
from app.database.db import Base, get_db
from app.main import app
from app.models.categories import Category
from app.models.events import Event, EventState
from app.models.users import User

# Use an in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
engine: Engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(autouse=True)
def setup_database():
    """Give every test empty tables."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


# Override the database dependency
def override_get_db():
    db: Session = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture
def db_session():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def fake_redis():
    server = fakeredis.FakeServer()
    return fakeredis.FakeRedis(server=server, decode_responses=True)


@pytest.fixture(autouse=True)
def redis_client(fake_redis, monkeypatch: pytest.MonkeyPatch):
    """Route event locks and view counters to fakeredis."""
    monkeypatch.setattr(redis_config, "get_redis_client", lambda: fake_redis)
    return fake_redis


@pytest.fixture(autouse=True)
def eager_celery():
    celery_app.conf.task_always_eager = True
    yield
    celery_app.conf.task_always_eager = False


@pytest.fixture
def make_user(db_session: Session):
    numbers = count(1)

    def _make(name: str = "") -> User:
        number = next(numbers)
        user = User(name=name or f"user{number}", email=f"user{number}@example.com")
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def category(db_session: Session) -> Category:
    category = Category(name="Concerts")
    db_session.add(category)
    db_session.commit()
    db_session.refresh(category)
    return category


@pytest.fixture
def make_event(db_session: Session, category: Category):
    """Insert an event directly, published unless told otherwise."""

    def _make(
        initiator: User,
        *,
        capacity: int = 0,
        moderation_required: bool = True,
        state: EventState = EventState.PUBLISHED,
    ) -> Event:
        now = datetime.now(timezone.utc)
        event = Event(
            title="Open air",
            annotation="An evening of music in the park",
            description="Bring a blanket, the concert starts at sunset.",
            category_id=category.id,
            event_date=now + timedelta(days=7),
            lat=55.75,
            lon=37.61,
            paid=False,
            capacity=capacity,
            moderation_required=moderation_required,
            state=state.value,
            initiator_id=initiator.id,
            published_on=now if state == EventState.PUBLISHED else None,
        )
        db_session.add(event)
        db_session.commit()
        db_session.refresh(event)
        return event

    return _make


@pytest.fixture
def event_payload(category: Category) -> dict:
    return {
        "title": "Open air",
        "annotation": "An evening of music in the park",
        "description": "Bring a blanket, the concert starts at sunset.",
        "category": category.id,
        "event_date": (datetime.now(timezone.utc) + timedelta(days=3)).isoformat(),
        "location": {"lat": 55.75, "lon": 37.61},
        "capacity": 2,
        "moderation_required": True,
    }
