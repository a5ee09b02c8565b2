"""
Test that concurrent admission never oversells an event.

Each worker thread gets its own session on a file-backed SQLite database, so
the only thing keeping them apart is the per-event lock and version claim.
"""
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.exceptions import ConflictError, ValidationError
from app.crud.requests import count_confirmed
from app.database.db import Base
from app.models.categories import Category
from app.models.events import Event, EventState
from app.models.requests import ParticipationRequest, RequestStatus
from app.models.users import User
from app.services.requests import cancel_request, create_request, process_requests


@pytest.fixture
def threaded_sessions(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'race.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


def _seed(Session, *, guests: int, capacity: int, moderation_required: bool) -> tuple[int, int, list[int]]:
    """Create an organizer, a published event and ``guests`` users; return their ids."""
    db = Session()
    try:
        organizer = User(name="organizer", email="organizer@example.com")
        category = Category(name="Races")
        db.add_all([organizer, category])
        db.flush()
        event = Event(
            title="Last seat",
            annotation="Only a handful of seats left",
            description="Whoever is first gets the seat, everyone else waits.",
            category_id=category.id,
            event_date=datetime.now(timezone.utc) + timedelta(days=1),
            lat=0.0,
            lon=0.0,
            capacity=capacity,
            moderation_required=moderation_required,
            state=EventState.PUBLISHED.value,
            initiator_id=organizer.id,
            published_on=datetime.now(timezone.utc),
        )
        users = [User(name=f"guest{i}", email=f"guest{i}@example.com") for i in range(guests)]
        db.add(event)
        db.add_all(users)
        db.commit()
        return organizer.id, event.id, [user.id for user in users]
    finally:
        db.close()


def _register(Session, user_id: int, event_id: int) -> str:
    db = Session()
    try:
        return create_request(db, requester_id=user_id, event_id=event_id).status
    except ConflictError:
        return "conflict"
    finally:
        db.close()


def test_last_seat_goes_to_exactly_one(threaded_sessions):
    organizer_id, event_id, guest_ids = _seed(threaded_sessions, guests=10, capacity=1, moderation_required=False)

    with ThreadPoolExecutor(max_workers=10) as executor:
        futures = [executor.submit(_register, threaded_sessions, guest_id, event_id) for guest_id in guest_ids]
        results = [f.result() for f in futures]

    assert results.count(RequestStatus.CONFIRMED.value) == 1
    assert results.count("conflict") == 9

    db = threaded_sessions()
    try:
        assert count_confirmed(db, event_id) == 1
        assert db.query(ParticipationRequest).count() == 1
    finally:
        db.close()


def test_two_concurrent_registrations_for_one_seat(threaded_sessions):
    organizer_id, event_id, guest_ids = _seed(threaded_sessions, guests=2, capacity=1, moderation_required=False)

    with ThreadPoolExecutor(max_workers=2) as executor:
        results = list(executor.map(lambda guest_id: _register(threaded_sessions, guest_id, event_id), guest_ids))

    assert sorted(results) == sorted([RequestStatus.CONFIRMED.value, "conflict"])


def test_capacity_holds_under_mixed_load(threaded_sessions):
    """Registrations racing a batch confirmation never push past capacity."""
    organizer_id, event_id, guest_ids = _seed(threaded_sessions, guests=12, capacity=3, moderation_required=True)
    early, late = guest_ids[:6], guest_ids[6:]

    db = threaded_sessions()
    try:
        pending_ids = [create_request(db, requester_id=guest_id, event_id=event_id).id for guest_id in early]
    finally:
        db.close()

    def confirm_batch():
        session = threaded_sessions()
        try:
            return process_requests(
                session,
                organizer_id=organizer_id,
                event_id=event_id,
                request_ids=pending_ids,
                status=RequestStatus.CONFIRMED,
            )
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=7) as executor:
        batch = executor.submit(confirm_batch)
        registrations = [executor.submit(_register, threaded_sessions, guest_id, event_id) for guest_id in late]
        batch.result()
        for f in registrations:
            f.result()

    db = threaded_sessions()
    try:
        assert count_confirmed(db, event_id) == 3
        statuses = [r.status for r in db.query(ParticipationRequest).filter_by(event_id=event_id)]
        assert statuses.count(RequestStatus.CONFIRMED.value) <= 3
    finally:
        db.close()


def test_cancellations_racing_a_batch_are_never_overwritten(threaded_sessions):
    organizer_id, event_id, guest_ids = _seed(threaded_sessions, guests=6, capacity=3, moderation_required=True)

    db = threaded_sessions()
    try:
        owned = {guest_id: create_request(db, requester_id=guest_id, event_id=event_id).id for guest_id in guest_ids}
    finally:
        db.close()

    def confirm_batch():
        session = threaded_sessions()
        try:
            process_requests(
                session,
                organizer_id=organizer_id,
                event_id=event_id,
                request_ids=list(owned.values()),
                status=RequestStatus.CONFIRMED,
            )
        except ValidationError:
            # a cancellation got in first, so the batch is no longer all PENDING
            pass
        finally:
            session.close()

    def cancel(guest_id):
        session = threaded_sessions()
        try:
            return cancel_request(session, requester_id=guest_id, request_id=owned[guest_id]).status
        except ConflictError:
            return "conflict"
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=4) as executor:
        batch = executor.submit(confirm_batch)
        cancels = {guest_id: executor.submit(cancel, guest_id) for guest_id in guest_ids[::2]}
        batch.result()
        outcomes = {guest_id: f.result() for guest_id, f in cancels.items()}

    db = threaded_sessions()
    try:
        for guest_id, outcome in outcomes.items():
            if outcome == RequestStatus.CANCELED.value:
                assert db.get(ParticipationRequest, owned[guest_id]).status == RequestStatus.CANCELED.value
        assert count_confirmed(db, event_id) <= 3
    finally:
        db.close()
