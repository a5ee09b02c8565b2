"""
Event lifecycle: creation, sparse updates and state transitions.

An event starts in PENDING_REVIEW. Its initiator may edit it, send it back
to review or cancel it while it is unpublished; only the admin path can
publish, and only from PENDING_REVIEW. Once PUBLISHED the initiator can no
longer touch it and the admission-relevant fields (capacity, moderation)
are frozen for everyone.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import EVENT_DATE_LEAD_HOURS
from app.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from app.crud import categories as categories_crud
from app.crud import events as events_crud
from app.crud import requests as requests_crud
from app.database.transaction import transaction
from app.models.events import Event, EventState, EventStateAction
from app.schemas.events import EventCreate, EventUpdate
from app.services.categories import get_category_or_404
from app.services.concurrency import event_lock, run_with_retry
from app.services.users import get_user_or_404
from app.services.views import ViewCountClient

logger = logging.getLogger(__name__)

EVENT_DATE_LEAD_TIME = timedelta(hours=EVENT_DATE_LEAD_HOURS)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def validate_event_date(candidate: datetime, now: Optional[datetime] = None) -> None:
    now = _as_utc(now) if now is not None else _utcnow()
    if _as_utc(candidate) < now + EVENT_DATE_LEAD_TIME:
        logger.warning("Rejected event date %s: less than %s before the start.", candidate, EVENT_DATE_LEAD_TIME)
        raise ValidationError(
            "Incorrect start date of the event.",
            detail=f"The event must start at least {EVENT_DATE_LEAD_HOURS} hours from now.",
        )


def _apply_state_action(event: Event, action: EventStateAction, now: datetime) -> None:
    if action is EventStateAction.PUBLISH_EVENT:
        event.state = EventState.PUBLISHED.value
        event.published_on = now
    elif action is EventStateAction.SEND_TO_REVIEW:
        event.state = EventState.PENDING_REVIEW.value
    elif action is EventStateAction.CANCEL_EVENT:
        event.state = EventState.CANCELED.value
    else:
        raise ValueError(f"Unknown state action: {action!r}")


def apply_update(
    event: Event,
    patch: EventUpdate,
    *,
    actor_id: Optional[int] = None,
    as_admin: bool = False,
    now: Optional[datetime] = None,
) -> Event:
    """
    Apply the non-null fields of ``patch`` to ``event`` in memory.

    All checks run before the first field is written, so a rejected patch
    leaves ``event`` untouched. The caller is responsible for checking that
    a new category exists and for persisting the result.
    """
    now = _as_utc(now) if now is not None else _utcnow()
    published = event.state == EventState.PUBLISHED.value

    if not as_admin:
        if actor_id != event.initiator_id:
            raise AuthorizationError("Only the initiator or an administrator can change the event.")
        if published:
            raise StateConflictError("Only events in PENDING_REVIEW or CANCELED state can be changed.")
        if patch.state_action is EventStateAction.PUBLISH_EVENT:
            raise AuthorizationError("Only an administrator can publish an event.")
    else:
        if published and (patch.capacity is not None or patch.moderation_required is not None):
            raise StateConflictError(
                "Admission settings of a published event cannot be changed.",
                detail=f"Event with ID = {event.id} is already published.",
            )
        if patch.state_action is not None and event.state != EventState.PENDING_REVIEW.value:
            raise StateConflictError(
                "Event is already published or canceled.",
                detail=f"Event with ID = {event.id} already published/canceled.",
            )

    if patch.event_date is not None:
        validate_event_date(patch.event_date, now)

    if patch.event_date is not None:
        event.event_date = _as_utc(patch.event_date)
    if patch.title is not None:
        event.title = patch.title
    if patch.annotation is not None:
        event.annotation = patch.annotation
    if patch.description is not None:
        event.description = patch.description
    if patch.category is not None:
        event.category_id = patch.category
    if patch.location is not None:
        if patch.location.lat is not None:
            event.lat = patch.location.lat
        if patch.location.lon is not None:
            event.lon = patch.location.lon
    if patch.paid is not None:
        event.paid = patch.paid
    if patch.capacity is not None:
        event.capacity = patch.capacity
    if patch.moderation_required is not None:
        event.moderation_required = patch.moderation_required

    if patch.state_action is not None:
        _apply_state_action(event, patch.state_action, now)

    return event


def get_event_or_404(db: Session, event_id: int, *, for_update: bool = False) -> Event:
    event = events_crud.get_event(db, event_id, for_update=for_update)
    if event is None:
        raise NotFoundError("Event not found.", detail=f"Event with ID = {event_id} not found.")
    return event


def create_event(db: Session, *, initiator_id: int, payload: EventCreate) -> Event:
    logger.info("A user with ID = %s creates an event %r.", initiator_id, payload.title)
    validate_event_date(payload.event_date)
    with transaction(db):
        get_user_or_404(db, initiator_id)
        get_category_or_404(db, payload.category)
        event = Event(
            title=payload.title,
            annotation=payload.annotation,
            description=payload.description,
            category_id=payload.category,
            event_date=_as_utc(payload.event_date),
            lat=payload.location.lat,
            lon=payload.location.lon,
            paid=payload.paid,
            capacity=payload.capacity,
            moderation_required=payload.moderation_required,
            state=EventState.PENDING_REVIEW.value,
            initiator_id=initiator_id,
            created_on=_utcnow(),
        )
        db.add(event)
        db.flush()
    logger.debug("A user with ID = %s created an event with ID = %s.", initiator_id, event.id)
    return event


def _update_event(db: Session, event_id: int, patch: EventUpdate, *, actor_id: Optional[int], as_admin: bool) -> Event:
    def attempt() -> Event:
        with transaction(db):
            event = get_event_or_404(db, event_id, for_update=True)
            if patch.category is not None and categories_crud.get_category(db, patch.category) is None:
                raise ValidationError(f"Category with ID = {patch.category} does not exist.")
            apply_update(event, patch, actor_id=actor_id, as_admin=as_admin)
            events_crud.claim_event(db, event)
            return event

    with event_lock(event_id):
        event = run_with_retry(attempt)
    logger.debug("Event with ID = %s is now %s.", event.id, event.state)
    return event


def update_event_by_initiator(db: Session, *, user_id: int, event_id: int, patch: EventUpdate) -> Event:
    logger.info("A user with ID = %s updates the event with ID = %s.", user_id, event_id)
    get_user_or_404(db, user_id)
    return _update_event(db, event_id, patch, actor_id=user_id, as_admin=False)


def update_event_by_admin(db: Session, *, event_id: int, patch: EventUpdate) -> Event:
    logger.info("An administrator updates the event with ID = %s.", event_id)
    return _update_event(db, event_id, patch, actor_id=None, as_admin=True)


def get_user_event(db: Session, *, user_id: int, event_id: int) -> Event:
    get_user_or_404(db, user_id)
    event = get_event_or_404(db, event_id)
    if event.initiator_id != user_id:
        raise AuthorizationError("Only the initiator can view this event.")
    return event


def list_user_events(db: Session, *, user_id: int, from_: int = 0, size: int = 10) -> list[Event]:
    logger.info("Listing events of the user with ID = %s (from=%s, size=%s).", user_id, from_, size)
    get_user_or_404(db, user_id)
    return events_crud.list_events_by_initiator(db, user_id, offset=from_, limit=size)


def get_published_event(db: Session, event_id: int) -> Event:
    event = events_crud.get_event(db, event_id)
    if event is None or event.state != EventState.PUBLISHED.value:
        raise NotFoundError("Event not found.", detail=f"Event with ID = {event_id} not found.")
    return event


def delete_event(db: Session, *, user_id: int, event_id: int) -> None:
    """Remove an event nobody is registered for."""
    logger.info("A user with ID = %s deletes the event with ID = %s.", user_id, event_id)
    with event_lock(event_id):
        with transaction(db):
            event = get_event_or_404(db, event_id, for_update=True)
            if event.initiator_id != user_id:
                raise AuthorizationError("Only the initiator can delete the event.")
            if requests_crud.has_active_requests(db, event_id):
                raise ConflictError("The event has active participation requests and cannot be deleted.")
            db.delete(event)


# ---------- outward summaries ----------
def describe_event(db: Session, event: Event, views: ViewCountClient) -> dict:
    return {
        "id": event.id,
        "title": event.title,
        "annotation": event.annotation,
        "description": event.description,
        "category_id": event.category_id,
        "event_date": event.event_date,
        "location": {"lat": event.lat, "lon": event.lon},
        "paid": event.paid,
        "capacity": event.capacity,
        "moderation_required": event.moderation_required,
        "state": event.state,
        "initiator_id": event.initiator_id,
        "created_on": event.created_on,
        "published_on": event.published_on,
        "confirmed_requests": requests_crud.count_confirmed(db, event.id),
        "views": views.views_for(event.id),
    }


def describe_events(db: Session, events: list[Event], views: ViewCountClient) -> list[dict]:
    event_ids = [event.id for event in events]
    confirmed = requests_crud.count_confirmed_many(db, event_ids)
    view_counts = views.views_for_many(event_ids)
    return [
        {
            "id": event.id,
            "title": event.title,
            "annotation": event.annotation,
            "category_id": event.category_id,
            "event_date": event.event_date,
            "paid": event.paid,
            "initiator_id": event.initiator_id,
            "confirmed_requests": confirmed.get(event.id, 0),
            "views": view_counts.get(event.id, 0),
        }
        for event in events
    ]
