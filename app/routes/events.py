import logging

from fastapi import APIRouter, Depends, Query, Response, status
from kombu.exceptions import OperationalError as BrokerError
from sqlalchemy.orm import Session

from app.database.db import get_db
from app.schemas.events import EventCreate, EventOut, EventShortOut, EventUpdate
from app.schemas.requests import ParticipationRequestOut, RequestStatusUpdate, RequestStatusUpdateResult
from app.services import events as events_service
from app.services import requests as requests_service
from app.services.views import ViewCountClient, get_view_client
from app.tasks import record_event_view_task

logger = logging.getLogger(__name__)

router = APIRouter(tags=["events"])


# ---------- initiator ----------
@router.post("/users/{user_id}/events", response_model=EventOut, status_code=status.HTTP_201_CREATED)
def create_event(
    user_id: int,
    payload: EventCreate,
    db: Session = Depends(get_db),
    views: ViewCountClient = Depends(get_view_client),
):
    event = events_service.create_event(db, initiator_id=user_id, payload=payload)
    return events_service.describe_event(db, event, views)


@router.get("/users/{user_id}/events", response_model=list[EventShortOut])
def list_my_events(
    user_id: int,
    from_: int = Query(default=0, ge=0, alias="from"),
    size: int = Query(default=10, ge=1),
    db: Session = Depends(get_db),
    views: ViewCountClient = Depends(get_view_client),
):
    events = events_service.list_user_events(db, user_id=user_id, from_=from_, size=size)
    return events_service.describe_events(db, events, views)


@router.get("/users/{user_id}/events/{event_id}", response_model=EventOut)
def get_my_event(
    user_id: int,
    event_id: int,
    db: Session = Depends(get_db),
    views: ViewCountClient = Depends(get_view_client),
):
    event = events_service.get_user_event(db, user_id=user_id, event_id=event_id)
    return events_service.describe_event(db, event, views)


@router.patch("/users/{user_id}/events/{event_id}", response_model=EventOut)
def update_my_event(
    user_id: int,
    event_id: int,
    patch: EventUpdate,
    db: Session = Depends(get_db),
    views: ViewCountClient = Depends(get_view_client),
):
    event = events_service.update_event_by_initiator(db, user_id=user_id, event_id=event_id, patch=patch)
    return events_service.describe_event(db, event, views)


@router.delete("/users/{user_id}/events/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_my_event(user_id: int, event_id: int, db: Session = Depends(get_db)):
    events_service.delete_event(db, user_id=user_id, event_id=event_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/users/{user_id}/events/{event_id}/requests", response_model=list[ParticipationRequestOut])
def list_event_requests(user_id: int, event_id: int, db: Session = Depends(get_db)):
    return requests_service.list_event_requests(db, organizer_id=user_id, event_id=event_id)


@router.patch("/users/{user_id}/events/{event_id}/requests", response_model=RequestStatusUpdateResult)
def process_event_requests(
    user_id: int,
    event_id: int,
    payload: RequestStatusUpdate,
    db: Session = Depends(get_db),
):
    return requests_service.process_requests(
        db,
        organizer_id=user_id,
        event_id=event_id,
        request_ids=payload.request_ids,
        status=payload.status,
    )


# ---------- admin ----------
@router.patch("/admin/events/{event_id}", response_model=EventOut)
def update_event_by_admin(
    event_id: int,
    patch: EventUpdate,
    db: Session = Depends(get_db),
    views: ViewCountClient = Depends(get_view_client),
):
    event = events_service.update_event_by_admin(db, event_id=event_id, patch=patch)
    return events_service.describe_event(db, event, views)


# ---------- public ----------
@router.get("/events/{event_id}", response_model=EventOut)
def get_published_event(
    event_id: int,
    db: Session = Depends(get_db),
    views: ViewCountClient = Depends(get_view_client),
):
    event = events_service.get_published_event(db, event_id)
    try:
        record_event_view_task.delay(event_id)
    except BrokerError:
        logger.warning("Could not enqueue a view hit for event %s.", event_id, exc_info=True)
    return events_service.describe_event(db, event, views)
