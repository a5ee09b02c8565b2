"""
Admission of participation requests against event capacity.

This module is the only writer of request status. Every operation that
changes it (``create_request``, ``cancel_request`` and ``process_requests``)
runs under the event's Redis lock, reads the event row FOR UPDATE and claims
the event's version before commit. Batch decisions are written only over rows
that are still PENDING.
"""
import logging
from typing import Sequence

from sqlalchemy.orm import Session

from app.core.exceptions import (
    AuthorizationError,
    ConcurrencyConflict,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from app.crud import events as events_crud
from app.crud import requests as requests_crud
from app.database.transaction import transaction
from app.models.events import Event, EventState
from app.models.requests import ParticipationRequest, RequestStatus
from app.services.concurrency import event_lock, run_with_retry
from app.services.events import get_event_or_404
from app.services.users import get_user_or_404

logger = logging.getLogger(__name__)


def initial_status(event: Event) -> RequestStatus:
    if event.capacity == 0 or not event.moderation_required:
        return RequestStatus.CONFIRMED
    return RequestStatus.PENDING


def create_request(db: Session, *, requester_id: int, event_id: int) -> ParticipationRequest:
    """Register ``requester_id`` for a published event."""
    logger.info("A user with ID = %s requests to participate in the event with ID = %s.", requester_id, event_id)

    def attempt() -> ParticipationRequest:
        with transaction(db):
            return _create_request_in_transaction(db, requester_id, event_id)

    with event_lock(event_id):
        request = run_with_retry(attempt)
    logger.debug("Participation request with ID = %s created as %s.", request.id, request.status)
    return request


def _create_request_in_transaction(db: Session, requester_id: int, event_id: int) -> ParticipationRequest:
    get_user_or_404(db, requester_id)
    event = get_event_or_404(db, event_id, for_update=True)

    if event.initiator_id == requester_id:
        logger.warning("User with ID = %s tried to register for their own event %s.", requester_id, event_id)
        raise ConflictError("The organizer does not need to register for their own event.")
    if event.state != EventState.PUBLISHED.value:
        logger.warning("Event with ID = %s is not published. Current state: %s.", event_id, event.state)
        raise ConflictError("Registration is only possible for published events.")
    if requests_crud.get_active_request(db, requester_id=requester_id, event_id=event_id) is not None:
        logger.warning("User with ID = %s already has an active request for event %s.", requester_id, event_id)
        raise ConflictError("You have already sent a request to participate.")
    if event.capacity > 0 and requests_crud.count_confirmed(db, event_id) >= event.capacity:
        logger.warning("There are no free seats for the event with ID = %s.", event_id)
        raise ConflictError("There are no free seats for the event.")

    events_crud.claim_event(db, event)
    return requests_crud.add_request(
        db,
        requester_id=requester_id,
        event_id=event_id,
        status=initial_status(event),
    )


def cancel_request(db: Session, *, requester_id: int, request_id: int) -> ParticipationRequest:
    """Withdraw the requester's own request. Canceling twice is a no-op."""
    logger.info("A user with ID = %s cancels the participation request with ID = %s.", requester_id, request_id)
    get_user_or_404(db, requester_id)
    request = _get_request_or_404(db, request_id)
    event_id = request.event_id

    def attempt() -> ParticipationRequest:
        with transaction(db):
            return _cancel_request_in_transaction(db, requester_id, request_id, event_id)

    with event_lock(event_id):
        return run_with_retry(attempt)


def _cancel_request_in_transaction(
    db: Session, requester_id: int, request_id: int, event_id: int
) -> ParticipationRequest:
    event = get_event_or_404(db, event_id, for_update=True)
    request = _get_request_or_404(db, request_id, for_update=True)
    if request.requester_id != requester_id:
        logger.warning("User with ID = %s tried to cancel someone else's request %s.", requester_id, request_id)
        raise AuthorizationError("You cannot cancel someone else's request.")
    if request.status == RequestStatus.CANCELED.value:
        return request
    if request.status == RequestStatus.REJECTED.value:
        raise ConflictError("A rejected request cannot be canceled.")

    request.status = RequestStatus.CANCELED.value
    events_crud.claim_event(db, event)
    return request


def _get_request_or_404(db: Session, request_id: int, *, for_update: bool = False) -> ParticipationRequest:
    request = requests_crud.get_request(db, request_id, for_update=for_update)
    if request is None:
        raise NotFoundError(
            "Participation request not found.",
            detail=f"Participation request with ID = {request_id} not found.",
        )
    return request


def list_user_requests(db: Session, *, user_id: int) -> list[ParticipationRequest]:
    get_user_or_404(db, user_id)
    return requests_crud.list_by_requester(db, user_id)


def list_event_requests(db: Session, *, organizer_id: int, event_id: int) -> list[ParticipationRequest]:
    logger.info("Listing participation requests for the event with ID = %s.", event_id)
    get_user_or_404(db, organizer_id)
    event = get_event_or_404(db, event_id)
    if event.initiator_id != organizer_id:
        raise AuthorizationError("Only the organizer can view the participation requests.")
    return requests_crud.list_by_event(db, event_id)


def process_requests(
    db: Session,
    *,
    organizer_id: int,
    event_id: int,
    request_ids: Sequence[int],
    status: RequestStatus,
) -> dict[str, list[ParticipationRequest]]:
    """
    Confirm or reject a batch of pending requests.

    With ``status=CONFIRMED`` the free seats are counted once, on entry, and
    handed out in the order the caller listed the requests; whoever comes
    after the last free seat is rejected in the same call. Nothing is
    persisted if any request in the batch is invalid.
    """
    logger.info("User with ID = %s processes requests %s of the event with ID = %s.", organizer_id, list(request_ids), event_id)

    def attempt() -> dict[str, list[ParticipationRequest]]:
        with transaction(db):
            return _process_requests_in_transaction(db, organizer_id, event_id, request_ids, status)

    with event_lock(event_id):
        return run_with_retry(attempt)


def _process_requests_in_transaction(
    db: Session,
    organizer_id: int,
    event_id: int,
    request_ids: Sequence[int],
    status: RequestStatus,
) -> dict[str, list[ParticipationRequest]]:
    event = get_event_or_404(db, event_id, for_update=True)
    if event.initiator_id != organizer_id:
        raise AuthorizationError("Only the organizer can process participation requests.")
    if status not in (RequestStatus.CONFIRMED, RequestStatus.REJECTED):
        raise ValidationError("Requests can only be CONFIRMED or REJECTED.")
    if not event.moderation_required:
        raise ValidationError("Requests do not require moderation. Pre-moderation is disabled.")
    if event.capacity == 0:
        raise ValidationError("Requests do not require moderation. There is no limit on participants.")

    confirmed_count = requests_crud.count_confirmed(db, event_id)
    if confirmed_count >= event.capacity:
        raise ConflictError("There are no free seats.")

    batch = _load_pending_batch(db, event_id, request_ids)

    free_slots = event.capacity - confirmed_count if status == RequestStatus.CONFIRMED else 0
    confirmed = batch[:free_slots]
    rejected = batch[free_slots:]
    _decide(db, event_id, confirmed, RequestStatus.CONFIRMED)
    _decide(db, event_id, rejected, RequestStatus.REJECTED)

    events_crud.claim_event(db, event)
    return {"confirmed_requests": confirmed, "rejected_requests": rejected}


def _decide(db: Session, event_id: int, requests: list[ParticipationRequest], status: RequestStatus) -> None:
    """Write ``status`` only over rows that are still PENDING; anything else lost a race."""
    request_ids = [request.id for request in requests]
    if requests_crud.decide_pending(db, event_id=event_id, request_ids=request_ids, status=status) != len(request_ids):
        logger.info("A request of the event with ID = %s changed while the batch was being decided.", event_id)
        raise ConcurrencyConflict(event_id)
    for request in requests:
        request.status = status.value
        logger.debug("Request with ID = %s is now %s.", request.id, request.status)


def _load_pending_batch(db: Session, event_id: int, request_ids: Sequence[int]) -> list[ParticipationRequest]:
    """Requests in caller order, duplicates dropped; every one must be PENDING on ``event_id``."""
    ordered_ids = list(dict.fromkeys(request_ids))
    found = requests_crud.get_requests_by_ids(db, ordered_ids)

    batch = []
    for request_id in ordered_ids:
        request = found.get(request_id)
        if request is None:
            raise NotFoundError(
                "Participation request not found.",
                detail=f"Participation request with ID = {request_id} not found.",
            )
        if request.event_id != event_id:
            raise ValidationError(f"Request with ID = {request_id} belongs to another event.")
        if request.status != RequestStatus.PENDING.value:
            raise ValidationError(f"Request with ID = {request_id} is {request.status}, not PENDING.")
        batch.append(request)
    return batch
