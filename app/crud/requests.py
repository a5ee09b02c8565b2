from typing import Iterable, Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from app.models.requests import ParticipationRequest, RequestStatus


def get_request(db: Session, request_id: int, *, for_update: bool = False) -> Optional[ParticipationRequest]:
    if not for_update:
        return db.get(ParticipationRequest, request_id)
    stmt = (
        select(ParticipationRequest)
        .where(ParticipationRequest.id == request_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return db.scalar(stmt)


def get_requests_by_ids(db: Session, request_ids: Iterable[int]) -> dict[int, ParticipationRequest]:
    stmt = (
        select(ParticipationRequest)
        .where(ParticipationRequest.id.in_(list(request_ids)))
        .execution_options(populate_existing=True)
    )
    return {request.id: request for request in db.scalars(stmt)}


def get_active_request(db: Session, *, requester_id: int, event_id: int) -> Optional[ParticipationRequest]:
    stmt = select(ParticipationRequest).where(
        ParticipationRequest.requester_id == requester_id,
        ParticipationRequest.event_id == event_id,
        ParticipationRequest.status != RequestStatus.CANCELED.value,
    )
    return db.scalars(stmt).first()


def has_active_requests(db: Session, event_id: int) -> bool:
    stmt = select(ParticipationRequest.id).where(
        ParticipationRequest.event_id == event_id,
        ParticipationRequest.status != RequestStatus.CANCELED.value,
    )
    return db.scalars(stmt.limit(1)).first() is not None


def count_confirmed(db: Session, event_id: int) -> int:
    confirmed = db.scalar(
        select(func.count(ParticipationRequest.id)).where(
            ParticipationRequest.event_id == event_id,
            ParticipationRequest.status == RequestStatus.CONFIRMED.value,
        )
    )
    return int(confirmed or 0)


def count_confirmed_many(db: Session, event_ids: Iterable[int]) -> dict[int, int]:
    """Confirmed request counts keyed by event id; events without any map to 0."""
    event_ids = list(event_ids)
    if not event_ids:
        return {}
    rows = db.execute(
        select(ParticipationRequest.event_id, func.count(ParticipationRequest.id))
        .where(
            ParticipationRequest.event_id.in_(event_ids),
            ParticipationRequest.status == RequestStatus.CONFIRMED.value,
        )
        .group_by(ParticipationRequest.event_id)
    )
    counts = {event_id: 0 for event_id in event_ids}
    counts.update({event_id: int(count) for event_id, count in rows})
    return counts


def list_by_requester(db: Session, requester_id: int) -> list[ParticipationRequest]:
    stmt = (
        select(ParticipationRequest)
        .where(ParticipationRequest.requester_id == requester_id)
        .order_by(ParticipationRequest.id)
    )
    return list(db.scalars(stmt))


def list_by_event(db: Session, event_id: int) -> list[ParticipationRequest]:
    stmt = (
        select(ParticipationRequest)
        .where(ParticipationRequest.event_id == event_id)
        .order_by(ParticipationRequest.id)
    )
    return list(db.scalars(stmt))


def add_request(db: Session, *, requester_id: int, event_id: int, status: RequestStatus) -> ParticipationRequest:
    request = ParticipationRequest(
        requester_id=requester_id,
        event_id=event_id,
        status=status.value,
    )
    db.add(request)
    db.flush()  # gets request.id
    db.refresh(request)
    return request


def decide_pending(db: Session, *, event_id: int, request_ids: list[int], status: RequestStatus) -> int:
    """
    Move the given requests of ``event_id`` from PENDING to ``status``.

    Rows that are no longer PENDING are left alone; the caller compares the
    returned row count with ``len(request_ids)``.
    """
    if not request_ids:
        return 0
    stmt = (
        update(ParticipationRequest)
        .where(
            ParticipationRequest.id.in_(request_ids),
            ParticipationRequest.event_id == event_id,
            ParticipationRequest.status == RequestStatus.PENDING.value,
        )
        .values(status=status.value)
        .execution_options(synchronize_session="evaluate")
    )
    res = db.execute(stmt)
    return res.rowcount  # type: ignore


def has_requests_by_requester(db: Session, requester_id: int) -> bool:
    stmt = select(ParticipationRequest.id).where(ParticipationRequest.requester_id == requester_id)
    return db.scalars(stmt.limit(1)).first() is not None
