from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.core.exceptions import ConcurrencyConflict
from app.models.events import Event


def get_event(db: Session, event_id: int, *, for_update: bool = False) -> Optional[Event]:
    """
    Load an event by id.

    With ``for_update`` the row is locked for the rest of the transaction on
    databases that support ``SELECT ... FOR UPDATE`` and the identity map is
    refreshed, so the caller always sees the committed version.
    """
    stmt = select(Event).where(Event.id == event_id)
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    return db.scalar(stmt)


def list_events_by_initiator(db: Session, initiator_id: int, *, offset: int, limit: int) -> list[Event]:
    stmt = (
        select(Event)
        .where(Event.initiator_id == initiator_id)
        .order_by(Event.id)
        .offset(offset)
        .limit(limit)
    )
    return list(db.scalars(stmt))


def claim_event(db: Session, event: Event) -> None:
    """
    Bump the event's version if nobody else has since it was read.

    Every admission decision goes through here before commit, so two
    transactions that both read the same version cannot both commit.
    """
    stmt = (
        update(Event)
        .where(Event.id == event.id)
        .where(Event.version == event.version)
        .values(version=Event.version + 1)
    )
    res = db.execute(stmt)
    if res.rowcount != 1:  # type: ignore
        raise ConcurrencyConflict(event.id)


def has_events_by_initiator(db: Session, initiator_id: int) -> bool:
    stmt = select(Event.id).where(Event.initiator_id == initiator_id)
    return db.scalars(stmt.limit(1)).first() is not None


def has_events_in_category(db: Session, category_id: int) -> bool:
    stmt = select(Event.id).where(Event.category_id == category_id)
    return db.scalars(stmt.limit(1)).first() is not None
