import enum
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, CheckConstraint, DateTime, Float, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.db import Base

if TYPE_CHECKING:
    from app.models.categories import Category
    from app.models.requests import ParticipationRequest
    from app.models.users import User


class EventState(str, enum.Enum):
    PENDING_REVIEW = "PENDING_REVIEW"
    PUBLISHED = "PUBLISHED"
    CANCELED = "CANCELED"


class EventStateAction(str, enum.Enum):
    PUBLISH_EVENT = "PUBLISH_EVENT"
    SEND_TO_REVIEW = "SEND_TO_REVIEW"
    CANCEL_EVENT = "CANCEL_EVENT"


class Event(Base):
    __tablename__ = "events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(120), nullable=False)
    annotation: Mapped[str] = mapped_column(String(2000), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category_id: Mapped[int] = mapped_column(ForeignKey("categories.id"), nullable=False)
    event_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    lat: Mapped[float] = mapped_column(Float, nullable=False)
    lon: Mapped[float] = mapped_column(Float, nullable=False)
    paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # 0 means unlimited
    capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    moderation_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    state: Mapped[str] = mapped_column(String(16), nullable=False, default=EventState.PENDING_REVIEW.value)
    initiator_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    created_on: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    published_on: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    # bumped by every admission decision; see app.crud.events.claim_event
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    initiator: Mapped["User"] = relationship()
    category: Mapped["Category"] = relationship()
    # only canceled requests can remain when an event is deleted
    requests: Mapped[list["ParticipationRequest"]] = relationship(
        back_populates="event", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("capacity >= 0", name="check_capacity_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, state={self.state}, capacity={self.capacity})>"
