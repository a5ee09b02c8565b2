from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.models.events import EventState, EventStateAction


class Location(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lon: float = Field(ge=-180, le=180)


class LocationPatch(BaseModel):
    lat: Optional[float] = Field(default=None, ge=-90, le=90)
    lon: Optional[float] = Field(default=None, ge=-180, le=180)


# ---------- Event ----------
class EventCreate(BaseModel):
    title: str = Field(min_length=3, max_length=120)
    annotation: str = Field(min_length=20, max_length=2000)
    description: str = Field(min_length=20, max_length=7000)
    category: int = Field(ge=1)
    event_date: datetime
    location: Location
    paid: bool = False
    capacity: int = Field(default=0, ge=0)
    moderation_required: bool = True


class EventUpdate(BaseModel):
    """Sparse patch: fields left as None are not touched."""

    title: Optional[str] = Field(default=None, min_length=3, max_length=120)
    annotation: Optional[str] = Field(default=None, min_length=20, max_length=2000)
    description: Optional[str] = Field(default=None, min_length=20, max_length=7000)
    category: Optional[int] = Field(default=None, ge=1)
    event_date: Optional[datetime] = None
    location: Optional[LocationPatch] = None
    paid: Optional[bool] = None
    capacity: Optional[int] = Field(default=None, ge=0)
    moderation_required: Optional[bool] = None
    state_action: Optional[EventStateAction] = None


class EventOut(BaseModel):
    id: int
    title: str
    annotation: str
    description: str
    category_id: int
    event_date: datetime
    location: Location
    paid: bool
    capacity: int
    moderation_required: bool
    state: EventState
    initiator_id: int
    created_on: Optional[datetime] = None
    published_on: Optional[datetime] = None
    confirmed_requests: int
    views: int


class EventShortOut(BaseModel):
    id: int
    title: str
    annotation: str
    category_id: int
    event_date: datetime
    paid: bool
    initiator_id: int
    confirmed_requests: int
    views: int
