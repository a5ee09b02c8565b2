from datetime import datetime

from pydantic import BaseModel, Field

from app.models.requests import RequestStatus


class ParticipationRequestOut(BaseModel):
    id: int
    event_id: int
    requester_id: int
    status: RequestStatus
    created: datetime

    class Config:
        from_attributes = True


class RequestStatusUpdate(BaseModel):
    request_ids: list[int] = Field(min_length=1)
    status: RequestStatus


class RequestStatusUpdateResult(BaseModel):
    confirmed_requests: list[ParticipationRequestOut]
    rejected_requests: list[ParticipationRequestOut]
