from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.database.db import get_db
from app.schemas.requests import ParticipationRequestOut
from app.services import requests as requests_service

router = APIRouter(prefix="/users/{user_id}/requests", tags=["requests"])


@router.post("", response_model=ParticipationRequestOut, status_code=status.HTTP_201_CREATED)
def create_request(user_id: int, event_id: int = Query(ge=1), db: Session = Depends(get_db)):
    return requests_service.create_request(db, requester_id=user_id, event_id=event_id)


@router.get("", response_model=list[ParticipationRequestOut])
def list_my_requests(user_id: int, db: Session = Depends(get_db)):
    return requests_service.list_user_requests(db, user_id=user_id)


@router.patch("/{request_id}/cancel", response_model=ParticipationRequestOut)
def cancel_request(user_id: int, request_id: int, db: Session = Depends(get_db)):
    return requests_service.cancel_request(db, requester_id=user_id, request_id=request_id)
