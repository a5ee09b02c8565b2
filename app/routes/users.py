from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.database.db import get_db
from app.schemas.users import UserCreate, UserOut
from app.services import users as users_service

router = APIRouter(prefix="/admin/users", tags=["users"])


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(payload: UserCreate, db: Session = Depends(get_db)):
    return users_service.create_user(db, name=payload.name, email=payload.email)


@router.get("", response_model=list[UserOut])
def list_users(
    ids: Optional[list[int]] = Query(default=None),
    from_: int = Query(default=0, ge=0, alias="from"),
    size: int = Query(default=10, ge=1),
    db: Session = Depends(get_db),
):
    return users_service.list_users(db, from_=from_, size=size, ids=ids)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(user_id: int, db: Session = Depends(get_db)):
    users_service.delete_user(db, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
