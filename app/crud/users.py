from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.users import User


def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.get(User, user_id)


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.scalar(select(User).where(User.email == email))


def list_users(db: Session, *, offset: int, limit: int, ids: Optional[Sequence[int]] = None) -> list[User]:
    stmt = select(User).order_by(User.id).offset(offset).limit(limit)
    if ids:
        stmt = stmt.where(User.id.in_(ids))
    return list(db.scalars(stmt))


def add_user(db: Session, *, name: str, email: str) -> User:
    user = User(name=name, email=email)
    db.add(user)
    db.flush()  # gets user.id
    return user
