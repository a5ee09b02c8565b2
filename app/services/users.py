import logging
from typing import Optional, Sequence

from sqlalchemy.orm import Session

from app.core.exceptions import ConflictError, NotFoundError
from app.crud import events as events_crud
from app.crud import requests as requests_crud
from app.crud import users as users_crud
from app.database.transaction import transaction
from app.models.users import User

logger = logging.getLogger(__name__)


def get_user_or_404(db: Session, user_id: int) -> User:
    user = users_crud.get_user(db, user_id)
    if user is None:
        raise NotFoundError("User not found.", detail=f"User with ID = {user_id} not found.")
    return user


def create_user(db: Session, *, name: str, email: str) -> User:
    logger.info("Creating a user with the name %s.", name)
    with transaction(db):
        if users_crud.get_user_by_email(db, email) is not None:
            logger.warning("Failed to create a user. The email is already taken.")
            raise ConflictError("This email address is already taken.")
        user = users_crud.add_user(db, name=name, email=email)
    logger.debug("The user has been created. ID = %s.", user.id)
    return user


def list_users(db: Session, *, from_: int = 0, size: int = 10, ids: Optional[Sequence[int]] = None) -> list[User]:
    return users_crud.list_users(db, offset=from_, limit=size, ids=ids)


def delete_user(db: Session, user_id: int) -> None:
    """Remove a user nothing refers to: no organized events and no participation requests."""
    logger.info("Deleting the user with ID = %s.", user_id)
    with transaction(db):
        user = get_user_or_404(db, user_id)
        if events_crud.has_events_by_initiator(db, user_id) or requests_crud.has_requests_by_requester(db, user_id):
            logger.warning("The user with ID = %s is still referenced and cannot be deleted.", user_id)
            raise ConflictError(
                "The user cannot be deleted.",
                detail=f"User with ID = {user_id} organizes events or has participation requests.",
            )
        db.delete(user)

