import logging

from sqlalchemy.orm import Session

from app.core.exceptions import ConflictError, NotFoundError
from app.crud import categories as categories_crud
from app.crud import events as events_crud
from app.database.transaction import transaction
from app.models.categories import Category

logger = logging.getLogger(__name__)


def get_category_or_404(db: Session, category_id: int) -> Category:
    category = categories_crud.get_category(db, category_id)
    if category is None:
        raise NotFoundError("Category not found.", detail=f"Category with ID = {category_id} not found.")
    return category


def list_categories(db: Session, *, from_: int = 0, size: int = 10) -> list[Category]:
    return categories_crud.list_categories(db, offset=from_, limit=size)


def create_category(db: Session, *, name: str) -> Category:
    with transaction(db):
        if categories_crud.get_category_by_name(db, name) is not None:
            logger.warning("The category %r already exists.", name)
            raise ConflictError("The category already exists.")
        category = categories_crud.add_category(db, name=name)
    logger.info("Created category %r with ID = %s.", name, category.id)
    return category


def update_category(db: Session, *, category_id: int, name: str) -> Category:
    logger.info("Updating a category with an ID = %s.", category_id)
    with transaction(db):
        category = get_category_or_404(db, category_id)
        existing = categories_crud.get_category_by_name(db, name)
        if existing is not None and existing.id != category.id:
            logger.warning("The category %r already exists.", name)
            raise ConflictError("The category already exists.")
        category.name = name
    logger.debug("The category with ID = %s has been updated.", category_id)
    return category


def delete_category(db: Session, category_id: int) -> None:
    """Remove a category no event refers to."""
    logger.info("Deleting a category with ID = %s.", category_id)
    with transaction(db):
        category = get_category_or_404(db, category_id)
        if events_crud.has_events_in_category(db, category_id):
            raise ConflictError(
                "The category is not empty.",
                detail=f"Category with ID = {category_id} is used by at least one event.",
            )
        db.delete(category)
