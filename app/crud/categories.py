from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.categories import Category


def get_category(db: Session, category_id: int) -> Optional[Category]:
    return db.get(Category, category_id)


def get_category_by_name(db: Session, name: str) -> Optional[Category]:
    return db.scalar(select(Category).where(Category.name == name))


def add_category(db: Session, *, name: str) -> Category:
    category = Category(name=name)
    db.add(category)
    db.flush()
    return category


def list_categories(db: Session, *, offset: int, limit: int) -> list[Category]:
    stmt = select(Category).order_by(Category.id).offset(offset).limit(limit)
    return list(db.scalars(stmt))
