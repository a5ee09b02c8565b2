from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.database.db import get_db
from app.schemas.categories import CategoryCreate, CategoryOut
from app.services import categories as categories_service

router = APIRouter(tags=["categories"])


# ---------- admin ----------
@router.post("/admin/categories", response_model=CategoryOut, status_code=status.HTTP_201_CREATED)
def create_category(payload: CategoryCreate, db: Session = Depends(get_db)):
    return categories_service.create_category(db, name=payload.name)


@router.patch("/admin/categories/{category_id}", response_model=CategoryOut)
def update_category(category_id: int, payload: CategoryCreate, db: Session = Depends(get_db)):
    return categories_service.update_category(db, category_id=category_id, name=payload.name)


@router.delete("/admin/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(category_id: int, db: Session = Depends(get_db)):
    categories_service.delete_category(db, category_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------- public ----------
@router.get("/categories", response_model=list[CategoryOut])
def list_categories(
    from_: int = Query(default=0, ge=0, alias="from"),
    size: int = Query(default=10, ge=1),
    db: Session = Depends(get_db),
):
    return categories_service.list_categories(db, from_=from_, size=size)


@router.get("/categories/{category_id}", response_model=CategoryOut)
def get_category(category_id: int, db: Session = Depends(get_db)):
    return categories_service.get_category_or_404(db, category_id)
