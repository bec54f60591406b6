"""
API endpoints для работы с категориями товаров.

Содержит операции для получения списка категорий (с кэшированием)
и административные CRUD операции.
"""

import logging
import time
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.auth import SessionUser, require_admin
from app.db.database import get_db
from app.db.models import Category
from app.schemas.product import CategoryCreate, CategoryOut, CategoryUpdate
from app.services.settings import storefront_open

logger = logging.getLogger(__name__)

router = APIRouter()

# Простое in-memory кэширование для списка категорий
_categories_cache: Optional[List[dict]] = None
_cache_timestamp = 0.0
CACHE_TTL = 300  # 5 минут


def invalidate_categories_cache() -> None:
    global _categories_cache, _cache_timestamp
    _categories_cache = None
    _cache_timestamp = 0.0


def _slug_taken(db: Session, slug: str, exclude_id: Optional[str] = None) -> bool:
    stmt = select(Category.id).where(Category.slug == slug)
    if exclude_id:
        stmt = stmt.where(Category.id != exclude_id)
    return db.scalar(stmt) is not None


@router.get("", response_model=List[CategoryOut], dependencies=[Depends(storefront_open)])
def list_categories(db: Session = Depends(get_db)):
    """
    Получить список активных категорий с кэшированием.

    Категории отсортированы по sort_order, затем по названию.
    Кэш живет 5 минут и сбрасывается при любом изменении категорий.
    """
    global _categories_cache, _cache_timestamp

    current_time = time.time()
    if _categories_cache is not None and (current_time - _cache_timestamp) < CACHE_TTL:
        return _categories_cache

    rows = db.scalars(
        select(Category)
        .where(Category.is_active.is_(True))
        .order_by(Category.sort_order, Category.name)
    ).all()
    result = [CategoryOut.model_validate(row).model_dump() for row in rows]

    _categories_cache = result
    _cache_timestamp = current_time
    return result


@router.get(
    "/{category_id}", response_model=CategoryOut, dependencies=[Depends(storefront_open)]
)
def get_category(category_id: str, db: Session = Depends(get_db)):
    """
    Получить категорию по ID.

    Raises:
        HTTPException: Если категория не найдена
    """
    category = db.get(Category, category_id)
    if not category:
        raise HTTPException(404, detail="Category not found")
    return category


@router.post("", response_model=CategoryOut, status_code=status.HTTP_201_CREATED)
def create_category(
    payload: CategoryCreate,
    db: Session = Depends(get_db),
    admin: SessionUser = Depends(require_admin),
):
    """Создать категорию. Slug должен быть уникальным."""
    if _slug_taken(db, payload.slug):
        raise HTTPException(409, detail="A category with this slug already exists")

    category = Category(**payload.model_dump())
    db.add(category)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(409, detail="A category with this slug already exists")
    db.refresh(category)

    invalidate_categories_cache()
    logger.info(f"Category {category.slug} created by {admin.kind}:{admin.id}")
    return category


@router.patch("/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: str,
    payload: CategoryUpdate,
    db: Session = Depends(get_db),
    admin: SessionUser = Depends(require_admin),
):
    """Частичное обновление категории."""
    category = db.get(Category, category_id)
    if not category:
        raise HTTPException(404, detail="Category not found")

    data = payload.model_dump(exclude_unset=True)
    if not data:
        raise HTTPException(400, detail="No fields to update")
    if "slug" in data and _slug_taken(db, data["slug"], exclude_id=category_id):
        raise HTTPException(409, detail="A category with this slug already exists")

    for field, value in data.items():
        setattr(category, field, value)
    db.commit()
    db.refresh(category)

    invalidate_categories_cache()
    return category


@router.delete("/{category_id}")
def delete_category(
    category_id: str,
    db: Session = Depends(get_db),
    admin: SessionUser = Depends(require_admin),
):
    """Удалить категорию. Товары остаются без категории."""
    category = db.get(Category, category_id)
    if not category:
        raise HTTPException(404, detail="Category not found")

    for product in category.products:
        product.category_id = None
    db.delete(category)
    db.commit()

    invalidate_categories_cache()
    logger.info(f"Category {category_id} deleted by {admin.kind}:{admin.id}")
    return {"success": True}
