"""
API endpoints для работы с товарами.

Содержит публичный каталог (товары с ценовыми уровнями)
и административные CRUD операции.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import desc, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.auth import SessionUser, get_session, require_admin
from app.db.database import get_db
from app.db.models import Category, Product
from app.schemas.product import ProductCreate, ProductOut, ProductUpdate
from app.services.pricing import min_tier
from app.services.settings import storefront_open

logger = logging.getLogger(__name__)

router = APIRouter()


def serialize_product(product: Product) -> ProductOut:
    """Товар с ценовыми уровнями и минимальной ценой."""
    out = ProductOut.model_validate(product)
    cheapest = min_tier(product.pricing_tiers)
    if cheapest is not None:
        out.min_price = cheapest["price"]
        out.min_price_quantity = cheapest["quantity"]
    else:
        out.min_price = product.price
    return out


def _check_slug(db: Session, slug: str, exclude_id: Optional[str] = None) -> None:
    stmt = select(Product.id).where(Product.slug == slug)
    if exclude_id:
        stmt = stmt.where(Product.id != exclude_id)
    if db.scalar(stmt) is not None:
        raise HTTPException(409, detail="A product with this slug already exists")


def _check_category(db: Session, category_id: Optional[str]) -> None:
    if category_id and db.get(Category, category_id) is None:
        raise HTTPException(400, detail="Category not found")


@router.get("", response_model=List[ProductOut], dependencies=[Depends(storefront_open)])
def list_products(
    db: Session = Depends(get_db),
    session: Optional[SessionUser] = Depends(get_session),
    category_id: Optional[str] = Query(None, description="Фильтр по категории"),
    active: bool = Query(True, description="Только активные товары (false доступно админам)"),
):
    """
    Получить список товаров.

    Новые товары первыми. Неактивные товары видны только администраторам
    при active=false.
    """
    stmt = select(Product)
    if active or session is None or not session.is_admin:
        stmt = stmt.where(Product.is_active.is_(True))
    if category_id:
        stmt = stmt.where(Product.category_id == category_id)
    stmt = stmt.order_by(desc(Product.created_at), Product.name)

    return [serialize_product(product) for product in db.scalars(stmt).all()]


@router.get(
    "/{product_id}", response_model=ProductOut, dependencies=[Depends(storefront_open)]
)
def get_product(
    product_id: str,
    db: Session = Depends(get_db),
    session: Optional[SessionUser] = Depends(get_session),
):
    """
    Получить товар по ID.

    Raises:
        HTTPException: Если товар не найден (или неактивен для покупателя)
    """
    product = db.get(Product, product_id)
    if not product:
        raise HTTPException(404, detail="Product not found")
    if not product.is_active and (session is None or not session.is_admin):
        raise HTTPException(404, detail="Product not found")
    return serialize_product(product)


@router.post("", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
def create_product(
    payload: ProductCreate,
    db: Session = Depends(get_db),
    admin: SessionUser = Depends(require_admin),
):
    """
    Создать товар.

    Raises:
        HTTPException: 409 если slug занят, 400 если категория не существует
    """
    _check_slug(db, payload.slug)
    _check_category(db, payload.category_id)

    data = payload.model_dump()
    data["currency"] = data["currency"].upper()
    product = Product(**data)
    db.add(product)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(409, detail="A product with this slug already exists")
    db.refresh(product)

    logger.info(f"Product {product.slug} created by {admin.kind}:{admin.id}")
    return serialize_product(product)


@router.patch("/{product_id}", response_model=ProductOut)
def update_product(
    product_id: str,
    payload: ProductUpdate,
    db: Session = Depends(get_db),
    admin: SessionUser = Depends(require_admin),
):
    """Частичное обновление товара."""
    product = db.get(Product, product_id)
    if not product:
        raise HTTPException(404, detail="Product not found")

    data = payload.model_dump(exclude_unset=True)
    if not data:
        raise HTTPException(400, detail="No fields to update")
    if "slug" in data:
        _check_slug(db, data["slug"], exclude_id=product_id)
    if "category_id" in data:
        _check_category(db, data["category_id"])
    if data.get("currency"):
        data["currency"] = data["currency"].upper()

    for field, value in data.items():
        setattr(product, field, value)
    db.commit()
    db.refresh(product)
    return serialize_product(product)


@router.delete("/{product_id}")
def delete_product(
    product_id: str,
    db: Session = Depends(get_db),
    admin: SessionUser = Depends(require_admin),
):
    """Удалить товар вместе с его ценовыми уровнями."""
    product = db.get(Product, product_id)
    if not product:
        raise HTTPException(404, detail="Product not found")

    db.delete(product)
    db.commit()
    logger.info(f"Product {product_id} deleted by {admin.kind}:{admin.id}")
    return {"success": True}
