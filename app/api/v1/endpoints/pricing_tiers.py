"""
API endpoints для ценовых уровней товаров (количество/цена).
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.auth import SessionUser, require_admin
from app.db.database import get_db
from app.db.models import PricingTier, Product
from app.schemas.product import (
    PricingTierBatch,
    PricingTierCreate,
    PricingTierGenerate,
    PricingTierOut,
    PricingTierUpdate,
)
from app.services.pricing import DEFAULT_QUANTITY_TIERS, generate_default_tiers
from app.services.settings import storefront_open

logger = logging.getLogger(__name__)

router = APIRouter()

DUPLICATE_DETAIL = "A pricing tier with this quantity already exists for this product"


def _get_product(db: Session, product_id: str) -> Product:
    product = db.get(Product, product_id)
    if not product:
        raise HTTPException(404, detail="Product not found")
    return product


def _tiers_for(db: Session, product_id: str) -> List[PricingTier]:
    return list(
        db.scalars(
            select(PricingTier)
            .where(PricingTier.product_id == product_id)
            .order_by(PricingTier.sort_order, PricingTier.quantity_grams)
        ).all()
    )


def _commit_or_conflict(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(409, detail=DUPLICATE_DETAIL)


@router.get(
    "", response_model=List[PricingTierOut], dependencies=[Depends(storefront_open)]
)
def list_pricing_tiers(
    product_id: str = Query(..., description="ID товара"),
    db: Session = Depends(get_db),
):
    """Ценовые уровни товара по sort_order, затем по количеству."""
    return _tiers_for(db, product_id)


@router.post("", response_model=PricingTierOut, status_code=status.HTTP_201_CREATED)
def create_pricing_tier(
    payload: PricingTierCreate,
    db: Session = Depends(get_db),
    admin: SessionUser = Depends(require_admin),
):
    """Добавить ценовой уровень. Количество уникально в пределах товара."""
    _get_product(db, payload.product_id)
    existing = db.scalar(
        select(PricingTier.id).where(
            PricingTier.product_id == payload.product_id,
            PricingTier.quantity_grams == payload.quantity_grams,
        )
    )
    if existing:
        raise HTTPException(409, detail=DUPLICATE_DETAIL)

    tier = PricingTier(**payload.model_dump())
    db.add(tier)
    _commit_or_conflict(db)
    db.refresh(tier)
    return tier


@router.put("", response_model=List[PricingTierOut])
def replace_pricing_tiers(
    payload: PricingTierBatch,
    db: Session = Depends(get_db),
    admin: SessionUser = Depends(require_admin),
):
    """
    Полная замена ценовых уровней товара.

    Старые уровни удаляются, новые получают sort_order по порядку в запросе.
    """
    product = _get_product(db, payload.product_id)

    # Удаление до вставки, иначе конфликт уникальности по количеству
    product.pricing_tiers.clear()
    db.flush()
    for index, tier in enumerate(payload.tiers):
        product.pricing_tiers.append(PricingTier(sort_order=index, **tier.model_dump()))
    _commit_or_conflict(db)

    logger.info(
        f"Pricing tiers of {payload.product_id} replaced ({len(payload.tiers)}) "
        f"by {admin.kind}:{admin.id}"
    )
    return _tiers_for(db, payload.product_id)


@router.post("/generate", response_model=List[PricingTierOut])
def generate_pricing_tiers(
    payload: PricingTierGenerate,
    db: Session = Depends(get_db),
    admin: SessionUser = Depends(require_admin),
):
    """
    Пересчитать уровни по себестоимости и наценке товара.

    Уровни с ручной ценой сохраняются, если replace_custom=false.
    """
    product = _get_product(db, payload.product_id)
    quantities = payload.quantities or list(DEFAULT_QUANTITY_TIERS)
    generated = generate_default_tiers(
        product.cost_price_per_gram, product.margin_percentage, quantities
    )

    existing = {tier.quantity_grams: tier for tier in _tiers_for(db, product.id)}
    for data in generated:
        tier = existing.get(data["quantity_grams"])
        if tier is None:
            product.pricing_tiers.append(PricingTier(**data))
        elif payload.replace_custom or not tier.is_custom_price:
            tier.price = data["price"]
            tier.is_custom_price = False
            tier.sort_order = data["sort_order"]
    _commit_or_conflict(db)

    return _tiers_for(db, product.id)


@router.patch("/{tier_id}", response_model=PricingTierOut)
def update_pricing_tier(
    tier_id: str,
    payload: PricingTierUpdate,
    db: Session = Depends(get_db),
    admin: SessionUser = Depends(require_admin),
):
    tier = db.get(PricingTier, tier_id)
    if not tier:
        raise HTTPException(404, detail="Pricing tier not found")

    data = payload.model_dump(exclude_unset=True)
    if not data:
        raise HTTPException(400, detail="No fields to update")
    if "quantity_grams" in data and data["quantity_grams"] != tier.quantity_grams:
        duplicate = db.scalar(
            select(PricingTier.id).where(
                PricingTier.product_id == tier.product_id,
                PricingTier.quantity_grams == data["quantity_grams"],
            )
        )
        if duplicate:
            raise HTTPException(409, detail=DUPLICATE_DETAIL)

    for field, value in data.items():
        setattr(tier, field, value)
    _commit_or_conflict(db)
    db.refresh(tier)
    return tier


@router.delete("/{tier_id}")
def delete_pricing_tier(
    tier_id: str,
    db: Session = Depends(get_db),
    admin: SessionUser = Depends(require_admin),
):
    tier = db.get(PricingTier, tier_id)
    if not tier:
        raise HTTPException(404, detail="Pricing tier not found")
    db.delete(tier)
    db.commit()
    return {"success": True}
