"""
API endpoints для отзывов покупателей.

Новые отзывы попадают на модерацию (pending), в витрине видны
только опубликованные.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from app.core.auth import (
    INIT_DATA_HEADER,
    SessionUser,
    get_session,
    require_admin,
    resolve_customer,
)
from app.core.demo import demo_scope, get_demo_session_id
from app.core.rate_limit import rate_limit
from app.db.database import get_db
from app.db.models import Product, Review
from app.schemas.review import ReviewCreate, ReviewOut, ReviewStatus, ReviewUpdate
from app.services.orders import purge_expired_demo_data
from app.services.settings import storefront_open, writes_open

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_review(db: Session, review_id: str, demo_session_id: Optional[str]) -> Review:
    review = db.get(Review, review_id)
    if not review or review.demo_session_id != demo_session_id:
        raise HTTPException(404, detail="Review not found")
    return review


@router.get("", dependencies=[Depends(storefront_open)])
def list_reviews(
    db: Session = Depends(get_db),
    session: Optional[SessionUser] = Depends(get_session),
    demo_session_id: Optional[str] = Depends(get_demo_session_id),
    review_status: Optional[ReviewStatus] = Query(
        None, alias="status", description="Фильтр по статусу (для админов)"
    ),
    product_id: Optional[str] = Query(None, description="Фильтр по товару"),
):
    """
    Список отзывов, новые первыми.

    Покупатели видят только опубликованные отзывы; администратор может
    фильтровать по любому статусу.
    """
    if demo_session_id:
        purge_expired_demo_data(db)

    is_admin = session is not None and session.is_admin
    visible_status = review_status if is_admin and review_status else "published"
    stmt = select(Review).where(
        demo_scope(Review.demo_session_id, demo_session_id),
        Review.status == visible_status,
    )
    if product_id:
        stmt = stmt.where(Review.product_id == product_id)

    rows = db.scalars(stmt.order_by(desc(Review.created_at))).all()
    return {"reviews": [ReviewOut.model_validate(row) for row in rows]}


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("reviews")), Depends(writes_open)],
)
def create_review(
    payload: ReviewCreate,
    db: Session = Depends(get_db),
    demo_session_id: Optional[str] = Depends(get_demo_session_id),
    init_data_header: Optional[str] = Header(None, alias=INIT_DATA_HEADER),
):
    """
    Оставить отзыв. Отзыв публикуется после модерации.

    Raises:
        HTTPException: 404 если товар не найден, 401 без initData
    """
    customer = resolve_customer(payload.init_data or init_data_header, demo_session_id)

    if payload.product_id and db.get(Product, payload.product_id) is None:
        raise HTTPException(404, detail="Product not found")

    review = Review(
        product_id=payload.product_id,
        telegram_user_id=customer.telegram_user_id,
        username=customer.username,
        rating=payload.rating,
        content=payload.content,
        status="pending",
        demo_session_id=demo_session_id,
    )
    db.add(review)
    db.commit()
    db.refresh(review)

    logger.info(f"Review {review.id} submitted by {customer.telegram_user_id}")
    return {"review": ReviewOut.model_validate(review)}


@router.patch("/{review_id}", response_model=ReviewOut)
def update_review(
    review_id: str,
    payload: ReviewUpdate,
    db: Session = Depends(get_db),
    admin: SessionUser = Depends(require_admin),
    demo_session_id: Optional[str] = Depends(get_demo_session_id),
):
    """Модерация отзыва в пределах текущей демо-сессии (или реальных данных)."""
    review = _get_review(db, review_id, demo_session_id)

    data = payload.model_dump(exclude_unset=True, exclude_none=True)
    if not data:
        raise HTTPException(400, detail="No fields to update")

    for field, value in data.items():
        setattr(review, field, value)
    db.commit()
    db.refresh(review)
    logger.info(f"Review {review_id} moderated by {admin.kind}:{admin.id}: {data.get('status')}")
    return review


@router.delete("/{review_id}")
def delete_review(
    review_id: str,
    db: Session = Depends(get_db),
    admin: SessionUser = Depends(require_admin),
    demo_session_id: Optional[str] = Depends(get_demo_session_id),
):
    review = _get_review(db, review_id, demo_session_id)
    db.delete(review)
    db.commit()
    logger.info(f"Review {review_id} deleted by {admin.kind}:{admin.id}")
    return {"success": True}
