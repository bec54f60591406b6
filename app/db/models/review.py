"""
Модель отзыва.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, new_uuid, utcnow

REVIEW_STATUSES = ("pending", "published", "rejected")


class Review(Base):
    """
    Отзыв покупателя. Публикуется после модерации.

    Attributes:
        id: UUID отзыва
        product_id: Товар (необязательно, отзыв может быть о магазине)
        telegram_user_id: Автор
        username: Telegram username автора
        rating: Оценка от 1 до 5
        content: Текст отзыва
        status: pending/published/rejected
        demo_session_id: Демо-сессия, в которой создан отзыв
    """

    __tablename__ = "reviews"

    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating"),
        CheckConstraint(
            "status in ('pending','published','rejected')", name="ck_reviews_status"
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    product_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True
    )
    telegram_user_id: Mapped[str] = mapped_column(String(64))
    username: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    rating: Mapped[int] = mapped_column(Integer)
    content: Mapped[str] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(16), default="pending", index=True)
    demo_session_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
