"""
Модель категории товаров.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, new_uuid, utcnow


class Category(Base):
    """
    Модель категории товаров.

    Attributes:
        id: UUID категории
        name: Отображаемое название
        slug: URL-friendly название категории
        description: Описание
        sort_order: Порядок вывода в витрине
        is_active: Показывать ли категорию в витрине
        products: Связь с товарами в этой категории
    """

    __tablename__ = "categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    name: Mapped[str] = mapped_column(String(255))
    slug: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    # Товары не удаляются вместе с категорией (category_id -> NULL)
    products: Mapped[List["Product"]] = relationship(back_populates="category")

    def __repr__(self) -> str:
        return f"<Category(id='{self.id}', slug='{self.slug}')>"
