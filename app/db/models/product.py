"""
Модель товара.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, JSONType, new_uuid, utcnow
from .pricing_tier import PricingTier


class Product(Base):
    """
    Модель товара.

    Attributes:
        id: UUID товара
        name: Название товара
        slug: URL-friendly название (уникальное)
        variety: Сорт / разновидность
        description: Описание товара
        price: Базовая цена в центах
        currency: Валюта
        images: Список путей к медиафайлам
        category_id: ID категории товара
        stock_quantity: Остаток на складе
        tags: Список тегов
        farm_label: Метка производителя
        origin_flag: Код страны происхождения
        is_active: Доступен ли товар для заказа
        cost_price_per_gram: Себестоимость за грамм в центах
        margin_percentage: Наценка в процентах
        category: Связь с категорией
        pricing_tiers: Ценовые уровни товара
    """

    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    name: Mapped[str] = mapped_column(String(255))
    slug: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    variety: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price: Mapped[int] = mapped_column(Integer, default=0)
    currency: Mapped[str] = mapped_column(String(3), default="EUR")
    images: Mapped[list] = mapped_column(JSONType, default=list)
    category_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True
    )
    stock_quantity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    tags: Mapped[list] = mapped_column(JSONType, default=list)
    farm_label: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    origin_flag: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    cost_price_per_gram: Mapped[int] = mapped_column(Integer, default=0)
    margin_percentage: Mapped[int] = mapped_column(Integer, default=50)

    # Временные метки
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    # Связи с другими моделями
    category: Mapped[Optional["Category"]] = relationship(back_populates="products")
    pricing_tiers: Mapped[List["PricingTier"]] = relationship(
        back_populates="product",
        cascade="all,delete-orphan",
        lazy="selectin",
        order_by=[PricingTier.sort_order, PricingTier.quantity_grams],
    )

    def __repr__(self) -> str:
        return f"<Product(id='{self.id}', name='{self.name}')>"
