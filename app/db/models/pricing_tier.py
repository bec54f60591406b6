"""
Модель ценового уровня товара.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, new_uuid, utcnow


class PricingTier(Base):
    """
    Пара количество/цена для оптовой скидки.

    Attributes:
        id: UUID уровня
        product_id: ID товара
        quantity_grams: Количество в граммах
        price: Цена за весь объем в центах
        is_custom_price: Цена задана вручную (не пересчитывается)
        sort_order: Порядок вывода
        product: Связь с товаром
    """

    __tablename__ = "pricing_tiers"

    __table_args__ = (
        UniqueConstraint("product_id", "quantity_grams", name="uq_pricing_tier_quantity"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    product_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("products.id", ondelete="CASCADE"), index=True
    )
    quantity_grams: Mapped[int] = mapped_column(Integer)
    price: Mapped[int] = mapped_column(Integer)
    is_custom_price: Mapped[bool] = mapped_column(Boolean, default=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    product: Mapped["Product"] = relationship(back_populates="pricing_tiers")

    def __repr__(self) -> str:
        return f"<PricingTier(product_id='{self.product_id}', qty={self.quantity_grams}, price={self.price})>"
