"""
Модель заказа.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, JSONType, new_uuid, utcnow

ORDER_STATUSES = ("pending", "confirmed", "processing", "shipped", "delivered", "cancelled")


class Order(Base):
    """
    Модель заказа.

    Attributes:
        id: UUID заказа
        telegram_user_id: Telegram ID покупателя (или anonymous / demo:<uuid>)
        username: Telegram username покупателя
        items: Снимок позиций заказа (JSON)
        total: Итоговая сумма в центах, рассчитанная сервером
        currency: Валюта заказа
        status: Статус заказа
        notes: Комментарий покупателя
        delivery_address: Адрес доставки
        order_day: День заказа (YYYY-MM-DD, UTC)
        daily_order_number: Порядковый номер заказа за день
        driver_id: Назначенный курьер
        demo_session_id: Демо-сессия, в которой создан заказ
        created_at: Дата создания
        updated_at: Дата обновления
    """

    __tablename__ = "orders"

    __table_args__ = (
        CheckConstraint(
            "status in ('pending','confirmed','processing','shipped','delivered','cancelled')",
            name="ck_orders_status",
        ),
        UniqueConstraint("order_day", "daily_order_number", name="uq_orders_day_number"),
        Index("ix_orders_telegram_user_id", "telegram_user_id"),
        Index("ix_orders_demo_session_id", "demo_session_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    telegram_user_id: Mapped[str] = mapped_column(String(64))
    username: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    items: Mapped[list] = mapped_column(JSONType, default=list)
    total: Mapped[int] = mapped_column(Integer, default=0)
    currency: Mapped[str] = mapped_column(String(3), default="EUR")
    status: Mapped[str] = mapped_column(String(32), default="pending")
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    delivery_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Нумерация заказов внутри дня
    order_day: Mapped[str] = mapped_column(String(10), index=True)
    daily_order_number: Mapped[int] = mapped_column(Integer)

    driver_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("drivers.id", ondelete="SET NULL"), nullable=True
    )
    demo_session_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    # Временные метки
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    driver: Mapped[Optional["Driver"]] = relationship(lazy="joined")

    @property
    def driver_name(self) -> Optional[str]:
        return self.driver.name if self.driver else None

    def __repr__(self) -> str:
        return f"<Order(id='{self.id}', day='{self.order_day}', number={self.daily_order_number})>"
