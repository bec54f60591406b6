"""
Модель Telegram-контакта (посетителя Mini App).
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, new_uuid, utcnow


class TelegramContact(Base):
    """
    Пользователь Telegram, открывавший Mini App.

    Attributes:
        telegram_user_id: Telegram ID (уникальный)
        is_admin: Выдан ли доступ к админке
        first_seen_at: Первый визит
        last_seen_at: Последний визит
        visits_count: Количество подтвержденных визитов
    """

    __tablename__ = "telegram_contacts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    telegram_user_id: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    username: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    first_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    language_code: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    is_premium: Mapped[bool] = mapped_column(Boolean, default=False)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False)
    first_seen_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    last_seen_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    visits_count: Mapped[int] = mapped_column(Integer, default=1)

    def __repr__(self) -> str:
        return f"<TelegramContact(telegram_user_id='{self.telegram_user_id}', username='{self.username}')>"
