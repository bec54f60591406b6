"""
Учет посетителей Mini App (telegram_contacts).
"""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.telegram import TelegramUser
from app.db.models import TelegramContact
from app.db.models.base import utcnow

logger = logging.getLogger(__name__)


def upsert_contact(db: Session, user: TelegramUser) -> TelegramContact:
    """
    Записать визит пользователя.

    Новый контакт создается с visits_count=1, для существующего обновляются
    профиль и last_seen_at, счетчик визитов увеличивается.
    """
    telegram_user_id = str(user.id)
    contact = db.scalar(
        select(TelegramContact).where(TelegramContact.telegram_user_id == telegram_user_id)
    )
    now = utcnow()

    if contact is None:
        contact = TelegramContact(
            telegram_user_id=telegram_user_id,
            first_seen_at=now,
            visits_count=1,
        )
        db.add(contact)
        logger.info(f"New Telegram contact {telegram_user_id}")
    else:
        contact.visits_count = (contact.visits_count or 0) + 1

    contact.username = user.username
    contact.first_name = user.first_name or None
    contact.last_name = user.last_name
    contact.language_code = user.language_code
    contact.is_premium = bool(user.is_premium)
    contact.last_seen_at = now

    db.commit()
    db.refresh(contact)
    return contact
