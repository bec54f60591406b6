"""
Настройки магазина (таблица settings) и режим обслуживания.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from fastapi import Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.auth import SessionUser, get_session
from app.db.database import get_db
from app.db.models import Setting
from app.db.models.base import utcnow

logger = logging.getLogger(__name__)

MAINTENANCE_MODE = "maintenance_mode"
MIN_ORDER_AMOUNT = "min_order_amount"

# Ключи, доступные без авторизации
PUBLIC_KEYS = frozenset(
    {
        "info",
        "features",
        "contact",
        "general",
        "order_warning_message",
        "delivery_start_time",
        MIN_ORDER_AMOUNT,
        MAINTENANCE_MODE,
        "emergency_mode",
        "emergency_message",
    }
)

# Значения для отсутствующих ключей
DEFAULTS: Dict[str, Any] = {
    MAINTENANCE_MODE: False,
    "emergency_message": "On revient très vite.",
}


def parse_bool(value: Any) -> bool:
    """Нестрогий разбор булева значения: true/1/"true"/"1" -> True."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    if not isinstance(value, str):
        return False

    normalized = value.strip().lower()
    if normalized in ("true", "1"):
        return True
    if normalized in ("false", "0"):
        return False
    try:
        parsed = json.loads(value)
    except ValueError:
        return False
    if isinstance(parsed, bool):
        return parsed
    if isinstance(parsed, (int, float)):
        return parsed == 1
    return False


def get_setting(db: Session, key: str) -> Optional[Setting]:
    return db.get(Setting, key)


def get_value(db: Session, key: str, default: Any = None) -> Any:
    setting = get_setting(db, key)
    if setting is None:
        return DEFAULTS.get(key, default)
    return setting.value


def list_settings(db: Session) -> List[Setting]:
    return list(db.scalars(select(Setting).order_by(Setting.key)).all())


def upsert_setting(db: Session, key: str, value: Any) -> Setting:
    """Создать или обновить настройку."""
    setting = get_setting(db, key)
    if setting is None:
        setting = Setting(key=key, value=value)
        db.add(setting)
    else:
        setting.value = value
        setting.updated_at = utcnow()
    db.commit()
    db.refresh(setting)
    logger.info(f"Setting '{key}' updated")
    return setting


def delete_setting(db: Session, key: str) -> bool:
    setting = get_setting(db, key)
    if setting is None:
        return False
    db.delete(setting)
    db.commit()
    logger.info(f"Setting '{key}' deleted")
    return True


def is_maintenance_mode(db: Session) -> bool:
    return parse_bool(get_value(db, MAINTENANCE_MODE, False))


def get_min_order_amount(db: Session) -> Optional[int]:
    """Минимальная сумма заказа в центах или None."""
    value = get_value(db, MIN_ORDER_AMOUNT)
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = int(value)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring invalid {MIN_ORDER_AMOUNT} setting: {value!r}")
        return None
    return amount if amount > 0 else None


def storefront_open(
    db: Session = Depends(get_db),
    session: Optional[SessionUser] = Depends(get_session),
) -> None:
    """Dependency для публичного чтения: 503 в режиме обслуживания (кроме админов)."""
    if session is not None and session.is_admin:
        return
    if is_maintenance_mode(db):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Store is under maintenance",
        )


def writes_open(db: Session = Depends(get_db)) -> None:
    """Dependency для публичной записи (заказы, отзывы)."""
    if is_maintenance_mode(db):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Store is under maintenance",
        )
