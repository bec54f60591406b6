#!/usr/bin/env python3
"""
Скрипт для инициализации базы данных магазина.

Создает таблицы и записывает настройки по умолчанию
(режим обслуживания выключен, текст экстренного сообщения).
"""

import sys
from pathlib import Path

# Добавляем путь к модулю app
sys.path.insert(0, str(Path(__file__).parent))

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from app.db.database import SessionLocal, engine
from app.db.models import Base
from app.services.settings import DEFAULTS, get_setting, upsert_setting


def seed_settings() -> int:
    """Записать отсутствующие настройки по умолчанию. Возвращает число новых ключей."""
    created = 0
    db = SessionLocal()
    try:
        for key, value in DEFAULTS.items():
            if get_setting(db, key) is None:
                upsert_setting(db, key, value)
                created += 1
    finally:
        db.close()
    return created


def init_database() -> bool:
    """Создает все таблицы и настройки по умолчанию."""
    print("🗄️ Инициализация базы данных магазина...")

    try:
        Base.metadata.create_all(bind=engine)
        seeded = seed_settings()
    except SQLAlchemyError as e:
        print(f"❌ Ошибка инициализации: {e}")
        return False

    tables = inspect(engine).get_table_names()
    print(f"✅ Таблиц в базе: {len(tables)} ({', '.join(sorted(tables))})")
    print(f"⚙️ Новых настроек по умолчанию: {seeded}")
    return True


if __name__ == "__main__":
    if not init_database():
        sys.exit(1)
