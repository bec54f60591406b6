#!/usr/bin/env python3
"""
Удаление просроченных данных демо-сессий (для cron).
"""

import sys
from pathlib import Path

# Добавляем путь к модулю app
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.core.config import settings
from app.db.database import SessionLocal
from app.services.orders import purge_expired_demo_data


def main() -> None:
    db = SessionLocal()
    try:
        removed = purge_expired_demo_data(db)
    finally:
        db.close()
    print(f"🧹 Удалено демо-записей старше {settings.DEMO_DATA_TTL_HOURS} ч: {removed}")


if __name__ == "__main__":
    main()
