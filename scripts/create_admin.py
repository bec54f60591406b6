#!/usr/bin/env python3
"""
Скрипт для создания (или сброса пароля) учетной записи back-office.

Использование:
    python scripts/create_admin.py admin@example.com 'secret-password' --name "Admin"
"""

import argparse
import sys
from pathlib import Path

# Добавляем путь к модулю app
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from app.core.auth import AuthService
from app.db.database import SessionLocal
from app.db.models import AdminUser


def create_admin(email: str, password: str, name: str) -> None:
    """Создает администратора или обновляет пароль существующего."""
    print("🔑 Создание администратора...")
    print("=" * 50)

    email = email.lower()
    db = SessionLocal()
    try:
        user = db.scalar(select(AdminUser).where(AdminUser.email == email))
        if user:
            user.hashed_password = AuthService.get_password_hash(password)
            user.is_active = True
            db.commit()
            print(f"✅ Администратор {email} уже существует, пароль обновлен")
            return

        user = AdminUser(
            email=email,
            name=name,
            hashed_password=AuthService.get_password_hash(password),
            is_active=True,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        print("✅ Администратор создан успешно!")
        print(f"   Email: {user.email}")
        print(f"   ID: {user.id}")
    finally:
        db.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Создание администратора")
    parser.add_argument("email")
    parser.add_argument("password")
    parser.add_argument("--name", default="Admin")
    args = parser.parse_args()

    if len(args.password) < 8:
        print("❌ Пароль должен быть не короче 8 символов")
        sys.exit(1)

    create_admin(args.email, args.password, args.name)


if __name__ == "__main__":
    main()
