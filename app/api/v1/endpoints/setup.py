"""
Первоначальная настройка: создание учетной записи back-office.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.auth import auth_service
from app.core.config import settings
from app.db.database import get_db
from app.db.models import AdminUser
from app.schemas.admin import AdminUserCreate, AdminUserOut, SetupStatus

logger = logging.getLogger(__name__)

router = APIRouter()


def _setup_available(db: Session) -> bool:
    if settings.is_development:
        return True
    return (db.scalar(select(func.count()).select_from(AdminUser)) or 0) == 0


@router.get("", response_model=SetupStatus)
def setup_status(db: Session = Depends(get_db)):
    """Доступна ли первоначальная настройка."""
    return SetupStatus(needs_setup=_setup_available(db))


@router.post("", response_model=AdminUserOut, status_code=status.HTTP_201_CREATED)
def create_first_admin(payload: AdminUserCreate, db: Session = Depends(get_db)):
    """
    Создать учетную запись администратора.

    Работает, только если учетных записей еще нет (или в development).

    Raises:
        HTTPException: 403 если настройка уже выполнена, 409 если email занят
    """
    if not _setup_available(db):
        raise HTTPException(
            status.HTTP_403_FORBIDDEN,
            detail="Setup not available. Admin account already exists.",
        )

    email = payload.email.lower()
    if db.scalar(select(AdminUser.id).where(AdminUser.email == email)):
        raise HTTPException(
            status.HTTP_409_CONFLICT, detail="An account with this email already exists"
        )

    user = AdminUser(
        email=email,
        name=payload.name or "Admin",
        hashed_password=auth_service.get_password_hash(payload.password),
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info(f"Admin account {email} created via setup")
    return user
