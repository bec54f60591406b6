"""
API endpoints для настроек магазина (key-value).

Часть ключей (контакты, режим обслуживания, минимальная сумма заказа)
доступна без авторизации, остальные только администраторам.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.core.auth import SessionUser, get_session, require_admin
from app.core.demo import get_demo_session_id
from app.db.database import get_db
from app.db.models.base import utcnow
from app.schemas.setting import SettingIn, SettingOut
from app.services import settings as settings_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
def get_settings(
    key: Optional[str] = Query(None, description="Ключ настройки"),
    db: Session = Depends(get_db),
    session: Optional[SessionUser] = Depends(get_session),
):
    """
    Получить настройку по ключу или все настройки (только админ).

    Для maintenance_mode и emergency_message возвращаются значения
    по умолчанию, если они не заданы.
    """
    if key is None:
        require_admin(session)
        return {
            "settings": [
                SettingOut.model_validate(s) for s in settings_service.list_settings(db)
            ]
        }

    if key not in settings_service.PUBLIC_KEYS:
        require_admin(session)

    setting = settings_service.get_setting(db, key)
    if setting is not None:
        return {"setting": SettingOut.model_validate(setting)}
    if key in settings_service.DEFAULTS:
        return {
            "setting": SettingOut(
                key=key, value=settings_service.DEFAULTS[key], updated_at=utcnow()
            )
        }
    raise HTTPException(404, detail="Setting not found")


@router.put("", response_model=dict)
def put_setting(
    payload: SettingIn,
    db: Session = Depends(get_db),
    admin: SessionUser = Depends(require_admin),
    demo_session_id: Optional[str] = Depends(get_demo_session_id),
):
    """
    Создать или обновить настройку.

    Raises:
        HTTPException: 403 при попытке изменить режим обслуживания из демо-сессии
    """
    if demo_session_id and payload.key == settings_service.MAINTENANCE_MODE:
        raise HTTPException(403, detail="Maintenance mode cannot be changed in demo")

    setting = settings_service.upsert_setting(db, payload.key, payload.value)
    logger.info(f"Setting '{payload.key}' changed by {admin.kind}:{admin.id}")
    return {"setting": SettingOut.model_validate(setting)}


@router.delete("")
def delete_setting(
    key: str = Query(..., min_length=1, description="Ключ настройки"),
    db: Session = Depends(get_db),
    admin: SessionUser = Depends(require_admin),
    demo_session_id: Optional[str] = Depends(get_demo_session_id),
):
    if demo_session_id and key == settings_service.MAINTENANCE_MODE:
        raise HTTPException(403, detail="Maintenance mode cannot be changed in demo")
    if not settings_service.delete_setting(db, key):
        raise HTTPException(404, detail="Setting not found")
    return {"success": True}
