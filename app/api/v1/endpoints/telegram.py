"""
Вход через Telegram Mini App.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from app.core.auth import auth_service, is_admin, set_admin_cookie
from app.core.config import settings
from app.core.rate_limit import rate_limit
from app.core.telegram import InitDataError, verify_init_data
from app.db.database import get_db
from app.schemas.telegram import VerifyRequest, VerifyResponse
from app.services.contacts import upsert_contact
from app.services.settings import is_maintenance_mode

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/verify",
    response_model=VerifyResponse,
    dependencies=[Depends(rate_limit("telegram-verify"))],
)
def verify(payload: VerifyRequest, response: Response, db: Session = Depends(get_db)):
    """
    Проверить initData и зарегистрировать визит.

    Администратор получает токен админ-сессии (в теле ответа и в cookie).
    В режиме обслуживания вход доступен только администраторам.

    Raises:
        HTTPException: 401 неверные initData, 503 режим обслуживания
    """
    if not settings.TELEGRAM_BOT_TOKEN:
        logger.error("TELEGRAM_BOT_TOKEN is not configured")
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Server configuration error"
        )

    try:
        data = verify_init_data(
            payload.init_data,
            settings.TELEGRAM_BOT_TOKEN,
            max_age_seconds=settings.INIT_DATA_MAX_AGE_SECONDS,
        )
    except InitDataError as e:
        logger.warning(f"initData verification failed: {e}")
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, detail="Invalid initData")

    user_is_admin = False
    if data.user is not None:
        user_id = str(data.user.id)
        user_is_admin = is_admin(db, user_id)
        if is_maintenance_mode(db) and not user_is_admin:
            raise HTTPException(
                status.HTTP_503_SERVICE_UNAVAILABLE, detail="Store is under maintenance"
            )
        upsert_contact(db, data.user)
    elif is_maintenance_mode(db):
        raise HTTPException(
            status.HTTP_503_SERVICE_UNAVAILABLE, detail="Store is under maintenance"
        )

    token = None
    if user_is_admin:
        token = auth_service.create_session_token(
            subject=str(data.user.id), kind="telegram", username=data.user.username
        )
        set_admin_cookie(response, token)
        logger.info(f"Admin session issued for Telegram user {data.user.id}")

    return VerifyResponse(
        user=data.user,
        query_id=data.query_id,
        auth_date=data.auth_date,
        is_admin=user_is_admin,
        token=token,
    )
