"""
Модуль аутентификации и авторизации.

Содержит функции для работы с админ-токенами (JWT), хеширования паролей,
проверки прав администратора и определения покупателя по Telegram initData.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, Header, HTTPException, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.demo import demo_user_id
from app.core.telegram import InitDataError, verify_init_data
from app.db.database import get_db
from app.db.models import AdminUser, TelegramContact

logger = logging.getLogger(__name__)

# Настройка хеширования паролей
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ALGORITHM = "HS256"
INIT_DATA_HEADER = "X-Telegram-Init-Data"

# Токен может прийти и в cookie, поэтому заголовок необязателен
security = HTTPBearer(auto_error=False)

DEV_USER_ID = "dev_user_123"
DEV_USERNAME = "dev_user"
ANONYMOUS_USER_ID = "anonymous"


@dataclass
class SessionUser:
    """
    Текущая сессия.

    Attributes:
        id: Telegram ID или ID учетной записи back-office
        kind: telegram/password
        is_admin: Есть ли права администратора
    """

    id: str
    kind: str
    is_admin: bool
    username: Optional[str] = None

    @property
    def telegram_user_id(self) -> Optional[str]:
        return self.id if self.kind == "telegram" else None


@dataclass
class Customer:
    """Покупатель, от имени которого создается заказ или отзыв."""

    telegram_user_id: str
    username: Optional[str] = None


class AuthService:
    """Сервис для работы с аутентификацией."""

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        """Проверка пароля."""
        return pwd_context.verify(plain_password, hashed_password)

    @staticmethod
    def get_password_hash(password: str) -> str:
        """Хеширование пароля."""
        return pwd_context.hash(password)

    @staticmethod
    def create_session_token(
        subject: str,
        kind: str,
        username: Optional[str] = None,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        """Создание подписанного токена админ-сессии."""
        expire = datetime.now(timezone.utc) + (
            expires_delta or timedelta(seconds=settings.ADMIN_SESSION_TTL_SECONDS)
        )
        payload = {"sub": subject, "kind": kind, "username": username, "exp": expire}
        return jwt.encode(payload, settings.ADMIN_SESSION_SECRET, algorithm=ALGORITHM)

    @staticmethod
    def verify_session_token(token: str) -> Optional[dict]:
        """Проверка токена. None, если подпись неверна или срок истек."""
        try:
            payload = jwt.decode(
                token, settings.ADMIN_SESSION_SECRET, algorithms=[ALGORITHM]
            )
        except jwt.PyJWTError:
            return None
        if not payload.get("sub") or payload.get("kind") not in ("telegram", "password"):
            return None
        return payload


def is_admin(db: Session, telegram_user_id: str) -> bool:
    """
    Проверка прав администратора для Telegram пользователя.

    Сначала белый список из окружения, затем флаг is_admin в telegram_contacts.
    """
    if settings.is_development and settings.BYPASS_ADMIN_CHECK:
        logger.warning("BYPASS_ADMIN_CHECK is enabled, admin check skipped")
        return True

    if telegram_user_id in settings.admin_ids:
        return True

    contact = db.scalar(
        select(TelegramContact).where(TelegramContact.telegram_user_id == telegram_user_id)
    )
    return bool(contact and contact.is_admin)


def _session_from_token(db: Session, token: str) -> Optional[SessionUser]:
    payload = AuthService.verify_session_token(token)
    if payload is None:
        return None

    subject = str(payload["sub"])
    if payload["kind"] == "password":
        user = db.get(AdminUser, subject)
        if user is None or not user.is_active:
            return None
        return SessionUser(id=user.id, kind="password", is_admin=True, username=user.email)

    return SessionUser(
        id=subject,
        kind="telegram",
        is_admin=is_admin(db, subject),
        username=payload.get("username"),
    )


def get_session(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    init_data: Optional[str] = Header(None, alias=INIT_DATA_HEADER),
    db: Session = Depends(get_db),
) -> Optional[SessionUser]:
    """
    Получение текущей сессии.

    Порядок проверки: Bearer токен, cookie tg_admin, подписанные initData
    в заголовке X-Telegram-Init-Data (WebView без поддержки cookie).
    """
    if credentials is not None:
        session = _session_from_token(db, credentials.credentials)
        if session is not None:
            return session

    cookie_token = request.cookies.get(settings.ADMIN_COOKIE_NAME)
    if cookie_token:
        session = _session_from_token(db, cookie_token)
        if session is not None:
            return session

    if init_data and settings.TELEGRAM_BOT_TOKEN:
        try:
            data = verify_init_data(
                init_data,
                settings.TELEGRAM_BOT_TOKEN,
                max_age_seconds=settings.INIT_DATA_MAX_AGE_SECONDS,
            )
        except InitDataError as e:
            logger.warning(f"Rejected {INIT_DATA_HEADER} header: {e}")
            return None
        if data.user is not None:
            user_id = str(data.user.id)
            return SessionUser(
                id=user_id,
                kind="telegram",
                is_admin=is_admin(db, user_id),
                username=data.user.username,
            )

    return None


def require_admin(session: Optional[SessionUser] = Depends(get_session)) -> SessionUser:
    """Проверка прав администратора."""
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not session.is_admin:
        logger.warning(f"Admin access denied for {session.kind}:{session.id}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return session


def set_admin_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.ADMIN_COOKIE_NAME,
        value=token,
        max_age=settings.ADMIN_SESSION_TTL_SECONDS,
        httponly=True,
        samesite="lax",
        secure=settings.ADMIN_COOKIE_SECURE,
        path="/",
    )


def clear_admin_cookie(response: Response) -> None:
    response.delete_cookie(key=settings.ADMIN_COOKIE_NAME, path="/")


def resolve_customer(
    init_data: Optional[str], demo_session_id: Optional[str] = None
) -> Customer:
    """
    Определить покупателя для заказа или отзыва.

    - development: фиксированный dev пользователь (или демо-сессия);
    - initData передан: проверенный Telegram пользователь, иначе 401;
    - initData нет: демо-пользователь, anonymous (если разрешено) или 401.
    """
    if settings.is_development:
        if demo_session_id:
            return Customer(telegram_user_id=demo_user_id(demo_session_id), username=DEV_USERNAME)
        return Customer(telegram_user_id=DEV_USER_ID, username=DEV_USERNAME)

    if init_data:
        try:
            data = verify_init_data(
                init_data,
                settings.TELEGRAM_BOT_TOKEN,
                max_age_seconds=settings.INIT_DATA_MAX_AGE_SECONDS,
            )
        except InitDataError as e:
            logger.warning(f"Invalid Telegram initData: {e}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid Telegram initData"
            )
        if data.user is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid Telegram initData"
            )
        return Customer(telegram_user_id=str(data.user.id), username=data.user.username)

    if demo_session_id:
        return Customer(telegram_user_id=demo_user_id(demo_session_id))

    if settings.ALLOW_ANONYMOUS_ORDERS:
        return Customer(telegram_user_id=ANONYMOUS_USER_ID)

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED, detail="Telegram initData is required"
    )


# Экспорт сервиса
auth_service = AuthService()
