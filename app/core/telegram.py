"""
Валидация Telegram Mini App initData.

https://core.telegram.org/bots/webapps#validating-data-received-via-the-mini-app
"""

import hashlib
import hmac
import json
import logging
import time
from typing import Dict, Optional
from urllib.parse import parse_qsl

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE_SECONDS = 3600


class TelegramUser(BaseModel):
    """Данные пользователя из initData."""

    id: int
    first_name: str = ""
    last_name: Optional[str] = None
    username: Optional[str] = None
    language_code: Optional[str] = None
    is_premium: Optional[bool] = None
    photo_url: Optional[str] = None


class TelegramInitData(BaseModel):
    """Проверенные данные initData."""

    user: Optional[TelegramUser] = None
    auth_date: int
    query_id: Optional[str] = None
    chat_type: Optional[str] = None
    chat_instance: Optional[str] = None
    start_param: Optional[str] = None
    hash: str


class InitDataError(Exception):
    """initData не прошли проверку."""


def build_data_check_string(fields: Dict[str, str]) -> str:
    """Строка для подписи: пары key=value без hash, отсортированные по ключу."""
    return "\n".join(f"{key}={fields[key]}" for key in sorted(fields) if key != "hash")


def sign_init_data(fields: Dict[str, str], bot_token: str) -> str:
    """
    Вычислить hex-подпись набора полей initData.

    secret = HMAC_SHA256(key="WebAppData", msg=bot_token)
    hash   = HMAC_SHA256(key=secret, msg=data_check_string)
    """
    secret_key = hmac.new(b"WebAppData", bot_token.encode(), hashlib.sha256).digest()
    return hmac.new(
        secret_key, build_data_check_string(fields).encode(), hashlib.sha256
    ).hexdigest()


def _parse_fields(init_data: str) -> Dict[str, str]:
    return dict(parse_qsl(init_data, keep_blank_values=True))


def verify_init_data(
    init_data: str,
    bot_token: str,
    max_age_seconds: int = DEFAULT_MAX_AGE_SECONDS,
    now: Optional[float] = None,
) -> TelegramInitData:
    """
    Проверить подпись и срок действия initData.

    Args:
        init_data: URL-encoded строка из Telegram.WebApp.initData
        bot_token: Токен бота
        max_age_seconds: Максимальный возраст auth_date
        now: Текущее время (unix), для тестов

    Returns:
        TelegramInitData: Проверенные данные

    Raises:
        InitDataError: Подпись не совпала, данные устарели или повреждены
    """
    if not init_data or not bot_token:
        raise InitDataError("initData or bot token is empty")

    fields = _parse_fields(init_data)
    received_hash = fields.get("hash")
    if not received_hash:
        raise InitDataError("hash is missing")

    expected_hash = sign_init_data(fields, bot_token)
    if not hmac.compare_digest(expected_hash, received_hash):
        raise InitDataError("hash mismatch")

    try:
        auth_date = int(fields.get("auth_date", ""))
    except ValueError:
        raise InitDataError("auth_date is missing or invalid")

    current = time.time() if now is None else now
    if current - auth_date > max_age_seconds:
        raise InitDataError("initData is too old")

    user = None
    if fields.get("user"):
        try:
            user = TelegramUser.model_validate(json.loads(fields["user"]))
        except (ValueError, ValidationError) as e:
            raise InitDataError(f"user payload is invalid: {e}")

    return TelegramInitData(
        user=user,
        auth_date=auth_date,
        query_id=fields.get("query_id") or None,
        chat_type=fields.get("chat_type") or None,
        chat_instance=fields.get("chat_instance") or None,
        start_param=fields.get("start_param") or None,
        hash=received_hash,
    )


def parse_init_data(init_data: str) -> Optional[TelegramInitData]:
    """
    Распарсить initData без проверки подписи.

    Только для отображения; для авторизации использовать verify_init_data.
    """
    try:
        fields = _parse_fields(init_data)
        user = None
        if fields.get("user"):
            user = TelegramUser.model_validate(json.loads(fields["user"]))
        return TelegramInitData(
            user=user,
            auth_date=int(fields.get("auth_date") or 0),
            query_id=fields.get("query_id") or None,
            start_param=fields.get("start_param") or None,
            hash=fields.get("hash", ""),
        )
    except (ValueError, ValidationError):
        return None
