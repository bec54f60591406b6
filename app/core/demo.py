"""
Демо-сессии.

Посетитель демо-витрины генерирует UUID на клиенте и передает его
в заголовке X-Demo-Session-Id. Заказы и отзывы, созданные в демо-сессии,
видны только в этой сессии.
"""

from typing import Optional
from uuid import UUID

from fastapi import Header, HTTPException, status

DEMO_SESSION_HEADER = "X-Demo-Session-Id"


def normalize_demo_session_id(value: Optional[str]) -> Optional[str]:
    """
    Нормализация идентификатора демо-сессии.

    Returns:
        Optional[str]: UUID в нижнем регистре или None для пустого значения

    Raises:
        ValueError: Если значение не является UUID
    """
    value = (value or "").strip()
    if not value:
        return None
    return str(UUID(value))


def get_demo_session_id(
    x_demo_session_id: Optional[str] = Header(None, alias=DEMO_SESSION_HEADER),
) -> Optional[str]:
    """Dependency: ID демо-сессии из заголовка запроса."""
    try:
        return normalize_demo_session_id(x_demo_session_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Demo session id must be a valid UUID",
        )


def demo_user_id(demo_session_id: str) -> str:
    """Идентификатор покупателя для демо-сессии."""
    return f"demo:{demo_session_id}"


def demo_scope(column, demo_session_id: Optional[str]):
    """
    Условие WHERE для разделения демо-данных.

    С демо-сессией видны только ее строки, без нее демо-строки скрыты.
    """
    if demo_session_id:
        return column == demo_session_id
    return column.is_(None)
