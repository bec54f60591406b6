"""
Pydantic схемы для административной панели.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.schemas.pagination import PageMeta

# ==================== УЧЕТНЫЕ ЗАПИСИ ====================


class AdminUserCreate(BaseModel):
    """Схема для создания учетной записи back-office."""

    email: EmailStr
    name: Optional[str] = Field(None, max_length=255)
    password: str = Field(..., min_length=8, max_length=128)


class AdminUserOut(BaseModel):
    """Схема для вывода учетной записи."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    name: Optional[str] = None
    is_active: bool
    created_at: datetime
    last_login: Optional[datetime] = None


class SetupStatus(BaseModel):
    needs_setup: bool


# ==================== АУТЕНТИФИКАЦИЯ ====================


class LoginRequest(BaseModel):
    """Схема для входа в систему."""

    email: EmailStr = Field(..., description="Email")
    password: str = Field(..., description="Пароль")


class LoginResponse(BaseModel):
    """Схема ответа при входе в систему."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: AdminUserOut


class SessionOut(BaseModel):
    """Текущая сессия."""

    authenticated: bool
    is_admin: bool = False
    kind: Optional[str] = None
    id: Optional[str] = None
    username: Optional[str] = None


# ==================== КОНТАКТЫ ====================


class ContactOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    telegram_user_id: str
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    language_code: Optional[str] = None
    is_premium: bool
    is_admin: bool
    first_seen_at: datetime
    last_seen_at: datetime
    visits_count: int


class ContactsPage(BaseModel):
    items: List[ContactOut]
    meta: PageMeta


class ContactAdminUpdate(BaseModel):
    """Выдача или отзыв доступа к админке."""

    telegram_user_id: str = Field(..., min_length=1)
    is_admin: bool


# ==================== СТАТИСТИКА ====================


class DashboardStats(BaseModel):
    """Статистика дашборда."""

    orders_today: int
    revenue_today: int
    pending_orders: int
    total_orders: int
    active_products: int
    total_products: int
    pending_reviews: int
    contacts: int
