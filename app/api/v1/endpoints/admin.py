"""
API эндпоинты для административной панели.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from app.core.auth import (
    SessionUser,
    auth_service,
    clear_admin_cookie,
    get_session,
    require_admin,
    set_admin_cookie,
)
from app.core.config import settings
from app.core.demo import demo_scope, get_demo_session_id
from app.db.database import get_db
from app.db.models import AdminUser, Order, Product, Review, TelegramContact
from app.db.models.base import utcnow
from app.schemas.admin import (
    AdminUserOut,
    ContactAdminUpdate,
    ContactOut,
    ContactsPage,
    DashboardStats,
    LoginRequest,
    LoginResponse,
    SessionOut,
)
from app.schemas.pagination import PageParams, page_params

logger = logging.getLogger(__name__)

router = APIRouter()


# ==================== СЕССИЯ ====================


@router.get("/session", response_model=SessionOut)
def admin_session(session: Optional[SessionUser] = Depends(get_session)):
    """Информация о текущей сессии (без ошибки, если сессии нет)."""
    if session is None:
        return SessionOut(authenticated=False)
    return SessionOut(
        authenticated=True,
        is_admin=session.is_admin,
        kind=session.kind,
        id=session.id,
        username=session.username,
    )


@router.post("/logout")
def admin_logout(response: Response):
    """Выход: удаление cookie админ-сессии."""
    clear_admin_cookie(response)
    return {"success": True}


@router.post("/auth/login", response_model=LoginResponse)
def admin_login(
    login_data: LoginRequest, response: Response, db: Session = Depends(get_db)
):
    """
    Вход в административную панель по email и паролю.

    Raises:
        HTTPException: При неверных учетных данных или отключенной учетной записи
    """
    user = db.scalar(select(AdminUser).where(AdminUser.email == login_data.email.lower()))

    if not user or not auth_service.verify_password(login_data.password, user.hashed_password):
        logger.warning(f"Failed admin login for {login_data.email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="User account is disabled"
        )

    # Обновляем время последнего входа
    user.last_login = utcnow()
    db.commit()
    db.refresh(user)

    access_token = auth_service.create_session_token(
        subject=user.id, kind="password", username=user.email
    )
    set_admin_cookie(response, access_token)
    logger.info(f"Admin {user.email} logged in")

    return LoginResponse(
        access_token=access_token,
        expires_in=settings.ADMIN_SESSION_TTL_SECONDS,
        user=AdminUserOut.model_validate(user),
    )


# ==================== КОНТАКТЫ ====================


@router.get("/contacts", response_model=ContactsPage)
def list_contacts(
    db: Session = Depends(get_db),
    admin: SessionUser = Depends(require_admin),
    pagination: PageParams = Depends(page_params(max_page_size=500)),
    q: Optional[str] = Query(None, description="Поиск по username / имени / ID"),
):
    """Посетители Mini App, последние визиты первыми."""
    stmt = select(TelegramContact)
    count_stmt = select(func.count()).select_from(TelegramContact)
    if q:
        pattern = f"%{q}%"
        condition = (
            TelegramContact.username.ilike(pattern)
            | TelegramContact.first_name.ilike(pattern)
            | TelegramContact.last_name.ilike(pattern)
            | TelegramContact.telegram_user_id.ilike(pattern)
        )
        stmt = stmt.where(condition)
        count_stmt = count_stmt.where(condition)

    total = db.scalar(count_stmt) or 0
    rows = db.scalars(
        stmt.order_by(desc(TelegramContact.last_seen_at))
        .offset(pagination.offset)
        .limit(pagination.page_size)
    ).all()

    return ContactsPage(
        items=[ContactOut.model_validate(row) for row in rows],
        meta=pagination.meta(total),
    )


@router.patch("/contacts", response_model=ContactOut)
def update_contact_admin(
    payload: ContactAdminUpdate,
    db: Session = Depends(get_db),
    admin: SessionUser = Depends(require_admin),
):
    """
    Выдать или отозвать доступ к админке для Telegram контакта.

    Raises:
        HTTPException: 404 если контакт не найден, 400 при попытке снять права с себя
    """
    contact = db.scalar(
        select(TelegramContact).where(
            TelegramContact.telegram_user_id == payload.telegram_user_id
        )
    )
    if not contact:
        raise HTTPException(404, detail="Contact not found")
    if not payload.is_admin and admin.telegram_user_id == payload.telegram_user_id:
        raise HTTPException(400, detail="You cannot revoke your own admin access")

    contact.is_admin = payload.is_admin
    db.commit()
    db.refresh(contact)
    logger.info(
        f"Admin access for {payload.telegram_user_id} set to {payload.is_admin} "
        f"by {admin.kind}:{admin.id}"
    )
    return contact


# ==================== СТАТИСТИКА ====================


@router.get("/stats", response_model=DashboardStats)
def dashboard_stats(
    db: Session = Depends(get_db),
    admin: SessionUser = Depends(require_admin),
    demo_session_id: Optional[str] = Depends(get_demo_session_id),
):
    """Сводка для дашборда. Отмененные заказы не входят в выручку."""
    today = utcnow().strftime("%Y-%m-%d")
    scope = demo_scope(Order.demo_session_id, demo_session_id)

    def count(stmt) -> int:
        return db.scalar(stmt) or 0

    orders_today = count(
        select(func.count()).select_from(Order).where(scope, Order.order_day == today)
    )
    revenue_today = count(
        select(func.coalesce(func.sum(Order.total), 0)).where(
            scope, Order.order_day == today, Order.status != "cancelled"
        )
    )
    pending_orders = count(
        select(func.count()).select_from(Order).where(scope, Order.status == "pending")
    )
    total_orders = count(select(func.count()).select_from(Order).where(scope))
    total_products = count(select(func.count()).select_from(Product))
    active_products = count(
        select(func.count()).select_from(Product).where(Product.is_active.is_(True))
    )
    pending_reviews = count(
        select(func.count())
        .select_from(Review)
        .where(
            demo_scope(Review.demo_session_id, demo_session_id),
            Review.status == "pending",
        )
    )
    contacts = count(select(func.count()).select_from(TelegramContact))

    return DashboardStats(
        orders_today=orders_today,
        revenue_today=int(revenue_today),
        pending_orders=pending_orders,
        total_orders=total_orders,
        active_products=active_products,
        total_products=total_products,
        pending_reviews=pending_reviews,
        contacts=contacts,
    )
