"""
API endpoints для работы с заказами.

Содержит создание заказа покупателем (с уведомлением в Telegram),
историю заказов покупателя и управление заказами в админке.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from app.core.auth import (
    ANONYMOUS_USER_ID,
    INIT_DATA_HEADER,
    SessionUser,
    require_admin,
    resolve_customer,
)
from app.core.demo import demo_scope, get_demo_session_id
from app.core.rate_limit import rate_limit
from app.db.database import get_db
from app.db.models import Driver, Order
from app.schemas.driver import DriverOut
from app.schemas.order import OrderCreate, OrderOut, OrderUpdate
from app.schemas.pagination import PageParams, page_params
from app.services.notifications import NotificationError, TelegramNotifier, get_notifier
from app.services.orders import OrderError, create_order, purge_expired_demo_data
from app.services.settings import writes_open

logger = logging.getLogger(__name__)

router = APIRouter()

# Сколько последних заказов показывать покупателю
USER_ORDERS_LIMIT = 50


def _get_order(db: Session, order_id: str, demo_session_id: Optional[str]) -> Order:
    order = db.get(Order, order_id)
    if not order or order.demo_session_id != demo_session_id:
        raise HTTPException(404, detail="Order not found")
    return order


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("orders")), Depends(writes_open)],
)
async def place_order(
    payload: OrderCreate,
    db: Session = Depends(get_db),
    notifier: TelegramNotifier = Depends(get_notifier),
    demo_session_id: Optional[str] = Depends(get_demo_session_id),
    init_data_header: Optional[str] = Header(None, alias=INIT_DATA_HEADER),
):
    """
    Создать заказ.

    Итоговая сумма пересчитывается по ценам из БД. Заказ считается принятым
    только после доставки уведомления в Telegram; при ошибке уведомления
    заказ удаляется и возвращается 502.

    Raises:
        HTTPException: 400 некорректный заказ, 401 нет/неверные initData,
            502 уведомление не доставлено
    """
    customer = resolve_customer(payload.init_data or init_data_header, demo_session_id)

    try:
        order = await create_order(
            db, payload, customer, notifier, demo_session_id=demo_session_id
        )
    except OrderError as e:
        raise HTTPException(e.status_code, detail=e.message)
    except NotificationError:
        raise HTTPException(
            status.HTTP_502_BAD_GATEWAY,
            detail="Order could not be confirmed, please try again",
        )

    return {"order": OrderOut.model_validate(order)}


@router.get("/user")
def list_user_orders(
    db: Session = Depends(get_db),
    demo_session_id: Optional[str] = Depends(get_demo_session_id),
    init_data_header: Optional[str] = Header(None, alias=INIT_DATA_HEADER),
    init_data: Optional[str] = Query(None, alias="initData"),
):
    """
    Заказы текущего покупателя, новые первыми.

    Покупатель определяется так же, как при создании заказа. У анонимного
    покупателя истории нет: его заказы не связаны с конкретным человеком.
    """
    customer = resolve_customer(init_data or init_data_header, demo_session_id)
    if customer.telegram_user_id == ANONYMOUS_USER_ID:
        return {"orders": []}
    if demo_session_id:
        purge_expired_demo_data(db)

    rows = db.scalars(
        select(Order)
        .where(
            Order.telegram_user_id == customer.telegram_user_id,
            demo_scope(Order.demo_session_id, demo_session_id),
        )
        .order_by(desc(Order.created_at))
        .limit(USER_ORDERS_LIMIT)
    ).all()
    return {"orders": [OrderOut.model_validate(row) for row in rows]}


@router.get("")
def list_orders(
    db: Session = Depends(get_db),
    admin: SessionUser = Depends(require_admin),
    demo_session_id: Optional[str] = Depends(get_demo_session_id),
    pagination: PageParams = Depends(page_params()),
    status: Optional[str] = Query(None, description="Фильтр по статусу"),
    date: Optional[str] = Query(
        None, pattern=r"^\d{4}-\d{2}-\d{2}$", description="День заказа (YYYY-MM-DD)"
    ),
    driver_id: Optional[str] = Query(None, description="Фильтр по курьеру"),
    unassigned: bool = Query(False, description="Только заказы без курьера"),
):
    """
    Получить список заказов с фильтрацией и пагинацией.

    Вместе с заказами возвращается список активных курьеров для назначения.
    """
    conditions = [demo_scope(Order.demo_session_id, demo_session_id)]
    if status:
        conditions.append(Order.status == status)
    if date:
        conditions.append(Order.order_day == date)
    if unassigned:
        conditions.append(Order.driver_id.is_(None))
    elif driver_id:
        conditions.append(Order.driver_id == driver_id)

    total = db.scalar(select(func.count()).select_from(Order).where(*conditions)) or 0
    rows = db.scalars(
        select(Order)
        .where(*conditions)
        .order_by(desc(Order.order_day), desc(Order.daily_order_number))
        .offset(pagination.offset)
        .limit(pagination.page_size)
    ).all()

    drivers = db.scalars(
        select(Driver).where(Driver.is_active.is_(True)).order_by(Driver.name)
    ).all()

    return {
        "orders": [OrderOut.model_validate(row) for row in rows],
        "drivers": [DriverOut.model_validate(driver) for driver in drivers],
        "meta": pagination.meta(total),
    }


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: str,
    db: Session = Depends(get_db),
    admin: SessionUser = Depends(require_admin),
    demo_session_id: Optional[str] = Depends(get_demo_session_id),
):
    return _get_order(db, order_id, demo_session_id)


@router.patch("/{order_id}", response_model=OrderOut)
async def update_order(
    order_id: str,
    payload: OrderUpdate,
    db: Session = Depends(get_db),
    admin: SessionUser = Depends(require_admin),
    demo_session_id: Optional[str] = Depends(get_demo_session_id),
    notifier: TelegramNotifier = Depends(get_notifier),
):
    """
    Обновить заказ: статус, курьер, комментарий, адрес.

    driver_id=null снимает курьера. Новому курьеру отправляется
    уведомление (ошибка отправки не отменяет назначение).
    """
    order = _get_order(db, order_id, demo_session_id)

    data = payload.model_dump(exclude_unset=True)
    if not data:
        raise HTTPException(400, detail="No fields to update")

    assigned_driver = None
    if "driver_id" in data and data["driver_id"] != order.driver_id:
        if data["driver_id"] is not None:
            assigned_driver = db.get(Driver, data["driver_id"])
            if assigned_driver is None:
                raise HTTPException(400, detail="Driver not found")
    if "status" in data and data["status"] is None:
        raise HTTPException(400, detail="Status cannot be empty")

    for field, value in data.items():
        setattr(order, field, value)
    db.commit()
    db.refresh(order)
    logger.info(f"Order {order.id} updated by {admin.kind}:{admin.id}: {sorted(data)}")

    if assigned_driver is not None:
        await notifier.notify_driver_assigned(order, assigned_driver)
    return order


@router.delete("/{order_id}")
def delete_order(
    order_id: str,
    db: Session = Depends(get_db),
    admin: SessionUser = Depends(require_admin),
    demo_session_id: Optional[str] = Depends(get_demo_session_id),
):
    order = _get_order(db, order_id, demo_session_id)
    db.delete(order)
    db.commit()
    logger.info(f"Order {order_id} deleted by {admin.kind}:{admin.id}")
    return {"success": True}
