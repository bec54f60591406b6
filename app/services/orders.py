"""
Создание заказов.

Сумма заказа пересчитывается на сервере по ценам из БД. После вставки
заказ сразу отправляется в Telegram; если сообщение не доставлено,
заказ удаляется (компенсирующее действие) и клиент получает ошибку.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from sqlalchemy import and_, delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.auth import Customer
from app.core.config import settings
from app.db.models import Order, PricingTier, Product, Review
from app.db.models.base import utcnow
from app.schemas.order import OrderCreate, OrderItemIn
from app.services.notifications import NotificationError, TelegramNotifier
from app.services.pricing import format_price
from app.services.settings import get_min_order_amount

logger = logging.getLogger(__name__)

# Попытки выделить номер заказа за день при конкурентной вставке
MAX_NUMBER_ATTEMPTS = 3


class OrderError(Exception):
    """Заказ не может быть создан."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def price_items(db: Session, items: List[OrderItemIn]) -> Tuple[List[dict], int]:
    """
    Рассчитать позиции заказа по ценам из БД.

    Returns:
        Tuple[List[dict], int]: Снимок позиций и итоговая сумма в центах

    Raises:
        OrderError: Товар не найден, неактивен или уровень цены не от этого товара
    """
    snapshot: List[dict] = []
    total = 0

    for item in items:
        product = db.get(Product, item.product_id)
        if product is None:
            raise OrderError(f"Product {item.product_id} not found")
        if not product.is_active:
            raise OrderError(f"Product {product.name} is no longer available")

        unit_price = product.price
        quantity_grams = None
        if item.tier_id:
            tier = db.get(PricingTier, item.tier_id)
            if tier is None or tier.product_id != product.id:
                raise OrderError(f"Pricing tier {item.tier_id} not found for product {product.name}")
            unit_price = tier.price
            quantity_grams = tier.quantity_grams

        line_total = unit_price * item.quantity
        total += line_total
        snapshot.append(
            {
                "product_id": product.id,
                "name": product.name,
                "quantity": item.quantity,
                "price": unit_price,
                "tier_id": item.tier_id,
                "quantity_grams": quantity_grams,
                "line_total": line_total,
            }
        )

    return snapshot, total


def next_daily_number(db: Session, order_day: str) -> int:
    current = db.scalar(
        select(func.max(Order.daily_order_number)).where(Order.order_day == order_day)
    )
    return (current or 0) + 1


def _insert_order(db: Session, values: dict, order_day: str) -> Order:
    for attempt in range(1, MAX_NUMBER_ATTEMPTS + 1):
        order = Order(
            **values,
            order_day=order_day,
            daily_order_number=next_daily_number(db, order_day),
        )
        db.add(order)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.warning(
                f"Daily number {order.daily_order_number} for {order_day} already taken "
                f"(attempt {attempt}/{MAX_NUMBER_ATTEMPTS})"
            )
            continue
        db.refresh(order)
        return order

    raise OrderError("Could not allocate order number, please try again", status_code=409)


async def create_order(
    db: Session,
    payload: OrderCreate,
    customer: Customer,
    notifier: TelegramNotifier,
    demo_session_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Order:
    """
    Создать заказ и уведомить о нем в Telegram.

    Raises:
        OrderError: Некорректный заказ
        NotificationError: Уведомление не доставлено, заказ удален
    """
    snapshot, calculated_total = price_items(db, payload.items)

    if abs(calculated_total - payload.total) > settings.ORDER_TOTAL_TOLERANCE_CENTS:
        logger.warning(
            f"Order total mismatch for {customer.telegram_user_id}: "
            f"client={payload.total} server={calculated_total}"
        )
        raise OrderError("Order total mismatch")

    min_amount = get_min_order_amount(db)
    if min_amount is not None and calculated_total < min_amount:
        raise OrderError(
            f"Minimum order amount is {format_price(min_amount, payload.currency)}"
        )

    order_day = (now or utcnow()).strftime("%Y-%m-%d")
    order = _insert_order(
        db,
        {
            "telegram_user_id": customer.telegram_user_id,
            "username": customer.username,
            "items": snapshot,
            "total": calculated_total,
            "currency": payload.currency,
            "status": "pending",
            "notes": payload.notes,
            "delivery_address": payload.delivery_address,
            "demo_session_id": demo_session_id,
        },
        order_day,
    )
    logger.info(
        f"Order {order.id} #{order.daily_order_number} created for "
        f"{customer.telegram_user_id}, total={calculated_total}"
    )

    try:
        await notifier.notify_new_order(order)
    except NotificationError as e:
        logger.error(f"Order {order.id} rolled back, notification failed: {e}")
        db.delete(order)
        db.commit()
        raise

    return order


def purge_expired_demo_data(db: Session, now: Optional[datetime] = None) -> int:
    """Удалить заказы и отзывы демо-сессий старше DEMO_DATA_TTL_HOURS."""
    cutoff = (now or utcnow()) - timedelta(hours=settings.DEMO_DATA_TTL_HOURS)
    removed = 0
    for model in (Order, Review):
        result = db.execute(
            delete(model)
            .where(and_(model.demo_session_id.isnot(None), model.created_at < cutoff))
            .execution_options(synchronize_session=False)
        )
        removed += result.rowcount or 0
    db.commit()
    if removed:
        logger.info(f"Purged {removed} expired demo rows")
    return removed
