"""
Уведомления через Telegram Bot API.

Сообщение о новом заказе отправляется синхронно в рамках запроса:
если ни один чат не получил его, заказ откатывается.
"""

import html
import logging
from typing import Iterable, List, Optional

import httpx

from app.core.config import settings
from app.db.models import Driver, Order
from app.services.pricing import format_price

logger = logging.getLogger(__name__)


class NotificationError(Exception):
    """Сообщение не доставлено."""


def _escape(value: Optional[str]) -> str:
    return html.escape(value or "", quote=False)


def _customer_label(order: Order) -> str:
    if order.username:
        return f"@{_escape(order.username)}"
    return f"<code>{_escape(order.telegram_user_id)}</code>"


def format_order_message(order: Order) -> str:
    """
    Текст уведомления о новом заказе (HTML).

    Пользовательский текст экранируется.
    """
    lines = [f"🛒 <b>New order #{order.daily_order_number}</b> ({order.order_day})"]
    if order.demo_session_id:
        lines.append("🧪 <i>Demo session</i>")
    lines.append(f"👤 {_customer_label(order)}")
    lines.append("")

    for item in order.items or []:
        name = _escape(item.get("name"))
        if item.get("quantity_grams"):
            name = f"{name} ({item['quantity_grams']} g)"
        line_total = item.get("line_total", item.get("price", 0) * item.get("quantity", 0))
        lines.append(
            f"• {name} × {item.get('quantity')} = {format_price(line_total, order.currency)}"
        )

    lines.append("")
    lines.append(f"💰 <b>Total: {format_price(order.total, order.currency)}</b>")
    if order.delivery_address:
        lines.append(f"📍 {_escape(order.delivery_address)}")
    if order.notes:
        lines.append(f"📝 {_escape(order.notes)}")
    return "\n".join(lines)


def format_driver_message(order: Order, driver: Driver) -> str:
    lines = [
        f"🚚 <b>Order #{order.daily_order_number}</b> ({order.order_day}) assigned to you",
        f"👤 {_customer_label(order)}",
        f"💰 {format_price(order.total, order.currency)}",
    ]
    if order.delivery_address:
        lines.append(f"📍 {_escape(order.delivery_address)}")
    if order.notes:
        lines.append(f"📝 {_escape(order.notes)}")
    return "\n".join(lines)


class TelegramNotifier:
    """
    Клиент Bot API для уведомлений.

    Attributes:
        bot_token: Токен бота
        chat_ids: Чаты для уведомлений о новых заказах
    """

    def __init__(
        self,
        bot_token: str,
        chat_ids: Iterable[str],
        base_url: str = "https://api.telegram.org",
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.bot_token = bot_token
        self.chat_ids: List[str] = list(chat_ids)
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.bot_token and self.chat_ids)

    async def send_message(self, chat_id: str, text: str) -> None:
        """
        Отправить сообщение в чат.

        Raises:
            NotificationError: Сетевая ошибка, не-2xx ответ или ok=false
        """
        url = f"{self.base_url}/bot{self.bot_token}/sendMessage"
        payload = {
            "chat_id": chat_id,
            "text": text,
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(url, json=payload)
        except httpx.HTTPError as e:
            raise NotificationError(f"Bot API request failed: {e}") from e

        if response.status_code >= 300:
            raise NotificationError(
                f"Bot API responded {response.status_code}: {response.text[:200]}"
            )
        try:
            body = response.json()
        except ValueError:
            raise NotificationError("Bot API returned invalid JSON")
        if not body.get("ok"):
            raise NotificationError(f"Bot API error: {body.get('description', 'unknown')}")

    async def notify_new_order(self, order: Order) -> bool:
        """
        Уведомить о новом заказе все настроенные чаты.

        Returns:
            bool: False, если уведомления не настроены (отправка пропущена)

        Raises:
            NotificationError: Ни один чат не получил сообщение
        """
        if not self.is_configured:
            logger.warning(
                f"Telegram notifications are not configured, order {order.id} not announced"
            )
            return False

        text = format_order_message(order)
        delivered = 0
        for chat_id in self.chat_ids:
            try:
                await self.send_message(chat_id, text)
                delivered += 1
            except NotificationError as e:
                logger.error(f"Failed to notify chat {chat_id} about order {order.id}: {e}")

        if delivered == 0:
            raise NotificationError(f"Order {order.id} notification was not delivered")

        logger.info(
            f"Order {order.id} announced to {delivered}/{len(self.chat_ids)} chats"
        )
        return True

    async def notify_driver_assigned(self, order: Order, driver: Driver) -> bool:
        """Сообщить курьеру о назначении. Ошибки только логируются."""
        if not self.bot_token or not driver.telegram_chat_id:
            return False
        try:
            await self.send_message(driver.telegram_chat_id, format_driver_message(order, driver))
        except NotificationError as e:
            logger.warning(f"Failed to notify driver {driver.id} about order {order.id}: {e}")
            return False
        return True


def get_notifier() -> TelegramNotifier:
    """Dependency: уведомитель из настроек приложения."""
    return TelegramNotifier(
        bot_token=settings.TELEGRAM_BOT_TOKEN,
        chat_ids=settings.notification_chat_ids,
        base_url=settings.TELEGRAM_API_BASE_URL,
        timeout=settings.TELEGRAM_TIMEOUT_SECONDS,
    )
