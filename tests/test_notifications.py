# tests/test_notifications.py
"""
Тесты уведомлений через Telegram Bot API.
"""

import json

import httpx
import pytest

from app.db.models import Driver, Order
from app.services.notifications import (
    NotificationError,
    TelegramNotifier,
    format_driver_message,
    format_order_message,
)


def make_order(**overrides) -> Order:
    values = dict(
        id="order-1",
        telegram_user_id="2002",
        username="buyer",
        items=[
            {"name": "Lemon <Haze>", "quantity": 2, "price": 1500, "quantity_grams": 10, "line_total": 3000},
            {"name": "Grinder", "quantity": 1, "price": 850, "line_total": 850},
        ],
        total=3850,
        currency="EUR",
        order_day="2026-10-17",
        daily_order_number=7,
        delivery_address="12 rue de la Paix",
        notes="Ring twice & wait",
    )
    values.update(overrides)
    return Order(**values)


def bot_transport(requests, responder=None):
    """MockTransport, запоминающий запросы к Bot API."""

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if responder is not None:
            return responder(request)
        return httpx.Response(200, json={"ok": True, "result": {"message_id": 1}})

    return httpx.MockTransport(handler)


class TestMessageFormatting:
    """Тесты текста уведомлений."""

    def test_order_message(self):
        text = format_order_message(make_order())

        assert "New order #7" in text
        assert "(2026-10-17)" in text
        assert "@buyer" in text
        assert "Lemon &lt;Haze&gt; (10 g) × 2 = 30 €" in text
        assert "Grinder × 1 = 8,50 €" in text
        assert "Total: 38,50 €" in text
        assert "Ring twice &amp; wait" in text
        assert "Demo session" not in text

    def test_order_message_without_username(self):
        text = format_order_message(make_order(username=None, notes=None))

        assert "<code>2002</code>" in text
        assert "📝" not in text

    def test_demo_marker(self):
        text = format_order_message(make_order(demo_session_id="0b1f9c8e-0000-4000-8000-000000000000"))

        assert "Demo session" in text

    def test_driver_message(self):
        driver = Driver(id="d1", name="Max", telegram_chat_id="555")

        text = format_driver_message(make_order(), driver)

        assert "Order #7" in text
        assert "assigned to you" in text
        assert "12 rue de la Paix" in text


class TestTelegramNotifier:
    """Тесты отправки сообщений."""

    @pytest.mark.asyncio
    async def test_send_message_payload(self):
        requests = []
        notifier = TelegramNotifier("123:ABC", ["-100"], transport=bot_transport(requests))

        await notifier.send_message("-100", "hello")

        assert len(requests) == 1
        assert str(requests[0].url) == "https://api.telegram.org/bot123:ABC/sendMessage"
        body = json.loads(requests[0].content)
        assert body == {
            "chat_id": "-100",
            "text": "hello",
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }

    @pytest.mark.asyncio
    async def test_send_message_http_error(self):
        notifier = TelegramNotifier(
            "123:ABC",
            ["-100"],
            transport=bot_transport([], lambda r: httpx.Response(500, text="boom")),
        )

        with pytest.raises(NotificationError, match="500"):
            await notifier.send_message("-100", "hello")

    @pytest.mark.asyncio
    async def test_send_message_not_ok(self):
        notifier = TelegramNotifier(
            "123:ABC",
            ["-100"],
            transport=bot_transport(
                [], lambda r: httpx.Response(200, json={"ok": False, "description": "chat not found"})
            ),
        )

        with pytest.raises(NotificationError, match="chat not found"):
            await notifier.send_message("-100", "hello")

    @pytest.mark.asyncio
    async def test_send_message_network_error(self):
        def responder(request):
            raise httpx.ConnectError("connection refused", request=request)

        notifier = TelegramNotifier("123:ABC", ["-100"], transport=bot_transport([], responder))

        with pytest.raises(NotificationError, match="request failed"):
            await notifier.send_message("-100", "hello")

    @pytest.mark.asyncio
    async def test_notify_all_chats(self):
        requests = []
        notifier = TelegramNotifier("123:ABC", ["-100", "-200"], transport=bot_transport(requests))

        assert await notifier.notify_new_order(make_order()) is True

        assert [json.loads(r.content)["chat_id"] for r in requests] == ["-100", "-200"]

    @pytest.mark.asyncio
    async def test_notify_partial_failure_is_success(self):
        def responder(request):
            if json.loads(request.content)["chat_id"] == "-100":
                return httpx.Response(403, json={"ok": False})
            return httpx.Response(200, json={"ok": True})

        notifier = TelegramNotifier("123:ABC", ["-100", "-200"], transport=bot_transport([], responder))

        assert await notifier.notify_new_order(make_order()) is True

    @pytest.mark.asyncio
    async def test_notify_total_failure_raises(self):
        notifier = TelegramNotifier(
            "123:ABC",
            ["-100", "-200"],
            transport=bot_transport([], lambda r: httpx.Response(502, text="bad gateway")),
        )

        with pytest.raises(NotificationError):
            await notifier.notify_new_order(make_order())

    @pytest.mark.asyncio
    async def test_not_configured_skips(self):
        requests = []
        notifier = TelegramNotifier("", ["-100"], transport=bot_transport(requests))

        assert notifier.is_configured is False
        assert await notifier.notify_new_order(make_order()) is False
        assert requests == []

    @pytest.mark.asyncio
    async def test_driver_notification_is_best_effort(self):
        notifier = TelegramNotifier(
            "123:ABC",
            [],
            transport=bot_transport([], lambda r: httpx.Response(500, text="boom")),
        )
        driver = Driver(id="d1", name="Max", telegram_chat_id="555")

        assert await notifier.notify_driver_assigned(make_order(), driver) is False

    @pytest.mark.asyncio
    async def test_driver_without_chat(self):
        requests = []
        notifier = TelegramNotifier("123:ABC", [], transport=bot_transport(requests))

        assert await notifier.notify_driver_assigned(make_order(), Driver(id="d1", name="Max")) is False
        assert requests == []
