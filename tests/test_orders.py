# tests/test_orders.py
"""
Тесты создания заказов и управления ими.
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from app.core.auth import Customer
from app.db.models import Driver, Order, Review
from app.schemas.order import OrderCreate
from app.services.notifications import NotificationError
from app.services.orders import (
    OrderError,
    create_order,
    next_daily_number,
    price_items,
    purge_expired_demo_data,
)
from app.services import orders as orders_service
from app.services.settings import upsert_setting
from tests.conftest import FakeNotifier, make_init_data

ORDERS_URL = "/api/v1/orders"


def order_payload(product, quantity=1, total=None, tier=None, **overrides):
    unit_price = tier.price if tier else product.price
    payload = {
        "items": [
            {
                "product_id": product.id,
                "name": product.name,
                "quantity": quantity,
                "price": unit_price,
                "tier_id": tier.id if tier else None,
            }
        ],
        "total": unit_price * quantity if total is None else total,
        "currency": "EUR",
        "delivery_address": "12 rue de la Paix",
    }
    payload.update(overrides)
    return payload


def make_order(db, **overrides) -> Order:
    values = dict(
        telegram_user_id="2002",
        items=[],
        total=1000,
        order_day="2026-10-17",
        daily_order_number=1,
    )
    values.update(overrides)
    order = Order(**values)
    db.add(order)
    db.commit()
    db.refresh(order)
    return order


class TestPriceItems:
    """Тесты серверного расчета позиций."""

    def test_uses_database_prices(self, db, make_product):
        product = make_product(price=1200)
        payload = OrderCreate.model_validate(order_payload(product, quantity=3, total=1))

        snapshot, total = price_items(db, payload.items)

        assert total == 3600
        assert snapshot[0]["price"] == 1200
        assert snapshot[0]["line_total"] == 3600
        assert snapshot[0]["name"] == product.name

    def test_tier_price(self, db, make_product):
        product = make_product(price=200, tiers=[{"quantity_grams": 10, "price": 1500}])
        tier = product.pricing_tiers[0]
        payload = OrderCreate.model_validate(order_payload(product, quantity=2, tier=tier))

        snapshot, total = price_items(db, payload.items)

        assert total == 3000
        assert snapshot[0]["quantity_grams"] == 10
        assert snapshot[0]["tier_id"] == tier.id

    def test_tier_of_other_product(self, db, make_product):
        product = make_product()
        other = make_product(tiers=[{"quantity_grams": 10, "price": 1500}])
        payload = OrderCreate.model_validate(
            order_payload(product, tier=other.pricing_tiers[0])
        )

        with pytest.raises(OrderError, match="Pricing tier"):
            price_items(db, payload.items)

    def test_unknown_product(self, db, make_product):
        product = make_product()
        payload = order_payload(product)
        payload["items"][0]["product_id"] = "missing"

        with pytest.raises(OrderError, match="not found"):
            price_items(db, OrderCreate.model_validate(payload).items)

    def test_inactive_product(self, db, make_product):
        product = make_product(is_active=False, name="Old stock")

        with pytest.raises(OrderError, match="Old stock is no longer available"):
            price_items(db, OrderCreate.model_validate(order_payload(product)).items)


class TestCreateOrderService:
    """Тесты сервиса create_order."""

    @pytest.mark.asyncio
    async def test_daily_numbering(self, db, make_product):
        product = make_product(price=500)
        notifier = FakeNotifier()
        customer = Customer(telegram_user_id="2002", username="buyer")
        payload = OrderCreate.model_validate(order_payload(product))
        day1 = datetime(2026, 10, 16, 23, 0, tzinfo=timezone.utc)
        day2 = datetime(2026, 10, 17, 8, 0, tzinfo=timezone.utc)

        first = await create_order(db, payload, customer, notifier, now=day1)
        second = await create_order(db, payload, customer, notifier, now=day1)
        third = await create_order(db, payload, customer, notifier, now=day2)

        assert (first.order_day, first.daily_order_number) == ("2026-10-16", 1)
        assert (second.order_day, second.daily_order_number) == ("2026-10-16", 2)
        assert (third.order_day, third.daily_order_number) == ("2026-10-17", 1)
        assert next_daily_number(db, "2026-10-16") == 3
        assert len(notifier.orders) == 3

    @pytest.mark.asyncio
    async def test_total_tolerance(self, db, make_product):
        product = make_product(price=1000)
        customer = Customer(telegram_user_id="2002")

        # расхождение в 1 цент допустимо
        order = await create_order(
            db,
            OrderCreate.model_validate(order_payload(product, total=1001)),
            customer,
            FakeNotifier(),
        )
        assert order.total == 1000

        with pytest.raises(OrderError, match="Order total mismatch"):
            await create_order(
                db,
                OrderCreate.model_validate(order_payload(product, total=1002)),
                customer,
                FakeNotifier(),
            )

    @pytest.mark.asyncio
    async def test_notification_failure_deletes_order(self, db, make_product):
        product = make_product()
        notifier = FakeNotifier()
        notifier.fail = True

        with pytest.raises(NotificationError):
            await create_order(
                db,
                OrderCreate.model_validate(order_payload(product)),
                Customer(telegram_user_id="2002"),
                notifier,
            )

        assert db.query(Order).count() == 0

    @pytest.mark.asyncio
    async def test_taken_daily_number_is_retried(self, db, make_product, monkeypatch):
        product = make_product(price=500)
        make_order(db, order_day="2026-10-16", daily_order_number=1)
        calls = []

        def stale_number(session, order_day):
            calls.append(order_day)
            # первая попытка видит устаревший максимум
            return 1 if len(calls) == 1 else next_daily_number(session, order_day)

        monkeypatch.setattr(orders_service, "next_daily_number", stale_number)

        order = await create_order(
            db,
            OrderCreate.model_validate(order_payload(product)),
            Customer(telegram_user_id="2002"),
            FakeNotifier(),
            now=datetime(2026, 10, 16, 12, 0, tzinfo=timezone.utc),
        )

        assert order.daily_order_number == 2
        assert len(calls) == 2
        assert db.query(Order).count() == 2

    @pytest.mark.asyncio
    async def test_daily_number_conflict_gives_up(self, db, make_product, monkeypatch):
        product = make_product(price=500)
        make_order(db, order_day="2026-10-16", daily_order_number=1)
        monkeypatch.setattr(orders_service, "next_daily_number", lambda session, order_day: 1)
        notifier = FakeNotifier()

        with pytest.raises(OrderError) as exc_info:
            await create_order(
                db,
                OrderCreate.model_validate(order_payload(product)),
                Customer(telegram_user_id="2002"),
                notifier,
                now=datetime(2026, 10, 16, 12, 0, tzinfo=timezone.utc),
            )

        assert exc_info.value.status_code == 409
        assert exc_info.value.message == "Could not allocate order number, please try again"
        assert db.query(Order).count() == 1
        assert notifier.orders == []


class TestPlaceOrderEndpoint:
    """Тесты POST /orders."""

    def test_success(self, client, make_product, notifier, customer_headers):
        product = make_product(price=1250)

        response = client.post(
            ORDERS_URL, json=order_payload(product, quantity=2), headers=customer_headers
        )

        assert response.status_code == 201
        order = response.json()["order"]
        assert order["telegram_user_id"] == "2002"
        assert order["username"] == "buyer"
        assert order["total"] == 2500
        assert order["status"] == "pending"
        assert order["daily_order_number"] == 1
        assert order["items"][0]["line_total"] == 2500
        assert len(notifier.orders) == 1

    def test_init_data_in_body(self, client, make_product):
        product = make_product()

        response = client.post(
            ORDERS_URL, json=order_payload(product, initData=make_init_data(user_id=77))
        )

        assert response.status_code == 201
        assert response.json()["order"]["telegram_user_id"] == "77"

    def test_requires_init_data(self, client, make_product):
        response = client.post(ORDERS_URL, json=order_payload(make_product()))

        assert response.status_code == 401
        assert response.json()["detail"] == "Telegram initData is required"

    def test_invalid_init_data(self, client, make_product):
        headers = {"X-Telegram-Init-Data": make_init_data(bot_token="1:WRONG")}

        response = client.post(ORDERS_URL, json=order_payload(make_product()), headers=headers)

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid Telegram initData"

    def test_anonymous_orders(self, client, make_product, app_settings):
        app_settings(ALLOW_ANONYMOUS_ORDERS=True)

        response = client.post(ORDERS_URL, json=order_payload(make_product()))

        assert response.status_code == 201
        assert response.json()["order"]["telegram_user_id"] == "anonymous"

    def test_development_user(self, client, make_product, app_settings):
        app_settings(ENVIRONMENT="development")

        response = client.post(ORDERS_URL, json=order_payload(make_product()))

        assert response.status_code == 201
        assert response.json()["order"]["telegram_user_id"] == "dev_user_123"

    def test_development_demo_user(self, client, make_product, app_settings):
        app_settings(ENVIRONMENT="development")
        demo_id = str(uuid.uuid4())

        response = client.post(
            ORDERS_URL,
            json=order_payload(make_product()),
            headers={"X-Demo-Session-Id": demo_id},
        )

        assert response.status_code == 201
        assert response.json()["order"]["telegram_user_id"] == f"demo:{demo_id}"

    def test_total_mismatch(self, client, make_product, notifier, customer_headers):
        product = make_product(price=1000)

        response = client.post(
            ORDERS_URL, json=order_payload(product, total=500), headers=customer_headers
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Order total mismatch"
        assert notifier.orders == []

    def test_inactive_product(self, client, make_product, customer_headers):
        product = make_product(is_active=False)

        response = client.post(ORDERS_URL, json=order_payload(product), headers=customer_headers)

        assert response.status_code == 400
        assert "no longer available" in response.json()["detail"]

    def test_blank_address(self, client, make_product, customer_headers):
        payload = order_payload(make_product(), delivery_address="   ")

        response = client.post(ORDERS_URL, json=payload, headers=customer_headers)

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid input"

    def test_min_order_amount(self, client, db, make_product, customer_headers):
        upsert_setting(db, "min_order_amount", 2000)
        product = make_product(price=1500)

        response = client.post(ORDERS_URL, json=order_payload(product), headers=customer_headers)

        assert response.status_code == 400
        assert response.json()["detail"] == "Minimum order amount is 20 €"

        response = client.post(
            ORDERS_URL, json=order_payload(product, quantity=2), headers=customer_headers
        )
        assert response.status_code == 201

    def test_notification_failure(self, client, db, make_product, notifier, customer_headers):
        notifier.fail = True

        response = client.post(
            ORDERS_URL, json=order_payload(make_product()), headers=customer_headers
        )

        assert response.status_code == 502
        assert response.json()["detail"] == "Order could not be confirmed, please try again"
        assert db.query(Order).count() == 0

    def test_number_reused_after_failed_notification(
        self, client, make_product, notifier, customer_headers
    ):
        product = make_product()
        notifier.fail = True
        client.post(ORDERS_URL, json=order_payload(product), headers=customer_headers)
        notifier.fail = False

        response = client.post(ORDERS_URL, json=order_payload(product), headers=customer_headers)

        assert response.json()["order"]["daily_order_number"] == 1

    def test_maintenance(self, client, db, make_product, customer_headers):
        upsert_setting(db, "maintenance_mode", "true")

        response = client.post(
            ORDERS_URL, json=order_payload(make_product()), headers=customer_headers
        )

        assert response.status_code == 503


class TestUserOrders:
    """Тесты GET /orders/user."""

    def test_only_own_orders(self, client, db, customer_headers):
        make_order(db, telegram_user_id="2002", daily_order_number=1)
        make_order(db, telegram_user_id="3003", daily_order_number=2)

        response = client.get(f"{ORDERS_URL}/user", headers=customer_headers)

        assert response.status_code == 200
        orders = response.json()["orders"]
        assert [o["telegram_user_id"] for o in orders] == ["2002"]

    def test_init_data_query_param(self, client, db):
        make_order(db, telegram_user_id="2002")

        response = client.get(f"{ORDERS_URL}/user", params={"initData": make_init_data()})

        assert len(response.json()["orders"]) == 1

    def test_requires_identity(self, client):
        assert client.get(f"{ORDERS_URL}/user").status_code == 401

    def test_anonymous_has_no_history(self, client, make_product, app_settings):
        app_settings(ALLOW_ANONYMOUS_ORDERS=True)
        placed = client.post(
            ORDERS_URL, json=order_payload(make_product(), delivery_address="Rue Cachée 1")
        )
        assert placed.status_code == 201

        response = client.get(f"{ORDERS_URL}/user")

        assert response.status_code == 200
        assert response.json() == {"orders": []}

    def test_history_is_capped(self, client, db, customer_headers):
        for number in range(1, 56):
            db.add(
                Order(
                    telegram_user_id="2002",
                    items=[],
                    total=100,
                    order_day="2026-10-17",
                    daily_order_number=number,
                )
            )
        db.commit()

        response = client.get(f"{ORDERS_URL}/user", headers=customer_headers)

        assert len(response.json()["orders"]) == 50


class TestAdminOrders:
    """Тесты управления заказами в админке."""

    def test_list_with_filters(self, client, db, admin_headers):
        driver = Driver(name="Max")
        db.add(driver)
        db.commit()
        make_order(db, daily_order_number=1, status="pending")
        make_order(db, daily_order_number=2, status="delivered", driver_id=driver.id)
        make_order(db, daily_order_number=1, order_day="2026-10-16")

        data = client.get(ORDERS_URL, headers=admin_headers).json()
        assert data["meta"]["total"] == 3
        assert [d["name"] for d in data["drivers"]] == ["Max"]
        assert [o["daily_order_number"] for o in data["orders"]] == [2, 1, 1]

        by_status = client.get(ORDERS_URL, params={"status": "delivered"}, headers=admin_headers)
        assert [o["daily_order_number"] for o in by_status.json()["orders"]] == [2]
        assert by_status.json()["orders"][0]["driver_name"] == "Max"

        by_day = client.get(ORDERS_URL, params={"date": "2026-10-16"}, headers=admin_headers)
        assert by_day.json()["meta"]["total"] == 1

        unassigned = client.get(ORDERS_URL, params={"unassigned": True}, headers=admin_headers)
        assert unassigned.json()["meta"]["total"] == 2

    def test_requires_admin(self, client, customer_headers):
        assert client.get(ORDERS_URL).status_code == 401
        assert client.get(ORDERS_URL, headers=customer_headers).status_code == 403

    def test_update_status(self, client, db, admin_headers):
        order = make_order(db)

        response = client.patch(
            f"{ORDERS_URL}/{order.id}", json={"status": "confirmed"}, headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json()["status"] == "confirmed"

    def test_invalid_status(self, client, db, admin_headers):
        order = make_order(db)

        response = client.patch(
            f"{ORDERS_URL}/{order.id}", json={"status": "lost"}, headers=admin_headers
        )

        assert response.status_code == 400

    def test_empty_update(self, client, db, admin_headers):
        order = make_order(db)

        response = client.patch(f"{ORDERS_URL}/{order.id}", json={}, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["detail"] == "No fields to update"

    def test_assign_driver_notifies(self, client, db, notifier, admin_headers):
        driver = Driver(name="Max", telegram_chat_id="555")
        db.add(driver)
        db.commit()
        order = make_order(db)

        response = client.patch(
            f"{ORDERS_URL}/{order.id}", json={"driver_id": driver.id}, headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json()["driver_name"] == "Max"
        assert notifier.driver_messages == [(order.id, driver.id)]

        response = client.patch(
            f"{ORDERS_URL}/{order.id}", json={"driver_id": None}, headers=admin_headers
        )
        assert response.json()["driver_id"] is None
        assert len(notifier.driver_messages) == 1

    def test_assign_unknown_driver(self, client, db, admin_headers):
        order = make_order(db)

        response = client.patch(
            f"{ORDERS_URL}/{order.id}", json={"driver_id": "missing"}, headers=admin_headers
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Driver not found"

    def test_get_and_delete(self, client, db, admin_headers):
        order = make_order(db)

        assert client.get(f"{ORDERS_URL}/{order.id}", headers=admin_headers).status_code == 200
        assert client.delete(f"{ORDERS_URL}/{order.id}", headers=admin_headers).status_code == 200
        assert client.get(f"{ORDERS_URL}/{order.id}", headers=admin_headers).status_code == 404


class TestDemoSessions:
    """Тесты изоляции данных демо-сессий."""

    def test_demo_order_is_isolated(self, client, make_product, notifier, admin_headers):
        demo_id = str(uuid.uuid4())
        product = make_product()

        response = client.post(
            ORDERS_URL,
            json=order_payload(product),
            headers={"X-Demo-Session-Id": demo_id},
        )

        assert response.status_code == 201
        order = response.json()["order"]
        assert order["telegram_user_id"] == f"demo:{demo_id}"
        assert order["demo_session_id"] == demo_id
        assert notifier.orders[0].demo_session_id == demo_id

        own = client.get(f"{ORDERS_URL}/user", headers={"X-Demo-Session-Id": demo_id})
        assert len(own.json()["orders"]) == 1

        other = client.get(
            f"{ORDERS_URL}/user", headers={"X-Demo-Session-Id": str(uuid.uuid4())}
        )
        assert other.json()["orders"] == []

        real_admin = client.get(ORDERS_URL, headers=admin_headers).json()
        assert real_admin["meta"]["total"] == 0
        assert client.get(f"{ORDERS_URL}/{order['id']}", headers=admin_headers).status_code == 404

    def test_invalid_demo_session_id(self, client):
        response = client.get(f"{ORDERS_URL}/user", headers={"X-Demo-Session-Id": "nope"})

        assert response.status_code == 400

    def test_purge_expired_demo_data(self, db):
        old = datetime.now(timezone.utc) - timedelta(hours=48)
        demo_id = str(uuid.uuid4())
        make_order(db, demo_session_id=demo_id, created_at=old, daily_order_number=1)
        make_order(db, demo_session_id=demo_id, daily_order_number=2)
        make_order(db, created_at=old, daily_order_number=3)
        db.add(
            Review(
                telegram_user_id=f"demo:{demo_id}",
                rating=5,
                content="Old demo review text",
                demo_session_id=demo_id,
                created_at=old,
            )
        )
        db.commit()

        removed = purge_expired_demo_data(db)

        assert removed == 2
        assert sorted(o.daily_order_number for o in db.query(Order).all()) == [2, 3]
        assert db.query(Review).count() == 0
