# tests/conftest.py
"""
Общие фикстуры и настройки для тестов.
"""

import json
import os
import tempfile
import time
from typing import Any, Dict, Generator, List, Optional
from urllib.parse import urlencode

# Устанавливаем переменные окружения перед импортом модулей
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["TELEGRAM_BOT_TOKEN"] = "123456:TEST-BOT-TOKEN"
os.environ["ADMIN_TELEGRAM_IDS"] = "1001"
os.environ["ADMIN_SESSION_SECRET"] = "test-admin-secret"
os.environ["ADMIN_COOKIE_SECURE"] = "false"
os.environ["ORDER_NOTIFICATION_CHAT_IDS"] = "-100500"
os.environ["STORAGE_TYPE"] = "local"
os.environ["STORAGE_PATH"] = tempfile.mkdtemp(prefix="miniapp-media-")
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.v1.endpoints.categories import invalidate_categories_cache
from app.core.auth import auth_service
from app.core.config import settings
from app.core.rate_limit import rate_limiter
from app.core.telegram import sign_init_data
from app.db.database import get_db
from app.db.models import Base, Order, PricingTier, Product
from app.main import app
from app.services.notifications import NotificationError, get_notifier
from app.services.storage_service import LocalStorageProvider, get_storage

BOT_TOKEN = os.environ["TELEGRAM_BOT_TOKEN"]
ADMIN_ID = "1001"
CUSTOMER_ID = 2002


# =============================================================================
# ВСПОМОГАТЕЛЬНЫЕ ФУНКЦИИ
# =============================================================================

def make_init_data(
    user_id: int = CUSTOMER_ID,
    username: Optional[str] = "buyer",
    auth_date: Optional[int] = None,
    bot_token: str = BOT_TOKEN,
    **extra: str,
) -> str:
    """Подписанная строка initData, как ее формирует Telegram."""
    fields: Dict[str, str] = {
        "auth_date": str(auth_date if auth_date is not None else int(time.time())),
        "query_id": "AAHdF6IQAAAAAN0XohDhrOrc",
        "user": json.dumps(
            {"id": user_id, "first_name": "Test", "username": username},
            separators=(",", ":"),
        ),
        **extra,
    }
    fields["hash"] = sign_init_data(fields, bot_token)
    return urlencode(fields)


class FakeNotifier:
    """Уведомитель без сети: запоминает заказы, может имитировать сбой."""

    def __init__(self):
        self.orders: List[Order] = []
        self.driver_messages: List[tuple] = []
        self.fail = False

    async def notify_new_order(self, order: Order) -> bool:
        if self.fail:
            raise NotificationError("Bot API is down")
        self.orders.append(order)
        return True

    async def notify_driver_assigned(self, order: Order, driver) -> bool:
        self.driver_messages.append((order.id, driver.id))
        return True


# =============================================================================
# ФИКСТУРЫ БАЗЫ ДАННЫХ
# =============================================================================

@pytest.fixture
def engine():
    """SQLite в памяти, одно соединение на все сессии теста."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


# =============================================================================
# ФИКСТУРЫ ПРИЛОЖЕНИЯ
# =============================================================================

@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def storage(tmp_path) -> LocalStorageProvider:
    return LocalStorageProvider(str(tmp_path / "media"))


@pytest.fixture
def client(session_factory, notifier, storage) -> Generator[TestClient, None, None]:
    """TestClient с тестовой БД, фейковым уведомителем и временным хранилищем."""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_storage] = lambda: storage
    rate_limiter.reset()
    invalidate_categories_cache()

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    rate_limiter.reset()
    invalidate_categories_cache()


@pytest.fixture
def admin_headers() -> Dict[str, str]:
    """Bearer токен Telegram администратора из белого списка."""
    token = auth_service.create_session_token(subject=ADMIN_ID, kind="telegram", username="boss")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def customer_headers() -> Dict[str, str]:
    return {"X-Telegram-Init-Data": make_init_data()}


@pytest.fixture
def make_product(db):
    """Фабрика товаров с ценовыми уровнями."""
    counter = {"n": 0}

    def factory(
        price: int = 1000,
        is_active: bool = True,
        tiers: Optional[List[Dict[str, Any]]] = None,
        **fields: Any,
    ) -> Product:
        counter["n"] += 1
        product = Product(
            name=fields.pop("name", f"Product {counter['n']}"),
            slug=fields.pop("slug", f"product-{counter['n']}"),
            price=price,
            is_active=is_active,
            **fields,
        )
        for index, tier in enumerate(tiers or []):
            product.pricing_tiers.append(PricingTier(sort_order=index, **tier))
        db.add(product)
        db.commit()
        db.refresh(product)
        return product

    return factory


@pytest.fixture
def app_settings(monkeypatch):
    """Изменение настроек приложения на время теста."""

    def apply(**values: Any) -> None:
        for key, value in values.items():
            monkeypatch.setattr(settings, key, value)

    return apply
