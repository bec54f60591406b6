"""
Основной роутер API v1.

Подключает все endpoint'ы приложения.
"""

from fastapi import APIRouter

from app.api.v1.endpoints import (
    admin,
    categories,
    drivers,
    orders,
    pricing_tiers,
    products,
    reviews,
    settings,
    setup,
    telegram,
    upload,
)

# Создание основного роутера API v1
api_router = APIRouter()

# Подключение роутеров для различных ресурсов
api_router.include_router(telegram.router, prefix="/telegram", tags=["telegram"])
api_router.include_router(categories.router, prefix="/categories", tags=["categories"])
api_router.include_router(products.router, prefix="/products", tags=["products"])
api_router.include_router(pricing_tiers.router, prefix="/pricing-tiers", tags=["pricing-tiers"])
api_router.include_router(orders.router, prefix="/orders", tags=["orders"])
api_router.include_router(reviews.router, prefix="/reviews", tags=["reviews"])
api_router.include_router(drivers.router, prefix="/drivers", tags=["drivers"])
api_router.include_router(settings.router, prefix="/settings", tags=["settings"])
api_router.include_router(upload.router, prefix="/upload", tags=["upload"])
api_router.include_router(setup.router, prefix="/setup", tags=["setup"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
