"""
Главный модуль FastAPI приложения Telegram Mini App магазина.

Содержит конфигурацию приложения, middleware, обработчики ошибок и роутеры.
"""

import logging
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from app.api.v1.routers import api_router
from app.core.config import settings
from app.core.logging_config import setup_logging

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

# Создание экземпляра FastAPI приложения
app = FastAPI(
    title="Mini App Shop API",
    description="API витрины Telegram Mini App: каталог, заказы, отзывы и админка",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# Статические файлы для локального хранилища
if settings.STORAGE_TYPE == "local":
    uploads_path = Path(settings.STORAGE_PATH).resolve()
    uploads_path.mkdir(parents=True, exist_ok=True)
    app.mount("/static", StaticFiles(directory=str(uploads_path)), name="static")
    logger.info(f"Static files mounted at /static from {uploads_path}")


# Настройка CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Ошибки валидации запроса: 400 со списком ошибок."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Invalid input", "errors": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Непредвиденные ошибки: запись в лог и общий ответ 500."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


@app.get("/healthz")
def healthz():
    """
    Health check endpoint для мониторинга состояния приложения.

    Returns:
        dict: Статус приложения
    """
    return {"status": "ok", "service": "Mini App Shop API", "version": "1.0.0"}


# Подключение API роутеров
app.include_router(api_router, prefix="/api/v1")


@app.on_event("startup")
async def startup_event():
    """
    Событие запуска приложения.

    Предупреждает о неполной конфигурации.
    """
    if not settings.TELEGRAM_BOT_TOKEN:
        logger.warning("TELEGRAM_BOT_TOKEN is not set: initData checks will fail")
    if not settings.notification_chat_ids:
        logger.warning("No notification chats configured: orders will not be announced")
    if settings.ADMIN_SESSION_SECRET == "change-me-admin-session-secret":
        logger.warning("ADMIN_SESSION_SECRET uses the default value")
    if settings.BYPASS_ADMIN_CHECK and settings.is_development:
        logger.warning("Admin check bypass is active")
