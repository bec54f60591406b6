"""
Ограничение частоты запросов.

Простой in-memory лимитер с фиксированным окном. Работает в пределах
одного процесса и не гарантирует точности при нескольких воркерах.
"""

import logging
import math
import threading
import time
from dataclasses import dataclass
from email.utils import formatdate
from typing import Callable, Dict, Optional, Tuple

from fastapi import HTTPException, Request, status

from app.core.config import settings

logger = logging.getLogger(__name__)


@dataclass
class RateLimitResult:
    """Результат проверки лимита."""

    success: bool
    limit: int
    remaining: int
    reset_at: float

    def headers(self, now: Optional[float] = None) -> Dict[str, str]:
        current = time.time() if now is None else now
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": formatdate(self.reset_at, usegmt=True),
            "Retry-After": str(max(0, math.ceil(self.reset_at - current))),
        }


class RateLimiter:
    """
    Лимитер с фиксированным окном.

    Attributes:
        limit: Максимум запросов за окно
        window_seconds: Размер окна
    """

    def __init__(
        self,
        limit: int,
        window_seconds: float,
        clock: Callable[[], float] = time.time,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[int, float]] = {}
        self._lock = threading.Lock()

    def check(self, identifier: str) -> RateLimitResult:
        """Учесть запрос и вернуть состояние лимита для идентификатора."""
        now = self._clock()
        with self._lock:
            self._sweep(now)
            count, reset_at = self._entries.get(identifier, (0, 0.0))

            if reset_at <= now:
                reset_at = now + self.window_seconds
                self._entries[identifier] = (1, reset_at)
                return RateLimitResult(True, self.limit, self.limit - 1, reset_at)

            if count >= self.limit:
                return RateLimitResult(False, self.limit, 0, reset_at)

            count += 1
            self._entries[identifier] = (count, reset_at)
            return RateLimitResult(True, self.limit, self.limit - count, reset_at)

    def reset(self) -> None:
        with self._lock:
            self._entries.clear()

    def _sweep(self, now: float) -> None:
        expired = [key for key, (_, reset_at) in self._entries.items() if reset_at <= now]
        for key in expired:
            del self._entries[key]

    @property
    def size(self) -> int:
        return len(self._entries)


# Общий лимитер для публичных эндпоинтов записи
rate_limiter = RateLimiter(
    limit=settings.RATE_LIMIT_REQUESTS,
    window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
)


def client_identifier(request: Request) -> str:
    """IP клиента с учетом прокси."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def rate_limit(scope: str):
    """
    Фабрика dependency, ограничивающей частоту запросов в пределах scope.

    Raises:
        HTTPException: 429 при превышении лимита
    """

    def dependency(request: Request) -> None:
        identifier = f"{scope}:{client_identifier(request)}"
        result = rate_limiter.check(identifier)
        if not result.success:
            logger.warning(f"Rate limit exceeded for {identifier}")
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests",
                headers=result.headers(),
            )

    return dependency
