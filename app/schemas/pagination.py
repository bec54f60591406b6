"""
Пагинация списков в админке.
"""

from dataclasses import dataclass

from fastapi import Query
from pydantic import BaseModel


class PageMeta(BaseModel):
    """
    Метаданные пагинации.

    Attributes:
        page: Номер текущей страницы
        page_size: Размер страницы
        total: Общее количество записей
        total_pages: Общее количество страниц (не меньше 1)
    """

    page: int
    page_size: int
    total: int
    total_pages: int

    @classmethod
    def create(cls, page: int, page_size: int, total: int) -> "PageMeta":
        total_pages = max(1, -(-total // page_size))
        return cls(page=page, page_size=page_size, total=total, total_pages=total_pages)


@dataclass
class PageParams:
    """Параметры страницы из query string."""

    page: int
    page_size: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    def meta(self, total: int) -> PageMeta:
        return PageMeta.create(self.page, self.page_size, total)


def page_params(max_page_size: int = 200):
    """Фабрика dependency с ограничением размера страницы."""

    def dependency(
        page: int = Query(1, ge=1, description="Номер страницы"),
        page_size: int = Query(50, ge=1, le=max_page_size, description="Размер страницы"),
    ) -> PageParams:
        return PageParams(page=page, page_size=page_size)

    return dependency
