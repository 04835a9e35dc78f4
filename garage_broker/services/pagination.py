import math
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from sqlalchemy import inspect

T = TypeVar("T")


@dataclass(frozen=True)
class PageRequest:
    page: int = 1
    limit: int = 20

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class Page(Generic[T]):
    items: list[T]
    total: int
    request: PageRequest

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.request.limit) if self.request.limit else 0

    @property
    def has_next(self) -> bool:
        return self.request.offset + self.request.limit < self.total

    @property
    def has_prev(self) -> bool:
        return self.request.page > 1


def row_snapshot(instance: Any) -> dict[str, Any]:
    """Column values of an ORM instance, safe to use after it is deleted."""
    mapper = inspect(instance).mapper
    return {attr.key: getattr(instance, attr.key) for attr in mapper.column_attrs}
