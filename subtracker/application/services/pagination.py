from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, List, Tuple, TypeVar

from ...domain.exceptions import ValidationError

T = TypeVar("T")

MAX_PAGE_SIZE = 100


@dataclass(frozen=True, slots=True)
class Page(Generic[T]):
    items: List[T]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit if self.total else 0


def page_bounds(page: int, limit: int) -> Tuple[int, int]:
    """Translate a 1-based page number into ``(offset, limit)``."""
    if page < 1:
        raise ValidationError("page must be at least 1")
    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
    return (page - 1) * limit, limit
