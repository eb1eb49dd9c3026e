"""Page envelope shared by every list endpoint."""

from __future__ import annotations

import math
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class PageMeta(BaseModel):
    """Pagination metadata.

    Attributes:
        total: Total number of rows across all pages.
        last_page: Number of the last page (0 when there are no rows).
        current_page: The page returned.
        per_page: Page size used.
        prev: Previous page number, or ``None`` on the first page.
        next: Next page number, or ``None`` on the last page.
    """

    total: int
    last_page: int
    current_page: int
    per_page: int
    prev: Optional[int]
    next: Optional[int]

    @classmethod
    def build(cls, total: int, page: int, per_page: int) -> PageMeta:
        last_page = math.ceil(total / per_page) if per_page else 0
        return cls(
            total=total,
            last_page=last_page,
            current_page=page,
            per_page=per_page,
            prev=page - 1 if page > 1 else None,
            next=page + 1 if page < last_page else None,
        )


class Page(BaseModel, Generic[T]):
    """A page of results plus its metadata."""

    data: list[T]
    meta: PageMeta
