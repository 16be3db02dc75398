"""Offset pagination shared by list endpoints."""

import math
from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class OffsetPage(BaseModel, Generic[T]):
    """Offset-based paginated response."""

    items: list[T]
    total: int = Field(description="Total number of matching records.")
    page: int = Field(description="Current page number (1-indexed).")
    page_size: int = Field(description="Number of items per page.")
    pages: int = Field(description="Total number of pages.")

    @classmethod
    def build(cls, items: list[T], total: int, page: int, page_size: int) -> "OffsetPage[T]":
        pages = max(1, math.ceil(total / page_size)) if total else 1
        return cls(items=items, total=total, page=page, page_size=page_size, pages=pages)
