"""Pagination result model."""

from __future__ import annotations

import math
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """One page of a length-aware paginated query.

    current_page is 1-based.  total counts every row matching the query, not
    just the rows on this page.  page_name is the query-string key callers use
    when building links to neighbouring pages.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    items: list[T] = Field(default_factory=list)
    total: int = Field(ge=0)
    per_page: int = Field(ge=1)
    current_page: int = Field(default=1, ge=1)
    page_name: str = "page"

    @property
    def count(self) -> int:
        return len(self.items)

    @property
    def last_page(self) -> int:
        return max(math.ceil(self.total / self.per_page), 1)

    @property
    def has_more_pages(self) -> bool:
        return self.current_page < self.last_page

    @property
    def on_first_page(self) -> bool:
        return self.current_page <= 1

    @property
    def first_item(self) -> int | None:
        """1-based position of the first item on this page, or None if empty."""
        if not self.items:
            return None
        return (self.current_page - 1) * self.per_page + 1

    @property
    def last_item(self) -> int | None:
        if not self.items:
            return None
        return (self.first_item or 0) + self.count - 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "data": list(self.items),
            "total": self.total,
            "per_page": self.per_page,
            "current_page": self.current_page,
            "last_page": self.last_page,
            "from": self.first_item,
            "to": self.last_item,
        }
