"""Pagination helpers.

List operations take a page size and a 1-based page number; stores take a
limit and an offset.
"""

from dataclasses import dataclass
from typing import Generic, List, Optional, Tuple, TypeVar

from ..core.exceptions.domain import InvalidArgumentError

T = TypeVar("T")


@dataclass(frozen=True)
class PageRequest:
    limit: Optional[int] = None
    page: int = 1
    order: Optional[str] = None

    def bounds(self, default_limit: int, max_limit: int) -> Tuple[int, int]:
        """Effective limit and offset.

        Raises:
            InvalidArgumentError: Negative limit or page below 1
        """
        if self.limit is not None and self.limit < 0:
            raise InvalidArgumentError("Limit must not be negative", details={"limit": self.limit})
        if self.page < 1:
            raise InvalidArgumentError("Page must be at least 1", details={"page": self.page})
        limit = self.limit or default_limit
        limit = min(limit, max_limit)
        return limit, (self.page - 1) * limit


@dataclass
class Page(Generic[T]):
    """One page of results with the total count before pagination."""
    items: List[T]
    total: int
