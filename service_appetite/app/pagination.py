"""
Pagination helpers shared by every list operation.
"""

import math
from dataclasses import dataclass, field
from typing import Generic, List, Sequence, TypeVar

T = TypeVar("T")


@dataclass
class Pagination:
    """Pagination metadata, reported as requested/derived even for empty slices."""
    page: int
    page_size: int
    total_pages: int
    total_items: int


@dataclass
class Page(Generic[T]):
    """A slice of results plus its pagination metadata."""
    items: List[T] = field(default_factory=list)
    pagination: Pagination = field(default_factory=lambda: Pagination(1, 0, 0, 0))


def total_pages(total_items: int, page_size: int) -> int:
    """Number of pages needed for ``total_items`` at ``page_size`` per page."""
    if page_size <= 0:
        return 0
    return math.ceil(total_items / page_size)


def page_bounds(page: int, page_size: int) -> tuple:
    """Offset/limit slice bounds for a 1-indexed page."""
    start = (page - 1) * page_size
    return start, start + page_size


def paginate(items: Sequence[T], page: int, page_size: int) -> Page[T]:
    """Slice ``items`` for the requested page.

    Out-of-range pages yield an empty slice rather than an error. A page or
    page size below 1 also yields an empty slice; callers are expected to
    reject those at the boundary.
    """
    total = len(items)
    pagination = Pagination(
        page=page,
        page_size=page_size,
        total_pages=total_pages(total, page_size),
        total_items=total,
    )

    if page < 1 or page_size < 1:
        return Page(items=[], pagination=pagination)

    start, end = page_bounds(page, page_size)
    return Page(items=list(items[start:end]), pagination=pagination)
