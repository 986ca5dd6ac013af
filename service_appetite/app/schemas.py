"""
Base API schemas for the Appetite Service.

Request and response bodies use camelCase on the wire and snake_case in
Python.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .pagination import Pagination


class ApiModel(BaseModel):
    """Base model for camelCase JSON bodies."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class PaginationInfo(ApiModel):
    """Pagination envelope metadata."""
    page: int
    page_size: int
    total_pages: int
    total_items: int

    @classmethod
    def from_pagination(cls, pagination: Pagination) -> "PaginationInfo":
        return cls(
            page=pagination.page,
            page_size=pagination.page_size,
            total_pages=pagination.total_pages,
            total_items=pagination.total_items,
        )

