"""
Pagination models shared by repositories, services and routers.

A ``PageRequest`` describes which slice of a collection a caller wants,
a ``Page`` carries one slice back from a repository together with the total
element count, and ``PageInfo`` is the immutable summary returned to API
clients alongside list results.
"""

import math
from typing import Any, Generic, List, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class PageRequest(BaseModel):
    """Zero-based page index and page size."""

    page_number: int = Field(default=0, description="Zero-based page index")
    page_size: int = Field(default=200, description="Maximum items per page")

    model_config = ConfigDict(frozen=True)

    @property
    def offset(self) -> int:
        """Number of items to skip before this page."""
        return self.page_number * self.page_size


class Page(BaseModel, Generic[T]):
    """One page of results plus the size of the whole collection."""

    items: List[T] = Field(default_factory=list)
    page_number: int = 0
    page_size: int = 200
    total_elements: int = 0

    @property
    def total_pages(self) -> int:
        """Number of pages needed for all elements (1 when page size is 0)."""
        if self.page_size == 0:
            return 1
        return math.ceil(self.total_elements / self.page_size)

    @classmethod
    def of(cls, items: List[T], page_request: PageRequest, total_elements: int) -> "Page[T]":
        return cls(
            items=items,
            page_number=page_request.page_number,
            page_size=page_request.page_size,
            total_elements=total_elements,
        )


class PageInfo(BaseModel):
    """
    Pagination metadata for a query result.

    Values are copied from the page request and the page result as-is;
    nothing is recomputed or validated here.
    """

    current_page: int = Field(..., description="Zero-based index of this page")
    page_limit: int = Field(..., description="Requested page size")
    total_pages: int = Field(..., description="Total number of pages")
    total_elements: int = Field(..., description="Total number of elements")

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "current_page": 0,
                "page_limit": 20,
                "total_pages": 3,
                "total_elements": 55
            }
        }
    )

    @classmethod
    def of(cls, page_request: Any, page: Any) -> "PageInfo":
        """
        Build page info from a page request and a page result.

        Args:
            page_request: Object exposing ``page_number`` and ``page_size``
            page: Object exposing ``total_pages`` and ``total_elements``

        Returns:
            PageInfo summary
        """
        return cls.model_construct(
            current_page=page_request.page_number,
            page_limit=page_request.page_size,
            total_pages=page.total_pages,
            total_elements=page.total_elements,
        )


def build_page_info(page_request: Any, page: Any) -> PageInfo:
    """Summarise ``page`` for the caller that asked with ``page_request``."""
    return PageInfo.of(page_request, page)
