"""Page request normalization and page response assembly.

Out-of-range paging input never fails a request: page numbers below one
become one, and page sizes are clamped into ``1..MAX_PAGE_SIZE`` (with
non-positive sizes falling back to ``DEFAULT_PAGE_SIZE``).
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

T = TypeVar("T")

DEFAULT_PAGE_NUMBER = 1
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class CountStatus(str, Enum):
    """Whether ``total_count`` is the store's answer or a stand-in."""

    EXACT = "exact"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class CountResult:
    """Outcome of a partition count query."""

    value: int
    status: CountStatus = CountStatus.EXACT

    @classmethod
    def unavailable(cls) -> "CountResult":
        return cls(value=0, status=CountStatus.UNAVAILABLE)


class PaginationRequest(BaseModel):
    """Normalized page request."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    page_number: int = Field(default=DEFAULT_PAGE_NUMBER, alias="pageNumber")
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, alias="pageSize")

    @field_validator("page_number", mode="before")
    @classmethod
    def clamp_page_number(cls, v: Any) -> int:
        if v is None:
            return DEFAULT_PAGE_NUMBER
        v = int(v)
        return DEFAULT_PAGE_NUMBER if v < 1 else v

    @field_validator("page_size", mode="before")
    @classmethod
    def clamp_page_size(cls, v: Any) -> int:
        if v is None:
            return DEFAULT_PAGE_SIZE
        v = int(v)
        if v < 1:
            return DEFAULT_PAGE_SIZE
        return min(v, MAX_PAGE_SIZE)

    @property
    def skip(self) -> int:
        """Number of documents before the first one on this page."""
        return (self.page_number - 1) * self.page_size

    @classmethod
    def from_query(cls, page_number: int | None, page_size: int | None) -> "PaginationRequest":
        """Build a request from optional query string values."""
        return cls(page_number=page_number, page_size=page_size)


class PaginationResponse(BaseModel, Generic[T]):
    """One page of documents plus the metadata needed to walk the rest."""

    model_config = ConfigDict(populate_by_name=True)

    items: list[T] = Field(default_factory=list)
    total_count: int = Field(default=0, alias="totalCount")
    page_number: int = Field(default=DEFAULT_PAGE_NUMBER, alias="pageNumber")
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, alias="pageSize")
    count_status: CountStatus = Field(default=CountStatus.EXACT, alias="countStatus")

    @computed_field(alias="totalPages")  # type: ignore[prop-decorator]
    @property
    def total_pages(self) -> int:
        if self.total_count <= 0 or self.page_size <= 0:
            return 0
        return math.ceil(self.total_count / self.page_size)

    @computed_field(alias="hasPreviousPage")  # type: ignore[prop-decorator]
    @property
    def has_previous_page(self) -> bool:
        return self.page_number > 1

    @computed_field(alias="hasNextPage")  # type: ignore[prop-decorator]
    @property
    def has_next_page(self) -> bool:
        return self.page_number * self.page_size < self.total_count


def assemble(
    items: Sequence[T],
    count: CountResult,
    request: PaginationRequest,
) -> PaginationResponse[T]:
    """Combine a fetched window and a count result into a page response.

    A page past the end simply carries no items.
    """
    return PaginationResponse(
        items=list(items),
        total_count=count.value,
        page_number=request.page_number,
        page_size=request.page_size,
        count_status=count.status,
    )
