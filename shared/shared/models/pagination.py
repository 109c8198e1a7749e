import enum
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class SortDirection(str, enum.Enum):
    """Display order of a list. Ranks are always counted from the oldest item."""

    ASC = "ASC"
    DESC = "DESC"

    @classmethod
    def parse(cls, value: "str | SortDirection") -> "SortDirection | None":
        """Return the matching direction, or None for anything unrecognised."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            return None


class ListWindow(BaseModel):
    """Slice of ranks ``[offset, offset + limit)`` shown in ``direction`` order."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    offset: int = Field(ge=0, description="Rank of the oldest item of the slice.")
    limit: int = Field(ge=1, description="Number of ranks in the slice.")
    direction: SortDirection

    @property
    def end(self) -> int:
        """Exclusive upper rank of the slice."""
        return self.offset + self.limit


class PaginatedResponse(BaseModel, Generic[T]):
    """Page-number list with total and pagination metadata."""

    model_config = ConfigDict(extra="forbid")

    items: list[T]
    total: int
    page: int
    page_size: int
    page_count: int

    @property
    def has_more(self) -> bool:
        return self.page < self.page_count
