"""
Offset pagination for list endpoints.

Out-of-range input is clamped rather than rejected: a missing or
non-positive page becomes 1, a missing or non-positive page_size becomes the
default of 10, and anything above 100 becomes 100.
"""

from pydantic import BaseModel, field_validator

DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


class Pagination(BaseModel):
    page: int = DEFAULT_PAGE
    page_size: int = DEFAULT_PAGE_SIZE

    @field_validator("page", mode="before")
    @classmethod
    def _clamp_page(cls, value):
        if value is None or int(value) < 1:
            return DEFAULT_PAGE
        return int(value)

    @field_validator("page_size", mode="before")
    @classmethod
    def _clamp_page_size(cls, value):
        if value is None or int(value) < 1:
            return DEFAULT_PAGE_SIZE
        return min(int(value), MAX_PAGE_SIZE)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def limit(self) -> int:
        return self.page_size
