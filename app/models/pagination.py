# app/models/pagination.py

from typing import Generic, List, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class PaginationParams(BaseModel):
    """Query parameters shared by paginated list endpoints."""
    page: int = Field(1, ge=1, description="Page number (1-based).")
    limit: int = Field(10, ge=1, description="Number of items per page.")
    sort: str = Field("-createdAt", description="Sort field; prefix with '-' for descending order.")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def sort_field(self) -> str:
        return self.sort.lstrip("-")

    @property
    def descending(self) -> bool:
        return self.sort.startswith("-")


class PaginationData(BaseModel):
    """Metadata for paginated responses."""
    model_config = ConfigDict(populate_by_name=True)

    total_items: int = Field(..., alias="totalItems")
    total_pages: int = Field(..., alias="totalPages")
    current_page: int = Field(..., alias="currentPage")
    page_size: int = Field(..., alias="pageSize")


class Page(BaseModel, Generic[T]):
    """Response structure for paginated lists."""
    pagination: PaginationData
    items: List[T]
