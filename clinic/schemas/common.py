from pydantic import BaseModel, ConfigDict, Field
from typing import Generic, List, TypeVar

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """Paginated list envelope shared by every list endpoint."""
    model_config = ConfigDict(populate_by_name=True)

    items: List[T]
    current_page: int = Field(alias="currentPage")
    total_pages: int = Field(alias="totalPages")
    total: int


class StatValue(BaseModel):
    value: float
    trend: float = 0


class MessageResponse(BaseModel):
    message: str
