from dataclasses import dataclass
from typing import Callable, TypeVar
import math

from sqlalchemy.orm import Query

from ..schemas.common import Page

T = TypeVar("T")


@dataclass
class PageParams:
    page: int = 1
    limit: int = 10

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def paginate(query: Query, params: PageParams, serializer: Callable[..., T]) -> Page[T]:
    """Run ``query`` for one page and wrap the rows in the list envelope.

    The query must already carry its filters and ordering; ``count()`` is
    taken on the same query so ``total`` always matches the filtered set.
    """
    total = query.order_by(None).count()
    rows = query.offset(params.offset).limit(params.limit).all()
    return Page(
        items=[serializer(row) for row in rows],
        current_page=params.page,
        total_pages=math.ceil(total / params.limit) if params.limit else 0,
        total=total,
    )
