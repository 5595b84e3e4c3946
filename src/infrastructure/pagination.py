"""
Generic pagination over an ORM ``select``.

Returns ``Page(data, total, page, limit)``: *total* counts every row that
matches the filter, *data* holds the requested slice.  Page and limit are
echoed back as given so clients can correlate requests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.domain.search import normalise_page

T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    data: list[T] = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 10


async def paginate(
    session: AsyncSession, query: Select, page: int, limit: int, default_limit: int = 10
) -> Page:
    _, size, offset = normalise_page(page, limit, default_limit)

    count_query = select(func.count()).select_from(query.order_by(None).subquery())
    total = (await session.execute(count_query)).scalar() or 0

    result = await session.execute(query.offset(offset).limit(size))
    return Page(data=list(result.scalars().all()), total=total, page=page, limit=limit)
