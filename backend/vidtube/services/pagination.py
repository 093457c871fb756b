"""
Shared page/limit/sort handling for list endpoints.

Out-of-range values are rejected by the ``Query`` constraints (and surface as
400 through the validation handler); nothing is clamped.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from fastapi import Query
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..schemas import Pagination, SortOrder

MAX_LIMIT = 50
DEFAULT_LIMIT = 10


@dataclass(frozen=True)
class PageParams:
    page: int
    limit: int

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


def page_params(
    page: int = Query(1, ge=1, description="1-based page number"),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT, description="Items per page (1-50)"),
) -> PageParams:
    return PageParams(page=page, limit=limit)


def build_pagination(params: PageParams, total: int) -> Pagination:
    total_pages = math.ceil(total / params.limit)
    return Pagination(
        current_page=params.page,
        limit=params.limit,
        total=total,
        total_pages=total_pages,
        has_next_page=params.page < total_pages,
        has_prev_page=params.page > 1,
    )


def order_clause(column: Any, order: SortOrder) -> Any:
    return column.asc() if order == SortOrder.asc else column.desc()


async def paginate(session: AsyncSession, stmt: Select, params: PageParams) -> tuple[list[Any], Pagination]:
    """Run ``stmt`` for one page and count the full result set.

    ``stmt`` should already carry its filters and ordering. Rows are returned
    as ``Row`` objects when the select has several entities or columns,
    otherwise as scalars.
    """
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = await session.scalar(count_stmt) or 0

    res = await session.execute(stmt.offset(params.skip).limit(params.limit))
    if len(stmt.column_descriptions) == 1:
        items = list(res.scalars().all())
    else:
        items = list(res.all())
    return items, build_pagination(params, total)
