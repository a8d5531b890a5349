"""
Pagination Utilities

Length-aware offset pagination producing the ``data``/``links``/``meta``
payload the client tables read.
"""

import logging
import math
from typing import Any, Callable

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import URL

from portal.schemas.user import Paginated, PaginationLinks, PaginationMeta

logger = logging.getLogger(__name__)


def get_page(value: str | None) -> int:
    try:
        return max(1, int(value or 1))
    except ValueError:
        return 1


async def get_total_count(db: AsyncSession, stmt: Select) -> int:
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    result = await db.execute(count_stmt)
    return result.scalar_one()


async def paginate(
    db: AsyncSession,
    stmt: Select,
    url: URL,
    page: int,
    per_page: int,
    transform: Callable[[Any], dict[str, Any]],
) -> Paginated:
    """Fetch page ``page`` of ``stmt``. Links keep the rest of ``url``'s query string."""
    total = await get_total_count(db, stmt)
    last_page = max(1, math.ceil(total / per_page))

    result = await db.execute(stmt.offset((page - 1) * per_page).limit(per_page))
    items = list(result.scalars().all())

    def page_url(number: int) -> str:
        return str(url.include_query_params(page=number))

    first_index = (page - 1) * per_page + 1
    meta = PaginationMeta(
        current_page=page,
        from_=first_index if items else None,
        last_page=last_page,
        path=str(url.replace(query="")),
        per_page=per_page,
        to=first_index + len(items) - 1 if items else None,
        total=total,
    )
    links = PaginationLinks(
        first=page_url(1),
        last=page_url(last_page),
        prev=page_url(page - 1) if page > 1 else None,
        next=page_url(page + 1) if page < last_page else None,
    )

    return Paginated(data=[transform(item) for item in items], links=links, meta=meta)
