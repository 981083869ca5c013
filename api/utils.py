"""
Shared API utility functions.
"""

from math import ceil
from typing import Any

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession


def escape_like(value: str) -> str:
    """Escape LIKE wildcards for safe use in SQL LIKE/ILIKE patterns."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def total_pages(total: int, page_size: int) -> int:
    return ceil(total / page_size) if total > 0 else 0


async def paginate(
    db: AsyncSession,
    query: Select,
    page: int,
    page_size: int,
) -> tuple[list[Any], int]:
    """
    Run ``query`` for one page.

    Returns:
        (rows on the page, total rows matching the query)
    """
    count_query = select(func.count()).select_from(query.order_by(None).subquery())
    total = (await db.execute(count_query)).scalar() or 0

    result = await db.execute(query.limit(page_size).offset((page - 1) * page_size))
    return list(result.scalars().all()), total

