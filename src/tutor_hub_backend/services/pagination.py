'''
Offset pagination over a SQLAlchemy select.
'''
import math
from typing import Any, Type

from pydantic import BaseModel
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..common.config import settings
from ..models.common import Page


async def paginate(
    db: AsyncSession,
    stmt: Select,
    page: int,
    read_model: Type[BaseModel],
    per_page: int | None = None,
) -> Page[Any]:
    """
    Runs `stmt` for one page and counts the full result set.
    `stmt` must already carry its ordering and eager-load options.
    """
    per_page = per_page or settings.PER_PAGE
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = (await db.execute(count_stmt)).scalar_one()

    result = await db.execute(stmt.limit(per_page).offset((page - 1) * per_page))
    rows = result.scalars().unique().all()

    return Page[read_model](
        items=[read_model.model_validate(row) for row in rows],
        total=total,
        page=page,
        per_page=per_page,
        last_page=max(math.ceil(total / per_page), 1),
    )


LIKE_ESCAPE = "\\"


def contains_pattern(term: str) -> str:
    """Lower-cased `%term%` with LIKE wildcards in `term` taken literally. Use with `escape=LIKE_ESCAPE`."""
    escaped = (
        term.lower()
        .replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"
