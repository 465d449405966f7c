"""List Query Builders — apply search, sort and pagination to SQLAlchemy selects.

Invariants:
    - apply_search with no term returns the statement unchanged
    - Multiple search columns are OR-combined, case-insensitive substring match
    - Every sorted query gets the primary key as a tie-breaker so pages are stable
    - paginate() runs count and data in the caller's session, sequentially

Design Decisions:
    - Count and data are not gathered concurrently: an AsyncSession forbids
      concurrent use, and a second session would break read consistency
    - autoescape=True on icontains: user search terms containing % or _ match literally
"""

from typing import Any, Sequence

from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from cctv_api.core.listing import PageParams, SortParams, build_pagination_meta


def apply_search(
    stmt: Select, columns: Sequence[InstrumentedAttribute], term: str | None,
) -> Select:
    if not term or not columns:
        return stmt
    return stmt.where(or_(*[col.icontains(term, autoescape=True) for col in columns]))


def apply_sort(
    stmt: Select,
    sort: SortParams,
    columns: dict[str, InstrumentedAttribute],
    tie_breaker: InstrumentedAttribute | None = None,
) -> Select:
    column = columns[sort.field]
    stmt = stmt.order_by(column.asc() if sort.order == "asc" else column.desc())
    if tie_breaker is not None and tie_breaker is not column:
        stmt = stmt.order_by(
            tie_breaker.asc() if sort.order == "asc" else tie_breaker.desc(),
        )
    return stmt


async def count_rows(db: AsyncSession, stmt: Select) -> int:
    count_stmt = select(func.count()).select_from(
        stmt.order_by(None).subquery(),
    )
    return (await db.execute(count_stmt)).scalar_one()


async def paginate(
    db: AsyncSession, stmt: Select, params: PageParams,
) -> tuple[list[Any], dict]:
    """Return (rows, pagination meta) for one page of stmt."""
    total = await count_rows(db, stmt)
    result = await db.execute(stmt.offset(params.skip).limit(params.limit))
    rows = list(result.scalars().all())
    return rows, build_pagination_meta(params.page, params.limit, total)
