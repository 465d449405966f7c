"""Listing Parameters — pure pagination, search and sort resolution for list endpoints.

Invariants:
    - page >= 1; 1 <= limit <= max_limit; skip == (page - 1) * limit
    - totalPages == ceil(total / limit); hasNext iff page < totalPages; hasPrev iff page > 1
    - An empty or whitespace-only search term resolves to None (no filter)
    - A sort field outside the allow-list falls back to the default field;
      a sort order other than asc/desc falls back to the default order

Design Decisions:
    - Query strings parsed leniently: a leading integer is honored ("2abc" -> 2),
      anything unparseable or zero uses the default. Clients send whatever their
      table widgets produce, and a bad page number should never be a 400.
    - Pure functions over request objects: routes pass raw query strings in,
      db/listing.py turns the results into SQL.
"""

import math
import re
from dataclasses import dataclass
from typing import Literal

SortOrder = Literal["asc", "desc"]

DEFAULT_LIMIT = 10
DEFAULT_MAX_LIMIT = 100

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


@dataclass(frozen=True)
class PageParams:
    page: int
    limit: int
    skip: int


@dataclass(frozen=True)
class SortParams:
    field: str
    order: SortOrder


def parse_int(value: str | int | None) -> int | None:
    """Parse the leading integer of a query value, None when absent or invalid."""
    if value is None:
        return None
    if isinstance(value, int):
        return value
    match = _LEADING_INT.match(value)
    return int(match.group(1)) if match else None


def resolve_page_params(
    page: str | int | None,
    limit: str | int | None,
    default_limit: int = DEFAULT_LIMIT,
    max_limit: int = DEFAULT_MAX_LIMIT,
) -> PageParams:
    """Clamp raw page/limit query values into usable pagination parameters."""
    resolved_page = max(1, parse_int(page) or 1)
    resolved_limit = parse_int(limit) or default_limit
    resolved_limit = max(1, min(resolved_limit, max_limit))
    return PageParams(
        page=resolved_page,
        limit=resolved_limit,
        skip=(resolved_page - 1) * resolved_limit,
    )


def build_pagination_meta(page: int, limit: int, total: int) -> dict:
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": total_pages,
        "hasNext": page < total_pages,
        "hasPrev": page > 1,
    }


def normalize_search(term: str | None) -> str | None:
    """Trimmed search term, or None when there is nothing to search for."""
    if term is None:
        return None
    term = term.strip()
    return term or None


def resolve_sort(
    sort_by: str | None,
    sort_order: str | None,
    allowed_fields: tuple[str, ...],
    default_field: str = "created_at",
    default_order: SortOrder = "desc",
) -> SortParams:
    field = sort_by if sort_by and sort_by in allowed_fields else default_field
    order: SortOrder = (
        sort_order if sort_order in ("asc", "desc") else default_order  # type: ignore[assignment]
    )
    return SortParams(field=field, order=order)
