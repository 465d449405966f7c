"""Chart Aggregations — per-day and per-category counts over detection result tables.

Invariants:
    - Every requested Jakarta day appears exactly once, in order, even with zero rows
    - Requested categories always appear (zero-filled); unrequested ones are
      discovered from the rows in range
    - One grouped query per chart, regardless of how many days or categories

Design Decisions:
    - Day bucketing through a CASE over precomputed UTC windows instead of a
      dialect-specific date-truncation function: the same SQL runs on PostgreSQL
      and SQLite
    - Grouping happens in an outer query over a labeled subquery so the CASE
      expression (with its bound window params) is written once
"""

from datetime import date
from typing import Sequence

from sqlalchemy import and_, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from cctv_api.core.jakarta_time import (
    day_window_utc, format_chart_date, today_jakarta,
)
from cctv_api.models import ActivityMonitoring, WeaponDetection

ACTIVITY_CATEGORIES = (
    "receptionist_receives_money",
    "receptionist_receives_id_card",
    "receptionist_gives_room_key",
    "receptionist_fill_out_form",
    "check_in",
)
ACTIVITY_LATEST_DAY_CATEGORIES = (
    "receptionist_receives_money",
    "receptionist_receives_id_card",
    "receptionist_gives_room_key",
    "check_in",
)
WEAPON_TYPES = ("pistol", "rifle", "knife", "grenade", "machine_gun")


def _result_filters(model, primary_analytics_id: int, cctv_id: int) -> list:
    return [
        model.primary_analytics_id == primary_analytics_id,
        model.cctv_id == cctv_id,
    ]


async def count_by_day(
    db: AsyncSession,
    model,
    category_column: InstrumentedAttribute,
    filters: list,
    days: Sequence[date],
    categories: Sequence[str] | None = None,
) -> dict[str, list[int]]:
    """Map each category to a list of counts aligned with days."""
    if not days:
        return {c: [] for c in categories or ()}
    windows = [day_window_utc(d) for d in days]
    day_index = case(
        *[
            (and_(model.datetime_send >= start, model.datetime_send < end), i)
            for i, (start, end) in enumerate(windows)
        ],
        else_=-1,
    )
    conditions = [
        *filters,
        model.datetime_send >= windows[0][0],
        model.datetime_send < windows[-1][1],
    ]
    if categories:
        conditions.append(category_column.in_(categories))
    bucketed = (
        select(category_column.label("category"), day_index.label("day_index"))
        .where(*conditions)
        .subquery()
    )
    rows = (await db.execute(
        select(bucketed.c.category, bucketed.c.day_index, func.count())
        .group_by(bucketed.c.category, bucketed.c.day_index),
    )).all()

    series: dict[str, list[int]] = {c: [0] * len(days) for c in categories or ()}
    for category, index, count in rows:
        if index is None or index < 0:
            continue
        series.setdefault(category, [0] * len(days))[index] = count
    return series


async def count_by_category(
    db: AsyncSession,
    model,
    category_column: InstrumentedAttribute,
    filters: list,
    day: date,
    categories: Sequence[str],
) -> dict[str, int]:
    start, end = day_window_utc(day)
    rows = (await db.execute(
        select(category_column, func.count())
        .where(
            *filters,
            category_column.in_(categories),
            model.datetime_send >= start,
            model.datetime_send < end,
        )
        .group_by(category_column),
    )).all()
    counts = {c: 0 for c in categories}
    counts.update({category: count for category, count in rows})
    return counts


# ─── Activity monitoring ────────────────────────────────────────

async def activity_daily_chart(
    db: AsyncSession, primary_analytics_id: int, cctv_id: int, days: list[date],
) -> dict:
    series = await count_by_day(
        db, ActivityMonitoring, ActivityMonitoring.sub_type_analytic,
        _result_filters(ActivityMonitoring, primary_analytics_id, cctv_id),
        days, ACTIVITY_CATEGORIES,
    )
    return {"dates": [format_chart_date(d) for d in days], **series}


async def activity_check_in_chart(
    db: AsyncSession, primary_analytics_id: int, cctv_id: int, days: list[date],
) -> dict:
    series = await count_by_day(
        db, ActivityMonitoring, ActivityMonitoring.sub_type_analytic,
        _result_filters(ActivityMonitoring, primary_analytics_id, cctv_id),
        days, ("check_in",),
    )
    return {"dates": [format_chart_date(d) for d in days], "check_in": series["check_in"]}


async def activity_latest_day(
    db: AsyncSession, primary_analytics_id: int, cctv_id: int,
) -> dict:
    today = today_jakarta()
    counts = await count_by_category(
        db, ActivityMonitoring, ActivityMonitoring.sub_type_analytic,
        _result_filters(ActivityMonitoring, primary_analytics_id, cctv_id),
        today, ACTIVITY_LATEST_DAY_CATEGORIES,
    )
    return {"data": counts, "dateToday": today.isoformat()}


# ─── Weapon detection ───────────────────────────────────────────

async def weapon_daily_detail(
    db: AsyncSession, primary_analytics_id: int, cctv_id: int, days: list[date],
) -> dict:
    series = await count_by_day(
        db, WeaponDetection, WeaponDetection.weapon_type,
        _result_filters(WeaponDetection, primary_analytics_id, cctv_id),
        days,
    )
    return {"dates": [format_chart_date(d) for d in days], "data": dict(sorted(series.items()))}


async def weapon_daily_total(
    db: AsyncSession, primary_analytics_id: int, cctv_id: int, days: list[date],
) -> dict:
    series = await count_by_day(
        db, WeaponDetection, WeaponDetection.weapon_type,
        _result_filters(WeaponDetection, primary_analytics_id, cctv_id),
        days,
    )
    totals = [sum(day_counts) for day_counts in zip(*series.values())] or [0] * len(days)
    return {
        "dates": [format_chart_date(d) for d in days],
        "data": {"weapon_detection": totals},
    }


async def weapon_types_summary(
    db: AsyncSession, primary_analytics_id: int, cctv_id: int, days: list[date],
) -> list[dict]:
    start, _ = day_window_utc(days[0])
    _, end = day_window_utc(days[-1])
    rows = (await db.execute(
        select(
            WeaponDetection.weapon_type,
            func.count(WeaponDetection.id),
            func.avg(WeaponDetection.confidence),
        )
        .where(
            *_result_filters(WeaponDetection, primary_analytics_id, cctv_id),
            WeaponDetection.datetime_send >= start,
            WeaponDetection.datetime_send < end,
        )
        .group_by(WeaponDetection.weapon_type)
        .order_by(WeaponDetection.weapon_type),
    )).all()
    return [
        {
            "weaponType": weapon_type,
            "count": count,
            "averageConfidence": float(avg or 0),
        }
        for weapon_type, count, avg in rows
    ]


async def weapon_latest_day(
    db: AsyncSession, primary_analytics_id: int, cctv_id: int,
) -> dict:
    today = today_jakarta()
    counts = await count_by_category(
        db, WeaponDetection, WeaponDetection.weapon_type,
        _result_filters(WeaponDetection, primary_analytics_id, cctv_id),
        today, WEAPON_TYPES,
    )
    return {
        "date": today.isoformat(),
        "totalDetections": sum(counts.values()),
        "weaponTypes": counts,
    }
