"""Spreadsheet Export — XLSX workbooks of detection results for a Jakarta date range.

Invariants:
    - Rows ordered by datetime_send descending; an empty result is a 404, never an empty file
    - Timestamps rendered as Jakarta local 'YYYY-MM-DD HH:MM:SS' strings
    - Missing related names render as 'N/A'
    - String cells starting with a formula prefix are quoted (formula injection)

Design Decisions:
    - openpyxl Workbook written to BytesIO: exports are bounded by the
      one-year range limit, so an in-memory buffer is fine
    - Fixed column widths per export instead of measuring every cell
"""

import io
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Sequence

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cctv_api.core.errors import ResourceNotFoundError
from cctv_api.core.jakarta_time import format_jakarta, now_jakarta, now_utc, range_window_utc
from cctv_api.models import ActivityMonitoring, WeaponDetection

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

FORMULA_PREFIXES = ("=", "+", "-", "@", "\t", "\r")

ACTIVITY_COLUMNS = [
    ("No.", 6), ("ID", 8), ("Sub Type Analytic", 30),
    ("Primary Analytics ID", 20), ("Primary Analytics Name", 30), ("Type Analytic", 25),
    ("CCTV ID", 10), ("CCTV Name", 25),
    ("Datetime Send", 22), ("Created At", 22), ("Updated At", 22),
]

WEAPON_COLUMNS = [
    ("No", 5), ("Weapon Type", 15), ("Confidence", 12),
    ("CCTV Name", 20), ("CCTV ID", 10),
    ("Primary Analytics", 25), ("Primary Analytics ID", 18),
    ("Detection Time (Jakarta)", 25), ("Created At (Jakarta)", 25),
    ("Updated At (Jakarta)", 25),
]


@dataclass(frozen=True)
class ExportFile:
    filename: str
    content: bytes
    record_count: int


def sanitize_cell(value: Any) -> Any:
    if isinstance(value, str) and value and value[0] in FORMULA_PREFIXES:
        return f"'{value}"
    return value


def build_workbook(
    columns: Sequence[tuple[str, int]], rows: Sequence[Sequence[Any]], sheet_name: str,
) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_name

    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
    for col_idx, (header, width) in enumerate(columns, start=1):
        cell = ws.cell(row=1, column=col_idx, value=header)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = Alignment(horizontal="center", vertical="center")
        ws.column_dimensions[get_column_letter(col_idx)].width = width

    for row_idx, row in enumerate(rows, start=2):
        for col_idx, value in enumerate(row, start=1):
            ws.cell(row=row_idx, column=col_idx, value=sanitize_cell(value))

    ws.freeze_panes = "A2"
    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()


def _name_or_na(obj, attr: str) -> str:
    value = getattr(obj, attr, None) if obj is not None else None
    return value or "N/A"


# ─── Activity monitoring ────────────────────────────────────────

async def export_activity_monitoring(
    db: AsyncSession,
    start_date: date,
    end_date: date,
    sub_type_analytic: list[str] | None = None,
    cctv_id: int | None = None,
    primary_analytics_id: int | None = None,
) -> ExportFile:
    start, end = range_window_utc(start_date, end_date)
    stmt = select(ActivityMonitoring).where(
        ActivityMonitoring.datetime_send >= start,
        ActivityMonitoring.datetime_send <= end,
    )
    if sub_type_analytic:
        stmt = stmt.where(ActivityMonitoring.sub_type_analytic.in_(sub_type_analytic))
    if cctv_id:
        stmt = stmt.where(ActivityMonitoring.cctv_id == cctv_id)
    if primary_analytics_id:
        stmt = stmt.where(ActivityMonitoring.primary_analytics_id == primary_analytics_id)
    stmt = stmt.order_by(ActivityMonitoring.datetime_send.desc(), ActivityMonitoring.id.desc())
    records = (await db.execute(stmt)).scalars().all()
    if not records:
        raise ResourceNotFoundError("No data found for the specified date range and filters")

    rows = []
    for index, record in enumerate(records, start=1):
        analytic = record.primary_analytic
        rows.append([
            index,
            record.id,
            record.sub_type_analytic or "N/A",
            record.primary_analytics_id,
            _name_or_na(analytic, "name"),
            _name_or_na(analytic.type_analytic if analytic else None, "name"),
            record.cctv_id,
            _name_or_na(record.cctv, "cctv_name"),
            format_jakarta(record.datetime_send) or "N/A",
            format_jakarta(record.created_at) or "N/A",
            format_jakarta(record.updated_at) or "N/A",
        ])

    content = build_workbook(ACTIVITY_COLUMNS, rows, "Activity Monitor Data")
    stamp = now_jakarta().strftime("%Y-%m-%d_%H-%M-%S")
    filename = f"activity_monitor_export_{start_date}_to_{end_date}_{stamp}.xlsx"
    logger.info(
        f"Exported activity monitoring {start_date}..{end_date}",
        extra={"record_count": len(records)},
    )
    return ExportFile(filename=filename, content=content, record_count=len(records))


# ─── Weapon detection ───────────────────────────────────────────

async def export_weapon_detection(
    db: AsyncSession,
    start_date: date,
    end_date: date,
    weapon_type: list[str] | None = None,
    cctv_id: int | None = None,
    primary_analytics_id: int | None = None,
) -> ExportFile:
    start, end = range_window_utc(start_date, end_date)
    stmt = select(WeaponDetection).where(
        WeaponDetection.datetime_send >= start,
        WeaponDetection.datetime_send <= end,
    )
    if weapon_type:
        stmt = stmt.where(WeaponDetection.weapon_type.in_(weapon_type))
    if cctv_id:
        stmt = stmt.where(WeaponDetection.cctv_id == cctv_id)
    if primary_analytics_id:
        stmt = stmt.where(WeaponDetection.primary_analytics_id == primary_analytics_id)
    stmt = stmt.order_by(WeaponDetection.datetime_send.desc(), WeaponDetection.id.desc())
    records = (await db.execute(stmt)).scalars().all()
    if not records:
        raise ResourceNotFoundError("No weapon detection data found for the specified criteria")

    rows = [
        [
            index,
            record.weapon_type,
            f"{record.confidence * 100:.2f}%",
            _name_or_na(record.cctv, "cctv_name"),
            record.cctv_id,
            _name_or_na(record.primary_analytic, "name"),
            record.primary_analytics_id,
            format_jakarta(record.datetime_send),
            format_jakarta(record.created_at),
            format_jakarta(record.updated_at),
        ]
        for index, record in enumerate(records, start=1)
    ]

    content = build_workbook(WEAPON_COLUMNS, rows, "Weapon Detection Data")
    stamp = now_utc().strftime("%Y-%m-%dT%H-%M-%S")
    filename = f"weapon_detection_export_{start_date}_to_{end_date}_{stamp}.xlsx"
    logger.info(
        f"Exported weapon detection {start_date}..{end_date}",
        extra={"record_count": len(records)},
    )
    return ExportFile(filename=filename, content=content, record_count=len(records))
