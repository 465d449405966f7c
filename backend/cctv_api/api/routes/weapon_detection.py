"""Weapon Detection Routes — weapon sightings pushed by edge devices, with charts and export.

Invariants:
    - POST accepts a general security token; captureImg is optional
    - latest-day is open; every other read and all edits require a session user
    - A record may only reference a camera attached to its primary analytic
    - List defaults to newest datetime_send first
"""

import logging

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cctv_api.api.deps.auth import authenticate_token, require_general_token
from cctv_api.api.downloads import spreadsheet_response
from cctv_api.api.presenters import weapon_detection_dict
from cctv_api.api.uploads import read_multipart, stored_upload
from cctv_api.core.envelope import paginated, success
from cctv_api.core.errors import BusinessRuleError, ResourceNotFoundError
from cctv_api.core.jakarta_time import date_range
from cctv_api.core.listing import normalize_search, parse_int, resolve_page_params, resolve_sort
from cctv_api.db.listing import apply_search, apply_sort, paginate
from cctv_api.infrastructure.database import get_db
from cctv_api.models import WeaponDetection
from cctv_api.schemas.common import validate_form, validate_query
from cctv_api.schemas.detection_results import (
    ChartQuery, LatestDayQuery, WeaponDetectionForm, WeaponDetectionUpdateForm,
    WeaponExportQuery,
)
from cctv_api.services import charts, export_service
from cctv_api.services.analytic_validation import ensure_analytic_cctv_connection
from cctv_api.services.file_storage import delete_file

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/product/weapon-detection", tags=["weapon-detection"])

IMAGE_FIELD = "captureImg"
CAPTURE_DIR = "weapon_detection"
SORT_FIELDS = (
    "id", "weapon_type", "confidence", "datetime_send", "created_at", "updated_at",
)
SORT_COLUMNS = {name: getattr(WeaponDetection, name) for name in SORT_FIELDS}
CHART_MESSAGE = "Daily weapon detection chart data retrieved successfully"


async def _get_record_or_404(db: AsyncSession, record_id: int) -> WeaponDetection:
    record = await db.get(WeaponDetection, record_id, populate_existing=True)
    if record is None:
        raise ResourceNotFoundError("Weapon detection record not found")
    return record


async def _chart_days(request: Request, db: AsyncSession) -> tuple[ChartQuery, list]:
    query = validate_query(ChartQuery, request)
    query.ensure_valid_range()
    await ensure_analytic_cctv_connection(db, query.primary_analytics_id, query.cctv_id)
    return query, date_range(query.start_date, query.end_date)


# ─── Summaries and charts ───────────────────────────────────────

@router.get("/latest-day")
async def latest_day(request: Request, db: AsyncSession = Depends(get_db)):
    query = validate_query(LatestDayQuery, request)
    await ensure_analytic_cctv_connection(db, query.primary_analytics_id, query.cctv_id)
    data = await charts.weapon_latest_day(db, query.primary_analytics_id, query.cctv_id)
    return success(data, "Latest day weapon detection data retrieved successfully")


@router.get("/charts/daily-detail", dependencies=[Depends(authenticate_token)])
async def daily_detail_chart(request: Request, db: AsyncSession = Depends(get_db)):
    query, days = await _chart_days(request, db)
    data = await charts.weapon_daily_detail(db, query.primary_analytics_id, query.cctv_id, days)
    return success(data, CHART_MESSAGE)


@router.get("/charts/daily-total", dependencies=[Depends(authenticate_token)])
async def daily_total_chart(request: Request, db: AsyncSession = Depends(get_db)):
    query, days = await _chart_days(request, db)
    data = await charts.weapon_daily_total(db, query.primary_analytics_id, query.cctv_id, days)
    return success(data, CHART_MESSAGE)


@router.get("/charts/weapon-types-summary", dependencies=[Depends(authenticate_token)])
async def weapon_types_summary(request: Request, db: AsyncSession = Depends(get_db)):
    query, days = await _chart_days(request, db)
    data = await charts.weapon_types_summary(
        db, query.primary_analytics_id, query.cctv_id, days,
    )
    return success(data, "Weapon types summary retrieved successfully")


@router.get("/export/all", dependencies=[Depends(authenticate_token)])
async def export_all(request: Request, db: AsyncSession = Depends(get_db)):
    query = validate_query(WeaponExportQuery, request, list_fields=("weaponType",))
    query.ensure_valid_range()
    export = await export_service.export_weapon_detection(
        db,
        query.start_date,
        query.end_date,
        weapon_type=query.weapon_type,
        cctv_id=query.cctv_id,
        primary_analytics_id=query.primary_analytics_id,
    )
    return spreadsheet_response(export)


# ─── Records ────────────────────────────────────────────────────

@router.get("", dependencies=[Depends(authenticate_token)])
async def list_records(
    page: str | None = None,
    limit: str | None = None,
    search: str | None = None,
    sort_by: str | None = Query(None, alias="sortBy"),
    sort_order: str | None = Query(None, alias="sortOrder"),
    cctv_id: str | None = Query(None, alias="cctvId"),
    primary_analytics_id: str | None = Query(None, alias="primaryAnalyticsId"),
    db: AsyncSession = Depends(get_db),
):
    params = resolve_page_params(page, limit)
    stmt = apply_search(
        select(WeaponDetection), [WeaponDetection.weapon_type], normalize_search(search),
    )
    cctv_filter = parse_int(cctv_id)
    if cctv_filter is not None:
        stmt = stmt.where(WeaponDetection.cctv_id == cctv_filter)
    analytic_filter = parse_int(primary_analytics_id)
    if analytic_filter is not None:
        stmt = stmt.where(WeaponDetection.primary_analytics_id == analytic_filter)
    sort = resolve_sort(sort_by, sort_order, SORT_FIELDS, default_field="datetime_send")
    stmt = apply_sort(stmt, sort, SORT_COLUMNS, WeaponDetection.id)
    records, meta = await paginate(db, stmt, params)
    return paginated(
        [weapon_detection_dict(r) for r in records], meta,
        "Weapon detection records retrieved successfully",
    )


@router.get("/{record_id}", dependencies=[Depends(authenticate_token)])
async def get_record(record_id: int, db: AsyncSession = Depends(get_db)):
    record = await _get_record_or_404(db, record_id)
    return success(
        weapon_detection_dict(record), "Weapon detection record retrieved successfully",
    )


@router.post(
    "", status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_general_token)],
)
async def create_record(request: Request, db: AsyncSession = Depends(get_db)):
    fields, upload = await read_multipart(request, IMAGE_FIELD)
    form = validate_form(WeaponDetectionForm, fields)
    await ensure_analytic_cctv_connection(db, form.primary_analytics_id, form.cctv_id)

    async with stored_upload(upload, CAPTURE_DIR, "weapon_detection", IMAGE_FIELD) as image_path:
        record = WeaponDetection(
            primary_analytics_id=form.primary_analytics_id,
            cctv_id=form.cctv_id,
            weapon_type=form.weapon_type,
            confidence=form.confidence,
            capture_img=image_path,
        )
        if form.datetime_send is not None:
            record.datetime_send = form.datetime_send
        db.add(record)
        await db.commit()

    record = await _get_record_or_404(db, record.id)
    logger.info(
        f"Weapon detected: {record.weapon_type}",
        extra={"cctv_id": record.cctv_id, "primary_analytic_id": record.primary_analytics_id},
    )
    return success(
        weapon_detection_dict(record), "Weapon detection record created successfully",
    )


@router.put("/{record_id}", dependencies=[Depends(authenticate_token)])
async def update_record(record_id: int, request: Request, db: AsyncSession = Depends(get_db)):
    record = await _get_record_or_404(db, record_id)
    fields, upload = await read_multipart(request, IMAGE_FIELD)
    form = validate_form(WeaponDetectionUpdateForm, fields)
    changes = {
        name: getattr(form, name) for name in form.model_fields_set
        if getattr(form, name) is not None
    }
    if not changes and upload is None:
        raise BusinessRuleError("No data provided for update")
    if "primary_analytics_id" in changes or "cctv_id" in changes:
        await ensure_analytic_cctv_connection(
            db,
            changes.get("primary_analytics_id", record.primary_analytics_id),
            changes.get("cctv_id", record.cctv_id),
        )

    old_image = record.capture_img
    async with stored_upload(upload, CAPTURE_DIR, "weapon_detection", IMAGE_FIELD) as image_path:
        for name, value in changes.items():
            setattr(record, name, value)
        if image_path:
            record.capture_img = image_path
        await db.commit()

    if image_path and old_image != image_path:
        await delete_file(old_image)
    record = await _get_record_or_404(db, record_id)
    return success(
        weapon_detection_dict(record), "Weapon detection record updated successfully",
    )


@router.delete("/{record_id}", dependencies=[Depends(authenticate_token)])
async def delete_record(record_id: int, db: AsyncSession = Depends(get_db)):
    record = await _get_record_or_404(db, record_id)
    image = record.capture_img
    await db.delete(record)
    await db.commit()
    await delete_file(image)
    logger.info("Weapon detection deleted", extra={"cctv_id": record.cctv_id})
    return success(None, "Weapon detection record deleted successfully")
