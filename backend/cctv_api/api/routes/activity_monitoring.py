"""Activity Monitoring Routes — receptionist activity events pushed by edge devices.

Invariants:
    - POST accepts a general security token (devices have no session); the
      captureImg file is required
    - latest-day is open; every other read and all edits require a session user
    - A record may only reference a camera attached to its primary analytic
      (checked on create and whenever update touches either id)
    - DELETE answers 204 with no body

Design Decisions:
    - /latest-day, /charts/* and /export/all are declared before /{record_id}
    - Captures from token callers are filed under user 1, the device account
"""

import logging

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cctv_api.api.deps.auth import Caller, authenticate_token, require_general_token
from cctv_api.api.downloads import spreadsheet_response
from cctv_api.api.presenters import activity_monitoring_dict
from cctv_api.api.uploads import read_multipart, stored_upload
from cctv_api.core.envelope import paginated, success
from cctv_api.core.errors import BusinessRuleError, ResourceNotFoundError, ValidationFailedError
from cctv_api.core.jakarta_time import date_range
from cctv_api.core.listing import normalize_search, parse_int, resolve_page_params, resolve_sort
from cctv_api.db.listing import apply_search, apply_sort, paginate
from cctv_api.infrastructure.database import get_db
from cctv_api.models import ActivityMonitoring
from cctv_api.schemas.common import validate_form, validate_query
from cctv_api.schemas.detection_results import (
    ActivityExportQuery, ActivityMonitoringForm, ActivityMonitoringUpdateForm,
    ChartQuery, LatestDayQuery,
)
from cctv_api.services import charts, export_service
from cctv_api.services.analytic_validation import ensure_analytic_cctv_connection
from cctv_api.services.file_storage import delete_file

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/product/activity-monitoring", tags=["activity-monitoring"])

IMAGE_FIELD = "captureImg"
DEVICE_USER_ID = 1
SORT_FIELDS = ("created_at", "updated_at", "datetime_send", "sub_type_analytic")
SORT_COLUMNS = {name: getattr(ActivityMonitoring, name) for name in SORT_FIELDS}


def _capture_dir(user_id: int | None) -> str:
    return f"activity-monitor/user-{user_id or DEVICE_USER_ID}/capture"


async def _get_record_or_404(db: AsyncSession, record_id: int) -> ActivityMonitoring:
    record = await db.get(ActivityMonitoring, record_id, populate_existing=True)
    if record is None:
        raise ResourceNotFoundError("Activity monitor record not found")
    return record


# ─── Summaries and charts ───────────────────────────────────────

@router.get("/latest-day")
async def latest_day(request: Request, db: AsyncSession = Depends(get_db)):
    query = validate_query(LatestDayQuery, request)
    await ensure_analytic_cctv_connection(db, query.primary_analytics_id, query.cctv_id)
    data = await charts.activity_latest_day(db, query.primary_analytics_id, query.cctv_id)
    return success(data, "Latest day activity monitor data retrieved successfully")


async def _chart_days(request: Request, db: AsyncSession) -> tuple[ChartQuery, list]:
    query = validate_query(ChartQuery, request)
    query.ensure_valid_range()
    await ensure_analytic_cctv_connection(db, query.primary_analytics_id, query.cctv_id)
    return query, date_range(query.start_date, query.end_date)


@router.get("/charts/daily", dependencies=[Depends(authenticate_token)])
async def daily_chart(request: Request, db: AsyncSession = Depends(get_db)):
    query, days = await _chart_days(request, db)
    data = await charts.activity_daily_chart(db, query.primary_analytics_id, query.cctv_id, days)
    return success(data, "Daily activity monitor chart data retrieved successfully")


@router.get("/charts/daily-check-in", dependencies=[Depends(authenticate_token)])
async def daily_check_in_chart(request: Request, db: AsyncSession = Depends(get_db)):
    query, days = await _chart_days(request, db)
    data = await charts.activity_check_in_chart(
        db, query.primary_analytics_id, query.cctv_id, days,
    )
    return success(data, "Daily check in chart data retrieved successfully")


@router.get("/export/all", dependencies=[Depends(authenticate_token)])
async def export_all(request: Request, db: AsyncSession = Depends(get_db)):
    query = validate_query(ActivityExportQuery, request, list_fields=("subTypeAnalytic",))
    query.ensure_valid_range()
    export = await export_service.export_activity_monitoring(
        db,
        query.start_date,
        query.end_date,
        sub_type_analytic=query.sub_type_analytic,
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
        select(ActivityMonitoring), [ActivityMonitoring.sub_type_analytic],
        normalize_search(search),
    )
    cctv_filter = parse_int(cctv_id)
    if cctv_filter is not None:
        stmt = stmt.where(ActivityMonitoring.cctv_id == cctv_filter)
    analytic_filter = parse_int(primary_analytics_id)
    if analytic_filter is not None:
        stmt = stmt.where(ActivityMonitoring.primary_analytics_id == analytic_filter)
    stmt = apply_sort(
        stmt, resolve_sort(sort_by, sort_order, SORT_FIELDS), SORT_COLUMNS,
        ActivityMonitoring.id,
    )
    records, meta = await paginate(db, stmt, params)
    return paginated(
        [activity_monitoring_dict(r) for r in records], meta,
        "Activity monitor records retrieved successfully",
    )


@router.get("/{record_id}", dependencies=[Depends(authenticate_token)])
async def get_record(record_id: int, db: AsyncSession = Depends(get_db)):
    record = await _get_record_or_404(db, record_id)
    return success(
        activity_monitoring_dict(record), "Activity monitor record retrieved successfully",
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_record(
    request: Request,
    caller: Caller = Depends(require_general_token),
    db: AsyncSession = Depends(get_db),
):
    fields, upload = await read_multipart(request, IMAGE_FIELD)
    form = validate_form(ActivityMonitoringForm, fields)
    if upload is None:
        raise ValidationFailedError(
            [{"field": IMAGE_FIELD, "message": "Capture image is required"}],
        )
    await ensure_analytic_cctv_connection(db, form.primary_analytics_id, form.cctv_id)

    async with stored_upload(
        upload, _capture_dir(caller.user_id), "activity-monitor", IMAGE_FIELD,
    ) as image_path:
        record = ActivityMonitoring(
            primary_analytics_id=form.primary_analytics_id,
            cctv_id=form.cctv_id,
            sub_type_analytic=form.sub_type_analytic,
            capture_img=image_path,
        )
        if form.datetime_send is not None:
            record.datetime_send = form.datetime_send
        db.add(record)
        await db.commit()

    record = await _get_record_or_404(db, record.id)
    logger.info(
        f"Activity recorded: {record.sub_type_analytic}",
        extra={"cctv_id": record.cctv_id, "primary_analytic_id": record.primary_analytics_id},
    )
    return success(
        activity_monitoring_dict(record), "Activity monitor record created successfully",
    )


@router.put("/{record_id}")
async def update_record(
    record_id: int,
    request: Request,
    caller: Caller = Depends(authenticate_token),
    db: AsyncSession = Depends(get_db),
):
    record = await _get_record_or_404(db, record_id)
    fields, upload = await read_multipart(request, IMAGE_FIELD)
    form = validate_form(ActivityMonitoringUpdateForm, fields)
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
    async with stored_upload(
        upload, _capture_dir(caller.user_id), "activity-monitor", IMAGE_FIELD,
    ) as image_path:
        for name, value in changes.items():
            setattr(record, name, value)
        if image_path:
            record.capture_img = image_path
        await db.commit()

    if image_path and old_image != image_path:
        await delete_file(old_image)
    record = await _get_record_or_404(db, record_id)
    return success(
        activity_monitoring_dict(record), "Activity monitor record updated successfully",
    )


@router.delete(
    "/{record_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(authenticate_token)],
)
async def delete_record(record_id: int, db: AsyncSession = Depends(get_db)):
    record = await _get_record_or_404(db, record_id)
    image = record.capture_img
    await db.delete(record)
    await db.commit()
    await delete_file(image)
    logger.info("Activity record deleted", extra={"cctv_id": record.cctv_id})
    return Response(status_code=status.HTTP_204_NO_CONTENT)
