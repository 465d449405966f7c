"""CCTV Routes — camera CRUD with a polygon reference image.

Invariants:
    - Every route requires a session user; a new camera is owned by that user
    - Create requires the polygonImg file; update replaces it only when a new one is sent
    - Old images are deleted only after the new row state is committed
    - Delete removes the row first, then its stored image

Design Decisions:
    - Forms are validated through CctvForm/CctvUpdateForm (validate_form) so
      multipart failures render the same 400 as JSON bodies
"""

import logging

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from cctv_api.api.deps.auth import Caller, authenticate_token
from cctv_api.api.presenters import cctv_dict
from cctv_api.api.uploads import read_multipart, stored_upload
from cctv_api.core.envelope import paginated, success
from cctv_api.core.errors import BusinessRuleError, ResourceNotFoundError, ValidationFailedError
from cctv_api.core.listing import normalize_search, parse_int, resolve_page_params, resolve_sort
from cctv_api.db.listing import apply_search, apply_sort, paginate
from cctv_api.infrastructure.database import get_db
from cctv_api.models import Cctv, PrimaryAnalytic, cctv_primary_analytics
from cctv_api.schemas.cctv import CctvForm, CctvUpdateForm
from cctv_api.schemas.common import parse_form_bool, validate_form
from cctv_api.services.file_storage import delete_file

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/cctv", tags=["cctv"])

IMAGE_FIELD = "polygonImg"
SORT_FIELDS = ("created_at", "updated_at", "cctv_name", "name")
SORT_COLUMNS = {
    "created_at": Cctv.created_at,
    "updated_at": Cctv.updated_at,
    "cctv_name": Cctv.cctv_name,
    "name": Cctv.cctv_name,
}


def _polygon_dir(user_id: int) -> str:
    return f"cctv/user-{user_id}/polygon"


def _analytic_summary(analytic: PrimaryAnalytic) -> dict:
    return {
        "id": analytic.id,
        "name": analytic.name,
        "description": analytic.description,
        "status": analytic.status,
        "type_analytic": {"id": analytic.type_analytic.id, "name": analytic.type_analytic.name},
    }


async def _get_cctv_or_404(db: AsyncSession, cctv_id: int, with_analytics: bool = False) -> Cctv:
    stmt = select(Cctv).where(Cctv.id == cctv_id)
    if with_analytics:
        stmt = stmt.options(selectinload(Cctv.primary_analytics))
    cctv = (await db.execute(stmt)).scalar_one_or_none()
    if cctv is None:
        raise ResourceNotFoundError("CCTV not found")
    return cctv


def _parse_type_ids(raw: str | None) -> list[int]:
    if not raw:
        return []
    ids = [parse_int(part) for part in raw.split(",")]
    return [i for i in ids if i]


# ─── Reads ──────────────────────────────────────────────────────

@router.get("")
async def list_cctvs(
    page: str | None = None,
    limit: str | None = None,
    search: str | None = None,
    sort_by: str | None = Query(None, alias="sortBy"),
    sort_order: str | None = Query(None, alias="sortOrder"),
    type_analytic_ids: str | None = Query(None, alias="typeAnalyticIds"),
    is_active: str | None = Query(None, alias="isActive"),
    caller: Caller = Depends(authenticate_token),
    db: AsyncSession = Depends(get_db),
):
    params = resolve_page_params(page, limit)
    stmt = apply_search(select(Cctv), [Cctv.cctv_name], normalize_search(search))
    type_ids = _parse_type_ids(type_analytic_ids)
    if type_ids:
        stmt = stmt.where(Cctv.id.in_(
            select(cctv_primary_analytics.c.cctv_id)
            .join(PrimaryAnalytic, PrimaryAnalytic.id == cctv_primary_analytics.c.primary_analytics_id)
            .where(PrimaryAnalytic.type_analytic_id.in_(type_ids)),
        ))
    active = parse_form_bool(is_active) if is_active else None
    if isinstance(active, bool):
        stmt = stmt.where(Cctv.is_active == active)
    stmt = apply_sort(stmt, resolve_sort(sort_by, sort_order, SORT_FIELDS), SORT_COLUMNS, Cctv.id)
    cctvs, meta = await paginate(db, stmt, params)
    return paginated([cctv_dict(c) for c in cctvs], meta, "CCTVs retrieved successfully")


@router.get("/primary-analytics/{analytic_id}")
async def list_by_primary_analytic(
    analytic_id: int,
    page: str | None = None,
    limit: str | None = None,
    search: str | None = None,
    sort_by: str | None = Query(None, alias="sortBy"),
    sort_order: str | None = Query(None, alias="sortOrder"),
    caller: Caller = Depends(authenticate_token),
    db: AsyncSession = Depends(get_db),
):
    analytic = await db.get(PrimaryAnalytic, analytic_id)
    if analytic is None:
        raise ResourceNotFoundError("Primary Analytics not found")

    params = resolve_page_params(page, limit, default_limit=10, max_limit=50)
    stmt = select(Cctv).where(Cctv.id.in_(
        select(cctv_primary_analytics.c.cctv_id)
        .where(cctv_primary_analytics.c.primary_analytics_id == analytic_id),
    ))
    stmt = apply_search(stmt, [Cctv.cctv_name], normalize_search(search))
    stmt = apply_sort(stmt, resolve_sort(sort_by, sort_order, SORT_FIELDS), SORT_COLUMNS, Cctv.id)
    cctvs, meta = await paginate(db, stmt, params)
    summary = _analytic_summary(analytic)
    return paginated(
        [{**cctv_dict(c), "primary_analytics": [summary]} for c in cctvs], meta,
        "CCTVs retrieved successfully by Primary Analytics ID",
    )


@router.get("/{cctv_id}/analytic")
async def get_cctv_with_analytic(
    cctv_id: int,
    caller: Caller = Depends(authenticate_token),
    db: AsyncSession = Depends(get_db),
):
    cctv = await _get_cctv_or_404(db, cctv_id, with_analytics=True)
    data = {
        **cctv_dict(cctv),
        "primary_analytics": [
            _analytic_summary(a) for a in sorted(cctv.primary_analytics, key=lambda a: a.id)
        ],
    }
    return success(data, "CCTV with analytic retrieved successfully")


@router.get("/{cctv_id}")
async def get_cctv(
    cctv_id: int,
    caller: Caller = Depends(authenticate_token),
    db: AsyncSession = Depends(get_db),
):
    cctv = await _get_cctv_or_404(db, cctv_id)
    return success(cctv_dict(cctv), "CCTV retrieved successfully")


# ─── Writes ─────────────────────────────────────────────────────

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_cctv(
    request: Request,
    caller: Caller = Depends(authenticate_token),
    db: AsyncSession = Depends(get_db),
):
    fields, upload = await read_multipart(request, IMAGE_FIELD)
    form = validate_form(CctvForm, fields)
    if upload is None:
        raise ValidationFailedError(
            [{"field": IMAGE_FIELD, "message": "Polygon image is required"}],
        )

    async with stored_upload(
        upload, _polygon_dir(caller.user_id), "cctv-polygon", IMAGE_FIELD,
    ) as image_path:
        cctv = Cctv(
            user_id=caller.user_id,
            cctv_name=form.cctv_name,
            ip_cctv=form.ip_cctv,
            ip_server=form.ip_server,
            rtsp=form.rtsp,
            embed=form.embed,
            latitude=form.latitude,
            longitude=form.longitude,
            type_streaming=form.type_streaming,
            is_active=form.is_active if "is_active" in form.model_fields_set else True,
            polygon_img=image_path,
        )
        db.add(cctv)
        await db.commit()

    logger.info(f"CCTV created: {cctv.cctv_name}", extra={"cctv_id": cctv.id})
    return success(cctv_dict(cctv), "CCTV created successfully")


@router.put("/{cctv_id}")
async def update_cctv(
    cctv_id: int,
    request: Request,
    caller: Caller = Depends(authenticate_token),
    db: AsyncSession = Depends(get_db),
):
    cctv = await _get_cctv_or_404(db, cctv_id)
    fields, upload = await read_multipart(request, IMAGE_FIELD)
    form = validate_form(CctvUpdateForm, fields)
    changes = {name: getattr(form, name) for name in form.model_fields_set}
    if not changes and upload is None:
        raise BusinessRuleError("No data provided for update")

    old_image = cctv.polygon_img
    async with stored_upload(
        upload, _polygon_dir(caller.user_id), f"cctv-{cctv_id}-polygon", IMAGE_FIELD,
    ) as image_path:
        for name, value in changes.items():
            if name in ("cctv_name", "rtsp") and value is None:
                continue
            setattr(cctv, name, value)
        if image_path:
            cctv.polygon_img = image_path
        await db.commit()

    if image_path and old_image != image_path:
        await delete_file(old_image)
    logger.info("CCTV updated", extra={"cctv_id": cctv_id})
    return success(cctv_dict(cctv), "CCTV updated successfully")


@router.delete("/{cctv_id}")
async def delete_cctv(
    cctv_id: int,
    caller: Caller = Depends(authenticate_token),
    db: AsyncSession = Depends(get_db),
):
    cctv = await _get_cctv_or_404(db, cctv_id)
    image = cctv.polygon_img
    await db.delete(cctv)
    await db.commit()
    await delete_file(image)
    logger.info("CCTV deleted", extra={"cctv_id": cctv_id})
    return success(None, "CCTV deleted successfully")
