"""Primary Analytic Routes — analytic assignment CRUD and server capacity overview.

Invariants:
    - Every route requires a session user
    - Mutations delegate to services/primary_analytic_service.py, which owns the
      transaction (capacity counters and attachments commit together or not at all)
    - /server-capacity and /cctv/{cctv_id} are declared before /{analytic_id}
"""

import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cctv_api.api.deps.auth import authenticate_token
from cctv_api.api.presenters import (
    primary_analytic_detail, primary_analytic_dict, server_summary,
    timestamp, type_analytic_summary,
)
from cctv_api.core.envelope import paginated, success
from cctv_api.core.errors import ResourceNotFoundError
from cctv_api.core.listing import normalize_search, resolve_page_params, resolve_sort
from cctv_api.db.listing import apply_search, apply_sort, paginate
from cctv_api.infrastructure.database import get_db
from cctv_api.models import Cctv, PrimaryAnalytic, cctv_primary_analytics
from cctv_api.schemas.primary_analytic import PrimaryAnalyticCreate, PrimaryAnalyticUpdate
from cctv_api.services import primary_analytic_service

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/analytic", tags=["analytic"], dependencies=[Depends(authenticate_token)],
)

SORT_FIELDS = ("created_at", "updated_at", "name", "description", "status")
SORT_COLUMNS = {name: getattr(PrimaryAnalytic, name) for name in SORT_FIELDS}
SEARCH_COLUMNS = [PrimaryAnalytic.name, PrimaryAnalytic.description]


def _by_cctv_item(analytic: PrimaryAnalytic) -> dict:
    return {
        "id": analytic.id,
        "servers_id": analytic.servers_id,
        "type_analytic_id": analytic.type_analytic_id,
        "name": analytic.name,
        "description": analytic.description,
        "status": analytic.status,
        "created_at": timestamp(analytic.created_at),
        "updated_at": timestamp(analytic.updated_at),
        "servers": server_summary(analytic.server),
        "type_analytic": type_analytic_summary(analytic.type_analytic),
        "cctv": [{"id": c.id, "cctv_name": c.cctv_name} for c in analytic.cctvs],
    }


@router.get("")
async def list_primary_analytics(
    page: str | None = None,
    limit: str | None = None,
    search: str | None = None,
    sort_by: str | None = Query(None, alias="sortBy"),
    sort_order: str | None = Query(None, alias="sortOrder"),
    db: AsyncSession = Depends(get_db),
):
    params = resolve_page_params(page, limit)
    stmt = apply_search(select(PrimaryAnalytic), SEARCH_COLUMNS, normalize_search(search))
    stmt = apply_sort(
        stmt, resolve_sort(sort_by, sort_order, SORT_FIELDS), SORT_COLUMNS, PrimaryAnalytic.id,
    )
    analytics, meta = await paginate(db, stmt, params)
    return paginated([primary_analytic_dict(a) for a in analytics], meta)


@router.get("/server-capacity")
async def server_capacity_overview(db: AsyncSession = Depends(get_db)):
    statuses = await primary_analytic_service.server_capacity_status(db)
    return success(statuses, "Server capacity status retrieved successfully")


@router.get("/cctv/{cctv_id}")
async def list_by_cctv(
    cctv_id: int,
    page: str | None = None,
    limit: str | None = None,
    search: str | None = None,
    sort_by: str | None = Query(None, alias="sortBy"),
    sort_order: str | None = Query(None, alias="sortOrder"),
    db: AsyncSession = Depends(get_db),
):
    if await db.get(Cctv, cctv_id) is None:
        raise ResourceNotFoundError("CCTV not found")

    params = resolve_page_params(page, limit)
    stmt = select(PrimaryAnalytic).where(
        PrimaryAnalytic.id.in_(
            select(cctv_primary_analytics.c.primary_analytics_id)
            .where(cctv_primary_analytics.c.cctv_id == cctv_id),
        ),
    )
    stmt = apply_search(stmt, SEARCH_COLUMNS, normalize_search(search))
    stmt = apply_sort(
        stmt, resolve_sort(sort_by, sort_order, SORT_FIELDS), SORT_COLUMNS, PrimaryAnalytic.id,
    )
    analytics, meta = await paginate(db, stmt, params)
    return paginated([_by_cctv_item(a) for a in analytics], meta)


@router.get("/{analytic_id}")
async def get_primary_analytic(analytic_id: int, db: AsyncSession = Depends(get_db)):
    analytic = await primary_analytic_service.get_primary_analytic_or_404(db, analytic_id)
    return success(primary_analytic_detail(analytic))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_primary_analytic(
    body: PrimaryAnalyticCreate, db: AsyncSession = Depends(get_db),
):
    analytic = await primary_analytic_service.create_primary_analytic(db, body)
    return success(primary_analytic_detail(analytic), "Primary analytic created successfully")


@router.put("/{analytic_id}")
async def update_primary_analytic(
    analytic_id: int, body: PrimaryAnalyticUpdate, db: AsyncSession = Depends(get_db),
):
    analytic = await primary_analytic_service.update_primary_analytic(db, analytic_id, body)
    return success(primary_analytic_detail(analytic), "Primary analytic updated successfully")


@router.delete("/{analytic_id}")
async def delete_primary_analytic(analytic_id: int, db: AsyncSession = Depends(get_db)):
    await primary_analytic_service.delete_primary_analytic(db, analytic_id)
    return success(None, "Primary analytic deleted successfully")
