"""Type Analytic Routes — CRUD over the analytic taxonomy.

Invariants:
    - Every route requires a session user
    - Names are unique (case as given); duplicates → 400
    - A type referenced by any primary analytic cannot be deleted (400)
"""

import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from cctv_api.api.deps.auth import authenticate_token
from cctv_api.api.presenters import timestamp, type_analytic_dict
from cctv_api.core.envelope import paginated, success
from cctv_api.core.errors import BusinessRuleError, ResourceNotFoundError
from cctv_api.core.listing import normalize_search, resolve_page_params, resolve_sort
from cctv_api.db.listing import apply_search, apply_sort, paginate
from cctv_api.infrastructure.database import get_db
from cctv_api.models import TypeAnalytic
from cctv_api.schemas.type_analytic import TypeAnalyticWrite

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/type-analytic", tags=["type-analytic"],
    dependencies=[Depends(authenticate_token)],
)

SORT_FIELDS = ("created_at", "updated_at", "name")
SORT_COLUMNS = {
    "created_at": TypeAnalytic.created_at,
    "updated_at": TypeAnalytic.updated_at,
    "name": TypeAnalytic.name,
}
DUPLICATE_NAME = "Type analytic with this name already exists"


async def _get_or_404(db: AsyncSession, type_id: int) -> TypeAnalytic:
    result = await db.execute(
        select(TypeAnalytic)
        .where(TypeAnalytic.id == type_id)
        .options(selectinload(TypeAnalytic.primary_analytics)),
    )
    type_analytic = result.scalar_one_or_none()
    if type_analytic is None:
        raise ResourceNotFoundError("Type analytic not found")
    return type_analytic


async def _ensure_name_free(db: AsyncSession, name: str, exclude_id: int | None = None) -> None:
    stmt = select(func.count()).select_from(TypeAnalytic).where(TypeAnalytic.name == name)
    if exclude_id is not None:
        stmt = stmt.where(TypeAnalytic.id != exclude_id)
    if (await db.execute(stmt)).scalar_one():
        raise BusinessRuleError(DUPLICATE_NAME)


def _with_count(type_analytic: TypeAnalytic) -> dict:
    return {
        **type_analytic_dict(type_analytic),
        "_count": {"primary_analytics": len(type_analytic.primary_analytics)},
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_type_analytic(body: TypeAnalyticWrite, db: AsyncSession = Depends(get_db)):
    await _ensure_name_free(db, body.name)
    type_analytic = TypeAnalytic(name=body.name)
    db.add(type_analytic)
    await db.commit()
    logger.info(f"Type analytic created: {type_analytic.name}")
    return success(type_analytic_dict(type_analytic), "Type analytic created successfully")


@router.get("")
async def list_type_analytics(
    page: str | None = None,
    limit: str | None = None,
    search: str | None = None,
    sort_by: str | None = Query(None, alias="sortBy"),
    sort_order: str | None = Query(None, alias="sortOrder"),
    db: AsyncSession = Depends(get_db),
):
    params = resolve_page_params(page, limit, default_limit=10, max_limit=100)
    stmt = select(TypeAnalytic).options(selectinload(TypeAnalytic.primary_analytics))
    stmt = apply_search(stmt, [TypeAnalytic.name], normalize_search(search))
    stmt = apply_sort(
        stmt, resolve_sort(sort_by, sort_order, SORT_FIELDS), SORT_COLUMNS, TypeAnalytic.id,
    )
    rows, meta = await paginate(db, stmt, params)
    return paginated([_with_count(t) for t in rows], meta)


@router.get("/{type_id}")
async def get_type_analytic(type_id: int, db: AsyncSession = Depends(get_db)):
    type_analytic = await _get_or_404(db, type_id)
    return success({
        **_with_count(type_analytic),
        "primary_analytics": [
            {
                "id": a.id,
                "name": a.name,
                "status": a.status,
                "created_at": timestamp(a.created_at),
            }
            for a in type_analytic.primary_analytics
        ],
    })


@router.put("/{type_id}")
async def update_type_analytic(
    type_id: int, body: TypeAnalyticWrite, db: AsyncSession = Depends(get_db),
):
    type_analytic = await _get_or_404(db, type_id)
    await _ensure_name_free(db, body.name, exclude_id=type_id)
    type_analytic.name = body.name
    await db.commit()
    return success(type_analytic_dict(type_analytic), "Type analytic updated successfully")


@router.delete("/{type_id}")
async def delete_type_analytic(type_id: int, db: AsyncSession = Depends(get_db)):
    type_analytic = await _get_or_404(db, type_id)
    if type_analytic.primary_analytics:
        raise BusinessRuleError(
            "Cannot delete type analytic that is being used by primary analytics",
        )
    await db.delete(type_analytic)
    await db.commit()
    logger.info(f"Type analytic deleted: {type_analytic.name}")
    return success(None, "Type analytic deleted successfully")
