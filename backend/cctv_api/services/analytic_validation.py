"""Analytic Validation — existence and connection checks shared by result-table routes.

Invariants:
    - A result row may only reference a camera that is attached to the given analytic
    - Missing camera → 404 "CCTV not found"; missing analytic → 404 "Primary analytics not found";
      both exist but unattached → 400 "Primary analytics and CCTV are not connected"
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cctv_api.core.errors import BusinessRuleError, ResourceNotFoundError
from cctv_api.models import Cctv, PrimaryAnalytic, cctv_primary_analytics


async def is_connected(db: AsyncSession, primary_analytics_id: int, cctv_id: int) -> bool:
    row = (await db.execute(
        select(cctv_primary_analytics.c.cctv_id).where(
            cctv_primary_analytics.c.cctv_id == cctv_id,
            cctv_primary_analytics.c.primary_analytics_id == primary_analytics_id,
        ),
    )).first()
    return row is not None


async def ensure_analytic_cctv_connection(
    db: AsyncSession, primary_analytics_id: int, cctv_id: int,
) -> tuple[PrimaryAnalytic, Cctv]:
    cctv = await db.get(Cctv, cctv_id)
    if cctv is None:
        raise ResourceNotFoundError("CCTV not found")
    analytic = await db.get(PrimaryAnalytic, primary_analytics_id)
    if analytic is None:
        raise ResourceNotFoundError("Primary analytics not found")
    if not await is_connected(db, primary_analytics_id, cctv_id):
        raise BusinessRuleError("Primary analytics and CCTV are not connected")
    return analytic, cctv
