"""Server Capacity Service — database-backed reserve/release/check of analytic slots.

Invariants:
    - reserve is a single guarded UPDATE (cur + n <= max); rowcount decides success,
      so concurrent reservations can never push cur past max
    - release floors the counter at 0 and never fails for an over-release
    - Only activity monitoring (type 1) touches counters; other types succeed unchanged
    - Nothing here commits: callers decide the transaction boundary

Design Decisions:
    - Conditional UPDATE over SELECT ... FOR UPDATE: one round-trip, works on SQLite too
    - synchronize_session=False: rows already loaded in the session are not refreshed;
      response builders re-query with populate_existing when they need counters
"""

import logging
from typing import Iterable

from sqlalchemy import case, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from cctv_api.core import server_selection
from cctv_api.core.server_selection import ACTIVITY_MONITORING_TYPE_ID, ServerCapacity
from cctv_api.models import PrimaryAnalytic, Server

logger = logging.getLogger(__name__)


def to_capacity(server: Server) -> ServerCapacity:
    return ServerCapacity(
        id=server.id,
        ip=server.ip,
        description=server.description,
        max_activity_monitoring=server.max_activity_monitoring,
        cur_activity_monitoring=server.cur_activity_monitoring,
    )


async def load_capacities(db: AsyncSession) -> list[ServerCapacity]:
    result = await db.execute(
        select(Server).order_by(Server.id).execution_options(populate_existing=True),
    )
    return [to_capacity(s) for s in result.scalars().all()]


async def select_best_server(
    db: AsyncSession,
    type_analytic_id: int,
    required_capacity: int = 1,
    exclude_server_ids: Iterable[int] = (),
) -> ServerCapacity | None:
    return server_selection.select_best_server(
        await load_capacities(db), type_analytic_id,
        required_capacity, exclude_server_ids,
    )


async def reserve_capacity(
    db: AsyncSession, server_id: int, type_analytic_id: int, capacity: int = 1,
) -> bool:
    """Increment the server's counter if it stays within max; False otherwise."""
    if type_analytic_id != ACTIVITY_MONITORING_TYPE_ID:
        return True
    result = await db.execute(
        update(Server)
        .where(
            Server.id == server_id,
            Server.cur_activity_monitoring + capacity <= Server.max_activity_monitoring,
        )
        .values(cur_activity_monitoring=Server.cur_activity_monitoring + capacity)
        .execution_options(synchronize_session=False),
    )
    reserved = result.rowcount == 1
    if not reserved:
        logger.warning(
            "Capacity reservation refused", extra={"server_id": server_id},
        )
    return reserved


async def release_capacity(
    db: AsyncSession, server_id: int, type_analytic_id: int, capacity: int = 1,
) -> bool:
    if type_analytic_id != ACTIVITY_MONITORING_TYPE_ID:
        return True
    remaining = Server.cur_activity_monitoring - capacity
    result = await db.execute(
        update(Server)
        .where(Server.id == server_id)
        .values(cur_activity_monitoring=case((remaining < 0, 0), else_=remaining))
        .execution_options(synchronize_session=False),
    )
    return result.rowcount == 1


async def check_capacity(
    db: AsyncSession, server_id: int, type_analytic_id: int, required_capacity: int = 1,
) -> bool:
    server = await db.get(Server, server_id, populate_existing=True)
    if server is None:
        return False
    return server_selection.has_capacity(
        to_capacity(server), type_analytic_id, required_capacity,
    )


async def server_details(db: AsyncSession, server_id: int) -> dict | None:
    """Server capacity snapshot with its analytics counted per type name."""
    server = await db.get(Server, server_id, populate_existing=True)
    if server is None:
        return None
    analytics = (await db.execute(
        select(PrimaryAnalytic).where(PrimaryAnalytic.servers_id == server_id),
    )).scalars().all()
    by_type: dict[str, int] = {}
    for analytic in analytics:
        name = analytic.type_analytic.name
        by_type[name] = by_type.get(name, 0) + 1
    return {
        **to_capacity(server).to_dict(),
        "totalAnalytics": len(analytics),
        "analyticsByType": by_type,
    }
