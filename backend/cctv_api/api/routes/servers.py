"""Server Routes — inference host CRUD, fleet statistics and per-IP analytic lookup.

Invariants:
    - List, get-by-id and get-by-ip accept a general security token; every other
      route requires a session user
    - ip is unique: create/update on a taken ip → 409
    - The unique index backs the pre-check: losing a create/update race is also 409
    - A server with any primary analytic attached cannot be deleted (400)
    - /ip/{ip} lists the cameras that have at least one analytic on the server;
      analyticType narrows each camera's analytics, it never hides the camera

Design Decisions:
    - Static paths (/stats, /check-availability, /ip) are declared before
      /{server_id} so they win routing
    - The per-ip view is assembled from the analytic side: PrimaryAnalytic already
      loads cameras, values, polygons and sub analytics eagerly
"""

import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from cctv_api.api.deps.auth import authenticate_token, require_general_token
from cctv_api.api.presenters import server_dict
from cctv_api.core.envelope import paginated, success
from cctv_api.core.errors import BusinessRuleError, ConflictError, ResourceNotFoundError
from cctv_api.core.listing import normalize_search, parse_int, resolve_page_params, resolve_sort
from cctv_api.core.server_selection import ACTIVITY_MONITORING_TYPE_ID
from cctv_api.db.listing import apply_search, apply_sort, paginate
from cctv_api.infrastructure.database import get_db
from cctv_api.models import PrimaryAnalytic, Server, TypeAnalytic
from cctv_api.schemas.server import ServerCreate, ServerUpdate

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/server", tags=["servers"])

SORT_FIELDS = (
    "created_at", "updated_at", "ip", "max_activity_monitoring", "cur_activity_monitoring",
)
SORT_COLUMNS = {name: getattr(Server, name) for name in SORT_FIELDS}


def _server_with_analytics(server: Server) -> dict:
    return {
        **server_dict(server),
        "primary_analytics": [
            {"id": a.id, "name": a.name, "status": a.status}
            for a in server.primary_analytics
        ],
        "analytics_count": len(server.primary_analytics),
    }


async def _load_server(db: AsyncSession, server_id: int) -> Server | None:
    result = await db.execute(
        select(Server)
        .where(Server.id == server_id)
        .options(selectinload(Server.primary_analytics))
        .execution_options(populate_existing=True),
    )
    return result.scalar_one_or_none()


async def _get_server_or_404(db: AsyncSession, server_id: int) -> Server:
    server = await _load_server(db, server_id)
    if server is None:
        raise ResourceNotFoundError("Server not found")
    return server


async def _ensure_ip_free(db: AsyncSession, ip: str, exclude_id: int | None = None) -> None:
    stmt = select(func.count()).select_from(Server).where(Server.ip == ip)
    if exclude_id is not None:
        stmt = stmt.where(Server.id != exclude_id)
    if (await db.execute(stmt)).scalar_one():
        raise ConflictError("Server with this IP address already exists")


async def _commit_unique_ip(db: AsyncSession) -> None:
    """Commit, reporting a concurrent write that took the same ip as 409."""
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError("Server with this IP address already exists") from exc


# ─── Listing and statistics ─────────────────────────────────────

@router.get("", dependencies=[Depends(require_general_token)])
async def list_servers(
    page: str | None = None,
    limit: str | None = None,
    search: str | None = None,
    sort_by: str | None = Query(None, alias="sortBy"),
    sort_order: str | None = Query(None, alias="sortOrder"),
    db: AsyncSession = Depends(get_db),
):
    params = resolve_page_params(page, limit)
    stmt = select(Server).options(selectinload(Server.primary_analytics))
    stmt = apply_search(stmt, [Server.ip, Server.description], normalize_search(search))
    stmt = apply_sort(
        stmt, resolve_sort(sort_by, sort_order, SORT_FIELDS), SORT_COLUMNS, Server.id,
    )
    servers, meta = await paginate(db, stmt, params)
    return paginated(
        [_server_with_analytics(s) for s in servers], meta,
        "Servers retrieved successfully",
    )


@router.get("/stats", dependencies=[Depends(authenticate_token)])
async def server_stats(db: AsyncSession = Depends(get_db)):
    total, max_sum, cur_sum, max_avg, cur_avg = (await db.execute(
        select(
            func.count(Server.id),
            func.sum(Server.max_activity_monitoring),
            func.sum(Server.cur_activity_monitoring),
            func.avg(Server.max_activity_monitoring),
            func.avg(Server.cur_activity_monitoring),
        ),
    )).one()
    active = (await db.execute(
        select(func.count(func.distinct(PrimaryAnalytic.servers_id)))
        .where(PrimaryAnalytic.status == "active", PrimaryAnalytic.servers_id.is_not(None)),
    )).scalar_one()
    return success(
        {
            "total_servers": total,
            "active_servers": active,
            "total_max_capacity": max_sum or 0,
            "total_current_usage": cur_sum or 0,
            "average_max_capacity": round(float(max_avg or 0)),
            "average_current_usage": round(float(cur_avg or 0)),
        },
        "Server statistics retrieved successfully",
    )


@router.get(
    "/check-availability/{type_analytic_id}", dependencies=[Depends(authenticate_token)],
)
async def check_type_availability(type_analytic_id: int, db: AsyncSession = Depends(get_db)):
    type_analytic = await db.get(TypeAnalytic, type_analytic_id)
    if type_analytic is None:
        raise ResourceNotFoundError("Type analytic not found")

    if type_analytic_id != ACTIVITY_MONITORING_TYPE_ID:
        return success(
            {
                "typeAnalyticId": type_analytic_id,
                "typeAnalyticName": type_analytic.name,
                "isSupported": False,
                "availableServers": [],
                "message": (
                    "Only activity_monitoring type is currently supported for server allocation"
                ),
            },
            "Type analytic availability checked",
        )

    servers = list((await db.execute(
        select(Server)
        .options(selectinload(Server.primary_analytics))
        .order_by(Server.id)
        .execution_options(populate_existing=True),
    )).scalars().all())
    available = [
        {
            "id": s.id,
            "ip": s.ip,
            "description": s.description,
            "maxCapacity": s.max_activity_monitoring,
            "currentUsage": s.cur_activity_monitoring,
            "availableCapacity": s.max_activity_monitoring - s.cur_activity_monitoring,
            "totalAnalytics": len(s.primary_analytics),
        }
        for s in servers
        if s.cur_activity_monitoring < s.max_activity_monitoring
    ]
    total_capacity = sum(s.max_activity_monitoring for s in servers)
    total_usage = sum(s.cur_activity_monitoring for s in servers)
    return success(
        {
            "typeAnalyticId": type_analytic_id,
            "typeAnalyticName": type_analytic.name,
            "isSupported": True,
            "totalServers": len(servers),
            "availableServers": len(available),
            "totalCapacity": total_capacity,
            "totalUsage": total_usage,
            "availableCapacity": total_capacity - total_usage,
            "servers": available,
        },
        "Type analytic availability checked successfully",
    )


# ─── Per-IP analytic view ───────────────────────────────────────

def _matches_type(analytic: PrimaryAnalytic, analytic_type: str | None) -> bool:
    if not analytic_type:
        return True
    if analytic_type.isdigit():
        return analytic.type_analytic_id == int(analytic_type)
    return analytic_type.lower() in analytic.type_analytic.name.lower()


def _edge_analytic(analytic: PrimaryAnalytic) -> dict:
    return {
        "id": analytic.id,
        "serverId": analytic.servers_id,
        "name": analytic.name,
        "status": analytic.status,
        "typeAnalytic": {"id": analytic.type_analytic.id, "name": analytic.type_analytic.name},
        "modelHasPolygons": [
            {"id": p.id, "cctvId": p.cctv_id, "name": p.name, "polygon": p.polygon}
            for p in analytic.polygons
        ],
        "modelHasValues": [
            {"id": v.id, "valueName": v.value_name, "value": v.value}
            for v in analytic.values
        ],
        "subAnalytics": [
            {"subTypeAnalytic": {"id": s.sub_type_analytic.id, "name": s.sub_type_analytic.name}}
            for s in analytic.sub_analytics
        ],
    }


@router.get("/ip/{ip}", dependencies=[Depends(require_general_token)])
async def get_server_by_ip(
    ip: str,
    analytic_type: str | None = Query(None, alias="analyticType"),
    cctv_id: str | None = Query(None, alias="cctvId"),
    index: str | None = None,
    db: AsyncSession = Depends(get_db),
):
    """Cameras served by the server at ip, each with its analytics on that server."""
    server = (await db.execute(select(Server).where(Server.ip == ip))).scalar_one_or_none()
    if server is None:
        raise ResourceNotFoundError("Server not found")

    analytics = list((await db.execute(
        select(PrimaryAnalytic)
        .where(PrimaryAnalytic.servers_id == server.id)
        .order_by(PrimaryAnalytic.id),
    )).scalars().all())

    cctv_filter = parse_int(cctv_id) if cctv_id else None
    cameras = {}
    for analytic in analytics:
        for cctv in analytic.cctvs:
            if cctv_filter is None or cctv.id == cctv_filter:
                cameras.setdefault(cctv.id, cctv)

    matching = [a for a in analytics if _matches_type(a, analytic_type)]
    cctv_data = [
        {
            "id": cctv.id,
            "cctv_name": cctv.cctv_name,
            "rtsp": cctv.rtsp,
            "userId": cctv.user_id,
            "primaryAnalytics": [
                _edge_analytic(a) for a in matching
                if any(c.id == cctv.id for c in a.cctvs)
            ],
        }
        for cctv in sorted(cameras.values(), key=lambda c: c.id)
    ]

    selected = cctv_data
    index_number = parse_int(index) if index is not None else None
    if index is not None:
        if index_number is not None and 0 <= index_number < len(cctv_data):
            selected = [cctv_data[index_number]]
        else:
            selected = []

    return success(
        {
            "server": {"id": server.id, "ip": server.ip},
            "cctv": selected,
            "filters": {
                "analyticType": analytic_type or None,
                "cctvId": cctv_filter,
                "index": index_number,
            },
            "totalCctvCount": len(cctv_data),
            "filteredCctvCount": len(selected),
        },
        "Server data with CCTV analytics retrieved successfully",
    )


# ─── Single server ──────────────────────────────────────────────

@router.get("/{server_id}", dependencies=[Depends(require_general_token)])
async def get_server(server_id: int, db: AsyncSession = Depends(get_db)):
    server = await _get_server_or_404(db, server_id)
    return success(_server_with_analytics(server), "Server retrieved successfully")


@router.post(
    "", status_code=status.HTTP_201_CREATED, dependencies=[Depends(authenticate_token)],
)
async def create_server(body: ServerCreate, db: AsyncSession = Depends(get_db)):
    await _ensure_ip_free(db, body.ip)
    server = Server(**body.model_dump())
    db.add(server)
    await _commit_unique_ip(db)
    logger.info(f"Server created: {server.ip}", extra={"server_id": server.id})
    server = await _get_server_or_404(db, server.id)
    return success(_server_with_analytics(server), "Server created successfully")


@router.put("/{server_id}", dependencies=[Depends(authenticate_token)])
async def update_server(
    server_id: int, body: ServerUpdate, db: AsyncSession = Depends(get_db),
):
    server = await _get_server_or_404(db, server_id)
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    if "ip" in changes:
        await _ensure_ip_free(db, changes["ip"], exclude_id=server_id)
    for key, value in changes.items():
        setattr(server, key, value)
    await _commit_unique_ip(db)
    logger.info("Server updated", extra={"server_id": server_id})
    server = await _get_server_or_404(db, server_id)
    return success(_server_with_analytics(server), "Server updated successfully")


@router.delete("/{server_id}", dependencies=[Depends(authenticate_token)])
async def delete_server(server_id: int, db: AsyncSession = Depends(get_db)):
    server = await _get_server_or_404(db, server_id)
    if server.primary_analytics:
        raise BusinessRuleError(
            "Cannot delete server with active primary analytics. "
            "Please remove all related analytics first.",
        )
    await db.delete(server)
    await db.commit()
    logger.info("Server deleted", extra={"server_id": server_id})
    return success(None, "Server deleted successfully")
