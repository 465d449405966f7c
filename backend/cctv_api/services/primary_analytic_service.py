"""Primary Analytic Service — create/update/delete an analytic with its server slot and attachments.

Invariants:
    - Every referenced id (type, cameras, polygon/embed cameras, sub types) is checked
      before any write; a failed check raises and nothing is written
    - Capacity is reserved/released on the counters of counter_type_id(type), so
      customer service time consumes activity-monitoring slots
    - A mutation commits exactly once, at the end; any error before that rolls the
      whole unit back (DatabaseSessionManager.session)
    - Cameras without an explicit embed get the default HLS stream URL

Design Decisions:
    - embeds/sub_analytics written through their delete-orphan relationships;
      values/polygons (viewonly, no FK) through explicit DELETE + add
    - Results re-read with populate_existing: the capacity UPDATEs bypass the
      identity map, and selectin collections must reflect the new rows
"""

import logging

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from cctv_api.core.errors import BusinessRuleError, ResourceNotFoundError
from cctv_api.core.server_selection import (
    ACTIVITY_MONITORING_TYPE_ID, AUTO_SELECT_TYPE_IDS, capacity_status, counter_type_id,
)
from cctv_api.models import (
    PRIMARY_MODEL_TYPE, Cctv, ModelHasEmbed, ModelHasPolygon, ModelHasValue,
    PrimaryAnalytic, Server, SubAnalytic, SubTypeAnalytic, TypeAnalytic,
)
from cctv_api.schemas.primary_analytic import (
    EmbedInput, PolygonInput, PrimaryAnalyticCreate, PrimaryAnalyticUpdate,
    SubAnalyticInput, ValueInput,
)
from cctv_api.services import server_capacity

logger = logging.getLogger(__name__)

DEFAULT_SERVER_ID = 1
DEFAULT_EMBED_TEMPLATE = "https://streamingcctv.gerbangdata.co.id/hls/{cctv_id}-{analytic_id}.m3u8"


def default_embed_url(cctv_id: int, analytic_id: int) -> str:
    return DEFAULT_EMBED_TEMPLATE.format(cctv_id=cctv_id, analytic_id=analytic_id)


async def load_primary_analytic(db: AsyncSession, analytic_id: int) -> PrimaryAnalytic | None:
    result = await db.execute(
        select(PrimaryAnalytic)
        .where(PrimaryAnalytic.id == analytic_id)
        .execution_options(populate_existing=True),
    )
    return result.scalar_one_or_none()


async def get_primary_analytic_or_404(db: AsyncSession, analytic_id: int) -> PrimaryAnalytic:
    analytic = await load_primary_analytic(db, analytic_id)
    if analytic is None:
        raise ResourceNotFoundError("Primary analytic not found")
    return analytic


# ─── Reference checks ───────────────────────────────────────────

async def _count_existing(db: AsyncSession, column, ids: set[int]) -> int:
    if not ids:
        return 0
    return (await db.execute(
        select(func.count()).where(column.in_(ids)),
    )).scalar_one()


async def _load_cctvs(db: AsyncSession, cctv_ids: list[int]) -> list[Cctv]:
    unique_ids = set(cctv_ids)
    cctvs = (await db.execute(
        select(Cctv).where(Cctv.id.in_(unique_ids)).order_by(Cctv.id),
    )).scalars().all()
    if len(cctvs) != len(unique_ids):
        raise BusinessRuleError("One or more CCTV IDs are invalid")
    return list(cctvs)


async def _get_type_or_404(db: AsyncSession, type_analytic_id: int) -> TypeAnalytic:
    type_analytic = await db.get(TypeAnalytic, type_analytic_id)
    if type_analytic is None:
        raise ResourceNotFoundError("Type analytic not found")
    return type_analytic


async def _validate_attachments(
    db: AsyncSession,
    polygons: list[PolygonInput] | None,
    embeds: list[EmbedInput] | None,
    sub_analytics: list[SubAnalyticInput] | None,
) -> None:
    checks = (
        (polygons, lambda p: p.cctv_id, Cctv.id, "One or more CCTV IDs in polygons are invalid"),
        (embeds, lambda e: e.cctv_id, Cctv.id, "One or more CCTV IDs in embeds are invalid"),
        (
            sub_analytics, lambda s: s.sub_type_analytic_id, SubTypeAnalytic.id,
            "One or more sub type analytic IDs are invalid",
        ),
    )
    for items, key, column, message in checks:
        if not items:
            continue
        ids = {key(item) for item in items}
        if await _count_existing(db, column, ids) != len(ids):
            raise BusinessRuleError(message)


# ─── Server resolution ──────────────────────────────────────────

async def _resolve_create_server(
    db: AsyncSession, body: PrimaryAnalyticCreate, type_analytic: TypeAnalytic,
) -> int:
    if not body.is_server:
        return DEFAULT_SERVER_ID

    counter_type = counter_type_id(type_analytic.id)
    if body.server_id:
        server = await db.get(Server, body.server_id)
        if server is None:
            raise ResourceNotFoundError("Specified server not found")
        if not await server_capacity.check_capacity(db, server.id, counter_type):
            raise BusinessRuleError(
                f"Server {server.ip} does not have enough capacity for this analytic type",
            )
        return server.id

    if type_analytic.id not in AUTO_SELECT_TYPE_IDS:
        raise BusinessRuleError(
            "Auto server selection is only supported for activity monitoring "
            "and customer service time analytics",
        )
    best = await server_capacity.select_best_server(db, counter_type)
    if best is None:
        if type_analytic.id == ACTIVITY_MONITORING_TYPE_ID:
            raise BusinessRuleError(
                f"No servers available with sufficient capacity for {type_analytic.name}",
            )
        raise BusinessRuleError("No servers available with sufficient capacity for analytics")
    return best.id


async def _resolve_update_server(
    db: AsyncSession,
    analytic: PrimaryAnalytic,
    requested_server_id: int | None,
    new_type_id: int,
) -> int:
    current_id = analytic.servers_id
    counter_type = counter_type_id(new_type_id)

    if requested_server_id:
        server = await db.get(Server, requested_server_id)
        if server is None:
            raise ResourceNotFoundError("Specified server not found")
        if server.id != current_id and not await server_capacity.check_capacity(
            db, server.id, counter_type,
        ):
            raise BusinessRuleError(
                f"Server {server.ip} does not have enough capacity for this analytic type",
            )
        return server.id

    type_changed = counter_type != counter_type_id(analytic.type_analytic_id)
    if type_changed and current_id and not await server_capacity.check_capacity(
        db, current_id, counter_type,
    ):
        best = await server_capacity.select_best_server(
            db, counter_type, exclude_server_ids=[current_id],
        )
        if best is None:
            raise BusinessRuleError(
                "No servers available with sufficient capacity for the new analytic type",
            )
        return best.id
    return current_id or DEFAULT_SERVER_ID


async def _reserve_or_fail(db: AsyncSession, server_id: int, type_analytic_id: int) -> None:
    if not await server_capacity.reserve_capacity(
        db, server_id, counter_type_id(type_analytic_id),
    ):
        raise BusinessRuleError("Failed to reserve server capacity")


# ─── Attachment writers ─────────────────────────────────────────

async def _replace_values(db: AsyncSession, analytic_id: int, values: list[ValueInput]) -> None:
    await db.execute(delete(ModelHasValue).where(
        ModelHasValue.model_id == analytic_id,
        ModelHasValue.model_type == PRIMARY_MODEL_TYPE,
    ))
    db.add_all([
        ModelHasValue(
            model_id=analytic_id, model_type=PRIMARY_MODEL_TYPE,
            value_name=v.value_name, value=v.value,
        )
        for v in values
    ])


async def _replace_polygons(
    db: AsyncSession, analytic_id: int, polygons: list[PolygonInput],
) -> None:
    await db.execute(delete(ModelHasPolygon).where(
        ModelHasPolygon.model_id == analytic_id,
        ModelHasPolygon.model_type == PRIMARY_MODEL_TYPE,
    ))
    db.add_all([
        ModelHasPolygon(
            model_id=analytic_id, model_type=PRIMARY_MODEL_TYPE,
            cctv_id=p.cctv_id, name=p.name,
            polygon=[point.model_dump() for point in p.polygon],
        )
        for p in polygons
    ])


def _build_embeds(
    analytic_id: int, embeds: list[EmbedInput] | None, cctv_ids: list[int],
) -> list[ModelHasEmbed]:
    if embeds:
        return [ModelHasEmbed(cctv_id=e.cctv_id, embed=e.embed) for e in embeds]
    return [
        ModelHasEmbed(cctv_id=cctv_id, embed=default_embed_url(cctv_id, analytic_id))
        for cctv_id in cctv_ids
    ]


def _build_sub_analytics(items: list[SubAnalyticInput]) -> list[SubAnalytic]:
    return [SubAnalytic(sub_type_analytic_id=s.sub_type_analytic_id) for s in items]


# ─── Operations ─────────────────────────────────────────────────

async def create_primary_analytic(
    db: AsyncSession, body: PrimaryAnalyticCreate,
) -> PrimaryAnalytic:
    fields = body.primary_analytics
    type_analytic = await _get_type_or_404(db, fields.type_analytic_id)
    cctvs = await _load_cctvs(db, body.cctv_id)
    server_id = await _resolve_create_server(db, body, type_analytic)
    await _validate_attachments(
        db, fields.model_has_polygons, fields.model_has_embeds, fields.sub_analytics,
    )

    if body.is_server:
        await _reserve_or_fail(db, server_id, type_analytic.id)

    analytic = PrimaryAnalytic(
        servers_id=server_id,
        type_analytic_id=type_analytic.id,
        name=fields.name,
        description=fields.description,
        cctvs=cctvs,
        sub_analytics=_build_sub_analytics(fields.sub_analytics or []),
        embeds=[],
    )
    db.add(analytic)
    await db.flush()

    analytic.embeds = _build_embeds(
        analytic.id, fields.model_has_embeds, [c.id for c in cctvs],
    )
    if fields.model_has_values:
        await _replace_values(db, analytic.id, fields.model_has_values)
    if fields.model_has_polygons:
        await _replace_polygons(db, analytic.id, fields.model_has_polygons)

    await db.commit()
    logger.info(
        f"Primary analytic '{analytic.name}' created",
        extra={"primary_analytic_id": analytic.id, "server_id": server_id},
    )
    return await get_primary_analytic_or_404(db, analytic.id)


async def update_primary_analytic(
    db: AsyncSession, analytic_id: int, body: PrimaryAnalyticUpdate,
) -> PrimaryAnalytic:
    analytic = await get_primary_analytic_or_404(db, analytic_id)
    fields = body.primary_analytics
    old_type_id = analytic.type_analytic_id
    new_type_id = fields.type_analytic_id or old_type_id

    server_id = await _resolve_update_server(db, analytic, body.server_id, new_type_id)
    cctvs = await _load_cctvs(db, body.cctv_id) if body.cctv_id else None
    if fields.type_analytic_id:
        await _get_type_or_404(db, fields.type_analytic_id)
    await _validate_attachments(
        db, fields.model_has_polygons, fields.model_has_embeds, fields.sub_analytics,
    )

    counters_move = (
        server_id != analytic.servers_id
        or counter_type_id(new_type_id) != counter_type_id(old_type_id)
    )
    if counters_move and analytic.servers_id:
        await server_capacity.release_capacity(
            db, analytic.servers_id, counter_type_id(old_type_id),
        )
        await _reserve_or_fail(db, server_id, new_type_id)

    analytic.servers_id = server_id
    analytic.type_analytic_id = new_type_id
    if fields.name:
        analytic.name = fields.name
    if fields.description is not None:
        analytic.description = fields.description
    if cctvs is not None:
        analytic.cctvs = cctvs

    current_cctv_ids = [c.id for c in analytic.cctvs]
    if fields.model_has_embeds is not None:
        analytic.embeds = _build_embeds(analytic.id, fields.model_has_embeds, current_cctv_ids)
    elif cctvs is not None:
        analytic.embeds = _build_embeds(analytic.id, None, current_cctv_ids)
    if fields.sub_analytics is not None:
        analytic.sub_analytics = _build_sub_analytics(fields.sub_analytics)
    if fields.model_has_values is not None:
        await _replace_values(db, analytic.id, fields.model_has_values)
    if fields.model_has_polygons is not None:
        await _replace_polygons(db, analytic.id, fields.model_has_polygons)

    await db.commit()
    logger.info(
        f"Primary analytic {analytic_id} updated",
        extra={"primary_analytic_id": analytic_id, "server_id": server_id},
    )
    return await get_primary_analytic_or_404(db, analytic_id)


async def delete_primary_analytic(db: AsyncSession, analytic_id: int) -> None:
    analytic = await get_primary_analytic_or_404(db, analytic_id)
    if analytic.servers_id:
        await server_capacity.release_capacity(
            db, analytic.servers_id, counter_type_id(analytic.type_analytic_id),
        )
    await db.execute(delete(ModelHasValue).where(
        ModelHasValue.model_id == analytic_id,
        ModelHasValue.model_type == PRIMARY_MODEL_TYPE,
    ))
    await db.execute(delete(ModelHasPolygon).where(
        ModelHasPolygon.model_id == analytic_id,
        ModelHasPolygon.model_type == PRIMARY_MODEL_TYPE,
    ))
    await db.delete(analytic)
    await db.commit()
    logger.info(
        f"Primary analytic {analytic_id} deleted",
        extra={"primary_analytic_id": analytic_id},
    )


async def server_capacity_status(db: AsyncSession) -> list[dict]:
    """Capacity snapshot of every server, with analytics counted per type."""
    servers = (await db.execute(select(Server.id).order_by(Server.id))).scalars().all()
    statuses = []
    for server_id in servers:
        details = await server_capacity.server_details(db, server_id)
        max_capacity = details["max_activity_monitoring"]
        current = details["cur_activity_monitoring"]
        statuses.append({
            "id": details["id"],
            "ip": details["ip"],
            "description": details["description"],
            "max_activity_monitoring": max_capacity,
            "cur_activity_monitoring": current,
            "availableCapacity": details["availableCapacity"],
            "utilizationPercentage": (
                f"{details['utilizationPercentage']:.2f}" if max_capacity > 0 else 0
            ),
            "totalAnalytics": details["totalAnalytics"],
            "analyticsByType": details["analyticsByType"],
            "status": capacity_status(max_capacity, current),
        })
    return statuses
