"""Seed Data — idempotent insert of the analytic type taxonomy.

Invariants:
    - Running twice leaves exactly one row per name
    - Ids follow list order on an empty table: activity_monitoring must be 1 and
      customer_service_time 2 (server auto-selection keys on those ids)

Usage:
    python -m cctv_api.seed
"""

import asyncio
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cctv_api.config import get_settings
from cctv_api.infrastructure import database
from cctv_api.infrastructure.database import init_db
from cctv_api.infrastructure.observability import setup_logging
from cctv_api.models import TypeAnalytic

logger = logging.getLogger(__name__)

TYPE_ANALYTICS = (
    "activity_monitoring",
    "customer_service_time",
    "weapon_detection",
    "animal_population",
    "nomor_lambung",
    "ppe_detection",
)


async def seed_type_analytics(db: AsyncSession) -> list[str]:
    """Insert missing type analytics; returns the names that were created."""
    existing = set((await db.execute(select(TypeAnalytic.name))).scalars().all())
    created = [name for name in TYPE_ANALYTICS if name not in existing]
    for name in created:
        db.add(TypeAnalytic(name=name))
    await db.commit()
    logger.info(f"Seeded {len(created)} type analytics ({len(existing)} already present)")
    return created


async def main() -> None:
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    init_db(settings.database_url)
    try:
        async with database.db_manager.session() as db:
            await seed_type_analytics(db)
    finally:
        await database.db_manager.dispose()


if __name__ == "__main__":
    asyncio.run(main())
