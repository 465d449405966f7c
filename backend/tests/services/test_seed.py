"""Seed Data — tests for idempotent type analytic seeding."""

from sqlalchemy import select

from cctv_api.models import TypeAnalytic
from cctv_api.seed import TYPE_ANALYTICS, seed_type_analytics


async def test_seed_creates_types_in_order(test_db):
    created = await seed_type_analytics(test_db)

    assert created == list(TYPE_ANALYTICS)
    rows = (await test_db.execute(select(TypeAnalytic).order_by(TypeAnalytic.id))).scalars().all()
    assert [(t.id, t.name) for t in rows[:2]] == [
        (1, "activity_monitoring"), (2, "customer_service_time"),
    ]


async def test_seed_twice_is_idempotent(test_db):
    await seed_type_analytics(test_db)
    assert await seed_type_analytics(test_db) == []

    names = (await test_db.execute(select(TypeAnalytic.name))).scalars().all()
    assert sorted(names) == sorted(TYPE_ANALYTICS)


async def test_seed_fills_only_missing(test_db, make_type):
    await make_type("weapon_detection")

    created = await seed_type_analytics(test_db)

    assert "weapon_detection" not in created
    assert len(created) == len(TYPE_ANALYTICS) - 1
