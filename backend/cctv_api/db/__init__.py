"""Database Layer — declarative base, timestamp mixin and list-query builders.

Invariants:
    - All sessions are async (AsyncSession)
    - Query builders return new Select objects (no mutation of caller statements)

Design Decisions:
    - asyncpg driver for PostgreSQL, aiosqlite for tests
"""
