"""Root conftest — environment, async DB, test client and row factories.

Invariants:
    - Settings come from the environment set here, before cctv_api is imported
      (get_settings() is cached for the whole run)
    - Every test gets a fresh in-memory SQLite database
    - get_db dependency overridden to use the test DB; db_manager patched for
      code that opens sessions directly (health probe)
    - Uploads land in the test's tmp_path
    - Rate limiter windows are cleared between tests

Design Decisions:
    - SQLite in-memory: fast, no external dependency, sufficient for route tests
      (PostgreSQL-specific features not exercised here)
    - Factories are fixtures returning async callables so a test builds only the
      rows it needs
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ["GENERAL_TOKENS"] = "general-test-token"
os.environ["REGISTRATION_TOKENS"] = "registration-test-token"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_FORMAT"] = "text"

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import select  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession, async_sessionmaker, create_async_engine,
)

import cctv_api.infrastructure.database as db_module  # noqa: E402
from cctv_api.api.rate_limit import login_limiter, register_limiter  # noqa: E402
from cctv_api.config import get_settings  # noqa: E402
from cctv_api.db.base import Base  # noqa: E402
from cctv_api.infrastructure.database import DatabaseSessionManager, get_db  # noqa: E402
from cctv_api.main import app  # noqa: E402
from cctv_api.models import Cctv, PrimaryAnalytic, Server, TypeAnalytic, User  # noqa: E402
from cctv_api.services.auth_service import (  # noqa: E402
    AUTH_COOKIE_NAME, create_session_token, hash_password,
)

GENERAL_TOKEN = "general-test-token"
REGISTRATION_TOKEN = "registration-test-token"
USER_EMAIL = "operator@example.com"
USER_PASSWORD = "secret123"


@pytest.fixture(autouse=True)
def reset_rate_limits():
    register_limiter.clear()
    login_limiter.clear()
    yield


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(get_settings(), "upload_dir", str(tmp_path))
    return tmp_path


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
async def client(test_engine, test_session_factory, upload_dir):
    """FastAPI test client with DB dependency overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    # Patch db_manager for code that opens sessions directly
    saved_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = saved_manager


@pytest.fixture
def general_headers():
    return {"x-security-token": GENERAL_TOKEN}


@pytest.fixture
def registration_headers():
    return {"x-security-token": REGISTRATION_TOKEN}


# ─── Row factories ──────────────────────────────────────────────

@pytest.fixture
async def user(test_db):
    account = User(email=USER_EMAIL, password=hash_password(USER_PASSWORD, rounds=4))
    test_db.add(account)
    await test_db.commit()
    await test_db.refresh(account)
    return account


@pytest.fixture
async def auth_client(client, user):
    """The test client carrying a valid session cookie for `user`."""
    token = create_session_token(user.id, user.email, get_settings())
    client.cookies.set(AUTH_COOKIE_NAME, token)
    return client


@pytest.fixture
def make_server(test_db):
    async def _make(ip="10.0.0.1", max_capacity=5, current=0, description=None):
        server = Server(
            ip=ip,
            description=description,
            max_activity_monitoring=max_capacity,
            cur_activity_monitoring=current,
        )
        test_db.add(server)
        await test_db.commit()
        return server
    return _make


@pytest.fixture
def make_type(test_db):
    async def _make(name="activity_monitoring"):
        type_analytic = TypeAnalytic(name=name)
        test_db.add(type_analytic)
        await test_db.commit()
        return type_analytic
    return _make


@pytest.fixture
def make_cctv(test_db, user):
    async def _make(name="Lobby", polygon_img="cctv/user-1/polygon/lobby.jpg"):
        cctv = Cctv(
            user_id=user.id,
            cctv_name=name,
            rtsp="rtsp://10.0.0.9/stream",
            is_active=True,
            polygon_img=polygon_img,
        )
        test_db.add(cctv)
        await test_db.commit()
        return cctv
    return _make


@pytest.fixture
def make_analytic(test_db):
    async def _make(type_analytic, cctvs, server=None, name="Front desk", status="active"):
        analytic = PrimaryAnalytic(
            servers_id=server.id if server else None,
            type_analytic_id=type_analytic.id,
            name=name,
            status=status,
            cctvs=list(cctvs),
        )
        test_db.add(analytic)
        await test_db.commit()
        result = await test_db.execute(
            select(PrimaryAnalytic)
            .where(PrimaryAnalytic.id == analytic.id)
            .execution_options(populate_existing=True),
        )
        return result.scalar_one()
    return _make
