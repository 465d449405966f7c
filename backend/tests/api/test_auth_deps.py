"""Auth Dependencies — security token purposes and the flexible cookie-or-token guard.

Exercised through a throwaway FastAPI app so each guard is tested in isolation.
"""

import pytest
from fastapi import Depends, FastAPI
from httpx import ASGITransport, AsyncClient

from cctv_api.api.deps.auth import (
    Caller, flexible_auth, optional_flexible_auth,
    require_admin_token, require_sensitive_token,
)
from cctv_api.api.error_handlers import register_error_handlers
from cctv_api.config import get_settings
from cctv_api.infrastructure.database import get_db
from cctv_api.services.auth_service import AUTH_COOKIE_NAME, create_session_token
from conftest import GENERAL_TOKEN


def _guarded_app(session_factory) -> FastAPI:
    app = FastAPI()
    register_error_handlers(app)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    @app.get("/admin")
    async def admin(caller: Caller = Depends(require_admin_token)):
        return {"method": caller.auth_method, "purpose": caller.security_token.purpose}

    @app.get("/sensitive", dependencies=[Depends(require_sensitive_token)])
    async def sensitive():
        return {"ok": True}

    @app.get("/flexible")
    async def flexible(caller: Caller = Depends(flexible_auth)):
        return {"method": caller.auth_method, "userId": caller.user_id}

    @app.get("/optional")
    async def optional(caller: Caller | None = Depends(optional_flexible_auth)):
        return {"method": caller.auth_method if caller else None}

    return app


@pytest.fixture
async def guarded(test_session_factory, monkeypatch):
    monkeypatch.setattr(get_settings(), "admin_tokens", "admin-a, admin-b")
    monkeypatch.setattr(get_settings(), "sensitive_tokens", "sensitive-a")
    app = _guarded_app(test_session_factory)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


async def test_admin_token_accepted_from_bearer_header(guarded):
    response = await guarded.get("/admin", headers={"authorization": "Bearer admin-b"})
    assert response.json() == {"method": "general_token", "purpose": "admin"}


async def test_tokens_do_not_cross_purposes(guarded):
    response = await guarded.get("/admin", headers={"x-api-token": "sensitive-a"})
    assert response.status_code == 403

    response = await guarded.get("/sensitive", headers={"x-access-token": "sensitive-a"})
    assert response.status_code == 200


async def test_flexible_prefers_cookie_user(guarded, user):
    guarded.cookies.set(AUTH_COOKIE_NAME, create_session_token(user.id, user.email, get_settings()))
    response = await guarded.get("/flexible", headers={"x-security-token": GENERAL_TOKEN})
    assert response.json() == {"method": "user_auth", "userId": user.id}


async def test_flexible_falls_back_to_general_token(guarded):
    guarded.cookies.set(AUTH_COOKIE_NAME, "expired-or-garbage")
    response = await guarded.get("/flexible", headers={"x-security-token": GENERAL_TOKEN})
    assert response.json() == {"method": "general_token", "userId": None}


async def test_flexible_without_credentials(guarded):
    response = await guarded.get("/flexible")
    assert response.status_code == 401
    body = response.json()
    assert body["code"] == "AUTHENTICATION_REQUIRED"
    assert len(body["details"]["acceptedMethods"]) == 2


async def test_optional_flexible_never_blocks(guarded):
    response = await guarded.get("/optional", headers={"x-security-token": "wrong"})
    assert response.status_code == 200
    assert response.json() == {"method": None}
