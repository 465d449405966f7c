"""Health & Readiness Probes — liveness always up, readiness keyed on the database."""

import httpx
import pytest

import cctv_api.infrastructure.database as db_module
from cctv_api.infrastructure.face_client import ResilientFaceClient, get_face_client
from cctv_api.main import app


def _face_client(status_code: int) -> ResilientFaceClient:
    return ResilientFaceClient(
        base_url="http://face.test",
        face_endpoint="http://face.test/face",
        transport=httpx.MockTransport(lambda request: httpx.Response(status_code)),
    )


@pytest.fixture
def face_service_down(client):
    app.dependency_overrides[get_face_client] = lambda: _face_client(503)


@pytest.fixture
def face_service_up(client):
    app.dependency_overrides[get_face_client] = lambda: _face_client(200)


async def test_liveness(client):
    response = await client.get("/health/")
    assert response.status_code == 200
    assert response.json() == {
        "status": "healthy", "service": "cctv-analytics-api", "version": "1.0.0",
    }


async def test_ready_with_database(client, face_service_up):
    response = await client.get("/health/ready")
    assert response.status_code == 200
    assert response.json() == {
        "status": "ready", "checks": {"database": "healthy", "faceService": "healthy"},
    }


async def test_face_service_does_not_decide_readiness(client, face_service_down):
    response = await client.get("/health/ready")
    assert response.status_code == 200
    assert response.json()["checks"]["faceService"] == "unavailable"


async def test_not_ready_without_database(client, face_service_up, monkeypatch):
    monkeypatch.setattr(db_module, "db_manager", None)

    response = await client.get("/health/ready")

    assert response.status_code == 503
    assert response.json()["reason"] == "database_unavailable"
