"""Resilient Face Client — retry and error mapping tests over httpx.MockTransport.

Tests cover:
    - Success on first attempt returns the JSON body and sends configured headers
    - 5xx retried up to max_retries, then ExternalServiceError
    - 4xx fails immediately without retry
    - Connection errors retried
    - health_check maps status and transport errors to a bool
"""

import httpx
import pytest

from cctv_api.core.errors import ExternalServiceError
from cctv_api.infrastructure.face_client import FaceImage, ResilientFaceClient

BASE_URL = "http://face.local"
ENDPOINT = "http://face.local/api/face/register"
IMAGES = [FaceImage(filename="front.jpg", content=b"\xff\xd8jpeg")]


def _client(handler, **kwargs) -> ResilientFaceClient:
    return ResilientFaceClient(
        base_url=BASE_URL,
        face_endpoint=ENDPOINT,
        max_retries=kwargs.pop("max_retries", 2),
        retry_delay_ms=0,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


async def test_submit_success_sends_headers_and_fields():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"status": "ok", "faces": 1})

    client = _client(handler, auth_token="tok", api_key="key")
    body = await client.submit_faces(IMAGES, "face-001")

    assert body == {"status": "ok", "faces": 1}
    assert len(seen) == 1
    request = seen[0]
    assert request.headers["Authorization"] == "Bearer tok"
    assert request.headers["X-API-Key"] == "key"
    assert b'name="registered_face_id"' in request.content
    assert b"face-001" in request.content


async def test_server_errors_retried_then_fail():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503)

    client = _client(handler, max_retries=2)
    with pytest.raises(ExternalServiceError) as exc:
        await client.submit_faces(IMAGES, "face-001")

    assert len(calls) == 3
    assert exc.value.upstream_status == 503


async def test_recovers_after_transient_failure():
    responses = iter([httpx.Response(500), httpx.Response(200, json={"ok": True})])

    def handler(request: httpx.Request) -> httpx.Response:
        return next(responses)

    body = await _client(handler).submit_faces(IMAGES, "face-001")
    assert body == {"ok": True}


async def test_client_error_not_retried():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(422, json={"message": "no face detected"})

    with pytest.raises(ExternalServiceError, match="no face detected") as exc:
        await _client(handler).submit_faces(IMAGES, "face-001")

    assert len(calls) == 1
    assert exc.value.upstream_status == 422


async def test_connection_errors_retried():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(ExternalServiceError, match="refused"):
        await _client(handler, max_retries=1).submit_faces(IMAGES, "face-001")
    assert len(calls) == 2


async def test_submit_requires_images_and_face_id():
    client = _client(lambda request: httpx.Response(200))
    with pytest.raises(ValueError):
        await client.submit_faces([], "face-001")
    with pytest.raises(ValueError):
        await client.submit_faces(IMAGES, "")


async def test_health_check():
    def healthy(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/health"
        return httpx.Response(200, json={"status": "ok"})

    def broken(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("down", request=request)

    assert await _client(healthy).health_check() is True
    assert await _client(lambda r: httpx.Response(500)).health_check() is False
    assert await _client(broken).health_check() is False
