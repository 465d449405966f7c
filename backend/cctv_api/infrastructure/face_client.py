"""Resilient Face Client — multipart uploads to the external face-recognition service.

Invariants:
    - Every request carries the configured User-Agent, Accept and optional auth headers
    - Transient failures (connection errors, timeouts, 5xx): at most max_retries
      retries with a fixed delay between attempts
    - Client errors (4xx): immediate failure, no retry
    - All failures mapped to ExternalServiceError (core/errors.py)

Design Decisions:
    - Wrapper over raw httpx.AsyncClient: isolates retry logic from callers
    - Fixed delay rather than exponential backoff: the service sits on the same LAN
      and fails by restarting, not by rate limiting
    - transport injectable so tests drive it with httpx.MockTransport
    - Integration surface only: no route submits faces. Enrollment callers (a
      face-registration endpoint or worker) use get_face_client(); inside this
      service only /health/ready touches it, through health_check()
"""

import asyncio
import logging
from dataclasses import dataclass
from functools import lru_cache

import httpx

from cctv_api.config import get_settings
from cctv_api.core.errors import ExternalServiceError

logger = logging.getLogger(__name__)

SERVICE_NAME = "Face API"


@dataclass(frozen=True)
class FaceImage:
    filename: str
    content: bytes
    content_type: str = "image/jpeg"


class ResilientFaceClient:
    """Wraps httpx.AsyncClient with retry logic, timeouts, and error mapping."""

    def __init__(
        self,
        base_url: str,
        face_endpoint: str,
        timeout_seconds: float = 30.0,
        max_retries: int = 3,
        retry_delay_ms: int = 1000,
        user_agent: str = "AnimalAnalytic/1.0",
        auth_token: str = "",
        api_key: str = "",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.face_endpoint = face_endpoint
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self.retry_delay_ms = retry_delay_ms
        self.transport = transport
        self.headers = {"User-Agent": user_agent, "Accept": "application/json"}
        if auth_token:
            self.headers["Authorization"] = f"Bearer {auth_token}"
        if api_key:
            self.headers["X-API-Key"] = api_key

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout_seconds,
            headers=self.headers,
            transport=self.transport,
        )

    async def submit_faces(
        self,
        images: list[FaceImage],
        registered_face_id: str,
        user_id: int = 1,
        project_id: int = 2,
    ) -> dict:
        """Upload face images for one registered face; returns the service's JSON body."""
        if not images:
            raise ValueError("No image files provided for processing")
        if not registered_face_id:
            raise ValueError("Registered face ID is required for external processing")

        data = {
            "user_id": str(user_id),
            "registered_face_id": registered_face_id,
            "project_id": str(project_id),
        }
        files = [
            ("images", (img.filename or f"image_{i}.jpg", img.content, img.content_type))
            for i, img in enumerate(images)
        ]

        async with self._client() as client:
            for attempt in range(self.max_retries + 1):
                try:
                    response = await client.post(
                        self.face_endpoint, data=data, files=files,
                    )
                except (httpx.TransportError, httpx.TimeoutException) as e:
                    await self._handle_transient(str(e) or type(e).__name__, attempt)
                    continue

                if response.status_code >= 500:
                    await self._handle_transient(
                        f"HTTP {response.status_code}", attempt, response.status_code,
                    )
                    continue
                if response.status_code >= 400:
                    raise ExternalServiceError(
                        _error_message(response), SERVICE_NAME, response.status_code,
                    )
                logger.info(
                    "Face data submitted",
                    extra={"attempt": attempt + 1},
                )
                return _json_or_empty(response)

        # Unreachable: _handle_transient raises on the final attempt
        raise ExternalServiceError("retries exhausted", SERVICE_NAME)

    async def _handle_transient(
        self, reason: str, attempt: int, upstream_status: int | None = None,
    ) -> None:
        if attempt >= self.max_retries:
            raise ExternalServiceError(
                f"failed after {attempt + 1} attempts: {reason}",
                SERVICE_NAME, upstream_status,
            )
        logger.warning(
            f"Face API transient failure ({reason}), retrying in {self.retry_delay_ms}ms",
            extra={"attempt": attempt + 1},
        )
        await asyncio.sleep(self.retry_delay_ms / 1000)

    async def health_check(self) -> bool:
        """True when GET {base}/health answers 2xx."""
        try:
            async with self._client() as client:
                response = await client.get(f"{self.base_url}/health")
            return response.is_success
        except httpx.HTTPError as e:
            logger.warning(f"Face API health check failed: {e}")
            return False


def _json_or_empty(response: httpx.Response) -> dict:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {"data": body}


def _error_message(response: httpx.Response) -> str:
    body = _json_or_empty(response)
    return f"{response.status_code} - {body.get('message') or response.reason_phrase}"


@lru_cache
def get_face_client() -> ResilientFaceClient:
    settings = get_settings()
    return ResilientFaceClient(
        base_url=settings.face_api_base_url,
        face_endpoint=settings.face_api_url,
        timeout_seconds=settings.face_api_timeout_ms / 1000,
        max_retries=settings.face_api_max_retries,
        retry_delay_ms=settings.face_api_retry_delay_ms,
        user_agent=settings.face_api_user_agent,
        auth_token=settings.face_api_auth_token,
        api_key=settings.face_api_key,
    )
