"""Milvus Vector Store — face-embedding collections behind an async-friendly adapter.

Invariants:
    - Every collection-scoped call first checks the collection exists;
      a missing collection raises VectorStoreError with http_status 404
    - Reads load the collection before querying (Milvus rejects queries on unloaded collections)
    - Records are addressed by their registered_face_id scalar field
    - Client created lazily on first use; startup never blocks on Milvus

Design Decisions:
    - pymilvus MilvusClient is synchronous: every call runs in Starlette's threadpool
      so the event loop is never blocked by gRPC round-trips
    - Filter literals built with json.dumps: quotes in ids cannot break out of the expression
"""

import json
import logging
from functools import lru_cache
from typing import Any

from pymilvus import MilvusClient
from pymilvus.exceptions import MilvusException
from starlette.concurrency import run_in_threadpool

from cctv_api.config import get_settings
from cctv_api.core.errors import VectorStoreError

logger = logging.getLogger(__name__)


def face_id_filter(registered_face_id: str) -> str:
    return f"registered_face_id == {json.dumps(str(registered_face_id))}"


class MilvusVectorStore:
    """Collection CRUD over a lazily connected MilvusClient."""

    def __init__(self, uri: str, user: str = "", password: str = ""):
        self._uri = uri
        self._user = user
        self._password = password
        self._client: MilvusClient | None = None

    def _get_client(self) -> MilvusClient:
        if self._client is None:
            logger.info(f"Connecting to Milvus at {self._uri}")
            self._client = MilvusClient(
                uri=self._uri, user=self._user, password=self._password,
            )
        return self._client

    async def _call(self, method: str, *args: Any, **kwargs: Any) -> Any:
        def invoke():
            return getattr(self._get_client(), method)(*args, **kwargs)

        try:
            return await run_in_threadpool(invoke)
        except MilvusException as e:
            logger.error(f"Milvus {method} failed: {e}")
            raise VectorStoreError(str(getattr(e, "message", e)))

    async def _require_collection(self, name: str, load: bool = True) -> None:
        if not await self._call("has_collection", collection_name=name):
            raise VectorStoreError(f"Collection '{name}' does not exist", http_status=404)
        if load:
            await self._call("load_collection", collection_name=name)

    async def list_collections(self) -> list[str]:
        return list(await self._call("list_collections") or [])

    async def query_all(self, name: str, limit: int = 100) -> list[dict]:
        await self._require_collection(name)
        rows = await self._call(
            "query", collection_name=name, filter="", output_fields=["*"], limit=limit,
        )
        return [dict(row) for row in rows]

    async def get_by_face_id(self, name: str, registered_face_id: str) -> dict | None:
        await self._require_collection(name)
        rows = await self._call(
            "query", collection_name=name,
            filter=face_id_filter(registered_face_id),
            output_fields=["*"], limit=1,
        )
        return dict(rows[0]) if rows else None

    async def insert(self, name: str, record: dict) -> None:
        await self._require_collection(name)
        await self._call("insert", collection_name=name, data=[record])

    async def delete_by_face_id(self, name: str, registered_face_id: str) -> int:
        await self._require_collection(name, load=False)
        result = await self._call(
            "delete", collection_name=name, filter=face_id_filter(registered_face_id),
        )
        if isinstance(result, dict):
            return int(result.get("delete_count", 1))
        return len(result) if isinstance(result, list) else 1

    async def describe(self, name: str) -> dict:
        await self._require_collection(name, load=False)
        stats = await self._call("get_collection_stats", collection_name=name)
        schema = await self._call("describe_collection", collection_name=name)
        return {"stats": stats, "schema": schema}


@lru_cache
def get_vector_store() -> MilvusVectorStore:
    settings = get_settings()
    return MilvusVectorStore(
        uri=settings.milvus_uri,
        user=settings.milvus_username,
        password=settings.milvus_password,
    )
