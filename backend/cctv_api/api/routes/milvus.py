"""Milvus Routes — browse and edit face-embedding collections.

Invariants:
    - Open to anyone; a session user or general token, when present, is only logged
    - A missing collection → 404 "Collection '<name>' does not exist" (raised by the store)
    - limit is 1-1000 (default 100)
    - Records are addressed by registered_face_id
"""

import logging

from fastapi import APIRouter, Body, Depends, status

from cctv_api.api.deps.auth import Caller, optional_flexible_auth
from cctv_api.core.envelope import success
from cctv_api.core.errors import BusinessRuleError, ResourceNotFoundError
from cctv_api.core.listing import parse_int
from cctv_api.infrastructure.vector_store import MilvusVectorStore, get_vector_store
from cctv_api.schemas.milvus import FaceRecordCreate

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/milvus", tags=["milvus"])

DEFAULT_LIMIT = 100
MAX_LIMIT = 1000


def _parse_limit(raw: str | None) -> int:
    if raw is None or raw == "":
        return DEFAULT_LIMIT
    limit = parse_int(raw) if raw.strip().isdigit() else None
    if limit is None or not 1 <= limit <= MAX_LIMIT:
        raise BusinessRuleError(f"Limit must be a number between 1 and {MAX_LIMIT}")
    return limit


@router.get("/collections")
async def list_collections(
    caller: Caller | None = Depends(optional_flexible_auth),
    store: MilvusVectorStore = Depends(get_vector_store),
):
    collections = await store.list_collections()
    return success(collections, f"Retrieved {len(collections)} collections")


@router.get("/{collection}/data")
async def list_collection_data(
    collection: str,
    limit: str | None = None,
    caller: Caller | None = Depends(optional_flexible_auth),
    store: MilvusVectorStore = Depends(get_vector_store),
):
    rows = await store.query_all(collection, _parse_limit(limit))
    data = [{"id": row.get("id", row.get("_id")), "data": row} for row in rows]
    return success(
        data,
        f"Retrieved {len(rows)} records from collection '{collection}'",
        collection=collection,
        totalRecords=len(data),
    )


@router.post("/{collection}/data", status_code=status.HTTP_201_CREATED)
async def create_collection_data(
    collection: str,
    body: dict = Body(...),
    caller: Caller | None = Depends(optional_flexible_auth),
    store: MilvusVectorStore = Depends(get_vector_store),
):
    record = FaceRecordCreate.from_body(body)
    await store.insert(collection, record.to_record())
    logger.info(
        f"Inserted face {record.registered_face_id}",
        extra={"collection": collection, "auth_method": caller.auth_method if caller else None},
    )
    return success(
        {"insertedId": record.registered_face_id},
        f"Successfully inserted data with registered_face_id "
        f"'{record.registered_face_id}' into collection '{collection}'",
        collection=collection,
    )


@router.get("/{collection}/data/{face_id}")
async def get_collection_record(
    collection: str,
    face_id: str,
    caller: Caller | None = Depends(optional_flexible_auth),
    store: MilvusVectorStore = Depends(get_vector_store),
):
    row = await store.get_by_face_id(collection, face_id)
    if row is None:
        raise ResourceNotFoundError(
            f"Data with registered_face_id '{face_id}' not found in collection '{collection}'",
        )
    return success(
        {"id": row.get("id", row.get("_id")), "data": row},
        f"Retrieved data with registered_face_id '{face_id}' from collection '{collection}'",
        collection=collection,
    )


@router.delete("/{collection}/data/{face_id}")
async def delete_collection_record(
    collection: str,
    face_id: str,
    caller: Caller | None = Depends(optional_flexible_auth),
    store: MilvusVectorStore = Depends(get_vector_store),
):
    if await store.get_by_face_id(collection, face_id) is None:
        raise ResourceNotFoundError(
            f"Data with registered_face_id '{face_id}' not found in collection '{collection}'",
        )
    deleted = await store.delete_by_face_id(collection, face_id)
    logger.info(f"Deleted face {face_id}", extra={"collection": collection})
    return success(
        {"deletedCount": deleted},
        f"Successfully deleted data with registered_face_id '{face_id}' "
        f"from collection '{collection}'",
        collection=collection,
    )


@router.get("/{collection}/info")
async def collection_info(
    collection: str,
    caller: Caller | None = Depends(optional_flexible_auth),
    store: MilvusVectorStore = Depends(get_vector_store),
):
    info = await store.describe(collection)
    return success(
        info, f"Retrieved information for collection '{collection}'", collection=collection,
    )
