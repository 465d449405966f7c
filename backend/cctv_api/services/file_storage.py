"""File Storage — writes uploads under the upload directory and renders their public URLs.

Invariants:
    - Stored paths are relative to settings.upload_dir and always use '/' separators
    - Paths never escape the upload directory (.. segments rejected)
    - delete_file returns True only when a file existed and was removed
    - format_image_url(None or '') is None; otherwise {server_url}/static/{path}

Design Decisions:
    - Writes go through starlette's threadpool: disk IO never blocks the event loop
    - Callers own compensation: when the DB step after a save fails, the route
      deletes the freshly written file
"""

import logging
import os
import uuid
from pathlib import Path, PurePosixPath

from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool

from cctv_api.config import get_settings
from cctv_api.core.errors import ValidationFailedError

logger = logging.getLogger(__name__)


def _upload_root() -> Path:
    return Path(get_settings().upload_dir)


def _resolve(relative_path: str) -> Path:
    rel = PurePosixPath(relative_path)
    if rel.is_absolute() or ".." in rel.parts:
        raise ValueError(f"Refusing to touch path outside uploads: {relative_path}")
    return _upload_root().joinpath(*rel.parts)


def file_extension(filename: str | None, default: str = "jpg") -> str:
    suffix = Path(filename or "").suffix.lstrip(".").lower()
    return suffix or default


def unique_suffix() -> str:
    return uuid.uuid4().hex[:8]


def _write(target: Path, content: bytes) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(content)


async def save_bytes(content: bytes, dir_path: str, filename: str) -> str:
    relative = str(PurePosixPath(dir_path) / filename)
    await run_in_threadpool(_write, _resolve(relative), content)
    logger.info(f"Stored upload {relative}")
    return relative


async def save_upload(
    upload: UploadFile, dir_path: str, filename: str, field: str = "file",
) -> str:
    """Persist an uploaded image, enforcing the image mime type and size limit."""
    content_type = upload.content_type or ""
    if not content_type.startswith("image/"):
        raise ValidationFailedError(
            [{"field": field, "message": "File must be an image"}],
        )
    content = await upload.read()
    if len(content) > get_settings().max_upload_bytes:
        raise ValidationFailedError(
            [{"field": field, "message": "File is too large"}],
        )
    return await save_bytes(content, dir_path, filename)


def _remove(target: Path) -> bool:
    if not target.is_file():
        return False
    os.remove(target)
    return True


async def delete_file(relative_path: str | None) -> bool:
    if not relative_path:
        return False
    try:
        removed = await run_in_threadpool(_remove, _resolve(relative_path))
    except (OSError, ValueError) as e:
        logger.warning(f"Could not delete upload {relative_path}: {e}")
        return False
    if removed:
        logger.info(f"Deleted upload {relative_path}")
    return removed


def format_image_url(relative_path: str | None) -> str | None:
    if not relative_path:
        return None
    base = (get_settings().server_url or "http://localhost:5000").rstrip("/")
    return f"{base}/static/{relative_path}"
