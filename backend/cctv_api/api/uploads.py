"""Multipart Helpers — split a form into text fields and one image, and undo the write on failure.

Invariants:
    - Text fields come back as a plain dict (first value wins for repeated keys)
    - A file part with no filename and no content counts as "no file"
    - stored_upload deletes the freshly written file when the block raises,
      then re-raises unchanged
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import Request
from starlette.datastructures import UploadFile

from cctv_api.core.jakarta_time import now_utc
from cctv_api.services.file_storage import delete_file, file_extension, save_upload, unique_suffix

logger = logging.getLogger(__name__)


async def read_multipart(request: Request, file_field: str) -> tuple[dict, UploadFile | None]:
    form = await request.form()
    fields: dict = {}
    upload = None
    for key, value in form.multi_items():
        if isinstance(value, UploadFile):
            if key == file_field and upload is None and (value.filename or value.size):
                upload = value
            continue
        fields.setdefault(key, value)
    return fields, upload


def upload_filename(prefix: str, upload: UploadFile) -> str:
    """<prefix>-<YYYYMMDD-HHMMSS>-<suffix>.<ext>; the suffix keeps same-second uploads apart."""
    stamp = now_utc().strftime("%Y%m%d-%H%M%S")
    return f"{prefix}-{stamp}-{unique_suffix()}.{file_extension(upload.filename)}"


@asynccontextmanager
async def stored_upload(
    upload: UploadFile | None, dir_path: str, prefix: str, field: str,
) -> AsyncIterator[str | None]:
    """Save upload (if any) and yield its relative path; remove it again if the block fails."""
    if upload is None:
        yield None
        return
    path = await save_upload(upload, dir_path, upload_filename(prefix, upload), field)
    try:
        yield path
    except Exception:
        logger.warning(f"Removing upload {path} after failed write")
        await delete_file(path)
        raise
