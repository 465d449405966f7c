"""Multipart Helpers — stored_upload keeps the file on success and removes it when the block fails."""

import io

import pytest
from starlette.datastructures import Headers, UploadFile

from cctv_api.api.uploads import stored_upload

JPEG = b"\xff\xd8\xff\xe0fake-jpeg"


def _image_upload() -> UploadFile:
    return UploadFile(
        file=io.BytesIO(JPEG), filename="gate.jpg",
        headers=Headers({"content-type": "image/jpeg"}),
    )


async def test_keeps_file_when_block_succeeds(upload_dir):
    async with stored_upload(_image_upload(), "cctv/user-1/polygon", "cctv-polygon", "polygonImg") as path:
        assert path.startswith("cctv/user-1/polygon/cctv-polygon-")
        assert path.endswith(".jpg")

    assert (upload_dir / path).read_bytes() == JPEG


async def test_removes_file_and_reraises_when_block_fails(upload_dir):
    written = []

    with pytest.raises(RuntimeError, match="insert failed"):
        async with stored_upload(_image_upload(), "cctv/user-1/polygon", "cctv-polygon", "polygonImg") as path:
            written.append(path)
            assert (upload_dir / path).is_file()
            raise RuntimeError("insert failed")

    assert len(written) == 1
    assert not (upload_dir / written[0]).exists()
    assert [p for p in upload_dir.rglob("*") if p.is_file()] == []


async def test_without_upload_yields_none(upload_dir):
    async with stored_upload(None, "cctv/user-1/polygon", "cctv-polygon", "polygonImg") as path:
        assert path is None
