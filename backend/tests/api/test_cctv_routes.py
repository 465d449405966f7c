"""CCTV Routes — multipart create/update with polygon image, listing and delete cleanup."""

from sqlalchemy.ext.asyncio import AsyncSession

from cctv_api.core.errors import DatabaseError

JPEG = b"\xff\xd8\xff\xe0fake-jpeg"


def _stored_path(upload_dir, url: str):
    return upload_dir / url.split("/static/", 1)[1]


async def _create(client, name="Lobby", **fields):
    return await client.post(
        "/cctv",
        data={"cctvName": name, "rtsp": "rtsp://10.0.0.9/stream", **fields},
        files={"polygonImg": ("lobby.jpg", JPEG, "image/jpeg")},
    )


async def test_create_stores_polygon_image(auth_client, upload_dir, user):
    response = await _create(auth_client, typeStreaming="m3u8", isActive="false")

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["cctv_name"] == "Lobby"
    assert data["user_id"] == user.id
    assert data["type_streaming"] == "m3u8"
    assert data["is_active"] is False
    assert f"/static/cctv/user-{user.id}/polygon/cctv-polygon-" in data["polygon_img"]
    assert _stored_path(upload_dir, data["polygon_img"]).read_bytes() == JPEG


async def test_create_defaults_to_active(auth_client):
    response = await _create(auth_client)
    assert response.json()["data"]["is_active"] is True


async def test_create_without_image(auth_client):
    response = await auth_client.post(
        "/cctv", data={"cctvName": "Lobby", "rtsp": "rtsp://10.0.0.9/stream"},
    )
    assert response.status_code == 400
    assert response.json()["errors"] == [
        {"field": "polygonImg", "message": "Polygon image is required"},
    ]


async def test_create_rejects_non_image(auth_client, upload_dir):
    response = await auth_client.post(
        "/cctv",
        data={"cctvName": "Lobby", "rtsp": "rtsp://10.0.0.9/stream"},
        files={"polygonImg": ("notes.txt", b"hello", "text/plain")},
    )
    assert response.status_code == 400
    assert not any(upload_dir.rglob("*.txt"))


async def test_create_removes_image_when_insert_fails(auth_client, upload_dir, monkeypatch):
    async def failing_commit(self):
        raise DatabaseError("Database unavailable", "execute")

    monkeypatch.setattr(AsyncSession, "commit", failing_commit)

    response = await _create(auth_client)

    assert response.status_code == 503
    assert response.json()["code"] == "DATABASE_ERROR"
    assert [p for p in upload_dir.rglob("*") if p.is_file()] == []


async def test_create_short_name_is_validation_error(auth_client):
    response = await _create(auth_client, name="L")
    assert response.status_code == 400
    assert response.json()["message"] == "Validation failed"


async def test_update_replaces_image(auth_client, upload_dir):
    created = (await _create(auth_client)).json()["data"]
    old_file = _stored_path(upload_dir, created["polygon_img"])

    response = await auth_client.put(
        f"/cctv/{created['id']}",
        data={"cctvName": "Main lobby"},
        files={"polygonImg": ("new.png", b"\x89PNG", "image/png")},
    )

    data = response.json()["data"]
    assert data["cctv_name"] == "Main lobby"
    assert data["rtsp"] == "rtsp://10.0.0.9/stream"
    assert data["polygon_img"].endswith(".png")
    assert not old_file.exists()
    assert _stored_path(upload_dir, data["polygon_img"]).exists()


async def test_update_without_changes(auth_client, make_cctv):
    cctv = await make_cctv()
    response = await auth_client.put(f"/cctv/{cctv.id}")
    assert response.status_code == 400
    assert response.json()["message"] == "No data provided for update"


async def test_delete_removes_image(auth_client, upload_dir):
    created = (await _create(auth_client)).json()["data"]
    stored = _stored_path(upload_dir, created["polygon_img"])

    response = await auth_client.delete(f"/cctv/{created['id']}")

    assert response.json()["message"] == "CCTV deleted successfully"
    assert not stored.exists()
    assert (await auth_client.get(f"/cctv/{created['id']}")).status_code == 404


async def test_list_filters_by_type_and_active(
    auth_client, make_type, make_cctv, make_analytic, test_db,
):
    activity = await make_type("activity_monitoring")
    weapon = await make_type("weapon_detection")
    lobby = await make_cctv(name="Lobby")
    gate = await make_cctv(name="Gate")
    parking = await make_cctv(name="Parking")
    parking.is_active = False
    await test_db.commit()
    await make_analytic(activity, [lobby])
    await make_analytic(weapon, [gate, parking])

    by_type = await auth_client.get("/cctv", params={"typeAnalyticIds": f"{weapon.id}"})
    assert sorted(c["cctv_name"] for c in by_type.json()["data"]) == ["Gate", "Parking"]

    inactive = await auth_client.get("/cctv", params={"isActive": "false"})
    assert [c["cctv_name"] for c in inactive.json()["data"]] == ["Parking"]


async def test_cameras_of_primary_analytic(auth_client, make_type, make_cctv, make_analytic):
    lobby = await make_cctv(name="Lobby")
    await make_cctv(name="Gate")
    analytic = await make_analytic(await make_type(), [lobby], name="Desk")

    response = await auth_client.get(f"/cctv/primary-analytics/{analytic.id}")

    data = response.json()["data"]
    assert [c["cctv_name"] for c in data] == ["Lobby"]
    assert data[0]["primary_analytics"][0]["name"] == "Desk"
    assert response.json()["pagination"]["limit"] == 10


async def test_camera_with_its_analytics(auth_client, make_type, make_cctv, make_analytic):
    lobby = await make_cctv()
    await make_analytic(await make_type(), [lobby], name="Desk")

    response = await auth_client.get(f"/cctv/{lobby.id}/analytic")

    assert [a["name"] for a in response.json()["data"]["primary_analytics"]] == ["Desk"]
