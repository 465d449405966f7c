"""Primary Analytic Routes — create/update/delete through the API and capacity overview."""

from sqlalchemy import select

from cctv_api.models import Server


def _create_body(type_id, cctv_ids, **extra):
    return {
        "cctvId": cctv_ids,
        "primaryAnalytics": {
            "typeAnalyticId": type_id,
            "name": "Front desk",
            "modelHasValues": [{"valueName": "threshold", "value": "0.6"}],
            "modelHasPolygons": [{
                "cctvId": cctv_ids[0],
                "name": "counter",
                "polygon": [{"x": 0.1, "y": 0.1}, {"x": 0.9, "y": 0.8}],
            }],
        },
        **extra,
    }


async def test_create_reserves_slot_and_returns_detail(
    auth_client, test_db, make_server, make_type, make_cctv,
):
    server = await make_server(max_capacity=2)
    activity = await make_type()
    cctv = await make_cctv()

    response = await auth_client.post("/analytic", json=_create_body(activity.id, [cctv.id]))

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["servers_id"] == server.id
    assert data["modelHasValues"][0]["value_name"] == "threshold"
    assert data["modelHasPolygons"][0]["polygon"][1] == {"x": 0.9, "y": 0.8}
    assert data["modelHasEmbeds"][0]["embed"].endswith(f"/hls/{cctv.id}-{data['id']}.m3u8")
    refreshed = (await test_db.execute(
        select(Server).where(Server.id == server.id).execution_options(populate_existing=True),
    )).scalar_one()
    assert refreshed.cur_activity_monitoring == 1


async def test_create_invalid_polygon(auth_client, make_server, make_type, make_cctv):
    await make_server()
    activity = await make_type()
    cctv = await make_cctv()
    body = _create_body(activity.id, [cctv.id])
    body["primaryAnalytics"]["modelHasPolygons"][0]["polygon"] = [{"x": 1.5, "y": 0}]

    response = await auth_client.post("/analytic", json=body)

    assert response.status_code == 400
    assert response.json()["message"] == "Validation failed"


async def test_create_without_capacity(auth_client, make_server, make_type, make_cctv):
    await make_server(max_capacity=1, current=1)
    activity = await make_type()
    cctv = await make_cctv()

    response = await auth_client.post("/analytic", json=_create_body(activity.id, [cctv.id]))

    assert response.status_code == 400
    assert response.json()["message"].startswith("No servers available")


async def test_update_replaces_values_and_cameras(
    auth_client, make_server, make_type, make_cctv,
):
    await make_server()
    activity = await make_type()
    lobby = await make_cctv(name="Lobby")
    gate = await make_cctv(name="Gate")
    created = (await auth_client.post(
        "/analytic", json=_create_body(activity.id, [lobby.id]),
    )).json()["data"]

    response = await auth_client.put(f"/analytic/{created['id']}", json={
        "cctvId": [gate.id],
        "primaryAnalytics": {"name": "Gate watch", "modelHasValues": []},
    })

    data = response.json()["data"]
    assert data["name"] == "Gate watch"
    assert [c["id"] for c in data["cctv"]] == [gate.id]
    assert data["modelHasValues"] == []
    assert [e["cctv_id"] for e in data["modelHasEmbeds"]] == [gate.id]
    assert len(data["modelHasPolygons"]) == 1


async def test_delete_then_missing(auth_client, make_server, make_type, make_cctv):
    await make_server()
    activity = await make_type()
    cctv = await make_cctv()
    created = (await auth_client.post(
        "/analytic", json=_create_body(activity.id, [cctv.id]),
    )).json()["data"]

    deleted = await auth_client.delete(f"/analytic/{created['id']}")
    assert deleted.json()["message"] == "Primary analytic deleted successfully"

    missing = await auth_client.get(f"/analytic/{created['id']}")
    assert missing.status_code == 404
    assert missing.json()["message"] == "Primary analytic not found"


async def test_server_capacity_overview(auth_client, make_server, make_type, make_cctv, make_analytic):
    server = await make_server(max_capacity=5, current=5)
    await make_analytic(await make_type(), [await make_cctv()], server=server)

    response = await auth_client.get("/analytic/server-capacity")

    status = response.json()["data"][0]
    assert status["status"] == "full"
    assert status["utilizationPercentage"] == "100.00"
    assert status["analyticsByType"] == {"activity_monitoring": 1}


async def test_list_by_cctv(auth_client, make_type, make_cctv, make_analytic):
    lobby = await make_cctv(name="Lobby")
    gate = await make_cctv(name="Gate")
    activity = await make_type()
    await make_analytic(activity, [lobby], name="Desk")
    await make_analytic(activity, [gate], name="Door")

    response = await auth_client.get(f"/analytic/cctv/{lobby.id}")

    assert [a["name"] for a in response.json()["data"]] == ["Desk"]
    assert (await auth_client.get("/analytic/cctv/999")).status_code == 404
