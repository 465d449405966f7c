"""Server Routes — CRUD, token guards, statistics and the per-IP edge view.

Tests cover:
    - Reads accept a general token (missing → 401, wrong → 403)
    - Writes require a session cookie
    - Duplicate ip → 409; invalid ip → 400 validation envelope
    - Update keeps its own ip but cannot take another server's (409)
    - A write that slips past the ip pre-check still gets 409 from the unique index
    - Delete refused while analytics are attached
    - /ip/{ip} lists cameras with their analytics, filtered by analyticType and index
"""

from sqlalchemy import func, select

from cctv_api.api.routes import servers as server_routes
from cctv_api.models import Server


async def create_server_via_api(client, ip):
    response = await client.post("/server", json={"ip": ip, "max_activity_monitoring": 4})
    assert response.status_code == 201
    return response.json()["data"]


async def test_create_server_defaults_current_to_zero(auth_client):
    response = await auth_client.post("/server", json={
        "ip": "10.0.0.5", "description": "rack 1", "max_activity_monitoring": 8,
    })
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Server created successfully"
    assert body["data"]["cur_activity_monitoring"] == 0
    assert body["data"]["analytics_count"] == 0


async def test_create_duplicate_ip_conflicts(auth_client):
    await create_server_via_api(auth_client, "10.0.0.5")
    response = await auth_client.post("/server", json={"ip": "10.0.0.5"})
    assert response.status_code == 409
    assert response.json()["message"] == "Server with this IP address already exists"


async def test_create_invalid_ip_is_validation_error(auth_client):
    response = await auth_client.post("/server", json={"ip": "not-an-ip"})
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Validation failed"
    assert body["errors"]


async def test_create_requires_session(client):
    response = await client.post("/server", json={"ip": "10.0.0.5"})
    assert response.status_code == 401
    assert response.json()["message"] == "Access token is required"


async def test_list_requires_security_token(client):
    missing = await client.get("/server")
    assert missing.status_code == 401
    assert missing.json()["code"] == "MISSING_SECURITY_TOKEN"

    wrong = await client.get("/server", headers={"x-security-token": "nope"})
    assert wrong.status_code == 403
    assert wrong.json()["code"] == "INVALID_SECURITY_TOKEN"


async def test_list_paginates_and_searches(client, general_headers, make_server):
    for i in range(3):
        await make_server(ip=f"10.0.0.{i + 1}", description=f"rack {i}")
    await make_server(ip="192.168.1.9", description="edge")

    response = await client.get(
        "/server", params={"search": "10.0.0", "limit": 2}, headers=general_headers,
    )

    body = response.json()
    assert response.status_code == 200
    assert len(body["data"]) == 2
    assert body["pagination"]["total"] == 3
    assert body["pagination"]["totalPages"] == 2
    assert body["pagination"]["hasNext"] is True


async def test_get_missing_server(client, general_headers):
    response = await client.get("/server/99", headers=general_headers)
    assert response.status_code == 404
    assert response.json()["message"] == "Server not found"


async def test_update_server(auth_client, make_server):
    server = await make_server(ip="10.0.0.1")
    response = await auth_client.put(
        f"/server/{server.id}", json={"max_activity_monitoring": 12},
    )
    assert response.status_code == 200
    assert response.json()["data"]["max_activity_monitoring"] == 12
    assert response.json()["data"]["ip"] == "10.0.0.1"


async def test_update_keeps_own_ip(auth_client, make_server):
    server = await make_server(ip="10.0.0.1")

    response = await auth_client.put(
        f"/server/{server.id}", json={"ip": "10.0.0.1", "description": "rack 7"},
    )

    assert response.status_code == 200
    assert response.json()["data"]["ip"] == "10.0.0.1"
    assert response.json()["data"]["description"] == "rack 7"


async def test_update_to_other_servers_ip_conflicts(auth_client, make_server, general_headers):
    first = await make_server(ip="10.0.0.1")
    await make_server(ip="10.0.0.2")

    response = await auth_client.put(f"/server/{first.id}", json={"ip": "10.0.0.2"})

    assert response.status_code == 409
    assert response.json()["message"] == "Server with this IP address already exists"
    unchanged = await auth_client.get(f"/server/{first.id}", headers=general_headers)
    assert unchanged.json()["data"]["ip"] == "10.0.0.1"


async def test_unique_index_violation_is_conflict(auth_client, test_db, monkeypatch):
    await create_server_via_api(auth_client, "10.0.0.5")

    async def precheck_misses(db, ip, exclude_id=None):
        return None

    monkeypatch.setattr(server_routes, "_ensure_ip_free", precheck_misses)

    response = await auth_client.post("/server", json={"ip": "10.0.0.5"})

    assert response.status_code == 409
    assert response.json()["code"] == "CONFLICT"
    count = await test_db.scalar(select(func.count()).select_from(Server))
    assert count == 1


async def test_delete_blocked_while_analytics_attached(
    auth_client, make_server, make_type, make_cctv, make_analytic,
):
    server = await make_server()
    await make_analytic(await make_type(), [await make_cctv()], server=server)

    response = await auth_client.delete(f"/server/{server.id}")

    assert response.status_code == 400
    assert response.json()["message"].startswith("Cannot delete server with active primary analytics")


async def test_delete_server(auth_client, make_server, general_headers):
    server = await make_server()
    response = await auth_client.delete(f"/server/{server.id}")
    assert response.status_code == 200
    assert response.json()["message"] == "Server deleted successfully"
    assert (await auth_client.get(f"/server/{server.id}", headers=general_headers)).status_code == 404


async def test_stats_counts_servers_with_active_analytics(
    auth_client, make_server, make_type, make_cctv, make_analytic,
):
    busy = await make_server(ip="10.0.0.1", max_capacity=4, current=2)
    await make_server(ip="10.0.0.2", max_capacity=6, current=0)
    await make_analytic(await make_type(), [await make_cctv()], server=busy)

    response = await auth_client.get("/server/stats")

    assert response.json()["data"] == {
        "total_servers": 2,
        "active_servers": 1,
        "total_max_capacity": 10,
        "total_current_usage": 2,
        "average_max_capacity": 5,
        "average_current_usage": 1,
    }


async def test_check_availability_for_activity_monitoring(auth_client, make_server, make_type):
    await make_type("activity_monitoring")
    await make_server(ip="10.0.0.1", max_capacity=2, current=2)
    await make_server(ip="10.0.0.2", max_capacity=3, current=1)

    response = await auth_client.get("/server/check-availability/1")

    data = response.json()["data"]
    assert data["isSupported"] is True
    assert data["availableServers"] == 1
    assert data["availableCapacity"] == 2
    assert [s["ip"] for s in data["servers"]] == ["10.0.0.2"]


async def test_check_availability_other_type_unsupported(auth_client, make_type):
    await make_type("activity_monitoring")
    await make_type("weapon_detection")
    response = await auth_client.get("/server/check-availability/2")
    assert response.json()["data"]["isSupported"] is False


async def test_server_by_ip_lists_cameras_with_analytics(
    client, general_headers, make_server, make_type, make_cctv, make_analytic,
):
    server = await make_server(ip="10.0.0.1")
    activity = await make_type("activity_monitoring")
    weapon = await make_type("weapon_detection")
    lobby = await make_cctv(name="Lobby")
    gate = await make_cctv(name="Gate")
    await make_analytic(activity, [lobby], server=server, name="Desk")
    await make_analytic(weapon, [lobby, gate], server=server, name="Guns")

    response = await client.get("/server/ip/10.0.0.1", headers=general_headers)
    data = response.json()["data"]
    assert data["totalCctvCount"] == 2
    assert [c["cctv_name"] for c in data["cctv"]] == ["Lobby", "Gate"]
    assert [a["name"] for a in data["cctv"][0]["primaryAnalytics"]] == ["Desk", "Guns"]

    filtered = await client.get(
        "/server/ip/10.0.0.1", params={"analyticType": "weapon", "index": "1"},
        headers=general_headers,
    )
    data = filtered.json()["data"]
    assert data["filteredCctvCount"] == 1
    assert data["cctv"][0]["cctv_name"] == "Gate"
    assert [a["name"] for a in data["cctv"][0]["primaryAnalytics"]] == ["Guns"]


async def test_server_by_unknown_ip(client, general_headers):
    response = await client.get("/server/ip/10.9.9.9", headers=general_headers)
    assert response.status_code == 404
