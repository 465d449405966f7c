"""Type Analytic Routes — CRUD with usage counts and in-use delete protection."""


async def test_create_and_get(auth_client):
    created = await auth_client.post("/type-analytic", json={"name": "ppe_detection"})
    assert created.status_code == 201
    type_id = created.json()["data"]["id"]

    response = await auth_client.get(f"/type-analytic/{type_id}")

    data = response.json()["data"]
    assert data["name"] == "ppe_detection"
    assert data["_count"] == {"primary_analytics": 0}
    assert data["primary_analytics"] == []


async def test_duplicate_name(auth_client, make_type):
    await make_type("weapon_detection")
    response = await auth_client.post("/type-analytic", json={"name": "weapon_detection"})
    assert response.status_code == 400
    assert response.json()["message"] == "Type analytic with this name already exists"


async def test_list_counts_usage(auth_client, make_type, make_cctv, make_analytic):
    activity = await make_type("activity_monitoring")
    await make_type("weapon_detection")
    await make_analytic(activity, [await make_cctv()])

    response = await auth_client.get("/type-analytic", params={"sortBy": "name", "sortOrder": "asc"})

    data = response.json()["data"]
    assert [(t["name"], t["_count"]["primary_analytics"]) for t in data] == [
        ("activity_monitoring", 1), ("weapon_detection", 0),
    ]
    assert response.json()["pagination"]["limit"] == 10


async def test_delete_in_use_refused(auth_client, make_type, make_cctv, make_analytic):
    activity = await make_type()
    await make_analytic(activity, [await make_cctv()])

    response = await auth_client.delete(f"/type-analytic/{activity.id}")

    assert response.status_code == 400


async def test_update_and_delete(auth_client, make_type):
    type_analytic = await make_type("nomor_lambung")

    updated = await auth_client.put(
        f"/type-analytic/{type_analytic.id}", json={"name": "hull_number"},
    )
    assert updated.json()["data"]["name"] == "hull_number"

    deleted = await auth_client.delete(f"/type-analytic/{type_analytic.id}")
    assert deleted.json()["message"] == "Type analytic deleted successfully"
    assert (await auth_client.get(f"/type-analytic/{type_analytic.id}")).status_code == 404


async def test_update_keeps_own_name(auth_client, make_type):
    type_analytic = await make_type("ppe_detection")

    response = await auth_client.put(
        f"/type-analytic/{type_analytic.id}", json={"name": "ppe_detection"},
    )

    assert response.status_code == 200
    assert response.json()["data"]["name"] == "ppe_detection"


async def test_update_to_taken_name_refused(auth_client, make_type):
    ppe = await make_type("ppe_detection")
    await make_type("weapon_detection")

    response = await auth_client.put(
        f"/type-analytic/{ppe.id}", json={"name": "weapon_detection"},
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Type analytic with this name already exists"
    assert (await auth_client.get(f"/type-analytic/{ppe.id}")).json()["data"]["name"] == "ppe_detection"
