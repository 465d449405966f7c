"""Activity Monitoring Routes — device uploads, listing, charts, export and deletes.

Tests cover:
    - POST with a general token files the capture under the device account
    - Camera/analytic connection enforced on create
    - latest-day is open, charts and export need a session
    - DELETE answers 204 and removes the capture
"""

from datetime import datetime, timedelta, timezone

import pytest

from cctv_api.core.jakarta_time import today_jakarta
from cctv_api.models import ActivityMonitoring

JPEG = b"\xff\xd8\xff\xe0capture"
BASE = "/product/activity-monitoring"


@pytest.fixture
async def analytic(make_type, make_cctv, make_analytic):
    return await make_analytic(await make_type(), [await make_cctv()], name="Front desk")


def _form(analytic, **extra):
    return {
        "primaryAnalyticsId": str(analytic.id),
        "cctvId": str(analytic.cctvs[0].id),
        "subTypeAnalytic": "check_in",
        **extra,
    }


async def _post(client, headers, analytic, **extra):
    return await client.post(
        BASE, data=_form(analytic, **extra),
        files={"captureImg": ("capture.jpg", JPEG, "image/jpeg")},
        headers=headers,
    )


async def _add(db, analytic, sub_type, sent_at):
    record = ActivityMonitoring(
        primary_analytics_id=analytic.id, cctv_id=analytic.cctvs[0].id,
        sub_type_analytic=sub_type, datetime_send=sent_at,
    )
    db.add(record)
    await db.commit()
    return record


async def test_device_upload_with_general_token(client, general_headers, analytic, upload_dir):
    response = await _post(client, general_headers, analytic, datetimeSend="2025-03-10 10:00:00")

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["subTypeAnalytic"] == "check_in"
    assert data["datetimeSend"] == "2025-03-10T03:00:00.000Z"
    assert data["primaryAnalytics"] == {"id": analytic.id, "name": "Front desk", "status": "active"}
    assert "/static/activity-monitor/user-1/capture/activity-monitor-" in data["captureImg"]
    assert len(list((upload_dir / "activity-monitor" / "user-1" / "capture").iterdir())) == 1


async def test_upload_requires_token(client, analytic):
    response = await _post(client, {}, analytic)
    assert response.status_code == 401


async def test_upload_requires_image(client, general_headers, analytic):
    response = await client.post(BASE, data=_form(analytic), headers=general_headers)
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "captureImg"


async def test_upload_rejects_unconnected_camera(
    client, general_headers, analytic, make_cctv, upload_dir,
):
    other = await make_cctv(name="Parking")
    response = await _post(client, general_headers, analytic, cctvId=str(other.id))

    assert response.status_code == 400
    assert response.json()["message"] == "Primary analytics and CCTV are not connected"
    assert not any(upload_dir.rglob("*.jpg"))


async def test_upload_bad_datetime(client, general_headers, analytic):
    response = await _post(client, general_headers, analytic, datetimeSend="10/03/2025")
    assert response.status_code == 400
    assert response.json()["message"] == "Validation failed"


async def test_latest_day_is_open(client, analytic, test_db):
    await _add(test_db, analytic, "check_in", datetime.now(timezone.utc))
    await _add(test_db, analytic, "check_in", datetime.now(timezone.utc) - timedelta(days=3))

    response = await client.get(f"{BASE}/latest-day", params={
        "cctvId": analytic.cctvs[0].id, "primaryAnalyticsId": analytic.id,
    })

    data = response.json()["data"]
    assert data["dateToday"] == today_jakarta().isoformat()
    assert data["data"]["check_in"] == 1
    assert data["data"]["receptionist_receives_money"] == 0


async def test_latest_day_non_numeric_ids(client):
    response = await client.get(f"{BASE}/latest-day", params={"cctvId": "x", "primaryAnalyticsId": "1"})
    assert response.status_code == 400


async def test_daily_chart(auth_client, analytic, test_db):
    await _add(test_db, analytic, "check_in", datetime(2025, 3, 10, 3, tzinfo=timezone.utc))

    response = await auth_client.get(f"{BASE}/charts/daily-check-in", params={
        "cctvId": analytic.cctvs[0].id, "primaryAnalyticsId": analytic.id,
        "startDate": "2025-03-09", "endDate": "2025-03-10",
    })

    assert response.json()["message"] == "Daily check in chart data retrieved successfully"
    assert response.json()["data"] == {"dates": ["09/03/2025", "10/03/2025"], "check_in": [0, 1]}


@pytest.mark.parametrize("start,end,message", [
    ("2025-03-10", "2025-03-01", "Start date must be before or equal to end date"),
    ("2024-01-01", "2025-03-01", "Date range cannot exceed 1 year"),
])
async def test_chart_range_checks(auth_client, analytic, start, end, message):
    response = await auth_client.get(f"{BASE}/charts/daily", params={
        "cctvId": analytic.cctvs[0].id, "primaryAnalyticsId": analytic.id,
        "startDate": start, "endDate": end,
    })
    assert response.status_code == 400
    assert response.json()["message"] == message


async def test_export_returns_spreadsheet(auth_client, analytic, test_db):
    await _add(test_db, analytic, "check_in", datetime(2025, 3, 10, 3, tzinfo=timezone.utc))
    await _add(test_db, analytic, "receptionist_fill_out_form", datetime(2025, 3, 10, 4, tzinfo=timezone.utc))

    response = await auth_client.get(
        f"{BASE}/export/all",
        params=[
            ("startDate", "2025-03-10"), ("endDate", "2025-03-10"),
            ("subTypeAnalytic", "check_in"), ("subTypeAnalytic", "receptionist_fill_out_form"),
        ],
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )
    assert 'attachment; filename="activity_monitor_export_2025-03-10_to_2025-03-10_' in (
        response.headers["content-disposition"]
    )
    assert response.content[:2] == b"PK"


async def test_export_empty_is_not_found(auth_client):
    response = await auth_client.get(
        f"{BASE}/export/all", params={"startDate": "2025-03-10", "endDate": "2025-03-10"},
    )
    assert response.status_code == 404


async def test_list_filters_and_searches(auth_client, analytic, test_db):
    await _add(test_db, analytic, "check_in", datetime(2025, 3, 10, 3, tzinfo=timezone.utc))
    await _add(test_db, analytic, "receptionist_gives_room_key", datetime(2025, 3, 10, 4, tzinfo=timezone.utc))

    response = await auth_client.get(BASE, params={
        "search": "room", "cctvId": analytic.cctvs[0].id,
    })

    body = response.json()
    assert body["message"] == "Activity monitor records retrieved successfully"
    assert [r["subTypeAnalytic"] for r in body["data"]] == ["receptionist_gives_room_key"]


async def test_update_without_changes(auth_client, analytic, test_db):
    record = await _add(test_db, analytic, "check_in", datetime(2025, 3, 10, 3, tzinfo=timezone.utc))
    response = await auth_client.put(f"{BASE}/{record.id}")
    assert response.json()["message"] == "No data provided for update"


async def test_update_sub_type(auth_client, analytic, test_db):
    record = await _add(test_db, analytic, "check_in", datetime(2025, 3, 10, 3, tzinfo=timezone.utc))
    response = await auth_client.put(
        f"{BASE}/{record.id}", data={"subTypeAnalytic": "receptionist_fill_out_form"},
    )
    assert response.json()["data"]["subTypeAnalytic"] == "receptionist_fill_out_form"


async def test_delete_is_204_and_removes_capture(
    auth_client, general_headers, analytic, upload_dir,
):
    created = (await _post(auth_client, general_headers, analytic)).json()["data"]
    stored = upload_dir / created["captureImg"].split("/static/", 1)[1]
    assert stored.exists()

    response = await auth_client.delete(f"{BASE}/{created['id']}")

    assert response.status_code == 204
    assert response.content == b""
    assert not stored.exists()
    missing = await auth_client.get(f"{BASE}/{created['id']}")
    assert missing.json()["message"] == "Activity monitor record not found"
