from __future__ import annotations

import pytest

from guest_presence.common.csv_export import UTF8_BOM
from guest_presence.main import create_app


@pytest.fixture
def app(container):
    return create_app("config.testing", container=container)


@pytest.fixture
def client(app):
    return app.test_client()


def login(client, role="MANAGER"):
    with client.session_transaction() as sess:
        sess["role"] = role


def register(client, name="Aoi"):
    resp = client.post("/api/guests", json={"name": name})
    assert resp.status_code == 201
    return resp.get_json()["data"]


def test_register_and_fetch_guest(client):
    guest = register(client)
    assert guest["displayId"] == 26001

    resp = client.get(f"/api/guests/{guest['id']}")
    body = resp.get_json()
    assert resp.status_code == 200
    assert body["data"]["isCurrentlyCheckedIn"] is False


def test_validation_errors_carry_field(client):
    resp = client.post("/api/guests", json={"name": ""})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == {"code": "VALIDATION_ERROR", "message": "name is required", "field": "name"}


def test_non_object_body_is_rejected(client):
    resp = client.post("/api/guests", data="nope", content_type="text/plain")
    assert resp.status_code == 400
    assert resp.get_json()["error"]["field"] == "body"


def test_check_in_twice_returns_conflict_code(client):
    guest = register(client)
    assert client.post(f"/api/guests/{guest['id']}/checkin").status_code == 201

    resp = client.post(f"/api/guests/{guest['id']}/checkin")
    assert resp.status_code == 400
    assert resp.get_json()["error"]["code"] == "ALREADY_CHECKED_IN"

    current = client.get("/api/checkins/current").get_json()["data"]
    assert [c["guestName"] for c in current] == ["Aoi"]
    assert current[0]["checkinAt"] == "2026-10-19T10:15:00+09:00"


def test_unknown_guest_is_404(client):
    resp = client.post("/api/guests/missing/checkout")
    assert resp.status_code == 404
    assert resp.get_json()["error"]["code"] == "GUEST_NOT_FOUND"


def test_admin_routes_require_a_role(client):
    assert client.get("/api/admin/dashboard/today-stats").status_code == 401
    login(client, "not-a-role")
    assert client.get("/api/admin/dashboard/today-stats").status_code == 401
    login(client, "manager")
    resp = client.get("/api/admin/dashboard/today-stats")
    assert resp.get_json()["data"] == {"totalCheckins": 0, "currentGuests": 0, "averageStayMinutes": 0}


def test_admin_guest_list_coerces_paging(client):
    for name in ("A", "B", "C"):
        register(client, name)
    login(client)
    data = client.get("/api/admin/guests?page=0&limit=500").get_json()["data"]
    assert data["pagination"] == {"page": 1, "limit": 100, "totalCount": 3, "totalPages": 1}


def test_delete_present_guest_is_refused(client):
    guest = register(client)
    client.post(f"/api/guests/{guest['id']}/checkin")
    login(client)
    resp = client.delete(f"/api/admin/guests/{guest['id']}")
    assert resp.status_code == 400
    assert resp.get_json()["error"]["code"] == "GUEST_CURRENTLY_CHECKED_IN"


def test_activity_log_flow_and_delete_permissions(client):
    guest = register(client)
    login(client, "MANAGER")
    resp = client.post(
        "/api/admin/activity-logs",
        json={"guestId": guest["id"], "categories": ["LEGO"], "timestamp": "2026-10-19T09:05:00+09:00"},
    )
    entry = resp.get_json()["data"]
    assert entry["timeslotStart"] == "2026-10-19T09:00:00+09:00"

    listed = client.get("/api/admin/activity-logs?date=2026-10-19").get_json()["data"]
    assert [e["id"] for e in listed] == [entry["id"]]

    assert client.delete(f"/api/admin/activity-logs/{entry['id']}").status_code == 403
    login(client, "SUPER")
    assert client.delete(f"/api/admin/activity-logs/{entry['id']}").status_code == 200


def test_export_json_and_csv(client):
    guest = register(client)
    login(client)
    client.post(
        "/api/admin/activity-logs",
        json={"guestId": guest["id"], "categories": ["DRONE", "LEGO"], "timestamp": "2026-10-19T09:05:00+09:00"},
    )

    bad = client.post("/api/admin/export/activity-logs", json={"startDate": "2026-10-20", "endDate": "2026-10-19"})
    assert bad.status_code == 400
    assert bad.get_json()["error"]["field"] == "end_date"

    data = client.post("/api/admin/export/activity-logs", json={"startDate": "2026-10-19", "endDate": "2026-10-19"}).get_json()["data"]
    assert [r["category"] for r in data["rows"]] == ["DRONE", "LEGO"]

    resp = client.get("/api/admin/export/activity-logs.csv?startDate=2026-10-19&endDate=2026-10-19")
    assert resp.mimetype == "text/csv"
    text = resp.get_data().decode("utf-8")
    assert text.startswith(UTF8_BOM + "Date,Time,Display ID")
    assert text.count("\r\n") == 3


def test_csv_filename_uses_parsed_dates(client):
    login(client)
    resp = client.get("/api/admin/export/activity-logs.csv?startDate=%202026-10-19%0D%0A&endDate=2026-10-19")
    assert resp.status_code == 200
    assert resp.headers["Content-Disposition"] == "attachment; filename=activity-logs_2026-10-19_2026-10-19.csv"


def test_public_guest_search(client):
    register(client, "Aoi")
    register(client, "Ren")
    found = client.get("/api/guests/search?q=ao").get_json()["data"]
    assert [g["name"] for g in found] == ["Aoi"]
    assert found[0]["isCurrentlyCheckedIn"] is False

    resp = client.get("/api/guests/search?q=")
    assert resp.status_code == 400
    assert resp.get_json()["error"]["field"] == "q"


def test_guests_checked_in_on_a_date(client):
    aoi = register(client, "Aoi")
    client.post(f"/api/guests/{aoi['id']}/checkin", json={"at": "2026-10-19T09:00:00+09:00"})

    assert client.get("/api/checkins/today").status_code == 401
    login(client)
    today = client.get("/api/checkins/today").get_json()["data"]
    assert [(g["name"], g["isActive"], g["visits"]) for g in today] == [("Aoi", True, 1)]
    assert today[0]["checkinAt"] == "2026-10-19T09:00:00+09:00"

    assert client.get("/api/checkins/by-date?date=2026-10-18").get_json()["data"] == []
    assert client.get("/api/checkins/by-date").status_code == 400


def test_guest_export_json_and_csv(client):
    aoi = register(client, "Aoi")
    register(client, "Ren")
    client.post(f"/api/guests/{aoi['id']}/checkin")
    login(client)

    data = client.post(
        "/api/admin/export/guests",
        json={"status": "CHECKED_IN", "includeVisitStats": True},
    ).get_json()["data"]
    assert data["headers"][-1] == "Last Visit At"
    assert [(r["name"], r["totalVisits"]) for r in data["rows"]] == [("Aoi", 1)]

    bad = client.post("/api/admin/export/guests", json={"registeredStart": "2026-10-20", "registeredEnd": "2026-10-19"})
    assert bad.status_code == 400
    assert bad.get_json()["error"]["field"] == "registered_end"

    resp = client.get("/api/admin/export/guests.csv?status=CHECKED_OUT")
    assert resp.mimetype == "text/csv"
    lines = resp.get_data().decode("utf-8").lstrip(UTF8_BOM).split("\r\n")
    assert lines[0].startswith("Display ID,Name")
    assert [line.split(",")[1] for line in lines[1:-1]] == ["Ren"]
