from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from geoattend.api.attendance import get_attendance_guard
from geoattend.core.config import settings
from geoattend.main import app

OFFICE_LAT, OFFICE_LON = 24.429328, 39.653926
FAR_LAT = OFFICE_LAT + 500 / 111194.93


def body(lat=OFFICE_LAT, lon=OFFICE_LON, accuracy=10.0, **extra):
    data = {"position": {"latitude": lat, "longitude": lon, "accuracy": accuracy}}
    data.update(extra)
    return data


@pytest.fixture(autouse=True)
def _office(office_settings):
    return office_settings


def test_requires_authentication(client):
    assert client.get("/api/attendance/today").status_code == 401
    assert client.post("/api/attendance/check-in", json=body()).status_code == 401


def test_today_before_check_in(client, employee, auth_headers):
    res = client.get("/api/attendance/today", headers=auth_headers(employee))
    assert res.status_code == 200
    assert res.json() == {"state": "none", "record": None, "can_check_in": True, "can_check_out": False}


def test_check_in_at_office(client, employee, auth_headers):
    res = client.post("/api/attendance/check-in", json=body(), headers=auth_headers(employee))

    assert res.status_code == 200
    data = res.json()
    assert data["state"] == "checked_in"
    assert data["distance_meters"] == 0
    assert data["radius_meters"] == 50
    assert data["geofence_bypassed"] is False
    assert data["record"]["check_in_location"]["latitude"] == OFFICE_LAT

    today = client.get("/api/attendance/today", headers=auth_headers(employee)).json()
    assert today["state"] == "checked_in"
    assert today["can_check_in"] is False
    assert today["can_check_out"] is True


def test_check_in_twice_conflicts(client, employee, auth_headers):
    headers = auth_headers(employee)
    client.post("/api/attendance/check-in", json=body(), headers=headers)

    res = client.post("/api/attendance/check-in", json=body(), headers=headers)
    assert res.status_code == 409
    assert res.json()["error"] == "already_checked_in"


def test_check_in_outside_geofence(client, employee, auth_headers):
    res = client.post("/api/attendance/check-in", json=body(lat=FAR_LAT), headers=auth_headers(employee))

    assert res.status_code == 403
    data = res.json()
    assert data["error"] == "geofence_violation"
    assert data["distance_meters"] == pytest.approx(500, abs=1)
    assert data["radius_meters"] == 50
    assert "500m" in data["detail"]


def test_admin_checks_in_from_anywhere(client, admin_user, auth_headers):
    res = client.post("/api/attendance/check-in", json=body(lat=FAR_LAT), headers=auth_headers(admin_user))
    assert res.status_code == 200
    assert res.json()["geofence_bypassed"] is True


def test_admin_bypass_can_be_disabled(client, admin_user, auth_headers, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_GEOFENCE_BYPASS", False)
    res = client.post("/api/attendance/check-in", json=body(lat=FAR_LAT), headers=auth_headers(admin_user))
    assert res.status_code == 403


def test_check_out_before_check_in(client, employee, auth_headers):
    res = client.post("/api/attendance/check-out", json=body(), headers=auth_headers(employee))
    assert res.status_code == 409
    assert res.json()["error"] == "not_checked_in"


def test_check_in_then_out(client, employee, auth_headers):
    headers = auth_headers(employee)
    client.post("/api/attendance/check-in", json=body(), headers=headers)

    res = client.post("/api/attendance/check-out", json=body(), headers=headers)
    assert res.status_code == 200
    data = res.json()
    assert data["state"] == "checked_out"
    assert data["record"]["check_out"] is not None
    assert data["record"]["total_hours"] is not None

    again = client.post("/api/attendance/check-out", json=body(), headers=headers)
    assert again.status_code == 409
    assert again.json()["error"] == "already_checked_out"

    today = client.get("/api/attendance/today", headers=headers).json()
    assert today["state"] == "checked_out"
    assert today["can_check_in"] is False
    assert today["can_check_out"] is False


def test_device_error_is_reported(client, employee, auth_headers):
    res = client.post(
        "/api/attendance/check-in",
        json={"position": None, "error": "permission_denied"},
        headers=auth_headers(employee),
    )
    assert res.status_code == 422
    assert res.json() == {"detail": "Access to your location was denied.", "error": "permission_denied"}


def test_missing_position_is_unsupported(client, employee, auth_headers):
    res = client.post("/api/attendance/check-in", json={}, headers=auth_headers(employee))
    assert res.status_code == 422
    assert res.json()["error"] == "unsupported"


def test_stale_position_is_rejected(client, employee, auth_headers):
    captured = (datetime.now(timezone.utc) - timedelta(minutes=30)).isoformat()
    data = body()
    data["position"]["captured_at"] = captured

    res = client.post("/api/attendance/check-in", json=data, headers=auth_headers(employee))
    assert res.status_code == 422
    assert res.json()["error"] == "position_unavailable"


def test_invalid_coordinates_fail_validation(client, employee, auth_headers):
    res = client.post("/api/attendance/check-in", json=body(lat=123.0), headers=auth_headers(employee))
    assert res.status_code == 422


def test_my_records(client, employee, auth_headers):
    headers = auth_headers(employee)
    client.post("/api/attendance/check-in", json=body(), headers=headers)
    client.post("/api/attendance/check-out", json=body(), headers=headers)

    res = client.get("/api/attendance/my-records", headers=headers)
    assert res.status_code == 200
    data = res.json()
    assert len(data["records"]) == 1
    assert data["summary"]["days_present"] == 1
    assert data["summary"]["days_completed"] == 1


def test_my_records_bad_month(client, employee, auth_headers):
    res = client.get("/api/attendance/my-records?month=2026-13", headers=auth_headers(employee))
    assert res.status_code == 400


class TestAssignedMode:
    @pytest.fixture(autouse=True)
    def _assigned(self, _office, monkeypatch):
        monkeypatch.setattr(settings, "GEOFENCE_MODE", "assigned")

    def test_selection_required(self, client, employee, site, assign, auth_headers):
        assign(employee, site)
        res = client.post("/api/attendance/check-in", json=body(site.latitude, site.longitude), headers=auth_headers(employee))
        assert res.status_code == 422
        assert res.json()["error"] == "location_selection_required"

    def test_unassigned_location(self, client, employee, site, auth_headers):
        res = client.post(
            "/api/attendance/check-in",
            json=body(site.latitude, site.longitude, location_id=site.id),
            headers=auth_headers(employee),
        )
        assert res.status_code == 422
        assert res.json()["error"] == "location_not_assigned"

    def test_check_in_and_out_at_assigned_site(self, client, employee, site, assign, auth_headers):
        assign(employee, site)
        headers = auth_headers(employee)

        res = client.post(
            "/api/attendance/check-in",
            json=body(site.latitude, site.longitude, location_id=site.id),
            headers=headers,
        )
        assert res.status_code == 200
        assert res.json()["record"]["location_id"] == site.id
        assert res.json()["location_name"] == "Warehouse"

        out = client.post("/api/attendance/check-out", json=body(site.latitude, site.longitude), headers=headers)
        assert out.status_code == 200
        assert out.json()["location_name"] == "Warehouse"

    def test_my_locations(self, client, employee, site, assign, auth_headers):
        assign(employee, site)
        res = client.get("/api/locations/mine", headers=auth_headers(employee))
        assert res.status_code == 200
        data = res.json()
        assert data["requires_selection"] is True
        assert [loc["name"] for loc in data["locations"]] == ["Warehouse"]


def test_my_locations_in_office_mode(client, employee, auth_headers):
    data = client.get("/api/locations/mine", headers=auth_headers(employee)).json()
    assert data["requires_selection"] is False
    assert data["locations"][0]["radius_meters"] == 50


def test_failed_write_returns_502(client, employee, auth_headers, fail_writes):
    headers = auth_headers(employee)
    fail_writes()

    res = client.post("/api/attendance/check-in", json=body(), headers=headers)
    assert res.status_code == 502
    assert res.json() == {
        "detail": "Could not save your attendance. Please try again.",
        "error": "backend_write_failed",
    }

    today = client.get("/api/attendance/today", headers=headers).json()
    assert today["state"] == "none"
    assert today["record"] is None


def test_unexpected_error_returns_json_500(client, employee, auth_headers):
    def broken_guard():
        raise RuntimeError("boom")

    app.dependency_overrides[get_attendance_guard] = broken_guard
    res = TestClient(app, raise_server_exceptions=False).get(
        "/api/attendance/today", headers=auth_headers(employee)
    )
    assert res.status_code == 500
    assert res.json() == {"detail": "Internal error"}
