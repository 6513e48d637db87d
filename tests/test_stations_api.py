from datetime import timedelta

from swapstation.core import messages
from swapstation.core.timeutils import utcnow

from conftest import TWO_SLOT_VEHICLE

NEW_STATION = {
    "stationName": "G3 Thủ Đức",
    "address": "1 Võ Văn Ngân, Thủ Đức, TP. Hồ Chí Minh",
    "latitude": 10.85,
    "longitude": 106.77,
    "status": "operational",
}


def test_list_stations_is_public(client):
    response = client.get("/api/station/")
    assert response.status_code == 200
    stations = response.json()["payload"]["stations"]
    assert [s["station_id"] for s in stations] == [1, 2, 3]
    first = stations[0]
    assert first["available_by_type"] == {"10": 4, "11": 4, "12": 6}
    assert first["available_batteries"] == 14
    assert first["total_slots"] == 14


def test_filter_stations(client):
    operational = client.get("/api/station/", params={"status": "operational"}).json()["payload"]["stations"]
    assert [s["station_id"] for s in operational] == [1, 2]

    with_type_11 = client.get("/api/station/", params={"battery_type_id": 11}).json()["payload"]["stations"]
    assert [s["station_id"] for s in with_type_11] == [1, 3]


def test_station_detail_and_missing(client):
    assert client.get("/api/station/2").json()["payload"]["station"]["station_name"] == "G3 Hoàn Kiếm"
    response = client.get("/api/station/999")
    assert response.status_code == 404
    assert response.json()["message"] == messages.STATION_NOT_FOUND


def test_station_writes_require_login(client):
    response = client.post("/api/station/", json=NEW_STATION)
    assert response.status_code == 401


def test_driver_cannot_manage_stations(client, driver_headers):
    response = client.post("/api/station/", headers=driver_headers, json=NEW_STATION)
    assert response.status_code == 403
    assert response.json()["message"] == messages.FORBIDDEN


def test_admin_station_crud(client, admin_headers):
    response = client.post("/api/station/", headers=admin_headers, json=NEW_STATION)
    assert response.status_code == 201
    station = response.json()["payload"]["station"]
    assert station["station_name"] == "G3 Thủ Đức"
    assert station["available_batteries"] == 0

    response = client.put(
        f"/api/station/{station['station_id']}",
        headers=admin_headers,
        json={**NEW_STATION, "status": "maintenance"},
    )
    assert response.status_code == 200
    assert response.json()["payload"]["station"]["status"] == "maintenance"

    response = client.delete(f"/api/station/{station['station_id']}", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["message"] == messages.STATION_DELETE_SUCCESS
    assert client.get(f"/api/station/{station['station_id']}").status_code == 404


def test_invalid_station_status(client, admin_headers):
    response = client.post("/api/station/", headers=admin_headers, json={**NEW_STATION, "status": "busy"})
    assert response.status_code == 422
    assert "Trạng thái trạm không hợp lệ" in response.json()["errors"].values()


def test_station_with_open_booking_cannot_be_deleted(client, driver_headers, admin_headers):
    response = client.post(
        "/api/booking/",
        headers=driver_headers,
        json={
            "stationId": 2,
            "vehicleId": TWO_SLOT_VEHICLE,
            "scheduledTime": (utcnow() + timedelta(hours=1)).isoformat() + "Z",
            "batteryQuantity": 1,
        },
    )
    assert response.status_code == 201

    response = client.delete("/api/station/2", headers=admin_headers)
    assert response.status_code == 409
    assert response.json()["message"] == messages.STATION_HAS_BOOKINGS
