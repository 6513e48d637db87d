from datetime import timedelta

from swapstation.core import messages
from swapstation.core.timeutils import utcnow
from swapstation.models import Account, Battery, Booking
from swapstation.schemas.booking import BookingCreate
from swapstation.services import booking_service
from swapstation.services.reservation_sweeper import ReservationSweeper

from conftest import DRIVER_ID, ONE_SLOT_VEHICLE, TWO_SLOT_VEHICLE


def in_hours(hours):
    return (utcnow() + timedelta(hours=hours)).isoformat() + "Z"


def available(client, headers, station_id=1, vehicle_id=TWO_SLOT_VEHICLE, quantity=1):
    response = client.get(
        "/api/booking/availability",
        headers=headers,
        params={"stationId": station_id, "vehicleId": vehicle_id, "batteryQuantity": quantity},
    )
    assert response.status_code == 200, response.text
    return response.json()["payload"]


def book(client, headers, **overrides):
    body = {"stationId": 1, "vehicleId": TWO_SLOT_VEHICLE, "scheduledTime": in_hours(2), "batteryQuantity": 2}
    body.update(overrides)
    return client.post("/api/booking/", headers=headers, json=body)


def test_time_slots_endpoint(client):
    payload = client.get("/api/booking/time-slots").json()["payload"]
    assert payload["window_minutes"] == 15
    assert isinstance(payload["slots"], list)


def test_availability_reports_type_specific_count(client, driver_headers):
    result = available(client, driver_headers)
    assert result["available"] is True
    assert result["availability_details"]["available_batteries_count"] == 6
    assert result["availability_details"]["battery_type"] == "NMC-72V-38Ah"
    assert result["availability_details"]["total_slots"] == 14


def test_availability_requires_auth(client):
    response = client.get(
        "/api/booking/availability", params={"stationId": 1, "vehicleId": TWO_SLOT_VEHICLE}
    )
    assert response.status_code == 401


def test_maintenance_station_is_unavailable(client, driver_headers):
    result = available(client, driver_headers, station_id=3)
    assert result["available"] is False
    assert result["message"] == messages.NOT_AVAILABLE

    response = book(client, driver_headers, stationId=3, batteryQuantity=1)
    assert response.status_code == 409
    assert response.json()["message"] == messages.NOT_AVAILABLE


def test_create_booking_reserves_batteries(client, driver_headers):
    response = book(client, driver_headers)
    assert response.status_code == 201
    body = response.json()
    assert body["message"] == messages.BOOKING_CREATED_OK
    booking = body["payload"]["booking"]
    assert booking["status"] == "pending"
    assert booking["is_active"] is False
    assert booking["source"] == "app"
    assert len(booking["batteries"]) == 2
    assert booking["station"]["station_name"] == "G3 Cầu Giấy"

    result = available(client, driver_headers)
    assert result["availability_details"]["available_batteries_count"] == 4

    station = client.get("/api/station/1").json()["payload"]["station"]
    assert station["available_by_type"]["12"] == 4


def test_booking_schedules_reservation_timer(client, driver_headers):
    booking = book(client, driver_headers).json()["payload"]["booking"]
    registry = client.app.state.reservations
    assert booking["booking_id"] in registry
    assert registry.get(booking["booking_id"]).state.value == "awaiting_activation"


def test_quantity_above_vehicle_slots_rejected(client, driver_headers):
    response = book(client, driver_headers, vehicleId=ONE_SLOT_VEHICLE, batteryQuantity=2)
    assert response.status_code == 422
    assert response.json()["errors"]["battery_quantity"] == messages.BATTERY_QUANTITY_INVALID


def test_past_time_rejected(client, driver_headers):
    response = book(client, driver_headers, scheduledTime=in_hours(-1))
    assert response.status_code == 422
    assert response.json()["message"] == messages.TIME_IN_PAST


def test_not_enough_batteries(client, driver_headers):
    response = book(client, driver_headers, stationId=2, vehicleId=ONE_SLOT_VEHICLE, batteryQuantity=1)
    assert response.status_code == 201
    assert book(client, driver_headers, stationId=2).status_code == 201

    result = available(client, driver_headers, station_id=2)
    assert result["available"] is False
    assert book(client, driver_headers, stationId=2, vehicleId=ONE_SLOT_VEHICLE, batteryQuantity=1).status_code == 409


def test_missing_fields(client, driver_headers):
    response = client.post("/api/booking/", headers=driver_headers, json={})
    assert response.status_code == 422
    assert "Vui lòng chọn trạm" in response.json()["errors"].values()


def test_list_upcoming_and_detail(client, driver_headers, admin_headers):
    later = book(client, driver_headers, scheduledTime=in_hours(5)).json()["payload"]["booking"]
    sooner = book(
        client, driver_headers, vehicleId=ONE_SLOT_VEHICLE, batteryQuantity=1, scheduledTime=in_hours(1)
    ).json()["payload"]["booking"]

    upcoming = client.get("/api/booking/upcoming", headers=driver_headers).json()["payload"]["bookings"]
    assert [b["booking_id"] for b in upcoming] == [sooner["booking_id"], later["booking_id"]]

    everything = client.get("/api/booking/", headers=driver_headers).json()["payload"]["bookings"]
    assert len(everything) == 2

    detail = client.get(f"/api/booking/{later['booking_id']}", headers=driver_headers)
    assert detail.json()["payload"]["booking"]["booking_id"] == later["booking_id"]

    # Staff may look up any booking; other drivers may not.
    assert client.get(f"/api/booking/{later['booking_id']}", headers=admin_headers).status_code == 200


def test_cancel_releases_batteries(client, driver_headers):
    booking = book(client, driver_headers).json()["payload"]["booking"]

    response = client.post(f"/api/booking/{booking['booking_id']}/cancel", headers=driver_headers)
    assert response.status_code == 200
    assert response.json()["payload"]["booking"]["status"] == "cancelled"
    assert response.json()["payload"]["booking"]["batteries"] == []
    assert booking["booking_id"] not in client.app.state.reservations
    assert available(client, driver_headers)["availability_details"]["available_batteries_count"] == 6

    again = client.post(f"/api/booking/{booking['booking_id']}/cancel", headers=driver_headers)
    assert again.status_code == 409
    assert again.json()["message"] == messages.BOOKING_NOT_CANCELLABLE

    upcoming = client.get("/api/booking/upcoming", headers=driver_headers).json()["payload"]["bookings"]
    assert upcoming == []


def test_delete_booking(client, driver_headers):
    booking = book(client, driver_headers).json()["payload"]["booking"]

    response = client.delete(f"/api/booking/{booking['booking_id']}", headers=driver_headers)
    assert response.status_code == 200
    assert response.json()["message"] == messages.BOOKING_DELETED_OK
    assert client.get(f"/api/booking/{booking['booking_id']}", headers=driver_headers).status_code == 404
    assert available(client, driver_headers)["availability_details"]["available_batteries_count"] == 6


def _service_booking(db, scheduled_time, now):
    account = db.get(Account, DRIVER_ID)
    payload = BookingCreate(station_id=1, vehicle_id=TWO_SLOT_VEHICLE, scheduled_time=scheduled_time, battery_quantity=1)
    return booking_service.create_booking(db, account, payload, now=now)


def test_effective_status_follows_window(db):
    now = utcnow()
    booking = _service_booking(db, now + timedelta(minutes=30), now)
    assert booking_service.effective_status(booking, now) == "pending"
    assert booking_service.effective_status(booking, now + timedelta(minutes=31)) == "confirmed"
    assert booking_service.effective_status(booking, now + timedelta(minutes=45)) == "expired"


def test_expire_overdue_deletes_and_releases(db):
    now = utcnow()
    booking = _service_booking(db, now + timedelta(minutes=1), now)
    booking_id = booking.booking_id
    assert db.query(Battery).filter(Battery.booking_id == booking_id).count() == 1

    assert booking_service.expire_overdue(db, now + timedelta(minutes=5)) == 0
    assert booking_service.expire_overdue(db, now + timedelta(minutes=16)) == 1

    db.expire_all()
    assert db.get(Booking, booking_id) is None
    assert db.query(Battery).filter(Battery.booking_id == booking_id).count() == 0
    assert db.query(Battery).filter(Battery.station_id == 1, Battery.status == "reserved").count() == 0


def test_sweeper_activates_then_expires(db):
    now = utcnow()
    booking = _service_booking(db, now + timedelta(minutes=1), now)
    booking_id = booking.booking_id

    clock_now = [now + timedelta(minutes=2)]
    sweeper = ReservationSweeper("* * * * *", clock=lambda: clock_now[0])
    assert sweeper.sweep() == {"activated": 1, "expired": 0}
    db.expire_all()
    assert db.get(Booking, booking_id).status == "confirmed"

    clock_now[0] = now + timedelta(minutes=20)
    assert sweeper.sweep() == {"activated": 0, "expired": 1}
    db.expire_all()
    assert db.get(Booking, booking_id) is None


def test_complete_swap_moves_batteries(db):
    now = utcnow()
    booking = _service_booking(db, now, now)
    reserved = [b.battery_id for b in booking.batteries]

    booking_service.complete_swap(db, booking, now + timedelta(minutes=1))
    assert booking.status == "completed"
    dispensed = db.get(Battery, reserved[0])
    assert dispensed.status == "in_use"
    assert dispensed.station_id is None
    charging = db.query(Battery).filter(Battery.station_id == 1, Battery.status == "charging").all()
    assert len(charging) == 1
    assert charging[0].soh == 92
    assert booking.vehicle.battery_soh == 100
