import asyncio
from datetime import timedelta

import pytest

from swapstation.client import (
    ApiClient,
    ApiError,
    AuthAPI,
    AuthStore,
    BookingAPI,
    BookingFlow,
    FormValidationError,
    StationAPI,
    VehicleAPI,
)
from swapstation.client.booking_flow import CONFIRM, SELECT_BATTERIES, SELECT_TIME, SUCCESS
from swapstation.core import messages
from swapstation.core.exceptions import BookingStateError
from swapstation.core.timeutils import utcnow
from swapstation.services.reservation_timer import ReservationState

from conftest import DRIVER_EMAIL, DRIVER_PASSWORD, ONE_SLOT_VEHICLE, TWO_SLOT_VEHICLE


async def open_flow(api, vehicle_id, **kwargs):
    await AuthAPI(api).login(DRIVER_EMAIL, DRIVER_PASSWORD)
    vehicle = await VehicleAPI(api).get(vehicle_id)
    station = await StationAPI(api).get(1)
    flow = BookingFlow(BookingAPI(api), station=station, vehicle=vehicle, **kwargs)
    availability = await flow.start()
    assert availability["available"] is True
    return flow


@pytest.mark.asyncio
async def test_two_slot_vehicle_books_and_cancels(tmp_path):
    async with ApiClient.from_settings(store=AuthStore(tmp_path / "auth.json")) as api:
        flow = await open_flow(api, TWO_SLOT_VEHICLE)
        assert flow.total_steps == 4
        assert flow.title == messages.STEP_TITLES[SELECT_TIME]

        with pytest.raises(FormValidationError):
            flow.next()

        flow.select_time(utcnow() + timedelta(hours=2))
        assert flow.next() == SELECT_BATTERIES
        assert flow.display_step == 2

        with pytest.raises(FormValidationError):
            flow.select_batteries(3)
        assert flow.select_batteries(2) == CONFIRM
        assert flow.display_step == 3

        booking = await flow.confirm()
        assert flow.step == SUCCESS
        assert booking["battery_quantity"] == 2
        assert booking["status"] == "pending"
        assert flow.timer.state == ReservationState.AWAITING_ACTIVATION

        await flow.cancel()
        assert flow.timer.state == ReservationState.CANCELLED
        assert (await BookingAPI(api).get(booking["booking_id"]))["status"] == "cancelled"
        flow.close()


@pytest.mark.asyncio
async def test_single_slot_vehicle_skips_battery_step(tmp_path):
    async with ApiClient.from_settings(store=AuthStore(tmp_path / "auth.json")) as api:
        flow = await open_flow(api, ONE_SLOT_VEHICLE)
        assert not flow.has_battery_step
        assert flow.total_steps == 3

        if flow.slots:
            flow.select_time(flow.slots[0])
            assert flow.selected_slot is flow.slots[0]
        else:
            flow.select_time(utcnow() + timedelta(hours=1))
        assert flow.next() == CONFIRM
        assert flow.display_step == 2
        assert flow.back() == SELECT_TIME

        flow.next()
        booking = await flow.confirm()
        assert booking["battery_quantity"] == 1
        flow.close()


@pytest.mark.asyncio
async def test_past_time_cannot_be_selected(tmp_path):
    async with ApiClient.from_settings(store=AuthStore(tmp_path / "auth.json")) as api:
        flow = await open_flow(api, ONE_SLOT_VEHICLE)
        with pytest.raises(BookingStateError) as excinfo:
            flow.select_time(utcnow() - timedelta(minutes=5))
        assert excinfo.value.message == messages.TIME_IN_PAST
        assert flow.selected_time is None


@pytest.mark.asyncio
async def test_unused_booking_is_deleted_after_window(tmp_path):
    async with ApiClient.from_settings(store=AuthStore(tmp_path / "auth.json")) as api:
        flow = await open_flow(api, ONE_SLOT_VEHICLE, window=timedelta(milliseconds=100))
        flow.select_time(utcnow() + timedelta(seconds=1))
        flow.next()
        booking = await flow.confirm()

        for _ in range(100):
            if flow.timer.state == ReservationState.EXPIRED and not flow.timer.has_live_timers:
                break
            await asyncio.sleep(0.05)
        assert flow.timer.state == ReservationState.EXPIRED

        with pytest.raises(ApiError) as excinfo:
            await BookingAPI(api).get(booking["booking_id"])
        assert excinfo.value.status_code == 404


@pytest.mark.asyncio
async def test_unavailable_station_blocks_the_wizard(tmp_path):
    async with ApiClient.from_settings(store=AuthStore(tmp_path / "auth.json")) as api:
        await AuthAPI(api).login(DRIVER_EMAIL, DRIVER_PASSWORD)
        vehicle = await VehicleAPI(api).get(ONE_SLOT_VEHICLE)
        station = await StationAPI(api).get(3)
        assert station["status"] == "maintenance"

        flow = BookingFlow(BookingAPI(api), station=station, vehicle=vehicle)
        with pytest.raises(ApiError) as excinfo:
            await flow.start()
        assert excinfo.value.message == messages.NOT_AVAILABLE
        assert flow.availability["available"] is False

        flow.select_time(utcnow() + timedelta(hours=1))
        with pytest.raises(ApiError):
            flow.next()
        assert flow.step == SELECT_TIME
