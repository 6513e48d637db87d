"""
Booking wizard: time selection -> [battery count] -> confirmation -> success.

The battery count step only exists for vehicles with more than one battery
slot. Confirming creates the booking and arms a reservation timer; when the
booking window passes unused, the timer deletes the booking on the server.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Union

from swapstation.client.errors import ApiError, FormValidationError
from swapstation.client.services import BookingAPI
from swapstation.core import messages
from swapstation.core.exceptions import BookingStateError
from swapstation.core.timeutils import parse_iso, to_naive_utc, utcnow
from swapstation.services.reservation_timer import ReservationState, ReservationTimer

logger = logging.getLogger(__name__)

SELECT_TIME, SELECT_BATTERIES, CONFIRM, SUCCESS = 1, 2, 3, 4


class BookingFlow:
    def __init__(
        self,
        bookings: BookingAPI,
        *,
        station: Dict[str, Any],
        vehicle: Dict[str, Any],
        window: Optional[timedelta] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.bookings = bookings
        self.station = station
        self.vehicle = vehicle
        self.step = SELECT_TIME
        self.slots: List[Dict[str, Any]] = []
        self.selected_slot: Optional[Dict[str, Any]] = None
        self.battery_count = 1
        self.availability: Optional[Dict[str, Any]] = None
        self.booking: Optional[Dict[str, Any]] = None
        self.timer = ReservationTimer(window, on_expire=self._expire_booking, clock=clock)

    @property
    def battery_slot(self) -> int:
        model = self.vehicle.get("model") or {}
        return int(model.get("battery_slot") or 1)

    @property
    def has_battery_step(self) -> bool:
        return self.battery_slot > 1

    @property
    def total_steps(self) -> int:
        return 4 if self.has_battery_step else 3

    @property
    def display_step(self) -> int:
        """Position shown to the user; single-slot vehicles skip the battery step."""
        if not self.has_battery_step and self.step > SELECT_BATTERIES:
            return self.step - 1
        return self.step

    @property
    def title(self) -> str:
        return messages.STEP_TITLES[self.step]

    @property
    def selected_time(self) -> Optional[datetime]:
        return self.timer.scheduled_time

    async def start(self) -> Dict[str, Any]:
        """Check the station can serve this vehicle and load today's slots.

        A negative answer raises ``ApiError`` and keeps the wizard on its first step.
        """
        self.availability = await self.bookings.check_availability(
            self.station["station_id"], self.vehicle["vehicle_id"], 1
        )
        slots = await self.bookings.time_slots()
        self.slots = slots.get("slots", [])
        self._require_available()
        return self.availability

    def _require_available(self) -> None:
        if self.availability is not None and not self.availability.get("available"):
            raise ApiError(self.availability.get("message") or messages.NOT_AVAILABLE, status_code=409)

    def select_time(self, slot: Union[Dict[str, Any], datetime]) -> datetime:
        if isinstance(slot, dict):
            scheduled = parse_iso(slot["time"])
            self.selected_slot = slot
        else:
            scheduled = to_naive_utc(slot)
            self.selected_slot = None
        self.timer.select_time(scheduled)
        return scheduled

    def next(self) -> int:
        if self.step == SELECT_TIME:
            self._require_available()
            if self.selected_time is None:
                raise FormValidationError(
                    "Vui lòng chọn thời gian", errors={"scheduled_time": "Vui lòng chọn thời gian"}
                )
            if self.has_battery_step:
                self.step = SELECT_BATTERIES
            else:
                self.battery_count = 1
                self.step = CONFIRM
        elif self.step == SELECT_BATTERIES:
            self.step = CONFIRM
        return self.step

    def select_batteries(self, count: int) -> int:
        if not 1 <= count <= self.battery_slot:
            raise FormValidationError(
                messages.BATTERY_QUANTITY_INVALID, errors={"battery_quantity": messages.BATTERY_QUANTITY_INVALID}
            )
        self.battery_count = count
        self.step = CONFIRM
        return self.step

    def back(self) -> int:
        if self.step == SUCCESS:
            return self.step
        if self.step == CONFIRM and not self.has_battery_step:
            self.step = SELECT_TIME
        else:
            self.step = max(SELECT_TIME, self.step - 1)
        return self.step

    async def confirm(self) -> Dict[str, Any]:
        if self.step != CONFIRM:
            raise BookingStateError(messages.KIOSK_INVALID_STEP)
        if self.timer.state != ReservationState.TIME_SELECTED:
            raise BookingStateError(messages.MISSING_BOOKING_INFO)
        self._require_available()
        booking = await self.bookings.create(
            {
                "station_id": self.station["station_id"],
                "vehicle_id": self.vehicle["vehicle_id"],
                "scheduled_time": self.selected_time,
                "battery_quantity": self.battery_count,
            }
        )
        self.booking = booking
        self.step = SUCCESS
        self.timer.arm(booking["booking_id"])
        return booking

    async def cancel(self) -> None:
        """Cancel on the server first; the local state only changes if that succeeds."""
        await self.timer.cancel(self.bookings.cancel)

    async def _expire_booking(self, booking_id: str) -> None:
        logger.info("Booking %s window passed, removing it", booking_id)
        await self.bookings.delete(booking_id)

    def close(self) -> None:
        self.timer.close()
