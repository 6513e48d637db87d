"""
Booking API Routes
Battery swap reservations with a fixed activation window
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from swapstation.api.dependencies import get_reservations, ok
from swapstation.core import messages
from swapstation.core.exceptions import BookingStateError
from swapstation.core.security import get_current_user
from swapstation.database import get_db
from swapstation.models import Account
from swapstation.schemas.booking import BookingCreate
from swapstation.services import booking_service
from swapstation.services.availability import check_availability, get_station
from swapstation.services.reservation_timer import ReservationRegistry
from swapstation.services.time_slots import slots_payload
from swapstation.services.vehicles import get_owned_vehicle

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/time-slots")
async def time_slots() -> dict:
    return ok(slots_payload())


@router.get("/availability")
async def availability(
    station_id: int = Query(..., alias="stationId"),
    vehicle_id: str = Query(..., alias="vehicleId"),
    quantity: int = Query(1, ge=1, alias="batteryQuantity"),
    user: Account = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    station = get_station(db, station_id)
    vehicle = get_owned_vehicle(db, user.account_id, vehicle_id)
    return ok(check_availability(db, station, vehicle, quantity))


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreate,
    user: Account = Depends(get_current_user),
    db: Session = Depends(get_db),
    reservations: ReservationRegistry = Depends(get_reservations),
) -> dict:
    booking = booking_service.create_booking(db, user, payload)
    reservations.schedule(booking.booking_id, booking.scheduled_time, allow_past=True)
    return ok({"booking": booking_service.serialize_booking(booking)}, messages.BOOKING_CREATED_OK)


@router.get("/")
async def list_bookings(
    status: Optional[str] = None,
    user: Account = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    bookings = booking_service.list_bookings(db, user.account_id, status)
    return ok({"bookings": [booking_service.serialize_booking(b) for b in bookings]})


@router.get("/upcoming")
async def upcoming_bookings(
    user: Account = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    bookings = booking_service.list_upcoming(db, user.account_id)
    return ok({"bookings": [booking_service.serialize_booking(b) for b in bookings]})


@router.get("/{booking_id}")
async def get_booking(
    booking_id: str,
    user: Account = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    booking = booking_service.get_booking_for_account(db, user, booking_id)
    return ok({"booking": booking_service.serialize_booking(booking)})


@router.post("/{booking_id}/cancel")
async def cancel_booking(
    booking_id: str,
    user: Account = Depends(get_current_user),
    db: Session = Depends(get_db),
    reservations: ReservationRegistry = Depends(get_reservations),
) -> dict:
    booking = booking_service.get_booking_for_account(db, user, booking_id)
    booking = booking_service.cancel_booking(db, booking)
    reservations.discard(booking_id)
    return ok({"booking": booking_service.serialize_booking(booking)}, messages.BOOKING_CANCELLED_OK)


@router.delete("/{booking_id}")
async def delete_booking(
    booking_id: str,
    user: Account = Depends(get_current_user),
    db: Session = Depends(get_db),
    reservations: ReservationRegistry = Depends(get_reservations),
) -> dict:
    booking = booking_service.get_booking_for_account(db, user, booking_id)
    if booking.status == "completed":
        raise BookingStateError(messages.BOOKING_ALREADY_USED)
    booking_service.delete_booking(db, booking)
    reservations.discard(booking_id)
    return ok({"booking_id": booking_id}, messages.BOOKING_DELETED_OK)
