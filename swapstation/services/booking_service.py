"""
Booking lifecycle: creation with battery reservation, cancellation, expiry and
swap completion.

Reserved batteries are released explicitly whenever a booking leaves the open
states; the ``SET NULL`` foreign key is not relied on (SQLite ignores it).
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from swapstation.config import settings
from swapstation.core import messages
from swapstation.core.exceptions import BookingStateError, NotFoundError, ValidationError
from swapstation.core.timeutils import isoformat_utc, to_naive_utc, utcnow
from swapstation.database import SessionLocal
from swapstation.models import Account, Battery, Booking, Station, Subscription, Vehicle
from swapstation.schemas.booking import BookingCreate
from swapstation.services.availability import ensure_available, get_station
from swapstation.services.vehicles import get_owned_vehicle

logger = logging.getLogger(__name__)

OPEN_STATUSES = ("pending", "confirmed")
STAFF_PERMISSIONS = ("staff", "admin")


def booking_window() -> timedelta:
    return timedelta(minutes=settings.booking_window_minutes)


def effective_status(booking: Booking, now: Optional[datetime] = None) -> str:
    """Status as seen by readers; open bookings past their window read as ``expired``."""
    now = now or utcnow()
    if booking.status not in OPEN_STATUSES:
        return booking.status
    if booking.swap_started_at is not None:
        return "confirmed"
    if now >= booking.scheduled_end_time:
        return "expired"
    if now >= booking.scheduled_time:
        return "confirmed"
    return booking.status


def serialize_booking(booking: Booking, now: Optional[datetime] = None) -> Dict[str, Any]:
    status = effective_status(booking, now)
    vehicle = booking.vehicle
    station = booking.station
    return {
        "booking_id": booking.booking_id,
        "account_id": booking.account_id,
        "vehicle_id": booking.vehicle_id,
        "station_id": booking.station_id,
        "battery_quantity": booking.battery_quantity,
        "scheduled_time": isoformat_utc(booking.scheduled_time),
        "scheduled_end_time": isoformat_utc(booking.scheduled_end_time),
        "status": status,
        "is_active": status == "confirmed",
        "source": booking.source,
        "create_time": isoformat_utc(booking.create_time),
        "completed_time": isoformat_utc(booking.completed_time),
        "swap_started_at": isoformat_utc(booking.swap_started_at),
        "vehicle": {
            "vehicle_id": vehicle.vehicle_id,
            "license_plate": vehicle.license_plate,
            "model_name": vehicle.model.name if vehicle.model else None,
        } if vehicle else None,
        "station": {
            "station_id": station.station_id,
            "station_name": station.station_name,
            "address": station.address,
        } if station else None,
        "batteries": [battery.battery_id for battery in booking.batteries],
    }


def _reserve_batteries(db: Session, booking: Booking, battery_type_id: int) -> List[Battery]:
    batteries = (
        db.query(Battery)
        .filter(
            Battery.station_id == booking.station_id,
            Battery.battery_type_id == battery_type_id,
            Battery.status == "available",
        )
        .order_by(Battery.soh.desc(), Battery.battery_id)
        .limit(booking.battery_quantity)
        .all()
    )
    for battery in batteries:
        battery.status = "reserved"
        battery.booking_id = booking.booking_id
    return batteries


def release_batteries(db: Session, booking: Booking) -> int:
    released = 0
    for battery in db.query(Battery).filter(Battery.booking_id == booking.booking_id).all():
        if battery.status == "reserved":
            battery.status = "available"
            battery.booking_id = None
            released += 1
    return released


def _insert_booking(
    db: Session,
    *,
    account_id: str,
    vehicle: Vehicle,
    station: Station,
    scheduled_time: datetime,
    quantity: int,
    status: str,
    source: str,
) -> Booking:
    if quantity > (vehicle.model.battery_slot or 1):
        raise ValidationError(
            messages.BATTERY_QUANTITY_INVALID,
            {"battery_quantity": messages.BATTERY_QUANTITY_INVALID},
        )
    ensure_available(db, station, vehicle, quantity)

    booking = Booking(
        account_id=account_id,
        vehicle_id=vehicle.vehicle_id,
        station_id=station.station_id,
        battery_quantity=quantity,
        scheduled_time=scheduled_time,
        scheduled_end_time=scheduled_time + booking_window(),
        status=status,
        source=source,
    )
    db.add(booking)
    db.flush()
    _reserve_batteries(db, booking, vehicle.model.battery_type_id)
    db.commit()
    db.refresh(booking)
    logger.info(
        "Booking %s created for vehicle %s at station %s (%s battery, %s)",
        booking.booking_id,
        vehicle.vehicle_id,
        station.station_id,
        quantity,
        source,
    )
    return booking


def create_booking(db: Session, account: Account, payload: BookingCreate, now: Optional[datetime] = None) -> Booking:
    now = now or utcnow()
    vehicle = get_owned_vehicle(db, account.account_id, payload.vehicle_id)
    station = get_station(db, payload.station_id)
    scheduled_time = to_naive_utc(payload.scheduled_time)
    if scheduled_time < now:
        raise ValidationError(messages.TIME_IN_PAST, {"scheduled_time": messages.TIME_IN_PAST})
    return _insert_booking(
        db,
        account_id=account.account_id,
        vehicle=vehicle,
        station=station,
        scheduled_time=scheduled_time,
        quantity=payload.battery_quantity,
        status="pending",
        source="app",
    )


def create_walk_in(
    db: Session,
    account_id: str,
    vehicle: Vehicle,
    station: Station,
    quantity: int,
    now: Optional[datetime] = None,
) -> Booking:
    """Booking for a swap started at the kiosk without a prior reservation."""
    return _insert_booking(
        db,
        account_id=account_id,
        vehicle=vehicle,
        station=station,
        scheduled_time=now or utcnow(),
        quantity=quantity,
        status="confirmed",
        source="kiosk",
    )


def get_booking(db: Session, booking_id: str) -> Booking:
    booking = db.query(Booking).filter(Booking.booking_id == booking_id).first()
    if booking is None:
        raise NotFoundError(messages.BOOKING_NOT_FOUND)
    return booking


def get_booking_for_account(db: Session, account: Account, booking_id: str) -> Booking:
    booking = get_booking(db, booking_id)
    if booking.account_id != account.account_id and account.permission not in STAFF_PERMISSIONS:
        raise NotFoundError(messages.BOOKING_NOT_FOUND)
    return booking


def list_bookings(db: Session, account_id: str, status: Optional[str] = None) -> List[Booking]:
    query = db.query(Booking).filter(Booking.account_id == account_id)
    if status:
        query = query.filter(Booking.status == status)
    return query.order_by(Booking.scheduled_time.desc()).all()


def list_upcoming(db: Session, account_id: str, now: Optional[datetime] = None) -> List[Booking]:
    """Open bookings whose window has not ended, soonest first."""
    now = now or utcnow()
    return (
        db.query(Booking)
        .filter(
            Booking.account_id == account_id,
            Booking.status.in_(OPEN_STATUSES),
            Booking.scheduled_end_time > now,
        )
        .order_by(Booking.scheduled_time.asc())
        .all()
    )


def cancel_booking(db: Session, booking: Booking, now: Optional[datetime] = None) -> Booking:
    if booking.swap_started_at is not None:
        raise BookingStateError(messages.BOOKING_SWAP_IN_PROGRESS)
    if effective_status(booking, now) not in OPEN_STATUSES:
        raise BookingStateError(messages.BOOKING_NOT_CANCELLABLE)
    booking.status = "cancelled"
    released = release_batteries(db, booking)
    db.commit()
    db.refresh(booking)
    logger.info("Booking %s cancelled, %s batteries released", booking.booking_id, released)
    return booking


def delete_booking(db: Session, booking: Booking) -> None:
    booking_id = booking.booking_id
    release_batteries(db, booking)
    db.delete(booking)
    db.commit()
    logger.info("Booking %s deleted", booking_id)


def validate_for_swap(booking: Booking, station: Station, now: Optional[datetime] = None) -> None:
    """Reject bookings that cannot be redeemed at ``station`` right now."""
    now = now or utcnow()
    if booking.station_id != station.station_id:
        raise BookingStateError(messages.wrong_station(booking.station.station_name, station.station_name))
    if booking.status == "completed":
        raise BookingStateError(messages.BOOKING_ALREADY_USED)
    if booking.status == "cancelled":
        raise BookingStateError(messages.BOOKING_WAS_CANCELLED)
    if booking.swap_started_at is not None:
        raise BookingStateError(messages.BOOKING_SWAP_IN_PROGRESS)
    if now >= booking.scheduled_end_time:
        raise BookingStateError(messages.BOOKING_EXPIRED)


def start_swap(db: Session, booking: Booking, now: Optional[datetime] = None) -> Booking:
    """Mark a booking as being swapped; expiry leaves it alone until the swap ends."""
    booking.swap_started_at = now or utcnow()
    db.commit()
    db.refresh(booking)
    return booking


def abandon_swap(db: Session, booking: Booking) -> Booking:
    """Undo a started swap: walk-in bookings are cancelled, app bookings reopen for the rest of their window."""
    booking.swap_started_at = None
    if booking.source == "kiosk" and booking.status in OPEN_STATUSES:
        booking.status = "cancelled"
        release_batteries(db, booking)
    db.commit()
    db.refresh(booking)
    logger.info("Swap for booking %s abandoned (%s)", booking.booking_id, booking.status)
    return booking


def complete_swap(db: Session, booking: Booking, now: Optional[datetime] = None) -> Booking:
    """Hand the reserved batteries to the vehicle and store the returned ones as charging."""
    now = now or utcnow()
    if booking.status == "completed":
        raise BookingStateError(messages.BOOKING_ALREADY_USED)
    if booking.status == "cancelled":
        raise BookingStateError(messages.BOOKING_WAS_CANCELLED)

    vehicle = booking.vehicle
    dispensed = db.query(Battery).filter(Battery.booking_id == booking.booking_id).all()
    for battery in dispensed:
        battery.status = "in_use"
        battery.station_id = None

    for _ in range(booking.battery_quantity):
        db.add(
            Battery(
                station_id=booking.station_id,
                battery_type_id=vehicle.model.battery_type_id,
                soh=vehicle.battery_soh,
                status="charging",
            )
        )
    if dispensed:
        vehicle.battery_soh = min(battery.soh for battery in dispensed)

    subscription = (
        db.query(Subscription)
        .filter(
            Subscription.vehicle_id == vehicle.vehicle_id,
            Subscription.status == "active",
            Subscription.end_date > now,
        )
        .first()
    )
    if subscription is not None:
        subscription.swaps_used = (subscription.swaps_used or 0) + booking.battery_quantity

    booking.status = "completed"
    booking.completed_time = now
    db.commit()
    db.refresh(booking)
    logger.info("Booking %s completed with %s batteries dispensed", booking.booking_id, len(dispensed))
    return booking


def activate_due(db: Session, now: Optional[datetime] = None) -> int:
    now = now or utcnow()
    due = (
        db.query(Booking)
        .filter(
            Booking.status == "pending",
            Booking.scheduled_time <= now,
            Booking.scheduled_end_time > now,
        )
        .all()
    )
    for booking in due:
        booking.status = "confirmed"
    if due:
        db.commit()
    return len(due)


def expire_overdue(db: Session, now: Optional[datetime] = None) -> int:
    """Delete open bookings whose window has ended and release their batteries."""
    now = now or utcnow()
    overdue = (
        db.query(Booking)
        .filter(
            Booking.status.in_(OPEN_STATUSES),
            Booking.scheduled_end_time <= now,
            Booking.swap_started_at.is_(None),
        )
        .all()
    )
    for booking in overdue:
        release_batteries(db, booking)
        db.delete(booking)
    if overdue:
        db.commit()
        logger.info("Expired %s overdue bookings", len(overdue))
    return len(overdue)


def activate_reservation(booking_id: str, session_factory: Callable[[], Session] = SessionLocal) -> bool:
    """Activation timer callback: flip a pending booking to ``confirmed``."""
    db = session_factory()
    try:
        booking = db.query(Booking).filter(Booking.booking_id == booking_id).first()
        if booking is None or booking.status != "pending":
            return False
        booking.status = "confirmed"
        db.commit()
        logger.info("Booking %s is now active", booking_id)
        return True
    finally:
        db.close()


def expire_reservation(booking_id: str, session_factory: Callable[[], Session] = SessionLocal) -> bool:
    """Expiry timer callback: delete a booking that was never redeemed."""
    db = session_factory()
    try:
        booking = db.query(Booking).filter(Booking.booking_id == booking_id).first()
        if booking is None or booking.status not in OPEN_STATUSES:
            return False
        if booking.swap_started_at is not None:
            logger.info("Booking %s window ended during a swap, keeping it", booking_id)
            return False
        delete_booking(db, booking)
        return True
    finally:
        db.close()


def restore_reservations(db: Session, registry: Any, now: Optional[datetime] = None) -> int:
    """Re-arm timers for open bookings after a restart."""
    now = now or utcnow()
    # Kiosk sessions do not survive a restart, so no swap is still running.
    interrupted = (
        db.query(Booking)
        .filter(Booking.status.in_(OPEN_STATUSES), Booking.swap_started_at.isnot(None))
        .all()
    )
    for booking in interrupted:
        abandon_swap(db, booking)
    bookings = (
        db.query(Booking)
        .filter(Booking.status.in_(OPEN_STATUSES), Booking.scheduled_end_time > now)
        .all()
    )
    for booking in bookings:
        registry.schedule(booking.booking_id, booking.scheduled_time, allow_past=True)
    if bookings:
        logger.info("Restored %s reservation timers", len(bookings))
    return len(bookings)
