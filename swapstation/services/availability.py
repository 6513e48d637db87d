"""
Station battery availability checks.
"""
from __future__ import annotations

import logging
from typing import Any, Dict

from sqlalchemy import func
from sqlalchemy.orm import Session

from swapstation.core import messages
from swapstation.core.exceptions import AvailabilityError, NotFoundError
from swapstation.models import Battery, Station, Vehicle

logger = logging.getLogger(__name__)


def get_station(db: Session, station_id: int) -> Station:
    station = db.query(Station).filter(Station.station_id == station_id).first()
    if station is None:
        raise NotFoundError(messages.STATION_NOT_FOUND)
    return station


def check_availability(db: Session, station: Station, vehicle: Vehicle, quantity: int = 1) -> Dict[str, Any]:
    """Report whether ``station`` holds ``quantity`` free batteries matching the vehicle's battery type."""
    battery_type = vehicle.model.battery_type
    available_count = (
        db.query(func.count(Battery.battery_id))
        .filter(
            Battery.station_id == station.station_id,
            Battery.battery_type_id == battery_type.battery_type_id,
            Battery.status == "available",
        )
        .scalar()
    ) or 0
    total_slots = (
        db.query(func.count(Battery.battery_id))
        .filter(Battery.station_id == station.station_id)
        .scalar()
    ) or 0

    available = station.status == "operational" and available_count >= quantity
    logger.debug(
        "Availability station=%s vehicle=%s type=%s count=%s requested=%s -> %s",
        station.station_id,
        vehicle.vehicle_id,
        battery_type.battery_type_code,
        available_count,
        quantity,
        available,
    )
    return {
        "available": available,
        "message": None if available else messages.NOT_AVAILABLE,
        "availability_details": {
            "available_batteries_count": available_count,
            "total_slots": total_slots,
            "battery_type": battery_type.battery_type_code,
            "station_status": station.status,
            "requested_quantity": quantity,
        },
    }


def ensure_available(db: Session, station: Station, vehicle: Vehicle, quantity: int = 1) -> Dict[str, Any]:
    result = check_availability(db, station, vehicle, quantity)
    if not result["available"]:
        raise AvailabilityError(messages.NOT_AVAILABLE)
    return result


def available_counts_by_type(db: Session, station_id: int) -> Dict[str, int]:
    rows = (
        db.query(Battery.battery_type_id, func.count(Battery.battery_id))
        .filter(Battery.station_id == station_id, Battery.status == "available")
        .group_by(Battery.battery_type_id)
        .all()
    )
    return {str(type_id): count for type_id, count in rows}
