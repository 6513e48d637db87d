"""
Station API Routes
Public station listing; create/update/delete are restricted to admins
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from swapstation.api.dependencies import ok
from swapstation.core import messages
from swapstation.core.exceptions import ConflictError
from swapstation.core.security import require_permission
from swapstation.core.timeutils import isoformat_utc
from swapstation.database import get_db
from swapstation.models import Account, Booking, Station
from swapstation.schemas.station import StationForm
from swapstation.services.availability import available_counts_by_type, get_station
from swapstation.services.booking_service import OPEN_STATUSES, release_batteries

logger = logging.getLogger(__name__)

router = APIRouter()


def station_payload(db: Session, station: Station) -> Dict[str, Any]:
    counts = available_counts_by_type(db, station.station_id)
    return {
        "station_id": station.station_id,
        "station_name": station.station_name,
        "address": station.address,
        "latitude": station.latitude,
        "longitude": station.longitude,
        "status": station.status,
        "available_by_type": counts,
        "available_batteries": sum(counts.values()),
        "total_slots": len(station.batteries),
        "created_at": isoformat_utc(station.created_at),
    }


@router.get("/")
async def list_stations(
    status: Optional[str] = None,
    battery_type_id: Optional[int] = None,
    db: Session = Depends(get_db),
) -> dict:
    query = db.query(Station)
    if status:
        query = query.filter(Station.status == status)
    stations = [station_payload(db, s) for s in query.order_by(Station.station_id).all()]
    if battery_type_id is not None:
        stations = [s for s in stations if s["available_by_type"].get(str(battery_type_id), 0) > 0]
    return ok({"stations": stations})


@router.get("/{station_id}")
async def get_station_detail(station_id: int, db: Session = Depends(get_db)) -> dict:
    return ok({"station": station_payload(db, get_station(db, station_id))})


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_station(
    payload: StationForm,
    admin: Account = Depends(require_permission("admin")),
    db: Session = Depends(get_db),
) -> dict:
    station = Station(**payload.model_dump())
    db.add(station)
    db.commit()
    db.refresh(station)
    logger.info("Station %s created by %s", station.station_id, admin.account_id)
    return ok({"station": station_payload(db, station)}, messages.STATION_CREATE_SUCCESS)


@router.put("/{station_id}")
async def update_station(
    station_id: int,
    payload: StationForm,
    admin: Account = Depends(require_permission("admin")),
    db: Session = Depends(get_db),
) -> dict:
    station = get_station(db, station_id)
    for field, value in payload.model_dump().items():
        setattr(station, field, value)
    db.commit()
    db.refresh(station)
    logger.info("Station %s updated by %s", station_id, admin.account_id)
    return ok({"station": station_payload(db, station)}, messages.STATION_UPDATE_SUCCESS)


@router.delete("/{station_id}")
async def delete_station(
    station_id: int,
    admin: Account = Depends(require_permission("admin")),
    db: Session = Depends(get_db),
) -> dict:
    station = get_station(db, station_id)
    bookings = db.query(Booking).filter(Booking.station_id == station_id).all()
    if any(b.status in OPEN_STATUSES for b in bookings):
        raise ConflictError(messages.STATION_HAS_BOOKINGS)
    for booking in bookings:
        release_batteries(db, booking)
        db.delete(booking)
    db.delete(station)
    db.commit()
    logger.info("Station %s deleted by %s", station_id, admin.account_id)
    return ok({"station_id": station_id}, messages.STATION_DELETE_SUCCESS)
