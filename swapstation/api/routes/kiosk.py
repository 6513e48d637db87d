"""
Kiosk API Routes
Station-side, unauthenticated swap screens
"""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from swapstation.api.dependencies import get_kiosks, ok
from swapstation.database import get_db
from swapstation.schemas.kiosk import KioskBatteryChoice, KioskBookingScan, KioskUserScan, KioskVehicleChoice
from swapstation.services.availability import get_station
from swapstation.services.kiosk import KioskManager, KioskSession

router = APIRouter()


def kiosk_session(
    station_id: int,
    db: Session = Depends(get_db),
    kiosks: KioskManager = Depends(get_kiosks),
) -> KioskSession:
    get_station(db, station_id)
    return kiosks.get(station_id)


@router.get("/{station_id}")
async def kiosk_state(session: KioskSession = Depends(kiosk_session)) -> dict:
    return ok(session.snapshot())


@router.post("/{station_id}/scan-user")
async def scan_user(
    payload: KioskUserScan,
    session: KioskSession = Depends(kiosk_session),
    db: Session = Depends(get_db),
) -> dict:
    return ok(session.scan_user(db, payload.account_id))


@router.post("/{station_id}/select-vehicle")
async def select_vehicle(
    payload: KioskVehicleChoice,
    session: KioskSession = Depends(kiosk_session),
    db: Session = Depends(get_db),
) -> dict:
    return ok(session.select_vehicle(db, payload.vehicle_id))


@router.post("/{station_id}/select-batteries")
async def select_batteries(
    payload: KioskBatteryChoice,
    session: KioskSession = Depends(kiosk_session),
) -> dict:
    return ok(session.select_batteries(payload.count))


@router.post("/{station_id}/check-availability")
async def check_availability(
    session: KioskSession = Depends(kiosk_session),
    db: Session = Depends(get_db),
) -> dict:
    return ok(session.check_availability(db))


@router.post("/{station_id}/start-swap")
async def start_swap(
    session: KioskSession = Depends(kiosk_session),
    db: Session = Depends(get_db),
) -> dict:
    return ok(session.start_walk_in_swap(db))


@router.post("/{station_id}/scan-booking")
async def scan_booking(
    payload: KioskBookingScan,
    session: KioskSession = Depends(kiosk_session),
    db: Session = Depends(get_db),
) -> dict:
    return ok(session.scan_booking(db, payload.booking_id))


@router.post("/{station_id}/confirm-step")
async def confirm_step(session: KioskSession = Depends(kiosk_session)) -> dict:
    return ok(session.confirm_step())


@router.post("/{station_id}/emergency-stop")
async def emergency_stop(
    session: KioskSession = Depends(kiosk_session),
    db: Session = Depends(get_db),
) -> dict:
    return ok(session.emergency_stop(db))


@router.post("/{station_id}/reset")
async def reset(session: KioskSession = Depends(kiosk_session)) -> dict:
    session.reset()
    return ok(session.snapshot())
