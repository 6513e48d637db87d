"""
Vehicle API Routes
Driver-owned vehicles and the vehicle model catalog
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from swapstation.api.dependencies import ok
from swapstation.core import messages
from swapstation.core.exceptions import ConflictError, ValidationError
from swapstation.core.security import get_current_user
from swapstation.database import get_db
from swapstation.models import Account, Booking, Subscription, Vehicle, VehicleModel
from swapstation.schemas.vehicle import VehicleForm
from swapstation.services.booking_service import OPEN_STATUSES, release_batteries
from swapstation.services.vehicles import get_owned_vehicle, list_owned_vehicles, serialize_model, serialize_vehicle

logger = logging.getLogger(__name__)

router = APIRouter()


def _model_or_error(db: Session, model_id: int) -> VehicleModel:
    model = db.get(VehicleModel, model_id)
    if model is None:
        raise ValidationError(messages.INVALID_MODEL, {"model_id": messages.INVALID_MODEL})
    return model


def _ensure_unique_vin(db: Session, vin: str, exclude_vehicle_id: str | None = None) -> None:
    query = db.query(Vehicle).filter(Vehicle.vin == vin)
    if exclude_vehicle_id:
        query = query.filter(Vehicle.vehicle_id != exclude_vehicle_id)
    if query.first() is not None:
        raise ConflictError(messages.VIN_EXISTS, {"vin": messages.VIN_EXISTS})


@router.get("/models")
async def list_models(db: Session = Depends(get_db)) -> dict:
    models = db.query(VehicleModel).order_by(VehicleModel.model_id).all()
    return ok({"models": [serialize_model(m) for m in models]})


@router.get("/")
async def list_vehicles(
    user: Account = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    vehicles = list_owned_vehicles(db, user.account_id)
    return ok({"vehicles": [serialize_vehicle(v) for v in vehicles]})


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_vehicle(
    payload: VehicleForm,
    user: Account = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    _model_or_error(db, payload.model_id)
    _ensure_unique_vin(db, payload.vin)

    vehicle = Vehicle(
        account_id=user.account_id,
        vin=payload.vin,
        model_id=payload.model_id,
        license_plate=payload.license_plate,
        battery_soh=100,
    )
    db.add(vehicle)
    db.commit()
    db.refresh(vehicle)
    logger.info("Vehicle %s added for account %s", vehicle.vehicle_id, user.account_id)
    return ok({"vehicle": serialize_vehicle(vehicle)}, messages.VEHICLE_CREATE_SUCCESS)


@router.get("/{vehicle_id}")
async def get_vehicle(
    vehicle_id: str,
    user: Account = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    vehicle = get_owned_vehicle(db, user.account_id, vehicle_id)
    return ok({"vehicle": serialize_vehicle(vehicle)})


@router.put("/{vehicle_id}")
async def update_vehicle(
    vehicle_id: str,
    payload: VehicleForm,
    user: Account = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    vehicle = get_owned_vehicle(db, user.account_id, vehicle_id)
    _model_or_error(db, payload.model_id)
    _ensure_unique_vin(db, payload.vin, exclude_vehicle_id=vehicle.vehicle_id)

    vehicle.vin = payload.vin
    vehicle.model_id = payload.model_id
    vehicle.license_plate = payload.license_plate
    db.commit()
    db.refresh(vehicle)
    return ok({"vehicle": serialize_vehicle(vehicle)}, messages.VEHICLE_UPDATE_SUCCESS)


@router.delete("/{vehicle_id}")
async def delete_vehicle(
    vehicle_id: str,
    user: Account = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    vehicle = get_owned_vehicle(db, user.account_id, vehicle_id)
    bookings = db.query(Booking).filter(Booking.vehicle_id == vehicle.vehicle_id).all()
    if any(b.status in OPEN_STATUSES for b in bookings):
        raise ConflictError(messages.VEHICLE_HAS_BOOKINGS)

    message = messages.vehicle_deleted(vehicle.model.name if vehicle.model else "", vehicle.license_plate)
    for booking in bookings:
        release_batteries(db, booking)
        db.delete(booking)
    db.query(Subscription).filter(Subscription.vehicle_id == vehicle.vehicle_id).delete()
    db.delete(vehicle)
    db.commit()
    logger.info("Vehicle %s deleted by account %s", vehicle_id, user.account_id)
    return ok({"vehicle_id": vehicle_id}, message)
