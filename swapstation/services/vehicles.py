"""
Vehicle lookups and serializers shared by the vehicle, booking and kiosk routes.
"""
from __future__ import annotations

from typing import Any, Dict, List

from sqlalchemy.orm import Session

from swapstation.core import messages
from swapstation.core.exceptions import NotFoundError
from swapstation.core.timeutils import isoformat_utc
from swapstation.models import Vehicle, VehicleModel


def get_owned_vehicle(db: Session, account_id: str, vehicle_id: str) -> Vehicle:
    """Return the vehicle if it belongs to ``account_id``; other owners' vehicles look missing."""
    vehicle = (
        db.query(Vehicle)
        .filter(Vehicle.vehicle_id == vehicle_id, Vehicle.account_id == account_id)
        .first()
    )
    if vehicle is None:
        raise NotFoundError(messages.VEHICLE_NOT_FOUND)
    return vehicle


def list_owned_vehicles(db: Session, account_id: str) -> List[Vehicle]:
    return (
        db.query(Vehicle)
        .filter(Vehicle.account_id == account_id)
        .order_by(Vehicle.created_at.desc(), Vehicle.vehicle_id)
        .all()
    )


def serialize_model(model: VehicleModel) -> Dict[str, Any]:
    return {
        "model_id": model.model_id,
        "name": model.name,
        "brand": model.brand,
        "battery_type_id": model.battery_type_id,
        "battery_type": model.battery_type.battery_type_code if model.battery_type else None,
        "battery_slot": model.battery_slot,
        "avg_energy_usage": float(model.avg_energy_usage) if model.avg_energy_usage is not None else None,
    }


def serialize_vehicle(vehicle: Vehicle) -> Dict[str, Any]:
    return {
        "vehicle_id": vehicle.vehicle_id,
        "account_id": vehicle.account_id,
        "vin": vehicle.vin,
        "model_id": vehicle.model_id,
        "model": serialize_model(vehicle.model) if vehicle.model else None,
        "license_plate": vehicle.license_plate,
        "battery_soh": vehicle.battery_soh,
        "status": vehicle.status,
        "created_at": isoformat_utc(vehicle.created_at),
        "updated_at": isoformat_utc(vehicle.updated_at),
    }
