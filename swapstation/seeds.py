from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session

from swapstation.core.security import hash_password
from swapstation.models import Account, Battery, BatteryType, Station, SubscriptionPlan, Vehicle, VehicleModel

logger = logging.getLogger(__name__)

BATTERY_TYPE_SEED_DATA: list[dict[str, Any]] = [
    {"battery_type_id": 10, "battery_type_code": "LFP-48V-22Ah", "capacity_kwh": 1.06},
    {"battery_type_id": 11, "battery_type_code": "LFP-60V-30Ah", "capacity_kwh": 1.80},
    {"battery_type_id": 12, "battery_type_code": "NMC-72V-38Ah", "capacity_kwh": 2.74},
]

VEHICLE_MODEL_SEED_DATA: list[dict[str, Any]] = [
    {"model_id": 19, "name": "Ludo", "brand": "VinFast", "battery_type_id": 12, "battery_slot": 1, "avg_energy_usage": 2.10},
    {"model_id": 20, "name": "Impes", "brand": "VinFast", "battery_type_id": 12, "battery_slot": 1, "avg_energy_usage": 2.20},
    {"model_id": 21, "name": "Klara S", "brand": "VinFast", "battery_type_id": 10, "battery_slot": 1, "avg_energy_usage": 2.50},
    {"model_id": 22, "name": "Theon", "brand": "VinFast", "battery_type_id": 12, "battery_slot": 2, "avg_energy_usage": 2.80},
    {"model_id": 23, "name": "Vento", "brand": "VinFast", "battery_type_id": 11, "battery_slot": 2, "avg_energy_usage": 2.60},
    {"model_id": 24, "name": "Theon S", "brand": "VinFast", "battery_type_id": 12, "battery_slot": 2, "avg_energy_usage": 2.90},
    {"model_id": 25, "name": "Vento S", "brand": "VinFast", "battery_type_id": 11, "battery_slot": 2, "avg_energy_usage": 2.70},
    {"model_id": 26, "name": "Feliz S", "brand": "VinFast", "battery_type_id": 10, "battery_slot": 1, "avg_energy_usage": 2.40},
    {"model_id": 27, "name": "Evo200", "brand": "VinFast", "battery_type_id": 12, "battery_slot": 1, "avg_energy_usage": 2.30},
]

STATION_SEED_DATA: list[dict[str, Any]] = [
    {
        "station_id": 1,
        "station_name": "G3 Cầu Giấy",
        "address": "144 Xuân Thủy, Cầu Giấy, Hà Nội",
        "latitude": 21.0368,
        "longitude": 105.7825,
        "status": "operational",
        "stock": {10: 4, 11: 4, 12: 6},
    },
    {
        "station_id": 2,
        "station_name": "G3 Hoàn Kiếm",
        "address": "12 Tràng Tiền, Hoàn Kiếm, Hà Nội",
        "latitude": 21.0245,
        "longitude": 105.8542,
        "status": "operational",
        "stock": {10: 2, 12: 3},
    },
    {
        "station_id": 3,
        "station_name": "G3 Quận 1",
        "address": "65 Lê Lợi, Bến Nghé, Quận 1, TP. Hồ Chí Minh",
        "latitude": 10.7731,
        "longitude": 106.7004,
        "status": "maintenance",
        "stock": {11: 2, 12: 2},
    },
]

PLAN_SEED_DATA: list[dict[str, Any]] = [
    {
        "plan_id": 1,
        "plan_name": "Cơ bản",
        "description": "Gói tiết kiệm cho nhu cầu di chuyển trong thành phố",
        "plan_fee": 199000,
        "deposit_fee": 500000,
        "penalty_fee": 50000,
        "battery_cap": 20,
        "duration_days": 30,
        "is_active": True,
    },
    {
        "plan_id": 2,
        "plan_name": "Cao cấp",
        "description": "Nhiều lượt đổi pin hơn cho người dùng thường xuyên",
        "plan_fee": 349000,
        "deposit_fee": 500000,
        "penalty_fee": 40000,
        "battery_cap": 40,
        "duration_days": 30,
        "is_active": True,
    },
    {
        "plan_id": 3,
        "plan_name": "Không giới hạn (ngừng kinh doanh)",
        "description": "Gói cũ, không còn mở bán",
        "plan_fee": 599000,
        "deposit_fee": 1000000,
        "penalty_fee": 0,
        "battery_cap": 999,
        "duration_days": 30,
        "is_active": False,
    },
]

DEMO_ACCOUNTS: list[dict[str, Any]] = [
    {
        "account_id": "babc8bf4-222a-4c79-b5d2-a847b6a94296",
        "username": "admin",
        "email": "admin@example.com",
        "password": "admin1234",
        "fullname": "Quản trị viên",
        "phone_number": "0123456789",
        "permission": "admin",
    },
    {
        "account_id": "c9cd9cf5-333b-5d8a-c6e3-b958c7b95397",
        "username": "tynguyen",
        "email": "user@example.com",
        "password": "user1234",
        "fullname": "Nguyễn Văn A",
        "phone_number": "0987654321",
        "permission": "driver",
    },
]

DEMO_VEHICLES: list[dict[str, Any]] = [
    {
        "vehicle_id": "vehicle-001",
        "account_id": "c9cd9cf5-333b-5d8a-c6e3-b958c7b95397",
        "vin": "1HGBH41JXMN109186",
        "model_id": 22,
        "license_plate": "29A-12345",
        "battery_soh": 92,
    },
    {
        "vehicle_id": "vehicle-002",
        "account_id": "c9cd9cf5-333b-5d8a-c6e3-b958c7b95397",
        "vin": "5YJSA1E14HF123456",
        "model_id": 27,
        "license_plate": "30B-98765",
        "battery_soh": 88,
    },
]


def seed_reference_data(db: Session) -> int:
    """Insert battery types, vehicle models, stations with stock and plans when missing."""
    inserted = 0
    for item in BATTERY_TYPE_SEED_DATA:
        if db.get(BatteryType, item["battery_type_id"]) is None:
            db.add(BatteryType(**item))
            inserted += 1
    db.flush()

    for item in VEHICLE_MODEL_SEED_DATA:
        if db.get(VehicleModel, item["model_id"]) is None:
            db.add(VehicleModel(**item))
            inserted += 1

    for item in STATION_SEED_DATA:
        if db.get(Station, item["station_id"]) is not None:
            continue
        fields = {k: v for k, v in item.items() if k != "stock"}
        station = Station(**fields)
        for battery_type_id, count in item["stock"].items():
            for _ in range(count):
                station.batteries.append(Battery(battery_type_id=battery_type_id, soh=100))
        db.add(station)
        inserted += 1

    for item in PLAN_SEED_DATA:
        if db.get(SubscriptionPlan, item["plan_id"]) is None:
            db.add(SubscriptionPlan(**item))
            inserted += 1

    db.commit()
    if inserted:
        logger.info("Seeded %s reference rows", inserted)
    return inserted


def seed_demo_data(db: Session) -> int:
    """Insert the demo admin/driver accounts and their vehicles."""
    inserted = 0
    for item in DEMO_ACCOUNTS:
        if db.get(Account, item["account_id"]) is not None:
            continue
        fields = {k: v for k, v in item.items() if k != "password"}
        db.add(Account(password_hash=hash_password(item["password"]), **fields))
        inserted += 1
    db.flush()

    for item in DEMO_VEHICLES:
        if db.get(Vehicle, item["vehicle_id"]) is None:
            db.add(Vehicle(**item))
            inserted += 1

    db.commit()
    if inserted:
        logger.info("Seeded %s demo rows", inserted)
    return inserted
