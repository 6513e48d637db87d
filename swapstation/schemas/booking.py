from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from swapstation.core.timeutils import to_naive_utc
from swapstation.schemas.base import FormModel


class BookingCreate(FormModel):
    station_id: Optional[int] = Field(default=None, alias="stationId")
    vehicle_id: str = Field(default="", alias="vehicleId")
    scheduled_time: Optional[datetime] = Field(default=None, alias="scheduledTime")
    battery_quantity: int = Field(default=1, alias="batteryQuantity")

    @field_validator("station_id")
    @classmethod
    def require_station(cls, value: Optional[int]) -> int:
        if value is None:
            raise ValueError("Vui lòng chọn trạm")
        return value

    @field_validator("vehicle_id")
    @classmethod
    def require_vehicle(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Vui lòng chọn xe")
        return value.strip()

    @field_validator("scheduled_time")
    @classmethod
    def require_time(cls, value: Optional[datetime]) -> datetime:
        if value is None:
            raise ValueError("Vui lòng chọn thời gian")
        return to_naive_utc(value)

    @field_validator("battery_quantity")
    @classmethod
    def positive_quantity(cls, value: int) -> int:
        if value < 1:
            raise ValueError("Số lượng pin phải lớn hơn 0")
        return value
