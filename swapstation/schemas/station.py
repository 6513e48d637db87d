from __future__ import annotations

from typing import Optional

from pydantic import Field, field_validator

from swapstation.schemas.base import FormModel

STATION_STATUSES = ("operational", "maintenance", "closed")


class StationForm(FormModel):
    station_name: str = Field(default="", alias="stationName")
    address: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    status: str = "operational"

    @field_validator("station_name")
    @classmethod
    def require_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Tên trạm là bắt buộc")
        if len(value.strip()) > 200:
            raise ValueError("Tên trạm không được quá 200 ký tự")
        return value.strip()

    @field_validator("address")
    @classmethod
    def require_address(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Địa chỉ là bắt buộc")
        return value.strip()

    @field_validator("latitude")
    @classmethod
    def check_latitude(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and not -90 <= value <= 90:
            raise ValueError("Vĩ độ không hợp lệ")
        return value

    @field_validator("longitude")
    @classmethod
    def check_longitude(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and not -180 <= value <= 180:
            raise ValueError("Kinh độ không hợp lệ")
        return value

    @field_validator("status")
    @classmethod
    def check_status(cls, value: str) -> str:
        if value not in STATION_STATUSES:
            raise ValueError("Trạng thái trạm không hợp lệ")
        return value
