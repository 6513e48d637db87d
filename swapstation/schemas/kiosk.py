from __future__ import annotations

from pydantic import Field, field_validator

from swapstation.schemas.base import FormModel


class KioskBookingScan(FormModel):
    booking_id: str = Field(default="", alias="bookingId")

    @field_validator("booking_id")
    @classmethod
    def require_booking(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Vui lòng nhập mã booking")
        return value.strip()


class KioskUserScan(FormModel):
    account_id: str = Field(default="", alias="userId")

    @field_validator("account_id")
    @classmethod
    def require_account(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Vui lòng quét mã người dùng")
        return value.strip()


class KioskVehicleChoice(FormModel):
    vehicle_id: str = Field(default="", alias="vehicleId")

    @field_validator("vehicle_id")
    @classmethod
    def require_vehicle(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Vui lòng chọn xe")
        return value.strip()


class KioskBatteryChoice(FormModel):
    count: int = 0

    @field_validator("count")
    @classmethod
    def positive_count(cls, value: int) -> int:
        if value < 1:
            raise ValueError("Vui lòng chọn số lượng pin")
        return value
