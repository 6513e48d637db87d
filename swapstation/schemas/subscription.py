from __future__ import annotations

from typing import Optional

from pydantic import Field, field_validator

from swapstation.schemas.base import FormModel


class SubscriptionPurchase(FormModel):
    plan_id: Optional[int] = Field(default=None, alias="planId")
    vehicle_id: str = Field(default="", alias="vehicleId")

    @field_validator("plan_id")
    @classmethod
    def require_plan(cls, value: Optional[int]) -> int:
        if value is None:
            raise ValueError("Vui lòng chọn loại gói dịch vụ")
        return value

    @field_validator("vehicle_id")
    @classmethod
    def require_vehicle(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Vui lòng chọn xe")
        return value.strip()
