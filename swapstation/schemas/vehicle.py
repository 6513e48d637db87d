from __future__ import annotations

from typing import Optional

from pydantic import Field, field_validator

from swapstation.core import messages
from swapstation.schemas import validators
from swapstation.schemas.base import FormModel


class VehicleForm(FormModel):
    vin: str = ""
    model_id: Optional[int] = Field(default=None, alias="modelId")
    license_plate: str = Field(default="", alias="licensePlate")

    @field_validator("vin")
    @classmethod
    def validate_vin(cls, value: str) -> str:
        return validators.check_vin(value)

    @field_validator("model_id")
    @classmethod
    def validate_model(cls, value: Optional[int]) -> int:
        if value is None or value <= 0:
            raise ValueError(messages.INVALID_MODEL)
        return value

    @field_validator("license_plate")
    @classmethod
    def validate_license_plate(cls, value: str) -> str:
        return validators.check_license_plate(value)
