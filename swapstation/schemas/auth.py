from __future__ import annotations

import re
from typing import Optional

from pydantic import Field, ValidationInfo, field_validator

from swapstation.core import messages
from swapstation.schemas import validators
from swapstation.schemas.base import FormModel

OTP_PATTERN = re.compile(r"\d{6}")


class LoginRequest(FormModel):
    email: str = ""
    password: str = ""
    remember_me: bool = Field(default=False, alias="rememberMe")

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        return validators.check_email(value)

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        if len(value) < 8:
            raise ValueError("Mật khẩu phải có ít nhất 8 ký tự")
        return value


class RegisterRequest(FormModel):
    fullname: str = ""
    email: str = ""
    phone_number: str = ""
    citizen_id: str = ""
    driving_license: str = ""
    password: str = ""
    confirm_password: str = Field(default="", alias="confirmPassword")

    @field_validator("fullname")
    @classmethod
    def validate_fullname(cls, value: str) -> str:
        return validators.check_fullname(value)

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        return validators.check_email(value)

    @field_validator("phone_number")
    @classmethod
    def validate_phone_number(cls, value: str) -> str:
        return validators.check_phone(value)

    @field_validator("citizen_id")
    @classmethod
    def validate_citizen_id(cls, value: str) -> str:
        return validators.check_citizen_id(value)

    @field_validator("driving_license")
    @classmethod
    def validate_driving_license(cls, value: str) -> str:
        return validators.check_driving_license(value)

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        return validators.check_password(value)

    @field_validator("confirm_password")
    @classmethod
    def passwords_match(cls, value: str, info: ValidationInfo) -> str:
        if "password" in info.data and value != info.data["password"]:
            raise ValueError("Mật khẩu xác nhận không khớp")
        return value


class ForgotPasswordRequest(FormModel):
    email: str = ""

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        return validators.check_email(value)


def _check_code(value: str) -> str:
    value = value.strip()
    if not OTP_PATTERN.fullmatch(value):
        raise ValueError(messages.OTP_FORMAT)
    return value


class EmailVerificationRequest(FormModel):
    email: str = ""

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        return validators.check_email(value)


class VerifyEmailRequest(EmailVerificationRequest):
    code: str = ""

    @field_validator("code")
    @classmethod
    def validate_code(cls, value: str) -> str:
        return _check_code(value)


class ResetPasswordRequest(FormModel):
    """Reset with either the emailed link token or the email plus its six-digit code."""

    token: str = ""
    email: str = ""
    code: str = ""
    new_password: str = Field(default="", alias="newPassword")
    confirm_password: str = Field(default="", alias="confirmPassword")

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        return validators.check_email(value) if value.strip() else ""

    @field_validator("code")
    @classmethod
    def validate_code(cls, value: str) -> str:
        return _check_code(value) if value.strip() else ""

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, value: str) -> str:
        return validators.check_password(value, label="Mật khẩu mới")

    @field_validator("confirm_password")
    @classmethod
    def passwords_match(cls, value: str, info: ValidationInfo) -> str:
        if "new_password" in info.data and value != info.data["new_password"]:
            raise ValueError("Mật khẩu xác nhận không khớp")
        return value


class PasswordChangeRequest(FormModel):
    current_password: str = Field(default="", alias="currentPassword")
    new_password: str = Field(default="", alias="newPassword")
    confirm_new_password: str = Field(default="", alias="confirmNewPassword")

    @field_validator("current_password")
    @classmethod
    def require_current(cls, value: str) -> str:
        if not value:
            raise ValueError("Mật khẩu hiện tại là bắt buộc")
        return value

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, value: str) -> str:
        return validators.check_password(value, minimum=6, maximum=100, label="Mật khẩu mới")

    @field_validator("confirm_new_password")
    @classmethod
    def passwords_match(cls, value: str, info: ValidationInfo) -> str:
        if "new_password" in info.data and value != info.data["new_password"]:
            raise ValueError("Mật khẩu xác nhận không khớp")
        return value


class ProfileUpdateRequest(FormModel):
    fullname: str = ""
    email: Optional[str] = None
    phone: str = Field(default="", alias="phone_number")
    citizen_id: str = ""
    driving_license: str = ""

    @field_validator("fullname")
    @classmethod
    def validate_fullname(cls, value: str) -> str:
        return validators.check_fullname(value)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, value: str) -> str:
        return validators.check_phone(value)

    @field_validator("citizen_id")
    @classmethod
    def validate_citizen_id(cls, value: str) -> str:
        return validators.check_citizen_id(value)

    @field_validator("driving_license")
    @classmethod
    def validate_driving_license(cls, value: str) -> str:
        return validators.check_driving_license(value)

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return validators.check_email(value, strict=True)


class RefreshRequest(FormModel):
    refresh_token: str = Field(default="", alias="refreshToken")
