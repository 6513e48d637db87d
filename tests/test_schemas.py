from __future__ import annotations

import pytest
from pydantic import ValidationError

from swapstation.core import messages
from swapstation.core.exceptions import validation_errors_to_fields
from swapstation.schemas.auth import (
    LoginRequest,
    PasswordChangeRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    ResetPasswordRequest,
    VerifyEmailRequest,
)
from swapstation.schemas.booking import BookingCreate
from swapstation.schemas.vehicle import VehicleForm

VALID_REGISTRATION = {
    "fullname": "Nguyễn Văn B",
    "email": "Driver.B@Example.com",
    "phone_number": "0912345678",
    "citizen_id": "001203004567",
    "driving_license": "790123456789",
    "password": "secret123",
    "confirmPassword": "secret123",
}


def field_errors(schema, data):
    with pytest.raises(ValidationError) as excinfo:
        schema.model_validate(data)
    return validation_errors_to_fields(excinfo.value.errors())


def test_register_normalizes_email():
    form = RegisterRequest.model_validate(VALID_REGISTRATION)
    assert form.email == "driver.b@example.com"
    assert form.fullname == "Nguyễn Văn B"


def test_register_rejects_mismatched_confirmation():
    errors = field_errors(RegisterRequest, {**VALID_REGISTRATION, "confirmPassword": "other1234"})
    assert "Mật khẩu xác nhận không khớp" in errors.values()


def test_register_rejects_bad_citizen_province():
    errors = field_errors(RegisterRequest, {**VALID_REGISTRATION, "citizen_id": "991203004567"})
    assert any("Mã tỉnh" in message for message in errors.values())


def test_missing_fields_report_localized_messages():
    errors = field_errors(LoginRequest, {})
    assert "Email là bắt buộc" in errors.values()
    assert "Mật khẩu phải có ít nhất 8 ký tự" in errors.values()


def test_vehicle_form_uppercases_vin_and_plate():
    form = VehicleForm.model_validate(
        {"vin": "1hgbh41jxmn109186", "modelId": 22, "licensePlate": "29a-12345"}
    )
    assert form.vin == "1HGBH41JXMN109186"
    assert form.license_plate == "29A-12345"


@pytest.mark.parametrize("vin", ["1HGBH41JXMN10918", "1HGBH41IXMN109186", "1HGBH41OXMN109186"])
def test_vehicle_form_rejects_invalid_vin(vin):
    errors = field_errors(VehicleForm, {"vin": vin, "modelId": 22, "licensePlate": "29A-12345"})
    assert any("VIN" in message for message in errors.values())


@pytest.mark.parametrize("plate", ["42A-12345", "10A-1234", "29AB-1234", "29A-123"])
def test_vehicle_form_rejects_invalid_plate(plate):
    errors = field_errors(VehicleForm, {"vin": "1HGBH41JXMN109186", "modelId": 22, "licensePlate": plate})
    assert any("Biển số" in message for message in errors.values())


def test_vehicle_form_requires_model():
    errors = field_errors(VehicleForm, {"vin": "1HGBH41JXMN109186", "licensePlate": "29A-12345"})
    assert messages.INVALID_MODEL in errors.values()


def test_booking_create_requires_selection():
    errors = field_errors(BookingCreate, {})
    assert set(errors.values()) >= {"Vui lòng chọn trạm", "Vui lòng chọn xe", "Vui lòng chọn thời gian"}


def test_booking_create_normalizes_aware_time_to_utc():
    form = BookingCreate.model_validate(
        {"stationId": 1, "vehicleId": "vehicle-001", "scheduledTime": "2030-01-01T10:00:00+07:00"}
    )
    assert form.scheduled_time.tzinfo is None
    assert form.scheduled_time.hour == 3
    assert form.battery_quantity == 1


def test_password_change_requires_current_password():
    errors = field_errors(
        PasswordChangeRequest,
        {"currentPassword": "", "newPassword": "abcdef", "confirmNewPassword": "abcdef"},
    )
    assert "Mật khẩu hiện tại là bắt buộc" in errors.values()


def test_profile_update_strict_email_rules():
    errors = field_errors(
        ProfileUpdateRequest,
        {
            "fullname": "Nguyễn Văn A",
            "email": "user..name@example.com",
            "phone_number": "0987654321",
            "citizen_id": "001203004567",
            "driving_license": "790123456789",
        },
    )
    assert "Email không được chứa hai dấu chấm liên tiếp" in errors.values()


def test_verification_code_must_be_six_digits():
    errors = field_errors(VerifyEmailRequest, {"email": "a@example.com", "code": "12345"})
    assert errors["code"] == messages.OTP_FORMAT

    form = VerifyEmailRequest.model_validate({"email": "A@Example.com", "code": " 012345 "})
    assert form.email == "a@example.com"
    assert form.code == "012345"


def test_reset_form_accepts_token_or_code():
    by_token = ResetPasswordRequest.model_validate(
        {"token": "abc", "newPassword": "password1", "confirmPassword": "password1"}
    )
    assert by_token.code == ""
    assert by_token.email == ""

    errors = field_errors(
        ResetPasswordRequest,
        {"email": "a@example.com", "code": "abcdef", "newPassword": "password1", "confirmPassword": "password1"},
    )
    assert errors["code"] == messages.OTP_FORMAT
