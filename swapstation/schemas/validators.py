"""Field rules shared by the form schemas. Each check raises ValueError with a user-facing message."""
from __future__ import annotations

import re

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
FULLNAME_PATTERN = re.compile(
    r"^[a-zA-ZÀ-ỹĂĐĨŨƠàáảãạăằắẳẵặâầấẩẫậèéẻẽẹêềếểễệđìíỉĩịòóỏõọôồốổỗộơờớởỡợùúủũụưừứửữựỳýỷỹỵ\s]+$"
)
PHONE_PATTERN = re.compile(r"^[0-9]{10,11}$")
TWELVE_DIGITS = re.compile(r"^[0-9]{12}$")
VIN_PATTERN = re.compile(r"^[A-HJ-NPR-Z0-9]{17}$")
LICENSE_PLATE_PATTERN = re.compile(r"^[0-9]{2}[A-Z]-[0-9]{4,5}$")
EXCLUDED_PLATE_PROVINCES = frozenset({42, 44, 45, 46, 87, 91, 96})


def check_email(value: str, strict: bool = False) -> str:
    value = value.strip()
    if not value:
        raise ValueError("Email là bắt buộc")
    if "@" not in value:
        raise ValueError("Email không hợp lệ")
    if len(value) > 100:
        raise ValueError("Email không được quá 100 ký tự")
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Email không đúng định dạng")
    if strict:
        if ".." in value:
            raise ValueError("Email không được chứa hai dấu chấm liên tiếp")
        if len(value.split("@")[0]) > 64:
            raise ValueError("Phần trước @ không được quá 64 ký tự")
    return value.lower()


def check_password(value: str, minimum: int = 8, maximum: int = 50, label: str = "Mật khẩu") -> str:
    if len(value) < minimum:
        raise ValueError(f"{label} phải có ít nhất {minimum} ký tự")
    if len(value) > maximum:
        raise ValueError(f"{label} không được quá {maximum} ký tự")
    return value


def check_fullname(value: str) -> str:
    if len(value) < 2:
        raise ValueError("Họ tên phải có ít nhất 2 ký tự")
    if len(value) > 50:
        raise ValueError("Họ tên không được quá 50 ký tự")
    if not FULLNAME_PATTERN.match(value):
        raise ValueError("Họ tên chỉ được chứa chữ cái và khoảng trắng")
    if len(value.strip()) < 2:
        raise ValueError("Họ tên không được chỉ chứa khoảng trắng")
    if re.search(r"\s{2,}", value):
        raise ValueError("Họ tên không được chứa nhiều khoảng trắng liên tiếp")
    return value.strip()


def check_phone(value: str) -> str:
    if not PHONE_PATTERN.match(value):
        raise ValueError("Số điện thoại phải có 10-11 chữ số")
    return value


def _check_province_document(value: str, label: str) -> str:
    if not value:
        raise ValueError(f"{label} là bắt buộc")
    if not TWELVE_DIGITS.match(value):
        raise ValueError(f"{label} phải có đúng 12 chữ số")
    if not 1 <= int(value[:2]) <= 96:
        raise ValueError(f"Mã tỉnh trong {label.lower()} không hợp lệ")
    return value


def check_citizen_id(value: str) -> str:
    return _check_province_document(value, "Căn cước công dân")


def check_driving_license(value: str) -> str:
    return _check_province_document(value, "Bằng lái xe")


def check_vin(value: str) -> str:
    value = value.strip().upper()
    if not value:
        raise ValueError("Số VIN là bắt buộc")
    if len(value) != 17:
        raise ValueError("Số VIN phải có đúng 17 ký tự")
    if not VIN_PATTERN.match(value):
        raise ValueError("Số VIN không hợp lệ (chỉ gồm chữ in hoa và số, không có I, O, Q)")
    return value


def check_license_plate(value: str) -> str:
    value = value.strip().upper()
    if len(value) < 8:
        raise ValueError("Biển số xe là bắt buộc")
    if len(value) > 9:
        raise ValueError("Biển số xe không được quá 9 ký tự")
    if not LICENSE_PLATE_PATTERN.match(value):
        raise ValueError("Biển số xe không đúng định dạng (VD: 20A-1234 hoặc 20A-12345)")
    province = int(value[:2])
    if province < 11 or province > 99 or province in EXCLUDED_PLATE_PROVINCES:
        raise ValueError(
            "Biển số không hợp lệ: mã tỉnh phải từ 11-99 và không thuộc 42, 44, 45, 46, 87, 91, 96"
        )
    return value
