"""Async client for the SwapStation API."""

from .errors import ApiError, ForbiddenError, FormValidationError, UnauthorizedError
from .session import AuthSession, AuthStore
from .api import ApiClient, validate_form
from .services import AuthAPI, BookingAPI, KioskAPI, StationAPI, SubscriptionPlanAPI, VehicleAPI
from .booking_flow import BookingFlow

__all__ = [
    "ApiError",
    "ForbiddenError",
    "FormValidationError",
    "UnauthorizedError",
    "AuthSession",
    "AuthStore",
    "ApiClient",
    "validate_form",
    "AuthAPI",
    "BookingAPI",
    "KioskAPI",
    "StationAPI",
    "SubscriptionPlanAPI",
    "VehicleAPI",
    "BookingFlow",
]
