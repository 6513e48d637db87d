"""
Per-resource wrappers over ``ApiClient``.

Methods return the response payload. Methods that submit a form validate it
with the same schema the server uses and raise ``FormValidationError`` before
any request is made.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from swapstation.client.api import ApiClient, form_body, validate_form
from swapstation.client.errors import UnauthorizedError
from swapstation.schemas.auth import (
    EmailVerificationRequest,
    ForgotPasswordRequest,
    LoginRequest,
    PasswordChangeRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    ResetPasswordRequest,
    VerifyEmailRequest,
)
from swapstation.schemas.booking import BookingCreate
from swapstation.schemas.kiosk import KioskBatteryChoice, KioskBookingScan, KioskUserScan, KioskVehicleChoice
from swapstation.schemas.subscription import SubscriptionPurchase
from swapstation.schemas.vehicle import VehicleForm


def _payload(body: Dict[str, Any]) -> Dict[str, Any]:
    return body.get("payload") or {}


class AuthAPI:
    def __init__(self, api: ApiClient):
        self.api = api

    async def login(self, email: str, password: str, remember_me: bool = False) -> Dict[str, Any]:
        form = validate_form(LoginRequest, {"email": email, "password": password, "remember_me": remember_me})
        payload = _payload(await self.api.post("/api/auth/login", json=form_body(form), auth=False))
        self.api.store.save(
            payload["token"],
            payload["account"],
            refresh_token=payload.get("refresh_token"),
            remember_me=form.remember_me,
        )
        return payload

    async def request_verification(self, email: str) -> Dict[str, Any]:
        """Mail a six-digit code to an email that is not registered yet."""
        form = validate_form(EmailVerificationRequest, {"email": email})
        return _payload(await self.api.post("/api/auth/request-verification", json=form_body(form), auth=False))

    async def verify_email(self, email: str, code: str) -> Dict[str, Any]:
        form = validate_form(VerifyEmailRequest, {"email": email, "code": code})
        return _payload(await self.api.post("/api/auth/verify-email", json=form_body(form), auth=False))

    async def register(self, data: Dict[str, Any]) -> Dict[str, Any]:
        form = validate_form(RegisterRequest, data)
        return _payload(await self.api.post("/api/auth/register", json=form_body(form), auth=False))

    async def logout(self) -> None:
        if not self.api.store.token:
            return
        try:
            await self.api.post("/api/auth/logout")
        except UnauthorizedError:
            # Token already rejected; the store has been cleared.
            return

    async def refresh(self) -> Dict[str, Any]:
        body = {"refresh_token": self.api.store.refresh_token or ""}
        payload = _payload(await self.api.post("/api/auth/refresh", json=body, auth=False))
        self.api.store.save(
            payload["token"],
            payload["account"],
            refresh_token=payload.get("refresh_token"),
            remember_me=self.api.store.remember_me,
        )
        return payload

    async def get_profile(self) -> Dict[str, Any]:
        return _payload(await self.api.get("/api/auth/profile"))["account"]

    async def update_profile(self, data: Dict[str, Any]) -> Dict[str, Any]:
        form = validate_form(ProfileUpdateRequest, data)
        return _payload(await self.api.put("/api/auth/profile", json=form_body(form)))["account"]

    async def forgot_password(self, email: str) -> Dict[str, Any]:
        form = validate_form(ForgotPasswordRequest, {"email": email})
        return _payload(await self.api.post("/api/auth/forgot-password", json=form_body(form), auth=False))

    async def reset_password(self, data: Dict[str, Any]) -> Dict[str, Any]:
        form = validate_form(ResetPasswordRequest, data)
        return await self.api.post("/api/auth/reset-password", json=form_body(form), auth=False)

    async def change_password(self, data: Dict[str, Any]) -> Dict[str, Any]:
        form = validate_form(PasswordChangeRequest, data)
        return await self.api.post("/api/auth/change-password", json=form_body(form))


class VehicleAPI:
    def __init__(self, api: ApiClient):
        self.api = api

    async def list_models(self) -> list:
        return _payload(await self.api.get("/api/EV/models", auth=False))["models"]

    async def list(self) -> list:
        return _payload(await self.api.get("/api/EV/"))["vehicles"]

    async def get(self, vehicle_id: str) -> Dict[str, Any]:
        return _payload(await self.api.get(f"/api/EV/{vehicle_id}"))["vehicle"]

    async def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        form = validate_form(VehicleForm, data)
        return _payload(await self.api.post("/api/EV/", json=form_body(form)))["vehicle"]

    async def update(self, vehicle_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        form = validate_form(VehicleForm, data)
        return _payload(await self.api.put(f"/api/EV/{vehicle_id}", json=form_body(form)))["vehicle"]

    async def delete(self, vehicle_id: str) -> Dict[str, Any]:
        return await self.api.delete(f"/api/EV/{vehicle_id}")


class StationAPI:
    def __init__(self, api: ApiClient):
        self.api = api

    async def list(self, status: Optional[str] = None, battery_type_id: Optional[int] = None) -> list:
        params: Dict[str, Any] = {}
        if status:
            params["status"] = status
        if battery_type_id is not None:
            params["battery_type_id"] = battery_type_id
        return _payload(await self.api.get("/api/station/", params=params, auth=False))["stations"]

    async def get(self, station_id: int) -> Dict[str, Any]:
        return _payload(await self.api.get(f"/api/station/{station_id}", auth=False))["station"]


class BookingAPI:
    def __init__(self, api: ApiClient):
        self.api = api

    async def time_slots(self) -> Dict[str, Any]:
        return _payload(await self.api.get("/api/booking/time-slots", auth=False))

    async def check_availability(self, station_id: int, vehicle_id: str, quantity: int = 1) -> Dict[str, Any]:
        params = {"stationId": station_id, "vehicleId": vehicle_id, "batteryQuantity": quantity}
        return _payload(await self.api.get("/api/booking/availability", params=params))

    async def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        form = validate_form(BookingCreate, data)
        return _payload(await self.api.post("/api/booking/", json=form_body(form)))["booking"]

    async def list(self, status: Optional[str] = None) -> list:
        params = {"status": status} if status else None
        return _payload(await self.api.get("/api/booking/", params=params))["bookings"]

    async def upcoming(self) -> list:
        return _payload(await self.api.get("/api/booking/upcoming"))["bookings"]

    async def get(self, booking_id: str) -> Dict[str, Any]:
        return _payload(await self.api.get(f"/api/booking/{booking_id}"))["booking"]

    async def cancel(self, booking_id: str) -> Dict[str, Any]:
        return _payload(await self.api.post(f"/api/booking/{booking_id}/cancel"))["booking"]

    async def delete(self, booking_id: str) -> Dict[str, Any]:
        return await self.api.delete(f"/api/booking/{booking_id}")


class SubscriptionPlanAPI:
    def __init__(self, api: ApiClient):
        self.api = api

    async def list_plans(self) -> list:
        return _payload(await self.api.get("/api/subscription-plans/", auth=False))["plans"]

    async def get_plan(self, plan_id: int) -> Dict[str, Any]:
        return _payload(await self.api.get(f"/api/subscription-plans/{plan_id}", auth=False))["plan"]

    async def purchase(self, data: Dict[str, Any]) -> Dict[str, Any]:
        form = validate_form(SubscriptionPurchase, data)
        return _payload(await self.api.post("/api/subscriptions/", json=form_body(form)))["subscription"]

    async def confirm_payment(self, subscription_id: str) -> Dict[str, Any]:
        body = await self.api.post(f"/api/subscriptions/{subscription_id}/confirm-payment")
        return _payload(body)["subscription"]

    async def list_subscriptions(self) -> list:
        return _payload(await self.api.get("/api/subscriptions/"))["subscriptions"]


class KioskAPI:
    """Kiosk screens of one station; these calls carry no user token."""

    def __init__(self, api: ApiClient, station_id: int):
        self.api = api
        self.station_id = station_id

    def _path(self, action: str = "") -> str:
        base = f"/api/kiosk/{self.station_id}"
        return f"{base}/{action}" if action else base

    async def _send(self, action: str, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return _payload(await self.api.post(self._path(action), json=json, auth=False))

    async def state(self) -> Dict[str, Any]:
        return _payload(await self.api.get(self._path(), auth=False))

    async def scan_user(self, user_id: str) -> Dict[str, Any]:
        form = validate_form(KioskUserScan, {"userId": user_id})
        return await self._send("scan-user", form_body(form))

    async def select_vehicle(self, vehicle_id: str) -> Dict[str, Any]:
        form = validate_form(KioskVehicleChoice, {"vehicleId": vehicle_id})
        return await self._send("select-vehicle", form_body(form))

    async def select_batteries(self, count: int) -> Dict[str, Any]:
        form = validate_form(KioskBatteryChoice, {"count": count})
        return await self._send("select-batteries", form_body(form))

    async def check_availability(self) -> Dict[str, Any]:
        return await self._send("check-availability")

    async def start_swap(self) -> Dict[str, Any]:
        return await self._send("start-swap")

    async def scan_booking(self, booking_id: str) -> Dict[str, Any]:
        form = validate_form(KioskBookingScan, {"bookingId": booking_id})
        return await self._send("scan-booking", form_body(form))

    async def confirm_step(self) -> Dict[str, Any]:
        return await self._send("confirm-step")

    async def emergency_stop(self) -> Dict[str, Any]:
        return await self._send("emergency-stop")

    async def reset(self) -> Dict[str, Any]:
        return await self._send("reset")
