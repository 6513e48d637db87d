"""
Shared route helpers: the success envelope and app-state accessors.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import Request

from swapstation.services.kiosk import KioskManager
from swapstation.services.reservation_timer import ReservationRegistry


def ok(payload: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True, "payload": payload if payload is not None else {}}
    if message:
        body["message"] = message
    return body


def get_reservations(request: Request) -> ReservationRegistry:
    return request.app.state.reservations


def get_kiosks(request: Request) -> KioskManager:
    return request.app.state.kiosks
