"""
Booking reservation lifecycle driven by an activation timer and an expiry timer.

    idle -> time_selected -> awaiting_activation -> active -> (completed | expired | cancelled)

Activation fires at the scheduled time; the reservation then stays active for
the booking window (15 minutes by default) and expires unless it is completed
first. Expiry runs the ``on_expire`` callback once, as a best-effort cleanup:
failures are logged and never retried.
"""
from __future__ import annotations

import asyncio
import inspect
import logging
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from swapstation.config import settings
from swapstation.core import messages
from swapstation.core.exceptions import BookingStateError
from swapstation.core.timeutils import isoformat_utc, to_naive_utc, utcnow

logger = logging.getLogger(__name__)

BookingCallback = Callable[[str], Any]
Clock = Callable[[], datetime]


class ReservationState(str, Enum):
    IDLE = "idle"
    TIME_SELECTED = "time_selected"
    AWAITING_ACTIVATION = "awaiting_activation"
    ACTIVE = "active"
    COMPLETED = "completed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset(
    {ReservationState.COMPLETED, ReservationState.EXPIRED, ReservationState.CANCELLED}
)


def default_window() -> timedelta:
    return timedelta(minutes=settings.booking_window_minutes)


class ReservationTimer:
    """One in-flight booking with its activation/expiry timer pair."""

    def __init__(
        self,
        window: Optional[timedelta] = None,
        *,
        on_activate: Optional[BookingCallback] = None,
        on_expire: Optional[BookingCallback] = None,
        clock: Clock = utcnow,
    ):
        self.window = window or default_window()
        self.state = ReservationState.IDLE
        self.booking_id: Optional[str] = None
        self.scheduled_time: Optional[datetime] = None
        self.activated_at: Optional[datetime] = None
        self._on_activate = on_activate
        self._on_expire = on_expire
        self._clock = clock
        self._activation_task: Optional[asyncio.Task] = None
        self._expiry_task: Optional[asyncio.Task] = None

    @property
    def expires_at(self) -> Optional[datetime]:
        if self.scheduled_time is None:
            return None
        return self.scheduled_time + self.window

    @property
    def has_live_timers(self) -> bool:
        return any(task is not None and not task.done() for task in (self._activation_task, self._expiry_task))

    def select_time(self, scheduled_time: datetime, *, allow_past: bool = False) -> None:
        if self.state not in (ReservationState.IDLE, ReservationState.TIME_SELECTED):
            raise BookingStateError(messages.TIME_ALREADY_LOCKED)
        scheduled_time = to_naive_utc(scheduled_time)
        if not allow_past and scheduled_time < self._clock():
            raise BookingStateError(messages.TIME_IN_PAST)
        self.scheduled_time = scheduled_time
        self.state = ReservationState.TIME_SELECTED

    def arm(self, booking_id: str) -> None:
        """Schedule activation at the selected time. Must be called from a running event loop."""
        if self.state != ReservationState.TIME_SELECTED or self.scheduled_time is None:
            raise BookingStateError(messages.MISSING_BOOKING_INFO)
        self.booking_id = booking_id
        self.state = ReservationState.AWAITING_ACTIVATION
        delay = max((self.scheduled_time - self._clock()).total_seconds(), 0.0)
        self._activation_task = asyncio.get_running_loop().create_task(self._activate_after(delay))
        logger.debug("Reservation %s armed, activation in %.1fs", booking_id, delay)

    async def _activate_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        await self._activate()

    async def _activate(self) -> None:
        if self.state != ReservationState.AWAITING_ACTIVATION:
            return
        self.state = ReservationState.ACTIVE
        self.activated_at = self._clock()
        self._activation_task = None
        # The window is anchored at the scheduled time, so a late activation never extends it.
        remaining = max((self.expires_at - self._clock()).total_seconds(), 0.0)
        self._expiry_task = asyncio.get_running_loop().create_task(self._expire_after(remaining))
        logger.info("Reservation %s active until %s", self.booking_id, isoformat_utc(self.expires_at))
        await self._run_callback(self._on_activate, "activation")

    async def _expire_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        if self.state != ReservationState.ACTIVE:
            return
        self.state = ReservationState.EXPIRED
        self._expiry_task = None
        logger.info("Reservation %s expired without confirmation", self.booking_id)
        await self._run_callback(self._on_expire, "expiry")

    async def _run_callback(self, callback: Optional[BookingCallback], label: str) -> None:
        if callback is None or self.booking_id is None:
            return
        try:
            result = callback(self.booking_id)
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            logger.error("Reservation %s callback failed for booking %s: %s", label, self.booking_id, exc)

    def complete(self) -> None:
        if self.state not in (ReservationState.AWAITING_ACTIVATION, ReservationState.ACTIVE):
            raise BookingStateError(messages.BOOKING_ALREADY_USED)
        if not self.is_active() and self.state == ReservationState.ACTIVE:
            raise BookingStateError(messages.BOOKING_EXPIRED)
        self.state = ReservationState.COMPLETED
        self.close()

    async def cancel(self, confirm: Optional[Callable[[str], Awaitable[Any] | Any]] = None) -> None:
        """Cancel the reservation; ``confirm`` (the server call) must succeed before the state changes."""
        if self.state in TERMINAL_STATES:
            raise BookingStateError(messages.BOOKING_NOT_CANCELLABLE)
        if confirm is not None and self.booking_id is not None:
            result = confirm(self.booking_id)
            if inspect.isawaitable(result):
                await result
        self.state = ReservationState.CANCELLED
        self.close()

    def close(self) -> None:
        """Clear both timers; safe to call repeatedly and from inside a timer callback."""
        current = asyncio.current_task() if _loop_running() else None
        for task in (self._activation_task, self._expiry_task):
            if task is not None and task is not current and not task.done():
                task.cancel()
        self._activation_task = None
        self._expiry_task = None

    def is_active(self, now: Optional[datetime] = None) -> bool:
        now = now or self._clock()
        return (
            self.state == ReservationState.ACTIVE
            and self.expires_at is not None
            and now < self.expires_at
        )

    def effective_state(self, now: Optional[datetime] = None) -> ReservationState:
        now = now or self._clock()
        if self.state == ReservationState.ACTIVE and not self.is_active(now):
            return ReservationState.EXPIRED
        return self.state

    def snapshot(self) -> Dict[str, Any]:
        return {
            "booking_id": self.booking_id,
            "state": self.effective_state().value,
            "scheduled_time": isoformat_utc(self.scheduled_time),
            "expires_at": isoformat_utc(self.expires_at),
            "activated_at": isoformat_utc(self.activated_at),
        }


def _loop_running() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


class ReservationRegistry:
    """Keeps at most one live timer pair per booking id."""

    def __init__(
        self,
        window: Optional[timedelta] = None,
        *,
        on_activate: Optional[BookingCallback] = None,
        on_expire: Optional[BookingCallback] = None,
        clock: Clock = utcnow,
    ):
        self.window = window
        self._on_activate = on_activate
        self._on_expire = on_expire
        self._clock = clock
        self._timers: Dict[str, ReservationTimer] = {}

    def __len__(self) -> int:
        return len(self._timers)

    def __contains__(self, booking_id: object) -> bool:
        return booking_id in self._timers

    def get(self, booking_id: str) -> Optional[ReservationTimer]:
        return self._timers.get(booking_id)

    def schedule(self, booking_id: str, scheduled_time: datetime, *, allow_past: bool = False) -> ReservationTimer:
        self.discard(booking_id)
        timer = ReservationTimer(
            self.window,
            on_activate=self._on_activate,
            on_expire=self._expire_callback,
            clock=self._clock,
        )
        timer.select_time(scheduled_time, allow_past=allow_past)
        timer.arm(booking_id)
        self._timers[booking_id] = timer
        return timer

    async def _expire_callback(self, booking_id: str) -> None:
        try:
            if self._on_expire is not None:
                result = self._on_expire(booking_id)
                if inspect.isawaitable(result):
                    await result
        finally:
            self._timers.pop(booking_id, None)

    def complete(self, booking_id: str) -> None:
        timer = self._timers.pop(booking_id, None)
        if timer is not None and timer.state not in TERMINAL_STATES:
            timer.state = ReservationState.COMPLETED
            timer.close()

    def discard(self, booking_id: str) -> None:
        timer = self._timers.pop(booking_id, None)
        if timer is not None:
            timer.close()

    def close_all(self) -> None:
        for timer in self._timers.values():
            timer.close()
        self._timers.clear()
