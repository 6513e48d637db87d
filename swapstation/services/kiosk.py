"""
Station kiosk: per-station session screens and the physical swap sequence.

A kiosk session walks a driver from identification to a finished swap:

    home -> user_verified -> vehicle_selected -> battery_selected
         -> availability_checked -> swapping -> complete

or, with an existing booking, straight from home to swapping. Any screen other
than home and swapping falls back to home after the idle timeout; the complete
screen returns home on its own after a short countdown.
"""
from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from swapstation.config import settings
from swapstation.core import messages
from swapstation.core.exceptions import AppError, AvailabilityError, BookingStateError, NotFoundError, ValidationError
from swapstation.database import SessionLocal
from swapstation.models import Account, Booking
from swapstation.services import availability, booking_service
from swapstation.services.vehicles import get_owned_vehicle, list_owned_vehicles, serialize_vehicle

logger = logging.getLogger(__name__)

PROGRESS_INCREMENT = 5
START_DELAY_SECONDS = 1.0
STEP_GAP_SECONDS = 0.5
FINISH_DELAY_SECONDS = 1.0


class KioskScreen(str, Enum):
    HOME = "home"
    USER_VERIFIED = "user_verified"
    VEHICLE_SELECTED = "vehicle_selected"
    BATTERY_SELECTED = "battery_selected"
    AVAILABILITY_CHECKED = "availability_checked"
    SWAPPING = "swapping"
    COMPLETE = "complete"


class StepStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


@dataclass
class SwapStep:
    key: str
    title: str
    description: str
    duration: Optional[float] = None  # seconds; None waits for a physical confirmation
    status: StepStatus = StepStatus.PENDING
    progress: int = 0

    @property
    def manual(self) -> bool:
        return self.duration is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "title": self.title,
            "description": self.description,
            "mode": "manual" if self.manual else "auto",
            "duration": self.duration,
            "status": self.status.value,
            "progress": self.progress,
        }


SWAP_STEP_DEFINITIONS = (
    ("authenticate_booking", "Xác thực booking", "Đang xác thực thông tin đặt lịch", 3.0),
    ("prepare_slot", "Chuẩn bị khoang pin", "Đang mở khoang chứa pin", 4.0),
    ("insert_old_battery", "Đưa pin cũ vào", "Vui lòng đặt pin cũ vào khoang và xác nhận", None),
    ("verify_old_battery", "Kiểm tra pin cũ", "Đang kiểm tra tình trạng pin vừa trả", 8.0),
    ("dispense_new_battery", "Nhận pin mới", "Vui lòng lấy pin mới ra khỏi khoang và xác nhận", None),
    ("finalize", "Hoàn tất", "Đang cập nhật thông tin giao dịch", 3.0),
)


def build_swap_steps() -> List[SwapStep]:
    return [SwapStep(key, title, description, duration) for key, title, description, duration in SWAP_STEP_DEFINITIONS]


class SwapSequence:
    """Runs the fixed swap steps as one asyncio task."""

    def __init__(
        self,
        on_complete: Optional[Callable[[], Any]] = None,
        on_error: Optional[Callable[[BaseException], Any]] = None,
        time_scale: Optional[float] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.steps = build_swap_steps()
        self.current_index = -1
        self.finished = False
        self.aborted = False
        self._on_complete = on_complete
        self._on_error = on_error
        self._time_scale = settings.kiosk_step_time_scale if time_scale is None else time_scale
        self._sleep = sleep
        self._confirmed = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def current_step(self) -> Optional[SwapStep]:
        if 0 <= self.current_index < len(self.steps):
            return self.steps[self.current_index]
        return None

    @property
    def waiting_for_confirmation(self) -> bool:
        step = self.current_step
        return step is not None and step.manual and step.status == StepStatus.IN_PROGRESS

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self._task is not None:
            raise BookingStateError(messages.KIOSK_INVALID_STEP)
        self._task = asyncio.get_running_loop().create_task(self._run())
        self._task.add_done_callback(self._collect_result)

    def _collect_result(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        logger.error("Swap sequence failed: %s", exc, exc_info=exc)
        if self._on_error is not None:
            self._on_error(exc)

    async def _pause(self, seconds: float) -> None:
        await self._sleep(seconds * self._time_scale)

    async def _run(self) -> None:
        await self._pause(START_DELAY_SECONDS)
        for index, step in enumerate(self.steps):
            if index:
                await self._pause(STEP_GAP_SECONDS)
            self.current_index = index
            step.status = StepStatus.IN_PROGRESS
            if step.manual:
                self._confirmed.clear()
                await self._confirmed.wait()
            else:
                tick = step.duration / (100 / PROGRESS_INCREMENT)
                while step.progress < 100:
                    await self._pause(tick)
                    step.progress = min(100, step.progress + PROGRESS_INCREMENT)
            step.progress = 100
            step.status = StepStatus.COMPLETED
            logger.debug("Swap step %s completed", step.key)

        await self._pause(FINISH_DELAY_SECONDS)
        self.finished = True
        if self._on_complete is not None:
            result = self._on_complete()
            if inspect.isawaitable(result):
                await result

    def confirm_step(self) -> SwapStep:
        """Physical confirmation for the manual step currently waiting."""
        if not self.waiting_for_confirmation:
            raise BookingStateError(messages.KIOSK_NO_MANUAL_STEP)
        step = self.current_step
        self._confirmed.set()
        return step

    def abort(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
            self.aborted = True

    async def wait(self) -> None:
        """Wait for the sequence task; an aborted sequence returns quietly."""
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            if not self.aborted:
                raise

    def to_dict(self) -> Dict[str, Any]:
        step = self.current_step
        return {
            "current_step": step.key if step else None,
            "current_index": self.current_index,
            "waiting_for_confirmation": self.waiting_for_confirmation,
            "finished": self.finished,
            "aborted": self.aborted,
            "steps": [s.to_dict() for s in self.steps],
        }


class KioskSession:
    """Screen state for the kiosk of one station."""

    def __init__(
        self,
        station_id: int,
        *,
        session_factory: Callable[[], Session] = SessionLocal,
        on_swap_completed: Optional[Callable[[str], Any]] = None,
        clock: Callable[[], float] = time.monotonic,
        idle_timeout: Optional[float] = None,
        complete_return: Optional[float] = None,
        time_scale: Optional[float] = None,
    ):
        self.station_id = station_id
        self._session_factory = session_factory
        self._on_swap_completed = on_swap_completed
        self._clock = clock
        self.idle_timeout = idle_timeout if idle_timeout is not None else settings.kiosk_idle_timeout_seconds
        self.complete_return = (
            complete_return if complete_return is not None else settings.kiosk_complete_return_seconds
        )
        self._time_scale = time_scale
        self.screen = KioskScreen.HOME
        self.sequence: Optional[SwapSequence] = None
        self.error: Optional[str] = None
        self.result: Optional[Dict[str, Any]] = None
        self.last_activity = clock()
        self.completed_at: Optional[float] = None
        self._clear_selection()

    def _clear_selection(self) -> None:
        self.account_id: Optional[str] = None
        self.fullname: Optional[str] = None
        self.vehicles: List[Dict[str, Any]] = []
        self.vehicle_id: Optional[str] = None
        self.battery_slot = 1
        self.battery_count: Optional[int] = None
        self.availability: Optional[Dict[str, Any]] = None
        self.booking_id: Optional[str] = None

    def touch(self, now: Optional[float] = None) -> None:
        self.last_activity = self._clock() if now is None else now

    def check_idle(self, now: Optional[float] = None) -> bool:
        """Reset to home when idle for too long; return True when a reset happened."""
        now = self._clock() if now is None else now
        if self.screen in (KioskScreen.HOME, KioskScreen.SWAPPING):
            return False
        if self.screen == KioskScreen.COMPLETE and self.completed_at is not None:
            if now - self.completed_at >= self.complete_return:
                self.reset()
                return True
        if now - self.last_activity >= self.idle_timeout:
            logger.info("Kiosk %s idle on %s, returning home", self.station_id, self.screen.value)
            self.reset()
            return True
        return False

    def reset(self) -> None:
        if self.sequence is not None and self.sequence.running:
            self.sequence.abort()
        self.sequence = None
        self.screen = KioskScreen.HOME
        self.error = None
        self.result = None
        self.completed_at = None
        self._clear_selection()
        self.touch()

    def _require_screen(self, *screens: KioskScreen) -> None:
        if self.screen not in screens:
            raise BookingStateError(messages.KIOSK_INVALID_STEP)

    def scan_user(self, db: Session, account_id: str) -> Dict[str, Any]:
        self._require_screen(KioskScreen.HOME)
        self.touch()
        account = db.query(Account).filter(Account.account_id == account_id).first()
        if account is None or account.status != "active":
            raise NotFoundError(messages.USER_NOT_FOUND)
        vehicles = list_owned_vehicles(db, account.account_id)
        if not vehicles:
            raise ValidationError(messages.KIOSK_NO_VEHICLES)
        self.account_id = account.account_id
        self.fullname = account.fullname
        self.vehicles = [serialize_vehicle(vehicle) for vehicle in vehicles]
        self.screen = KioskScreen.USER_VERIFIED
        return self.snapshot()

    def select_vehicle(self, db: Session, vehicle_id: str) -> Dict[str, Any]:
        self._require_screen(
            KioskScreen.USER_VERIFIED,
            KioskScreen.VEHICLE_SELECTED,
            KioskScreen.BATTERY_SELECTED,
            KioskScreen.AVAILABILITY_CHECKED,
        )
        self.touch()
        vehicle = get_owned_vehicle(db, self.account_id, vehicle_id)
        self.vehicle_id = vehicle.vehicle_id
        self.battery_slot = vehicle.model.battery_slot or 1
        self.battery_count = None
        self.availability = None
        self.screen = KioskScreen.VEHICLE_SELECTED
        return self.snapshot()

    def select_batteries(self, count: int) -> Dict[str, Any]:
        self._require_screen(
            KioskScreen.VEHICLE_SELECTED,
            KioskScreen.BATTERY_SELECTED,
            KioskScreen.AVAILABILITY_CHECKED,
        )
        self.touch()
        if count > self.battery_slot:
            raise ValidationError(messages.BATTERY_QUANTITY_INVALID, {"count": messages.BATTERY_QUANTITY_INVALID})
        self.battery_count = count
        self.availability = None
        self.screen = KioskScreen.BATTERY_SELECTED
        return self.snapshot()

    def check_availability(self, db: Session) -> Dict[str, Any]:
        self._require_screen(KioskScreen.BATTERY_SELECTED, KioskScreen.AVAILABILITY_CHECKED)
        self.touch()
        if not self.vehicle_id or not self.battery_count:
            raise ValidationError(messages.KIOSK_MISSING_SELECTION)
        station = availability.get_station(db, self.station_id)
        vehicle = get_owned_vehicle(db, self.account_id, self.vehicle_id)
        result = availability.check_availability(db, station, vehicle, self.battery_count)
        self.availability = result
        if not result["available"]:
            self.screen = KioskScreen.BATTERY_SELECTED
            raise AvailabilityError(messages.NOT_AVAILABLE)
        self.screen = KioskScreen.AVAILABILITY_CHECKED
        return self.snapshot()

    def start_walk_in_swap(self, db: Session) -> Dict[str, Any]:
        self._require_screen(KioskScreen.AVAILABILITY_CHECKED)
        self.touch()
        station = availability.get_station(db, self.station_id)
        vehicle = get_owned_vehicle(db, self.account_id, self.vehicle_id)
        booking = booking_service.create_walk_in(db, self.account_id, vehicle, station, self.battery_count)
        booking_service.start_swap(db, booking)
        self._begin_swap(booking.booking_id)
        return self.snapshot()

    def scan_booking(self, db: Session, booking_id: str) -> Dict[str, Any]:
        self._require_screen(KioskScreen.HOME)
        self.touch()
        booking = booking_service.get_booking(db, booking_id)
        station = availability.get_station(db, self.station_id)
        booking_service.validate_for_swap(booking, station)
        booking_service.start_swap(db, booking)
        self.account_id = booking.account_id
        self.fullname = booking.account.fullname if booking.account else None
        self.vehicle_id = booking.vehicle_id
        self.battery_count = booking.battery_quantity
        self._begin_swap(booking.booking_id)
        return self.snapshot()

    def _begin_swap(self, booking_id: str) -> None:
        self.booking_id = booking_id
        self.error = None
        self.sequence = SwapSequence(
            on_complete=self._finish_swap,
            on_error=self._sequence_failed,
            time_scale=self._time_scale,
        )
        self.screen = KioskScreen.SWAPPING
        self.sequence.start()
        logger.info("Kiosk %s started swap for booking %s", self.station_id, booking_id)

    def confirm_step(self) -> Dict[str, Any]:
        self._require_screen(KioskScreen.SWAPPING)
        self.touch()
        step = self.sequence.confirm_step()
        logger.info("Kiosk %s confirmed step %s", self.station_id, step.key)
        return self.snapshot()

    async def _finish_swap(self) -> None:
        db = self._session_factory()
        try:
            booking = booking_service.get_booking(db, self.booking_id)
            booking_service.complete_swap(db, booking)
            self.result = {
                "booking_id": booking.booking_id,
                "battery_quantity": booking.battery_quantity,
                "completed_time": booking_service.serialize_booking(booking)["completed_time"],
            }
        except AppError as exc:
            db.rollback()
            logger.error("Kiosk %s could not complete booking %s: %s", self.station_id, self.booking_id, exc.message)
            self._fail_swap(exc.message)
            return
        except Exception as exc:
            db.rollback()
            logger.exception("Kiosk %s failed to record swap for booking %s: %s", self.station_id, self.booking_id, exc)
            self._fail_swap(messages.SWAP_FAILED)
            return
        finally:
            db.close()

        if self._on_swap_completed is not None:
            try:
                outcome = self._on_swap_completed(self.booking_id)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as exc:
                logger.exception("Kiosk %s swap listener failed for booking %s: %s", self.station_id, self.booking_id, exc)
        self.screen = KioskScreen.COMPLETE
        self.completed_at = self._clock()
        self.touch(self.completed_at)

    def _sequence_failed(self, exc: BaseException) -> None:
        if self.screen == KioskScreen.SWAPPING:
            self._fail_swap(messages.SWAP_FAILED)

    def _fail_swap(self, message: str) -> None:
        """Leave the swapping screen after a failure and reopen (or cancel) the booking."""
        booking_id = self.booking_id
        db = self._session_factory()
        try:
            booking = db.query(Booking).filter(Booking.booking_id == booking_id).first()
            if booking is not None and booking.swap_started_at is not None:
                booking_service.abandon_swap(db, booking)
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Kiosk %s could not release booking %s: %s", self.station_id, booking_id, exc)
        finally:
            db.close()
        # The sequence task is the caller here, so it must not be aborted by reset().
        self.sequence = None
        self.reset()
        self.error = message

    def emergency_stop(self, db: Session) -> Dict[str, Any]:
        """Abort a running swap and return home; an unfinished walk-in booking is cancelled."""
        booking_id = self.booking_id
        if self.sequence is not None:
            self.sequence.abort()
        if booking_id is not None and self.screen == KioskScreen.SWAPPING:
            booking = db.query(Booking).filter(Booking.booking_id == booking_id).first()
            if booking is not None and booking.status in booking_service.OPEN_STATUSES:
                booking_service.abandon_swap(db, booking)
        logger.warning("Kiosk %s emergency stop (booking %s)", self.station_id, booking_id)
        self.reset()
        return self.snapshot()

    def snapshot(self) -> Dict[str, Any]:
        return {
            "station_id": self.station_id,
            "screen": self.screen.value,
            "account_id": self.account_id,
            "fullname": self.fullname,
            "vehicles": self.vehicles,
            "vehicle_id": self.vehicle_id,
            "battery_slot": self.battery_slot,
            "battery_count": self.battery_count,
            "availability": self.availability,
            "booking_id": self.booking_id,
            "swap": self.sequence.to_dict() if self.sequence is not None else None,
            "result": self.result,
            "error": self.error,
        }


class KioskManager:
    """Holds one kiosk session per station and runs the idle watchdog."""

    def __init__(
        self,
        *,
        session_factory: Callable[[], Session] = SessionLocal,
        on_swap_completed: Optional[Callable[[str], Any]] = None,
        clock: Callable[[], float] = time.monotonic,
        poll_seconds: float = 1.0,
    ):
        self._session_factory = session_factory
        self._on_swap_completed = on_swap_completed
        self._clock = clock
        self.poll_seconds = poll_seconds
        self.sessions: Dict[int, KioskSession] = {}
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    def get(self, station_id: int) -> KioskSession:
        session = self.sessions.get(station_id)
        if session is None:
            session = KioskSession(
                station_id,
                session_factory=self._session_factory,
                on_swap_completed=self._on_swap_completed,
                clock=self._clock,
            )
            self.sessions[station_id] = session
        session.check_idle()
        return session

    def check_all(self) -> int:
        return sum(1 for session in self.sessions.values() if session.check_idle())

    def start(self) -> None:
        if self._task and not self._task.done():
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run_loop())

    async def stop(self) -> None:
        self._stop_event.set()
        if self._task:
            await self._task
            self._task = None
        for session in self.sessions.values():
            if session.sequence is not None:
                session.sequence.abort()

    async def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.check_all()
            except Exception as exc:
                logger.exception("Kiosk idle check failed: %s", exc)
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.poll_seconds)
            except asyncio.TimeoutError:
                continue
