"""
Lightweight in-process sweeper for booking reservations.
Runs on RESERVATION_SWEEP_CRON: activates due bookings and deletes bookings whose
window ended, covering timers lost across restarts.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Callable, Dict

from croniter import croniter
from sqlalchemy.orm import Session

from swapstation.core.timeutils import utcnow
from swapstation.database import SessionLocal
from swapstation.services.booking_service import activate_due, expire_overdue

logger = logging.getLogger(__name__)


class ReservationSweeper:
    """Periodically reconciles booking rows with the reservation window."""

    def __init__(
        self,
        schedule_cron: str = "* * * * *",
        session_factory: Callable[[], Session] = SessionLocal,
        clock: Callable[[], datetime] = utcnow,
    ):
        if not croniter.is_valid(schedule_cron):
            raise ValueError(f"Invalid reservation sweep schedule: {schedule_cron!r}")
        self.schedule_cron = schedule_cron
        self._session_factory = session_factory
        self._clock = clock
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start sweeper loop as background task."""
        if self.running:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run_loop())
        logger.info("ReservationSweeper started (%s)", self.schedule_cron)

    async def stop(self) -> None:
        """Stop sweeper loop and wait for completion."""
        self._stop_event.set()
        if self._task:
            await self._task
            self._task = None
        logger.info("ReservationSweeper stopped")

    async def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.sweep()
            except Exception as exc:
                logger.exception("ReservationSweeper tick failed: %s", exc)
            delay = max((self._compute_next_run(self._clock()) - self._clock()).total_seconds(), 0.0)
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
            except asyncio.TimeoutError:
                continue

    def sweep(self) -> Dict[str, int]:
        now = self._clock()
        db = self._session_factory()
        try:
            activated = activate_due(db, now)
            expired = expire_overdue(db, now)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
        if activated or expired:
            logger.info("Reservation sweep: %s activated, %s expired", activated, expired)
        return {"activated": activated, "expired": expired}

    def _compute_next_run(self, from_dt: datetime) -> datetime:
        return croniter(self.schedule_cron, from_dt).get_next(datetime)
