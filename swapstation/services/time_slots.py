"""
Bookable arrival slots for the current day.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from swapstation.config import settings
from swapstation.core.timeutils import isoformat_utc, local_now

EARLIEST_HOUR = 6
LATEST_HOUR = 22
SLOT_MINUTES = 30


@dataclass
class TimeSlot:
    slot_id: str
    time: datetime
    display_time: str
    is_available: bool = True

    def status(self, now: datetime) -> Dict[str, str]:
        """Label the slot by how soon it starts: soon (<1h), near (<2h) or available."""
        hours = (self.time - now).total_seconds() / 3600
        if hours < 1:
            return {"status": "soon", "text": "Sắp tới"}
        if hours < 2:
            return {"status": "near", "text": "Gần đây"}
        return {"status": "available", "text": "Có sẵn"}

    def to_dict(self, now: datetime) -> Dict[str, Any]:
        return {
            "slot_id": self.slot_id,
            "time": isoformat_utc(self.time),
            "display_time": self.display_time,
            "is_available": self.is_available,
            **self.status(now),
        }


def generate_time_slots(now: Optional[datetime] = None) -> List[TimeSlot]:
    """Half-hour slots from the next full hour (never before 06:00) through 22:30, local time.

    ``now`` must be timezone aware; it defaults to the current station-local time.
    """
    now = now or local_now()
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    start_hour = max(now.hour + 1, EARLIEST_HOUR)

    slots: List[TimeSlot] = []
    for hour in range(start_hour, LATEST_HOUR + 1):
        for minute in range(0, 60, SLOT_MINUTES):
            slot_time = today + timedelta(hours=hour, minutes=minute)
            if slot_time <= now:
                continue
            slots.append(
                TimeSlot(
                    slot_id=f"{hour}-{minute}",
                    time=slot_time,
                    display_time=f"{hour:02d}:{minute:02d}",
                )
            )
    return slots


def slots_payload(now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or local_now()
    slots = generate_time_slots(now)
    return {
        "date": now.date().isoformat(),
        "slots": [slot.to_dict(now) for slot in slots],
        "window_minutes": settings.booking_window_minutes,
        "window_note": (
            f"Lệnh đặt lịch sẽ chỉ có hiệu lực trong {settings.booking_window_minutes} phút "
            "từ thời điểm bạn chọn."
        ),
    }
