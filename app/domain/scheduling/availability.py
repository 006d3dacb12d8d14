"""
Doctor availability - pure slot computation

Doctors carry either per-day business hours (JSON, UTC times) or the legacy
weekday range with a single from/to time (UTC). Both are normalized into a
WeeklySchedule in clinic local time, and slot generation only works on that.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Optional

from ...config import SLOT_INTERVAL_MINUTES
from ...utils.timezone import format_minutes, parse_time_to_minutes, utc_time_to_local

logger = logging.getLogger(__name__)

# Index 0 = Sunday ... 6 = Saturday
DAY_KEYS = ["sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday"]
DAY_LABELS = ["Domingo", "Segunda", "Terça", "Quarta", "Quinta", "Sexta", "Sábado"]


@dataclass
class DaySchedule:
    day_key: str
    label: str
    is_open: bool = False
    start_time: Optional[str] = None
    end_time: Optional[str] = None


@dataclass
class WeeklySchedule:
    days: list[DaySchedule] = field(default_factory=list)
    has_business_hours: bool = False

    def for_weekday(self, weekday: int) -> DaySchedule:
        return self.days[weekday]

    @property
    def open_days(self) -> list[DaySchedule]:
        return [d for d in self.days if d.is_open]


def weekday_index(target_date: date) -> int:
    """Weekday with Sunday as 0 (Python's date.weekday() starts on Monday)"""
    return (target_date.weekday() + 1) % 7


def load_business_hours(raw) -> Optional[dict]:
    """Decode stored business hours; None when absent or unreadable"""
    if not raw:
        return None
    if isinstance(raw, dict):
        return raw
    try:
        hours = json.loads(raw)
    except (TypeError, ValueError) as e:
        logger.error(f"❌ Could not parse doctor business hours: {e}")
        return None
    return hours if isinstance(hours, dict) else None


def _schedule_from_business_hours(hours: dict) -> WeeklySchedule:
    days = []
    for index, key in enumerate(DAY_KEYS):
        day = hours.get(key) or {}
        is_open = bool(day.get("isOpen")) if isinstance(day, dict) else False
        start = end = None
        if is_open:
            start = utc_time_to_local(day.get("start", ""))
            end = utc_time_to_local(day.get("end", ""))
            if start is None or end is None:
                logger.warning(f"⚠️ Malformed hours for {key}: {day} - treating day as unavailable")
        days.append(DaySchedule(key, DAY_LABELS[index], is_open, start, end))
    return WeeklySchedule(days=days, has_business_hours=True)


def _schedule_from_legacy_range(doctor) -> WeeklySchedule:
    from_day = getattr(doctor, "available_from_week_day", None)
    to_day = getattr(doctor, "available_to_week_day", None)
    start = utc_time_to_local(getattr(doctor, "available_from_time", None) or "")
    end = utc_time_to_local(getattr(doctor, "available_to_time", None) or "")

    days = []
    for index, key in enumerate(DAY_KEYS):
        if from_day is None or to_day is None:
            is_open = False
        elif from_day <= to_day:
            is_open = from_day <= index <= to_day
        else:
            # Range wraps around the week, e.g. Friday -> Monday
            is_open = index >= from_day or index <= to_day
        days.append(
            DaySchedule(
                key,
                DAY_LABELS[index],
                is_open,
                start if is_open else None,
                end if is_open else None,
            )
        )
    return WeeklySchedule(days=days, has_business_hours=False)


def normalize_schedule(doctor) -> WeeklySchedule:
    """Build the local-time weekly schedule for a doctor row (or any object with the same fields)"""
    hours = load_business_hours(getattr(doctor, "business_hours", None))
    if hours:
        return _schedule_from_business_hours(hours)
    return _schedule_from_legacy_range(doctor)


def generate_time_slots(
    start_time: Optional[str],
    end_time: Optional[str],
    interval_minutes: int = SLOT_INTERVAL_MINUTES,
) -> list[str]:
    """
    Candidate slots from start (inclusive) to end (exclusive) as "HH:MM".

    Malformed times or an end not after the start produce no slots.
    """
    start = parse_time_to_minutes(start_time)
    end = parse_time_to_minutes(end_time)
    if start is None or end is None:
        logger.warning(f"⚠️ Invalid working hours: start={start_time!r}, end={end_time!r}")
        return []
    if end <= start:
        logger.error(
            f"❌ Working hours misconfigured: end {end_time} is not after start {start_time}"
        )
        return []
    if interval_minutes <= 0:
        logger.error(f"❌ Invalid slot interval: {interval_minutes}")
        return []

    return [format_minutes(minute) for minute in range(start, end, interval_minutes)]


def _normalize_slot(value: Optional[str]) -> Optional[str]:
    minutes = parse_time_to_minutes(value)
    return format_minutes(minutes) if minutes is not None else None


def get_available_slots(
    doctor,
    target_date: date,
    booked_slots: Iterable[str] = (),
    editing_slot: Optional[str] = None,
    interval_minutes: int = SLOT_INTERVAL_MINUTES,
) -> list[str]:
    """
    Free "HH:MM" local slots of a doctor on a local date.

    ``booked_slots`` are local times already taken ("HH:MM" or "HH:MM:SS").
    ``editing_slot`` is the current slot of the appointment being edited, which
    stays selectable even though it is booked.
    """
    schedule = normalize_schedule(doctor)
    day = schedule.for_weekday(weekday_index(target_date))
    if not day.is_open or not day.start_time or not day.end_time:
        return []

    candidates = generate_time_slots(day.start_time, day.end_time, interval_minutes)
    if not candidates:
        return []

    taken = {slot for slot in (_normalize_slot(b) for b in booked_slots) if slot}
    keep = _normalize_slot(editing_slot)
    if keep:
        taken.discard(keep)

    return [slot for slot in candidates if slot not in taken]


def is_day_available(doctor, target_date: date) -> bool:
    """Whether the doctor works at all on the given local date"""
    day = normalize_schedule(doctor).for_weekday(weekday_index(target_date))
    return bool(day.is_open and day.start_time and day.end_time)


def schedule_summary(doctor) -> list[dict]:
    """Per-day open/close info in local time, for doctor listings"""
    return [
        {
            "day": d.day_key,
            "label": d.label,
            "isOpen": d.is_open,
            "start": d.start_time,
            "end": d.end_time,
        }
        for d in normalize_schedule(doctor).days
    ]
