"""
Clinic timezone helpers

Appointment timestamps and doctor hours are stored in UTC. The clinic works on
Brasilia time, handled as a fixed UTC-3 offset without daylight saving.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from ..config import LOCAL_UTC_OFFSET_HOURS

logger = logging.getLogger(__name__)

LOCAL_OFFSET = timedelta(hours=LOCAL_UTC_OFFSET_HOURS)
LOCAL_TZ = timezone(LOCAL_OFFSET)

MINUTES_PER_DAY = 24 * 60


def _as_naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is not None:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def utc_to_local(dt: datetime) -> datetime:
    """Shift a UTC datetime to clinic wall-clock time (naive)"""
    return _as_naive_utc(dt) + LOCAL_OFFSET


def local_to_utc(dt: datetime) -> datetime:
    """Shift a clinic wall-clock datetime to naive UTC"""
    if dt.tzinfo is not None:
        return _as_naive_utc(dt)
    return dt - LOCAL_OFFSET


def now_local() -> datetime:
    return utc_to_local(datetime.utcnow())


def parse_time_to_minutes(value: Optional[str]) -> Optional[int]:
    """
    Parse "HH:MM" or "HH:MM:SS" into minutes since midnight.

    Returns None for anything malformed instead of raising.
    """
    if not value or not isinstance(value, str):
        return None
    parts = value.strip().split(":")
    if len(parts) not in (2, 3):
        return None
    try:
        hours, minutes = int(parts[0]), int(parts[1])
        seconds = int(parts[2]) if len(parts) == 3 else 0
    except ValueError:
        return None
    if not (0 <= hours <= 23 and 0 <= minutes <= 59 and 0 <= seconds <= 59):
        return None
    return hours * 60 + minutes


def format_minutes(total_minutes: int) -> str:
    total_minutes %= MINUTES_PER_DAY
    return f"{total_minutes // 60:02d}:{total_minutes % 60:02d}"


def _shift_time(value: str, offset_minutes: int) -> Optional[str]:
    minutes = parse_time_to_minutes(value)
    if minutes is None:
        return None
    return format_minutes(minutes + offset_minutes)


def utc_time_to_local(value: str) -> Optional[str]:
    """Convert a UTC wall-clock "HH:MM[:SS]" to local "HH:MM" (wraps around midnight)"""
    return _shift_time(value, LOCAL_UTC_OFFSET_HOURS * 60)


def local_time_to_utc(value: str) -> Optional[str]:
    """Convert a local wall-clock "HH:MM[:SS]" to UTC "HH:MM" (wraps around midnight)"""
    return _shift_time(value, -LOCAL_UTC_OFFSET_HOURS * 60)


def _convert_business_hours(hours: dict, converter) -> dict:
    converted = {}
    for day_key, day in (hours or {}).items():
        if not isinstance(day, dict):
            continue
        is_open = bool(day.get("isOpen"))
        if is_open:
            start = converter(day.get("start", ""))
            end = converter(day.get("end", ""))
            if start is None or end is None:
                logger.warning(f"⚠️ Invalid business hours for {day_key}: {day}")
            converted[day_key] = {"isOpen": True, "start": start or "", "end": end or ""}
        else:
            converted[day_key] = {"isOpen": False, "start": "", "end": ""}
    return converted


def convert_business_hours_to_utc(hours: dict) -> dict:
    """Convert per-day hours typed in local time to UTC for storage"""
    return _convert_business_hours(hours, local_time_to_utc)


def convert_business_hours_from_utc(hours: dict) -> dict:
    """Convert stored per-day UTC hours back to local time for display"""
    return _convert_business_hours(hours, utc_time_to_local)


def combine_local_date_and_slot(day: date, slot: str) -> datetime:
    """
    Build the naive UTC datetime for a local date and "HH:MM[:SS]" slot.

    Raises ValueError when the slot is malformed.
    """
    minutes = parse_time_to_minutes(slot)
    if minutes is None:
        raise ValueError(f"Invalid time slot: {slot}")
    local_dt = datetime.combine(day, time(minutes // 60, minutes % 60))
    return local_to_utc(local_dt)


def extract_time_slot(dt: datetime) -> str:
    """Local "HH:MM:SS" slot of a stored UTC datetime"""
    return utc_to_local(dt).strftime("%H:%M:%S")


def local_day_bounds_utc(day: date) -> tuple[datetime, datetime]:
    """UTC [start, end) range covering a whole local day"""
    start = local_to_utc(datetime.combine(day, time.min))
    return start, start + timedelta(days=1)


def format_local_date(dt: datetime) -> str:
    return utc_to_local(dt).strftime("%d/%m/%Y")


def format_local_time(dt: datetime) -> str:
    return utc_to_local(dt).strftime("%H:%M")


def format_local_datetime(dt: datetime) -> str:
    return utc_to_local(dt).strftime("%d/%m/%Y %H:%M")
