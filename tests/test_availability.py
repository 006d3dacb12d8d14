"""
Tests for doctor availability

Covers both schedule shapes: per-day business hours (stored in UTC) and the
legacy weekday range with a single from/to time.
"""

import json
from datetime import date
from types import SimpleNamespace

from app.domain.scheduling.availability import (
    generate_time_slots,
    get_available_slots,
    is_day_available,
    normalize_schedule,
    schedule_summary,
    weekday_index,
)

MONDAY = date(2030, 1, 7)
SATURDAY = date(2030, 1, 12)
SUNDAY = date(2030, 1, 6)


def legacy_doctor(from_day=1, to_day=5, from_time="11:00:00", to_time="21:00:00"):
    return SimpleNamespace(
        business_hours=None,
        available_from_week_day=from_day,
        available_to_week_day=to_day,
        available_from_time=from_time,
        available_to_time=to_time,
    )


def business_hours_doctor(hours):
    doctor = legacy_doctor()
    doctor.business_hours = json.dumps(hours)
    return doctor


class TestSlotGeneration:
    def test_half_hour_slots_end_exclusive(self):
        assert generate_time_slots("08:00", "10:00") == ["08:00", "08:30", "09:00", "09:30"]

    def test_end_not_after_start_gives_nothing(self):
        assert generate_time_slots("10:00", "10:00") == []
        assert generate_time_slots("18:00", "08:00") == []

    def test_malformed_hours_give_nothing(self):
        assert generate_time_slots("oito", "10:00") == []

    def test_weekday_index_starts_on_sunday(self):
        assert weekday_index(SUNDAY) == 0
        assert weekday_index(MONDAY) == 1
        assert weekday_index(SATURDAY) == 6


class TestLegacySchedule:
    def test_full_working_day(self):
        slots = get_available_slots(legacy_doctor(), MONDAY)
        assert slots[0] == "08:00"
        assert slots[-1] == "17:30"
        assert len(slots) == 20

    def test_weekend_is_closed(self):
        assert get_available_slots(legacy_doctor(), SUNDAY) == []
        assert not is_day_available(legacy_doctor(), SATURDAY)

    def test_range_wrapping_the_week(self):
        doctor = legacy_doctor(from_day=5, to_day=1)
        assert is_day_available(doctor, SUNDAY)
        assert is_day_available(doctor, MONDAY)
        assert not is_day_available(doctor, date(2030, 1, 8))
        # Sunday .. Saturday
        assert [d.is_open for d in normalize_schedule(doctor).days] == [
            True, True, False, False, False, True, True,
        ]

    def test_booked_slots_are_removed(self):
        slots = get_available_slots(legacy_doctor(), MONDAY, booked_slots=["09:00:00", "10:30"])
        assert "09:00" not in slots
        assert "10:30" not in slots
        assert len(slots) == 18

    def test_editing_slot_stays_selectable(self):
        slots = get_available_slots(
            legacy_doctor(), MONDAY, booked_slots=["09:00:00"], editing_slot="09:00:00"
        )
        assert "09:00" in slots


class TestBusinessHours:
    def test_per_day_hours_converted_to_local(self):
        doctor = business_hours_doctor(
            {
                "monday": {"isOpen": True, "start": "12:00", "end": "14:00"},
                "tuesday": {"isOpen": False, "start": "", "end": ""},
            }
        )
        assert get_available_slots(doctor, MONDAY) == ["09:00", "09:30", "10:00", "10:30"]
        assert get_available_slots(doctor, date(2030, 1, 8)) == []

    def test_business_hours_take_precedence_over_legacy_range(self):
        doctor = business_hours_doctor({"saturday": {"isOpen": True, "start": "11:00", "end": "12:00"}})
        assert get_available_slots(doctor, SATURDAY) == ["08:00", "08:30"]
        assert get_available_slots(doctor, MONDAY) == []

    def test_unreadable_business_hours_fall_back_to_legacy(self):
        doctor = legacy_doctor()
        doctor.business_hours = "{not json"
        assert not normalize_schedule(doctor).has_business_hours
        assert len(get_available_slots(doctor, MONDAY)) == 20

    def test_malformed_day_is_unavailable(self):
        doctor = business_hours_doctor({"monday": {"isOpen": True, "start": "xx", "end": "14:00"}})
        assert get_available_slots(doctor, MONDAY) == []

    def test_schedule_summary_lists_every_day(self):
        summary = schedule_summary(legacy_doctor())
        assert [d["day"] for d in summary][0] == "sunday"
        monday = summary[1]
        assert monday == {"day": "monday", "label": "Segunda", "isOpen": True, "start": "08:00", "end": "18:00"}
