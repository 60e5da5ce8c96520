"""
Tests for bookable dates and time slot generation.
"""

from datetime import date, time, timedelta

import pytest

from calbook.domain.availability import MeetingDuration, Weekday
from calbook.domain.slots import Slot, find_slot, list_available_dates, list_time_slots

SUNDAY = date(2024, 11, 24)
MONDAY = date(2024, 11, 25)
SATURDAY = date(2024, 11, 30)


class TestTimeSlots:
    """Tests for tiling a working window with meeting slots."""

    def test_default_monday(self, availability):
        """09:00-17:00 at 30 minutes gives 16 slots."""
        slots = list_time_slots(MONDAY, availability)
        assert len(slots) == 16
        assert slots[0] == Slot(MONDAY, time(9, 0), time(9, 30))
        assert slots[-1] == Slot(MONDAY, time(16, 30), time(17, 0))

    @pytest.mark.parametrize(
        "minutes, expected",
        [(15, 32), (30, 16), (60, 8), (120, 4)],
    )
    def test_slot_count_per_duration(self, availability, minutes, expected):
        availability.set_meeting_duration(minutes)
        slots = list_time_slots(MONDAY, availability)
        assert len(slots) == expected
        assert all(s.duration_minutes() == minutes for s in slots)

    def test_slots_are_contiguous_and_ascending(self, availability):
        availability.set_meeting_duration(MeetingDuration.FORTY_FIVE)
        slots = list_time_slots(MONDAY, availability)
        for previous, current in zip(slots, slots[1:]):
            assert previous.end_time == current.start_time
            assert previous.start < current.start

    def test_disabled_day_has_no_slots(self, availability):
        assert list_time_slots(SATURDAY, availability) == []

    def test_partial_trailing_slot_is_dropped(self, availability):
        availability.update_day(Weekday.MONDAY, start_time=time(9, 0), end_time=time(10, 45))
        slots = list_time_slots(MONDAY, availability)
        assert [s.start_time for s in slots] == [time(9, 0), time(9, 30), time(10, 0)]
        assert slots[-1].end_time == time(10, 30)

    def test_window_shorter_than_meeting(self, availability):
        availability.update_day(Weekday.MONDAY, start_time=time(9, 0), end_time=time(9, 45))
        availability.set_meeting_duration(60)
        assert list_time_slots(MONDAY, availability) == []

    def test_find_slot(self, availability):
        slot = find_slot(MONDAY, time(9, 30), availability)
        assert slot is not None
        assert slot.end_time == time(10, 0)
        assert find_slot(MONDAY, time(9, 15), availability) is None
        assert find_slot(SATURDAY, time(9, 0), availability) is None

    def test_slot_str(self):
        assert str(Slot(MONDAY, time(9, 0), time(9, 30))) == "2024-11-25 09:00-09:30"


class TestAvailableDates:
    """Tests for the bookable date window."""

    def test_thirty_day_horizon_from_sunday(self, availability):
        dates = list(list_available_dates(availability, SUNDAY))
        assert len(dates) == 22
        assert dates[0] == MONDAY
        assert dates[-1] == date(2024, 12, 24)

    def test_today_is_never_offered(self, availability):
        dates = list(list_available_dates(availability, MONDAY))
        assert MONDAY not in dates
        assert dates[0] == MONDAY + timedelta(days=1)

    def test_weekend_excluded(self, availability):
        dates = list_available_dates(availability, SUNDAY)
        assert all(d.weekday() < 5 for d in dates)
        assert SATURDAY not in dates

    def test_iteration_is_restartable(self, availability):
        dates = list_available_dates(availability, SUNDAY)
        assert list(dates) == list(dates)

    def test_membership_respects_horizon(self, availability):
        dates = list_available_dates(availability, SUNDAY, horizon_days=7)
        assert MONDAY in dates
        assert date(2024, 12, 2) not in dates
        assert SUNDAY not in dates

    def test_enabling_a_weekend_day(self, availability):
        availability.update_day(Weekday.SATURDAY, enabled=True)
        assert SATURDAY in list_available_dates(availability, SUNDAY)
