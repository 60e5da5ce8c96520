"""
Bookable dates and time slots derived from an owner's availability.

Pure domain logic: no I/O, nothing cached. Slots are recomputed on demand
and never stored.
"""

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from calbook.domain.availability import AvailabilityModel, Weekday

DEFAULT_HORIZON_DAYS = 30


@dataclass(frozen=True)
class Slot:
    """An immutable bookable interval on a single date."""

    date: date
    start_time: time
    end_time: time

    @property
    def start(self) -> datetime:
        return datetime.combine(self.date, self.start_time)

    @property
    def end(self) -> datetime:
        return datetime.combine(self.date, self.end_time)

    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)

    def __str__(self) -> str:
        return f"{self.date.isoformat()} {self.start_time:%H:%M}-{self.end_time:%H:%M}"


@dataclass(frozen=True)
class AvailableDates:
    """
    The open dates in ``(today, today + horizon_days]``.

    Iterating walks the calendar again from ``today`` each time, so the
    sequence is lazy and restartable.
    """

    availability: AvailabilityModel
    today: date
    horizon_days: int = DEFAULT_HORIZON_DAYS

    def __iter__(self) -> Iterator[date]:
        for offset in range(1, self.horizon_days + 1):
            day = self.today + timedelta(days=offset)
            if self.availability.is_open(day):
                yield day

    def __contains__(self, day: object) -> bool:
        if not isinstance(day, date) or isinstance(day, datetime):
            return False
        offset = (day - self.today).days
        return 1 <= offset <= self.horizon_days and self.availability.is_open(day)


def list_available_dates(
    availability: AvailabilityModel,
    today: date,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
) -> AvailableDates:
    """Open dates starting the day after ``today``, never including ``today``."""
    return AvailableDates(availability=availability, today=today, horizon_days=horizon_days)


def list_time_slots(day: date, availability: AvailabilityModel) -> list[Slot]:
    """
    Tile the day's working window with meeting-sized slots.

    Slots start at the window's start time and follow each other without gaps.
    A remainder at the end of the window shorter than the meeting duration is
    dropped, e.g. 09:00-10:45 with 30 minute meetings yields 09:00, 09:30 and
    10:00 only. A disabled day yields no slots.
    """
    window = availability.get_working_window(Weekday.from_date(day))
    if window is None:
        return []

    duration = int(availability.meeting_duration_minutes)
    start_minute, end_minute = window.window_minutes

    slots: list[Slot] = []
    current = start_minute
    while current + duration <= end_minute:
        slots.append(
            Slot(
                date=day,
                start_time=_minute_to_time(current),
                end_time=_minute_to_time(current + duration),
            )
        )
        current += duration
    return slots


def find_slot(day: date, start_time: time, availability: AvailabilityModel) -> Slot | None:
    """Return the generated slot on ``day`` starting at ``start_time``, if any."""
    for slot in list_time_slots(day, availability):
        if slot.start_time == start_time:
            return slot
    return None


def _minute_to_time(minute_of_day: int) -> time:
    hours, minutes = divmod(minute_of_day, 60)
    return time(hours, minutes)
