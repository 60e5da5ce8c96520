"""
Weekly availability of a calendar owner.

Each of the seven weekdays carries a working window; a single meeting
duration applies to every day.
"""

from datetime import date, time
from enum import Enum, IntEnum

from pydantic import BaseModel, Field, ValidationError, field_serializer, field_validator, model_validator

from calbook.domain.exceptions import InvalidInputError


class Weekday(str, Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def from_date(cls, day: date) -> "Weekday":
        return list(cls)[day.weekday()]


class MeetingDuration(IntEnum):
    FIFTEEN = 15
    THIRTY = 30
    FORTY_FIVE = 45
    SIXTY = 60
    NINETY = 90
    TWO_HOURS = 120


class DayAvailability(BaseModel):
    """Working window for one weekday. Times are wall-clock ``HH:MM``."""

    enabled: bool
    start_time: time = time(9, 0)
    end_time: time = time(17, 0)

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_minute_precision(cls, value: time) -> time:
        # stored as HH:MM, anything finer would be lost on save
        if value.second or value.microsecond or value.tzinfo is not None:
            raise ValueError("time must be HH:MM without seconds or timezone")
        return value

    @model_validator(mode="after")
    def validate_window(self) -> "DayAvailability":
        if self.enabled and self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self

    @field_serializer("start_time", "end_time")
    def serialize_time(self, value: time) -> str:
        return value.strftime("%H:%M")

    @property
    def window_minutes(self) -> tuple[int, int]:
        return (
            self.start_time.hour * 60 + self.start_time.minute,
            self.end_time.hour * 60 + self.end_time.minute,
        )


_WEEKEND = (Weekday.SATURDAY, Weekday.SUNDAY)


def _default_days() -> dict[Weekday, DayAvailability]:
    return {day: DayAvailability(enabled=day not in _WEEKEND) for day in Weekday}


class AvailabilityModel(BaseModel):
    days: dict[Weekday, DayAvailability] = Field(default_factory=_default_days)
    meeting_duration_minutes: MeetingDuration = MeetingDuration.THIRTY

    @field_validator("days")
    @classmethod
    def validate_all_weekdays(
        cls, value: dict[Weekday, DayAvailability]
    ) -> dict[Weekday, DayAvailability]:
        missing = [day.value for day in Weekday if day not in value]
        if missing:
            raise ValueError(f"days is missing weekdays: {', '.join(missing)}")
        return value

    @classmethod
    def default(cls) -> "AvailabilityModel":
        """Weekdays open 09:00-17:00, weekend closed, 30 minute meetings."""
        return cls()

    def get_working_window(self, weekday: Weekday | str) -> DayAvailability | None:
        """Return the window for ``weekday``, or None when the day is disabled."""
        window = self.days[Weekday(weekday)]
        return window if window.enabled else None

    def is_open(self, day: date) -> bool:
        return self.get_working_window(Weekday.from_date(day)) is not None

    def update_day(
        self,
        weekday: Weekday | str,
        *,
        enabled: bool | None = None,
        start_time: time | str | None = None,
        end_time: time | str | None = None,
    ) -> DayAvailability:
        weekday = Weekday(weekday)
        changes = {
            key: value
            for key, value in (
                ("enabled", enabled),
                ("start_time", start_time),
                ("end_time", end_time),
            )
            if value is not None
        }
        data = {**self.days[weekday].model_dump(), **changes}
        try:
            updated = DayAvailability.model_validate(data)
        except ValidationError as exc:
            raise InvalidInputError.from_validation_error(
                f"Invalid working window for {weekday.value}", exc
            ) from exc
        self.days[weekday] = updated
        return updated

    def set_meeting_duration(self, minutes: int) -> None:
        try:
            self.meeting_duration_minutes = MeetingDuration(minutes)
        except ValueError as exc:
            allowed = ", ".join(str(d.value) for d in MeetingDuration)
            raise InvalidInputError(
                f"Meeting duration must be one of {allowed}",
                errors={"meeting_duration_minutes": f"must be one of {allowed}"},
            ) from exc
