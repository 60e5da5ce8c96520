import datetime as dt

from pydantic import BaseModel, field_serializer

from calbook.domain.availability import MeetingDuration
from calbook.models.appointment import AppointmentPublic


class SlotInfo(BaseModel):
    start_time: dt.time
    end_time: dt.time
    start_utc: dt.datetime
    end_utc: dt.datetime

    @field_serializer("start_time", "end_time")
    def serialize_time(self, value: dt.time) -> str:
        return value.strftime("%H:%M")


class AvailableSlotsResponse(BaseModel):
    date: dt.date
    duration_minutes: int
    slots: list[SlotInfo]


class AvailableDatesResponse(BaseModel):
    dates: list[dt.date]


class BookAppointmentRequest(BaseModel):
    date: dt.date
    time: dt.time  # HH:MM, must be one of the offered slot starts
    # validated by the booking flow so errors come back per field
    name: str
    email: str
    message: str | None = None


class BookingConfirmation(BaseModel):
    step: str
    appointment: AppointmentPublic


class DayAvailabilityUpdate(BaseModel):
    enabled: bool | None = None
    start_time: dt.time | None = None
    end_time: dt.time | None = None
    meeting_duration_minutes: MeetingDuration | None = None


class CancelAppointmentRequest(BaseModel):
    confirm: bool = False


class DashboardResponse(BaseModel):
    booking_url: str
    total_appointments: int
    upcoming_appointments: int
    completed_appointments: int
    recent_appointments: list[AppointmentPublic]
