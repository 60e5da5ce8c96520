from datetime import UTC, datetime, timedelta
from enum import Enum
from uuid import uuid4

from pydantic import NaiveDatetime
from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


def utc_naive_now() -> datetime:
    """Naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(UTC).replace(tzinfo=None)


def new_appointment_id() -> str:
    return uuid4().hex


class AppointmentStatus(str, Enum):
    """
    Appointment lifecycle.

    confirmed -> cancelled (owner, explicit)
    confirmed -> completed (completion sweep, when enabled)
    """

    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"
    id: str = Field(default_factory=new_appointment_id, primary_key=True)
    owner_id: int = Field(foreign_key="owners.id", index=True)
    guest_name: str
    guest_email: str
    guest_message: str | None = None
    # naive UTC; overlapping bookings are allowed
    appointment_datetime_utc: NaiveDatetime = Field(index=True, sa_type=DateTime())
    duration_minutes: int
    status: AppointmentStatus = Field(default=AppointmentStatus.CONFIRMED, index=True)
    created_at: NaiveDatetime = Field(default_factory=utc_naive_now, sa_type=DateTime())

    @property
    def end_datetime_utc(self) -> datetime:
        return self.appointment_datetime_utc + timedelta(minutes=self.duration_minutes)


class AppointmentPublic(SQLModel):
    id: str
    owner_id: int
    guest_name: str
    guest_email: str
    guest_message: str | None = None
    appointment_datetime_utc: datetime
    end_datetime_utc: datetime
    duration_minutes: int
    status: AppointmentStatus
    created_at: datetime

    @classmethod
    def from_appointment(cls, a: Appointment) -> "AppointmentPublic":
        return cls(
            id=a.id,
            owner_id=a.owner_id,
            guest_name=a.guest_name,
            guest_email=a.guest_email,
            guest_message=a.guest_message,
            appointment_datetime_utc=a.appointment_datetime_utc,
            end_datetime_utc=a.end_datetime_utc,
            duration_minutes=a.duration_minutes,
            status=a.status,
            created_at=a.created_at,
        )
