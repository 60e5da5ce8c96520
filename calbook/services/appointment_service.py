import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from calbook.domain.exceptions import (
    AppointmentNotFoundError,
    InvalidInputError,
    InvalidTransitionError,
)
from calbook.models.appointment import Appointment, AppointmentStatus, utc_naive_now
from calbook.services.appointment_store import AppointmentStore

logger = logging.getLogger(__name__)


class AppointmentScope(str, Enum):
    ALL = "all"
    UPCOMING = "upcoming"
    PAST = "past"


@dataclass(frozen=True)
class DashboardStats:
    total_appointments: int
    upcoming_appointments: int
    completed_appointments: int


def is_upcoming(appointment: Appointment, now: datetime) -> bool:
    return (
        appointment.status == AppointmentStatus.CONFIRMED
        and appointment.appointment_datetime_utc > now
    )


def is_past(appointment: Appointment, now: datetime) -> bool:
    return (
        appointment.status == AppointmentStatus.COMPLETED
        or appointment.appointment_datetime_utc < now
    )


async def list_owner_appointments(
    store: AppointmentStore,
    owner_id: int,
    *,
    scope: AppointmentScope = AppointmentScope.ALL,
    status: AppointmentStatus | None = None,
    now: datetime | None = None,
) -> list[Appointment]:
    now = now or utc_naive_now()
    appointments = await store.list_by_owner(owner_id)
    if status is not None:
        appointments = [a for a in appointments if a.status == status]
    if scope == AppointmentScope.UPCOMING:
        appointments = [a for a in appointments if is_upcoming(a, now)]
    elif scope == AppointmentScope.PAST:
        appointments = [a for a in appointments if is_past(a, now)]
    return appointments


async def dashboard_stats(
    store: AppointmentStore, owner_id: int, now: datetime | None = None
) -> DashboardStats:
    now = now or utc_naive_now()
    appointments = await store.list_by_owner(owner_id)
    return DashboardStats(
        total_appointments=len(appointments),
        upcoming_appointments=sum(1 for a in appointments if is_upcoming(a, now)),
        completed_appointments=sum(
            1 for a in appointments if a.status == AppointmentStatus.COMPLETED
        ),
    )


async def cancel_appointment(
    store: AppointmentStore, appointment_id: str, owner_id: int, *, confirmed: bool
) -> Appointment:
    """
    Cancel one of the owner's appointments.

    The caller must pass ``confirmed=True`` once the owner has acknowledged the
    prompt. Cancelling an already cancelled appointment returns it unchanged.
    """
    if not confirmed:
        raise InvalidInputError(
            "Cancellation must be confirmed",
            errors={"confirm": "Confirm the cancellation to continue"},
        )
    appointment = await store.get(appointment_id)
    if appointment is None or appointment.owner_id != owner_id:
        raise AppointmentNotFoundError("Appointment not found")
    if appointment.status == AppointmentStatus.CANCELLED:
        return appointment
    if appointment.status != AppointmentStatus.CONFIRMED:
        raise InvalidTransitionError(
            f"Cannot cancel an appointment that is {appointment.status.value}"
        )
    updated = await store.update_status(appointment_id, AppointmentStatus.CANCELLED)
    if updated is None:
        raise AppointmentNotFoundError("Appointment not found")
    logger.info("Owner %s cancelled appointment %s", owner_id, appointment_id)
    return updated


async def complete_past_appointments(session: AsyncSession, now: datetime | None = None) -> int:
    """Mark confirmed appointments that have ended as completed. Returns count updated."""
    now = now or utc_naive_now()
    result = await session.execute(
        select(Appointment).where(
            Appointment.status == AppointmentStatus.CONFIRMED,
            Appointment.appointment_datetime_utc < now,
        )
    )
    n = 0
    for appointment in result.scalars().all():
        if appointment.end_datetime_utc <= now:
            appointment.status = AppointmentStatus.COMPLETED
            session.add(appointment)
            n += 1
    await session.flush()
    return n
