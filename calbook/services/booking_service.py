from datetime import date, time

from sqlalchemy.ext.asyncio import AsyncSession

from calbook.core.config import settings
from calbook.domain.availability import AvailabilityModel
from calbook.domain.booking import BookingFlow, GuestDetails, Notifier
from calbook.domain.exceptions import CalendarNotFoundError, InvalidInputError
from calbook.models.appointment import Appointment
from calbook.models.owner import CalendarProfile, Owner
from calbook.services.appointment_store import SqlAppointmentStore
from calbook.services.auth_service import get_owner
from calbook.services.availability_service import get_availability


async def get_calendar(session: AsyncSession, owner_id: int) -> tuple[Owner, AvailabilityModel]:
    """Resolve a public booking link to its owner and availability."""
    owner = await get_owner(session, owner_id)
    if owner is None:
        raise CalendarNotFoundError(f"No calendar for owner {owner_id}")
    return owner, await get_availability(session, owner.id)


def calendar_profile(owner: Owner, availability: AvailabilityModel) -> CalendarProfile:
    return CalendarProfile(
        owner_id=owner.id,
        name=owner.display_name,
        meeting_duration_minutes=int(availability.meeting_duration_minutes),
    )


def booking_url(owner_id: int) -> str:
    return f"{settings.public_base_url.rstrip('/')}/book/{owner_id}"


def new_flow(
    session: AsyncSession,
    owner: Owner,
    availability: AvailabilityModel,
    notifier: Notifier | None = None,
    today: date | None = None,
) -> BookingFlow:
    return BookingFlow(
        owner_id=owner.id,
        availability=availability,
        store=SqlAppointmentStore(session),
        notifier=notifier,
        today=today,
        horizon_days=settings.booking_horizon_days,
        submit_timeout=settings.booking_submit_timeout_seconds,
    )


async def book_slot(
    flow: BookingFlow, day: date, start_time: time, details: GuestDetails | dict
) -> Appointment:
    """Drive a fresh flow through all three steps for a single request."""
    flow.select_date(day)
    flow.select_time(start_time)
    if not flow.proceed():
        raise InvalidInputError("Pick a date and time", errors={"time": "Pick a time"})
    return await flow.submit(details)
