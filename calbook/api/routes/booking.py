import logging
from datetime import UTC, date, datetime

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from calbook.api.schemas.booking import (
    AvailableDatesResponse,
    AvailableSlotsResponse,
    BookAppointmentRequest,
    BookingConfirmation,
    SlotInfo,
)
from calbook.core.config import settings
from calbook.core.db import get_session
from calbook.domain.slots import list_available_dates, list_time_slots
from calbook.models.appointment import AppointmentPublic
from calbook.models.owner import CalendarProfile
from calbook.services.booking_service import book_slot, calendar_profile, get_calendar, new_flow
from calbook.services.email_service import EmailNotifier

logger = logging.getLogger(__name__)

# Public: no authentication on any of these
router = APIRouter(prefix="/book", tags=["booking"])


def _utc_today() -> date:
    return datetime.now(UTC).date()


@router.get("/{owner_id}", response_model=CalendarProfile)
async def get_booking_page(
    owner_id: int,
    session: AsyncSession = Depends(get_session),
) -> CalendarProfile:
    owner, availability = await get_calendar(session, owner_id)
    return calendar_profile(owner, availability)


@router.get("/{owner_id}/dates", response_model=AvailableDatesResponse)
async def available_dates(
    owner_id: int,
    session: AsyncSession = Depends(get_session),
) -> AvailableDatesResponse:
    """Open dates from tomorrow through the booking horizon."""
    _, availability = await get_calendar(session, owner_id)
    dates = list_available_dates(availability, _utc_today(), settings.booking_horizon_days)
    return AvailableDatesResponse(dates=list(dates))


@router.get("/{owner_id}/slots", response_model=AvailableSlotsResponse)
async def available_slots(
    owner_id: int,
    date_param: date = Query(..., alias="date"),
    session: AsyncSession = Depends(get_session),
) -> AvailableSlotsResponse:
    """Bookable slots for the given date (UTC). Empty when the day is closed."""
    _, availability = await get_calendar(session, owner_id)
    slots = list_time_slots(date_param, availability)
    return AvailableSlotsResponse(
        date=date_param,
        duration_minutes=int(availability.meeting_duration_minutes),
        slots=[
            SlotInfo(start_time=s.start_time, end_time=s.end_time, start_utc=s.start, end_utc=s.end)
            for s in slots
        ],
    )


@router.post(
    "/{owner_id}/appointments",
    response_model=BookingConfirmation,
    status_code=status.HTTP_201_CREATED,
)
async def book_appointment(
    owner_id: int,
    body: BookAppointmentRequest,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_session),
) -> BookingConfirmation:
    owner, availability = await get_calendar(session, owner_id)
    flow = new_flow(
        session,
        owner,
        availability,
        notifier=EmailNotifier(background_tasks, owner),
        today=_utc_today(),
    )
    appointment = await book_slot(
        flow,
        body.date,
        body.time,
        {"name": body.name, "email": body.email, "message": body.message},
    )
    return BookingConfirmation(
        step=flow.step.value,
        appointment=AppointmentPublic.from_appointment(appointment),
    )
