from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from calbook.api.deps import get_current_owner
from calbook.api.schemas.booking import DayAvailabilityUpdate
from calbook.core.db import get_session
from calbook.domain.availability import AvailabilityModel, Weekday
from calbook.models.owner import Owner
from calbook.services.availability_service import (
    get_availability,
    save_availability,
    update_day_availability,
)

router = APIRouter(prefix="/availability", tags=["availability"])


@router.get("", response_model=AvailabilityModel)
async def read_availability(
    session: AsyncSession = Depends(get_session),
    current_owner: Owner = Depends(get_current_owner),
) -> AvailabilityModel:
    return await get_availability(session, current_owner.id)


@router.put("", response_model=AvailabilityModel)
async def replace_availability(
    body: AvailabilityModel,
    session: AsyncSession = Depends(get_session),
    current_owner: Owner = Depends(get_current_owner),
) -> AvailabilityModel:
    return await save_availability(session, current_owner.id, body)


@router.patch("/days/{weekday}", response_model=AvailabilityModel)
async def update_day(
    weekday: Weekday,
    body: DayAvailabilityUpdate,
    session: AsyncSession = Depends(get_session),
    current_owner: Owner = Depends(get_current_owner),
) -> AvailabilityModel:
    return await update_day_availability(
        session,
        current_owner.id,
        weekday,
        enabled=body.enabled,
        start_time=body.start_time,
        end_time=body.end_time,
        meeting_duration_minutes=body.meeting_duration_minutes,
    )
