import logging
from datetime import time

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from calbook.domain.availability import AvailabilityModel, Weekday
from calbook.models.availability_plan import AvailabilityPlan

logger = logging.getLogger(__name__)


async def _get_plan(session: AsyncSession, owner_id: int) -> AvailabilityPlan | None:
    result = await session.execute(
        select(AvailabilityPlan).where(AvailabilityPlan.owner_id == owner_id)
    )
    return result.scalar_one_or_none()


async def get_availability(session: AsyncSession, owner_id: int) -> AvailabilityModel:
    """The owner's stored availability, or the defaults when nothing was saved yet."""
    plan = await _get_plan(session, owner_id)
    if plan is None:
        return AvailabilityModel.default()
    return plan.to_model()


async def save_availability(
    session: AsyncSession, owner_id: int, availability: AvailabilityModel
) -> AvailabilityModel:
    plan = await _get_plan(session, owner_id)
    if plan is None:
        plan = AvailabilityPlan(owner_id=owner_id)
    plan.apply(availability)
    session.add(plan)
    await session.flush()
    logger.info("Saved availability for owner %s", owner_id)
    return plan.to_model()


async def update_day_availability(
    session: AsyncSession,
    owner_id: int,
    weekday: Weekday,
    *,
    enabled: bool | None = None,
    start_time: time | None = None,
    end_time: time | None = None,
    meeting_duration_minutes: int | None = None,
) -> AvailabilityModel:
    """Apply explicit field updates to one weekday (and optionally the duration)."""
    availability = await get_availability(session, owner_id)
    availability.update_day(weekday, enabled=enabled, start_time=start_time, end_time=end_time)
    if meeting_duration_minutes is not None:
        availability.set_meeting_duration(meeting_duration_minutes)
    return await save_availability(session, owner_id, availability)
