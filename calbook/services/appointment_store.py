"""
Appointment stores.

The booking flow and the owner views only talk to ``AppointmentStore``; the
SQL store backs the web app, the in-memory store is a local, non-durable log
for in-process use.
"""

from __future__ import annotations

import logging
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from calbook.domain.exceptions import PersistenceError
from calbook.models.appointment import Appointment, AppointmentStatus

logger = logging.getLogger(__name__)


class AppointmentStore(Protocol):
    """Protocol describing the appointment persistence needed by the core."""

    async def append(self, appointment: Appointment) -> Appointment:
        """Insert a new record, raising ``PersistenceError`` on failure."""

    async def get(self, appointment_id: str) -> Appointment | None:
        """Return the record with ``appointment_id``, if any."""

    async def list_by_owner(self, owner_id: int) -> list[Appointment]:
        """Return the owner's appointments ordered by start time."""

    async def update_status(
        self, appointment_id: str, status: AppointmentStatus
    ) -> Appointment | None:
        """Set ``status`` on a record; None when it does not exist."""


class InMemoryAppointmentStore:
    def __init__(self) -> None:
        self._records: dict[str, Appointment] = {}

    async def append(self, appointment: Appointment) -> Appointment:
        if appointment.id in self._records:
            raise PersistenceError(f"Appointment {appointment.id} already exists")
        self._records[appointment.id] = appointment
        return appointment

    async def get(self, appointment_id: str) -> Appointment | None:
        return self._records.get(appointment_id)

    async def list_by_owner(self, owner_id: int) -> list[Appointment]:
        owned = [a for a in self._records.values() if a.owner_id == owner_id]
        return sorted(owned, key=lambda a: a.appointment_datetime_utc)

    async def update_status(
        self, appointment_id: str, status: AppointmentStatus
    ) -> Appointment | None:
        appointment = self._records.get(appointment_id)
        if appointment is None:
            return None
        appointment.status = status
        return appointment

    def __len__(self) -> int:
        return len(self._records)


class SqlAppointmentStore:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def append(self, appointment: Appointment) -> Appointment:
        self._session.add(appointment)
        try:
            await self._session.flush()
        except SQLAlchemyError as e:
            logger.warning("Appointment insert failed: %s", e)
            await self._session.rollback()
            raise PersistenceError("Could not save the appointment") from e
        await self._session.refresh(appointment)
        return appointment

    async def get(self, appointment_id: str) -> Appointment | None:
        result = await self._session.execute(
            select(Appointment).where(Appointment.id == appointment_id)
        )
        return result.scalar_one_or_none()

    async def list_by_owner(self, owner_id: int) -> list[Appointment]:
        result = await self._session.execute(
            select(Appointment)
            .where(Appointment.owner_id == owner_id)
            .order_by(Appointment.appointment_datetime_utc)
        )
        return list(result.scalars().all())

    async def update_status(
        self, appointment_id: str, status: AppointmentStatus
    ) -> Appointment | None:
        appointment = await self.get(appointment_id)
        if appointment is None:
            return None
        appointment.status = status
        self._session.add(appointment)
        try:
            await self._session.flush()
        except SQLAlchemyError as e:
            logger.warning("Appointment %s status update failed: %s", appointment_id, e)
            await self._session.rollback()
            raise PersistenceError("Could not update the appointment") from e
        return appointment
