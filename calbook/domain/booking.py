"""
Guest booking flow.

The flow walks three explicit states::

    SelectTime --proceed()--> EnterDetails --submit()--> Confirmed
        ^                          |
        +---------back()-----------+

``Confirmed`` is terminal. A failed submission leaves the flow in
``EnterDetails`` with the error recorded on ``last_error``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import UTC, date, datetime, time
from enum import Enum
from typing import TYPE_CHECKING, Protocol, TypeVar

from pydantic import BaseModel, EmailStr, ValidationError, field_validator

from calbook.domain.availability import AvailabilityModel
from calbook.domain.exceptions import InvalidInputError, InvalidTransitionError, PersistenceError
from calbook.domain.slots import (
    DEFAULT_HORIZON_DAYS,
    AvailableDates,
    Slot,
    find_slot,
    list_available_dates,
    list_time_slots,
)
from calbook.models.appointment import Appointment, AppointmentStatus, new_appointment_id

if TYPE_CHECKING:
    from calbook.services.appointment_store import AppointmentStore

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def send_confirmation(self, appointment: Appointment) -> None:
        """Fire-and-forget confirmation for a freshly booked appointment."""


class GuestDetails(BaseModel):
    name: str
    email: EmailStr
    message: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Name is required")
        return value

    @field_validator("message")
    @classmethod
    def blank_message_is_none(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            return None
        return value


class BookingStep(str, Enum):
    SELECT_TIME = "select-time"
    ENTER_DETAILS = "enter-details"
    CONFIRMED = "confirmation"


@dataclass(frozen=True)
class SelectTime:
    selected_date: date | None = None
    selected_time: time | None = None

    step = BookingStep.SELECT_TIME


@dataclass(frozen=True)
class EnterDetails:
    slot: Slot

    step = BookingStep.ENTER_DETAILS


@dataclass(frozen=True)
class Confirmed:
    appointment: Appointment

    step = BookingStep.CONFIRMED


BookingState = SelectTime | EnterDetails | Confirmed

_S = TypeVar("_S", SelectTime, EnterDetails, Confirmed)


class BookingFlow:
    """
    One guest's booking session against one owner's calendar.

    All draft state lives on the instance; the only shared resource is the
    injected appointment store.
    """

    def __init__(
        self,
        *,
        owner_id: int,
        availability: AvailabilityModel,
        store: AppointmentStore,
        notifier: Notifier | None = None,
        today: date | None = None,
        horizon_days: int = DEFAULT_HORIZON_DAYS,
        submit_timeout: float | None = None,
    ) -> None:
        self.owner_id = owner_id
        self.availability = availability
        self._store = store
        self._notifier = notifier
        self._today = today or datetime.now(UTC).date()
        self._horizon_days = horizon_days
        self._submit_timeout = submit_timeout
        self._state: BookingState = SelectTime()
        self._pending = False
        self.last_error: Exception | None = None

    @property
    def state(self) -> BookingState:
        return self._state

    @property
    def step(self) -> BookingStep:
        return self._state.step

    @property
    def pending(self) -> bool:
        return self._pending

    def available_dates(self) -> AvailableDates:
        return list_available_dates(self.availability, self._today, self._horizon_days)

    def time_slots(self) -> list[Slot]:
        """Slots for the currently selected date; empty until one is picked."""
        state = self._expect(SelectTime, "list time slots")
        if state.selected_date is None:
            return []
        return list_time_slots(state.selected_date, self.availability)

    @property
    def can_proceed(self) -> bool:
        state = self._state
        return (
            isinstance(state, SelectTime)
            and state.selected_date is not None
            and state.selected_time is not None
        )

    def select_date(self, day: date) -> None:
        self._expect(SelectTime, "select a date")
        if day not in self.available_dates():
            raise InvalidInputError(
                f"{day.isoformat()} is not available for booking",
                errors={"date": "This date is not available"},
            )
        # a new date invalidates the previously picked time
        self._state = SelectTime(selected_date=day)

    def select_time(self, start_time: time) -> None:
        state = self._expect(SelectTime, "select a time")
        if state.selected_date is None:
            raise InvalidInputError("Pick a date first", errors={"date": "Pick a date first"})
        if find_slot(state.selected_date, start_time, self.availability) is None:
            raise InvalidInputError(
                f"{start_time:%H:%M} is not an available time",
                errors={"time": "This time is not available"},
            )
        self._state = SelectTime(selected_date=state.selected_date, selected_time=start_time)

    def proceed(self) -> bool:
        """Move on to guest details. Returns False and stays put without a date and time."""
        state = self._expect(SelectTime, "continue")
        if not self.can_proceed:
            return False
        slot = find_slot(state.selected_date, state.selected_time, self.availability)
        self._state = EnterDetails(slot=slot)
        return True

    def back(self) -> None:
        """Return to the picker keeping the chosen date and time."""
        state = self._expect(EnterDetails, "go back")
        if self._pending:
            raise InvalidTransitionError("A booking is being submitted")
        self.last_error = None
        self._state = SelectTime(
            selected_date=state.slot.date, selected_time=state.slot.start_time
        )

    async def submit(self, details: GuestDetails | dict) -> Appointment:
        """
        Book the chosen slot for the guest.

        Either a confirmed appointment is stored and returned, or the flow
        stays in ``EnterDetails`` and the error is raised.
        """
        state = self._expect(EnterDetails, "book")
        if self._pending:
            raise InvalidTransitionError("A booking is already being submitted")

        if not isinstance(details, GuestDetails):
            try:
                details = GuestDetails.model_validate(details)
            except ValidationError as exc:
                error = InvalidInputError.from_validation_error("Invalid guest details", exc)
                self.last_error = error
                raise error from exc

        appointment = Appointment(
            id=new_appointment_id(),
            owner_id=self.owner_id,
            guest_name=details.name,
            guest_email=str(details.email),
            guest_message=details.message,
            appointment_datetime_utc=state.slot.start,
            duration_minutes=state.slot.duration_minutes(),
            status=AppointmentStatus.CONFIRMED,
        )

        self._pending = True
        try:
            stored = await self._append(appointment)
        except PersistenceError as exc:
            self.last_error = exc
            raise
        finally:
            self._pending = False

        self.last_error = None
        self._state = Confirmed(appointment=stored)
        logger.info(
            "Booked appointment %s for owner %s at %s",
            stored.id,
            self.owner_id,
            stored.appointment_datetime_utc.isoformat(),
        )
        self._notify(stored)
        return stored

    async def _append(self, appointment: Appointment) -> Appointment:
        try:
            if self._submit_timeout is None:
                return await self._store.append(appointment)
            return await asyncio.wait_for(self._store.append(appointment), self._submit_timeout)
        except TimeoutError as e:
            logger.warning("Booking submission timed out after %ss", self._submit_timeout)
            raise PersistenceError("Booking timed out, please try again") from e

    def _notify(self, appointment: Appointment) -> None:
        if self._notifier is None:
            return
        try:
            self._notifier.send_confirmation(appointment)
        except Exception as e:
            logger.exception("Confirmation for appointment %s failed: %s", appointment.id, e)

    def _expect(self, state_type: type[_S], action: str) -> _S:
        state = self._state
        if not isinstance(state, state_type):
            raise InvalidTransitionError(f"Cannot {action} in step '{state.step.value}'")
        return state
