import logging

from fastapi import APIRouter, Depends, Query

from calbook.api.deps import get_appointment_store, get_current_owner
from calbook.api.schemas.booking import CancelAppointmentRequest, DashboardResponse
from calbook.models.appointment import AppointmentPublic, AppointmentStatus
from calbook.models.owner import Owner
from calbook.services.appointment_service import (
    AppointmentScope,
    cancel_appointment,
    dashboard_stats,
    list_owner_appointments,
)
from calbook.services.appointment_store import AppointmentStore
from calbook.services.booking_service import booking_url

logger = logging.getLogger(__name__)
router = APIRouter(tags=["appointments"])

RECENT_APPOINTMENTS_LIMIT = 5


@router.get("/appointments", response_model=list[AppointmentPublic])
async def list_my_appointments(
    scope: AppointmentScope = Query(AppointmentScope.ALL),
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    store: AppointmentStore = Depends(get_appointment_store),
    current_owner: Owner = Depends(get_current_owner),
) -> list[AppointmentPublic]:
    appointments = await list_owner_appointments(
        store, current_owner.id, scope=scope, status=status_filter
    )
    return [AppointmentPublic.from_appointment(a) for a in appointments]


@router.post("/appointments/{appointment_id}/cancel", response_model=AppointmentPublic)
async def cancel_my_appointment(
    appointment_id: str,
    body: CancelAppointmentRequest,
    store: AppointmentStore = Depends(get_appointment_store),
    current_owner: Owner = Depends(get_current_owner),
) -> AppointmentPublic:
    """Cancel a confirmed appointment. The body must carry ``{"confirm": true}``."""
    appointment = await cancel_appointment(
        store, appointment_id, current_owner.id, confirmed=body.confirm
    )
    return AppointmentPublic.from_appointment(appointment)


@router.get("/dashboard", response_model=DashboardResponse)
async def dashboard(
    store: AppointmentStore = Depends(get_appointment_store),
    current_owner: Owner = Depends(get_current_owner),
) -> DashboardResponse:
    stats = await dashboard_stats(store, current_owner.id)
    upcoming = await list_owner_appointments(
        store, current_owner.id, scope=AppointmentScope.UPCOMING
    )
    return DashboardResponse(
        booking_url=booking_url(current_owner.id),
        total_appointments=stats.total_appointments,
        upcoming_appointments=stats.upcoming_appointments,
        completed_appointments=stats.completed_appointments,
        recent_appointments=[
            AppointmentPublic.from_appointment(a)
            for a in upcoming[:RECENT_APPOINTMENTS_LIMIT]
        ],
    )
