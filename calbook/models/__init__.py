from calbook.models.owner import CalendarProfile, Owner, OwnerCreate, OwnerPublic
from calbook.models.refresh_token import RefreshToken
from calbook.models.availability_plan import AvailabilityPlan
from calbook.models.appointment import Appointment, AppointmentPublic, AppointmentStatus

__all__ = [
    "Owner",
    "OwnerCreate",
    "OwnerPublic",
    "CalendarProfile",
    "RefreshToken",
    "AvailabilityPlan",
    "Appointment",
    "AppointmentPublic",
    "AppointmentStatus",
]
