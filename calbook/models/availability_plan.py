from pydantic import NaiveDatetime
from sqlalchemy import JSON, Column, DateTime
from sqlmodel import Field, SQLModel

from calbook.domain.availability import AvailabilityModel
from calbook.models.appointment import utc_naive_now


class AvailabilityPlan(SQLModel, table=True):
    """Stored weekly availability; one row per owner."""

    __tablename__ = "availability_plans"
    owner_id: int = Field(foreign_key="owners.id", primary_key=True)
    meeting_duration_minutes: int = 30
    # {"monday": {"enabled": true, "start_time": "09:00", "end_time": "17:00"}, ...}
    days: dict = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    updated_at: NaiveDatetime = Field(default_factory=utc_naive_now, sa_type=DateTime())

    def to_model(self) -> AvailabilityModel:
        return AvailabilityModel.model_validate(
            {"days": self.days, "meeting_duration_minutes": self.meeting_duration_minutes}
        )

    def apply(self, model: AvailabilityModel) -> None:
        dumped = model.model_dump(mode="json")
        self.days = dumped["days"]
        self.meeting_duration_minutes = dumped["meeting_duration_minutes"]
        self.updated_at = utc_naive_now()
