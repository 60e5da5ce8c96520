from sqlmodel import Field, SQLModel


class OwnerBase(SQLModel):
    email: str = Field(unique=True, index=True)
    full_name: str | None = None


class Owner(OwnerBase, table=True):
    __tablename__ = "owners"
    id: int | None = Field(default=None, primary_key=True)
    hashed_password: str

    @property
    def display_name(self) -> str:
        return self.full_name or self.email.split("@")[0]


class OwnerCreate(SQLModel):
    email: str
    password: str
    full_name: str | None = None


class OwnerPublic(SQLModel):
    id: int
    email: str
    full_name: str | None = None


class CalendarProfile(SQLModel):
    """What a guest sees on the public booking page."""

    owner_id: int
    name: str
    meeting_duration_minutes: int
