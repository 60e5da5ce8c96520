from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env from the project root so it loads regardless of cwd
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(str(_ENV_FILE), ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database (postgresql://... or sqlite+aiosqlite:///./calbook.db)
    database_url: str = "sqlite+aiosqlite:///./calbook.db"
    auto_create_tables: bool = True

    # JWT
    secret_key: str
    access_token_expire_minutes: int = 15
    refresh_token_expire_days: int = 7
    algorithm: str = "HS256"
    password_hash_rounds: int = 12

    # CORS
    cors_origins: str = "http://localhost:3000"

    # Public booking page, the owner's link is {public_base_url}/book/{owner_id}
    public_base_url: str = "http://localhost:3000"

    # Booking rules
    booking_horizon_days: int = 30
    booking_submit_timeout_seconds: float = 10.0
    # Mark confirmed appointments as completed once they are over
    auto_complete_past_appointments: bool = False
    completion_sweep_interval_seconds: int = 60 * 60

    # Env
    env: str = "development"

    # Email (SMTP). Leave smtp_host empty to disable sending.
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    from_email: str = ""
    from_name: str = "Calbook"
    site_name: str = "Calbook"

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def email_enabled(self) -> bool:
        return bool(self.smtp_host and self.smtp_user and self.smtp_password and self.from_email)

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


settings = Settings()
