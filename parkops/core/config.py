from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "local"
    APP_NAME: str = "Movaa Park Ops API"
    # Comma-separated origins for CORS (e.g. https://admin.movaa.ng). If empty, uses localhost defaults.
    CORS_ORIGINS: str = ""
    LOG_LEVEL: str = "INFO"

    # In-memory by default: the store lives for the lifetime of the process.
    DATABASE_URL: str = "sqlite+pysqlite:///:memory:"

    @field_validator("DATABASE_URL", mode="after")
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        """Render and others give postgres://; SQLAlchemy expects postgresql+psycopg2://."""
        if v and v.startswith("postgres://"):
            return "postgresql+psycopg2://" + v[11:]
        return v
    REDIS_URL: str = "redis://localhost:6379/0"

    # Park-local clock used for trip dates and departure times
    TIMEZONE: str = "Africa/Lagos"

    HOLD_MINUTES: int = 5
    HOLD_SWEEP_SECONDS: float = 60.0

    TRIP_DURATION_MINUTES: int = 180
    DRIVER_DETAILS_LEAD_HOURS: int = 5
    RECURRENCE_HORIZON_DAYS: int = 90
    DEFAULT_RECURRENCE_WEEKS: int = 4

    # Driver payout shares; the park keeps the rest
    DRIVER_PASSENGER_SHARE: float = 0.8
    DRIVER_PARCEL_SHARE: float = 0.5

    SEED_DEMO_DATA: bool = True

    @field_validator("DRIVER_PASSENGER_SHARE", "DRIVER_PARCEL_SHARE", mode="after")
    @classmethod
    def check_share(cls, v: float) -> float:
        if v < 0 or v > 1:
            raise ValueError("share must be between 0 and 1")
        return v


settings = Settings()
