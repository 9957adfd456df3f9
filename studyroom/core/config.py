from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    PROJECT_NAME: str = "Study Room Reservation API"
    API_V1_STR: str = "/api/v1"
    LOG_LEVEL: str = "INFO"

    # Database
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "12345"
    POSTGRES_DB: str = "studyroom_db"
    POSTGRES_PORT: int = 5432
    DATABASE_URL: str = ""

    # Expiry sweeper
    SWEEPER_ENABLED: bool = True
    SWEEP_INTERVAL_SECONDS: int = 60
    SWEEP_BATCH_SIZE: int = 200
    MARK_NO_SHOWS: bool = True
    EXPIRE_OVERSTAYS: bool = True
    UNPAID_TIMEOUT_REASON: str = "system: unpaid timeout"

    # Lifecycle behaviour
    AUTO_SYNC_SEAT_STATUS: bool = False  # check-in occupies, check-out/cancel releases
    ENFORCE_OPENING_HOURS: bool = False

    # Queries & statistics
    UTILIZATION_WINDOW_DAYS: int = 30
    QUERY_LIMIT: int = 500
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

    def assemble_db_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

settings = Settings()
settings.DATABASE_URL = settings.assemble_db_url()
