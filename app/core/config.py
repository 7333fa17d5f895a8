from datetime import time
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env from the project root so it loads regardless of cwd
_BACKEND_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _BACKEND_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(str(_ENV_FILE), ".env", "../.env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = "sqlite+aiosqlite:///./agenda.db"
    # Create tables on startup instead of running Alembic (dev/tests only)
    create_tables_on_startup: bool = False

    # JWT
    secret_key: str
    access_token_expire_minutes: int = 60
    algorithm: str = "HS256"

    # CORS
    cors_origins: str = "http://localhost:3000"

    # Agenda grid shown to the practitioner
    agenda_start: time = time(9, 0)
    agenda_end: time = time(18, 0)  # exclusive, last slot ends here
    slot_duration_minutes: int = 60

    # Appointment form defaults
    default_start_time: time = time(9, 0)
    default_session_minutes: int = 60
    default_color: str = "#8B5CF6"

    # Env
    env: str = "development"

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


settings = Settings()
