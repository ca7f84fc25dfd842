from functools import lru_cache
import json

from pydantic_settings import BaseSettings, SettingsConfigDict


def parse_cors_origins(value: str) -> list[str]:
    if not value:
        return []

    parsed: list[str]
    raw = value.strip()
    if raw.startswith("["):
        try:
            items = json.loads(raw)
            parsed = [str(item).strip() for item in items if str(item).strip()]
        except (TypeError, ValueError):
            parsed = []
    else:
        parsed = [origin.strip() for origin in raw.split(",") if origin.strip()]

    # Preserve order and remove duplicates.
    return list(dict.fromkeys(parsed))


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    app_name: str = "Academy Back Office"
    environment: str = "development"
    api_v1_prefix: str = "/api/v1"

    # Database (postgresql:// in production, sqlite:// for local runs and tests)
    database_url: str
    db_pool_size: int = 5
    db_max_overflow: int = 5
    db_pool_timeout: int = 15
    db_pool_recycle: int = 1200
    db_pool_pre_ping: bool = True

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # Rate limiting (slowapi)
    rate_limit_enabled: bool = True
    rate_limit_writes: str = "60/minute"

    # Ledger transactions
    ledger_retry_count: int = 3
    ledger_retry_backoff_seconds: float = 0.05

    # Lessons / packages
    default_lesson_duration_minutes: int = 45
    package_payment_cycle_days: int = 30

    # CORS
    cors_origins: str = "http://localhost:5173,http://localhost:3000"
    auto_create_tables: bool = False


@lru_cache
def get_settings() -> Settings:
    return Settings()
