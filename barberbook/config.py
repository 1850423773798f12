# barberbook/config.py

import logging
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="BARBERBOOK_",
        env_file=".env",
        extra="ignore",
    )

    database_url: str = "sqlite:///./barber.db"
    sql_echo: bool = False

    # grid step used for candidate slots
    slot_minutes: int = 15
    # used by availability queries that give neither a duration nor a service
    default_service_minutes: int = 30
    booking_lock_timeout_seconds: float = 5.0

    secret_key: str = "change-me-later"
    algorithm: str = "HS256"

    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(level: str | None = None) -> None:
    level_name = (level or get_settings().log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
