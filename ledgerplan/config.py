import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

# Pick up a local .env before any setting is read
load_dotenv()


@dataclass(frozen=True)
class Settings:
    database_url: str
    sql_echo: bool
    planned_months_ahead: int
    timeline_max_years: int
    store_timeout_seconds: float
    read_retries: int


@lru_cache
def get_settings() -> Settings:
    """
    Build settings from environment variables.

    PLANNED_MONTHS_AHEAD is the scheduler horizon; tests pass their own
    horizon explicitly instead of relying on this default.
    """
    return Settings(
        database_url=os.environ.get("DATABASE_URL", "sqlite:///ledgerplan.db"),
        sql_echo=os.getenv("SQL_ECHO", "false").lower() == "true",
        planned_months_ahead=int(os.getenv("PLANNED_MONTHS_AHEAD", "24")),
        timeline_max_years=int(os.getenv("TIMELINE_MAX_YEARS", "5")),
        store_timeout_seconds=float(os.getenv("STORE_TIMEOUT_SECONDS", "10")),
        read_retries=int(os.getenv("READ_RETRIES", "3")),
    )
