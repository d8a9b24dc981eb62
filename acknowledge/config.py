import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _resolve_database_url() -> str:
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        return database_url

    environment = os.getenv("ENVIRONMENT", "").strip().lower()
    if environment == "development":
        return "sqlite:///acknowledgement.db"

    raise ValueError(
        "DATABASE_URL is not set. Set DATABASE_URL for non-development "
        "environments or set ENVIRONMENT=development for local defaults."
    )


def _getbool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    database_url: str = _resolve_database_url()
    db_pool_size: int = int(os.getenv("DB_POOL_SIZE", "5"))
    db_max_overflow: int = int(os.getenv("DB_MAX_OVERFLOW", "10"))
    db_pool_timeout: int = int(os.getenv("DB_POOL_TIMEOUT", "30"))
    db_pool_recycle: int = int(os.getenv("DB_POOL_RECYCLE", "1800"))

    # Assignee expressions
    ack_group_sigil: str = os.getenv("ACK_GROUP_SIGIL", "@")
    ack_case_sensitive: bool = _getbool("ACK_CASE_SENSITIVE", "true")

    # Reporting
    ack_recent_limit: int = int(os.getenv("ACK_RECENT_LIMIT", "100"))
    ack_report_max_results: int = int(os.getenv("ACK_REPORT_MAX_RESULTS", "1000"))


settings = Settings()
