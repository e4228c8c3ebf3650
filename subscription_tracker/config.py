import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


def _env_bool(name: str, default: Optional[bool] = None) -> Optional[bool]:
    """Parse a boolean environment variable.

    Returns:
      - True/False if the env var is set to a recognizable value
      - default if unset or unrecognized

    Accepted truthy: 1, true, yes, y, on
    Accepted falsy:  0, false, no, n, off
    """

    raw = os.environ.get(name)
    if raw is None:
        return default
    v = raw.strip().lower()
    if v in ("1", "true", "yes", "y", "on"):
        return True
    if v in ("0", "false", "no", "n", "off"):
        return False
    return default


@dataclass(frozen=True)
class Config:
    """Runtime configuration.

    Built once at process start (see `load_config`) and handed to the app
    factory; business logic receives it explicitly instead of reading the
    environment.

    IMPORTANT: Provide secrets via environment variables or a .env file.
    Do not hardcode secrets in source code.
    """

    # -----------------
    # Core
    # -----------------
    # SQLite file path (default) or a postgres:// URL.
    DB_DSN: str = "./subscription_tracker.sqlite"

    # -----------------
    # Auth (JWT)
    # -----------------
    # NOTE: In dev, this defaults to a fixed string so you can get started.
    # In production, you MUST set AUTH_JWT_SECRET to a strong random value.
    AUTH_JWT_SECRET: str = "dev_change_me"
    AUTH_TOKEN_EXPIRE_MINUTES: int = 10080  # 7 days

    # -----------------
    # CORS (development)
    # -----------------
    CORS_ALLOW_ORIGINS: str = "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000"

    # -----------------
    # Subscriptions
    # -----------------
    # Look-ahead window for /subscriptions/upcoming-renewals when ?days= is omitted.
    UPCOMING_RENEWALS_DEFAULT_DAYS: int = 30

    # Print one line per request (method, path, status).
    LOG_REQUESTS: bool = False


def load_config() -> Config:
    """Build a Config from the environment (and a local .env file if present)."""
    load_dotenv()

    return Config(
        # Preferred: SUBTRACK_DATABASE_URL (or DATABASE_URL) for Postgres.
        # Fallback: SUBTRACK_DB_PATH for SQLite.
        DB_DSN=(
            os.environ.get("SUBTRACK_DATABASE_URL")
            or os.environ.get("DATABASE_URL")
            or os.environ.get("SUBTRACK_DB_PATH", "./subscription_tracker.sqlite")
        ),
        AUTH_JWT_SECRET=os.environ.get("AUTH_JWT_SECRET", "dev_change_me"),
        AUTH_TOKEN_EXPIRE_MINUTES=int(os.environ.get("AUTH_TOKEN_EXPIRE_MINUTES", "10080")),
        CORS_ALLOW_ORIGINS=os.environ.get(
            "CORS_ALLOW_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000",
        ),
        UPCOMING_RENEWALS_DEFAULT_DAYS=int(os.environ.get("UPCOMING_RENEWALS_DEFAULT_DAYS", "30")),
        LOG_REQUESTS=_env_bool("LOG_REQUESTS", False) is True,
    )
