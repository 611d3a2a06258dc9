"""Runtime configuration read from the environment.

Variables:
  DATABASE_URL      : postgresql+asyncpg://... or sqlite+aiosqlite://...
  DB_POOL_SIZE      : PostgreSQL pool size (default 5)
  DB_MAX_OVERFLOW   : PostgreSQL pool overflow (default 10)
  DB_POOL_TIMEOUT   : PostgreSQL pool timeout in seconds (default 30)
  ENVIRONMENT       : 'test' disables background scheduling
  LOG_LEVEL         : root log level for the CLI / server (default INFO)

Usage:
    from runtime_config import get_database_url, is_test_mode
"""
import os

from dotenv import load_dotenv

load_dotenv()

SUPPORTED_DRIVERS = ("postgresql+asyncpg", "sqlite+aiosqlite")

# Response deadline sweep cadence
DEADLINE_CHECK_INTERVAL_SECONDS = 60


def get_database_url() -> str:
    """Return DATABASE_URL or raise if it is not configured."""
    url = os.environ.get("DATABASE_URL")
    if not url:
        raise RuntimeError(
            "DATABASE_URL environment variable is not set. "
            "Copy .env.example to .env and set your database credentials."
        )
    return url


def pool_options() -> dict:
    """Pool sizing for server databases (ignored for SQLite)."""
    return {
        "pool_size": int(os.environ.get("DB_POOL_SIZE", "5")),
        "max_overflow": int(os.environ.get("DB_MAX_OVERFLOW", "10")),
        "pool_timeout": int(os.environ.get("DB_POOL_TIMEOUT", "30")),
    }


def environment() -> str:
    return os.environ.get("ENVIRONMENT", "development").lower()


def is_test_mode() -> bool:
    """True when running under the automated test suite."""
    return environment() == "test"


def log_level() -> str:
    return os.environ.get("LOG_LEVEL", "INFO").upper()
