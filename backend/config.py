"""
Workspace backend configuration — all environment variables in one place.

Read from environment at runtime. Never hardcode secrets.
"""

from __future__ import annotations

import os


class Settings:
    """Application settings from environment variables."""

    # Database
    DATABASE_URL: str = os.environ.get("DATABASE_URL", "")
    DB_POOL_MIN_SIZE: int = int(os.environ.get("DB_POOL_MIN_SIZE", "2"))
    DB_POOL_MAX_SIZE: int = int(os.environ.get("DB_POOL_MAX_SIZE", "20"))

    # Snapshots
    EVENTS_PER_SNAPSHOT: int = int(os.environ.get("EVENTS_PER_SNAPSHOT", "50"))
    MAX_SNAPSHOTS_PER_WORKSPACE: int = int(os.environ.get("MAX_SNAPSHOTS_PER_WORKSPACE", "3"))
    EVENT_PAGE_SIZE: int = int(os.environ.get("EVENT_PAGE_SIZE", "1000"))

    # Application
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")
    ENVIRONMENT: str = os.environ.get("ENVIRONMENT", "development")


# Singleton instance
settings = Settings()

# Validate required settings (skip in test mode)
_testing = os.environ.get("TESTING", "").lower() == "true"

if not _testing:
    if not settings.DATABASE_URL:
        raise RuntimeError("DATABASE_URL environment variable is required")
