"""
Simple configuration management.

The ``Settings`` dataclass reads configuration directly from
environment variables.  Defaults are provided for all fields so the
API can be started locally without any setup.  In a production
deployment you should at least override ``JWT_SECRET`` and
``DATABASE_URL``.
"""

import os
from dataclasses import dataclass, field
from typing import List


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    project_name: str = os.getenv("PROJECT_NAME", "UTASK API")
    api_version: str = os.getenv("API_VERSION", "1.0.0")
    debug: bool = os.getenv("DEBUG", "false").lower() in {"1", "true", "yes"}
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    # Optional path of a log file; console logging is always enabled.
    log_file: str = os.getenv("LOG_FILE", "")

    secret_key: str = os.getenv("JWT_SECRET", "utask-secret-key")
    # Tokens (and the auth cookie) live for seven days unless overridden.
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24 * 7)))
    cookie_secure: bool = os.getenv("COOKIE_SECURE", "false").lower() in {"1", "true", "yes"}

    # Path of the SQLite database file.  Relative paths are resolved
    # against the working directory by ``core.db``.
    database_url: str = os.getenv("DATABASE_URL", "utask.db")
    # Seconds a connection waits for the write lock before failing.
    database_timeout: float = float(os.getenv("DATABASE_TIMEOUT", "5.0"))

    nearby_max_results: int = int(os.getenv("NEARBY_MAX_RESULTS", "50"))

    # Comma-separated list of origins allowed by CORS.  Empty disables
    # the middleware.
    cors_origins: List[str] = field(default_factory=lambda: _split_csv(os.getenv("CORS_ORIGINS", "")))


# Instantiate settings once so other modules can import it without
# repeatedly reading environment variables.  ``create_app`` accepts an
# explicit instance, which is what the tests use.
settings = Settings()
