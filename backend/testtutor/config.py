"""
Runtime configuration read from environment variables.

Values are resolved once at import time. Integer settings that fail to
parse fall back to their defaults so a bad deployment variable never
prevents the service from starting.
"""

import os


def _int_env(name: str, default: int) -> int:
    """Read an integer environment variable, falling back to `default`."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


# Database connection string; SQLite for local development
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./testtutor.db")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Comma-separated list of allowed frontend origins
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "*").split(",")
    if origin.strip()
]

# Pass threshold used when neither the test nor its domain defines one
DEFAULT_PASS_PERCENTAGE = _int_env("DEFAULT_PASS_PERCENTAGE", 70)

# Trailing window for "new this week" dashboard counters
RECENT_ACTIVITY_DAYS = _int_env("RECENT_ACTIVITY_DAYS", 7)

# Trailing window of the monthly progress series on user stats
MONTHLY_PROGRESS_MONTHS = _int_env("MONTHLY_PROGRESS_MONTHS", 6)

TOP_TESTS_LIMIT = _int_env("TOP_TESTS_LIMIT", 10)
RECENT_ATTEMPTS_LIMIT = _int_env("RECENT_ATTEMPTS_LIMIT", 10)
