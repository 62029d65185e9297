"""
Time helpers

Timestamps are stored as naive UTC so they compare the same way on
PostgreSQL and SQLite.
"""
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)
