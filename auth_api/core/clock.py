# auth_api/core/clock.py
from datetime import datetime, timezone


class SystemClock:
    """Wall clock in UTC. Services take a clock so tests can move time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
