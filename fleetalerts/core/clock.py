"""Time sources for aggregation passes."""

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current UTC time, timezone aware."""
    return datetime.now(timezone.utc)


class FixedClock:
    """Clock returning a settable instant. Used by tests and replays."""

    def __init__(self, now: datetime):
        self.now = ensure_aware(now)

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime) -> None:
        self.now = ensure_aware(now)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
