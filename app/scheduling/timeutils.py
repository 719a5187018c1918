"""Clock and calendar helpers shared by the scheduling code."""

from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo

WEEKDAY_NAMES = ("sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday")


def parse_time(value: time | timedelta | str) -> time:
    """
    Convert a wall-clock value to ``datetime.time``.

    Accepts ``HH:mm`` and ``HH:mm:ss`` strings, ``time`` objects and
    ``timedelta`` offsets from midnight (as some drivers return TIME columns).
    Seconds and microseconds are dropped.
    """
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0, tzinfo=None)
    if isinstance(value, timedelta):
        return (datetime.min + value).time().replace(second=0, microsecond=0)
    if isinstance(value, str):
        parts = value.strip().split(":")
        if len(parts) not in (2, 3):
            raise ValueError(f"Invalid time '{value}', expected HH:mm")
        hour, minute = int(parts[0]), int(parts[1])
        return time(hour, minute)
    raise ValueError(f"Cannot convert {type(value)} to time")


def format_time(value: time) -> str:
    """Format a time as ``HH:mm``."""
    return value.strftime("%H:%M")


def weekday_index(day: date) -> int:
    """Weekday with 0 = Sunday, 1 = Monday ... 6 = Saturday."""
    return (day.weekday() + 1) % 7


def clinic_today(timezone: str, now: datetime | None = None) -> date:
    """Current date in the clinic's timezone."""
    current = now or datetime.now(UTC)
    if current.tzinfo is None:
        current = current.replace(tzinfo=UTC)
    return current.astimezone(ZoneInfo(timezone)).date()


def generate_time_slots(workday_start: time, workday_end: time, slot_minutes: int) -> list[time]:
    """Start times from ``workday_start`` to ``workday_end`` inclusive, every ``slot_minutes``."""
    if slot_minutes <= 0:
        raise ValueError("slot_minutes must be positive")

    slots = []
    current = workday_start.hour * 60 + workday_start.minute
    end = workday_end.hour * 60 + workday_end.minute
    while current <= end:
        slots.append(time(current // 60, current % 60))
        current += slot_minutes
    return slots
