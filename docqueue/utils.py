"""
Timestamp helpers.

Every timestamp persisted on a job document is an ISO-8601 UTC string with
millisecond precision and a 'Z' suffix, e.g. '2016-04-02T01:02:13.456Z'.
"""

from datetime import datetime, timedelta, timezone


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_iso(value: datetime) -> str:
    """Render a datetime as a UTC ISO string; naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(value: str) -> datetime:
    """Parse an ISO string written by to_iso (or any offset-aware ISO string)."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def add_ms(value: datetime, milliseconds: int) -> datetime:
    return value + timedelta(milliseconds=milliseconds)
