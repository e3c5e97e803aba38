from __future__ import annotations

from datetime import date, datetime

from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime((value or "").strip(), "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"Invalid date (YYYY-MM-DD): {value!r}")


def parse_iso_datetime(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into naive local time.

    Offsets are converted to the server's local zone, the zone facility
    schedules are expressed in.
    """
    try:
        parsed = datetime.fromisoformat(str(value or "").strip())
    except ValueError:
        raise ValidationError(f"Invalid timestamp: {value!r}")
    return as_local_naive(parsed)


def as_local_naive(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def floor_minutes(start: datetime, end: datetime) -> int:
    """Whole minutes elapsed from ``start`` to ``end`` (0 when end <= start)."""
    seconds = (end - start).total_seconds()
    if seconds <= 0:
        return 0
    return int(seconds // 60)


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()
