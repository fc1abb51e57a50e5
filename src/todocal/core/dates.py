"""Day keys and UTC normalization - no I/O dependencies."""

from datetime import date, datetime, timezone

from .errors import ValidationError


def to_date_key(value: date | datetime | str) -> date:
    """
    Coerce a date, datetime or `YYYY-MM-DD` string to a day key.

    A datetime keeps its wall-clock date as given; it is not shifted to UTC
    first, so the same wall-clock day always maps to the same key.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        raw = value.strip()
        # Timestamps are cut to their date part; anything else must be exact.
        if len(raw) > 10 and raw[10] in "T ":
            raw = raw[:10]
        return date.fromisoformat(raw)
    except (AttributeError, ValueError) as e:
        raise ValidationError(f"Invalid date key: {value!r}") from e


def format_date_key(day: date) -> str:
    """Canonical `YYYY-MM-DD` form."""
    return day.isoformat()


def utc_midnight(day: date) -> datetime:
    """UTC midnight instant for a day key."""
    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)


def utc_weekday(day: date) -> int:
    """Day of week of the key's UTC midnight, 0 = Sunday."""
    return (utc_midnight(day).weekday() + 1) % 7


def utc_day_of_month(day: date) -> int:
    return utc_midnight(day).day


def same_month(a: date, b: date) -> bool:
    return (a.year, a.month) == (b.year, b.month)


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def today_key() -> date:
    """Today's key from the local wall clock."""
    return datetime.now().date()
