"""Timezone resolution and wall-clock to instant conversions.

Calendar dates handled by the recurrence engine are always local to the
rule's timezone and travel as ``YYYY-MM-DD`` date keys. Instants are always
timezone-aware UTC datetimes.
"""

from __future__ import annotations

import re
from datetime import UTC, date, datetime, time
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pet_recurrence.core.settings import get_settings

FALLBACK_TIMEZONE = "UTC"

_DATE_KEY_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}")


def is_valid_timezone(name: str) -> bool:
    """Return whether ``name`` is a known IANA timezone."""

    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def normalize_timezone(name: str | None) -> str | None:
    """Return trimmed timezone name when valid, otherwise ``None``."""

    trimmed = name.strip() if name else ""
    if not trimmed:
        return None
    return trimmed if is_valid_timezone(trimmed) else None


def resolve_timezone(name: str | None) -> str:
    """Return a valid IANA zone, substituting the configured default."""

    return (
        normalize_timezone(name)
        or normalize_timezone(get_settings().default_timezone)
        or FALLBACK_TIMEZONE
    )


def as_utc(value: datetime) -> datetime:
    """Return value as aware UTC datetime; naive values are taken as UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def to_date_key(value: date) -> str:
    """Format a calendar date as ``YYYY-MM-DD``."""

    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def parse_date_key(date_key: str) -> date:
    """Parse a ``YYYY-MM-DD`` date key."""

    return date.fromisoformat(date_key)


def local_date(instant: datetime, timezone: str) -> date:
    """Return the calendar date of an instant as seen in ``timezone``."""

    return as_utc(instant).astimezone(ZoneInfo(timezone)).date()


def resolve_instant(date_key: str, time_of_day: str, timezone: str) -> datetime:
    """Resolve a local date and ``HH:MM`` wall-clock time to a UTC instant.

    Wall-clock times falling into a DST gap resolve with the offset in force
    before the transition, as ``zoneinfo`` does for ``fold=0``.
    """

    local = datetime.combine(
        parse_date_key(date_key),
        time.fromisoformat(time_of_day),
        tzinfo=ZoneInfo(timezone),
    )
    return local.astimezone(UTC)


def normalize_exception_date(value: str | date | datetime, timezone: str) -> date:
    """Reduce an exception date input to a calendar date in ``timezone``.

    Strings carrying a ``YYYY-MM-DD`` fragment use that fragment verbatim;
    other strings are parsed as ISO-8601 instants. Raises ``ValueError`` for
    unparseable input.
    """

    if isinstance(value, datetime):
        return local_date(value, timezone)
    if isinstance(value, date):
        return value

    match = _DATE_KEY_PATTERN.search(value)
    if match is not None:
        return parse_date_key(match.group(0))
    return local_date(datetime.fromisoformat(value.strip()), timezone)


def local_wall_clock(instant: datetime, timezone: str) -> tuple[str, str]:
    """Return the ``(date_key, HH:MM)`` pair of an instant in ``timezone``."""

    localized = as_utc(instant).astimezone(ZoneInfo(timezone))
    return to_date_key(localized.date()), f"{localized.hour:02d}:{localized.minute:02d}"
