"""Calendar expansion of recurrence rules into concrete occurrence instants.

Expansion happens in three steps: the generation window is derived from the
rule and the current instant, cadence arithmetic enumerates local calendar
dates inside that window, and each surviving date is combined with the daily
time list and resolved to UTC. All cadence arithmetic works on local calendar
dates so DST transitions never shift a date.
"""

from __future__ import annotations

import calendar
import enum
import math
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from pet_recurrence.domain.timezones import (
    local_date,
    resolve_instant,
    to_date_key,
)

GENERATION_HORIZON_DAYS = 180
MAX_GENERATED_EVENTS = 240
DEFAULT_DAILY_TIME = "09:00"
MAX_TIMES_PER_DAY = 10

DEFAULT_DAILY_TIMES: dict[int, tuple[str, ...]] = {
    1: ("09:00",),
    2: ("08:00", "20:00"),
    3: ("08:00", "14:00", "20:00"),
    4: ("08:00", "12:00", "16:00", "20:00"),
    5: ("07:00", "10:00", "13:00", "16:00", "20:00"),
    6: ("06:00", "09:00", "12:00", "15:00", "18:00", "21:00"),
}

_ONE_DAY = timedelta(days=1)


class RecurrenceFrequency(enum.StrEnum):
    """Supported recurrence cadences."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    CUSTOM = "custom"
    TIMES_PER_DAY = "times_per_day"


@dataclass(slots=True, frozen=True)
class ExplicitTimes:
    """Explicit ``HH:MM`` list configured on the rule."""

    times: tuple[str, ...]


@dataclass(slots=True, frozen=True)
class TimesPerDay:
    """Number of evenly labelled default times per day."""

    count: int


@dataclass(slots=True, frozen=True)
class DefaultTime:
    """No time configuration; a single default time applies."""


TimesOfDay = ExplicitTimes | TimesPerDay | DefaultTime


@dataclass(slots=True, frozen=True)
class RecurrenceSchedule:
    """Cadence and temporal bounds of one recurrence rule."""

    frequency: RecurrenceFrequency
    timezone: str
    start_date: datetime
    interval: int = 1
    days_of_week: frozenset[int] = frozenset()
    day_of_month: int | None = None
    times_of_day: TimesOfDay = DefaultTime()
    end_date: datetime | None = None
    exception_dates: frozenset[str] = frozenset()


@dataclass(slots=True, frozen=True)
class GenerationWindow:
    """Inclusive local calendar date range of one generation pass."""

    start: date
    end: date


def times_of_day_from_fields(
    *,
    daily_times: Iterable[str] | None,
    times_per_day: int | None,
) -> TimesOfDay:
    """Build the times-of-day variant from nullable rule fields."""

    explicit = tuple(daily_times or ())
    if explicit:
        return ExplicitTimes(times=explicit)
    if times_per_day is not None:
        return TimesPerDay(count=times_per_day)
    return DefaultTime()


def generate_daily_times(count: int) -> tuple[str, ...]:
    """Return default ``HH:MM`` labels for ``count`` doses per day."""

    if count <= 0:
        return ()
    count = min(count, MAX_TIMES_PER_DAY)
    if count in DEFAULT_DAILY_TIMES:
        return DEFAULT_DAILY_TIMES[count]

    start_hour, end_hour = 6, 22
    step = (end_hour - start_hour) / (count - 1)
    return tuple(
        f"{math.floor(start_hour + step * index + 0.5):02d}:00"
        for index in range(count)
    )


def resolve_daily_times(times_of_day: TimesOfDay) -> tuple[str, ...]:
    """Return the ordered time list for one day, never empty."""

    match times_of_day:
        case ExplicitTimes(times=times):
            resolved = times
        case TimesPerDay(count=count):
            resolved = generate_daily_times(count)
        case DefaultTime():
            resolved = ()
    return resolved or (DEFAULT_DAILY_TIME,)


def build_generation_window(
    schedule: RecurrenceSchedule,
    *,
    now: datetime,
) -> GenerationWindow:
    """Return the bounded window for one generation pass.

    Generation never starts before today and never reaches further than
    ``GENERATION_HORIZON_DAYS`` past its own start.
    """

    today = local_date(now, schedule.timezone)
    rule_start = local_date(schedule.start_date, schedule.timezone)
    start = max(rule_start, today)
    horizon_end = start + timedelta(days=GENERATION_HORIZON_DAYS)

    end = horizon_end
    if schedule.end_date is not None:
        end = min(local_date(schedule.end_date, schedule.timezone), horizon_end)
    return GenerationWindow(start=start, end=max(end, start))


def weekday_ordinal(value: date) -> int:
    """Return weekday ordinal with Sunday as 0 and Saturday as 6."""

    return value.isoweekday() % 7


def normalize_month(value: date) -> date:
    """Normalize any date to the first day of the same month."""

    return date(year=value.year, month=value.month, day=1)


def add_months(month: date, months: int) -> date:
    """Return first day of the month shifted by a month offset."""

    normalized = normalize_month(month)
    absolute_month = ((normalized.year - 1) * 12 + normalized.month - 1) + months
    if absolute_month < 0:
        msg = "Resulting month is before year 0001."
        raise ValueError(msg)

    target_year = absolute_month // 12 + 1
    target_month = absolute_month % 12 + 1
    return date(year=target_year, month=target_month, day=1)


def scheduled_date_for_month(*, month: date, day_of_month: int) -> date:
    """Return the date for ``day_of_month`` clamped to the month length."""

    if day_of_month < 1 or day_of_month > 31:
        msg = "day_of_month must be between 1 and 31."
        raise ValueError(msg)

    normalized = normalize_month(month)
    _, month_last_day = calendar.monthrange(normalized.year, normalized.month)
    return normalized.replace(day=min(day_of_month, month_last_day))


def _iter_weekly(
    schedule: RecurrenceSchedule, window: GenerationWindow, interval: int
) -> Iterator[date]:
    selected_days = schedule.days_of_week or frozenset({weekday_ordinal(window.start)})
    current = window.start
    while current <= window.end:
        week_index = (current - window.start).days // 7
        if week_index % interval == 0 and weekday_ordinal(current) in selected_days:
            yield current
        current += _ONE_DAY


def _iter_monthly(
    schedule: RecurrenceSchedule, window: GenerationWindow, interval: int
) -> Iterator[date]:
    target_day = max(
        schedule.day_of_month
        if schedule.day_of_month is not None
        else window.start.day,
        1,
    )
    month = normalize_month(window.start)
    while month <= window.end:
        candidate = scheduled_date_for_month(month=month, day_of_month=target_day)
        if window.start <= candidate <= window.end:
            yield candidate
        month = add_months(month, interval)


def _iter_yearly(window: GenerationWindow, interval: int) -> Iterator[date]:
    """Yield the window start's month and day every ``interval`` years.

    The day is not clamped: a Feb 29 anchor rolls over to Mar 1 in common
    years.
    """

    year = window.start.year
    while True:
        candidate = date(year=year, month=window.start.month, day=1) + timedelta(
            days=window.start.day - 1
        )
        if candidate > window.end:
            return
        if candidate >= window.start:
            yield candidate
        year += interval


def _iter_daily(window: GenerationWindow, interval: int) -> Iterator[date]:
    step = timedelta(days=interval)
    current = window.start
    while current <= window.end:
        yield current
        current += step


def iter_occurrence_dates(
    schedule: RecurrenceSchedule,
    window: GenerationWindow,
) -> Iterator[date]:
    """Yield local occurrence dates inside ``window`` in chronological order."""

    interval = max(schedule.interval, 1)
    if schedule.frequency == RecurrenceFrequency.WEEKLY:
        return _iter_weekly(schedule, window, interval)
    if schedule.frequency == RecurrenceFrequency.MONTHLY:
        return _iter_monthly(schedule, window, interval)
    if schedule.frequency == RecurrenceFrequency.YEARLY:
        return _iter_yearly(window, interval)
    return _iter_daily(window, interval)


def enumerate_occurrence_date_keys(
    schedule: RecurrenceSchedule,
    window: GenerationWindow,
) -> list[str]:
    """Return every occurrence date key of ``schedule`` inside ``window``."""

    return [to_date_key(value) for value in iter_occurrence_dates(schedule, window)]


def filter_exception_dates(
    dates: Iterable[date],
    exception_dates: frozenset[str],
) -> Iterator[str]:
    """Yield date keys that are not listed as exceptions."""

    for value in dates:
        date_key = to_date_key(value)
        if date_key not in exception_dates:
            yield date_key


def materialize_start_times(
    schedule: RecurrenceSchedule,
    *,
    now: datetime,
) -> list[datetime]:
    """Return UTC start instants of one generation pass, capped and ordered.

    The cap may truncate the remaining times of the last generated day.
    """

    window = build_generation_window(schedule, now=now)
    daily_times = resolve_daily_times(schedule.times_of_day)
    date_keys = filter_exception_dates(
        iter_occurrence_dates(schedule, window),
        schedule.exception_dates,
    )

    start_times: list[datetime] = []
    for date_key in date_keys:
        for time_of_day in daily_times:
            start_times.append(
                resolve_instant(date_key, time_of_day, schedule.timezone)
            )
            if len(start_times) >= MAX_GENERATED_EVENTS:
                return start_times
    return start_times
