"""Unit tests for recurrence expansion helpers."""

from __future__ import annotations

from datetime import UTC, date, datetime

import pytest

from pet_recurrence.domain.recurrence_schedule import (
    MAX_GENERATED_EVENTS,
    DefaultTime,
    ExplicitTimes,
    GenerationWindow,
    RecurrenceFrequency,
    RecurrenceSchedule,
    TimesPerDay,
    add_months,
    build_generation_window,
    enumerate_occurrence_date_keys,
    filter_exception_dates,
    generate_daily_times,
    materialize_start_times,
    resolve_daily_times,
    scheduled_date_for_month,
    times_of_day_from_fields,
    weekday_ordinal,
)


def _schedule(**overrides: object) -> RecurrenceSchedule:
    values: dict[str, object] = {
        "frequency": RecurrenceFrequency.DAILY,
        "timezone": "UTC",
        "start_date": datetime(2026, 2, 9, tzinfo=UTC),
    }
    values.update(overrides)
    return RecurrenceSchedule(**values)  # type: ignore[arg-type]


def test_scheduled_date_adjusts_to_february_last_day_non_leap_year() -> None:
    scheduled = scheduled_date_for_month(month=date(2026, 2, 1), day_of_month=31)

    assert scheduled == date(2026, 2, 28)


def test_scheduled_date_adjusts_to_february_last_day_leap_year() -> None:
    scheduled = scheduled_date_for_month(month=date(2024, 2, 1), day_of_month=31)

    assert scheduled == date(2024, 2, 29)


def test_scheduled_date_rejects_out_of_range_day() -> None:
    with pytest.raises(ValueError):
        scheduled_date_for_month(month=date(2026, 2, 1), day_of_month=32)


def test_add_months_crosses_year_boundary() -> None:
    assert add_months(date(2026, 11, 20), 3) == date(2027, 2, 1)


def test_weekday_ordinal_uses_sunday_as_zero() -> None:
    assert weekday_ordinal(date(2026, 2, 8)) == 0
    assert weekday_ordinal(date(2026, 2, 9)) == 1
    assert weekday_ordinal(date(2026, 2, 14)) == 6


def test_generation_window_starts_today_for_rules_started_in_the_past() -> None:
    schedule = _schedule(start_date=datetime(2025, 1, 1, tzinfo=UTC))

    window = build_generation_window(
        schedule, now=datetime(2026, 2, 9, 12, 0, tzinfo=UTC)
    )

    assert window == GenerationWindow(start=date(2026, 2, 9), end=date(2026, 8, 8))


def test_generation_window_is_clipped_by_end_date() -> None:
    schedule = _schedule(end_date=datetime(2026, 3, 1, tzinfo=UTC))

    window = build_generation_window(
        schedule, now=datetime(2026, 2, 9, 12, 0, tzinfo=UTC)
    )

    assert window == GenerationWindow(start=date(2026, 2, 9), end=date(2026, 3, 1))


def test_generation_window_end_never_precedes_start() -> None:
    schedule = _schedule(
        start_date=datetime(2025, 1, 1, tzinfo=UTC),
        end_date=datetime(2026, 1, 1, tzinfo=UTC),
    )

    window = build_generation_window(
        schedule, now=datetime(2026, 2, 9, 12, 0, tzinfo=UTC)
    )

    assert window == GenerationWindow(start=date(2026, 2, 9), end=date(2026, 2, 9))


def test_generation_window_uses_rule_timezone_for_today() -> None:
    schedule = _schedule(
        timezone="Europe/Istanbul",
        start_date=datetime(2026, 1, 1, tzinfo=UTC),
    )

    window = build_generation_window(
        schedule, now=datetime(2026, 2, 9, 22, 30, tzinfo=UTC)
    )

    assert window.start == date(2026, 2, 10)


def test_weekly_rule_enumerates_only_selected_weekdays() -> None:
    schedule = _schedule(
        frequency=RecurrenceFrequency.WEEKLY,
        start_date=datetime(2026, 2, 2, tzinfo=UTC),
        days_of_week=frozenset({1, 3}),
    )
    window = build_generation_window(schedule, now=datetime(2026, 2, 2, tzinfo=UTC))

    date_keys = enumerate_occurrence_date_keys(schedule, window)

    assert date_keys[:4] == ["2026-02-02", "2026-02-04", "2026-02-09", "2026-02-11"]
    assert len(date_keys) == 52
    assert date_keys == sorted(date_keys)
    assert {weekday_ordinal(date.fromisoformat(key)) for key in date_keys} == {1, 3}


def test_weekly_rule_skips_weeks_outside_interval() -> None:
    schedule = _schedule(
        frequency=RecurrenceFrequency.WEEKLY,
        interval=2,
        start_date=datetime(2026, 2, 2, tzinfo=UTC),
        days_of_week=frozenset({1}),
    )
    window = GenerationWindow(start=date(2026, 2, 2), end=date(2026, 3, 2))

    assert enumerate_occurrence_date_keys(schedule, window) == [
        "2026-02-02",
        "2026-02-16",
        "2026-03-02",
    ]


def test_weekly_rule_without_weekdays_uses_window_start_weekday() -> None:
    schedule = _schedule(frequency=RecurrenceFrequency.WEEKLY)
    window = GenerationWindow(start=date(2026, 2, 11), end=date(2026, 2, 28))

    assert enumerate_occurrence_date_keys(schedule, window) == [
        "2026-02-11",
        "2026-02-18",
        "2026-02-25",
    ]


def test_monthly_rule_clamps_day_to_month_length() -> None:
    schedule = _schedule(
        frequency=RecurrenceFrequency.MONTHLY,
        start_date=datetime(2026, 1, 31, tzinfo=UTC),
        day_of_month=31,
    )
    window = build_generation_window(schedule, now=datetime(2026, 1, 1, tzinfo=UTC))

    assert enumerate_occurrence_date_keys(schedule, window) == [
        "2026-01-31",
        "2026-02-28",
        "2026-03-31",
        "2026-04-30",
        "2026-05-31",
        "2026-06-30",
    ]


def test_monthly_rule_honors_interval_and_window_bounds() -> None:
    schedule = _schedule(
        frequency=RecurrenceFrequency.MONTHLY,
        interval=3,
        day_of_month=15,
    )
    window = GenerationWindow(start=date(2026, 1, 10), end=date(2026, 7, 9))

    assert enumerate_occurrence_date_keys(schedule, window) == [
        "2026-01-15",
        "2026-04-15",
    ]


def test_monthly_rule_skips_target_day_before_window_start() -> None:
    schedule = _schedule(frequency=RecurrenceFrequency.MONTHLY, day_of_month=5)
    window = GenerationWindow(start=date(2026, 2, 9), end=date(2026, 4, 9))

    assert enumerate_occurrence_date_keys(schedule, window) == [
        "2026-03-05",
        "2026-04-05",
    ]


def test_yearly_rule_rolls_leap_day_anchor_to_march_first() -> None:
    schedule = _schedule(frequency=RecurrenceFrequency.YEARLY)
    window = GenerationWindow(start=date(2024, 2, 29), end=date(2029, 3, 1))

    assert enumerate_occurrence_date_keys(schedule, window) == [
        "2024-02-29",
        "2025-03-01",
        "2026-03-01",
        "2027-03-01",
        "2028-02-29",
        "2029-03-01",
    ]


def test_yearly_rule_stops_at_inclusive_window_end() -> None:
    schedule = _schedule(frequency=RecurrenceFrequency.YEARLY)
    window = GenerationWindow(start=date(2024, 2, 29), end=date(2029, 2, 28))

    assert enumerate_occurrence_date_keys(schedule, window)[-1] == "2028-02-29"


def test_yearly_rule_honors_interval() -> None:
    schedule = _schedule(frequency=RecurrenceFrequency.YEARLY, interval=2)
    window = GenerationWindow(start=date(2024, 2, 29), end=date(2029, 3, 1))

    assert enumerate_occurrence_date_keys(schedule, window) == [
        "2024-02-29",
        "2026-03-01",
        "2028-02-29",
    ]


@pytest.mark.parametrize(
    "frequency",
    [
        RecurrenceFrequency.DAILY,
        RecurrenceFrequency.CUSTOM,
        RecurrenceFrequency.TIMES_PER_DAY,
    ],
)
def test_daily_fallback_steps_by_interval(frequency: RecurrenceFrequency) -> None:
    schedule = _schedule(frequency=frequency, interval=3)
    window = GenerationWindow(start=date(2026, 2, 26), end=date(2026, 3, 7))

    assert enumerate_occurrence_date_keys(schedule, window) == [
        "2026-02-26",
        "2026-03-01",
        "2026-03-04",
        "2026-03-07",
    ]


def test_non_positive_interval_is_treated_as_one() -> None:
    schedule = _schedule(interval=0)
    window = GenerationWindow(start=date(2026, 2, 9), end=date(2026, 2, 11))

    assert enumerate_occurrence_date_keys(schedule, window) == [
        "2026-02-09",
        "2026-02-10",
        "2026-02-11",
    ]


def test_filter_exception_dates_drops_listed_dates() -> None:
    dates = [date(2026, 2, 9), date(2026, 2, 10), date(2026, 2, 11)]

    assert list(filter_exception_dates(dates, frozenset({"2026-02-10"}))) == [
        "2026-02-09",
        "2026-02-11",
    ]


def test_times_of_day_from_fields_prefers_explicit_times() -> None:
    assert times_of_day_from_fields(
        daily_times=["07:30"], times_per_day=3
    ) == ExplicitTimes(times=("07:30",))
    assert times_of_day_from_fields(daily_times=[], times_per_day=3) == TimesPerDay(
        count=3
    )
    assert times_of_day_from_fields(daily_times=None, times_per_day=None) == (
        DefaultTime()
    )


def test_generate_daily_times_uses_fixed_table() -> None:
    assert generate_daily_times(1) == ("09:00",)
    assert generate_daily_times(3) == ("08:00", "14:00", "20:00")
    assert generate_daily_times(6) == (
        "06:00",
        "09:00",
        "12:00",
        "15:00",
        "18:00",
        "21:00",
    )


def test_generate_daily_times_spreads_larger_counts_and_clamps() -> None:
    assert generate_daily_times(7) == (
        "06:00",
        "09:00",
        "11:00",
        "14:00",
        "17:00",
        "19:00",
        "22:00",
    )
    assert generate_daily_times(12) == generate_daily_times(10)
    assert len(generate_daily_times(10)) == 10


def test_resolve_daily_times_falls_back_to_default_time() -> None:
    assert resolve_daily_times(DefaultTime()) == ("09:00",)
    assert resolve_daily_times(TimesPerDay(count=0)) == ("09:00",)
    assert resolve_daily_times(ExplicitTimes(times=())) == ("09:00",)
    assert resolve_daily_times(ExplicitTimes(times=("07:00", "19:00"))) == (
        "07:00",
        "19:00",
    )


def test_materialize_resolves_wall_clock_in_rule_timezone() -> None:
    schedule = _schedule(
        frequency=RecurrenceFrequency.WEEKLY,
        timezone="Europe/Istanbul",
        days_of_week=frozenset({5}),
        times_of_day=ExplicitTimes(times=("09:00",)),
    )

    start_times = materialize_start_times(
        schedule, now=datetime(2026, 2, 9, 12, 0, tzinfo=UTC)
    )

    assert start_times[0] == datetime(2026, 2, 13, 6, 0, tzinfo=UTC)
    assert start_times[1] == datetime(2026, 2, 20, 6, 0, tzinfo=UTC)


def test_materialize_keeps_local_time_across_dst_transition() -> None:
    schedule = _schedule(
        timezone="America/New_York",
        start_date=datetime(2026, 3, 7, 14, 0, tzinfo=UTC),
    )

    start_times = materialize_start_times(
        schedule, now=datetime(2026, 3, 7, tzinfo=UTC)
    )

    assert start_times[:2] == [
        datetime(2026, 3, 7, 14, 0, tzinfo=UTC),
        datetime(2026, 3, 8, 13, 0, tzinfo=UTC),
    ]


def test_materialize_caps_daily_rule_with_four_times_per_day() -> None:
    schedule = _schedule(times_of_day=TimesPerDay(count=4))

    start_times = materialize_start_times(
        schedule, now=datetime(2026, 2, 9, tzinfo=UTC)
    )

    assert len(start_times) == MAX_GENERATED_EVENTS
    assert start_times == sorted(start_times)


def test_materialize_cap_can_truncate_last_day() -> None:
    schedule = _schedule(times_of_day=TimesPerDay(count=7))

    start_times = materialize_start_times(
        schedule, now=datetime(2026, 2, 9, tzinfo=UTC)
    )

    assert len(start_times) == MAX_GENERATED_EVENTS
    assert start_times[-2:] == [
        datetime(2026, 3, 15, 6, 0, tzinfo=UTC),
        datetime(2026, 3, 15, 9, 0, tzinfo=UTC),
    ]


def test_materialize_skips_exception_dates() -> None:
    schedule = _schedule(
        end_date=datetime(2026, 2, 11, tzinfo=UTC),
        exception_dates=frozenset({"2026-02-10"}),
    )

    start_times = materialize_start_times(
        schedule, now=datetime(2026, 2, 9, tzinfo=UTC)
    )

    assert start_times == [
        datetime(2026, 2, 9, 9, 0, tzinfo=UTC),
        datetime(2026, 2, 11, 9, 0, tzinfo=UTC),
    ]
