"""Recurrence event materialization orchestration."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from pet_recurrence.db.models.event import Event, EventStatus
from pet_recurrence.db.models.recurrence_rule import RecurrenceRule
from pet_recurrence.domain.recurrence_schedule import (
    RecurrenceSchedule,
    materialize_start_times,
    times_of_day_from_fields,
)
from pet_recurrence.domain.timezones import as_utc, resolve_timezone, to_date_key
from pet_recurrence.repositories.recurrence_repository import RecurrenceRepository


@dataclass(slots=True, frozen=True)
class RegenerationResult:
    """Counters for one delete-and-materialize pass."""

    events_deleted: int
    events_created: int


def schedule_from_rule(
    rule: RecurrenceRule,
    *,
    timezone_resolver: Callable[[str | None], str] = resolve_timezone,
) -> RecurrenceSchedule:
    """Map persisted rule fields onto the domain schedule."""

    return RecurrenceSchedule(
        frequency=rule.frequency,
        timezone=timezone_resolver(rule.timezone),
        start_date=as_utc(rule.start_date),
        interval=rule.interval,
        days_of_week=frozenset(rule.days_of_week or ()),
        day_of_month=rule.day_of_month,
        times_of_day=times_of_day_from_fields(
            daily_times=rule.daily_times,
            times_per_day=rule.times_per_day,
        ),
        end_date=as_utc(rule.end_date) if rule.end_date is not None else None,
        exception_dates=frozenset(
            to_date_key(item.exception_date) for item in rule.exception_dates
        ),
    )


class RecurrenceGenerationService:
    """Turns rules into persisted events; callers own the transaction."""

    def __init__(
        self,
        *,
        recurrence_repository: RecurrenceRepository,
        timezone_resolver: Callable[[str | None], str] = resolve_timezone,
    ) -> None:
        self._recurrence_repository = recurrence_repository
        self._timezone_resolver = timezone_resolver

    def generate_events(self, rule: RecurrenceRule, *, now: datetime) -> int:
        """Materialize and persist one full generation pass for the rule."""

        schedule = schedule_from_rule(rule, timezone_resolver=self._timezone_resolver)
        start_times = materialize_start_times(schedule, now=now)
        events = [
            self._build_event(
                rule=rule,
                start_time=start_time,
                series_index=index,
                now=now,
            )
            for index, start_time in enumerate(start_times)
        ]
        self._recurrence_repository.add_events(events)

        rule.last_generated_date = now
        rule.updated_at = now
        self._recurrence_repository.flush()
        return len(events)

    def replace_events(self, rule: RecurrenceRule, *, now: datetime) -> RegenerationResult:
        """Delete all events of the rule and regenerate when it is active."""

        events_deleted = self._recurrence_repository.delete_events_for_rule(rule.id)
        events_created = self.generate_events(rule, now=now) if rule.is_active else 0
        return RegenerationResult(
            events_deleted=events_deleted,
            events_created=events_created,
        )

    @staticmethod
    def _build_event(
        *,
        rule: RecurrenceRule,
        start_time: datetime,
        series_index: int,
        now: datetime,
    ) -> Event:
        return Event(
            pet_id=rule.pet_id,
            title=rule.title,
            event_type=rule.event_type,
            start_time=start_time,
            reminder=rule.reminder,
            reminder_preset=rule.reminder_preset,
            status=EventStatus.UPCOMING,
            vaccine_name=rule.vaccine_name,
            vaccine_manufacturer=rule.vaccine_manufacturer,
            batch_number=rule.batch_number,
            medication_name=rule.medication_name,
            dosage=rule.dosage,
            recurrence_rule_id=rule.id,
            series_index=series_index,
            created_at=now,
            updated_at=now,
        )
