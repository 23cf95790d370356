"""Recurrence rule service layer.

Every write replaces the rule's generated events as a whole: there is no
incremental patching of already generated occurrences.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass, fields
from datetime import UTC, date, datetime
from typing import Protocol
from uuid import UUID

from pet_recurrence.db.models.event import Event, EventType, ReminderPreset
from pet_recurrence.db.models.recurrence_rule import RecurrenceRule
from pet_recurrence.domain.errors import (
    InvalidRequestError,
    RecurrenceRuleNotFoundError,
    compose_error_message,
)
from pet_recurrence.domain.recurrence_schedule import RecurrenceFrequency
from pet_recurrence.domain.timezones import (
    local_date,
    normalize_exception_date,
    resolve_timezone,
    to_date_key,
)
from pet_recurrence.repositories.recurrence_repository import (
    RecurrenceRepository,
    RecurrenceRuleListFilters,
)
from pet_recurrence.services.recurrence_generation_service import (
    RecurrenceGenerationService,
    RegenerationResult,
)
from pet_recurrence.services.rule_mutations import (
    RuleMutation,
    RuleMutationChannel,
    RuleMutationType,
)

logger = logging.getLogger(__name__)


class Unset(enum.Enum):
    """Marker for update fields that were not provided."""

    UNSET = "unset"


UNSET = Unset.UNSET

_KEEP_WHEN_NONE_FIELDS = frozenset(
    {
        "pet_id",
        "title",
        "event_type",
        "reminder",
        "frequency",
        "interval",
        "timezone",
        "start_date",
        "is_active",
    }
)


def utc_now() -> datetime:
    """Return the current instant in UTC."""

    return datetime.now(tz=UTC)


class SessionProtocol(Protocol):
    """Subset of SQLAlchemy session APIs used by recurrence service."""

    def commit(self) -> None: ...

    def rollback(self) -> None: ...

    def refresh(self, instance: object) -> None: ...


@dataclass(slots=True, frozen=True)
class CreateRecurrenceRuleInput:
    """Input model for recurrence rule creation."""

    pet_id: str
    title: str
    event_type: EventType
    frequency: RecurrenceFrequency
    start_date: datetime
    timezone: str | None = None
    reminder: bool = False
    reminder_preset: ReminderPreset | None = None
    vaccine_name: str | None = None
    vaccine_manufacturer: str | None = None
    batch_number: str | None = None
    medication_name: str | None = None
    dosage: str | None = None
    interval: int = 1
    days_of_week: tuple[int, ...] | None = None
    day_of_month: int | None = None
    times_per_day: int | None = None
    daily_times: tuple[str, ...] | None = None
    end_date: datetime | None = None


@dataclass(slots=True, frozen=True)
class UpdateRecurrenceRuleInput:
    """Partial rule update.

    ``UNSET`` keeps the stored value and ``None`` clears nullable fields.
    ``None`` on a required field keeps the stored value.
    """

    pet_id: str | None | Unset = UNSET
    title: str | None | Unset = UNSET
    event_type: EventType | None | Unset = UNSET
    reminder: bool | None | Unset = UNSET
    reminder_preset: ReminderPreset | None | Unset = UNSET
    vaccine_name: str | None | Unset = UNSET
    vaccine_manufacturer: str | None | Unset = UNSET
    batch_number: str | None | Unset = UNSET
    medication_name: str | None | Unset = UNSET
    dosage: str | None | Unset = UNSET
    frequency: RecurrenceFrequency | None | Unset = UNSET
    interval: int | None | Unset = UNSET
    days_of_week: tuple[int, ...] | None | Unset = UNSET
    day_of_month: int | None | Unset = UNSET
    times_per_day: int | None | Unset = UNSET
    daily_times: tuple[str, ...] | None | Unset = UNSET
    timezone: str | None | Unset = UNSET
    start_date: datetime | None | Unset = UNSET
    end_date: datetime | None | Unset = UNSET
    is_active: bool | None | Unset = UNSET
    exception_dates: tuple[date, ...] | None | Unset = UNSET


@dataclass(slots=True, frozen=True)
class ListRecurrenceRulesInput:
    """Input model for recurrence rule listing."""

    page: int = 1
    limit: int | None = None
    is_active: bool | None = None
    pet_id: str | None = None


@dataclass(slots=True, frozen=True)
class CreateRecurrenceRuleResult:
    """Stored rule and the number of events generated for it."""

    rule: RecurrenceRule
    events_created: int


@dataclass(slots=True, frozen=True)
class UpdateRecurrenceRuleResult:
    """Updated rule and the number of events regenerated for it."""

    rule: RecurrenceRule
    events_deleted: int
    events_created: int


@dataclass(slots=True, frozen=True)
class DeleteRecurrenceRuleResult:
    """Outcome of a cascading rule deletion."""

    message: str
    events_deleted: int


@dataclass(slots=True, frozen=True)
class AddExceptionResult:
    """Outcome of adding one exception date.

    ``message`` is ``"no-op"`` when the date was already excluded and no
    generated event matched it.
    """

    message: str
    exception_date: str
    events_deleted: int


class RecurrenceService:
    """Coordinates recurrence rule use cases and event materialization."""

    def __init__(
        self,
        *,
        recurrence_repository: RecurrenceRepository,
        session: SessionProtocol,
        generation_service: RecurrenceGenerationService | None = None,
        mutation_channel: RuleMutationChannel | None = None,
        timezone_resolver: Callable[[str | None], str] = resolve_timezone,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._recurrence_repository = recurrence_repository
        self._session = session
        self._generation_service = generation_service or RecurrenceGenerationService(
            recurrence_repository=recurrence_repository,
            timezone_resolver=timezone_resolver,
        )
        self._mutation_channel = mutation_channel
        self._timezone_resolver = timezone_resolver
        self._clock = clock

    def create_rule(
        self, payload: CreateRecurrenceRuleInput
    ) -> CreateRecurrenceRuleResult:
        """Persist a new active rule and materialize its events."""

        now = self._clock()
        rule = RecurrenceRule(
            pet_id=payload.pet_id,
            title=payload.title.strip(),
            event_type=payload.event_type,
            reminder=payload.reminder,
            reminder_preset=payload.reminder_preset,
            vaccine_name=payload.vaccine_name,
            vaccine_manufacturer=payload.vaccine_manufacturer,
            batch_number=payload.batch_number,
            medication_name=payload.medication_name,
            dosage=payload.dosage,
            frequency=payload.frequency,
            interval=payload.interval,
            days_of_week=_normalize_days_of_week(payload.days_of_week),
            day_of_month=payload.day_of_month,
            times_per_day=payload.times_per_day,
            daily_times=list(payload.daily_times)
            if payload.daily_times is not None
            else None,
            timezone=self._timezone_resolver(payload.timezone),
            start_date=payload.start_date,
            end_date=payload.end_date,
            is_active=True,
            last_generated_date=None,
            created_at=now,
            updated_at=now,
        )

        try:
            self._recurrence_repository.add_rule(rule)
            events_created = self._generation_service.generate_events(rule, now=now)
            self._session.commit()
            self._session.refresh(rule)
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "recurrence_rule_created",
            extra={
                "rule_id": str(rule.id),
                "pet_id": rule.pet_id,
                "frequency": rule.frequency.value,
                "events_created": events_created,
            },
        )
        self._publish(
            rule_id=rule.id,
            mutation_type=RuleMutationType.CREATED,
            now=now,
            events_created=events_created,
        )
        return CreateRecurrenceRuleResult(rule=rule, events_created=events_created)

    def get_rule_by_id(self, rule_id: UUID) -> RecurrenceRule | None:
        """Return one rule or ``None`` when it does not exist."""

        return self._recurrence_repository.get_rule(rule_id)

    def get_rules(
        self,
        payload: ListRecurrenceRulesInput,
    ) -> tuple[list[RecurrenceRule], int]:
        """List rules oldest first with pagination and filters."""

        return self._recurrence_repository.list_rules(
            RecurrenceRuleListFilters(
                is_active=payload.is_active,
                pet_id=payload.pet_id,
                page=payload.page,
                limit=payload.limit,
            )
        )

    def update_rule(
        self,
        rule_id: UUID,
        patch: UpdateRecurrenceRuleInput,
    ) -> UpdateRecurrenceRuleResult:
        """Merge patch fields and replace all generated events."""

        now = self._clock()
        rule = self._require_rule_for_update(rule_id)

        try:
            self._apply_patch(rule, patch)
            rule.updated_at = now
            self._recurrence_repository.flush()
            regeneration = self._generation_service.replace_events(rule, now=now)
            self._session.commit()
            self._session.refresh(rule)
        except Exception:
            self._session.rollback()
            raise

        self._log_regeneration(rule, regeneration, trigger="update")
        self._publish(
            rule_id=rule.id,
            mutation_type=RuleMutationType.UPDATED,
            now=now,
            events_deleted=regeneration.events_deleted,
            events_created=regeneration.events_created,
        )
        return UpdateRecurrenceRuleResult(
            rule=rule,
            events_deleted=regeneration.events_deleted,
            events_created=regeneration.events_created,
        )

    def delete_rule(self, rule_id: UUID) -> DeleteRecurrenceRuleResult:
        """Delete the rule and cascade to its events."""

        now = self._clock()
        rule = self._require_rule_for_update(rule_id)

        try:
            events_deleted = self._recurrence_repository.delete_events_for_rule(
                rule.id
            )
            self._recurrence_repository.delete_rule(rule)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "recurrence_rule_deleted",
            extra={"rule_id": str(rule_id), "events_deleted": events_deleted},
        )
        self._publish(
            rule_id=rule_id,
            mutation_type=RuleMutationType.DELETED,
            now=now,
            events_deleted=events_deleted,
        )
        return DeleteRecurrenceRuleResult(message="ok", events_deleted=events_deleted)

    def regenerate_events(self, rule_id: UUID) -> RegenerationResult:
        """Re-run delete and materialize without touching rule fields."""

        now = self._clock()
        rule = self._require_rule_for_update(rule_id)

        try:
            regeneration = self._generation_service.replace_events(rule, now=now)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        self._log_regeneration(rule, regeneration, trigger="regenerate")
        self._publish(
            rule_id=rule.id,
            mutation_type=RuleMutationType.REGENERATED,
            now=now,
            events_deleted=regeneration.events_deleted,
            events_created=regeneration.events_created,
        )
        return regeneration

    def regenerate_active_rules(
        self, *, pet_id: str | None = None
    ) -> dict[UUID, RegenerationResult]:
        """Regenerate every active rule, extending generation past the horizon."""

        return {
            rule_id: self.regenerate_events(rule_id)
            for rule_id in self._recurrence_repository.list_active_rule_ids(
                pet_id=pet_id
            )
        }

    def get_events_by_rule_id(
        self,
        rule_id: UUID,
        *,
        include_past: bool = False,
        limit: int | None = None,
    ) -> list[Event]:
        """Return the rule's events by ascending start time."""

        return self._recurrence_repository.list_events(
            rule_id,
            starting_at=None if include_past else self._clock(),
            limit=limit,
        )

    def add_exception(
        self,
        rule_id: UUID,
        value: str | date | datetime,
    ) -> AddExceptionResult:
        """Exclude one local date and drop already generated events on it."""

        now = self._clock()
        rule = self._require_rule_for_update(rule_id)
        timezone = self._timezone_resolver(rule.timezone)
        try:
            exception_date = normalize_exception_date(value, timezone)
        except ValueError as exc:
            raise InvalidRequestError(
                message=compose_error_message(
                    cause="Exception date is not a valid date or ISO-8601 instant.",
                    action="Send the date as YYYY-MM-DD and retry.",
                ),
                details={"date": str(value)},
            ) from exc

        try:
            created = self._recurrence_repository.add_exception_date(
                rule=rule,
                exception_date=exception_date,
            )
            matching_events = [
                event
                for event in self._recurrence_repository.list_events(rule.id)
                if local_date(event.start_time, timezone) == exception_date
            ]
            events_deleted = self._recurrence_repository.delete_events(
                matching_events
            )
            if created:
                rule.updated_at = now
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        message = "ok" if created or events_deleted > 0 else "no-op"
        logger.info(
            "recurrence_exception_added",
            extra={
                "rule_id": str(rule.id),
                "exception_date": exception_date.isoformat(),
                "events_deleted": events_deleted,
                "result": message,
            },
        )
        if message == "ok":
            self._publish(
                rule_id=rule.id,
                mutation_type=RuleMutationType.EXCEPTION_ADDED,
                now=now,
                events_deleted=events_deleted,
            )
        return AddExceptionResult(
            message=message,
            exception_date=to_date_key(exception_date),
            events_deleted=events_deleted,
        )

    def _apply_patch(
        self,
        rule: RecurrenceRule,
        patch: UpdateRecurrenceRuleInput,
    ) -> None:
        for field_info in fields(patch):
            name = field_info.name
            value = getattr(patch, name)
            if value is UNSET or name == "exception_dates":
                continue
            if value is None and name in _KEEP_WHEN_NONE_FIELDS:
                continue

            if name == "timezone":
                value = self._timezone_resolver(value)
            elif name == "title":
                value = value.strip()
            elif name == "days_of_week":
                value = _normalize_days_of_week(value)
            elif name == "daily_times" and value is not None:
                value = list(value)
            setattr(rule, name, value)

        if patch.exception_dates is not UNSET:
            self._recurrence_repository.replace_exception_dates(
                rule=rule,
                exception_dates=patch.exception_dates or (),
            )

    def _require_rule_for_update(self, rule_id: UUID) -> RecurrenceRule:
        rule = self._recurrence_repository.get_rule_for_update(rule_id)
        if rule is None:
            raise RecurrenceRuleNotFoundError(details={"rule_id": str(rule_id)})
        return rule

    @staticmethod
    def _log_regeneration(
        rule: RecurrenceRule,
        regeneration: RegenerationResult,
        *,
        trigger: str,
    ) -> None:
        logger.info(
            "recurrence_events_regenerated",
            extra={
                "rule_id": str(rule.id),
                "trigger": trigger,
                "is_active": rule.is_active,
                "events_deleted": regeneration.events_deleted,
                "events_created": regeneration.events_created,
            },
        )

    def _publish(
        self,
        *,
        rule_id: UUID,
        mutation_type: RuleMutationType,
        now: datetime,
        events_deleted: int = 0,
        events_created: int = 0,
    ) -> None:
        if self._mutation_channel is None:
            return
        self._mutation_channel.publish(
            RuleMutation(
                rule_id=rule_id,
                mutation_type=mutation_type,
                occurred_at=now,
                events_deleted=events_deleted,
                events_created=events_created,
            )
        )


def _normalize_days_of_week(days: tuple[int, ...] | None) -> list[int] | None:
    if days is None:
        return None
    return sorted(set(days))
