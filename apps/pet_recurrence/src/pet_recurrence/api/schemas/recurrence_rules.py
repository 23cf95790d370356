"""Recurrence rule API schemas."""

from __future__ import annotations

from datetime import date, datetime
from typing import Annotated, Any
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from pet_recurrence.db.models.event import (
    Event,
    EventStatus,
    EventType,
    ReminderPreset,
)
from pet_recurrence.db.models.recurrence_rule import RecurrenceRule
from pet_recurrence.domain.recurrence_schedule import (
    MAX_TIMES_PER_DAY,
    RecurrenceFrequency,
)
from pet_recurrence.domain.timezones import as_utc, to_date_key
from pet_recurrence.services.recurrence_generation_service import (
    RegenerationResult,
)
from pet_recurrence.services.recurrence_service import (
    AddExceptionResult,
    CreateRecurrenceRuleInput,
    DeleteRecurrenceRuleResult,
    UpdateRecurrenceRuleInput,
)


TimeOfDay = Annotated[str, Field(pattern=r"^([01][0-9]|2[0-3]):[0-5][0-9]$")]
Weekday = Annotated[int, Field(ge=0, le=6)]
PetId = Annotated[str, Field(min_length=1, max_length=64)]


def _strip_title(value: str | None) -> str | None:
    if value is None:
        return None
    trimmed = value.strip()
    if not trimmed:
        raise ValueError("Title cannot be blank.")
    return trimmed


def _as_utc_or_none(value: datetime | None) -> datetime | None:
    return as_utc(value) if value is not None else None


class CreateRecurrenceRuleRequest(BaseModel):
    """Payload for recurrence rule creation."""

    pet_id: PetId
    title: str = Field(min_length=1, max_length=100)
    event_type: EventType
    reminder: bool = False
    reminder_preset: ReminderPreset | None = None
    vaccine_name: str | None = Field(default=None, max_length=120)
    vaccine_manufacturer: str | None = Field(default=None, max_length=120)
    batch_number: str | None = Field(default=None, max_length=64)
    medication_name: str | None = Field(default=None, max_length=120)
    dosage: str | None = Field(default=None, max_length=64)
    frequency: RecurrenceFrequency
    interval: int = Field(default=1, ge=1, le=365)
    days_of_week: list[Weekday] | None = None
    day_of_month: int | None = Field(default=None, ge=1, le=31)
    times_per_day: int | None = Field(default=None, ge=1, le=MAX_TIMES_PER_DAY)
    daily_times: list[TimeOfDay] | None = None
    timezone: str | None = Field(default=None, max_length=64)
    start_date: datetime
    end_date: datetime | None = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, value: str) -> str:
        return _strip_title(value) or value

    @field_validator("start_date")
    @classmethod
    def validate_start_date(cls, value: datetime) -> datetime:
        return as_utc(value)

    @field_validator("end_date")
    @classmethod
    def validate_end_date(cls, value: datetime | None) -> datetime | None:
        return _as_utc_or_none(value)

    def to_input(self) -> CreateRecurrenceRuleInput:
        return CreateRecurrenceRuleInput(
            pet_id=self.pet_id,
            title=self.title,
            event_type=self.event_type,
            frequency=self.frequency,
            start_date=self.start_date,
            timezone=self.timezone,
            reminder=self.reminder,
            reminder_preset=self.reminder_preset,
            vaccine_name=self.vaccine_name,
            vaccine_manufacturer=self.vaccine_manufacturer,
            batch_number=self.batch_number,
            medication_name=self.medication_name,
            dosage=self.dosage,
            interval=self.interval,
            days_of_week=tuple(self.days_of_week)
            if self.days_of_week is not None
            else None,
            day_of_month=self.day_of_month,
            times_per_day=self.times_per_day,
            daily_times=tuple(self.daily_times)
            if self.daily_times is not None
            else None,
            end_date=self.end_date,
        )


class UpdateRecurrenceRuleRequest(BaseModel):
    """Partial rule update; omitted fields keep their stored values."""

    pet_id: PetId | None = None
    title: str | None = Field(default=None, min_length=1, max_length=100)
    event_type: EventType | None = None
    reminder: bool | None = None
    reminder_preset: ReminderPreset | None = None
    vaccine_name: str | None = Field(default=None, max_length=120)
    vaccine_manufacturer: str | None = Field(default=None, max_length=120)
    batch_number: str | None = Field(default=None, max_length=64)
    medication_name: str | None = Field(default=None, max_length=120)
    dosage: str | None = Field(default=None, max_length=64)
    frequency: RecurrenceFrequency | None = None
    interval: int | None = Field(default=None, ge=1, le=365)
    days_of_week: list[Weekday] | None = None
    day_of_month: int | None = Field(default=None, ge=1, le=31)
    times_per_day: int | None = Field(default=None, ge=1, le=MAX_TIMES_PER_DAY)
    daily_times: list[TimeOfDay] | None = None
    timezone: str | None = Field(default=None, max_length=64)
    start_date: datetime | None = None
    end_date: datetime | None = None
    is_active: bool | None = None
    exception_dates: list[date] | None = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, value: str | None) -> str | None:
        return _strip_title(value)

    @field_validator("start_date", "end_date")
    @classmethod
    def validate_instants(cls, value: datetime | None) -> datetime | None:
        return _as_utc_or_none(value)

    @model_validator(mode="after")
    def validate_has_changes(self) -> UpdateRecurrenceRuleRequest:
        if not self.model_fields_set:
            raise ValueError("At least one updatable field must be provided.")
        return self

    def to_input(self) -> UpdateRecurrenceRuleInput:
        """Map provided fields onto the service patch, leaving others unset."""

        changes: dict[str, Any] = {}
        for name in self.model_fields_set:
            value = getattr(self, name)
            if isinstance(value, list):
                value = tuple(value)
            changes[name] = value
        return UpdateRecurrenceRuleInput(**changes)


class AddExceptionRequest(BaseModel):
    """Payload to exclude one calendar date from a rule."""

    date: str = Field(min_length=1, max_length=64)


class RecurrenceRuleResponse(BaseModel):
    """Serialized recurrence rule returned by API."""

    id: UUID
    pet_id: str
    title: str
    event_type: EventType
    reminder: bool
    reminder_preset: ReminderPreset | None
    vaccine_name: str | None
    vaccine_manufacturer: str | None
    batch_number: str | None
    medication_name: str | None
    dosage: str | None
    frequency: RecurrenceFrequency
    interval: int
    days_of_week: list[int] | None
    day_of_month: int | None
    times_per_day: int | None
    daily_times: list[str] | None
    timezone: str
    start_date: datetime
    end_date: datetime | None
    exception_dates: list[str]
    is_active: bool
    last_generated_date: datetime | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, rule: RecurrenceRule) -> RecurrenceRuleResponse:
        return cls(
            id=rule.id,
            pet_id=rule.pet_id,
            title=rule.title,
            event_type=rule.event_type,
            reminder=rule.reminder,
            reminder_preset=rule.reminder_preset,
            vaccine_name=rule.vaccine_name,
            vaccine_manufacturer=rule.vaccine_manufacturer,
            batch_number=rule.batch_number,
            medication_name=rule.medication_name,
            dosage=rule.dosage,
            frequency=rule.frequency,
            interval=rule.interval,
            days_of_week=rule.days_of_week,
            day_of_month=rule.day_of_month,
            times_per_day=rule.times_per_day,
            daily_times=rule.daily_times,
            timezone=rule.timezone,
            start_date=as_utc(rule.start_date),
            end_date=_as_utc_or_none(rule.end_date),
            exception_dates=[
                to_date_key(item.exception_date) for item in rule.exception_dates
            ],
            is_active=rule.is_active,
            last_generated_date=_as_utc_or_none(rule.last_generated_date),
            created_at=as_utc(rule.created_at),
            updated_at=as_utc(rule.updated_at),
        )


class RecurrenceRuleListResponse(BaseModel):
    """Paginated recurrence rule list response."""

    items: list[RecurrenceRuleResponse]
    total: int = Field(ge=0)
    page: int = Field(ge=1)
    limit: int | None = Field(default=None, ge=1)

    @classmethod
    def from_models(
        cls,
        *,
        items: list[RecurrenceRule],
        total: int,
        page: int,
        limit: int | None,
    ) -> RecurrenceRuleListResponse:
        return cls(
            items=[RecurrenceRuleResponse.from_model(item) for item in items],
            total=total,
            page=page,
            limit=limit,
        )


class CreateRecurrenceRuleResponse(BaseModel):
    """Created rule and the number of events generated for it."""

    rule: RecurrenceRuleResponse
    events_created: int = Field(ge=0)


class UpdateRecurrenceRuleResponse(BaseModel):
    """Updated rule and regeneration counters."""

    rule: RecurrenceRuleResponse
    events_deleted: int = Field(ge=0)
    events_created: int = Field(ge=0)


class RegenerateEventsResponse(BaseModel):
    """Counters of one regeneration pass."""

    events_deleted: int = Field(ge=0)
    events_created: int = Field(ge=0)

    @classmethod
    def from_result(cls, result: RegenerationResult) -> RegenerateEventsResponse:
        return cls(
            events_deleted=result.events_deleted,
            events_created=result.events_created,
        )


class DeleteRecurrenceRuleResponse(BaseModel):
    """Outcome of a rule deletion."""

    message: str
    events_deleted: int = Field(ge=0)

    @classmethod
    def from_result(
        cls, result: DeleteRecurrenceRuleResult
    ) -> DeleteRecurrenceRuleResponse:
        return cls(message=result.message, events_deleted=result.events_deleted)


class AddExceptionResponse(BaseModel):
    """Outcome of adding one exception date."""

    message: str
    exception_date: str
    events_deleted: int = Field(ge=0)

    @classmethod
    def from_result(cls, result: AddExceptionResult) -> AddExceptionResponse:
        return cls(
            message=result.message,
            exception_date=result.exception_date,
            events_deleted=result.events_deleted,
        )


class EventResponse(BaseModel):
    """Serialized generated event."""

    id: UUID
    pet_id: str
    title: str
    event_type: EventType
    start_time: datetime
    reminder: bool
    reminder_preset: ReminderPreset | None
    status: EventStatus
    vaccine_name: str | None
    vaccine_manufacturer: str | None
    batch_number: str | None
    medication_name: str | None
    dosage: str | None
    recurrence_rule_id: UUID | None
    series_index: int | None

    @classmethod
    def from_model(cls, event: Event) -> EventResponse:
        return cls(
            id=event.id,
            pet_id=event.pet_id,
            title=event.title,
            event_type=event.event_type,
            start_time=as_utc(event.start_time),
            reminder=event.reminder,
            reminder_preset=event.reminder_preset,
            status=event.status,
            vaccine_name=event.vaccine_name,
            vaccine_manufacturer=event.vaccine_manufacturer,
            batch_number=event.batch_number,
            medication_name=event.medication_name,
            dosage=event.dosage,
            recurrence_rule_id=event.recurrence_rule_id,
            series_index=event.series_index,
        )


class EventListResponse(BaseModel):
    """Events generated from one rule."""

    items: list[EventResponse]

    @classmethod
    def from_models(cls, items: list[Event]) -> EventListResponse:
        return cls(items=[EventResponse.from_model(item) for item in items])

