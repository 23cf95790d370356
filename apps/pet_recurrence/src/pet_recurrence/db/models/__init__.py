"""ORM models for the pet_recurrence domain."""

from pet_recurrence.db.models.event import (
    Event,
    EventStatus,
    EventType,
    ReminderPreset,
)
from pet_recurrence.db.models.recurrence_exception_date import (
    RecurrenceExceptionDate,
)
from pet_recurrence.db.models.recurrence_rule import RecurrenceRule

__all__ = [
    "Event",
    "EventStatus",
    "EventType",
    "RecurrenceExceptionDate",
    "RecurrenceRule",
    "ReminderPreset",
]
