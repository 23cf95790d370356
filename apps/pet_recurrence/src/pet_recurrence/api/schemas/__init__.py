"""API request and response schemas."""

from pet_recurrence.api.schemas.recurrence_rules import (
    CreateRecurrenceRuleRequest,
    RecurrenceRuleResponse,
    UpdateRecurrenceRuleRequest,
)

__all__ = [
    "CreateRecurrenceRuleRequest",
    "RecurrenceRuleResponse",
    "UpdateRecurrenceRuleRequest",
]
