"""Recurrence rule routes."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from pet_recurrence.api.dependencies import get_recurrence_service
from pet_recurrence.api.schemas.recurrence_rules import (
    AddExceptionRequest,
    AddExceptionResponse,
    CreateRecurrenceRuleRequest,
    CreateRecurrenceRuleResponse,
    DeleteRecurrenceRuleResponse,
    EventListResponse,
    RecurrenceRuleListResponse,
    RecurrenceRuleResponse,
    RegenerateEventsResponse,
    UpdateRecurrenceRuleRequest,
    UpdateRecurrenceRuleResponse,
)
from pet_recurrence.domain.errors import RecurrenceRuleNotFoundError
from pet_recurrence.services.recurrence_service import (
    ListRecurrenceRulesInput,
    RecurrenceService,
)

router = APIRouter(prefix="/recurrence-rules", tags=["Recurrence Rules"])

RecurrenceServiceDependency = Annotated[
    RecurrenceService, Depends(get_recurrence_service)
]


@router.post(
    "",
    response_model=CreateRecurrenceRuleResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Invalid payload"},
    },
)
def create_recurrence_rule(
    payload: CreateRecurrenceRuleRequest,
    service: RecurrenceServiceDependency,
) -> CreateRecurrenceRuleResponse:
    """Create one active rule and materialize its events."""

    result = service.create_rule(payload.to_input())
    return CreateRecurrenceRuleResponse(
        rule=RecurrenceRuleResponse.from_model(result.rule),
        events_created=result.events_created,
    )


@router.get(
    "",
    response_model=RecurrenceRuleListResponse,
    responses={
        400: {"description": "Invalid query filters"},
    },
)
def list_recurrence_rules(
    service: RecurrenceServiceDependency,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int | None, Query(ge=1, le=200)] = None,
    is_active: Annotated[bool | None, Query()] = None,
    pet_id: Annotated[str | None, Query(min_length=1, max_length=64)] = None,
) -> RecurrenceRuleListResponse:
    """List rules oldest first with optional filters."""

    items, total = service.get_rules(
        ListRecurrenceRulesInput(
            page=page,
            limit=limit,
            is_active=is_active,
            pet_id=pet_id,
        )
    )
    return RecurrenceRuleListResponse.from_models(
        items=items,
        total=total,
        page=page,
        limit=limit,
    )


@router.get(
    "/{rule_id}",
    response_model=RecurrenceRuleResponse,
    responses={
        404: {"description": "Recurrence rule not found"},
    },
)
def get_recurrence_rule(
    rule_id: UUID,
    service: RecurrenceServiceDependency,
) -> RecurrenceRuleResponse:
    """Return one rule."""

    rule = service.get_rule_by_id(rule_id)
    if rule is None:
        raise RecurrenceRuleNotFoundError(details={"rule_id": str(rule_id)})
    return RecurrenceRuleResponse.from_model(rule)


@router.patch(
    "/{rule_id}",
    response_model=UpdateRecurrenceRuleResponse,
    responses={
        400: {"description": "Invalid payload"},
        404: {"description": "Recurrence rule not found"},
    },
)
def update_recurrence_rule(
    rule_id: UUID,
    payload: UpdateRecurrenceRuleRequest,
    service: RecurrenceServiceDependency,
) -> UpdateRecurrenceRuleResponse:
    """Patch one rule and regenerate all of its events."""

    result = service.update_rule(rule_id, payload.to_input())
    return UpdateRecurrenceRuleResponse(
        rule=RecurrenceRuleResponse.from_model(result.rule),
        events_deleted=result.events_deleted,
        events_created=result.events_created,
    )


@router.delete(
    "/{rule_id}",
    response_model=DeleteRecurrenceRuleResponse,
    responses={
        404: {"description": "Recurrence rule not found"},
    },
)
def delete_recurrence_rule(
    rule_id: UUID,
    service: RecurrenceServiceDependency,
) -> DeleteRecurrenceRuleResponse:
    """Delete one rule together with its generated events."""

    return DeleteRecurrenceRuleResponse.from_result(service.delete_rule(rule_id))


@router.post(
    "/{rule_id}/regenerate",
    response_model=RegenerateEventsResponse,
    responses={
        404: {"description": "Recurrence rule not found"},
    },
)
def regenerate_recurrence_events(
    rule_id: UUID,
    service: RecurrenceServiceDependency,
) -> RegenerateEventsResponse:
    """Replace the rule's events with a fresh generation pass."""

    return RegenerateEventsResponse.from_result(service.regenerate_events(rule_id))


@router.get(
    "/{rule_id}/events",
    response_model=EventListResponse,
)
def list_recurrence_events(
    rule_id: UUID,
    service: RecurrenceServiceDependency,
    include_past: Annotated[bool, Query()] = False,
    limit: Annotated[int | None, Query(ge=1, le=500)] = None,
) -> EventListResponse:
    """List events generated from one rule by start time."""

    events = service.get_events_by_rule_id(
        rule_id,
        include_past=include_past,
        limit=limit,
    )
    return EventListResponse.from_models(events)


@router.post(
    "/{rule_id}/exceptions",
    response_model=AddExceptionResponse,
    responses={
        400: {"description": "Invalid exception date"},
        404: {"description": "Recurrence rule not found"},
    },
)
def add_recurrence_exception(
    rule_id: UUID,
    payload: AddExceptionRequest,
    service: RecurrenceServiceDependency,
) -> AddExceptionResponse:
    """Exclude one calendar date from the rule."""

    return AddExceptionResponse.from_result(
        service.add_exception(rule_id, payload.date)
    )
