"""API dependency providers."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from pet_recurrence.db.session import get_db_session
from pet_recurrence.repositories.recurrence_repository import RecurrenceRepository
from pet_recurrence.services.recurrence_service import RecurrenceService
from pet_recurrence.services.rule_mutations import RuleMutationChannel


def get_rule_mutation_channel(request: Request) -> RuleMutationChannel:
    """Return the application-wide rule mutation channel."""

    return request.app.state.rule_mutation_channel


def get_recurrence_repository(
    session: Annotated[Session, Depends(get_db_session)],
) -> RecurrenceRepository:
    """Build recurrence repository with per-request session."""

    return RecurrenceRepository(session)


def get_recurrence_service(
    session: Annotated[Session, Depends(get_db_session)],
    mutation_channel: Annotated[
        RuleMutationChannel, Depends(get_rule_mutation_channel)
    ],
) -> RecurrenceService:
    """Build recurrence service with per-request session."""

    return RecurrenceService(
        recurrence_repository=RecurrenceRepository(session),
        session=session,
        mutation_channel=mutation_channel,
    )
