"""Persistence operations for recurrence rules and their generated events."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from uuid import UUID

from sqlalchemy import Select, delete, func, select
from sqlalchemy.orm import Session

from pet_recurrence.db.models.event import Event
from pet_recurrence.db.models.recurrence_exception_date import (
    RecurrenceExceptionDate,
)
from pet_recurrence.db.models.recurrence_rule import RecurrenceRule


@dataclass(slots=True, frozen=True)
class RecurrenceRuleListFilters:
    """Filters for listing recurrence rules."""

    is_active: bool | None = None
    pet_id: str | None = None
    page: int = 1
    limit: int | None = None


class RecurrenceRepository:
    """Repository for recurrence rules, exception dates and events."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_rule(self, rule_id: UUID) -> RecurrenceRule | None:
        """Fetch recurrence rule by id."""

        statement = select(RecurrenceRule).where(RecurrenceRule.id == rule_id)
        return self._session.scalar(statement)

    def get_rule_for_update(self, rule_id: UUID) -> RecurrenceRule | None:
        """Fetch and lock one recurrence rule by id."""

        statement = (
            select(RecurrenceRule).where(RecurrenceRule.id == rule_id).with_for_update()
        )
        return self._session.scalar(statement)

    def add_rule(self, rule: RecurrenceRule) -> RecurrenceRule:
        """Persist a newly created recurrence rule."""

        self._session.add(rule)
        self._session.flush()
        return rule

    def delete_rule(self, rule: RecurrenceRule) -> None:
        """Delete one rule together with its exception dates."""

        self._session.delete(rule)
        self._session.flush()

    def flush(self) -> None:
        """Flush pending rule changes."""

        self._session.flush()

    def list_rules(
        self,
        filters: RecurrenceRuleListFilters,
    ) -> tuple[list[RecurrenceRule], int]:
        """List rules oldest first with optional activity and pet filters."""

        statement = self._apply_list_filters(select(RecurrenceRule), filters)
        total_statement = select(func.count()).select_from(statement.subquery())
        total = int(self._session.scalar(total_statement) or 0)

        page_statement = statement.order_by(
            RecurrenceRule.created_at.asc(), RecurrenceRule.id.asc()
        )
        if filters.limit is not None:
            limit = max(filters.limit, 1)
            page = max(filters.page, 1)
            page_statement = page_statement.limit(limit).offset((page - 1) * limit)
        items = list(self._session.scalars(page_statement).all())
        return items, total

    def list_active_rule_ids(self, *, pet_id: str | None = None) -> list[UUID]:
        """Return ids of active rules, oldest first."""

        statement = select(RecurrenceRule.id).where(RecurrenceRule.is_active.is_(True))
        if pet_id is not None:
            statement = statement.where(RecurrenceRule.pet_id == pet_id)
        statement = statement.order_by(RecurrenceRule.created_at, RecurrenceRule.id)
        return list(self._session.scalars(statement).all())

    def add_exception_date(
        self,
        *,
        rule: RecurrenceRule,
        exception_date: date,
    ) -> bool:
        """Attach an exception date to the rule, returning whether it was new."""

        existing = {item.exception_date for item in rule.exception_dates}
        if exception_date in existing:
            return False

        rule.exception_dates.append(
            RecurrenceExceptionDate(exception_date=exception_date)
        )
        self._session.flush()
        return True

    def replace_exception_dates(
        self,
        *,
        rule: RecurrenceRule,
        exception_dates: Iterable[date],
    ) -> None:
        """Make the rule's exception set equal to ``exception_dates``."""

        wanted = set(exception_dates)
        kept = [item for item in rule.exception_dates if item.exception_date in wanted]
        present = {item.exception_date for item in kept}
        rule.exception_dates = kept + [
            RecurrenceExceptionDate(exception_date=value)
            for value in sorted(wanted - present)
        ]
        self._session.flush()

    def add_events(self, events: Sequence[Event]) -> None:
        """Persist generated events."""

        self._session.add_all(events)
        self._session.flush()

    def list_events(
        self,
        rule_id: UUID,
        *,
        starting_at: datetime | None = None,
        limit: int | None = None,
    ) -> list[Event]:
        """Return events of one rule ordered by start time.

        A ``limit`` of zero or ``None`` returns every matching event.
        """

        statement = select(Event).where(Event.recurrence_rule_id == rule_id)
        if starting_at is not None:
            statement = statement.where(Event.start_time >= starting_at)
        statement = statement.order_by(Event.start_time, Event.series_index)
        if limit:
            statement = statement.limit(limit)
        return list(self._session.scalars(statement).all())

    def count_events(self, rule_id: UUID) -> int:
        """Count events generated from one rule."""

        statement = (
            select(func.count())
            .select_from(Event)
            .where(Event.recurrence_rule_id == rule_id)
        )
        return int(self._session.scalar(statement) or 0)

    def delete_events_for_rule(self, rule_id: UUID) -> int:
        """Delete every event generated from one rule and return the count."""

        deleted = self.count_events(rule_id)
        self._session.execute(delete(Event).where(Event.recurrence_rule_id == rule_id))
        self._session.flush()
        return deleted

    def delete_events(self, events: Sequence[Event]) -> int:
        """Delete the given events and return the count."""

        for event in events:
            self._session.delete(event)
        self._session.flush()
        return len(events)

    @staticmethod
    def _apply_list_filters(
        statement: Select[tuple[RecurrenceRule]],
        filters: RecurrenceRuleListFilters,
    ) -> Select[tuple[RecurrenceRule]]:
        typed_statement = statement

        if filters.is_active is not None:
            typed_statement = typed_statement.where(
                RecurrenceRule.is_active.is_(filters.is_active)
            )

        if filters.pet_id is not None:
            typed_statement = typed_statement.where(
                RecurrenceRule.pet_id == filters.pet_id
            )

        return typed_statement
