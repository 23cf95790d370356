"""Notification channel for committed recurrence rule writes.

Cache layers and other in-process consumers subscribe here to learn that a
rule and its generated events changed.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

logger = logging.getLogger(__name__)


class RuleMutationType(enum.StrEnum):
    """Kinds of committed rule writes."""

    CREATED = "rule_created"
    UPDATED = "rule_updated"
    DELETED = "rule_deleted"
    REGENERATED = "rule_regenerated"
    EXCEPTION_ADDED = "rule_exception_added"


@dataclass(slots=True, frozen=True)
class RuleMutation:
    """Message published after one rule write is committed."""

    rule_id: UUID
    mutation_type: RuleMutationType
    occurred_at: datetime
    events_deleted: int = 0
    events_created: int = 0


RuleMutationSubscriber = Callable[[RuleMutation], None]


class RuleMutationChannel:
    """In-process publish/subscribe channel for rule mutations."""

    def __init__(self) -> None:
        self._subscribers: list[RuleMutationSubscriber] = []

    def subscribe(self, subscriber: RuleMutationSubscriber) -> Callable[[], None]:
        """Register a subscriber and return a callable that removes it."""

        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe

    def publish(self, mutation: RuleMutation) -> None:
        """Deliver a mutation to every subscriber in registration order."""

        for subscriber in list(self._subscribers):
            try:
                subscriber(mutation)
            except Exception:
                logger.exception(
                    "rule_mutation_subscriber_failed",
                    extra={
                        "rule_id": str(mutation.rule_id),
                        "mutation_type": mutation.mutation_type.value,
                    },
                )
