import logging
from datetime import UTC, datetime
from uuid import uuid4

import pytest

from pet_recurrence.services.rule_mutations import (
    RuleMutation,
    RuleMutationChannel,
    RuleMutationType,
)


def _mutation() -> RuleMutation:
    return RuleMutation(
        rule_id=uuid4(),
        mutation_type=RuleMutationType.UPDATED,
        occurred_at=datetime(2026, 2, 9, tzinfo=UTC),
        events_deleted=3,
        events_created=4,
    )


def test_publish_delivers_to_subscribers_in_order() -> None:
    channel = RuleMutationChannel()
    received: list[tuple[str, RuleMutation]] = []
    channel.subscribe(lambda mutation: received.append(("first", mutation)))
    channel.subscribe(lambda mutation: received.append(("second", mutation)))
    mutation = _mutation()

    channel.publish(mutation)

    assert received == [("first", mutation), ("second", mutation)]


def test_unsubscribe_stops_delivery() -> None:
    channel = RuleMutationChannel()
    received: list[RuleMutation] = []
    unsubscribe = channel.subscribe(received.append)

    unsubscribe()
    unsubscribe()
    channel.publish(_mutation())

    assert received == []


def test_failing_subscriber_is_logged_and_isolated(
    caplog: pytest.LogCaptureFixture,
) -> None:
    channel = RuleMutationChannel()
    received: list[RuleMutation] = []

    def broken(_: RuleMutation) -> None:
        raise RuntimeError("cache offline")

    channel.subscribe(broken)
    channel.subscribe(received.append)

    with caplog.at_level(logging.ERROR):
        channel.publish(_mutation())

    assert len(received) == 1
    assert "rule_mutation_subscriber_failed" in caplog.text
