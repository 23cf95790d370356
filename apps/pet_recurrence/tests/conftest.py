from __future__ import annotations

from collections.abc import Callable, Generator
from datetime import UTC, datetime
from typing import Annotated

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from pet_recurrence.api.app import create_app
from pet_recurrence.api.dependencies import get_recurrence_service
from pet_recurrence.db.base import Base, import_orm_models
from pet_recurrence.db.session import get_db_session
from pet_recurrence.repositories.recurrence_repository import RecurrenceRepository
from pet_recurrence.services.recurrence_service import RecurrenceService
from pet_recurrence.services.rule_mutations import RuleMutation, RuleMutationChannel

FIXED_NOW = datetime(2026, 2, 9, 12, 0, tzinfo=UTC)


@pytest.fixture
def sqlite_session_factory() -> Generator[sessionmaker[Session], None, None]:
    import_orm_models()
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(
        bind=engine,
        class_=Session,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )
    try:
        yield factory
    finally:
        Base.metadata.drop_all(engine)


@pytest.fixture
def mutation_channel() -> RuleMutationChannel:
    return RuleMutationChannel()


@pytest.fixture
def published_mutations(mutation_channel: RuleMutationChannel) -> list[RuleMutation]:
    received: list[RuleMutation] = []
    mutation_channel.subscribe(received.append)
    return received


@pytest.fixture
def build_service(
    mutation_channel: RuleMutationChannel,
) -> Callable[..., RecurrenceService]:
    def _build(
        session: Session,
        *,
        now: datetime = FIXED_NOW,
    ) -> RecurrenceService:
        return RecurrenceService(
            recurrence_repository=RecurrenceRepository(session),
            session=session,
            mutation_channel=mutation_channel,
            clock=lambda: now,
        )

    return _build


@pytest.fixture
def client(
    sqlite_session_factory: sessionmaker[Session],
    mutation_channel: RuleMutationChannel,
    build_service: Callable[..., RecurrenceService],
) -> Generator[TestClient, None, None]:
    app = create_app(mutation_channel=mutation_channel)

    def override_get_db_session() -> Generator[Session, None, None]:
        with sqlite_session_factory() as session:
            yield session

    def override_get_recurrence_service(
        session: Annotated[Session, Depends(get_db_session)],
    ) -> RecurrenceService:
        return build_service(session)

    app.dependency_overrides[get_db_session] = override_get_db_session
    app.dependency_overrides[get_recurrence_service] = override_get_recurrence_service
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW
