"""Event ORM model shared by one-off and recurrence-generated events."""

from __future__ import annotations

import enum
from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, Enum, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from pet_recurrence.db.base import Base


class EventType(enum.StrEnum):
    """Pet care event categories."""

    FEEDING = "feeding"
    EXERCISE = "exercise"
    GROOMING = "grooming"
    PLAY = "play"
    TRAINING = "training"
    VET_VISIT = "vet_visit"
    WALK = "walk"
    BATH = "bath"
    VACCINATION = "vaccination"
    MEDICATION = "medication"
    OTHER = "other"


class ReminderPreset(enum.StrEnum):
    """Reminder schedule presets."""

    STANDARD = "standard"
    COMPACT = "compact"
    MINIMAL = "minimal"


class EventStatus(enum.StrEnum):
    """Event lifecycle states owned by downstream collaborators."""

    UPCOMING = "upcoming"
    COMPLETED = "completed"
    MISSED = "missed"
    CANCELLED = "cancelled"


class Event(Base):
    """Concrete, timestamped pet care event."""

    __tablename__ = "events"
    __table_args__ = (
        Index("ix_events_recurrence_rule_id", "recurrence_rule_id"),
        Index("ix_events_pet_id_start_time", "pet_id", "start_time"),
    )

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    pet_id: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    event_type: Mapped[EventType] = mapped_column(
        Enum(
            EventType,
            name="event_type",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
            validate_strings=True,
        ),
        nullable=False,
    )
    start_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    reminder: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    reminder_preset: Mapped[ReminderPreset | None] = mapped_column(
        Enum(
            ReminderPreset,
            name="reminder_preset",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
            validate_strings=True,
        ),
        nullable=True,
    )
    status: Mapped[EventStatus] = mapped_column(
        Enum(
            EventStatus,
            name="event_status",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
            validate_strings=True,
        ),
        nullable=False,
        default=EventStatus.UPCOMING,
    )
    vaccine_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    vaccine_manufacturer: Mapped[str | None] = mapped_column(
        String(120), nullable=True
    )
    batch_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    medication_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    dosage: Mapped[str | None] = mapped_column(String(64), nullable=True)
    recurrence_rule_id: Mapped[UUID | None] = mapped_column(nullable=True)
    series_index: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
