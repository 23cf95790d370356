"""Recurrence rule ORM model."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    Index,
    Integer,
    SmallInteger,
    String,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pet_recurrence.db.base import Base
from pet_recurrence.db.models.event import EventType, ReminderPreset
from pet_recurrence.domain.recurrence_schedule import RecurrenceFrequency


class RecurrenceRule(Base):
    """User-authored recurrence definition for one pet."""

    __tablename__ = "recurrence_rules"
    __table_args__ = (
        CheckConstraint(
            '"interval" >= 1',
            name="ck_recurrence_rules_interval_positive",
        ),
        CheckConstraint(
            "day_of_month IS NULL OR day_of_month BETWEEN 1 AND 31",
            name="ck_recurrence_rules_day_of_month_range",
        ),
        Index("ix_recurrence_rules_pet_id", "pet_id"),
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
    vaccine_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    vaccine_manufacturer: Mapped[str | None] = mapped_column(
        String(120), nullable=True
    )
    batch_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    medication_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    dosage: Mapped[str | None] = mapped_column(String(64), nullable=True)
    frequency: Mapped[RecurrenceFrequency] = mapped_column(
        Enum(
            RecurrenceFrequency,
            name="recurrence_frequency",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
            validate_strings=True,
        ),
        nullable=False,
    )
    interval: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1, server_default="1"
    )
    days_of_week: Mapped[list[int] | None] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"),
        nullable=True,
    )
    day_of_month: Mapped[int | None] = mapped_column(SmallInteger, nullable=True)
    times_per_day: Mapped[int | None] = mapped_column(SmallInteger, nullable=True)
    daily_times: Mapped[list[str] | None] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"),
        nullable=True,
    )
    timezone: Mapped[str] = mapped_column(String(64), nullable=False)
    start_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    end_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default="true"
    )
    last_generated_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
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

    exception_dates: Mapped[list[Any]] = relationship(
        "RecurrenceExceptionDate",
        back_populates="recurrence_rule",
        cascade="all, delete-orphan",
        order_by="RecurrenceExceptionDate.exception_date",
        lazy="selectin",
    )
