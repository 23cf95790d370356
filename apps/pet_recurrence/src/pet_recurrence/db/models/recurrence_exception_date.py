"""Recurrence exception date ORM model."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import Date, DateTime, ForeignKey, Index, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pet_recurrence.db.base import Base


class RecurrenceExceptionDate(Base):
    """One local calendar date excluded from a rule's generation."""

    __tablename__ = "recurrence_exception_dates"
    __table_args__ = (
        Index(
            "uq_recurrence_exception_dates_rule_date",
            "recurrence_rule_id",
            "exception_date",
            unique=True,
        ),
    )

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    recurrence_rule_id: Mapped[UUID] = mapped_column(
        ForeignKey("recurrence_rules.id", ondelete="CASCADE"),
        nullable=False,
    )
    exception_date: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    recurrence_rule: Mapped[Any] = relationship(
        "RecurrenceRule",
        back_populates="exception_dates",
    )
