"""Create recurrence rule, exception date and event tables.

Revision ID: 20261018_01_create_recurrence_tables
Revises:
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "20261018_01_create_recurrence_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


event_type_enum = sa.Enum(
    "feeding",
    "exercise",
    "grooming",
    "play",
    "training",
    "vet_visit",
    "walk",
    "bath",
    "vaccination",
    "medication",
    "other",
    name="event_type",
)
reminder_preset_enum = sa.Enum(
    "standard",
    "compact",
    "minimal",
    name="reminder_preset",
)
event_status_enum = sa.Enum(
    "upcoming",
    "completed",
    "missed",
    "cancelled",
    name="event_status",
)
recurrence_frequency_enum = sa.Enum(
    "daily",
    "weekly",
    "monthly",
    "yearly",
    "custom",
    "times_per_day",
    name="recurrence_frequency",
)


def _timestamp_columns() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    ]


def _payload_columns() -> list[sa.Column]:
    return [
        sa.Column("vaccine_name", sa.String(length=120), nullable=True),
        sa.Column("vaccine_manufacturer", sa.String(length=120), nullable=True),
        sa.Column("batch_number", sa.String(length=64), nullable=True),
        sa.Column("medication_name", sa.String(length=120), nullable=True),
        sa.Column("dosage", sa.String(length=64), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "recurrence_rules",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("pet_id", sa.String(length=64), nullable=False),
        sa.Column("title", sa.String(length=100), nullable=False),
        sa.Column("event_type", event_type_enum, nullable=False),
        sa.Column(
            "reminder", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("reminder_preset", reminder_preset_enum, nullable=True),
        *_payload_columns(),
        sa.Column("frequency", recurrence_frequency_enum, nullable=False),
        sa.Column(
            "interval", sa.Integer(), nullable=False, server_default=sa.text("1")
        ),
        sa.Column(
            "days_of_week", postgresql.JSONB(astext_type=sa.Text()), nullable=True
        ),
        sa.Column("day_of_month", sa.SmallInteger(), nullable=True),
        sa.Column("times_per_day", sa.SmallInteger(), nullable=True),
        sa.Column(
            "daily_times", postgresql.JSONB(astext_type=sa.Text()), nullable=True
        ),
        sa.Column("timezone", sa.String(length=64), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "is_active", sa.Boolean(), nullable=False, server_default=sa.true()
        ),
        sa.Column("last_generated_date", sa.DateTime(timezone=True), nullable=True),
        *_timestamp_columns(),
        sa.CheckConstraint(
            '"interval" >= 1', name="ck_recurrence_rules_interval_positive"
        ),
        sa.CheckConstraint(
            "day_of_month IS NULL OR day_of_month BETWEEN 1 AND 31",
            name="ck_recurrence_rules_day_of_month_range",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_recurrence_rules_pet_id",
        "recurrence_rules",
        ["pet_id"],
        unique=False,
    )

    op.create_table(
        "recurrence_exception_dates",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("recurrence_rule_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("exception_date", sa.Date(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.ForeignKeyConstraint(
            ["recurrence_rule_id"],
            ["recurrence_rules.id"],
            ondelete="CASCADE",
            name="fk_recurrence_exception_dates_rule_id",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "uq_recurrence_exception_dates_rule_date",
        "recurrence_exception_dates",
        ["recurrence_rule_id", "exception_date"],
        unique=True,
    )

    op.create_table(
        "events",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("pet_id", sa.String(length=64), nullable=False),
        sa.Column("title", sa.String(length=100), nullable=False),
        sa.Column("event_type", event_type_enum, nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "reminder", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("reminder_preset", reminder_preset_enum, nullable=True),
        sa.Column("status", event_status_enum, nullable=False),
        *_payload_columns(),
        sa.Column("recurrence_rule_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("series_index", sa.Integer(), nullable=True),
        *_timestamp_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_events_recurrence_rule_id",
        "events",
        ["recurrence_rule_id"],
        unique=False,
    )
    op.create_index(
        "ix_events_pet_id_start_time",
        "events",
        ["pet_id", "start_time"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_events_pet_id_start_time", table_name="events")
    op.drop_index("ix_events_recurrence_rule_id", table_name="events")
    op.drop_table("events")

    op.drop_index(
        "uq_recurrence_exception_dates_rule_date",
        table_name="recurrence_exception_dates",
    )
    op.drop_table("recurrence_exception_dates")

    op.drop_index("ix_recurrence_rules_pet_id", table_name="recurrence_rules")
    op.drop_table("recurrence_rules")

    bind = op.get_bind()
    event_status_enum.drop(bind, checkfirst=True)
    recurrence_frequency_enum.drop(bind, checkfirst=True)
    reminder_preset_enum.drop(bind, checkfirst=True)
    event_type_enum.drop(bind, checkfirst=True)
