"""CLI bootstrap for pet-recurrence."""

import json
import logging
from datetime import date, datetime
from pathlib import Path
from uuid import UUID

import typer
from pydantic import Field
from sqlalchemy.orm import Session

from pet_recurrence.api.schemas.recurrence_rules import CreateRecurrenceRuleRequest
from pet_recurrence.core.settings import get_settings
from pet_recurrence.db import session as db_session
from pet_recurrence.domain.errors import DomainError
from pet_recurrence.domain.recurrence_schedule import (
    RecurrenceSchedule,
    materialize_start_times,
    times_of_day_from_fields,
)
from pet_recurrence.domain.timezones import as_utc, resolve_timezone, to_date_key
from pet_recurrence.repositories.recurrence_repository import RecurrenceRepository
from pet_recurrence.services.recurrence_service import RecurrenceService, utc_now

app = typer.Typer(help="CLI for pet care recurrence rule expansion.")
INPUT_FILE_OPTION = typer.Option(..., exists=True, dir_okay=False)
NOW_OPTION = typer.Option(None, help="ISO-8601 instant used as the current time.")
PET_ID_OPTION = typer.Option(None, help="Only regenerate rules of this pet.")


class PreviewRuleFile(CreateRecurrenceRuleRequest):
    """Rule file accepted by ``preview``; ``pet_id`` is optional."""

    pet_id: str = Field(default="preview", min_length=1, max_length=64)
    exception_dates: list[date] = Field(default_factory=list)


@app.callback()
def configure_logging() -> None:
    """Configure root logging from ``LOG_LEVEL``."""
    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def _build_service(session: Session) -> RecurrenceService:
    return RecurrenceService(
        recurrence_repository=RecurrenceRepository(session),
        session=session,
    )


@app.command("healthcheck")
def healthcheck() -> None:
    """Verify that the CLI entrypoint is available."""
    typer.echo("pet-recurrence is ready")


@app.command("regenerate")
def regenerate(rule_id: UUID) -> None:
    """Replace all events of one rule with a fresh generation pass."""
    with db_session.SessionFactory() as session:
        try:
            result = _build_service(session).regenerate_events(rule_id)
        except DomainError as exc:
            typer.echo(exc.message, err=True)
            raise typer.Exit(code=1) from exc

    typer.echo(f"Rule {rule_id}")
    typer.echo(
        f"Deleted: {result.events_deleted} | Created: {result.events_created}"
    )


@app.command("regenerate-active")
def regenerate_active(pet_id: str | None = PET_ID_OPTION) -> None:
    """Regenerate every active rule, extending events past the horizon."""
    with db_session.SessionFactory() as session:
        results = _build_service(session).regenerate_active_rules(pet_id=pet_id)

    for rule_id, result in results.items():
        typer.echo(
            f"{rule_id}: deleted={result.events_deleted} "
            f"created={result.events_created}"
        )
    typer.echo(f"Rules: {len(results)}")


@app.command("preview")
def preview(
    input: Path = INPUT_FILE_OPTION,
    now: str | None = NOW_OPTION,
) -> None:
    """Print the instants a rule file would materialize, without a database."""
    payload = json.loads(input.read_text(encoding="utf-8"))
    rule = PreviewRuleFile.model_validate(payload)
    reference = as_utc(datetime.fromisoformat(now)) if now else utc_now()

    schedule = RecurrenceSchedule(
        frequency=rule.frequency,
        timezone=resolve_timezone(rule.timezone),
        start_date=rule.start_date,
        interval=rule.interval,
        days_of_week=frozenset(rule.days_of_week or ()),
        day_of_month=rule.day_of_month,
        times_of_day=times_of_day_from_fields(
            daily_times=rule.daily_times,
            times_per_day=rule.times_per_day,
        ),
        end_date=rule.end_date,
        exception_dates=frozenset(to_date_key(item) for item in rule.exception_dates),
    )
    start_times = materialize_start_times(schedule, now=reference)

    for start_time in start_times:
        typer.echo(start_time.isoformat())
    typer.echo(f"Occurrences: {len(start_times)}")


def main() -> None:
    """Run the pet-recurrence CLI application."""
    app()


if __name__ == "__main__":
    main()
