"""SQLAlchemy base metadata and model registration utilities."""

from importlib import import_module

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for ORM models."""


def import_orm_models() -> None:
    """Import ORM models so metadata is fully populated."""

    modules = (
        "pet_recurrence.db.models.event",
        "pet_recurrence.db.models.recurrence_rule",
        "pet_recurrence.db.models.recurrence_exception_date",
    )
    for module_name in modules:
        import_module(module_name)
