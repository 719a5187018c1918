"""Database models."""

from sqlalchemy import MetaData

from app.models.appointments import appointments
from app.models.appointments import metadata as appointments_metadata
from app.models.clinic_settings import clinic_settings
from app.models.clinic_settings import metadata as clinic_settings_metadata
from app.models.practitioners import metadata as practitioners_metadata
from app.models.practitioners import practitioner_availability, practitioners
from app.models.schedule_exceptions import holiday_calendar, schedule_exceptions
from app.models.schedule_exceptions import metadata as schedule_exceptions_metadata


def combined_metadata() -> MetaData:
    """Merge the per-module metadata into one, for create_all and Alembic."""
    metadata = MetaData()
    for module_metadata in (
        appointments_metadata,
        clinic_settings_metadata,
        practitioners_metadata,
        schedule_exceptions_metadata,
    ):
        for table in module_metadata.tables.values():
            table.to_metadata(metadata)
    return metadata


__all__ = [
    "appointments",
    "clinic_settings",
    "combined_metadata",
    "holiday_calendar",
    "practitioner_availability",
    "practitioners",
    "schedule_exceptions",
]
