"""Schedule exception and holiday models using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Index,
    MetaData,
    Table,
    Text,
    Time,
    Uuid,
    func,
)

metadata = MetaData()

schedule_exceptions = Table(
    "schedule_exceptions",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("clinic_id", Uuid, nullable=False),
    # NULL applies to the whole clinic
    Column("practitioner_id", Uuid, nullable=True),
    Column("date", Date, nullable=False),
    # Both NULL means the whole day
    Column("from_time", Time, nullable=True),
    Column("to_time", Time, nullable=True),
    Column("type", Text, nullable=False),
    Column("reason", Text, nullable=True),
    Column("created_by", Uuid, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint(
        "type IN ('clinic_closed', 'practitioner_block', 'extended_hours')",
        name="schedule_exceptions_type_check",
    ),
)

Index(
    "idx_schedule_exceptions_clinic_date",
    schedule_exceptions.c.clinic_id,
    schedule_exceptions.c.date,
)

holiday_calendar = Table(
    "holiday_calendar",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # NULL applies to every clinic
    Column("clinic_id", Uuid, nullable=True),
    Column("date", Date, nullable=False),
    Column("name", Text, nullable=False),
    Column("country_code", Text, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)

Index("idx_holiday_calendar_date", holiday_calendar.c.date)
